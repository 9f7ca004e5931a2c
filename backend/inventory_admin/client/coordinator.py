"""
Single-flight access-token refresh for HTTP clients.

Every authenticated call goes through ``RefreshCoordinator.request``:

1. no token, or a token expiring within ``expiry_buffer`` -> refresh first;
2. send with ``Authorization: Bearer`` (the client's cookie jar carries the
   refresh cookie);
3. on 401, refresh and retry the call once; if the refresh fails the
   original 401 is returned and the session is cleared.

At most one refresh request is ever in flight. It is held as a shared
``asyncio.Task``; concurrent callers await that task instead of starting
their own.
"""

import asyncio
import enum
import logging
from datetime import timedelta
from typing import Any, Optional

import httpx

from inventory_admin.client.session import AuthSession, SessionUser

logger = logging.getLogger(__name__)

REFRESH_PATH = "/api/v1/auth/refresh"


class CoordinatorState(str, enum.Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


class RefreshFailed(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RefreshCoordinator:
    def __init__(
        self,
        http: httpx.AsyncClient,
        session: AuthSession,
        *,
        refresh_path: str = REFRESH_PATH,
        expiry_buffer: timedelta = timedelta(seconds=5),
        refresh_timeout: float = 10.0,
    ):
        self.http = http
        self.session = session
        self.refresh_path = refresh_path
        self.expiry_buffer = expiry_buffer
        self.refresh_timeout = refresh_timeout
        self._inflight: Optional[asyncio.Task] = None

    @property
    def state(self) -> CoordinatorState:
        if self._inflight is not None and not self._inflight.done():
            return CoordinatorState.REFRESHING
        return CoordinatorState.IDLE

    async def refresh(self) -> Optional[str]:
        """Start a refresh, or join the one already running.

        Returns the new access token, or None when the server refused.
        """
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._run_refresh())
        # shield: a cancelled waiter must not cancel everyone else's refresh
        return await asyncio.shield(self._inflight)

    async def _run_refresh(self) -> Optional[str]:
        try:
            token = await self._call_refresh()
            logger.debug("Access token refreshed")
            return token
        except RefreshFailed as e:
            if e.status_code == 401:
                logger.debug("Refresh refused: %s", e)
            else:
                logger.warning("Token refresh failed: %s", e)
            self.session.clear()
            return None
        finally:
            self._inflight = None

    async def _call_refresh(self) -> str:
        try:
            response = await self.http.post(self.refresh_path, timeout=self.refresh_timeout)
        except httpx.HTTPError as e:
            raise RefreshFailed(f"transport error: {e!r}") from e

        if response.status_code != 200:
            raise RefreshFailed(
                f"refresh returned {response.status_code}", status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RefreshFailed("refresh response is not JSON") from e
        if not isinstance(data, dict):
            raise RefreshFailed("refresh response is not a JSON object")

        access_token = data.get("accessToken")
        if not access_token:
            raise RefreshFailed("no access token in refresh response")

        user = data.get("user")
        permissions = data.get("permissions")
        if user and permissions is not None:
            try:
                session_user = SessionUser(
                    id=int(user["id"]),
                    email=user["email"],
                    name=user["name"],
                    role=user["role"],
                )
            except (KeyError, TypeError, ValueError) as e:
                raise RefreshFailed(f"malformed user in refresh response: {e}") from e
            self.session.set_auth(session_user, list(permissions), access_token)
        else:
            self.session.set_access_token(access_token)
        return access_token

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        token = self.session.access_token
        refresh_failed = False
        if not token or self.session.is_access_token_expired(self.expiry_buffer):
            token = await self.refresh()
            refresh_failed = token is None

        headers = dict(kwargs.pop("headers", None) or {})
        if token:
            headers["Authorization"] = f"Bearer {token}"

        response = await self.http.request(method, url, headers=headers, **kwargs)
        if response.status_code != 401 or refresh_failed:
            return response

        # Someone else may already have replaced the token we sent.
        current = self.session.access_token
        if current and current != token:
            new_token: Optional[str] = current
        else:
            new_token = await self.refresh()
        if not new_token:
            return response

        headers["Authorization"] = f"Bearer {new_token}"
        return await self.http.request(method, url, headers=headers, **kwargs)
