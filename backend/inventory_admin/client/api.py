import logging
from typing import Any, Optional

import httpx

from inventory_admin.client.coordinator import REFRESH_PATH, RefreshCoordinator
from inventory_admin.client.session import AuthSession, ProfileCache, SessionUser

logger = logging.getLogger(__name__)

AUTH_PREFIX = "/api/v1/auth"


class AuthClientError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(f"{status_code} {code}: {message}")
        self.status_code = status_code
        self.code = code
        self.message = message

    @classmethod
    def from_response(cls, response: httpx.Response) -> "AuthClientError":
        code, message = "HTTP_ERROR", response.reason_phrase or "request failed"
        try:
            error = response.json().get("error") or {}
            code = error.get("code", code)
            message = error.get("message", message)
        except (ValueError, AttributeError):
            pass
        return cls(response.status_code, code, message)


def _session_user(data: dict) -> SessionUser:
    user = data["user"]
    return SessionUser(id=int(user["id"]), email=user["email"], name=user["name"], role=user["role"])


class AuthClient:
    """HTTP client for the inventory API that stays logged in on its own.

    Example:
        async with AuthClient("https://inventory.example.com") as client:
            await client.login("admin@acme.com", "Admin@123")
            resp = await client.request("GET", "/api/v1/admin/permissions")
    """

    def __init__(
        self,
        base_url: str,
        *,
        profile_cache: Optional[ProfileCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self.session = AuthSession(profile_cache)
        self.coordinator = RefreshCoordinator(
            self.http,
            self.session,
            refresh_path=REFRESH_PATH,
            refresh_timeout=timeout,
        )

    async def __aenter__(self) -> "AuthClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    async def login(self, email: str, password: str) -> SessionUser:
        response = await self.http.post(
            f"{AUTH_PREFIX}/login", json={"email": email, "password": password}
        )
        if response.status_code != 200:
            raise AuthClientError.from_response(response)

        data = response.json()
        user = _session_user(data)
        self.session.set_auth(user, list(data.get("permissions") or []), data["accessToken"])
        logger.info("Logged in as %s", user.email)
        return user

    async def logout(self) -> None:
        try:
            await self.http.post(f"{AUTH_PREFIX}/logout")
        except httpx.HTTPError as e:
            logger.warning("Logout request failed: %s", e)
        finally:
            self.session.clear()
            self.http.cookies.clear()

    async def me(self) -> SessionUser:
        response = await self.coordinator.request("GET", f"{AUTH_PREFIX}/me")
        if response.status_code != 200:
            self.session.clear()
            raise AuthClientError.from_response(response)

        data = response.json()
        user = _session_user(data)
        self.session.set_auth(user, list(data.get("permissions") or []), data["accessToken"])
        return user

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        return await self.coordinator.request(method, url, **kwargs)
