"""
Client-side authentication state.

The access token lives in memory only. A profile summary (user + permission
codes) may be written to disk so a UI can paint something before the first
refresh completes, but it is a display hint: every access decision reads the
claims embedded in the in-memory access token.
"""

import json
import logging
import os
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from jose import JWTError, jwt

logger = logging.getLogger(__name__)

ROLE_ADMIN = "ADMIN"


@dataclass
class SessionUser:
    id: int
    email: str
    name: str
    role: str


@dataclass
class CachedProfile:
    user: SessionUser
    permissions: List[str] = field(default_factory=list)


def decode_claims(token: str) -> Optional[Dict[str, Any]]:
    """Read a JWT payload without verifying it (the client holds no secret)."""
    try:
        return jwt.get_unverified_claims(token)
    except (JWTError, AttributeError, TypeError):
        return None


def _user_from_claims(claims: Dict[str, Any]) -> Optional[SessionUser]:
    try:
        return SessionUser(
            id=int(claims["sub"]),
            email=claims["email"],
            name=claims["name"],
            role=claims["role"],
        )
    except (KeyError, TypeError, ValueError):
        return None


class ProfileCache:
    """
    JSON file holding the last known profile.

    Never stores tokens. Written with 0600 permissions.
    """

    def __init__(self, path: Optional[Path] = None):
        if path is None:
            path = Path.home() / ".inventory_admin" / "profile.json"
        self.path = path

    def load(self) -> Optional[CachedProfile]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
            return CachedProfile(
                user=SessionUser(**data["user"]),
                permissions=list(data.get("permissions") or []),
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable profile cache %s: %s", self.path, e)
            return None

    def save(self, profile: CachedProfile) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        # O_CREAT mode only applies to new files
        os.fchmod(fd, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(
                {"user": asdict(profile.user), "permissions": profile.permissions},
                f,
                indent=2,
            )

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class AuthSession:
    """In-memory access token plus the identity/permissions that came with it."""

    def __init__(self, profile_cache: Optional[ProfileCache] = None):
        self.profile_cache = profile_cache
        self._lock = threading.Lock()
        self._access_token: Optional[str] = None
        self._expires_at: Optional[datetime] = None
        self._user: Optional[SessionUser] = None
        self._permissions: List[str] = []
        self._cached_profile = profile_cache.load() if profile_cache else None

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    @property
    def is_authenticated(self) -> bool:
        return self._access_token is not None

    @property
    def cached_profile(self) -> Optional[CachedProfile]:
        """Last persisted profile; for display only."""
        return self._cached_profile

    def set_auth(self, user: SessionUser, permissions: List[str], access_token: str) -> None:
        claims = decode_claims(access_token) or {}
        token_user = _user_from_claims(claims)
        if token_user is not None and token_user != user:
            logger.warning("Profile data disagrees with access token claims; using the token")
            user = token_user

        with self._lock:
            self._access_token = access_token
            self._expires_at = self._expiry_of(claims)
            self._user = user
            self._permissions = list(permissions)
            self._cached_profile = CachedProfile(user=user, permissions=list(permissions))

        if self.profile_cache is not None:
            try:
                self.profile_cache.save(self._cached_profile)
            except OSError as e:
                logger.warning("Could not persist profile cache: %s", e)

    def set_access_token(self, access_token: str) -> None:
        claims = decode_claims(access_token) or {}
        with self._lock:
            self._access_token = access_token
            self._expires_at = self._expiry_of(claims)

    def clear(self) -> None:
        with self._lock:
            self._access_token = None
            self._expires_at = None
            self._user = None
            self._permissions = []
            self._cached_profile = None
        if self.profile_cache is not None:
            self.profile_cache.clear()

    @staticmethod
    def _expiry_of(claims: Dict[str, Any]) -> Optional[datetime]:
        exp = claims.get("exp")
        if exp is None:
            return None
        try:
            return datetime.fromtimestamp(float(exp), tz=timezone.utc)
        except (TypeError, ValueError):
            return None

    @property
    def expires_at(self) -> Optional[datetime]:
        return self._expires_at

    def is_access_token_expired(self, buffer: timedelta = timedelta(seconds=5)) -> bool:
        if not self._access_token or not self._expires_at:
            return True
        return datetime.now(timezone.utc) >= self._expires_at - buffer

    def _token_claims(self) -> Optional[Dict[str, Any]]:
        if not self._access_token:
            return None
        return decode_claims(self._access_token)

    @property
    def current_user(self) -> Optional[SessionUser]:
        claims = self._token_claims()
        if claims:
            return _user_from_claims(claims)
        return None

    @property
    def role(self) -> Optional[str]:
        claims = self._token_claims()
        return claims.get("role") if claims else None

    @property
    def permissions(self) -> List[str]:
        claims = self._token_claims()
        if not claims:
            return []
        return list(claims.get("permissions") or [])

    def has_permission(self, code: str) -> bool:
        # No token, no access, whatever the cached profile says.
        claims = self._token_claims()
        if not claims:
            return False
        if claims.get("role") == ROLE_ADMIN:
            return True
        return code in (claims.get("permissions") or [])
