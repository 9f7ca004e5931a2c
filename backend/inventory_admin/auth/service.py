"""
Authentication orchestration: login, logout, refresh and me.

The service is transport-agnostic. It hands the refresh-token plaintext back
to the caller (the router turns it into a cookie) and reports every rejection
as an ``UnauthorizedError``.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_admin.auth import repo
from inventory_admin.auth.ledger import RefreshTokenLedger
from inventory_admin.auth.models import User
from inventory_admin.auth.permissions import resolve_permissions
from inventory_admin.auth.security import hash_refresh_token, refresh_token_matches, verify_password
from inventory_admin.auth.tokens import (
    TokenExpired,
    TokenError,
    decode_refresh_token,
    issue_access_token,
    issue_refresh_token,
)
from inventory_admin.core.config import settings
from inventory_admin.core.durations import expiry_from_now
from inventory_admin.core.errors import InvalidCredentialsError, UnauthorizedError

logger = logging.getLogger(__name__)

INVALID_REFRESH_TOKEN = "Invalid refresh token"


@dataclass
class AuthUser:
    id: int
    email: str
    name: str
    role: str


@dataclass
class RefreshResult:
    user: AuthUser
    permissions: list[str] = field(default_factory=list)
    access_token: str = ""


@dataclass
class LoginResult(RefreshResult):
    refresh_token: str = ""


def _summary(user: User) -> AuthUser:
    return AuthUser(id=user.id, email=user.email, name=user.name, role=user.role)


def _mint_access_token(principal: AuthUser, permissions: list[str]) -> str:
    return issue_access_token(
        user_id=principal.id,
        email=principal.email,
        name=principal.name,
        role=principal.role,
        permissions=permissions,
    )


class AuthService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.ledger = RefreshTokenLedger(db)

    def login(self, email: str, password: str) -> LoginResult:
        user = repo.get_user_by_email(self.db, email)
        if not user:
            logger.warning("Login rejected: unknown email")
            raise InvalidCredentialsError()

        if not user.is_active:
            logger.warning("Login rejected: user_id=%s is suspended", user.id)
            raise InvalidCredentialsError()

        try:
            password_ok = verify_password(password, user.password_hash)
        except ValueError:
            password_ok = False
        if not password_ok:
            logger.warning("Login rejected: bad password for user_id=%s", user.id)
            raise InvalidCredentialsError()

        principal = _summary(user)
        permissions = resolve_permissions(user.role, user.permission_codes)
        access_token = _mint_access_token(principal, permissions)
        refresh_token = issue_refresh_token(user.id)
        self.ledger.create(
            user.id,
            hash_refresh_token(refresh_token),
            expiry_from_now(settings.JWT_REFRESH_EXPIRES),
        )

        logger.info("User logged in: user_id=%s role=%s", user.id, user.role)
        return LoginResult(
            user=principal,
            permissions=permissions,
            access_token=access_token,
            refresh_token=refresh_token,
        )

    def logout(self, refresh_token: str | None) -> dict:
        if refresh_token:
            try:
                claims = decode_refresh_token(refresh_token)
                revoked = self.ledger.revoke_all(claims.user_id)
                logger.info(
                    "User logged out: user_id=%s revoked_tokens=%s", claims.user_id, revoked
                )
            except TokenError as e:
                logger.debug("Logout with unusable refresh token: %s", e)
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception("Logout could not revoke refresh tokens")
        return {"success": True}

    def refresh(self, refresh_token: str | None) -> RefreshResult:
        if not refresh_token:
            raise UnauthorizedError("Refresh token not found")

        try:
            claims = decode_refresh_token(refresh_token)
        except TokenExpired:
            logger.info("Refresh rejected: token expired")
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)
        except TokenError as e:
            logger.warning("Refresh rejected: malformed token (%s)", e)
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        # The ledger, not the JWT exp, decides whether the token is still good.
        stored = self.ledger.find_valid(claims.user_id)
        if not any(refresh_token_matches(refresh_token, row.token_hash) for row in stored):
            logger.warning(
                "Refresh rejected: no live ledger entry for user_id=%s", claims.user_id
            )
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        user = repo.get_user(self.db, claims.user_id)
        if not user:
            logger.warning("Refresh rejected: user_id=%s no longer exists", claims.user_id)
            raise UnauthorizedError("User not found or inactive")
        if not user.is_active:
            logger.warning("Refresh rejected: user_id=%s is suspended", user.id)
            raise UnauthorizedError("User not found or inactive")

        principal = _summary(user)
        permissions = resolve_permissions(user.role, user.permission_codes)
        logger.debug("Access token refreshed for user_id=%s", user.id)
        return RefreshResult(
            user=principal,
            permissions=permissions,
            access_token=_mint_access_token(principal, permissions),
        )

    def me(self, principal: AuthUser, permissions: list[str]) -> RefreshResult:
        # A still-valid access token must not outlive a suspension.
        user = repo.get_user(self.db, principal.id)
        if not user or not user.is_active:
            logger.warning("me rejected: user_id=%s missing or suspended", principal.id)
            raise UnauthorizedError("User not found or inactive")

        permissions = resolve_permissions(principal.role, permissions)
        return RefreshResult(
            user=principal,
            permissions=permissions,
            access_token=_mint_access_token(principal, permissions),
        )
