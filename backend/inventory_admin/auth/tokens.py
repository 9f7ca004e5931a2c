"""
Signed, time-bound tokens.

Two kinds share one codec but never a secret: an access token (short-lived,
carries identity and the resolved permission list) and a refresh token
(long-lived, carries only the user id and is checked against the ledger).
"""

import enum
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from jose import ExpiredSignatureError, JWTError, jwt

from inventory_admin.core.config import settings
from inventory_admin.core.durations import parse_expiry


JWT_ALG = "HS256"


class TokenKind(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenExpired(TokenError):
    pass


class TokenMalformed(TokenError):
    pass


_SECRETS = {
    TokenKind.ACCESS: settings.JWT_ACCESS_SECRET,
    TokenKind.REFRESH: settings.JWT_REFRESH_SECRET,
}

_TTLS = {
    TokenKind.ACCESS: settings.JWT_ACCESS_EXPIRES,
    TokenKind.REFRESH: settings.JWT_REFRESH_EXPIRES,
}


def default_ttl(kind: TokenKind) -> timedelta:
    return parse_expiry(_TTLS[kind])


@dataclass
class AccessClaims:
    user_id: int
    email: str
    name: str
    role: str
    permissions: List[str] = field(default_factory=list)
    exp: datetime | None = None


@dataclass
class RefreshClaims:
    user_id: int
    jti: str
    exp: datetime | None = None


def issue(kind: TokenKind, payload: Dict[str, Any], ttl: timedelta | None = None) -> str:
    now = datetime.now(timezone.utc)
    to_encode = dict(payload)
    to_encode["typ"] = kind.value
    to_encode["iat"] = now
    to_encode["exp"] = now + (ttl if ttl is not None else default_ttl(kind))
    return jwt.encode(to_encode, _SECRETS[kind], algorithm=JWT_ALG)


def verify(kind: TokenKind, token: str) -> Dict[str, Any]:
    """Decode ``token`` with the secret of ``kind``.

    Raises TokenExpired once ``exp`` has passed, TokenMalformed for a bad
    signature, a garbage string or a token of the other kind.
    """
    if not token:
        raise TokenMalformed("empty token")
    try:
        claims = jwt.decode(token, _SECRETS[kind], algorithms=[JWT_ALG])
    except ExpiredSignatureError as e:
        raise TokenExpired(str(e)) from e
    except JWTError as e:
        raise TokenMalformed(str(e)) from e

    if claims.get("typ") != kind.value:
        raise TokenMalformed("unexpected token type")
    if not claims.get("sub"):
        raise TokenMalformed("missing subject")
    return claims


def _exp(claims: Dict[str, Any]) -> datetime | None:
    exp = claims.get("exp")
    return datetime.fromtimestamp(exp, tz=timezone.utc) if exp is not None else None


def issue_access_token(
    *,
    user_id: int,
    email: str,
    name: str,
    role: str,
    permissions: List[str],
    ttl: timedelta | None = None,
) -> str:
    return issue(
        TokenKind.ACCESS,
        {
            "sub": str(user_id),
            "email": email,
            "name": name,
            "role": role,
            "permissions": list(permissions),
        },
        ttl,
    )


def issue_refresh_token(user_id: int, ttl: timedelta | None = None) -> str:
    # jti keeps two tokens minted in the same second distinct.
    return issue(
        TokenKind.REFRESH,
        {"sub": str(user_id), "jti": secrets.token_urlsafe(16)},
        ttl,
    )


def decode_access_token(token: str) -> AccessClaims:
    claims = verify(TokenKind.ACCESS, token)
    try:
        return AccessClaims(
            user_id=int(claims["sub"]),
            email=claims["email"],
            name=claims["name"],
            role=claims["role"],
            permissions=list(claims.get("permissions") or []),
            exp=_exp(claims),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise TokenMalformed(f"invalid access token payload: {e}") from e


def decode_refresh_token(token: str) -> RefreshClaims:
    claims = verify(TokenKind.REFRESH, token)
    try:
        return RefreshClaims(
            user_id=int(claims["sub"]),
            jti=claims.get("jti", ""),
            exp=_exp(claims),
        )
    except (TypeError, ValueError) as e:
        raise TokenMalformed(f"invalid refresh token payload: {e}") from e


def read_unverified_claims(token: str) -> Dict[str, Any] | None:
    """Peek at a token payload without checking the signature.

    Client-side inspection only (expiry scheduling, display); never an
    authorization input.
    """
    try:
        return jwt.get_unverified_claims(token)
    except JWTError:
        return None


__all__ = [
    "AccessClaims",
    "RefreshClaims",
    "TokenError",
    "TokenExpired",
    "TokenKind",
    "TokenMalformed",
    "issue",
    "issue_access_token",
    "issue_refresh_token",
    "read_unverified_claims",
    "verify",
    "decode_access_token",
    "decode_refresh_token",
]
