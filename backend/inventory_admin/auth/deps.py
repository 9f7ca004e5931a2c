from dataclasses import dataclass, field

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from inventory_admin.auth.models import ROLE_ADMIN
from inventory_admin.auth.permissions import has_permission
from inventory_admin.auth.tokens import TokenExpired, TokenError, decode_access_token
from inventory_admin.core.errors import (
    ForbiddenError,
    InsufficientPermissionsError,
    InvalidTokenError,
    TokenExpiredError,
    UnauthorizedError,
)

bearer = HTTPBearer(auto_error=False)


@dataclass
class Principal:
    id: int
    email: str
    name: str
    role: str
    permissions: list[str] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def get_current_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> Principal:
    # Identity and permissions come from the token; no database lookup.
    if not creds:
        raise UnauthorizedError("Not authenticated")

    try:
        claims = decode_access_token(creds.credentials)
    except TokenExpired:
        raise TokenExpiredError()
    except TokenError:
        raise InvalidTokenError()

    return Principal(
        id=claims.user_id,
        email=claims.email,
        name=claims.name,
        role=claims.role,
        permissions=claims.permissions,
    )


def require_permission(code: str):
    def _dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not has_permission(principal.role, principal.permissions, code):
            raise InsufficientPermissionsError(code)
        return principal

    return _dep


def require_admin():
    def _dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.is_admin:
            raise ForbiddenError("Only administrators can access this resource")
        return principal

    return _dep
