from fastapi import APIRouter, Cookie, Depends, Response
from sqlalchemy.orm import Session

from inventory_admin.auth.deps import Principal, get_current_principal
from inventory_admin.auth.schemas import AuthResponse, LoginRequest, LogoutResponse
from inventory_admin.auth.service import AuthService, AuthUser, RefreshResult
from inventory_admin.core.config import settings
from inventory_admin.core.durations import parse_expiry
from inventory_admin.db.session import get_db

router = APIRouter()

REFRESH_COOKIE = settings.REFRESH_COOKIE_NAME


def _set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=token,
        max_age=int(parse_expiry(settings.JWT_REFRESH_EXPIRES).total_seconds()),
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


def _to_response(result: RefreshResult) -> AuthResponse:
    return AuthResponse(
        user={
            "id": result.user.id,
            "email": result.user.email,
            "name": result.user.name,
            "role": result.user.role,
        },
        permissions=result.permissions,
        access_token=result.access_token,
    )


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)):
    result = AuthService(db).login(str(payload.email), payload.password)
    _set_refresh_cookie(response, result.refresh_token)
    return _to_response(result)


@router.post("/logout", response_model=LogoutResponse)
def logout(
    response: Response,
    db: Session = Depends(get_db),
    refresh_token: str | None = Cookie(default=None, alias=REFRESH_COOKIE),
):
    result = AuthService(db).logout(refresh_token)
    response.delete_cookie(REFRESH_COOKIE, path="/")
    return result


@router.post("/refresh", response_model=AuthResponse)
def refresh(
    db: Session = Depends(get_db),
    refresh_token: str | None = Cookie(default=None, alias=REFRESH_COOKIE),
):
    return _to_response(AuthService(db).refresh(refresh_token))


@router.get("/me", response_model=AuthResponse)
def me(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    user = AuthUser(
        id=principal.id,
        email=principal.email,
        name=principal.name,
        role=principal.role,
    )
    return _to_response(AuthService(db).me(user, principal.permissions))
