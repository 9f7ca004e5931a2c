import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from inventory_admin.admin.schemas import (
    BulkGrantsRequest,
    BulkGrantsResponse,
    GrantsUpdateRequest,
    PermissionOut,
    PermissionsListResponse,
    UserAccessOut,
    UserStatusRequest,
)
from inventory_admin.auth import repo
from inventory_admin.auth.deps import Principal, require_admin
from inventory_admin.auth.ledger import RefreshTokenLedger
from inventory_admin.auth.models import ROLE_ADMIN, User
from inventory_admin.auth.permissions import (
    check_known_codes,
    resolve_permissions,
    validate_grant_set,
)
from inventory_admin.core.errors import ForbiddenError, NotFoundError, ValidationError
from inventory_admin.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_access_out(user: User, revoked_tokens: int = 0) -> UserAccessOut:
    return UserAccessOut(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        is_active=user.is_active,
        permissions=resolve_permissions(user.role, user.permission_codes),
        revoked_tokens=revoked_tokens,
    )


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = repo.get_user(db, user_id)
    if not user:
        raise NotFoundError("User")
    return user


@router.get("/permissions", response_model=PermissionsListResponse)
def list_permissions(
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin()),
):
    rows = repo.list_permissions(db)
    return PermissionsListResponse(
        items=[
            PermissionOut(id=p.id, code=p.code, name=p.name, description=p.description)
            for p in rows
        ]
    )


@router.put("/users/{user_id}/permissions", response_model=UserAccessOut)
def replace_permissions(
    user_id: int,
    payload: GrantsUpdateRequest,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin()),
):
    user = _get_user_or_404(db, user_id)
    if user.role == ROLE_ADMIN:
        raise ForbiddenError("Cannot modify admin permissions")

    codes = validate_grant_set(payload.codes)
    permissions = repo.get_permissions_by_codes(db, codes)
    missing = sorted(set(codes) - {p.code for p in permissions})
    if missing:
        raise ValidationError("Permissions not provisioned", details={"codes": missing})

    user = repo.replace_user_permissions(db, user, permissions)
    logger.info(
        "Grants replaced: user_id=%s codes=%s by admin_id=%s", user.id, codes, admin.id
    )
    return _to_access_out(user)


@router.post("/users/permissions/bulk", response_model=BulkGrantsResponse)
def bulk_assign_permissions(
    payload: BulkGrantsRequest,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin()),
):
    requested = check_known_codes(payload.codes)
    catalog = {p.code: p for p in repo.list_permissions(db)}
    unprovisioned = [c for c in requested if c not in catalog]
    if unprovisioned:
        raise ValidationError("Permissions not provisioned", details={"codes": unprovisioned})

    user_ids = list(dict.fromkeys(payload.user_ids))
    users = repo.get_users(db, user_ids)
    missing = sorted(set(user_ids) - {u.id for u in users})
    if missing:
        logger.warning("Bulk grant rejected: unknown user_ids=%s", missing)
        raise NotFoundError("User")

    # Validate every resulting set before writing any of them.
    assignments = {}
    skipped = []
    for user in users:
        if user.role == ROLE_ADMIN:
            skipped.append(user.id)
            continue
        codes = requested if payload.replace_existing else user.permission_codes + requested
        try:
            codes = validate_grant_set(codes)
        except ValidationError as e:
            raise ValidationError(e.message, details={"user_id": user.id, **(e.details or {})}) from e
        assignments[user.id] = [catalog[c] for c in codes]

    affected = repo.assign_permissions_bulk(db, assignments)
    logger.info(
        "Bulk grants: users=%s codes=%s replace=%s skipped_admins=%s by admin_id=%s",
        affected,
        requested,
        payload.replace_existing,
        skipped,
        admin.id,
    )
    return BulkGrantsResponse(affected_users=affected, skipped_admin_ids=skipped)


@router.patch("/users/{user_id}/status", response_model=UserAccessOut)
def set_status(
    user_id: int,
    payload: UserStatusRequest,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin()),
):
    user = _get_user_or_404(db, user_id)
    if user.id == admin.id and not payload.is_active:
        raise ValidationError("You cannot suspend your own account")

    user = repo.set_user_active(db, user, payload.is_active)
    revoked = 0
    if not user.is_active:
        revoked = RefreshTokenLedger(db).revoke_all(user.id)
    logger.info(
        "User status changed: user_id=%s is_active=%s revoked_tokens=%s by admin_id=%s",
        user.id,
        user.is_active,
        revoked,
        admin.id,
    )
    return _to_access_out(user, revoked)
