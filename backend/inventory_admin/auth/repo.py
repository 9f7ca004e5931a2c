from sqlalchemy import func, select
from sqlalchemy.orm import Session

from inventory_admin.auth.models import ROLE_ADMIN, ROLE_EMPLOYEE, Permission, User
from inventory_admin.auth.permissions import (
    ALL_PERMISSIONS,
    PERMISSION_DESCRIPTIONS,
    PERMISSION_LABELS,
    validate_grant_set,
)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.execute(
        select(User).where(func.lower(User.email) == normalize_email(email))
    ).scalar_one_or_none()


def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_users(db: Session, user_ids: list[int]) -> list[User]:
    if not user_ids:
        return []
    return list(
        db.execute(select(User).where(User.id.in_(user_ids)).order_by(User.id)).scalars().all()
    )


def list_permissions(db: Session) -> list[Permission]:
    return list(db.execute(select(Permission).order_by(Permission.id)).scalars().all())


def get_permissions_by_codes(db: Session, codes: list[str]) -> list[Permission]:
    if not codes:
        return []
    return list(
        db.execute(select(Permission).where(Permission.code.in_(codes))).scalars().all()
    )


def set_user_active(db: Session, user: User, is_active: bool) -> User:
    user.is_active = is_active
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def replace_user_permissions(db: Session, user: User, permissions: list[Permission]) -> User:
    user.permissions = list(permissions)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def assign_permissions_bulk(db: Session, assignments: dict[int, list[Permission]]) -> int:
    """Set each user's grants in one transaction; keys are user ids."""
    users = get_users(db, list(assignments))
    for user in users:
        user.permissions = list(assignments[user.id])
    db.commit()
    return len(users)


def ensure_permission_catalog(db: Session) -> list[Permission]:
    existing = {p.code: p for p in list_permissions(db)}
    for code in ALL_PERMISSIONS:
        if code not in existing:
            db.add(
                Permission(
                    code=code,
                    name=PERMISSION_LABELS[code],
                    description=PERMISSION_DESCRIPTIONS[code],
                )
            )
    db.commit()
    return list_permissions(db)


def create_user(
    db: Session,
    *,
    email: str,
    password_hash: str,
    name: str,
    role: str = ROLE_EMPLOYEE,
    is_active: bool = True,
    permission_codes: list[str] | None = None,
) -> User:
    user = User(
        email=normalize_email(email),
        password_hash=password_hash,
        name=name,
        role=role,
        is_active=is_active,
    )
    if role != ROLE_ADMIN and permission_codes:
        user.permissions = get_permissions_by_codes(db, validate_grant_set(permission_codes))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
