"""
Permission catalog and resolution.

ADMIN principals implicitly hold every permission; EMPLOYEE principals hold
exactly their grants. ``resolve_permissions`` is the only place that expands
the admin set, and its output is what goes into the access token.
"""

from typing import Iterable

from inventory_admin.auth.models import ROLE_ADMIN
from inventory_admin.core.errors import ValidationError

PRODUCT_VIEW = "PRODUCT_VIEW"
PRODUCT_CREATE = "PRODUCT_CREATE"
PRODUCT_EDIT = "PRODUCT_EDIT"
PRODUCT_DELETE = "PRODUCT_DELETE"
PRODUCT_BULK = "PRODUCT_BULK"

ALL_PERMISSIONS: tuple[str, ...] = (
    PRODUCT_VIEW,
    PRODUCT_CREATE,
    PRODUCT_EDIT,
    PRODUCT_DELETE,
    PRODUCT_BULK,
)

PERMISSION_LABELS: dict[str, str] = {
    PRODUCT_VIEW: "View Products",
    PRODUCT_CREATE: "Create Products",
    PRODUCT_EDIT: "Edit Products",
    PRODUCT_DELETE: "Delete Products",
    PRODUCT_BULK: "Bulk Actions",
}

PERMISSION_DESCRIPTIONS: dict[str, str] = {
    PRODUCT_VIEW: "Can view product list and details",
    PRODUCT_CREATE: "Can add new products",
    PRODUCT_EDIT: "Can modify existing products",
    PRODUCT_DELETE: "Can remove products",
    PRODUCT_BULK: "Can perform bulk delete and status updates",
}

# BULK is only meaningful alongside one of these.
BULK_PREREQUISITES = frozenset({PRODUCT_EDIT, PRODUCT_DELETE})


def _dedupe(codes: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(codes))


def resolve_permissions(role: str, granted_codes: Iterable[str] = ()) -> list[str]:
    if role == ROLE_ADMIN:
        return list(ALL_PERMISSIONS)
    return _dedupe(granted_codes)


def has_permission(role: str, permissions: Iterable[str], code: str) -> bool:
    if role == ROLE_ADMIN:
        return True
    return code in set(permissions)


def bulk_dependency_satisfied(codes: Iterable[str]) -> bool:
    codes = set(codes)
    return PRODUCT_BULK not in codes or bool(codes & BULK_PREREQUISITES)


def check_known_codes(codes: Iterable[str]) -> list[str]:
    codes = _dedupe(codes)
    unknown = [c for c in codes if c not in ALL_PERMISSIONS]
    if unknown:
        raise ValidationError("Unknown permission codes", details={"codes": unknown})
    return codes


def validate_grant_set(codes: Iterable[str]) -> list[str]:
    """Check a grant set before it is stored and return it deduplicated."""
    codes = check_known_codes(codes)
    if not bulk_dependency_satisfied(codes):
        raise ValidationError(
            f"{PRODUCT_BULK} requires {PRODUCT_EDIT} or {PRODUCT_DELETE}",
            details={"codes": codes},
        )
    return codes


def toggle_grant(codes: Iterable[str], code: str) -> tuple[set[str], bool]:
    """Flip ``code`` in a draft grant set.

    Unchecking the last of EDIT/DELETE drops BULK as well; the second
    element of the result tells the caller that happened.
    """
    current = set(codes)
    if code in current:
        current.discard(code)
    else:
        current.add(code)

    bulk_removed = False
    if code in BULK_PREREQUISITES and code not in current:
        if not current & BULK_PREREQUISITES and PRODUCT_BULK in current:
            current.discard(PRODUCT_BULK)
            bulk_removed = True
    return current, bulk_removed
