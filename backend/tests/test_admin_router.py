from conftest import TEST_USERS, make_user
from inventory_admin.auth import repo
from inventory_admin.auth.ledger import RefreshTokenLedger

ADMIN = "/api/v1/admin"


def _bearer(client, kind):
    creds = TEST_USERS[kind]
    response = client.post(
        "/api/v1/auth/login", json={"email": creds["email"], "password": creds["password"]}
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['accessToken']}"}


def test_permission_catalog_is_listed(client, admin_user):
    response = client.get(f"{ADMIN}/permissions", headers=_bearer(client, "admin"))

    assert response.status_code == 200
    assert [p["code"] for p in response.json()["items"]] == [
        "PRODUCT_VIEW",
        "PRODUCT_CREATE",
        "PRODUCT_EDIT",
        "PRODUCT_DELETE",
        "PRODUCT_BULK",
    ]


def test_admin_replaces_employee_grants(client, admin_user, employee_user):
    response = client.put(
        f"{ADMIN}/users/{employee_user.id}/permissions",
        json={"codes": ["PRODUCT_EDIT", "PRODUCT_BULK", "PRODUCT_EDIT"]},
        headers=_bearer(client, "admin"),
    )

    assert response.status_code == 200
    assert response.json()["permissions"] == ["PRODUCT_EDIT", "PRODUCT_BULK"]


def test_bulk_without_prerequisite_is_rejected(client, admin_user, employee_user):
    response = client.put(
        f"{ADMIN}/users/{employee_user.id}/permissions",
        json={"codes": ["PRODUCT_VIEW", "PRODUCT_BULK"]},
        headers=_bearer(client, "admin"),
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_admin_grants_cannot_be_edited(client, admin_user):
    response = client.put(
        f"{ADMIN}/users/{admin_user.id}/permissions",
        json={"codes": []},
        headers=_bearer(client, "admin"),
    )
    assert response.status_code == 403


def test_unknown_user_is_404(client, admin_user):
    response = client.put(
        f"{ADMIN}/users/9999/permissions",
        json={"codes": []},
        headers=_bearer(client, "admin"),
    )
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "User not found"


def test_employee_cannot_edit_grants(client, employee_user):
    response = client.put(
        f"{ADMIN}/users/{employee_user.id}/permissions",
        json={"codes": ["PRODUCT_VIEW"]},
        headers=_bearer(client, "employee"),
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


def test_suspension_revokes_sessions(client, db, admin_user, employee_user):
    employee_id = employee_user.id
    _bearer(client, "employee")
    _bearer(client, "employee")
    admin_headers = _bearer(client, "admin")

    response = client.patch(
        f"{ADMIN}/users/{employee_id}/status",
        json={"is_active": False},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["is_active"] is False
    assert response.json()["revoked_tokens"] == 2
    assert RefreshTokenLedger(db).find_valid(employee_id) == []
    assert len(RefreshTokenLedger(db).find_valid(admin_user.id)) == 1


def test_admin_cannot_suspend_self(client, admin_user):
    response = client.patch(
        f"{ADMIN}/users/{admin_user.id}/status",
        json={"is_active": False},
        headers=_bearer(client, "admin"),
    )
    assert response.status_code == 400


def test_permission_catalog_is_admin_only(client, employee_user):
    response = client.get(f"{ADMIN}/permissions", headers=_bearer(client, "employee"))
    assert response.status_code == 403


def _codes(db, user_id):
    db.expire_all()
    return repo.get_user(db, user_id).permission_codes


def test_bulk_merge_adds_to_existing_grants(client, db, admin_user, employee_user):
    other = make_user(db, "employee", email="second@x.com", permission_codes=["PRODUCT_DELETE"])
    employee_id, other_id, admin_id = employee_user.id, other.id, admin_user.id

    response = client.post(
        f"{ADMIN}/users/permissions/bulk",
        json={"user_ids": [employee_id, other_id, admin_id], "codes": ["PRODUCT_EDIT"]},
        headers=_bearer(client, "admin"),
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "affected_users": 2, "skipped_admin_ids": [admin_id]}
    assert _codes(db, employee_id) == ["PRODUCT_VIEW", "PRODUCT_EDIT"]
    assert _codes(db, other_id) == ["PRODUCT_EDIT", "PRODUCT_DELETE"]


def test_bulk_replace_overwrites_grants(client, db, admin_user, employee_user):
    employee_id = employee_user.id

    response = client.post(
        f"{ADMIN}/users/permissions/bulk",
        json={
            "user_ids": [employee_id],
            "codes": ["PRODUCT_DELETE", "PRODUCT_BULK"],
            "replace_existing": True,
        },
        headers=_bearer(client, "admin"),
    )

    assert response.status_code == 200
    assert _codes(db, employee_id) == ["PRODUCT_DELETE", "PRODUCT_BULK"]


def test_bulk_merge_can_rely_on_existing_prerequisite(client, db, admin_user, catalog):
    editor = make_user(db, "employee", email="editor@x.com", permission_codes=["PRODUCT_EDIT"])
    editor_id = editor.id

    response = client.post(
        f"{ADMIN}/users/permissions/bulk",
        json={"user_ids": [editor_id], "codes": ["PRODUCT_BULK"]},
        headers=_bearer(client, "admin"),
    )

    assert response.status_code == 200
    assert _codes(db, editor_id) == ["PRODUCT_EDIT", "PRODUCT_BULK"]


def test_bulk_rejects_orphan_bulk_and_writes_nothing(client, db, admin_user, employee_user):
    editor = make_user(db, "employee", email="editor@x.com", permission_codes=["PRODUCT_EDIT"])
    editor_id, employee_id = editor.id, employee_user.id

    response = client.post(
        f"{ADMIN}/users/permissions/bulk",
        json={"user_ids": [editor_id, employee_id], "codes": ["PRODUCT_BULK"]},
        headers=_bearer(client, "admin"),
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"]["user_id"] == employee_id
    # the valid target is not half-applied
    assert _codes(db, editor_id) == ["PRODUCT_EDIT"]
    assert _codes(db, employee_id) == ["PRODUCT_VIEW"]


def test_bulk_rejects_unknown_users_and_codes(client, admin_user, employee_user):
    headers = _bearer(client, "admin")

    unknown_user = client.post(
        f"{ADMIN}/users/permissions/bulk",
        json={"user_ids": [employee_user.id, 9999], "codes": ["PRODUCT_VIEW"]},
        headers=headers,
    )
    unknown_code = client.post(
        f"{ADMIN}/users/permissions/bulk",
        json={"user_ids": [employee_user.id], "codes": ["PRODUCT_FLY"]},
        headers=headers,
    )

    assert unknown_user.status_code == 404
    assert unknown_code.status_code == 400


def test_bulk_requires_admin(client, employee_user):
    response = client.post(
        f"{ADMIN}/users/permissions/bulk",
        json={"user_ids": [employee_user.id], "codes": ["PRODUCT_VIEW"]},
        headers=_bearer(client, "employee"),
    )
    assert response.status_code == 403
