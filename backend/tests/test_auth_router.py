from datetime import timedelta

from conftest import TEST_USERS
from inventory_admin.auth import repo
from inventory_admin.auth.permissions import ALL_PERMISSIONS
from inventory_admin.auth.tokens import decode_access_token, issue_access_token

AUTH = "/api/v1/auth"


def _login(client, kind="employee"):
    creds = TEST_USERS[kind]
    return client.post(
        f"{AUTH}/login", json={"email": creds["email"], "password": creds["password"]}
    )


def test_login_returns_profile_and_sets_refresh_cookie(client, employee_user):
    response = _login(client)

    assert response.status_code == 200
    body = response.json()
    assert body["user"] == {
        "id": employee_user.id,
        "email": "employee@x.com",
        "name": "Test Employee",
        "role": "EMPLOYEE",
    }
    assert body["permissions"] == ["PRODUCT_VIEW"]
    assert decode_access_token(body["accessToken"]).user_id == employee_user.id

    cookie = response.headers["set-cookie"]
    assert cookie.startswith("refresh_token=")
    lowered = cookie.lower()
    assert "httponly" in lowered
    assert "path=/" in lowered
    assert "samesite=lax" in lowered
    assert "max-age=604800" in lowered
    # not production
    assert "secure" not in lowered
    assert body["accessToken"] not in cookie


def test_login_failure_uses_error_envelope(client, employee_user):
    wrong = client.post(
        f"{AUTH}/login", json={"email": "employee@x.com", "password": "nope-nope"}
    )
    unknown = client.post(
        f"{AUTH}/login", json={"email": "ghost@x.com", "password": "nope-nope"}
    )

    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json() == {
        "success": False,
        "error": {"code": "INVALID_CREDENTIALS", "message": "Invalid email or password"},
    }
    assert "set-cookie" not in wrong.headers


def test_refresh_uses_cookie(client, admin_user):
    assert _login(client, "admin").status_code == 200

    response = client.post(f"{AUTH}/refresh")

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["role"] == "ADMIN"
    assert body["permissions"] == list(ALL_PERMISSIONS)
    # no rotation
    assert "set-cookie" not in response.headers


def test_refresh_without_cookie_is_401(client):
    response = client.post(f"{AUTH}/refresh")
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Refresh token not found"


def test_logout_clears_cookie_and_revokes(client, employee_user):
    _login(client)
    stolen = client.cookies.get("refresh_token")
    assert stolen

    response = client.post(f"{AUTH}/logout")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert 'refresh_token=""' in response.headers["set-cookie"]
    assert client.cookies.get("refresh_token") is None

    client.cookies.set("refresh_token", stolen)
    replay = client.post(f"{AUTH}/refresh")
    assert replay.status_code == 401
    assert replay.json()["error"]["message"] == "Invalid refresh token"


def test_logout_without_cookie_still_succeeds(client):
    response = client.post(f"{AUTH}/logout")
    assert response.status_code == 200
    assert response.json() == {"success": True}


def test_me_requires_bearer(client):
    response = client.get(f"{AUTH}/me")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_me_remints_from_token(client, employee_user):
    token = _login(client).json()["accessToken"]

    response = client.get(f"{AUTH}/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["email"] == "employee@x.com"
    assert body["permissions"] == ["PRODUCT_VIEW"]
    assert decode_access_token(body["accessToken"]).permissions == ["PRODUCT_VIEW"]


def test_me_with_expired_token(client):
    token = issue_access_token(
        user_id=1,
        email="employee@x.com",
        name="Test Employee",
        role="EMPLOYEE",
        permissions=[],
        ttl=timedelta(seconds=-5),
    )
    response = client.get(f"{AUTH}/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "TOKEN_EXPIRED"


def test_me_with_garbage_token(client):
    response = client.get(f"{AUTH}/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_TOKEN"


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "req-123"


def test_me_rejected_after_suspension(client, db, employee_user):
    token = _login(client).json()["accessToken"]
    repo.set_user_active(db, employee_user, False)

    response = client.get(f"{AUTH}/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "User not found or inactive"
