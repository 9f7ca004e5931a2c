import asyncio
import inspect
import os
import tempfile

# Settings are read at import time; configure the test environment first.
_test_tmp_dir = tempfile.mkdtemp(prefix="inventory_admin_test_")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_test_tmp_dir}/test.db")
os.environ.setdefault("JWT_ACCESS_SECRET", "test-access-secret-0123456789-abcdefghij")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-9876543210-zyxwvutsrq")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from inventory_admin.auth import repo  # noqa: E402
from inventory_admin.auth.models import ROLE_ADMIN, ROLE_EMPLOYEE  # noqa: E402
from inventory_admin.auth.security import hash_password  # noqa: E402
from inventory_admin.db.base import Base  # noqa: E402
from inventory_admin.db.session import SessionLocal, engine  # noqa: E402
import inventory_admin.auth.models  # noqa: F401, E402

TEST_USERS = {
    "admin": {
        "email": "admin@x.com",
        "password": "Admin@123",
        "name": "Test Admin",
        "role": ROLE_ADMIN,
    },
    "employee": {
        "email": "employee@x.com",
        "password": "Employee@123",
        "name": "Test Employee",
        "role": ROLE_EMPLOYEE,
    },
}


@pytest.fixture(autouse=True)
def reset_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog(db):
    return repo.ensure_permission_catalog(db)


def make_user(db, kind: str, *, permission_codes=None, is_active=True, email=None):
    data = TEST_USERS[kind]
    return repo.create_user(
        db,
        email=email or data["email"],
        password_hash=hash_password(data["password"]),
        name=data["name"],
        role=data["role"],
        is_active=is_active,
        permission_codes=permission_codes,
    )


@pytest.fixture
def admin_user(db, catalog):
    return make_user(db, "admin")


@pytest.fixture
def employee_user(db, catalog):
    return make_user(db, "employee", permission_codes=["PRODUCT_VIEW"])


@pytest.fixture
def client():
    from inventory_admin.main import app

    return TestClient(app)


def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
            if name in pyfuncitem.funcargs
        }
        asyncio.run(pyfuncitem.obj(**call_kwargs))
        return True
    return None
