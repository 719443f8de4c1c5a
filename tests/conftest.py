import asyncio
import os
import pathlib
import tempfile
from uuid import uuid4

# configuration is read at import time, so set it before anything imports orderflow
_TMP_DIR = tempfile.mkdtemp(prefix="orderflow-tests-")
os.environ["APP_ENV"] = "development"
os.environ["DB_TYPE"] = "sqlite"
os.environ["SQLITE_PATH"] = os.path.join(_TMP_DIR, "orderflow-test.db")
os.environ["JWT_ACCESS_SECRET_KEY"] = "test-secret-key"
os.environ["SHEET_SYNC_ENABLED"] = "false"
os.environ["SHEET_EXPORT_PATH"] = os.path.join(_TMP_DIR, "orders.xlsx")

import pytest
from fastapi.testclient import TestClient

from orderflow.constants.department import Department
from orderflow.constants.user_role import UserRole
from orderflow.schemas.orders.order_schemas import User


# =====================================================
# PURE FIXTURES
# =====================================================
@pytest.fixture
def make_user():
    def _make(department=Department.SALES, role=UserRole.MEMBER, name=None):
        return User(
            id=uuid4().hex,
            name=name or f"{department.value} User",
            email=f"{department.value.lower()}-{uuid4().hex[:6]}@printshop.in",
            department=department,
            role=role,
        )
    return _make


@pytest.fixture
def sales_user(make_user):
    return make_user(Department.SALES, name="Sonal Sales")


@pytest.fixture
def admin_user(make_user):
    return make_user(Department.ADMIN, UserRole.ADMIN, name="Asha Admin")


# =====================================================
# HTTP FIXTURES
# =====================================================
@pytest.fixture(scope="session")
def client():
    from main import app

    with TestClient(app) as test_client:
        yield test_client


async def _seed_admin() -> str:
    from orderflow.core.db import AsyncSessionLocal
    from orderflow.schemas.users.user_schemas import UserCreateSchema
    from orderflow.services.store.document_store import DocumentStore
    from orderflow.services.users.user_services import create_user

    async with AsyncSessionLocal() as session:
        created = await create_user(
            DocumentStore(session),
            UserCreateSchema(
                name="Asha Admin",
                email=f"admin-{uuid4().hex[:6]}@printshop.in",
                department=Department.ADMIN,
                role=UserRole.ADMIN,
            ),
            admin=None,
        )
    return created.access_token


@pytest.fixture(scope="session")
def admin_headers(client):
    token = asyncio.run(_seed_admin())
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="session")
def headers_for(client, admin_headers):
    """Auth headers for a member of the given department, created once per department."""
    cache = {}

    def _headers(department: Department) -> dict:
        if department not in cache:
            res = client.post(
                "/users",
                json={
                    "name": f"{department.value} Member",
                    "email": f"{department.value.lower()}-{uuid4().hex[:6]}@printshop.in",
                    "department": department.value,
                },
                headers=admin_headers,
            )
            assert res.status_code == 201, res.text
            cache[department] = {
                "Authorization": f"Bearer {res.json()['data']['access_token']}"
            }
        return cache[department]

    return _headers


@pytest.fixture
def create_api_order(client, headers_for):
    def _create(**overrides):
        payload = {
            "client_name": "Mehta Printers",
            "items": ["Visiting cards x500", "Letterheads x200"],
            "amount": "1000",
            "delivery_address": "12 MG Road, Pune",
            "contact_number": "9876543210",
        }
        payload.update(overrides)
        res = client.post("/orders", json=payload, headers=headers_for(Department.SALES))
        assert res.status_code == 201, res.text
        return res.json()["data"]

    return _create


@pytest.fixture
def sheet_dir():
    """Directory the API accepts spreadsheet paths in."""
    from orderflow.core.config import SHEET_DIR

    return pathlib.Path(SHEET_DIR)
