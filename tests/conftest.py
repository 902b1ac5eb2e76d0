import os
import tempfile

# The API is exercised against an in-memory SQLite database
os.environ.setdefault("DATABASE_URI", "sqlite://")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "servicedesk-test-logs"))

import json
import logging
from decimal import Decimal
from typing import AsyncGenerator, Callable, Generator, Optional
from unittest import mock
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.main import app as fastapi_app
from app.api.deps import get_db
from app.core.config import settings
from app.core.permissions import CLIENT_ROLES
from app.db.base import Base
from app.models import Client, HoursBank, User
from app.schemas.enums import UserRoleEnum
from app.schemas.hours_bank import HoursBankCreate
from app.schemas.user import UserCreate
from app.services.hours_bank import hours_bank_service
from app.services.user import user_service

logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] [%(name)s] [%(funcName)s] %(message)s')
logger = logging.getLogger(__name__)

API = settings.API_V1_STR
TEST_PASSWORD = "ServiceDesk123!"


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database per test; StaticPool keeps the single connection alive."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db(engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db_session = TestingSessionLocal()
    try:
        yield db_session
    finally:
        db_session.rollback()
        db_session.close()


@pytest.fixture(autouse=True)
def mock_low_balance_task():
    """Celery is not running in the tests; the route only needs `.delay` to be callable."""
    with mock.patch("app.api.routes.hours_banks.notify_low_hours_balance") as task:
        yield task


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI, db: Session) -> AsyncGenerator[AsyncClient, None]:
    def override_get_db_for_test():
        yield db

    app.dependency_overrides[get_db] = override_get_db_for_test
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.pop(get_db, None)


async def get_auth_token(client: AsyncClient, username: str, password: str = TEST_PASSWORD) -> Optional[str]:
    """Logs in through the OAuth2 password endpoint and returns the access token."""
    login_data = {"username": username, "password": password}
    url = f"{API}/auth/login/access-token"
    try:
        response = await client.post(url, data=login_data)
        response.raise_for_status()
        return response.json().get("access_token")
    except httpx.HTTPStatusError as e:
        try:
            error_detail = e.response.json()
        except json.JSONDecodeError:
            error_detail = e.response.text
        logger.error(f"Login failed for '{username}': status={e.response.status_code}, detail={error_detail}")
        return None


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# ===============================================================
# Data factories
# ===============================================================
@pytest.fixture
def make_client(db: Session) -> Callable[..., Client]:
    def _make(name: Optional[str] = None, **kwargs) -> Client:
        tenant = Client(name=name or f"Client {uuid4().hex[:8]}", is_active=True, **kwargs)
        db.add(tenant)
        db.commit()
        db.refresh(tenant)
        return tenant
    return _make


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    def _make(role: str, client: Optional[Client] = None, username: Optional[str] = None, **kwargs) -> User:
        user_in = UserCreate(
            username=username or f"{role}-{uuid4().hex[:8]}",
            password=TEST_PASSWORD,
            role=UserRoleEnum(role),
            client_id=client.id if client is not None else None,
            **kwargs,
        )
        user = user_service.create(db, obj_in=user_in)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def make_bank(db: Session) -> Callable[..., HoursBank]:
    def _make(client: Client, total_hours: str = "10", **kwargs) -> HoursBank:
        bank = hours_bank_service.create_bank(
            db, obj_in=HoursBankCreate(client_id=client.id, total_hours=Decimal(total_hours), **kwargs)
        )
        db.commit()
        db.refresh(bank)
        return bank
    return _make


@pytest.fixture
def acme(make_client) -> Client:
    return make_client("Acme Corp")


@pytest.fixture
def globex(make_client) -> Client:
    return make_client("Globex Inc")


@pytest.fixture
def login_as(client: AsyncClient, make_user):
    """Creates a user with the given role and returns (user, headers)."""
    async def _login(role: str, tenant: Optional[Client] = None, **kwargs):
        if role in CLIENT_ROLES and tenant is None:
            raise ValueError(f"Role '{role}' needs a client")
        user = make_user(role, client=tenant, **kwargs)
        token = await get_auth_token(client, user.username)
        assert token, f"could not log in as {user.username}"
        return user, auth_headers(token)
    return _login


@pytest_asyncio.fixture
async def admin_headers(login_as) -> dict:
    _, headers = await login_as("org-admin")
    return headers
