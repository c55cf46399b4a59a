import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

# --- DB setup for tests: one in-memory database per test ---
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from thermogestion import models  # noqa: F401  (tables must be known to Base)
from thermogestion.auth.jwt import create_access_token
from thermogestion.core.rate_limit import limiter
from thermogestion.db import Base, get_db
from thermogestion.main import app
from thermogestion.services.tenant_service import TenantService

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    limiter.enabled = False
    # no context manager: startup hooks would create tables on the real engine
    yield TestClient(app)
    app.dependency_overrides.clear()
    limiter.enabled = True


def _register(db, company: str, email: str):
    user = TenantService(db).register(company_name=company, email=email, password="secret-password")
    token = create_access_token(user_id=user.id, tenant_id=user.tenant_id, email=user.email, role=user.role)
    return user, {"Authorization": f"Bearer {token}"}


@pytest.fixture
def owner(db):
    return _register(db, "Atelier Durand", "owner@atelier-durand.fr")


@pytest.fixture
def tenant_id(owner):
    return owner[0].tenant_id


@pytest.fixture
def auth_headers(owner):
    return owner[1]


@pytest.fixture
def other_auth_headers(db):
    return _register(db, "Thermo Concurrent", "owner@concurrent.fr")[1]
