"""
Root test configuration and fixtures.

Every test gets a fresh in-memory SQLite database with the module catalog
seeded from module_catalog.yml. Factories build organizations (through the
same service the super-admin API uses), roles with permission matrices and
users; token helpers issue real HS256 access tokens.
"""

import os
from typing import Dict, Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment
os.environ.setdefault("ENV", "test")

from hr_admin.auth import passwords
from hr_admin.auth.token_service import issue_access_token
from hr_admin.config.settings import reset_settings
from hr_admin.constants.modules import ALL_ACTIONS
from hr_admin.database.session import get_db_session
from hr_admin.db_base import Base
from hr_admin.models.organization import Organization
from hr_admin.models.plan import SubscriptionPlan
from hr_admin.models.role import Role, RolePermission
from hr_admin.models.user import User
from hr_admin.platform.tenant_context import IMPERSONATION_HEADER
from hr_admin.seed import seed_default_plan, seed_module_catalog
from hr_admin.services.organization_service import OrganizationService
from hr_admin.services.permission_cache import reset_permission_cache
from hr_admin.services.plan_service import PlanService

TEST_PASSWORD = "Password123"


@pytest.fixture(scope="session", autouse=True)
def _httpx_app_kwarg_patch():
    """
    Compatibility patch for httpx>=0.28 where Client(app=...) is not supported.

    Starlette's TestClient (used by FastAPI) passes app= into httpx.Client.
    This patch removes the app kwarg to avoid TypeError in environments
    with newer httpx while remaining safe for older versions.
    """
    import httpx

    original_init = httpx.Client.__init__

    def patched_init(self, *args, **kwargs):
        kwargs.pop("app", None)
        return original_init(self, *args, **kwargs)

    httpx.Client.__init__ = patched_init
    try:
        yield
    finally:
        httpx.Client.__init__ = original_init


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Fresh settings and permission cache per test; cheap bcrypt."""
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("MAX_FAILED_LOGIN_ATTEMPTS", "3")
    monkeypatch.setenv("ACCOUNT_LOCK_MINUTES", "15")
    monkeypatch.setattr(passwords, "DEFAULT_BCRYPT_ROUNDS", 4)
    reset_settings()
    reset_permission_cache()
    yield
    reset_settings()
    reset_permission_cache()


@pytest.fixture(scope="function")
def db_engine():
    """SQLite in-memory engine with every table created."""
    import hr_admin.models  # noqa: F401

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Session bound to the per-test database; the module catalog is seeded."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    seed_module_catalog(session)
    session.commit()
    yield session
    session.close()


@pytest.fixture
def app(db_session):
    """The FastAPI app with get_db_session bound to the test session."""
    from main import app as fastapi_app

    def _override_db():
        try:
            yield db_session
        except Exception:
            db_session.rollback()
            raise

    fastapi_app.dependency_overrides[get_db_session] = _override_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def full_plan(db_session) -> SubscriptionPlan:
    """Plan with every org module (core and add-ons)."""
    plan = seed_default_plan(db_session)
    db_session.commit()
    return plan


@pytest.fixture
def core_plan(db_session) -> SubscriptionPlan:
    """Plan with core modules only."""
    plan = PlanService(db_session).create_plan({"name": "Core", "code": "core"})
    db_session.commit()
    return plan


@pytest.fixture
def make_org(db_session, full_plan):
    """
    Factory creating an organization with its org_admin role and admin user.

    Usage:
        org, admin = make_org("acme")
        org, admin = make_org("beta", plan=core_plan)
    """
    def _make(slug: str = "acme", plan: Optional[SubscriptionPlan] = None, **overrides):
        data = {
            "name": slug.title(),
            "slug": slug,
            "subscription_plan_id": (plan or full_plan).id,
            "admin_email": f"admin@{slug}.test",
            "admin_password": TEST_PASSWORD,
        }
        data.update(overrides)
        org, admin = OrganizationService(db_session).create_organization(data)
        db_session.commit()
        return org, admin
    return _make


@pytest.fixture
def org(make_org) -> Organization:
    return make_org("acme")[0]


@pytest.fixture
def make_role(db_session):
    """
    Factory creating a role with a permission matrix.

    Usage:
        role = make_role(org.id, {"employees": {"read": True}})
        platform_role = make_role(None, {"recruitment": {"delete": True}})
    """
    def _make(organization_id: Optional[str], permissions: Dict[str, Dict[str, bool]], code: str = "custom"):
        role = Role(
            organization_id=organization_id,
            name=code.replace("_", " ").title(),
            code=code,
            is_system=False,
            is_active=True,
        )
        db_session.add(role)
        db_session.flush()
        for module_code, flags in permissions.items():
            rp = RolePermission(role_id=role.id, module_code=module_code)
            rp.set_flags(flags)
            db_session.add(rp)
        db_session.commit()
        return role
    return _make


@pytest.fixture
def make_user(db_session):
    """Factory creating a user; org users default to active with no role."""
    counter = {"n": 0}

    def _make(
        organization: Optional[Organization] = None,
        role: Optional[Role] = None,
        is_super_admin: bool = False,
        is_active: bool = True,
        email: Optional[str] = None,
    ) -> User:
        counter["n"] += 1
        user = User(
            organization_id=organization.id if organization else None,
            role_id=role.id if role else None,
            email=email or f"user{counter['n']}@example.test",
            password_hash=passwords.hash_password(TEST_PASSWORD),
            first_name="Test",
            last_name=f"User{counter['n']}",
            is_super_admin=is_super_admin,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def super_admin(make_user) -> User:
    """Bootstrap super admin: no platform role, full platform access."""
    return make_user(is_super_admin=True, email="root@platform.test")


def full_flags() -> Dict[str, bool]:
    return {action.value: True for action in ALL_ACTIONS}


def auth_headers(user: User, impersonate: Optional[str] = None) -> Dict[str, str]:
    """Bearer headers for a user, optionally in support mode."""
    headers = {"Authorization": f"Bearer {issue_access_token(user)}"}
    if impersonate:
        headers[IMPERSONATION_HEADER] = impersonate
    return headers


@pytest.fixture
def headers_for():
    return auth_headers


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "security: mark test as security-focused")
    config.addinivalue_line("markers", "slow: mark test as slow-running")
