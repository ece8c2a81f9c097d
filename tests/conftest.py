"""Shared test fixtures."""

import os

os.environ.setdefault("JOBDOCK_LOCAL_MODE", "1")
os.environ.setdefault("JOBDOCK_RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("JOBDOCK_SWEEP_ENABLED", "0")

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from jobdock.config import settings
from jobdock.db.base import Base
import jobdock.db.models  # noqa: F401
from jobdock.db.models.crm import ContactRow, InvoiceRow, QuoteRow, ServiceRow
from jobdock.db.models.tenant import TenantRow
from jobdock.db.models.user import UserRow
from jobdock.models.actor import Actor
from jobdock.services.scheduling.lifecycle import JobLifecycleManager
from jobdock.storage.blobs import LocalBlobStore

TEAM = "ten_team"
SOLO = "ten_solo"
OTHER = "ten_other"

_USERS = [
    # user_id, tenant_id, role, can_create_jobs, can_schedule_appointments, can_see_other_jobs
    ("usr_owner", TEAM, "owner", None, None, None),
    ("usr_admin", TEAM, "admin", None, None, None),
    ("usr_emp", TEAM, "employee", False, False, None),
    ("usr_creator", TEAM, "employee", True, False, None),
    ("usr_sched", TEAM, "employee", True, True, None),
    ("usr_viewer", TEAM, "employee", False, False, True),
    ("usr_new", TEAM, "employee", None, None, None),
    ("usr_solo", SOLO, "owner", None, None, None),
    ("usr_other", OTHER, "owner", None, None, None),
]


class RecordingNotifier:
    """Collects sent events instead of delivering them."""

    def __init__(self, fail: bool = False):
        self.events = []
        self.fail = fail

    async def send(self, event) -> None:
        if self.fail:
            raise RuntimeError("mail service down")
        self.events.append(event)

    def of_type(self, event_type):
        return [e for e in self.events if e.event_type == event_type]


def at(day: int, hour: int, minute: int = 0, month: int = 3, year: int = 2030) -> datetime:
    """UTC instant in March 2030 by default; 2030-03-04 is a Monday."""
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def make_token(user_id: str, tenant_id: str, **overrides) -> str:
    claims = {
        "sub": user_id,
        "tenant_id": tenant_id,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        "type": "access",
    }
    claims.update(overrides)
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


@pytest.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'jobdock_test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def seed(session_factory):
    """Three tenants with users, contacts and CRM records."""
    async with session_factory() as session:
        session.add_all([
            TenantRow(tenant_id=TEAM, name="Team Gutters", subscription_tier="team"),
            TenantRow(tenant_id=SOLO, name="Solo Painting", subscription_tier="single"),
            TenantRow(tenant_id=OTHER, name="Other Co", subscription_tier="team"),
        ])
        await session.flush()
        for user_id, tenant_id, role, create, schedule, see_other in _USERS:
            session.add(UserRow(
                user_id=user_id,
                tenant_id=tenant_id,
                email=f"{user_id}@example.com",
                name=user_id.removeprefix("usr_").title(),
                role=role,
                can_create_jobs=create,
                can_schedule_appointments=schedule,
                can_see_other_jobs=see_other,
            ))
        session.add_all([
            ContactRow(contact_id="con_ada", tenant_id=TEAM, first_name="Ada", last_name="Lovelace",
                       email="ada@example.com"),
            ContactRow(contact_id="con_bob", tenant_id=TEAM, first_name="Bob", last_name="Builder"),
            ContactRow(contact_id="con_solo", tenant_id=SOLO, first_name="Sol", last_name="Client"),
            ContactRow(contact_id="con_other", tenant_id=OTHER, first_name="Otto", last_name="Other"),
            ServiceRow(service_id="svc_gutter", tenant_id=TEAM, name="Gutter cleaning", duration_minutes=60),
            QuoteRow(quote_id="quo_1", tenant_id=TEAM, quote_number="Q-0001", status="accepted", total=250.0),
            InvoiceRow(invoice_id="inv_1", tenant_id=TEAM, invoice_number="INV-0001", status="paid", total=250.0),
        ])
        await session.commit()
    return SimpleNamespace(team=TEAM, solo=SOLO, other=OTHER)


@pytest.fixture
async def actors(seed, session_factory):
    """Actors for every seeded user, resolved the same way the API resolves them."""
    async with session_factory() as session:
        found = {}
        for user_id, tenant_id, *_ in _USERS:
            user = await session.get(UserRow, user_id)
            tenant = await session.get(TenantRow, tenant_id)
            found[user_id.removeprefix("usr_")] = Actor.from_rows(user, tenant)
    return SimpleNamespace(**found)


@pytest.fixture
async def db_session(seed, session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture
def manager(db_session, notifier, blob_store):
    return JobLifecycleManager(db_session, notifier=notifier, blob_store=blob_store)


@pytest.fixture
def app(db_engine, session_factory, seed, notifier, blob_store):
    from jobdock.api.middleware.rate_limit import limiter
    from jobdock.main import create_app

    limiter.enabled = False
    _app = create_app()
    # lifespan does not run under ASGITransport
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = session_factory
    _app.state.redis = None
    _app.state.blob_store = blob_store
    _app.state.notifier = notifier
    return _app


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers():
    def _headers(user_id: str = "usr_owner", tenant_id: str = TEAM) -> dict:
        return {"Authorization": f"Bearer {make_token(user_id, tenant_id)}"}

    return _headers
