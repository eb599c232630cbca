from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

import pytest
import redis
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from callbook import rate_limiter, webhook_security
from callbook.cache import TTLCache
from callbook.database import Base, get_db
from callbook.enums import TenantStatus, Weekday
from callbook.main import app
from callbook.models import (
    BusinessHours,
    PhoneVerification,
    Service,
    ServiceOption,
    ServiceSubOption,
    Tenant,
)
from callbook.security_utils import encrypt_credential, hash_api_key
from callbook.services.ivr_audio import AudioJobRunner
from callbook.services.twilio_credentials import TwilioCredentialStore
from callbook.shared.clock import get_clock

# A Monday well after the frozen "now"
MONDAY = date(2026, 11, 2)
SATURDAY = date(2026, 11, 7)
SUNDAY = date(2026, 11, 8)
NOW = datetime(2026, 10, 19, 12, 0, 0)

STAFF_KEY = "sk_test_acme"
TENANT_NUMBER = "+15550001111"
CUSTOMER_PHONE = "+15551234567"


class FrozenClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeGateway:
    """Records outbound messages instead of calling Twilio"""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.error: Exception | None = None

    async def send_message(self, credentials, to, from_, body, status_callback=None) -> str:
        if self.error is not None:
            raise self.error
        sid = f"SM{len(self.sent) + 1:032d}"
        self.sent.append(
            {"sid": sid, "to": to, "from": from_, "body": body, "account": credentials.account_sid}
        )
        return sid


@dataclass
class Catalog:
    tenant: Tenant
    haircut: Service
    carpet: Service
    rooms: ServiceOption
    deep: ServiceOption
    stain_guard: ServiceSubOption
    deodorize: ServiceSubOption
    pet_treatment: ServiceSubOption


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def credential_store() -> TwilioCredentialStore:
    return TwilioCredentialStore(TTLCache(60))


@pytest.fixture
def client(monkeypatch, session_factory, clock, gateway, credential_store):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def no_redis():
        raise redis.ConnectionError("redis disabled in tests")

    monkeypatch.setattr(rate_limiter, "get_redis_client", no_redis)
    monkeypatch.setattr(webhook_security, "TWILIO_VALIDATE_SIGNATURES", False)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    saved_state = {
        name: getattr(app.state, name)
        for name in ("sms_gateway", "credential_store", "audio_runner", "session_factory")
    }
    app.state.sms_gateway = gateway
    app.state.credential_store = credential_store
    app.state.audio_runner = AudioJobRunner()
    app.state.session_factory = session_factory

    yield TestClient(app)

    app.dependency_overrides.clear()
    for name, value in saved_state.items():
        setattr(app.state, name, value)


@pytest.fixture
def staff_headers() -> dict:
    return {"Authorization": f"Bearer {STAFF_KEY}"}


def create_tenant(
    db,
    slug: str = "acme",
    number: str | None = TENANT_NUMBER,
    status: TenantStatus = TenantStatus.ACTIVE,
    api_key: str | None = STAFF_KEY,
    forwarding_number: str | None = None,
) -> Tenant:
    tenant = Tenant(
        slug=slug,
        name=f"{slug.title()} Cleaning",
        status=status.value,
        assigned_phone_number=number,
        forwarding_number=forwarding_number,
        twilio_account_sid=encrypt_credential(f"AC{slug}"),
        twilio_auth_token=encrypt_credential(f"token-{slug}"),
        api_key_hash=hash_api_key(api_key) if api_key else None,
    )
    db.add(tenant)
    db.flush()

    weekly = {
        Weekday.SATURDAY: (True, "09:00", "14:00"),
        Weekday.SUNDAY: (False, "09:00", "17:00"),
    }
    for day in Weekday:
        is_open, open_time, close_time = weekly.get(day, (True, "09:00", "17:00"))
        db.add(
            BusinessHours(
                tenant_id=tenant.id,
                day=day.value,
                is_open=is_open,
                open_time=open_time,
                close_time=close_time,
            )
        )
    db.commit()
    db.refresh(tenant)
    return tenant


def create_catalog(db, tenant: Tenant) -> Catalog:
    haircut = Service(tenant_id=tenant.id, name="Haircut", duration=30, price=40.0, sort_order=0)
    carpet = Service(tenant_id=tenant.id, name="Carpet Cleaning", duration=60, price=None, sort_order=1)
    db.add_all([haircut, carpet])
    db.flush()

    rooms = ServiceOption(
        service_id=carpet.id,
        name="Per room",
        duration=30,
        price=50.0,
        default_quantity=1,
        min_quantity=1,
        max_quantity=5,
        sort_order=0,
    )
    deep = ServiceOption(service_id=carpet.id, name="Deep clean", duration=None, price=120.0, sort_order=1)
    db.add_all([rooms, deep])
    db.flush()

    stain_guard = ServiceSubOption(service_option_id=rooms.id, name="Stain guard", price=15.0, sort_order=0)
    deodorize = ServiceSubOption(service_option_id=rooms.id, name="Deodorize", price=10.0, sort_order=1)
    pet_treatment = ServiceSubOption(service_option_id=deep.id, name="Pet treatment", price=20.0)
    db.add_all([stain_guard, deodorize, pet_treatment])
    db.commit()

    for row in (haircut, carpet, rooms, deep, stain_guard, deodorize, pet_treatment):
        db.refresh(row)
    return Catalog(tenant, haircut, carpet, rooms, deep, stain_guard, deodorize, pet_treatment)


def issue_code(db, tenant: Tenant, clock: FrozenClock, phone: str = CUSTOMER_PHONE, code: str = "123456"):
    """Insert a verification challenge directly, bypassing SMS"""
    verification = PhoneVerification(
        tenant_id=tenant.id,
        phone=phone,
        code=code,
        expires_at=clock() + timedelta(minutes=10),
        verified=False,
        created_at=clock(),
    )
    db.add(verification)
    db.commit()
    return verification


@pytest.fixture
def tenant(db) -> Tenant:
    return create_tenant(db)


@pytest.fixture
def catalog(db, tenant) -> Catalog:
    return create_catalog(db, tenant)
