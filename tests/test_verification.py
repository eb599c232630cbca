import asyncio
from datetime import timedelta

import pytest

from conftest import CUSTOMER_PHONE, FakeGateway, create_tenant, issue_code
from callbook.cache import TTLCache
from callbook.domain.messaging.dispatcher import MessageDispatcher
from callbook.domain.verification.service import VerificationService
from callbook.enums import SmsStatus, SmsType
from callbook.errors import ErrorKind, ServiceError
from callbook.models import PhoneVerification, SmsLog
from callbook.services.twilio_credentials import TwilioCredentialStore


@pytest.fixture
def verifier(db, clock) -> VerificationService:
    return VerificationService(db, clock)


def test_code_is_valid_up_to_and_including_expiry(verifier, tenant, db, clock) -> None:
    issue_code(db, tenant, clock)

    clock.advance(minutes=10)
    assert verifier.find_valid(tenant.id, CUSTOMER_PHONE, "123456").code == "123456"

    clock.advance(seconds=1)
    with pytest.raises(ServiceError) as exc_info:
        verifier.find_valid(tenant.id, CUSTOMER_PHONE, "123456")
    assert exc_info.value.kind == ErrorKind.UNVERIFIED_PHONE


def test_wrong_or_missing_code_is_rejected(verifier, tenant, db, clock) -> None:
    issue_code(db, tenant, clock)

    for code in ("654321", "", None):
        with pytest.raises(ServiceError) as exc_info:
            verifier.find_valid(tenant.id, CUSTOMER_PHONE, code)
        assert exc_info.value.kind == ErrorKind.UNVERIFIED_PHONE


def test_code_can_be_consumed_once(verifier, tenant, db, clock) -> None:
    issue_code(db, tenant, clock)

    verification = verifier.find_valid(tenant.id, CUSTOMER_PHONE, "123456")
    verifier.consume(verification)
    db.commit()

    with pytest.raises(ServiceError):
        verifier.find_valid(tenant.id, CUSTOMER_PHONE, "123456")
    with pytest.raises(ServiceError) as exc_info:
        verifier.consume(verification)
    assert exc_info.value.kind == ErrorKind.UNVERIFIED_PHONE


def test_codes_are_scoped_to_the_issuing_business(verifier, tenant, db, clock) -> None:
    other = create_tenant(db, slug="rival", number="+15550002222", api_key="sk_rival")
    issue_code(db, tenant, clock)

    with pytest.raises(ServiceError):
        verifier.find_valid(other.id, CUSTOMER_PHONE, "123456")


def test_fourth_request_in_window_is_rate_limited_then_window_slides(verifier, tenant, clock) -> None:
    for _ in range(3):
        verifier.issue_code(tenant, CUSTOMER_PHONE)
        clock.advance(minutes=1)

    with pytest.raises(ServiceError) as exc_info:
        verifier.issue_code(tenant, CUSTOMER_PHONE)
    assert exc_info.value.kind == ErrorKind.RATE_LIMITED

    # First request was issued at +0; after +10min it leaves the window
    clock.now = clock.now - timedelta(minutes=3) + timedelta(minutes=10, seconds=1)
    assert verifier.issue_code(tenant, CUSTOMER_PHONE).phone == CUSTOMER_PHONE


def test_issued_code_is_six_digits_and_expires_in_ten_minutes(verifier, tenant, clock) -> None:
    verification = verifier.issue_code(tenant, CUSTOMER_PHONE)

    assert len(verification.code) == 6 and verification.code.isdigit()
    assert verification.expires_at == clock() + timedelta(minutes=10)
    assert verification.verified is False


def test_request_code_sends_otp_and_logs_it(verifier, tenant, db) -> None:
    gateway = FakeGateway()
    dispatcher = MessageDispatcher(db, gateway, TwilioCredentialStore(TTLCache(60)))

    result = asyncio.run(verifier.request_code(tenant, CUSTOMER_PHONE, dispatcher))

    code = db.query(PhoneVerification).one().code
    assert result.success
    assert code in gateway.sent[0]["body"]
    log = db.query(SmsLog).one()
    assert log.type == SmsType.OTP_VERIFICATION.value
    assert log.status == SmsStatus.QUEUED.value


def test_verify_phone_endpoint(client, tenant, gateway) -> None:
    response = client.post("/public/shop/acme/verify-phone", json={"phone": "(555) 123-4567"})

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert gateway.sent[0]["to"] == CUSTOMER_PHONE


def test_verify_phone_endpoint_rate_limit_envelope(client, tenant) -> None:
    for _ in range(3):
        assert client.post("/public/shop/acme/verify-phone", json={"phone": CUSTOMER_PHONE}).status_code == 200

    response = client.post("/public/shop/acme/verify-phone", json={"phone": CUSTOMER_PHONE})

    assert response.status_code == 429
    assert response.json()["error"] == "RATE_LIMITED"
