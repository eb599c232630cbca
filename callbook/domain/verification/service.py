"""
Phone verification gate

Issues six-digit one-time codes by SMS and checks them before public writes.
Codes are scoped to the tenant that issued them, expire after OTP_TTL_MINUTES
and can be consumed once. Expired rows stay in place.
"""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...config import OTP_MAX_PER_WINDOW, OTP_TTL_MINUTES, OTP_WINDOW_MINUTES
from ...enums import SmsType
from ...errors import ErrorKind, ServiceError
from ...models import PhoneVerification, Tenant
from ...security_utils import generate_otp, mask_sensitive_data
from ...shared.clock import Clock, utcnow
from ..messaging.dispatcher import MessageDispatcher, SendResult
from ..messaging.templates import build_otp_sms_body

logger = logging.getLogger(__name__)


class VerificationService:
    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    def recent_request_count(self, phone: str) -> int:
        """Codes issued to ``phone`` inside the sliding window ending now"""
        window_start = self.clock() - timedelta(minutes=OTP_WINDOW_MINUTES)
        return (
            self.db.query(PhoneVerification)
            .filter(PhoneVerification.phone == phone, PhoneVerification.created_at >= window_start)
            .count()
        )

    def issue_code(self, tenant: Tenant, phone: str) -> PhoneVerification:
        """Create and commit a new challenge, enforcing the per-phone limit"""
        if self.recent_request_count(phone) >= OTP_MAX_PER_WINDOW:
            logger.info(f"Verification rate limit hit for {mask_sensitive_data(phone)}")
            raise ServiceError(
                ErrorKind.RATE_LIMITED,
                "Too many verification attempts. Please try again later.",
            )

        now = self.clock()
        verification = PhoneVerification(
            tenant_id=tenant.id,
            phone=phone,
            code=generate_otp(6),
            expires_at=now + timedelta(minutes=OTP_TTL_MINUTES),
            verified=False,
            created_at=now,
        )
        self.db.add(verification)
        self.db.commit()
        self.db.refresh(verification)
        return verification

    async def request_code(
        self, tenant: Tenant, phone: str, dispatcher: MessageDispatcher
    ) -> SendResult:
        verification = self.issue_code(tenant, phone)
        result = await dispatcher.send(
            tenant.id,
            phone,
            build_otp_sms_body(tenant.name, verification.code, OTP_TTL_MINUTES),
            SmsType.OTP_VERIFICATION,
        )
        if not result.success:
            logger.warning(
                f"Verification code for {mask_sensitive_data(phone)} not delivered: {result.error}"
            )
        return result

    def find_valid(self, tenant_id: int, phone: str, code: Optional[str]) -> PhoneVerification:
        """
        Unconsumed, unexpired challenge matching phone and code.

        A code is still valid at the exact instant of its expiry.
        """
        verification = None
        if code:
            verification = (
                self.db.query(PhoneVerification)
                .filter(
                    PhoneVerification.tenant_id == tenant_id,
                    PhoneVerification.phone == phone,
                    PhoneVerification.code == code.strip(),
                    PhoneVerification.verified.is_(False),
                    PhoneVerification.expires_at >= self.clock(),
                )
                .order_by(PhoneVerification.created_at.desc())
                .first()
            )
        if not verification:
            logger.info(f"Rejected verification code for {mask_sensitive_data(phone)}")
            raise ServiceError(ErrorKind.UNVERIFIED_PHONE, "Invalid or expired verification code")
        return verification

    def consume(self, verification: PhoneVerification) -> None:
        """
        Mark the challenge used inside the caller's transaction.

        The update is conditional so two requests racing on one code cannot both
        consume it; the loser gets UNVERIFIED_PHONE.
        """
        updated = (
            self.db.query(PhoneVerification)
            .filter(PhoneVerification.id == verification.id, PhoneVerification.verified.is_(False))
            .update({"verified": True}, synchronize_session=False)
        )
        if not updated:
            raise ServiceError(ErrorKind.UNVERIFIED_PHONE, "Invalid or expired verification code")
