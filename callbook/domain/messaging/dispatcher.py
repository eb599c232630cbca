"""
Outbound SMS dispatcher
Sends through the tenant's Twilio account (or the shared platform sender) and
records every attempt in sms_logs. Never raises: callers get a SendResult.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from ...config import APP_URL
from ...enums import SmsStatus, SmsType
from ...security_utils import mask_sensitive_data
from ...services.twilio_credentials import TwilioCredentialStore
from ...shared.clock import Clock, utcnow
from ...shared.validators import normalize_phone_number
from ..tenants.repository import TenantRepository
from .gateway import SmsGatewayError, TwilioSmsGateway
from .repository import SmsLogRepository
from .status import GatewayMessageStatus, to_sms_status

logger = logging.getLogger(__name__)

SMS_STATUS_CALLBACK_PATH = "/twilio/sms-status"


@dataclass
class SendResult:
    success: bool
    message_id: Optional[str] = None
    sms_log_id: Optional[int] = None
    error: Optional[str] = None


class MessageDispatcher:
    def __init__(
        self,
        db: Session,
        gateway: TwilioSmsGateway,
        credential_store: TwilioCredentialStore,
    ):
        self.db = db
        self.gateway = gateway
        self.credential_store = credential_store
        self.repo = SmsLogRepository()

    async def send(
        self,
        tenant_id: int,
        to: str,
        body: str,
        sms_type: SmsType,
        from_: Optional[str] = None,
        call_id: Optional[int] = None,
    ) -> SendResult:
        """Send ``body`` to ``to`` and persist the attempt"""
        log_data = {
            "tenant_id": tenant_id,
            "call_id": call_id,
            "to_number": to,
            "body": body,
            "type": sms_type.value,
        }
        try:
            tenant = TenantRepository.get_by_id(self.db, tenant_id)
            if not tenant:
                logger.error(f"SMS requested for unknown tenant {tenant_id}")
                return SendResult(success=False, error="Tenant not found")

            credentials = self.credential_store.resolve(self.db, tenant)
            from_number = normalize_phone_number(
                from_ or tenant.assigned_phone_number or (credentials and credentials.phone_number)
            )
            log_data["from_number"] = from_number

            if not credentials or not from_number:
                return self._record_failure(log_data, "Messaging gateway not configured")

            logger.info(
                f"Sending SMS: type={sms_type.value}, to={mask_sensitive_data(to)}, tenant={tenant_id}"
            )
            message_sid = await self.gateway.send_message(
                credentials,
                to=to,
                from_=from_number,
                body=body,
                status_callback=f"{APP_URL}{SMS_STATUS_CALLBACK_PATH}",
            )
        except SmsGatewayError as e:
            logger.error(f"Twilio rejected SMS for tenant {tenant_id}: {e}")
            return self._record_failure(log_data, e.message, e.code)
        except Exception as e:
            logger.exception(f"Unexpected error sending SMS for tenant {tenant_id}")
            return self._record_failure(log_data, str(e))

        try:
            sms_log = self.repo.create_log(
                self.db,
                twilio_message_sid=message_sid,
                status=SmsStatus.QUEUED.value,
                **log_data,
            )
        except Exception:
            # Message is already with the gateway; only the log row is lost
            self.db.rollback()
            logger.exception(f"Failed to record sent SMS {message_sid}")
            return SendResult(success=True, message_id=message_sid)

        logger.info(f"SMS queued: {sms_type.value} (SID: {message_sid})")
        return SendResult(success=True, message_id=message_sid, sms_log_id=sms_log.id)

    def _record_failure(
        self, log_data: dict, error_message: str, error_code: Optional[str] = None
    ) -> SendResult:
        try:
            sms_log = self.repo.create_log(
                self.db,
                status=SmsStatus.FAILED.value,
                error_code=error_code,
                error_message=error_message,
                **log_data,
            )
            sms_log_id = sms_log.id
        except Exception:
            self.db.rollback()
            logger.exception("Failed to record failed SMS attempt")
            sms_log_id = None
        return SendResult(success=False, sms_log_id=sms_log_id, error=error_message)


def reconcile_delivery_status(
    db: Session,
    message_sid: str,
    raw_status: Optional[str],
    error_code: Optional[str] = None,
    clock: Clock = utcnow,
) -> int:
    """
    Apply a delivery-status callback to the matching log rows.

    Returns the number of rows updated; unmatched SIDs and statuses with no
    outbound meaning are no-ops.
    """
    status = to_sms_status(GatewayMessageStatus.parse(raw_status))
    if status is None:
        logger.info(f"Ignoring status {raw_status!r} for message {message_sid}")
        return 0

    updated = SmsLogRepository.update_status_by_sid(db, message_sid, status, error_code or None, clock())
    if not updated:
        logger.info(f"Status callback for unknown message {message_sid} ignored")
    return updated
