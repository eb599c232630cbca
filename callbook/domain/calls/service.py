"""
Call intake state machine

    RECEIVED -> [FORWARDING -> ANSWERED]
             -> MENU_PLAYED -> CALLBACK_REQUESTED | COMPLAINT_REQUESTED
                             | INVALID_INPUT | NO_INPUT
    any unknown number or internal fault -> ERROR

Each handler returns an IntakeResult carrying the TwiML to send back. The menu
outcome is written at most once per call; a retransmitted gather webhook gets
the same closing prompt without a second SMS.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from ...config import APP_URL, IVR_AUDIO_DIR
from ...enums import CallStatus, IvrResponse, SmsType
from ...models import Call, Tenant
from ...security_utils import mask_sensitive_data
from ...services.ivr_audio import compose_menu_text
from ...shared.validators import normalize_phone_number
from ..messaging.dispatcher import MessageDispatcher, SendResult
from ..messaging.status import DialCallStatus, to_call_status
from ..messaging.templates import build_booking_sms_body, build_complaint_sms_body
from ..tenants.repository import TenantRepository
from . import twiml
from .repository import CallRepository

logger = logging.getLogger(__name__)

GATHER_PATH = "/twilio/gather"
DIAL_STATUS_PATH = "/twilio/dial-status"

DIGIT_RESPONSES = {
    "1": IvrResponse.CALLBACK,
    "2": IvrResponse.COMPLAINT,
}

# Closing prompt per recorded outcome
CLOSING_PROMPTS = {
    IvrResponse.CALLBACK.value: "thankyou-booking",
    IvrResponse.COMPLAINT.value: "thankyou-complaint",
    IvrResponse.INVALID.value: "invalid",
}


class IntakeState(str, enum.Enum):
    RECEIVED = "RECEIVED"
    FORWARDING = "FORWARDING"
    ANSWERED = "ANSWERED"
    MENU_PLAYED = "MENU_PLAYED"
    CALLBACK_REQUESTED = "CALLBACK_REQUESTED"
    COMPLAINT_REQUESTED = "COMPLAINT_REQUESTED"
    INVALID_INPUT = "INVALID_INPUT"
    NO_INPUT = "NO_INPUT"
    ERROR = "ERROR"


_RESPONSE_STATES = {
    IvrResponse.CALLBACK: IntakeState.CALLBACK_REQUESTED,
    IvrResponse.COMPLAINT: IntakeState.COMPLAINT_REQUESTED,
    IvrResponse.INVALID: IntakeState.INVALID_INPUT,
}


@dataclass
class IntakeResult:
    state: IntakeState
    twiml: str
    call_id: Optional[int] = None
    sms: Optional[SendResult] = None
    duplicate: bool = False


def gather_url(call_id: int) -> str:
    return f"{APP_URL}{GATHER_PATH}?callId={call_id}"


def dial_status_url(call_id: int) -> str:
    return f"{APP_URL}{DIAL_STATUS_PATH}?callId={call_id}"


class CallIntakeService:
    def __init__(self, db: Session, audio_dir: str = IVR_AUDIO_DIR):
        self.db = db
        self.audio_dir = audio_dir
        self.repo = CallRepository()

    def error_result(self, call_id: Optional[int] = None) -> IntakeResult:
        return IntakeResult(IntakeState.ERROR, twiml.build_error_response(self.audio_dir), call_id)

    def menu_text(self, tenant: Tenant) -> str:
        return compose_menu_text(tenant, TenantRepository.get_platform_settings(self.db))

    def _menu(self, tenant: Tenant, call: Call) -> IntakeResult:
        response = twiml.build_menu_response(
            gather_url(call.id),
            self.menu_text(tenant),
            audio_url=tenant.ivr_audio_url,
            audio_dir=self.audio_dir,
        )
        return IntakeResult(IntakeState.MENU_PLAYED, response, call.id)

    def handle_incoming(
        self, to: Optional[str], from_: Optional[str], call_sid: Optional[str]
    ) -> IntakeResult:
        """Voice webhook: a call arrived at one of our numbers"""
        tenant = TenantRepository.get_active_by_number(self.db, to)
        if not tenant:
            logger.warning(f"Inbound call to unassigned or inactive number {to}")
            return self.error_result()

        forwarding = normalize_phone_number(tenant.forwarding_number)
        call = self.repo.create_call(
            self.db,
            tenant_id=tenant.id,
            twilio_call_sid=call_sid,
            caller_number=normalize_phone_number(from_) or "unknown",
            status=(CallStatus.NO_ANSWER if forwarding else CallStatus.MISSED).value,
        )
        logger.info(
            f"Call {call.id} from {mask_sensitive_data(call.caller_number)} for tenant {tenant.id}"
        )

        if forwarding:
            response = twiml.build_dial_response(
                forwarding, dial_status_url(call.id), tenant.dial_timeout
            )
            return IntakeResult(IntakeState.FORWARDING, response, call.id)

        return self._menu(tenant, call)

    def handle_dial_status(
        self, call_id: Optional[int], call_sid: Optional[str], raw_status: Optional[str]
    ) -> IntakeResult:
        """Dial action callback: the owner answered, or we fall back to the menu"""
        call = None
        if call_id is not None:
            call = self.repo.get_call(self.db, call_id)
        if call is None and call_sid:
            call = self.repo.get_call_by_sid(self.db, call_sid)
        if call is None:
            logger.warning(f"Dial status for unknown call (id={call_id}, sid={call_sid})")
            return self.error_result()

        status = to_call_status(DialCallStatus.parse(raw_status))
        call.status = status.value
        self.db.commit()

        if status == CallStatus.ANSWERED:
            logger.info(f"Call {call.id} answered by the business")
            return IntakeResult(IntakeState.ANSWERED, twiml.build_hangup_response(), call.id)

        logger.info(f"Call {call.id} not answered ({raw_status}), playing menu")
        return self._menu(call.tenant, call)

    async def handle_gather(
        self, call_id: Optional[int], digits: Optional[str], dispatcher: MessageDispatcher
    ) -> IntakeResult:
        """Gather callback: apply the caller's key press"""
        call = self.repo.get_call(self.db, call_id) if call_id is not None else None
        if call is None:
            logger.warning(f"Gather callback for unknown call {call_id}")
            return self.error_result()

        digit = (digits or "").strip()
        if not digit:
            # ivr_response stays unset, which reads as NO_RESPONSE
            return IntakeResult(
                IntakeState.NO_INPUT,
                twiml.build_message_response("noinput", self.audio_dir),
                call.id,
            )

        ivr_response = DIGIT_RESPONSES.get(digit, IvrResponse.INVALID)
        if not self.repo.record_ivr_response(self.db, call.id, ivr_response.value, digit[:5]):
            self.db.refresh(call)
            logger.info(f"Duplicate gather for call {call.id} ignored (already {call.ivr_response})")
            prompt = CLOSING_PROMPTS.get(call.ivr_response, "invalid")
            return IntakeResult(
                _RESPONSE_STATES.get(IvrResponse(call.ivr_response), IntakeState.INVALID_INPUT),
                twiml.build_message_response(prompt, self.audio_dir),
                call.id,
                duplicate=True,
            )

        tenant = call.tenant
        sms = None
        if ivr_response == IvrResponse.CALLBACK:
            sms = await dispatcher.send(
                tenant.id,
                call.caller_number,
                build_booking_sms_body(tenant.name, tenant.slug),
                SmsType.BOOKING_LINK,
                call_id=call.id,
            )
        elif ivr_response == IvrResponse.COMPLAINT:
            sms = await dispatcher.send(
                tenant.id,
                call.caller_number,
                build_complaint_sms_body(tenant.name, tenant.slug, call.id),
                SmsType.COMPLAINT_LINK,
                call_id=call.id,
            )

        logger.info(f"Call {call.id}: digit {digit!r} -> {ivr_response.value}")
        return IntakeResult(
            _RESPONSE_STATES[ivr_response],
            twiml.build_message_response(CLOSING_PROMPTS[ivr_response.value], self.audio_dir),
            call.id,
            sms=sms,
        )
