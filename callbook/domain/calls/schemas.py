"""Calls schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..messaging.schemas import SmsLogResponse, build_sms_log_response


class CallUpdate(BaseModel):
    callbackHandled: bool


class CallResponse(BaseModel):
    id: int
    callSid: Optional[str] = None
    callerNumber: str
    status: str
    ivrResponse: str
    ivrDigit: Optional[str] = None
    callbackHandled: bool
    createdAt: Optional[datetime] = None
    smsLogs: list[SmsLogResponse] = []


def build_call_response(call, include_sms: bool = True) -> CallResponse:
    return CallResponse(
        id=call.id,
        callSid=call.twilio_call_sid,
        callerNumber=call.caller_number,
        status=call.status,
        ivrResponse=call.ivr_response or "NO_RESPONSE",
        ivrDigit=call.ivr_digit,
        callbackHandled=call.callback_handled,
        createdAt=call.created_at,
        smsLogs=[build_sms_log_response(log) for log in call.sms_logs] if include_sms else [],
    )
