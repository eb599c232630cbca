"""Messaging schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SmsLogResponse(BaseModel):
    id: int
    callId: Optional[int] = None
    messageSid: Optional[str] = None
    toNumber: str
    fromNumber: Optional[str] = None
    body: str
    type: str
    status: str
    errorCode: Optional[str] = None
    errorMessage: Optional[str] = None
    deliveredAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None


def build_sms_log_response(log) -> SmsLogResponse:
    return SmsLogResponse(
        id=log.id,
        callId=log.call_id,
        messageSid=log.twilio_message_sid,
        toNumber=log.to_number,
        fromNumber=log.from_number,
        body=log.body,
        type=log.type,
        status=log.status,
        errorCode=log.error_code,
        errorMessage=log.error_message,
        deliveredAt=log.delivered_at,
        createdAt=log.created_at,
    )
