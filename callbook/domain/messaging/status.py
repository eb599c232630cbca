"""
Gateway status strings mapped onto internal enums.

Raw strings are first parsed into a closed set of gateway variants (with an
UNKNOWN fallback); each variant then has exactly one internal mapping. Adding a
variant without a mapping fails at import time.
"""

import enum
import logging
from typing import Optional

from ...enums import CallStatus, SmsStatus

logger = logging.getLogger(__name__)


class GatewayMessageStatus(str, enum.Enum):
    ACCEPTED = "accepted"
    SCHEDULED = "scheduled"
    QUEUED = "queued"
    SENDING = "sending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    UNDELIVERED = "undelivered"
    PARTIALLY_DELIVERED = "partially_delivered"
    FAILED = "failed"
    CANCELED = "canceled"
    RECEIVING = "receiving"
    RECEIVED = "received"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "GatewayMessageStatus":
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            logger.warning(f"Unrecognized message status from gateway: {raw!r}")
            return cls.UNKNOWN


# None means "leave the stored status unchanged"
_MESSAGE_STATUS_MAP: dict[GatewayMessageStatus, Optional[SmsStatus]] = {
    GatewayMessageStatus.ACCEPTED: SmsStatus.QUEUED,
    GatewayMessageStatus.SCHEDULED: SmsStatus.QUEUED,
    GatewayMessageStatus.QUEUED: SmsStatus.QUEUED,
    GatewayMessageStatus.SENDING: SmsStatus.SENT,
    GatewayMessageStatus.SENT: SmsStatus.SENT,
    GatewayMessageStatus.DELIVERED: SmsStatus.DELIVERED,
    GatewayMessageStatus.READ: SmsStatus.DELIVERED,
    GatewayMessageStatus.UNDELIVERED: SmsStatus.UNDELIVERED,
    GatewayMessageStatus.PARTIALLY_DELIVERED: SmsStatus.UNDELIVERED,
    GatewayMessageStatus.FAILED: SmsStatus.FAILED,
    GatewayMessageStatus.CANCELED: SmsStatus.FAILED,
    # Inbound-only states never apply to our outbound log rows
    GatewayMessageStatus.RECEIVING: None,
    GatewayMessageStatus.RECEIVED: None,
    GatewayMessageStatus.UNKNOWN: None,
}


class DialCallStatus(str, enum.Enum):
    COMPLETED = "completed"
    ANSWERED = "answered"
    BUSY = "busy"
    NO_ANSWER = "no-answer"
    FAILED = "failed"
    CANCELED = "canceled"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "DialCallStatus":
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            logger.warning(f"Unrecognized dial status from gateway: {raw!r}")
            return cls.UNKNOWN


_DIAL_STATUS_MAP: dict[DialCallStatus, CallStatus] = {
    DialCallStatus.COMPLETED: CallStatus.ANSWERED,
    DialCallStatus.ANSWERED: CallStatus.ANSWERED,
    DialCallStatus.BUSY: CallStatus.BUSY,
    DialCallStatus.NO_ANSWER: CallStatus.NO_ANSWER,
    DialCallStatus.FAILED: CallStatus.FAILED,
    DialCallStatus.CANCELED: CallStatus.MISSED,
    DialCallStatus.UNKNOWN: CallStatus.MISSED,
}


def _check_exhaustive(mapping: dict, variants: type[enum.Enum]) -> None:
    missing = [v.value for v in variants if v not in mapping]
    if missing:
        raise RuntimeError(f"No internal mapping for {variants.__name__}: {missing}")


_check_exhaustive(_MESSAGE_STATUS_MAP, GatewayMessageStatus)
_check_exhaustive(_DIAL_STATUS_MAP, DialCallStatus)


def to_sms_status(status: GatewayMessageStatus) -> Optional[SmsStatus]:
    return _MESSAGE_STATUS_MAP[status]


def to_call_status(status: DialCallStatus) -> CallStatus:
    return _DIAL_STATUS_MAP[status]
