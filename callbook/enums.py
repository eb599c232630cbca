"""String enums stored in status/kind columns"""

import enum


class TenantStatus(str, enum.Enum):
    ONBOARDING = "ONBOARDING"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    DISABLED = "DISABLED"


class Weekday(str, enum.Enum):
    # Declared in datetime.date.weekday() order
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def for_date(cls, day) -> "Weekday":
        return list(cls)[day.weekday()]


class AppointmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# Appointments in these states no longer hold their slot
INACTIVE_APPOINTMENT_STATUSES = (AppointmentStatus.CANCELLED.value, AppointmentStatus.NO_SHOW.value)


class CallStatus(str, enum.Enum):
    MISSED = "MISSED"
    ANSWERED = "ANSWERED"
    NO_ANSWER = "NO_ANSWER"
    BUSY = "BUSY"
    FAILED = "FAILED"


class IvrResponse(str, enum.Enum):
    CALLBACK = "CALLBACK"
    COMPLAINT = "COMPLAINT"
    INVALID = "INVALID"
    NO_RESPONSE = "NO_RESPONSE"


class SmsType(str, enum.Enum):
    BOOKING_LINK = "BOOKING_LINK"
    COMPLAINT_LINK = "COMPLAINT_LINK"
    OTP_VERIFICATION = "OTP_VERIFICATION"
    BOOKING_CONFIRMATION = "BOOKING_CONFIRMATION"
    CUSTOM = "CUSTOM"


class SmsStatus(str, enum.Enum):
    QUEUED = "QUEUED"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"
    UNDELIVERED = "UNDELIVERED"


class ComplaintCategory(str, enum.Enum):
    SERVICE_QUALITY = "SERVICE_QUALITY"
    PRICING = "PRICING"
    WAIT_TIME = "WAIT_TIME"
    STAFF_BEHAVIOR = "STAFF_BEHAVIOR"
    OTHER = "OTHER"


class ComplaintStatus(str, enum.Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
