"""
Service errors
Expected business-rule rejections carry a stable reason code and HTTP status
"""

import enum


class ErrorKind(str, enum.Enum):
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    OUTSIDE_HOURS = "OUTSIDE_HOURS"
    SLOT_TAKEN = "SLOT_TAKEN"
    INVALID_SUBOPTION = "INVALID_SUBOPTION"
    UNVERIFIED_PHONE = "UNVERIFIED_PHONE"
    RATE_LIMITED = "RATE_LIMITED"
    GATEWAY_FAILURE = "GATEWAY_FAILURE"
    INTERNAL = "INTERNAL"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.OUTSIDE_HOURS: 400,
    ErrorKind.SLOT_TAKEN: 409,
    ErrorKind.INVALID_SUBOPTION: 400,
    ErrorKind.UNVERIFIED_PHONE: 400,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.GATEWAY_FAILURE: 502,
    ErrorKind.INTERNAL: 500,
}


class ServiceError(Exception):
    """Raised by the service layer; rendered by the app-level exception handler"""

    def __init__(self, kind: ErrorKind, message: str, headers: dict | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.headers = headers

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def to_dict(self) -> dict:
        return {"success": False, "error": self.kind.value, "message": self.message}


def business_not_found() -> ServiceError:
    """Uniform 404 for missing or inactive tenants - never reveals which"""
    return ServiceError(ErrorKind.NOT_FOUND, "Business not found")
