"""Verification schemas"""

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_phone


class PhoneVerificationRequest(BaseModel):
    phone: str

    @field_validator("phone")
    @classmethod
    def validate_phone_number(cls, v):
        return validate_phone(v)
