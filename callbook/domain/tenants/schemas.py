"""Tenant schemas - public shop profile, IVR settings and platform settings"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_phone
from ..catalog.schemas import ServiceResponse
from ..feedback.schemas import ReviewResponse
from ..scheduling.schemas import BusinessHoursResponse


class ShopProfileResponse(BaseModel):
    name: str
    slug: str
    services: list[ServiceResponse]
    businessHours: list[BusinessHoursResponse]
    reviews: list[ReviewResponse]
    averageRating: float
    reviewCount: int


class IvrSettingsUpdate(BaseModel):
    ivrGreeting: Optional[str] = Field(None, max_length=1000)
    ivrCallbackMessage: Optional[str] = Field(None, max_length=1000)
    ivrComplaintMessage: Optional[str] = Field(None, max_length=1000)
    forwardingNumber: Optional[str] = None
    dialTimeout: Optional[int] = Field(None, ge=5, le=60)

    @field_validator("forwardingNumber")
    @classmethod
    def validate_forwarding_number(cls, v):
        if not v:
            return None
        return validate_phone(v)


class IvrSettingsResponse(BaseModel):
    assignedPhoneNumber: Optional[str] = None
    forwardingNumber: Optional[str] = None
    dialTimeout: int
    ivrGreeting: Optional[str] = None
    ivrCallbackMessage: Optional[str] = None
    ivrComplaintMessage: Optional[str] = None
    ivrAudioUrl: Optional[str] = None
    audioRegenerationQueued: bool = False


def build_ivr_settings_response(tenant, queued: bool = False) -> IvrSettingsResponse:
    return IvrSettingsResponse(
        assignedPhoneNumber=tenant.assigned_phone_number,
        forwardingNumber=tenant.forwarding_number,
        dialTimeout=tenant.dial_timeout,
        ivrGreeting=tenant.ivr_greeting,
        ivrCallbackMessage=tenant.ivr_callback_message,
        ivrComplaintMessage=tenant.ivr_complaint_message,
        ivrAudioUrl=tenant.ivr_audio_url,
        audioRegenerationQueued=queued,
    )


class PlatformSettingsUpdate(BaseModel):
    """Only fields present in the request are written; empty strings clear a value"""

    sharedTwilioSid: Optional[str] = Field(None, max_length=64)
    sharedTwilioToken: Optional[str] = Field(None, max_length=64)
    sharedTwilioNumber: Optional[str] = None
    defaultIvrGreeting: Optional[str] = Field(None, max_length=1000)
    defaultIvrCallback: Optional[str] = Field(None, max_length=1000)
    defaultIvrComplaint: Optional[str] = Field(None, max_length=1000)
    elevenlabsApiKey: Optional[str] = Field(None, max_length=128)
    elevenlabsVoiceId: Optional[str] = Field(None, max_length=64)

    @field_validator("sharedTwilioNumber")
    @classmethod
    def validate_shared_number(cls, v):
        if not v:
            return v
        return validate_phone(v)


class PlatformSettingsResponse(BaseModel):
    sharedTwilioSid: Optional[str] = None  # masked
    sharedTwilioTokenSet: bool
    sharedTwilioNumber: Optional[str] = None
    defaultIvrGreeting: Optional[str] = None
    defaultIvrCallback: Optional[str] = None
    defaultIvrComplaint: Optional[str] = None
    elevenlabsApiKeySet: bool
    elevenlabsVoiceId: Optional[str] = None
    updatedAt: Optional[datetime] = None
