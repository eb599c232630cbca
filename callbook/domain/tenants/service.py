"""
Tenant service - public shop profile, IVR settings and platform settings

Audio regeneration is handed to the ``AudioJobRunner`` and never awaited; the
request that triggered it answers as soon as the settings are committed.
"""

import logging
from typing import Callable, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import PlatformSettings, Tenant
from ...security_utils import decrypt_credential, encrypt_credential, mask_sensitive_data
from ...services.ivr_audio import AudioJobResult, AudioJobRunner, generate_tenant_greeting
from ...services.twilio_credentials import TwilioCredentialStore
from ...shared.clock import Clock, utcnow
from ..catalog.repository import CatalogRepository
from ..catalog.schemas import build_service_response
from ..feedback.schemas import build_review_response
from ..feedback.service import FeedbackService
from ..scheduling.schemas import build_business_hours_response
from ..scheduling.service import SchedulingService
from .repository import TenantRepository, require_active_tenant
from .schemas import (
    IvrSettingsUpdate,
    PlatformSettingsResponse,
    PlatformSettingsUpdate,
    ShopProfileResponse,
)

logger = logging.getLogger(__name__)

SHOP_PROFILE_REVIEWS = 20

# Request field -> tenant column for the three parts of the spoken menu
MENU_FIELDS = {
    "ivrGreeting": "ivr_greeting",
    "ivrCallbackMessage": "ivr_callback_message",
    "ivrComplaintMessage": "ivr_complaint_message",
}

# Platform default column -> tenant column that overrides it
INHERITED_MENU_COLUMNS = {
    "default_ivr_greeting": Tenant.ivr_greeting,
    "default_ivr_callback": Tenant.ivr_callback_message,
    "default_ivr_complaint": Tenant.ivr_complaint_message,
}

# Request field -> (column, stored encrypted)
PLATFORM_FIELDS = {
    "sharedTwilioSid": ("shared_twilio_sid", True),
    "sharedTwilioToken": ("shared_twilio_token", True),
    "sharedTwilioNumber": ("shared_twilio_number", False),
    "defaultIvrGreeting": ("default_ivr_greeting", False),
    "defaultIvrCallback": ("default_ivr_callback", False),
    "defaultIvrComplaint": ("default_ivr_complaint", False),
    "elevenlabsApiKey": ("elevenlabs_api_key", True),
    "elevenlabsVoiceId": ("elevenlabs_voice_id", False),
}


class TenantService:
    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    def shop_profile(self, slug: str) -> ShopProfileResponse:
        tenant = require_active_tenant(self.db, slug)
        services = CatalogRepository.list_active_services(self.db, tenant.id)
        hours = SchedulingService(self.db, self.clock).get_business_hours(tenant)
        reviews = FeedbackService(self.db, self.clock).list_reviews(tenant, 1, SHOP_PROFILE_REVIEWS)
        return ShopProfileResponse(
            name=tenant.name,
            slug=tenant.slug,
            services=[build_service_response(service) for service in services],
            businessHours=build_business_hours_response(hours),
            reviews=[build_review_response(review) for review in reviews["reviews"]],
            averageRating=reviews["average_rating"],
            reviewCount=reviews["total"],
        )

    # ------------------------------------------------------------------
    # IVR
    # ------------------------------------------------------------------

    def update_ivr_settings(self, tenant: Tenant, data: IvrSettingsUpdate) -> bool:
        """
        Apply the provided IVR fields. Returns True when the spoken menu changed
        and the pre-generated audio should be rebuilt.
        """
        fields = data.model_dump(exclude_unset=True)
        menu_changed = False

        for field, column in MENU_FIELDS.items():
            if field not in fields:
                continue
            value = (fields[field] or "").strip() or None
            if value != getattr(tenant, column):
                menu_changed = True
                setattr(tenant, column, value)
        if "forwardingNumber" in fields:
            tenant.forwarding_number = fields["forwardingNumber"]
        if fields.get("dialTimeout") is not None:
            tenant.dial_timeout = fields["dialTimeout"]

        if menu_changed:
            # Stale audio would speak the old menu; fall back to <Say> until regenerated
            tenant.ivr_audio_url = None

        self.db.commit()
        self.db.refresh(tenant)
        logger.info(f"IVR settings updated for tenant {tenant.id} (menu_changed={menu_changed})")
        return menu_changed

    @staticmethod
    def schedule_audio_regeneration(
        tenant_id: int,
        runner: AudioJobRunner,
        session_factory: Callable[[], Session],
    ) -> None:
        """Queue greeting synthesis; the outcome is only logged"""

        def on_done(result: AudioJobResult) -> None:
            if result.ok and result.value:
                logger.info(f"IVR audio ready for tenant {tenant_id}: {result.value}")
            elif result.ok:
                logger.warning(f"IVR audio for tenant {tenant_id} was not generated")

        runner.submit(
            f"ivr-greeting-{tenant_id}",
            lambda: generate_tenant_greeting(tenant_id, session_factory),
            on_done,
        )

    # ------------------------------------------------------------------
    # Platform settings
    # ------------------------------------------------------------------

    def get_platform_settings(self) -> PlatformSettings:
        settings = TenantRepository.get_or_create_platform_settings(self.db)
        self.db.commit()
        return settings

    def _clear_inherited_audio(self, tenant_columns: list) -> int:
        """Drop recordings of tenants whose menu falls back to a changed default"""
        cleared = (
            self.db.query(Tenant)
            .filter(Tenant.ivr_audio_url.isnot(None), or_(*[column.is_(None) for column in tenant_columns]))
            .update({Tenant.ivr_audio_url: None}, synchronize_session="fetch")
        )
        if cleared:
            logger.info(f"Cleared IVR audio for {cleared} tenants using changed platform defaults")
        return cleared

    def update_platform_settings(
        self, data: PlatformSettingsUpdate, credential_store: TwilioCredentialStore
    ) -> PlatformSettings:
        """Write the provided fields, encrypting secrets, then drop cached credentials"""
        settings = TenantRepository.get_or_create_platform_settings(self.db)
        fields = data.model_dump(exclude_unset=True)

        inherited_changed = []
        for name, value in fields.items():
            column, encrypted = PLATFORM_FIELDS[name]
            value = value.strip() if isinstance(value, str) else value
            if not value:
                value = None
            elif encrypted:
                value = encrypt_credential(value)
            if column in INHERITED_MENU_COLUMNS and value != getattr(settings, column):
                inherited_changed.append(INHERITED_MENU_COLUMNS[column])
            setattr(settings, column, value)

        if inherited_changed:
            self._clear_inherited_audio(inherited_changed)
        self.db.commit()
        self.db.refresh(settings)
        credential_store.invalidate()
        logger.info(f"Platform settings updated: {sorted(fields)}")
        return settings


def build_platform_settings_response(settings: PlatformSettings) -> PlatformSettingsResponse:
    sid: Optional[str] = decrypt_credential(settings.shared_twilio_sid)
    return PlatformSettingsResponse(
        sharedTwilioSid=mask_sensitive_data(sid) if sid else None,
        sharedTwilioTokenSet=bool(settings.shared_twilio_token),
        sharedTwilioNumber=settings.shared_twilio_number,
        defaultIvrGreeting=settings.default_ivr_greeting,
        defaultIvrCallback=settings.default_ivr_callback,
        defaultIvrComplaint=settings.default_ivr_complaint,
        elevenlabsApiKeySet=bool(settings.elevenlabs_api_key),
        elevenlabsVoiceId=settings.elevenlabs_voice_id,
        updatedAt=settings.updated_at,
    )
