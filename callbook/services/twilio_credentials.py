"""
Twilio credential resolution
Platform credentials are cached process-wide for a short TTL; tenant credentials
are read from the tenant row on each send.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from ..cache import TTLCache
from ..config import TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER
from ..models import PLATFORM_SETTINGS_ID, PlatformSettings, Tenant
from ..security_utils import decrypt_credential

logger = logging.getLogger(__name__)

PLATFORM_CREDENTIALS_KEY = "twilio:platform"


@dataclass(frozen=True)
class GatewayCredentials:
    account_sid: str
    auth_token: str
    phone_number: Optional[str] = None


def load_platform_credentials(db: Session) -> Optional[GatewayCredentials]:
    """Shared sender from platform settings, falling back to environment config"""
    settings = db.query(PlatformSettings).filter(PlatformSettings.id == PLATFORM_SETTINGS_ID).first()

    if settings and settings.shared_twilio_sid and settings.shared_twilio_token:
        account_sid = decrypt_credential(settings.shared_twilio_sid)
        auth_token = decrypt_credential(settings.shared_twilio_token)
        if account_sid and auth_token:
            return GatewayCredentials(
                account_sid=account_sid,
                auth_token=auth_token,
                phone_number=settings.shared_twilio_number or TWILIO_PHONE_NUMBER,
            )

    if TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN:
        return GatewayCredentials(
            account_sid=TWILIO_ACCOUNT_SID,
            auth_token=TWILIO_AUTH_TOKEN,
            phone_number=TWILIO_PHONE_NUMBER,
        )

    logger.warning("No platform Twilio credentials configured")
    return None


def tenant_credentials(tenant: Tenant) -> Optional[GatewayCredentials]:
    """Tenant-specific Twilio account, if the tenant brought one"""
    if not tenant.twilio_account_sid or not tenant.twilio_auth_token:
        return None
    account_sid = decrypt_credential(tenant.twilio_account_sid)
    auth_token = decrypt_credential(tenant.twilio_auth_token)
    if not account_sid or not auth_token:
        return None
    return GatewayCredentials(account_sid, auth_token, tenant.assigned_phone_number)


class TwilioCredentialStore:
    """Cached access to the platform credentials with an explicit invalidation hook"""

    def __init__(self, cache: TTLCache):
        self.cache = cache

    def get(self, db: Session) -> Optional[GatewayCredentials]:
        return self.cache.get_or_load(PLATFORM_CREDENTIALS_KEY, lambda: load_platform_credentials(db))

    def invalidate(self) -> None:
        """Call synchronously whenever an operator changes the credentials"""
        self.cache.delete(PLATFORM_CREDENTIALS_KEY)
        logger.info("Platform Twilio credential cache invalidated")

    def resolve(self, db: Session, tenant: Tenant) -> Optional[GatewayCredentials]:
        """Tenant credentials when present, else the shared platform sender"""
        return tenant_credentials(tenant) or self.get(db)
