"""Tenant repository - lookups used by public and webhook entry points"""

from typing import Optional

from sqlalchemy.orm import Session

from ...enums import TenantStatus
from ...errors import business_not_found
from ...models import PLATFORM_SETTINGS_ID, PlatformSettings, Tenant
from ...shared.validators import normalize_phone_number


class TenantRepository:
    @staticmethod
    def get_by_id(db: Session, tenant_id: int) -> Optional[Tenant]:
        return db.query(Tenant).filter(Tenant.id == tenant_id).first()

    @staticmethod
    def get_active_by_slug(db: Session, slug: str) -> Optional[Tenant]:
        return (
            db.query(Tenant)
            .filter(Tenant.slug == slug, Tenant.status == TenantStatus.ACTIVE.value)
            .first()
        )

    @staticmethod
    def get_active_by_number(db: Session, phone_number: Optional[str]) -> Optional[Tenant]:
        """Tenant that owns an inbound number (E.164, as the carrier sends it)"""
        number = normalize_phone_number(phone_number)
        if not number:
            return None
        return (
            db.query(Tenant)
            .filter(
                Tenant.assigned_phone_number == number,
                Tenant.status == TenantStatus.ACTIVE.value,
            )
            .first()
        )

    @staticmethod
    def lock(db: Session, tenant_id: int) -> Optional[Tenant]:
        """SELECT ... FOR UPDATE on the tenant row; a no-op on SQLite"""
        return db.query(Tenant).filter(Tenant.id == tenant_id).with_for_update().first()

    @staticmethod
    def get_platform_settings(db: Session) -> Optional[PlatformSettings]:
        return db.query(PlatformSettings).filter(PlatformSettings.id == PLATFORM_SETTINGS_ID).first()

    @staticmethod
    def get_or_create_platform_settings(db: Session) -> PlatformSettings:
        settings = TenantRepository.get_platform_settings(db)
        if not settings:
            settings = PlatformSettings(id=PLATFORM_SETTINGS_ID)
            db.add(settings)
            db.flush()
        return settings


def require_active_tenant(db: Session, slug: str) -> Tenant:
    """Active tenant for a public slug; uniform 404 for every other case"""
    tenant = TenantRepository.get_active_by_slug(db, slug)
    if not tenant:
        raise business_not_found()
    return tenant
