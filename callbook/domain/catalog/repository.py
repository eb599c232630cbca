"""Catalog repository - Database operations for services and options"""

from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...models import Service, ServiceOption


class CatalogRepository:
    """Repository for service catalog lookups"""

    @staticmethod
    def get_active_service(db: Session, tenant_id: int, service_id: int) -> Optional[Service]:
        """Get an active service owned by the tenant"""
        return (
            db.query(Service)
            .filter(
                Service.id == service_id,
                Service.tenant_id == tenant_id,
                Service.is_active.is_(True),
            )
            .first()
        )

    @staticmethod
    def get_active_option(db: Session, service_id: int, option_id: int) -> Optional[ServiceOption]:
        """Get an active option of the given service, with its add-ons loaded"""
        return (
            db.query(ServiceOption)
            .options(selectinload(ServiceOption.sub_options))
            .filter(
                ServiceOption.id == option_id,
                ServiceOption.service_id == service_id,
                ServiceOption.is_active.is_(True),
            )
            .first()
        )

    @staticmethod
    def list_active_services(db: Session, tenant_id: int) -> list[Service]:
        """Active services in display order, with options and add-ons loaded"""
        return (
            db.query(Service)
            .options(selectinload(Service.options).selectinload(ServiceOption.sub_options))
            .filter(Service.tenant_id == tenant_id, Service.is_active.is_(True))
            .order_by(Service.sort_order, Service.id)
            .all()
        )
