"""Scheduling repository - Database operations for appointments and business hours"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload

from ...enums import INACTIVE_APPOINTMENT_STATUSES, Weekday
from ...models import Appointment, BusinessHours, Service, ServiceOption, ServiceSubOption


class SchedulingRepository:
    """Repository for appointment and business hours data access"""

    @staticmethod
    def get_business_hours(db: Session, tenant_id: int, day: Weekday) -> Optional[BusinessHours]:
        return (
            db.query(BusinessHours)
            .filter(BusinessHours.tenant_id == tenant_id, BusinessHours.day == day.value)
            .first()
        )

    @staticmethod
    def list_business_hours(db: Session, tenant_id: int) -> dict[str, BusinessHours]:
        rows = db.query(BusinessHours).filter(BusinessHours.tenant_id == tenant_id).all()
        return {row.day: row for row in rows}

    @staticmethod
    def active_appointments_on(
        db: Session, tenant_id: int, day: date, exclude_id: Optional[int] = None
    ) -> list[Appointment]:
        """Appointments still holding their slot on ``day``"""
        query = db.query(Appointment).filter(
            Appointment.tenant_id == tenant_id,
            Appointment.date == day,
            Appointment.status.notin_(INACTIVE_APPOINTMENT_STATUSES),
        )
        if exclude_id is not None:
            query = query.filter(Appointment.id != exclude_id)
        return query.order_by(Appointment.start_time).all()

    @staticmethod
    def active_appointments_from(db: Session, tenant_id: int, start: date) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(
                Appointment.tenant_id == tenant_id,
                Appointment.date >= start,
                Appointment.status.notin_(INACTIVE_APPOINTMENT_STATUSES),
            )
            .order_by(Appointment.date, Appointment.start_time)
            .all()
        )

    @staticmethod
    def sub_options_for_tenant(db: Session, tenant_id: int, ids: list[int]) -> list[ServiceSubOption]:
        """Add-ons with the given ids that sit under one of the tenant's services"""
        if not ids:
            return []
        return (
            db.query(ServiceSubOption)
            .join(ServiceOption, ServiceSubOption.service_option_id == ServiceOption.id)
            .join(Service, ServiceOption.service_id == Service.id)
            .filter(Service.tenant_id == tenant_id, ServiceSubOption.id.in_(ids))
            .all()
        )

    @staticmethod
    def create_appointment(db: Session, **appointment_data) -> Appointment:
        """Stage a new appointment; the caller owns the commit"""
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def get_appointment(db: Session, tenant_id: int, appointment_id: int) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(
                joinedload(Appointment.service),
                joinedload(Appointment.service_option).selectinload(ServiceOption.sub_options),
            )
            .filter(Appointment.id == appointment_id, Appointment.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def get_appointments_by_ids(db: Session, tenant_id: int, ids: list[int]) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(Appointment.tenant_id == tenant_id, Appointment.id.in_(ids))
            .order_by(Appointment.date, Appointment.start_time, Appointment.id)
            .all()
        )

    @staticmethod
    def list_appointments(
        db: Session,
        tenant_id: int,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Appointment], int]:
        query = db.query(Appointment).filter(Appointment.tenant_id == tenant_id)
        if status:
            query = query.filter(Appointment.status == status)

        total = query.count()
        items = (
            query.options(
                joinedload(Appointment.service),
                joinedload(Appointment.service_option).selectinload(ServiceOption.sub_options),
            )
            .order_by(Appointment.date.desc(), Appointment.start_time.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total

    @staticmethod
    def status_counts(db: Session, tenant_id: int) -> dict[str, int]:
        rows = (
            db.query(Appointment.status, func.count(Appointment.id))
            .filter(Appointment.tenant_id == tenant_id)
            .group_by(Appointment.status)
            .all()
        )
        return {status: count for status, count in rows}

    @staticmethod
    def total_revenue(db: Session, tenant_id: int) -> float:
        """Sum of resolved prices, excluding cancelled and no-show appointments"""
        total = (
            db.query(func.coalesce(func.sum(Appointment.total_price), 0))
            .filter(
                Appointment.tenant_id == tenant_id,
                Appointment.status.notin_(INACTIVE_APPOINTMENT_STATUSES),
            )
            .scalar()
        )
        return round(float(total or 0), 2)
