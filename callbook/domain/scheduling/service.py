"""
Scheduling service - booking conflict guard and appointment workflows

Every appointment, public or staff-created, goes through ``BookingGuard``:

1. service, option and add-ons exist, belong to the tenant and are active (NOT_FOUND)
2. quantity is clamped into the option's [min, max]; 1 without an option
3. add-ons must belong to the selected option (INVALID_SUBOPTION)
4. end = start + (option duration or service duration) * quantity
5. [start, end) lies inside the weekday's open hours (OUTSIDE_HOURS)
6. no live appointment that day overlaps [start, end) (SLOT_TAKEN)

The tenant row is locked before steps 5-6 and the insert shares their
transaction; the partial unique index on (tenant, date, start) backs it up.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import SLOT_INTERVAL_MINUTES
from ...enums import INACTIVE_APPOINTMENT_STATUSES, AppointmentStatus, SmsType, Weekday
from ...errors import ErrorKind, ServiceError
from ...models import Appointment, BusinessHours, Service, ServiceOption, Tenant
from ...security_utils import mask_sensitive_data
from ...shared.clock import Clock, utcnow
from ...timegrid import from_minutes, overlaps, to_minutes, within
from ..catalog.pricing import resolve_price
from ..catalog.repository import CatalogRepository
from ..messaging.dispatcher import MessageDispatcher
from ..messaging.templates import build_booking_confirmation_body
from ..tenants.repository import TenantRepository, require_active_tenant
from ..verification.service import VerificationService
from .availability import DayAvailability, calculate_availability
from .repository import SchedulingRepository
from .schemas import (
    AppointmentCreate,
    AppointmentUpdate,
    BookingRequest,
    BusinessHoursEntry,
)

logger = logging.getLogger(__name__)

# Applied to weekdays a tenant has never configured
DEFAULT_BUSINESS_HOURS = {
    Weekday.MONDAY: (True, "09:00", "17:00"),
    Weekday.TUESDAY: (True, "09:00", "17:00"),
    Weekday.WEDNESDAY: (True, "09:00", "17:00"),
    Weekday.THURSDAY: (True, "09:00", "17:00"),
    Weekday.FRIDAY: (True, "09:00", "17:00"),
    Weekday.SATURDAY: (True, "09:00", "14:00"),
    Weekday.SUNDAY: (False, "09:00", "17:00"),
}


def default_business_hours(tenant_id: int, day: Weekday) -> BusinessHours:
    """Unsaved row carrying the default hours for a weekday"""
    is_open, open_time, close_time = DEFAULT_BUSINESS_HOURS[day]
    return BusinessHours(
        tenant_id=tenant_id,
        day=day.value,
        is_open=is_open,
        open_time=open_time,
        close_time=close_time,
    )


def effective_business_hours(db: Session, tenant_id: int, day: Weekday) -> BusinessHours:
    """
    Stored row for the weekday, else the unsaved default.

    Availability, the booking guard and the hours listing all read hours this
    way, so a day the tenant never configured looks the same everywhere.
    """
    row = SchedulingRepository.get_business_hours(db, tenant_id, day)
    return row or default_business_hours(tenant_id, day)


def slot_taken() -> ServiceError:
    return ServiceError(ErrorKind.SLOT_TAKEN, "This time slot is no longer available")


@dataclass
class BookingPlan:
    """A validated booking, ready to persist"""

    service: Service
    option: Optional[ServiceOption]
    quantity: int
    sub_option_ids: list[int] = field(default_factory=list)
    day: Optional[date] = None
    start_minutes: int = 0
    end_minutes: int = 0
    total_price: float = 0.0


class BookingGuard:
    """Validates a proposed appointment; raises ServiceError with the first failed rule"""

    def __init__(self, db: Session):
        self.db = db
        self.catalog = CatalogRepository()
        self.repo = SchedulingRepository()

    def resolve_selection(self, tenant_id: int, data: AppointmentCreate) -> BookingPlan:
        """Steps 1-4: catalog ownership, quantity, add-ons, duration"""
        service = self.catalog.get_active_service(self.db, tenant_id, data.serviceId)
        if not service:
            raise ServiceError(ErrorKind.NOT_FOUND, "Service not found")

        option = None
        if data.serviceOptionId is not None:
            option = self.catalog.get_active_option(self.db, service.id, data.serviceOptionId)
            if not option:
                raise ServiceError(ErrorKind.NOT_FOUND, "Service option not found")

        sub_option_ids = list(dict.fromkeys(data.selectedSubOptionIds))
        if sub_option_ids:
            known = self.repo.sub_options_for_tenant(self.db, tenant_id, sub_option_ids)
            active_ids = {sub.id for sub in known if sub.is_active}
            if any(sub_id not in active_ids for sub_id in sub_option_ids):
                raise ServiceError(ErrorKind.NOT_FOUND, "Add-on not found")

        quantity = self.clamp_quantity(option, data.quantity)

        if sub_option_ids:
            allowed = {sub.id for sub in option.sub_options if sub.is_active} if option else set()
            if any(sub_id not in allowed for sub_id in sub_option_ids):
                logger.info(f"Rejected add-ons {sub_option_ids} for option {data.serviceOptionId}")
                raise ServiceError(ErrorKind.INVALID_SUBOPTION, "Invalid sub-option selected")

        unit_duration = (option.duration if option else None) or service.duration
        start_minutes = to_minutes(data.startTime)
        end_minutes = start_minutes + unit_duration * quantity

        return BookingPlan(
            service=service,
            option=option,
            quantity=quantity,
            sub_option_ids=sub_option_ids,
            day=data.date,
            start_minutes=start_minutes,
            end_minutes=end_minutes,
            total_price=resolve_price(service, option, quantity, sub_option_ids),
        )

    @staticmethod
    def clamp_quantity(option: Optional[ServiceOption], requested: Optional[int]) -> int:
        if option is None:
            return 1
        quantity = requested if requested is not None else option.default_quantity
        clamped = min(max(quantity, option.min_quantity), option.max_quantity)
        if clamped != quantity:
            logger.debug(f"Quantity {quantity} clamped to {clamped} for option {option.id}")
        return clamped

    def check_business_hours(self, tenant_id: int, day: date, start: int, end: int) -> None:
        """Step 5; ``start`` and ``end`` are minutes since midnight"""
        hours = effective_business_hours(self.db, tenant_id, Weekday.for_date(day))
        if not hours.is_open:
            raise ServiceError(ErrorKind.OUTSIDE_HOURS, "The business is closed on this day")
        if not within(start, end, to_minutes(hours.open_time), to_minutes(hours.close_time)):
            raise ServiceError(
                ErrorKind.OUTSIDE_HOURS,
                f"Appointments must fall between {hours.open_time} and {hours.close_time}",
            )

    def check_overlap(
        self,
        tenant_id: int,
        day: date,
        start: int,
        end: int,
        exclude_id: Optional[int] = None,
    ) -> None:
        """Step 6: half-open intersection against every live appointment that day"""
        for existing in self.repo.active_appointments_on(self.db, tenant_id, day, exclude_id):
            if overlaps(to_minutes(existing.start_time), to_minutes(existing.end_time), start, end):
                logger.info(
                    f"Slot {day} {from_minutes(start)}-{from_minutes(end)} overlaps appointment {existing.id}"
                )
                raise slot_taken()

    def validate(self, tenant_id: int, data: AppointmentCreate) -> BookingPlan:
        """Run all six checks in order; the tenant row stays locked until commit"""
        plan = self.resolve_selection(tenant_id, data)
        TenantRepository.lock(self.db, tenant_id)
        self.check_business_hours(tenant_id, plan.day, plan.start_minutes, plan.end_minutes)
        self.check_overlap(tenant_id, plan.day, plan.start_minutes, plan.end_minutes)
        return plan


class SchedulingService:
    """Service layer for availability and appointment workflows"""

    def __init__(self, db: Session, clock: Clock = utcnow, interval: int = SLOT_INTERVAL_MINUTES):
        self.db = db
        self.clock = clock
        self.interval = interval
        self.repo = SchedulingRepository()
        self.guard = BookingGuard(db)

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def day_availability(self, tenant_id: int, day: date) -> DayAvailability:
        hours = effective_business_hours(self.db, tenant_id, Weekday.for_date(day))
        appointments = self.repo.active_appointments_on(self.db, tenant_id, day)
        return calculate_availability(hours, appointments, self.interval)

    def public_availability(self, slug: str, day: date) -> DayAvailability:
        tenant = require_active_tenant(self.db, slug)
        return self.day_availability(tenant.id, day)

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def _persist(self, tenant_id: int, plan: BookingPlan, data: AppointmentCreate) -> Appointment:
        return self.repo.create_appointment(
            self.db,
            tenant_id=tenant_id,
            service_id=plan.service.id,
            service_option_id=plan.option.id if plan.option else None,
            quantity=plan.quantity,
            selected_sub_options=plan.sub_option_ids,
            customer_name=data.customerName,
            customer_phone=data.customerPhone,
            customer_email=data.customerEmail,
            date=plan.day,
            start_time=from_minutes(plan.start_minutes),
            end_time=from_minutes(plan.end_minutes),
            status=AppointmentStatus.PENDING.value,
            notes=data.notes or None,
            total_price=plan.total_price,
        )

    def _commit_booking(self) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("Concurrent booking claimed the slot first")
            raise slot_taken() from None

    def book_verified(self, tenant: Tenant, data: BookingRequest) -> Appointment:
        """Public booking: the verification code is consumed in the booking transaction"""
        verifier = VerificationService(self.db, self.clock)
        verification = verifier.find_valid(tenant.id, data.customerPhone, data.verificationCode)

        try:
            plan = self.guard.validate(tenant.id, data)
            appointment = self._persist(tenant.id, plan, data)
            verifier.consume(verification)
        except ServiceError:
            self.db.rollback()
            raise
        except IntegrityError:
            self.db.rollback()
            raise slot_taken() from None

        self._commit_booking()
        self.db.refresh(appointment)
        logger.info(
            f"Booked appointment {appointment.id} for tenant {tenant.id} on "
            f"{appointment.date} {appointment.start_time}-{appointment.end_time}"
        )
        return appointment

    async def book_public(
        self, slug: str, data: BookingRequest, dispatcher: MessageDispatcher
    ) -> Appointment:
        tenant = require_active_tenant(self.db, slug)
        appointment = self.book_verified(tenant, data)

        # Committed already; a failed notification never undoes the booking
        result = await dispatcher.send(
            tenant.id,
            appointment.customer_phone,
            build_booking_confirmation_body(
                tenant.name,
                appointment.service.name,
                appointment.date.isoformat(),
                appointment.start_time,
            ),
            SmsType.BOOKING_CONFIRMATION,
        )
        if not result.success:
            logger.warning(
                f"Booking confirmation to {mask_sensitive_data(appointment.customer_phone)} "
                f"not sent: {result.error}"
            )
        return appointment

    def create_appointment(self, tenant: Tenant, data: AppointmentCreate) -> Appointment:
        """Staff-created appointment; same guard, no phone verification"""
        try:
            plan = self.guard.validate(tenant.id, data)
            appointment = self._persist(tenant.id, plan, data)
        except ServiceError:
            self.db.rollback()
            raise
        except IntegrityError:
            self.db.rollback()
            raise slot_taken() from None

        self._commit_booking()
        self.db.refresh(appointment)
        logger.info(f"Staff created appointment {appointment.id} for tenant {tenant.id}")
        return appointment

    # ------------------------------------------------------------------
    # Staff management
    # ------------------------------------------------------------------

    def get_appointment(self, tenant: Tenant, appointment_id: int) -> Appointment:
        appointment = self.repo.get_appointment(self.db, tenant.id, appointment_id)
        if not appointment:
            raise ServiceError(ErrorKind.NOT_FOUND, "Appointment not found")
        return appointment

    def _reactivation_check(self, tenant_id: int, appointment: Appointment, new_status: str) -> None:
        """A cancelled or no-show appointment must win its slot back before going live"""
        if appointment.status in INACTIVE_APPOINTMENT_STATUSES and (
            new_status not in INACTIVE_APPOINTMENT_STATUSES
        ):
            self.guard.check_overlap(
                tenant_id,
                appointment.date,
                to_minutes(appointment.start_time),
                to_minutes(appointment.end_time),
                exclude_id=appointment.id,
            )

    def update_appointment(
        self, tenant: Tenant, appointment_id: int, data: AppointmentUpdate
    ) -> Appointment:
        appointment = self.get_appointment(tenant, appointment_id)

        try:
            if data.status is not None:
                TenantRepository.lock(self.db, tenant.id)
                self._reactivation_check(tenant.id, appointment, data.status.value)
                appointment.status = data.status.value
            if data.notes is not None:
                appointment.notes = data.notes or None
        except ServiceError:
            self.db.rollback()
            raise

        self._commit_booking()
        self.db.refresh(appointment)
        logger.info(f"Appointment {appointment.id} updated: status={appointment.status}")
        return appointment

    def bulk_update_status(self, tenant: Tenant, ids: list[int], status: AppointmentStatus) -> int:
        """Set one status on many appointments; all-or-nothing"""
        appointments = self.repo.get_appointments_by_ids(self.db, tenant.id, ids)

        try:
            TenantRepository.lock(self.db, tenant.id)
            for appointment in appointments:
                self._reactivation_check(tenant.id, appointment, status.value)
                appointment.status = status.value
                # Reactivated rows must see each other in the next overlap check
                self.db.flush()
        except ServiceError:
            self.db.rollback()
            raise
        except IntegrityError:
            self.db.rollback()
            raise slot_taken() from None

        self._commit_booking()
        logger.info(f"Bulk status update to {status.value}: {len(appointments)} appointments")
        return len(appointments)

    def list_appointments(
        self, tenant: Tenant, status: Optional[str], page: int, page_size: int
    ) -> dict:
        items, total = self.repo.list_appointments(self.db, tenant.id, status, page, page_size)
        counts = self.repo.status_counts(self.db, tenant.id)
        return {
            "items": items,
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": math.ceil(total / page_size) if total else 0,
            "stats": {
                "totalAppointments": sum(counts.values()),
                "totalRevenue": self.repo.total_revenue(self.db, tenant.id),
                "statusCounts": counts,
            },
        }

    # ------------------------------------------------------------------
    # Business hours
    # ------------------------------------------------------------------

    def get_business_hours(self, tenant: Tenant) -> list[BusinessHours]:
        """Seven rows in weekday order; unconfigured days carry unsaved defaults"""
        existing = self.repo.list_business_hours(self.db, tenant.id)
        return [
            existing.get(day.value) or default_business_hours(tenant.id, day)
            for day in Weekday
        ]

    def update_business_hours(
        self, tenant: Tenant, entries: list[BusinessHoursEntry]
    ) -> tuple[list[BusinessHours], list[Appointment]]:
        """
        Upsert the given weekdays (others keep their current rows).

        Returns the seven rows and the upcoming live appointments that now fall
        outside the new hours; those are reported, never cancelled.
        """
        rows = {row.day: row for row in self.get_business_hours(tenant)}
        for entry in entries:
            row = rows[entry.day.value]
            row.is_open = entry.isOpen
            row.open_time = entry.openTime
            row.close_time = entry.closeTime
        for row in rows.values():
            if row.id is None:
                self.db.add(row)
        self.db.commit()

        conflicting = []
        upcoming = self.repo.active_appointments_from(self.db, tenant.id, self.clock().date())
        by_day: dict[date, list[Appointment]] = {}
        for appointment in upcoming:
            by_day.setdefault(appointment.date, []).append(appointment)
        for day, appointments in by_day.items():
            hours = rows[Weekday.for_date(day).value]
            conflicting.extend(calculate_availability(hours, appointments, self.interval).conflicting)

        if conflicting:
            logger.warning(
                f"Business hours change for tenant {tenant.id} leaves "
                f"{len(conflicting)} appointments outside hours"
            )
        return [rows[day.value] for day in Weekday], conflicting
