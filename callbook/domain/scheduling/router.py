"""Scheduling router - public availability/booking and staff appointment endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_tenant
from ...database import get_db
from ...dependencies import get_dispatcher
from ...enums import AppointmentStatus
from ...errors import ErrorKind, ServiceError
from ...models import Tenant
from ...rate_limiter import create_rate_limiter
from ...shared.clock import Clock, get_clock
from ...shared.validators import parse_date
from ..messaging.dispatcher import MessageDispatcher
from .schemas import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentStats,
    AppointmentUpdate,
    AvailabilityResponse,
    BookedSlot,
    BookingRequest,
    BulkStatusUpdate,
    BusinessHoursUpdate,
    ConflictingAppointment,
    build_appointment_response,
    build_business_hours_response,
)
from .service import SchedulingService

logger = logging.getLogger(__name__)

public_router = APIRouter(prefix="/public/shop", tags=["Public Booking"])
router = APIRouter(prefix="/appointments", tags=["Appointments"])
hours_router = APIRouter(prefix="/tenant/business-hours", tags=["Business Hours"])

rate_limit_booking = create_rate_limiter(limit=20, window_seconds=600, key_prefix="public_book")


def get_scheduling_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> SchedulingService:
    """Dependency injection for SchedulingService"""
    return SchedulingService(db, clock)


# ============================================================================
# PUBLIC
# ============================================================================


@public_router.get("/{slug}/availability")
async def get_availability(
    slug: str,
    date: Optional[str] = Query(None),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Open hours and booked intervals for one calendar day"""
    if not date:
        raise ServiceError(ErrorKind.VALIDATION, "Date parameter required")
    try:
        day = parse_date(date)
    except ValueError as e:
        raise ServiceError(ErrorKind.VALIDATION, str(e)) from None

    availability = service.public_availability(slug, day)
    data = AvailabilityResponse(
        isOpen=availability.is_open,
        openTime=availability.open_time,
        closeTime=availability.close_time,
        bookedSlots=[
            BookedSlot(startTime=a.start_time, endTime=a.end_time) for a in availability.booked
        ]
        if availability.is_open
        else [],
        availableSlots=availability.available_slots,
    )
    return {"success": True, "data": data}


@public_router.post("/{slug}/book", dependencies=[Depends(rate_limit_booking)])
async def book_appointment(
    slug: str,
    data: BookingRequest,
    service: SchedulingService = Depends(get_scheduling_service),
    dispatcher: MessageDispatcher = Depends(get_dispatcher),
):
    """Create a PENDING appointment after phone verification"""
    appointment = await service.book_public(slug, data, dispatcher)
    return {"success": True, "data": build_appointment_response(appointment)}


# ============================================================================
# STAFF - APPOINTMENTS
# ============================================================================


@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    status: Optional[AppointmentStatus] = Query(None),
    page: int = Query(1, ge=1),
    pageSize: int = Query(20, ge=1, le=100),
    tenant: Tenant = Depends(get_current_tenant),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Paginated appointments with tenant-wide stats"""
    result = service.list_appointments(
        tenant, status.value if status else None, page, pageSize
    )
    return AppointmentListResponse(
        data=[build_appointment_response(a) for a in result["items"]],
        total=result["total"],
        page=result["page"],
        pageSize=result["page_size"],
        totalPages=result["total_pages"],
        stats=AppointmentStats(**result["stats"]),
    )


@router.post("")
async def create_appointment(
    data: AppointmentCreate,
    tenant: Tenant = Depends(get_current_tenant),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Staff booking - same conflict rules, no phone verification"""
    appointment = service.create_appointment(tenant, data)
    return {"success": True, "data": build_appointment_response(appointment)}


@router.patch("")
async def bulk_update_appointments(
    data: BulkStatusUpdate,
    tenant: Tenant = Depends(get_current_tenant),
    service: SchedulingService = Depends(get_scheduling_service),
):
    updated = service.bulk_update_status(tenant, data.ids, data.status)
    return {"success": True, "updated": updated}


@router.get("/{appointment_id}")
async def get_appointment(
    appointment_id: int,
    tenant: Tenant = Depends(get_current_tenant),
    service: SchedulingService = Depends(get_scheduling_service),
):
    appointment = service.get_appointment(tenant, appointment_id)
    return {"success": True, "data": build_appointment_response(appointment)}


@router.patch("/{appointment_id}")
async def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    tenant: Tenant = Depends(get_current_tenant),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Update status and/or notes"""
    appointment = service.update_appointment(tenant, appointment_id, data)
    return {"success": True, "data": build_appointment_response(appointment)}


# ============================================================================
# STAFF - BUSINESS HOURS
# ============================================================================


@hours_router.get("")
async def get_business_hours(
    tenant: Tenant = Depends(get_current_tenant),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return {"success": True, "data": build_business_hours_response(service.get_business_hours(tenant))}


@hours_router.put("")
async def update_business_hours(
    data: BusinessHoursUpdate,
    tenant: Tenant = Depends(get_current_tenant),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Upsert weekday hours; reports upcoming appointments now outside them"""
    rows, conflicting = service.update_business_hours(tenant, data.hours)
    return {
        "success": True,
        "data": build_business_hours_response(rows),
        "conflictingAppointments": [
            ConflictingAppointment(
                id=a.id,
                date=a.date,
                startTime=a.start_time,
                endTime=a.end_time,
                customerName=a.customer_name,
            )
            for a in conflicting
        ],
    }
