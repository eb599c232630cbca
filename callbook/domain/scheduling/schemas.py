"""Scheduling schemas - Pydantic models for bookings, appointments and hours"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...enums import AppointmentStatus, Weekday
from ...shared.validators import parse_date, validate_email, validate_phone, validate_time


class AppointmentCreate(BaseModel):
    """Booking fields shared by the public and staff flows"""

    serviceId: int
    serviceOptionId: Optional[int] = None
    quantity: Optional[int] = Field(None, ge=1)
    selectedSubOptionIds: list[int] = []
    customerName: str = Field(..., min_length=2, max_length=255)
    customerPhone: str
    customerEmail: Optional[str] = None
    date: date
    startTime: str
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("customerName")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name is required")
        return v

    @field_validator("customerPhone")
    @classmethod
    def validate_customer_phone(cls, v):
        return validate_phone(v)

    @field_validator("customerEmail")
    @classmethod
    def validate_customer_email(cls, v):
        return validate_email(v)

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v):
        if isinstance(v, str):
            return parse_date(v)
        return v

    @field_validator("startTime")
    @classmethod
    def validate_start_time(cls, v):
        return validate_time(v)


class BookingRequest(AppointmentCreate):
    """Public booking; requires a code from /verify-phone"""

    verificationCode: str = Field(..., min_length=4, max_length=10)


class AppointmentUpdate(BaseModel):
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = Field(None, max_length=2000)


class BulkStatusUpdate(BaseModel):
    ids: list[int] = Field(..., min_length=1)
    status: AppointmentStatus


class SubOptionSummary(BaseModel):
    id: int
    name: Optional[str] = None
    price: Optional[float] = None


class AppointmentResponse(BaseModel):
    id: int
    serviceId: int
    serviceName: Optional[str] = None
    serviceOptionId: Optional[int] = None
    serviceOptionName: Optional[str] = None
    quantity: int
    selectedSubOptionIds: list[int] = []
    resolvedSubOptions: list[SubOptionSummary] = []
    customerName: str
    customerPhone: str
    customerEmail: Optional[str] = None
    date: date
    startTime: str
    endTime: str
    status: str
    notes: Optional[str] = None
    totalPrice: float
    createdAt: Optional[datetime] = None


def build_appointment_response(appointment) -> AppointmentResponse:
    option = appointment.service_option
    selected = list(appointment.selected_sub_options or [])
    resolved = []
    if option is not None:
        resolved = [
            SubOptionSummary(id=sub.id, name=sub.name, price=sub.price)
            for sub in option.sub_options
            if sub.id in selected
        ]
    return AppointmentResponse(
        id=appointment.id,
        serviceId=appointment.service_id,
        serviceName=appointment.service.name if appointment.service else None,
        serviceOptionId=appointment.service_option_id,
        serviceOptionName=option.name if option else None,
        quantity=appointment.quantity,
        selectedSubOptionIds=selected,
        resolvedSubOptions=resolved,
        customerName=appointment.customer_name,
        customerPhone=appointment.customer_phone,
        customerEmail=appointment.customer_email,
        date=appointment.date,
        startTime=appointment.start_time,
        endTime=appointment.end_time,
        status=appointment.status,
        notes=appointment.notes,
        totalPrice=appointment.total_price,
        createdAt=appointment.created_at,
    )


class BookedSlot(BaseModel):
    startTime: str
    endTime: str


class AvailabilityResponse(BaseModel):
    isOpen: bool
    openTime: Optional[str] = None
    closeTime: Optional[str] = None
    bookedSlots: list[BookedSlot] = []
    availableSlots: list[str] = []


class AppointmentStats(BaseModel):
    totalAppointments: int
    totalRevenue: float
    statusCounts: dict[str, int]


class AppointmentListResponse(BaseModel):
    success: bool = True
    data: list[AppointmentResponse]
    total: int
    page: int
    pageSize: int
    totalPages: int
    stats: AppointmentStats


class BusinessHoursEntry(BaseModel):
    day: Weekday
    isOpen: bool
    openTime: str = "09:00"
    closeTime: str = "17:00"

    @field_validator("openTime", "closeTime")
    @classmethod
    def validate_hhmm(cls, v):
        return validate_time(v)

    @model_validator(mode="after")
    def check_order(self):
        if self.isOpen and self.openTime >= self.closeTime:
            raise ValueError("Opening time must be before closing time")
        return self


class BusinessHoursUpdate(BaseModel):
    hours: list[BusinessHoursEntry]

    @field_validator("hours")
    @classmethod
    def unique_days(cls, v):
        days = [entry.day for entry in v]
        if len(days) != len(set(days)):
            raise ValueError("Each weekday may appear only once")
        return v


class BusinessHoursResponse(BaseModel):
    day: str
    isOpen: bool
    openTime: str
    closeTime: str


class ConflictingAppointment(BaseModel):
    id: int
    date: date
    startTime: str
    endTime: str
    customerName: str


def build_business_hours_response(rows) -> list[BusinessHoursResponse]:
    return [
        BusinessHoursResponse(
            day=row.day, isOpen=row.is_open, openTime=row.open_time, closeTime=row.close_time
        )
        for row in rows
    ]
