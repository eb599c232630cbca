from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .enums import (
    AppointmentStatus,
    CallStatus,
    ComplaintStatus,
    SmsStatus,
    TenantStatus,
)

PLATFORM_SETTINGS_ID = 1


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String(100), unique=True, index=True, nullable=False)  # URL-safe identity
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    status = Column(String(20), default=TenantStatus.ONBOARDING.value, nullable=False)
    # Inbound number the carrier routes to us; unique across tenants
    assigned_phone_number = Column(String(20), unique=True, index=True, nullable=True)
    forwarding_number = Column(String(20), nullable=True)  # Owner's phone, dialled before the IVR
    dial_timeout = Column(Integer, default=20, nullable=False)
    # Tenant-specific Twilio credentials (encrypted) - shared platform sender otherwise
    twilio_account_sid = Column(Text, nullable=True)
    twilio_auth_token = Column(Text, nullable=True)
    # IVR content
    ivr_greeting = Column(Text, nullable=True)
    ivr_callback_message = Column(Text, nullable=True)
    ivr_complaint_message = Column(Text, nullable=True)
    ivr_audio_url = Column(String(500), nullable=True)
    api_key_hash = Column(String(64), unique=True, index=True, nullable=True)  # sha256 of staff key
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    business_hours = relationship(
        "BusinessHours", back_populates="tenant", cascade="all, delete-orphan"
    )
    services = relationship("Service", back_populates="tenant", cascade="all, delete-orphan")
    appointments = relationship("Appointment", back_populates="tenant")
    calls = relationship("Call", back_populates="tenant")

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE.value


class BusinessHours(Base):
    """One row per (tenant, weekday) - always seven per tenant"""

    __tablename__ = "business_hours"
    __table_args__ = (UniqueConstraint("tenant_id", "day", name="uq_business_hours_tenant_day"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    day = Column(String(10), nullable=False)  # Weekday enum value
    is_open = Column(Boolean, default=True, nullable=False)
    open_time = Column(String(5), default="09:00", nullable=False)  # HH:MM
    close_time = Column(String(5), default="17:00", nullable=False)  # HH:MM

    tenant = relationship("Tenant", back_populates="business_hours")


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration = Column(Integer, nullable=False)  # minutes
    price = Column(Float, nullable=True)  # null means "see options"
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    tenant = relationship("Tenant", back_populates="services")
    options = relationship(
        "ServiceOption",
        back_populates="service",
        cascade="all, delete-orphan",
        order_by="ServiceOption.sort_order",
    )


class ServiceOption(Base):
    __tablename__ = "service_options"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration = Column(Integer, nullable=True)  # falls back to service duration
    price = Column(Float, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    default_quantity = Column(Integer, default=1, nullable=False)
    min_quantity = Column(Integer, default=1, nullable=False)
    max_quantity = Column(Integer, default=10, nullable=False)

    service = relationship("Service", back_populates="options")
    sub_options = relationship(
        "ServiceSubOption",
        back_populates="service_option",
        cascade="all, delete-orphan",
        order_by="ServiceSubOption.sort_order",
    )


class ServiceSubOption(Base):
    """Optional add-on attached to a service option"""

    __tablename__ = "service_sub_options"

    id = Column(Integer, primary_key=True, index=True)
    service_option_id = Column(Integer, ForeignKey("service_options.id"), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    service_option = relationship("ServiceOption", back_populates="sub_options")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # Backstop for the conflict guard: one live appointment per start tick
        Index(
            "uq_appointments_active_slot",
            "tenant_id",
            "date",
            "start_time",
            unique=True,
            postgresql_where=text("status NOT IN ('CANCELLED', 'NO_SHOW')"),
            sqlite_where=text("status NOT IN ('CANCELLED', 'NO_SHOW')"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    service_option_id = Column(Integer, ForeignKey("service_options.id"), nullable=True)
    quantity = Column(Integer, default=1, nullable=False)
    selected_sub_options = Column(JSON, default=list, nullable=False)  # ServiceSubOption ids
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(20), nullable=False)
    customer_email = Column(String(255), nullable=True)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    status = Column(String(20), default=AppointmentStatus.PENDING.value, nullable=False)
    notes = Column(Text, nullable=True)
    total_price = Column(Float, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="appointments")
    service = relationship("Service")
    service_option = relationship("ServiceOption")


class Call(Base):
    __tablename__ = "calls"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    twilio_call_sid = Column(String(64), index=True, nullable=True)
    caller_number = Column(String(20), nullable=False)
    status = Column(String(20), default=CallStatus.MISSED.value, nullable=False)
    ivr_response = Column(String(20), nullable=True)  # unset means NO_RESPONSE
    ivr_digit = Column(String(5), nullable=True)
    callback_handled = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="calls")
    sms_logs = relationship("SmsLog", back_populates="call")


class SmsLog(Base):
    """Append-only history of outbound messages; only status fields change"""

    __tablename__ = "sms_logs"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    call_id = Column(Integer, ForeignKey("calls.id"), nullable=True)
    twilio_message_sid = Column(String(64), index=True, nullable=True)
    to_number = Column(String(20), nullable=False)
    from_number = Column(String(20), nullable=True)
    body = Column(Text, nullable=False)
    type = Column(String(30), nullable=False)
    status = Column(String(20), default=SmsStatus.QUEUED.value, nullable=False)
    error_code = Column(String(20), nullable=True)
    error_message = Column(Text, nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    call = relationship("Call", back_populates="sms_logs")


class PhoneVerification(Base):
    """One-time code challenge; expired rows are left in place"""

    __tablename__ = "phone_verifications"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=True)
    phone = Column(String(20), index=True, nullable=False)
    code = Column(String(6), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    verified = Column(Boolean, default=False, nullable=False)  # consumed
    created_at = Column(DateTime, nullable=False, index=True)


class PlatformSettings(Base):
    """Singleton row of platform-wide settings"""

    __tablename__ = "platform_settings"

    id = Column(Integer, primary_key=True, default=PLATFORM_SETTINGS_ID)
    # Shared Twilio sender (encrypted)
    shared_twilio_sid = Column(Text, nullable=True)
    shared_twilio_token = Column(Text, nullable=True)
    shared_twilio_number = Column(String(20), nullable=True)
    default_ivr_greeting = Column(Text, nullable=True)
    default_ivr_callback = Column(Text, nullable=True)
    default_ivr_complaint = Column(Text, nullable=True)
    # Text-to-speech
    elevenlabs_api_key = Column(Text, nullable=True)  # encrypted
    elevenlabs_voice_id = Column(String(64), nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Complaint(Base):
    __tablename__ = "complaints"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    call_id = Column(Integer, ForeignKey("calls.id"), nullable=True)  # originating missed call
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(20), nullable=False)
    customer_email = Column(String(255), nullable=True)
    category = Column(String(30), nullable=False)
    description = Column(Text, nullable=False)
    reference_number = Column(String(20), unique=True, nullable=False)
    status = Column(String(20), default=ComplaintStatus.OPEN.value, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(20), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
