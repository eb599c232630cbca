import pytest

from conftest import MONDAY, SUNDAY, create_catalog, create_tenant
from callbook.domain.scheduling.schemas import AppointmentCreate, AppointmentUpdate
from callbook.domain.scheduling.service import SchedulingService
from callbook.enums import AppointmentStatus
from callbook.errors import ErrorKind, ServiceError
from callbook.models import Appointment


def booking(service_id, start="14:00", day=MONDAY, **extra) -> AppointmentCreate:
    return AppointmentCreate(
        serviceId=service_id,
        customerName="Jane Doe",
        customerPhone="555-123-4567",
        date=day.isoformat(),
        startTime=start,
        **extra,
    )


def rejection(service, tenant, data) -> ErrorKind:
    with pytest.raises(ServiceError) as exc_info:
        service.create_appointment(tenant, data)
    return exc_info.value.kind


@pytest.fixture
def scheduling(db, clock) -> SchedulingService:
    return SchedulingService(db, clock)


def test_second_booking_of_same_slot_is_rejected(scheduling, catalog, db) -> None:
    first = scheduling.create_appointment(catalog.tenant, booking(catalog.haircut.id, "14:00"))

    assert first.start_time == "14:00"
    assert first.end_time == "14:30"
    assert first.status == AppointmentStatus.PENDING.value
    assert first.total_price == 40.0
    assert first.customer_phone == "+15551234567"

    assert rejection(scheduling, catalog.tenant, booking(catalog.haircut.id, "14:00")) == ErrorKind.SLOT_TAKEN

    adjacent = scheduling.create_appointment(catalog.tenant, booking(catalog.haircut.id, "14:30"))
    assert adjacent.end_time == "15:00"
    assert db.query(Appointment).count() == 2


def test_partial_overlap_is_slot_taken(scheduling, catalog) -> None:
    scheduling.create_appointment(catalog.tenant, booking(catalog.haircut.id, "14:00"))

    # 13:45-14:15 straddles the existing 14:00-14:30
    assert rejection(scheduling, catalog.tenant, booking(catalog.haircut.id, "13:45")) == ErrorKind.SLOT_TAKEN


def test_booking_must_end_by_closing_time(scheduling, catalog) -> None:
    assert rejection(scheduling, catalog.tenant, booking(catalog.haircut.id, "16:45")) == ErrorKind.OUTSIDE_HOURS
    assert rejection(scheduling, catalog.tenant, booking(catalog.haircut.id, "08:30")) == ErrorKind.OUTSIDE_HOURS

    last = scheduling.create_appointment(catalog.tenant, booking(catalog.haircut.id, "16:30"))
    assert last.end_time == "17:00"


def test_closed_day_is_outside_hours(scheduling, catalog) -> None:
    data = booking(catalog.haircut.id, "10:00", day=SUNDAY)
    assert rejection(scheduling, catalog.tenant, data) == ErrorKind.OUTSIDE_HOURS


def test_duration_and_price_scale_with_quantity(scheduling, catalog) -> None:
    data = booking(
        catalog.carpet.id,
        "10:00",
        serviceOptionId=catalog.rooms.id,
        quantity=3,
        selectedSubOptionIds=[catalog.stain_guard.id],
    )
    appointment = scheduling.create_appointment(catalog.tenant, data)

    assert appointment.end_time == "11:30"
    assert appointment.quantity == 3
    assert appointment.total_price == 165.0
    assert appointment.selected_sub_options == [catalog.stain_guard.id]


def test_quantity_is_clamped_to_option_bounds(scheduling, catalog) -> None:
    data = booking(catalog.carpet.id, "10:00", serviceOptionId=catalog.rooms.id, quantity=9)
    appointment = scheduling.create_appointment(catalog.tenant, data)

    assert appointment.quantity == 5
    assert appointment.end_time == "12:30"
    assert appointment.total_price == 250.0


def test_missing_quantity_uses_option_default(scheduling, catalog) -> None:
    data = booking(catalog.carpet.id, "10:00", serviceOptionId=catalog.rooms.id)
    appointment = scheduling.create_appointment(catalog.tenant, data)

    assert appointment.quantity == 1
    assert appointment.end_time == "10:30"


def test_quantity_without_option_is_one(scheduling, catalog) -> None:
    appointment = scheduling.create_appointment(catalog.tenant, booking(catalog.haircut.id, "10:00", quantity=4))

    assert appointment.quantity == 1
    assert appointment.end_time == "10:30"


def test_option_without_duration_inherits_service_duration(scheduling, catalog) -> None:
    data = booking(catalog.carpet.id, "10:00", serviceOptionId=catalog.deep.id)
    appointment = scheduling.create_appointment(catalog.tenant, data)

    assert appointment.end_time == "11:00"
    assert appointment.total_price == 120.0


def test_add_on_from_another_option_is_invalid(scheduling, catalog, db) -> None:
    data = booking(
        catalog.carpet.id,
        "10:00",
        serviceOptionId=catalog.rooms.id,
        selectedSubOptionIds=[catalog.pet_treatment.id],
    )

    assert rejection(scheduling, catalog.tenant, data) == ErrorKind.INVALID_SUBOPTION
    assert db.query(Appointment).count() == 0


def test_add_ons_without_an_option_are_invalid(scheduling, catalog) -> None:
    data = booking(catalog.haircut.id, "10:00", selectedSubOptionIds=[catalog.stain_guard.id])
    assert rejection(scheduling, catalog.tenant, data) == ErrorKind.INVALID_SUBOPTION


def test_inactive_or_unknown_catalog_entries_are_not_found(scheduling, catalog, db) -> None:
    assert rejection(scheduling, catalog.tenant, booking(9999)) == ErrorKind.NOT_FOUND

    data = booking(catalog.carpet.id, serviceOptionId=catalog.deep.id + 100)
    assert rejection(scheduling, catalog.tenant, data) == ErrorKind.NOT_FOUND

    catalog.deodorize.is_active = False
    db.commit()
    data = booking(
        catalog.carpet.id,
        serviceOptionId=catalog.rooms.id,
        selectedSubOptionIds=[catalog.deodorize.id],
    )
    assert rejection(scheduling, catalog.tenant, data) == ErrorKind.NOT_FOUND


def test_other_tenants_catalog_is_not_found(scheduling, catalog, db) -> None:
    other = create_tenant(db, slug="rival", number="+15550002222", api_key="sk_rival")
    other_catalog = create_catalog(db, other)

    assert rejection(scheduling, catalog.tenant, booking(other_catalog.haircut.id)) == ErrorKind.NOT_FOUND


def test_tenants_do_not_block_each_others_slots(scheduling, catalog, db) -> None:
    other = create_tenant(db, slug="rival", number="+15550002222", api_key="sk_rival")
    other_catalog = create_catalog(db, other)

    scheduling.create_appointment(catalog.tenant, booking(catalog.haircut.id, "14:00"))
    rival = scheduling.create_appointment(other, booking(other_catalog.haircut.id, "14:00"))

    assert rival.start_time == "14:00"


def test_cancelled_appointment_frees_its_slot_until_reactivated(scheduling, catalog) -> None:
    first = scheduling.create_appointment(catalog.tenant, booking(catalog.haircut.id, "14:00"))
    scheduling.update_appointment(
        catalog.tenant, first.id, AppointmentUpdate(status=AppointmentStatus.CANCELLED)
    )

    replacement = scheduling.create_appointment(catalog.tenant, booking(catalog.haircut.id, "14:00"))
    assert replacement.status == AppointmentStatus.PENDING.value

    with pytest.raises(ServiceError) as exc_info:
        scheduling.update_appointment(
            catalog.tenant, first.id, AppointmentUpdate(status=AppointmentStatus.CONFIRMED)
        )
    assert exc_info.value.kind == ErrorKind.SLOT_TAKEN


def test_bulk_reactivation_is_all_or_nothing(scheduling, catalog, db) -> None:
    a = scheduling.create_appointment(catalog.tenant, booking(catalog.haircut.id, "10:00"))
    b = scheduling.create_appointment(catalog.tenant, booking(catalog.haircut.id, "11:00"))
    scheduling.bulk_update_status(catalog.tenant, [a.id, b.id], AppointmentStatus.CANCELLED)
    scheduling.create_appointment(catalog.tenant, booking(catalog.haircut.id, "11:00"))

    with pytest.raises(ServiceError) as exc_info:
        scheduling.bulk_update_status(catalog.tenant, [a.id, b.id], AppointmentStatus.CONFIRMED)
    assert exc_info.value.kind == ErrorKind.SLOT_TAKEN

    db.expire_all()
    assert db.get(Appointment, a.id).status == AppointmentStatus.CANCELLED.value
    assert db.get(Appointment, b.id).status == AppointmentStatus.CANCELLED.value
