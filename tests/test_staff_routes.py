from conftest import MONDAY, SATURDAY, SUNDAY, create_tenant
from callbook import auth
from callbook.models import BusinessHours, PlatformSettings
from callbook.security_utils import decrypt_credential


def create_appointment(client, headers, catalog, start="10:00", day=MONDAY, **extra):
    payload = {
        "serviceId": catalog.haircut.id,
        "customerName": "Walk In",
        "customerPhone": "+15557654321",
        "date": day.isoformat(),
        "startTime": start,
    }
    payload.update(extra)
    return client.post("/appointments", json=payload, headers=headers)


def test_staff_routes_require_a_known_api_key(client, tenant) -> None:
    response = client.get("/appointments", headers={"Authorization": "Bearer sk_wrong"})
    assert response.status_code == 401


def test_staff_booking_uses_the_same_guard(client, catalog, staff_headers) -> None:
    assert create_appointment(client, staff_headers, catalog).status_code == 200

    response = create_appointment(client, staff_headers, catalog)

    assert response.status_code == 409
    assert response.json()["error"] == "SLOT_TAKEN"


def test_appointment_list_stats_exclude_cancelled_revenue(client, catalog, staff_headers) -> None:
    first = create_appointment(client, staff_headers, catalog, "10:00").json()["data"]
    create_appointment(
        client,
        staff_headers,
        catalog,
        "11:00",
        serviceId=catalog.carpet.id,
        serviceOptionId=catalog.rooms.id,
        quantity=2,
    )
    client.patch(f"/appointments/{first['id']}", json={"status": "CANCELLED"}, headers=staff_headers)

    body = client.get("/appointments", headers=staff_headers).json()

    assert body["total"] == 2
    assert body["stats"]["totalAppointments"] == 2
    assert body["stats"]["totalRevenue"] == 100.0
    assert body["stats"]["statusCounts"]["CANCELLED"] == 1

    cancelled = client.get("/appointments?status=CANCELLED", headers=staff_headers).json()
    assert [a["id"] for a in cancelled["data"]] == [first["id"]]


def test_bulk_status_update(client, catalog, staff_headers) -> None:
    ids = [
        create_appointment(client, staff_headers, catalog, start).json()["data"]["id"]
        for start in ("10:00", "11:00")
    ]

    response = client.patch("/appointments", json={"ids": ids, "status": "CONFIRMED"}, headers=staff_headers)

    assert response.json() == {"success": True, "updated": 2}
    for appointment_id in ids:
        data = client.get(f"/appointments/{appointment_id}", headers=staff_headers).json()["data"]
        assert data["status"] == "CONFIRMED"


def test_other_tenants_appointment_is_not_found(client, catalog, staff_headers) -> None:
    assert client.get("/appointments/4242", headers=staff_headers).status_code == 404


def test_business_hours_always_returns_seven_days(client, tenant, db, staff_headers) -> None:
    db.query(BusinessHours).delete()
    db.commit()

    data = client.get("/tenant/business-hours", headers=staff_headers).json()["data"]

    assert [row["day"] for row in data] == [
        "MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY",
    ]
    assert data[5] == {"day": "SATURDAY", "isOpen": True, "openTime": "09:00", "closeTime": "14:00"}
    assert data[6]["isOpen"] is False
    # Listing is a read; rows are only written by the upsert
    assert db.query(BusinessHours).count() == 0


def test_first_hours_update_writes_all_seven_days(client, tenant, db, staff_headers) -> None:
    db.query(BusinessHours).delete()
    db.commit()

    response = client.put(
        "/tenant/business-hours",
        json={"hours": [{"day": "SUNDAY", "isOpen": True, "openTime": "10:00", "closeTime": "12:00"}]},
        headers=staff_headers,
    )

    assert response.status_code == 200
    assert db.query(BusinessHours).count() == 7
    rows = {row.day: row for row in db.query(BusinessHours).all()}
    assert rows["SUNDAY"].is_open is True
    assert rows["MONDAY"].open_time == "09:00"


def test_unconfigured_days_use_default_hours_for_booking(client, catalog, db, staff_headers) -> None:
    db.query(BusinessHours).delete()
    db.commit()

    assert create_appointment(client, staff_headers, catalog, "10:00").status_code == 200

    response = create_appointment(client, staff_headers, catalog, "10:00", day=SUNDAY)
    assert response.status_code == 400
    assert response.json()["error"] == "OUTSIDE_HOURS"
    assert db.query(BusinessHours).count() == 0


def test_narrowing_hours_reports_conflicting_appointments(client, catalog, db, staff_headers) -> None:
    late = create_appointment(client, staff_headers, catalog, "13:00", day=SATURDAY).json()["data"]
    create_appointment(client, staff_headers, catalog, "10:00", day=SATURDAY)

    response = client.put(
        "/tenant/business-hours",
        json={"hours": [{"day": "SATURDAY", "isOpen": True, "openTime": "09:00", "closeTime": "12:00"}]},
        headers=staff_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert [a["id"] for a in body["conflictingAppointments"]] == [late["id"]]
    assert body["data"][5]["closeTime"] == "12:00"
    assert db.query(BusinessHours).count() == 7

    # Reported, not cancelled
    fetched = client.get(f"/appointments/{late['id']}", headers=staff_headers).json()["data"]
    assert fetched["status"] == "PENDING"


def test_business_hours_validation(client, tenant, staff_headers) -> None:
    backwards = {"hours": [{"day": "MONDAY", "isOpen": True, "openTime": "17:00", "closeTime": "09:00"}]}
    duplicated = {
        "hours": [
            {"day": "MONDAY", "isOpen": False},
            {"day": "MONDAY", "isOpen": True},
        ]
    }

    for payload in (backwards, duplicated):
        response = client.put("/tenant/business-hours", json=payload, headers=staff_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION"


def test_greeting_change_queues_audio_regeneration(client, tenant, db, staff_headers, monkeypatch) -> None:
    submitted = []
    monkeypatch.setattr(
        client.app.state.audio_runner,
        "submit",
        lambda name, job, on_done=None: submitted.append(name),
    )

    response = client.put(
        "/tenant/ivr",
        json={"ivrGreeting": "Hi, you reached Acme.", "forwardingNumber": "555-777-0000"},
        headers=staff_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["audioRegenerationQueued"] is True
    assert data["forwardingNumber"] == "+15557770000"
    assert data["ivrAudioUrl"] is None
    assert submitted == [f"ivr-greeting-{tenant.id}"]

    # Same greeting again: nothing to regenerate
    client.put("/tenant/ivr", json={"ivrGreeting": "Hi, you reached Acme."}, headers=staff_headers)
    assert len(submitted) == 1

    response = client.post("/tenant/ivr/regenerate", headers=staff_headers)
    assert response.status_code == 202
    assert len(submitted) == 2


def test_option_text_change_drops_recorded_menu(client, tenant, db, staff_headers, monkeypatch) -> None:
    submitted = []
    monkeypatch.setattr(
        client.app.state.audio_runner,
        "submit",
        lambda name, job, on_done=None: submitted.append(name),
    )
    tenant.ivr_audio_url = "/uploads/ivr/1-100.mp3"
    db.commit()

    response = client.put(
        "/tenant/ivr",
        json={"ivrComplaintMessage": "Press 2 to tell us how we did."},
        headers=staff_headers,
    )

    data = response.json()["data"]
    assert data["audioRegenerationQueued"] is True
    assert data["ivrAudioUrl"] is None
    assert submitted == [f"ivr-greeting-{tenant.id}"]


def test_platform_default_change_drops_inherited_recordings(client, tenant, db, monkeypatch) -> None:
    monkeypatch.setattr(auth, "ADMIN_API_KEY", "admin-secret")
    own = create_tenant(db, slug="rival", number="+15550002222", api_key="sk_rival")
    own.ivr_greeting = "Rival here."
    tenant.ivr_audio_url = "/uploads/ivr/1-100.mp3"
    own.ivr_audio_url = "/uploads/ivr/2-100.mp3"
    db.commit()

    response = client.patch(
        "/admin/settings",
        json={"defaultIvrGreeting": "Sorry we missed you."},
        headers={"Authorization": "Bearer admin-secret"},
    )

    assert response.status_code == 200
    db.expire_all()
    assert tenant.ivr_audio_url is None
    assert own.ivr_audio_url == "/uploads/ivr/2-100.mp3"


def test_admin_settings_encrypt_mask_and_invalidate(client, db, credential_store, monkeypatch) -> None:
    monkeypatch.setattr(auth, "ADMIN_API_KEY", "admin-secret")
    headers = {"Authorization": "Bearer admin-secret"}
    invalidated = []
    monkeypatch.setattr(credential_store, "invalidate", lambda: invalidated.append(True))

    response = client.patch(
        "/admin/settings",
        json={"sharedTwilioSid": "AC1234567890", "sharedTwilioToken": "secret-token"},
        headers=headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["sharedTwilioSid"] == "********7890"
    assert data["sharedTwilioTokenSet"] is True
    assert "secret-token" not in response.text
    assert invalidated == [True]

    settings = db.query(PlatformSettings).one()
    assert settings.shared_twilio_token != "secret-token"
    assert decrypt_credential(settings.shared_twilio_token) == "secret-token"


def test_admin_settings_reject_wrong_key(client, monkeypatch) -> None:
    monkeypatch.setattr(auth, "ADMIN_API_KEY", "admin-secret")

    response = client.get("/admin/settings", headers={"Authorization": "Bearer nope"})

    assert response.status_code == 403
