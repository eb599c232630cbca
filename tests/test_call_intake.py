from conftest import CUSTOMER_PHONE, TENANT_NUMBER, create_tenant
from callbook.enums import CallStatus, IvrResponse, SmsType, TenantStatus
from callbook.models import Call, SmsLog


def place_call(client, to=TENANT_NUMBER, sid="CA0001"):
    return client.post("/twilio/voice", data={"To": to, "From": CUSTOMER_PHONE, "CallSid": sid})


def press(client, call_id, digits):
    data = {"Digits": digits} if digits is not None else {}
    return client.post(f"/twilio/gather?callId={call_id}", data=data)


def latest_call(db) -> Call:
    db.expire_all()
    return db.query(Call).order_by(Call.id.desc()).first()


def test_inbound_call_creates_missed_call_and_plays_menu(client, tenant, db) -> None:
    response = place_call(client)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/xml")
    body = response.text
    assert "<Gather" in body
    assert 'numDigits="1"' in body
    assert "Acme Cleaning" in body

    call = latest_call(db)
    assert call.status == CallStatus.MISSED.value
    assert call.ivr_response is None
    assert call.twilio_call_sid == "CA0001"
    assert f"callId={call.id}" in body


def test_unknown_number_gets_apology_and_no_call_record(client, tenant, db) -> None:
    response = place_call(client, to="+15559999999")

    assert response.status_code == 200
    assert "<Say" in response.text
    assert "<Gather" not in response.text
    assert db.query(Call).count() == 0


def test_inactive_tenant_number_is_treated_as_unknown(client, db) -> None:
    create_tenant(db, status=TenantStatus.SUSPENDED)

    place_call(client)

    assert db.query(Call).count() == 0


def test_digit_one_sends_exactly_one_booking_link(client, tenant, db, gateway) -> None:
    place_call(client)
    call = latest_call(db)

    response = press(client, call.id, "1")

    assert response.status_code == 200
    assert "<Hangup" in response.text
    call = latest_call(db)
    assert call.ivr_response == IvrResponse.CALLBACK.value
    assert call.ivr_digit == "1"
    assert len(gateway.sent) == 1
    assert "/shop/acme/book" in gateway.sent[0]["body"]
    logs = db.query(SmsLog).all()
    assert [log.type for log in logs] == [SmsType.BOOKING_LINK.value]
    assert logs[0].call_id == call.id


def test_digit_two_sends_complaint_link_with_call_id(client, tenant, db, gateway) -> None:
    place_call(client)
    call = latest_call(db)

    press(client, call.id, "2")

    assert latest_call(db).ivr_response == IvrResponse.COMPLAINT.value
    assert len(gateway.sent) == 1
    assert f"/shop/acme/complaint?callId={call.id}" in gateway.sent[0]["body"]
    assert db.query(SmsLog).one().type == SmsType.COMPLAINT_LINK.value


def test_other_digit_is_invalid_and_sends_nothing(client, tenant, db, gateway) -> None:
    place_call(client)
    call = latest_call(db)

    response = press(client, call.id, "7")

    assert "not a valid option" in response.text
    assert latest_call(db).ivr_response == IvrResponse.INVALID.value
    assert gateway.sent == []


def test_retransmitted_gather_does_not_send_twice(client, tenant, db, gateway) -> None:
    place_call(client)
    call = latest_call(db)

    first = press(client, call.id, "1")
    second = press(client, call.id, "2")

    assert second.status_code == 200
    assert second.text == first.text
    assert latest_call(db).ivr_response == IvrResponse.CALLBACK.value
    assert len(gateway.sent) == 1


def test_empty_digits_leave_response_unset(client, tenant, db, gateway) -> None:
    place_call(client)
    call = latest_call(db)

    response = press(client, call.id, None)

    assert "did not receive any input" in response.text
    assert latest_call(db).ivr_response is None
    assert gateway.sent == []


def test_gather_for_unknown_call_degrades_to_apology(client, tenant) -> None:
    for call_id in ("999", "not-a-number"):
        response = press(client, call_id, "1")
        assert response.status_code == 200
        assert "an error occurred" in response.text


def test_sms_failure_does_not_break_the_call(client, tenant, db, gateway) -> None:
    gateway.error = RuntimeError("network down")
    place_call(client)
    call = latest_call(db)

    response = press(client, call.id, "1")

    assert response.status_code == 200
    assert latest_call(db).ivr_response == IvrResponse.CALLBACK.value
    assert db.query(SmsLog).one().status == "FAILED"


def test_forwarding_number_dials_owner_first(client, db) -> None:
    create_tenant(db, forwarding_number="+15557770000")

    response = place_call(client)

    assert "<Dial" in response.text
    assert "+15557770000" in response.text
    call = latest_call(db)
    assert call.status == CallStatus.NO_ANSWER.value
    assert f"/twilio/dial-status?callId={call.id}" in response.text


def test_dial_status_answered_hangs_up(client, db) -> None:
    create_tenant(db, forwarding_number="+15557770000")
    place_call(client)
    call = latest_call(db)

    response = client.post(
        f"/twilio/dial-status?callId={call.id}", data={"DialCallStatus": "completed"}
    )

    assert "<Hangup" in response.text
    assert "<Gather" not in response.text
    assert latest_call(db).status == CallStatus.ANSWERED.value


def test_dial_status_no_answer_falls_back_to_menu(client, db) -> None:
    create_tenant(db, forwarding_number="+15557770000")
    place_call(client, sid="CA0042")

    # Lookup by CallSid when the callId query is missing
    response = client.post(
        "/twilio/dial-status", data={"CallSid": "CA0042", "DialCallStatus": "busy"}
    )

    assert "<Gather" in response.text
    assert latest_call(db).status == CallStatus.BUSY.value


def test_staff_can_filter_calls_without_response_and_mark_handled(client, tenant, db, staff_headers) -> None:
    place_call(client, sid="CA1")
    answered = latest_call(db)
    press(client, answered.id, "1")
    place_call(client, sid="CA2")
    silent = latest_call(db)

    response = client.get("/calls?ivrResponse=NO_RESPONSE", headers=staff_headers)

    assert response.status_code == 200
    body = response.json()
    assert [c["id"] for c in body["data"]] == [silent.id]
    assert body["data"][0]["ivrResponse"] == "NO_RESPONSE"

    response = client.get("/calls?ivrResponse=CALLBACK", headers=staff_headers)
    assert response.json()["data"][0]["smsLogs"][0]["type"] == "BOOKING_LINK"

    response = client.patch(f"/calls/{silent.id}", json={"callbackHandled": True}, headers=staff_headers)
    assert response.json()["data"]["callbackHandled"] is True
