"""SMS message bodies"""

from typing import Optional

from ...config import APP_URL


def booking_url(slug: str) -> str:
    return f"{APP_URL}/shop/{slug}/book"


def complaint_url(slug: str, call_id: Optional[int] = None) -> str:
    url = f"{APP_URL}/shop/{slug}/complaint"
    if call_id is not None:
        url += f"?callId={call_id}"
    return url


def build_booking_sms_body(business_name: str, slug: str) -> str:
    return (
        f"Hi! You called {business_name} and we missed your call. "
        f"Book an appointment online: {booking_url(slug)}"
    )


def build_complaint_sms_body(business_name: str, slug: str, call_id: Optional[int] = None) -> str:
    return (
        f"Hi! Thank you for contacting {business_name}. "
        f"Tell us how we can help and we'll call you back: {complaint_url(slug, call_id)}"
    )


def build_otp_sms_body(business_name: str, code: str, ttl_minutes: int) -> str:
    return f"Your verification code for {business_name} is: {code}. It expires in {ttl_minutes} minutes."


def build_booking_confirmation_body(
    business_name: str, service_name: str, day: str, start_time: str
) -> str:
    return (
        f"Thanks for booking {service_name} with {business_name} on {day} at {start_time}. "
        "We'll confirm your appointment shortly."
    )
