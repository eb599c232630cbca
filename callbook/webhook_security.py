"""
Twilio webhook signature verification

Twilio signs every webhook with the auth token of the account that owns the
number. We accept a request when the X-Twilio-Signature header validates against
the platform token or the token of the tenant the request is addressed to.
"""

import logging

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session
from twilio.request_validator import RequestValidator

from .config import APP_URL, TWILIO_VALIDATE_SIGNATURES
from .database import get_db
from .dependencies import get_credential_store
from .models import Tenant
from .services.twilio_credentials import TwilioCredentialStore, tenant_credentials
from .shared.validators import normalize_phone_number

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Twilio-Signature"


def public_url(request: Request) -> str:
    """
    The URL Twilio signed. Behind a proxy request.url carries the internal host,
    so rebuild it from APP_URL.
    """
    url = f"{APP_URL}{request.url.path}"
    if request.url.query:
        url += f"?{request.url.query}"
    return url


def candidate_auth_tokens(
    db: Session, credential_store: TwilioCredentialStore, params: dict
) -> list[str]:
    tokens = []
    platform = credential_store.get(db)
    if platform:
        tokens.append(platform.auth_token)

    # Voice webhooks are addressed To the tenant; status callbacks come From it
    for field in ("To", "From", "Called"):
        number = normalize_phone_number(params.get(field))
        if not number:
            continue
        tenant = db.query(Tenant).filter(Tenant.assigned_phone_number == number).first()
        credentials = tenant_credentials(tenant) if tenant else None
        if credentials and credentials.auth_token not in tokens:
            tokens.append(credentials.auth_token)
    return tokens


async def verify_twilio_request(
    request: Request,
    db: Session = Depends(get_db),
    credential_store: TwilioCredentialStore = Depends(get_credential_store),
) -> None:
    """FastAPI dependency guarding the /twilio webhooks"""
    if not TWILIO_VALIDATE_SIGNATURES:
        return

    signature = request.headers.get(SIGNATURE_HEADER, "")
    if not signature:
        logger.warning(f"Missing {SIGNATURE_HEADER} on {request.url.path}")
        raise HTTPException(status_code=403, detail="Invalid signature")

    form = await request.form()
    params = {key: value for key, value in form.items()}
    url = public_url(request)

    for token in candidate_auth_tokens(db, credential_store, params):
        if RequestValidator(token).validate(url, params, signature):
            return

    logger.warning(f"Twilio signature mismatch on {request.url.path}")
    raise HTTPException(status_code=403, detail="Invalid signature")
