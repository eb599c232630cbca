"""Verification router - public one-time code requests"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...dependencies import get_dispatcher
from ...rate_limiter import create_rate_limiter
from ...shared.clock import Clock, get_clock
from ..messaging.dispatcher import MessageDispatcher
from ..tenants.repository import require_active_tenant
from .schemas import PhoneVerificationRequest
from .service import VerificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public/shop", tags=["Public Verification"])

rate_limit_verify = create_rate_limiter(limit=10, window_seconds=600, key_prefix="verify_phone")


@router.post("/{slug}/verify-phone", dependencies=[Depends(rate_limit_verify)])
async def request_verification_code(
    slug: str,
    data: PhoneVerificationRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: MessageDispatcher = Depends(get_dispatcher),
):
    """Send a six-digit code to the customer's phone"""
    tenant = require_active_tenant(db, slug)
    await VerificationService(db, clock).request_code(tenant, data.phone, dispatcher)
    return {"success": True}
