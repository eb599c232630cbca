"""
Calls router - Twilio voice webhooks and staff call history

The webhooks always answer with TwiML: any internal fault degrades to the
shared apology prompt so the caller never hears a dead line.
"""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Form, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_tenant
from ...database import get_db
from ...dependencies import get_dispatcher
from ...enums import CallStatus, IvrResponse
from ...errors import ErrorKind, ServiceError
from ...models import Tenant
from ...webhook_security import verify_twilio_request
from ..messaging.dispatcher import MessageDispatcher
from .repository import CallRepository
from .schemas import CallUpdate, build_call_response
from .service import CallIntakeService
from .twiml import build_error_response

logger = logging.getLogger(__name__)

webhook_router = APIRouter(
    prefix="/twilio", tags=["Twilio Webhooks"], dependencies=[Depends(verify_twilio_request)]
)
router = APIRouter(prefix="/calls", tags=["Calls"])


def twiml_response(body: str) -> Response:
    return Response(content=body, media_type="text/xml")


def parse_call_id(raw: Optional[str]) -> Optional[int]:
    """Malformed ids read as unknown calls rather than validation errors"""
    try:
        return int(raw) if raw else None
    except ValueError:
        return None


def get_intake_service(db: Session = Depends(get_db)) -> CallIntakeService:
    return CallIntakeService(db)


# ============================================================================
# TWILIO WEBHOOKS
# ============================================================================


@webhook_router.post("/voice")
async def voice_webhook(
    To: Optional[str] = Form(None),
    From: Optional[str] = Form(None),
    CallSid: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    intake: CallIntakeService = Depends(get_intake_service),
):
    try:
        result = intake.handle_incoming(To, From, CallSid)
    except Exception:
        db.rollback()
        logger.exception(f"Voice webhook failed for call {CallSid}")
        return twiml_response(build_error_response())
    return twiml_response(result.twiml)


@webhook_router.post("/dial-status")
async def dial_status_webhook(
    callId: Optional[str] = Query(None),
    CallSid: Optional[str] = Form(None),
    DialCallStatus: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    intake: CallIntakeService = Depends(get_intake_service),
):
    try:
        result = intake.handle_dial_status(parse_call_id(callId), CallSid, DialCallStatus)
    except Exception:
        db.rollback()
        logger.exception(f"Dial status webhook failed for call {callId or CallSid}")
        return twiml_response(build_error_response())
    return twiml_response(result.twiml)


@webhook_router.post("/gather")
async def gather_webhook(
    callId: Optional[str] = Query(None),
    Digits: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    intake: CallIntakeService = Depends(get_intake_service),
    dispatcher: MessageDispatcher = Depends(get_dispatcher),
):
    try:
        result = await intake.handle_gather(parse_call_id(callId), Digits, dispatcher)
    except Exception:
        db.rollback()
        logger.exception(f"Gather webhook failed for call {callId}")
        return twiml_response(build_error_response())
    return twiml_response(result.twiml)


# ============================================================================
# STAFF
# ============================================================================


@router.get("")
async def list_calls(
    status: Optional[CallStatus] = Query(None),
    ivrResponse: Optional[IvrResponse] = Query(None),
    callbackHandled: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    pageSize: int = Query(20, ge=1, le=100),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db),
):
    """Call history with the messages each call triggered"""
    calls, total = CallRepository.list_calls(
        db,
        tenant.id,
        status=status.value if status else None,
        ivr_response=ivrResponse.value if ivrResponse else None,
        callback_handled=callbackHandled,
        page=page,
        page_size=pageSize,
    )
    return {
        "success": True,
        "data": [build_call_response(call) for call in calls],
        "total": total,
        "page": page,
        "pageSize": pageSize,
        "totalPages": math.ceil(total / pageSize) if total else 0,
    }


@router.patch("/{call_id}")
async def update_call(
    call_id: int,
    data: CallUpdate,
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db),
):
    """Mark a callback handled, or reopen it"""
    call = CallRepository.get_tenant_call(db, tenant.id, call_id)
    if not call:
        raise ServiceError(ErrorKind.NOT_FOUND, "Call not found")

    call.callback_handled = data.callbackHandled
    db.commit()
    db.refresh(call)
    logger.info(f"Call {call.id} callback_handled={call.callback_handled}")
    return {"success": True, "data": build_call_response(call)}
