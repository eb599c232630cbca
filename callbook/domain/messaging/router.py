"""Messaging router - delivery-status webhook and SMS history"""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Form, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_tenant
from ...database import get_db
from ...enums import SmsStatus, SmsType
from ...models import Tenant
from ...shared.clock import Clock, get_clock
from ...webhook_security import verify_twilio_request
from .dispatcher import reconcile_delivery_status
from .repository import SmsLogRepository
from .schemas import build_sms_log_response

logger = logging.getLogger(__name__)

webhook_router = APIRouter(prefix="/twilio", tags=["Twilio Webhooks"])
router = APIRouter(prefix="/sms", tags=["SMS"])


@webhook_router.post("/sms-status", dependencies=[Depends(verify_twilio_request)])
async def sms_status_callback(
    MessageSid: str = Form(...),
    MessageStatus: Optional[str] = Form(None),
    ErrorCode: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Twilio delivery-status callback; always acknowledged with 204"""
    try:
        reconcile_delivery_status(db, MessageSid, MessageStatus, ErrorCode, clock)
    except Exception:
        db.rollback()
        logger.exception(f"Failed to apply status callback for {MessageSid}")
    return Response(status_code=204)


@router.get("/logs")
async def list_sms_logs(
    status: Optional[SmsStatus] = Query(None),
    type: Optional[SmsType] = Query(None),
    page: int = Query(1, ge=1),
    pageSize: int = Query(20, ge=1, le=100),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db),
):
    """Outbound message history for the current tenant, newest first"""
    logs, total = SmsLogRepository.list_logs(
        db,
        tenant.id,
        status=status.value if status else None,
        sms_type=type.value if type else None,
        page=page,
        page_size=pageSize,
    )
    return {
        "success": True,
        "data": [build_sms_log_response(log) for log in logs],
        "total": total,
        "page": page,
        "pageSize": pageSize,
        "totalPages": math.ceil(total / pageSize) if total else 0,
    }
