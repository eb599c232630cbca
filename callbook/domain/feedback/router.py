"""Feedback router - public complaint and review endpoints"""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import create_rate_limiter
from ...shared.clock import Clock, get_clock
from ..tenants.repository import require_active_tenant
from .schemas import ComplaintCreate, ReviewCreate, build_review_response
from .service import FeedbackService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public/shop", tags=["Public Feedback"])

rate_limit_feedback = create_rate_limiter(limit=10, window_seconds=600, key_prefix="public_feedback")


def get_feedback_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> FeedbackService:
    return FeedbackService(db, clock)


@router.post("/{slug}/complaint", dependencies=[Depends(rate_limit_feedback)])
async def submit_complaint(
    slug: str,
    data: ComplaintCreate,
    db: Session = Depends(get_db),
    service: FeedbackService = Depends(get_feedback_service),
):
    tenant = require_active_tenant(db, slug)
    complaint = service.submit_complaint(tenant, data)
    return {
        "success": True,
        "data": {"id": complaint.id, "referenceNumber": complaint.reference_number},
    }


@router.get("/{slug}/reviews")
async def list_reviews(
    slug: str,
    page: int = Query(1, ge=1),
    pageSize: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    service: FeedbackService = Depends(get_feedback_service),
):
    tenant = require_active_tenant(db, slug)
    result = service.list_reviews(tenant, page, pageSize)
    return {
        "success": True,
        "data": {
            "reviews": [build_review_response(r) for r in result["reviews"]],
            "total": result["total"],
            "page": page,
            "pageSize": pageSize,
            "averageRating": result["average_rating"],
            "reviewCount": result["total"],
        },
    }


@router.post("/{slug}/reviews", dependencies=[Depends(rate_limit_feedback)])
async def submit_review(
    slug: str,
    data: ReviewCreate,
    db: Session = Depends(get_db),
    service: FeedbackService = Depends(get_feedback_service),
):
    tenant = require_active_tenant(db, slug)
    review = service.submit_review(tenant, data)
    return JSONResponse(
        status_code=201,
        content={"success": True, "data": jsonable_encoder(build_review_response(review))},
    )
