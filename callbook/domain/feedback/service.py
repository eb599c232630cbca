"""Feedback service - public complaints and verified reviews"""

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...errors import ErrorKind, ServiceError
from ...models import Call, Complaint, Review, Tenant
from ...security_utils import generate_reference_number
from ...shared.clock import Clock, utcnow
from ..verification.service import VerificationService
from .schemas import ComplaintCreate, ReviewCreate

logger = logging.getLogger(__name__)

REFERENCE_ATTEMPTS = 3


class FeedbackService:
    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    def submit_complaint(self, tenant: Tenant, data: ComplaintCreate) -> Complaint:
        if data.callId is not None:
            call = (
                self.db.query(Call)
                .filter(Call.id == data.callId, Call.tenant_id == tenant.id)
                .first()
            )
            if not call:
                raise ServiceError(ErrorKind.NOT_FOUND, "Call not found")

        for attempt in range(REFERENCE_ATTEMPTS):
            complaint = Complaint(
                tenant_id=tenant.id,
                call_id=data.callId,
                customer_name=data.customerName.strip(),
                customer_phone=data.customerPhone,
                customer_email=data.customerEmail,
                category=data.category.value,
                description=data.description.strip(),
                reference_number=generate_reference_number("CMP"),
            )
            self.db.add(complaint)
            try:
                self.db.commit()
            except IntegrityError:
                # Reference number collision; draw another
                self.db.rollback()
                logger.warning(f"Complaint reference collision (attempt {attempt + 1})")
                continue
            self.db.refresh(complaint)
            logger.info(f"Complaint {complaint.reference_number} filed for tenant {tenant.id}")
            return complaint

        raise ServiceError(ErrorKind.INTERNAL, "Could not file complaint, please try again")

    def list_reviews(self, tenant: Tenant, page: int, page_size: int) -> dict:
        query = self.db.query(Review).filter(
            Review.tenant_id == tenant.id, Review.is_verified.is_(True)
        )
        total = query.count()
        reviews = (
            query.order_by(Review.created_at.desc(), Review.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        average = (
            self.db.query(func.avg(Review.rating))
            .filter(Review.tenant_id == tenant.id, Review.is_verified.is_(True))
            .scalar()
        )
        return {
            "reviews": reviews,
            "total": total,
            "average_rating": round(float(average), 2) if average is not None else 0,
        }

    def submit_review(self, tenant: Tenant, data: ReviewCreate) -> Review:
        """Reviews require a fresh phone verification, consumed with the insert"""
        verifier = VerificationService(self.db, self.clock)
        verification = verifier.find_valid(tenant.id, data.customerPhone, data.verificationCode)

        review = Review(
            tenant_id=tenant.id,
            customer_name=data.customerName.strip(),
            customer_phone=data.customerPhone,
            rating=data.rating,
            comment=data.comment or None,
            image_url=data.imageUrl,
            is_verified=True,
        )
        try:
            verifier.consume(verification)
            self.db.add(review)
            self.db.commit()
        except ServiceError:
            self.db.rollback()
            raise
        self.db.refresh(review)
        logger.info(f"Review {review.id} ({review.rating}/5) added for tenant {tenant.id}")
        return review
