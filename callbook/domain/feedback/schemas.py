"""Feedback schemas - complaints and reviews"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...enums import ComplaintCategory
from ...shared.validators import validate_email, validate_phone


class ComplaintCreate(BaseModel):
    customerName: str = Field(..., min_length=2, max_length=255)
    customerPhone: str
    customerEmail: Optional[str] = None
    category: ComplaintCategory
    description: str = Field(..., min_length=10, max_length=5000)
    callId: Optional[int] = None  # from the link sent after a missed call

    @field_validator("customerPhone")
    @classmethod
    def validate_customer_phone(cls, v):
        return validate_phone(v)

    @field_validator("customerEmail")
    @classmethod
    def validate_customer_email(cls, v):
        return validate_email(v)


class ReviewCreate(BaseModel):
    customerName: str = Field(..., min_length=2, max_length=100)
    customerPhone: str
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)
    imageUrl: Optional[str] = Field(None, max_length=500)
    verificationCode: str = Field(..., min_length=6, max_length=6)

    @field_validator("customerPhone")
    @classmethod
    def validate_customer_phone(cls, v):
        return validate_phone(v)

    @field_validator("imageUrl")
    @classmethod
    def validate_image_url(cls, v):
        if not v:
            return None
        if not (v.startswith("https://") or v.startswith("http://")):
            raise ValueError("Image URL must be an http(s) URL")
        return v


class ReviewResponse(BaseModel):
    id: int
    customerName: str
    rating: int
    comment: Optional[str] = None
    imageUrl: Optional[str] = None
    createdAt: Optional[datetime] = None


def build_review_response(review) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        customerName=review.customer_name,
        rating=review.rating,
        comment=review.comment,
        imageUrl=review.image_url,
        createdAt=review.created_at,
    )
