from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from placeup.models.points import PointRequestStatus


class PointRequestCreate(BaseModel):
    requested_amount: int = Field(..., description="요청 포인트")
    purpose: str = Field(..., description="충전 목적 (10자 이상)")


class PointRequestReview(BaseModel):
    status: Literal["approved", "rejected"]
    review_notes: Optional[str] = None


class PointRequestResponse(BaseModel):
    id: int
    requester_id: int
    requested_amount: int
    purpose: str
    status: PointRequestStatus
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PointRequestListResponse(BaseModel):
    requests: List[PointRequestResponse]
    total_count: int
