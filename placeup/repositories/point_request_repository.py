from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import and_, desc, func
from sqlalchemy.orm import Session

from placeup.models.points import PointRequest, PointRequestStatus
from placeup.repositories.base import BaseRepository
from placeup.schemas.point_requests import PointRequestResponse


class PointRequestRepository(BaseRepository[PointRequest, PointRequestResponse]):
    def __init__(self, db: Session):
        super().__init__(PointRequest, PointRequestResponse, db)

    def mark_reviewed(
        self,
        request_id: int,
        status: PointRequestStatus,
        reviewed_by: int,
        reviewed_at: datetime,
        review_notes: Optional[str],
    ) -> int:
        """pending 요청만 처리 - 이미 처리된 요청이면 0행"""
        return (
            self.db.query(PointRequest)
            .filter(
                and_(
                    PointRequest.id == request_id,
                    PointRequest.status == PointRequestStatus.PENDING.value,
                )
            )
            .update(
                {
                    PointRequest.status: status.value,
                    PointRequest.reviewed_by: reviewed_by,
                    PointRequest.reviewed_at: reviewed_at,
                    PointRequest.review_notes: review_notes,
                    PointRequest.updated_at: func.now(),
                },
                synchronize_session=False,
            )
        )

    def list_requests(
        self,
        requester_id: Optional[int] = None,
        status: Optional[PointRequestStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[PointRequestResponse], int]:
        conditions = []
        if requester_id is not None:
            conditions.append(PointRequest.requester_id == requester_id)
        if status is not None:
            conditions.append(PointRequest.status == status.value)

        query = self.db.query(PointRequest)
        if conditions:
            query = query.filter(and_(*conditions))
        total_count = query.count()
        rows = query.order_by(desc(PointRequest.id)).offset(offset).limit(limit).all()
        return self._to_schemas(rows), total_count
