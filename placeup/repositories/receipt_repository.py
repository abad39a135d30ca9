from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, desc, func
from sqlalchemy.orm import Session

from placeup.models.receipt import PlaceReceipt, PointStatus, ReviewStatus
from placeup.models.user import Place
from placeup.repositories.base import BaseRepository
from placeup.schemas.receipts import ReviewResponse


class ReceiptRepository(BaseRepository[PlaceReceipt, ReviewResponse]):
    """영수증 리뷰 리포지토리 - 상태 변경은 예상 상태를 조건으로 건 UPDATE로만 수행"""

    def __init__(self, db: Session):
        super().__init__(PlaceReceipt, ReviewResponse, db)

    def get_with_owner(
        self, review_id: int, for_update: bool = False
    ) -> Optional[Tuple[PlaceReceipt, int]]:
        """리뷰와 소유자(place.user_id)를 함께 조회"""
        query = (
            self.db.query(PlaceReceipt, Place.user_id)
            .join(Place, Place.id == PlaceReceipt.place_id)
            .filter(PlaceReceipt.id == review_id)
        )
        if for_update:
            query = query.with_for_update(of=PlaceReceipt).populate_existing()
        row = query.first()
        if row is None:
            return None
        return row[0], row[1]

    def transition_point_status(
        self,
        review_id: int,
        expected: PointStatus,
        values: Dict[Any, Any],
    ) -> int:
        """
        point_status가 expected인 경우에만 갱신

        동시에 두 관리자가 같은 리뷰를 승인/거절하면 늦은 쪽은 0행이 되어야 한다.
        """
        values = dict(values)
        values[PlaceReceipt.updated_at] = func.now()
        return (
            self.db.query(PlaceReceipt)
            .filter(
                and_(
                    PlaceReceipt.id == review_id,
                    PlaceReceipt.point_status == expected.value,
                )
            )
            .update(values, synchronize_session=False)
        )

    def update_fields(self, review_id: int, values: Dict[Any, Any]) -> int:
        """게시 축/삭제 요청 필드 갱신 (포인트 이동 없음)"""
        values = dict(values)
        values[PlaceReceipt.updated_at] = func.now()
        return (
            self.db.query(PlaceReceipt)
            .filter(PlaceReceipt.id == review_id)
            .update(values, synchronize_session=False)
        )

    def reload(self, review_id: int) -> PlaceReceipt:
        receipt = (
            self.db.query(PlaceReceipt)
            .filter(PlaceReceipt.id == review_id)
            .populate_existing()
            .one()
        )
        return receipt

    def list_by_place(
        self, place_id: int, limit: int = 50, offset: int = 0
    ) -> Tuple[List[ReviewResponse], int]:
        query = self.db.query(PlaceReceipt).filter(PlaceReceipt.place_id == place_id)
        total_count = query.count()
        rows = query.order_by(desc(PlaceReceipt.id)).offset(offset).limit(limit).all()
        return self._to_schemas(rows), total_count

    def list_all(
        self,
        point_status: Optional[PointStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[ReviewResponse], int]:
        """전체 리뷰 (최근 생성 순)"""
        query = self.db.query(PlaceReceipt)
        if point_status is not None:
            query = query.filter(PlaceReceipt.point_status == point_status.value)
        total_count = query.count()
        rows = (
            query.order_by(desc(PlaceReceipt.created_at), desc(PlaceReceipt.id))
            .offset(offset)
            .limit(limit)
            .all()
        )
        return self._to_schemas(rows), total_count

    def list_by_point_status(
        self, point_status: PointStatus, limit: int = 50, offset: int = 0
    ) -> Tuple[List[ReviewResponse], int]:
        query = self.db.query(PlaceReceipt).filter(
            PlaceReceipt.point_status == point_status.value
        )
        total_count = query.count()
        rows = (
            query.order_by(PlaceReceipt.submitted_at, PlaceReceipt.id)
            .offset(offset)
            .limit(limit)
            .all()
        )
        return self._to_schemas(rows), total_count

    def list_delete_requests(
        self, limit: int = 50, offset: int = 0
    ) -> Tuple[List[ReviewResponse], int]:
        # 승인된 삭제 요청은 목록에서 제외
        query = self.db.query(PlaceReceipt).filter(
            and_(
                PlaceReceipt.delete_requested_at.isnot(None),
                PlaceReceipt.review_status != ReviewStatus.DELETED_BY_REQUEST.value,
            )
        )
        total_count = query.count()
        rows = (
            query.order_by(PlaceReceipt.delete_requested_at, PlaceReceipt.id)
            .offset(offset)
            .limit(limit)
            .all()
        )
        return self._to_schemas(rows), total_count

    def find_expired_pending_ids(self, cutoff: datetime) -> List[int]:
        """submitted_at <= cutoff 인 pending 리뷰 ID 목록 (오래된 순)"""
        rows = (
            self.db.query(PlaceReceipt.id)
            .filter(
                and_(
                    PlaceReceipt.point_status == PointStatus.PENDING.value,
                    PlaceReceipt.submitted_at.isnot(None),
                    PlaceReceipt.submitted_at <= cutoff,
                )
            )
            .order_by(PlaceReceipt.submitted_at, PlaceReceipt.id)
            .all()
        )
        return [row[0] for row in rows]

    def sum_approved_amount(self, user_id: int) -> int:
        """사용자 소유 플레이스의 승인 완료 리뷰 금액 합계"""
        total = (
            self.db.query(func.coalesce(func.sum(PlaceReceipt.point_amount), 0))
            .select_from(PlaceReceipt)
            .join(Place, Place.id == PlaceReceipt.place_id)
            .filter(
                and_(
                    Place.user_id == user_id,
                    PlaceReceipt.point_status == PointStatus.APPROVED.value,
                )
            )
            .scalar()
        )
        return int(total or 0)
