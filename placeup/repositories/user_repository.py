from typing import Optional

from sqlalchemy.orm import Session

from placeup.models.user import Place, User
from placeup.repositories.base import BaseRepository
from placeup.schemas.user import Principal


class UserRepository(BaseRepository[User, Principal]):
    """사용자/플레이스 조회 전용 (CRUD는 외부 영역)"""

    def __init__(self, db: Session):
        super().__init__(User, Principal, db)

    def get_place(self, place_id: int) -> Optional[Place]:
        return self.db.query(Place).filter(Place.id == place_id).first()
