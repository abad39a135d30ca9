from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

from placeup.models.user import UserRole


class Principal(BaseModel):
    """인증된 사용자 (토큰 검증 후 users 테이블에서 다시 읽은 값)"""

    id: int
    username: str
    name: str
    role: UserRole
    status: str = "active"

    class Config:
        from_attributes = True

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def is_admin(self) -> bool:
        return UserRole.is_admin(self.role)


@dataclass(frozen=True)
class ActingContext:
    """
    요청의 실제 주체와 대리 대상

    개발자는 X-Acting-As 헤더로 다른 사용자를 대신해 요청할 수 있다.
    권한/소유권 판단은 effective 기준, 감사 컬럼(processed_by 등)은 principal 기준.
    """

    principal: Principal
    on_behalf_of: Optional[Principal] = None

    @property
    def effective(self) -> Principal:
        return self.on_behalf_of or self.principal

    @property
    def user_id(self) -> int:
        return self.effective.id

    @property
    def actor_id(self) -> int:
        return self.principal.id

    @property
    def is_admin(self) -> bool:
        return self.effective.is_admin

    @property
    def is_impersonating(self) -> bool:
        return self.on_behalf_of is not None
