from enum import Enum
from typing import Optional, Union

from sqlalchemy import BigInteger, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from placeup.models.base import BaseModel, BigIntPK


class UserRole(str, Enum):
    """사용자 역할 정의"""

    DEVELOPER = "developer"  # 개발자 (모든 권한)
    ADMIN = "admin"  # 관리자
    OPERATOR = "operator"  # 운영자
    DISTRIBUTOR = "distributor"  # 총판
    ADVERTISER = "advertiser"  # 광고주
    WRITER = "writer"  # 작성자

    @classmethod
    def is_admin(cls, role: Union[str, "UserRole"]) -> bool:
        """관리자 권한 확인 (개발자는 모든 권한을 가짐)"""
        if isinstance(role, cls):
            role = role.value
        return role in [cls.ADMIN.value, cls.DEVELOPER.value]

    @classmethod
    def can_request_points(cls, role: Union[str, "UserRole"]) -> bool:
        """포인트 충전 요청 가능 역할 (총판, 개발자)"""
        if isinstance(role, cls):
            role = role.value
        return role in [cls.DISTRIBUTOR.value, cls.DEVELOPER.value]


class User(BaseModel):
    """
    사용자 테이블 (인증/프로필 CRUD는 외부 영역)

    포인트 원장과 리뷰 소유권 확인에 필요한 컬럼만 매핑한다.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), default=UserRole.ADVERTISER.value, nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"


class Place(BaseModel):
    """플레이스(업체) - 리뷰의 소유자를 결정하는 상위 엔티티"""

    __tablename__ = "places"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False, index=True
    )
    business_name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
