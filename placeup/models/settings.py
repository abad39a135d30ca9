from typing import Optional

from sqlalchemy import BigInteger, Boolean, CheckConstraint, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from placeup.models.base import BaseModel, BigIntPK


class ContentPricing(BaseModel):
    """컨텐츠 단가표 - content_type별 활성 단가는 하나만 유효하다고 가정"""

    __tablename__ = "content_pricing"
    __table_args__ = (CheckConstraint("price >= 0", name="ck_content_pricing_price"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    content_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class SystemSetting(BaseModel):
    """운영자가 런타임에 수정하는 키/값 설정 (예: auto_refund_days)"""

    __tablename__ = "system_settings"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    setting_key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    setting_value: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
