# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .user_repository import UserRepository
from .points_repository import PointsRepository
from .receipt_repository import ReceiptRepository
from .pricing_repository import PricingRepository
from .point_request_repository import PointRequestRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "PointsRepository",
    "ReceiptRepository",
    "PricingRepository",
    "PointRequestRepository",
]
