from .common import BaseResponse, Error, ErrorCode
from .user import ActingContext, Principal
from .points import PointBalanceResponse, PointTransactionResponse
from .receipts import ReviewResponse, SubmitReviewsResponse
from .batch import AutoRefundResult
