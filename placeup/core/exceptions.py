from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class BaseAPIException(HTTPException):
    """Base exception for API errors"""

    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": message,
                    "details": self.details,
                },
            },
        )

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message


class InvalidInputError(BaseAPIException):
    """입력값 검증 실패"""

    def __init__(self, message: str = "Invalid input", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="INVALID_INPUT",
            message=message,
            details=details,
        )


class InvalidAmountError(BaseAPIException):
    """0 이하 금액 등 잘못된 포인트 금액"""

    def __init__(self, message: str = "Invalid amount", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="INVALID_AMOUNT",
            message=message,
            details=details,
        )


class AuthenticationError(BaseAPIException):
    """Authentication related errors"""

    def __init__(
        self, message: str = "Authentication failed", details: Optional[Dict] = None
    ):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="UNAUTHORIZED",
            message=message,
            details=details,
        )


class AuthorizationError(BaseAPIException):
    """Authorization related errors"""

    def __init__(self, message: str = "Access forbidden", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="FORBIDDEN",
            message=message,
            details=details,
        )


class NotOwnerError(BaseAPIException):
    """리소스 소유자가 아닌 사용자의 접근"""

    def __init__(
        self, message: str = "Not the owner of this resource", details: Optional[Dict] = None
    ):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="NOT_OWNER",
            message=message,
            details=details,
        )


class NotFoundError(BaseAPIException):
    """Resource not found errors"""

    def __init__(self, message: str = "Resource not found", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
            message=message,
            details=details,
        )


class NotPendingError(BaseAPIException):
    """pending 상태가 아닌 작업에 승인/거절/취소를 시도"""

    def __init__(
        self, message: str = "Work item is not pending", details: Optional[Dict] = None
    ):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="NOT_PENDING",
            message=message,
            details=details,
        )


class InvalidStateError(BaseAPIException):
    """현재 상태에서 허용되지 않는 전이"""

    def __init__(
        self, message: str = "Invalid state transition", details: Optional[Dict] = None
    ):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="INVALID_STATE",
            message=message,
            details=details,
        )


class InsufficientFundsError(BaseAPIException):
    """Insufficient balance errors"""

    def __init__(
        self, message: str = "Insufficient points", details: Optional[Dict] = None
    ):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="INSUFFICIENT_FUNDS",
            message=message,
            details=details,
        )


class PricingNotConfiguredError(BaseAPIException):
    """활성 단가가 없는 컨텐츠 유형"""

    def __init__(
        self, message: str = "Pricing is not configured", details: Optional[Dict] = None
    ):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="PRICING_NOT_CONFIGURED",
            message=message,
            details=details,
        )


class ConfigMissingError(BaseAPIException):
    """필수 시스템 설정 누락 또는 형식 오류"""

    def __init__(
        self, message: str = "Required setting is missing", details: Optional[Dict] = None
    ):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="CONFIG_MISSING",
            message=message,
            details=details,
        )


class InvariantViolationError(BaseAPIException):
    """잔액 불변식이 깨지는 연산 (pending 버킷 음수 등)"""

    def __init__(
        self, message: str = "Ledger invariant violated", details: Optional[Dict] = None
    ):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INVARIANT_VIOLATION",
            message=message,
            details=details,
        )


class InternalServerError(BaseAPIException):
    """Internal server errors"""

    def __init__(
        self, message: str = "Internal server error", details: Optional[Dict] = None
    ):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_ERROR",
            message=message,
            details=details,
        )
