from typing import List, Optional
from urllib.parse import quote_plus

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="placeup/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Place-UP API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = "adr"

    # 설정되어 있으면 POSTGRES_* 조합 대신 그대로 사용 (테스트용 SQLite 등)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Security
    SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"
    # 스케줄러(EventBridge/cron)가 배치 엔드포인트를 호출할 때 사용하는 토큰
    AUTH_TOKEN: str = ""

    # Business Rules
    REVIEW_CONTENT_TYPE: str = "receipt_review"  # content_pricing.content_type
    AUTO_REFUND_SETTING_KEY: str = "auto_refund_days"  # system_settings.setting_key
    POINT_REQUEST_MIN_PURPOSE_LENGTH: int = 10

    # Review URL check: "stub" (항상 성공) | "http" (실제 요청)
    URL_CHECK_MODE: str = "stub"
    URL_CHECK_TIMEOUT_SEC: float = 5.0

    # Timezone
    TIMEZONE: str = "Asia/Seoul"
