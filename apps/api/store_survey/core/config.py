"""Application configuration with environment variables."""

from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    LOG_LEVEL: str = "INFO"

    # CORS (survey frontend origins, comma-separated)
    CORS_ORIGINS: str = "http://localhost:3000"

    # Object storage (S3 or S3-compatible)
    AWS_REGION: str = "ap-northeast-1"
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    S3_BUCKET: str = "store-survey-uploads"
    S3_ENDPOINT_URL: str = ""
    S3_URL_STYLE: str = "virtual"  # "virtual" or "path"
    S3_PUBLIC_BASE_URL: str = ""  # Empty = AWS regional host
    UPLOAD_URL_EXPIRY_SECONDS: int = 3600

    # Google Sheets (service account)
    GOOGLE_SHEETS_SHEET_ID: str = ""
    GOOGLE_SHEETS_CLIENT_EMAIL: str = ""
    GOOGLE_SHEETS_PRIVATE_KEY: str = ""  # Escaped "\n" sequences are accepted

    # Row timestamps are rendered in the business's local time
    BUSINESS_TIMEZONE: str = "Asia/Tokyo"

    # Idle wizard sessions are dropped after this many minutes
    SURVEY_SESSION_TTL_MINUTES: int = 120

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute); Redis shares counters across workers
    TESTING: bool = False
    REDIS_URL: str = "redis://localhost:6379/0"
    RATE_LIMIT_API: int = 60
    RATE_LIMIT_UPLOADS: int = 30
    RATE_LIMIT_SUBMISSIONS: int = 10

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def google_private_key(self) -> str:
        """Private key with literal "\\n" sequences turned into newlines."""
        return self.GOOGLE_SHEETS_PRIVATE_KEY.replace("\\n", "\n")

    @property
    def business_tz(self) -> ZoneInfo:
        return ZoneInfo(self.BUSINESS_TIMEZONE)


settings = Settings()
