# orderhub/core/settings.py
"""
OrderHub - Configuration Management with pydantic-settings

- Loads from environment and root .env
- Validates and normalizes values
- Cached singleton via get_settings()
"""
import re
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# orderhub/core/settings.py -> <repo>/.env
_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Settings(BaseSettings):
    """
    Application settings with validation.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===================
    # Application Settings
    # ===================
    PROJECT_NAME: str = "OrderHub"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="Deployment environment")

    # ===================
    # Database Settings
    # ===================
    DB_HOST: str = Field(default="localhost", description="PostgreSQL host")
    DB_PORT: int = Field(default=5432, description="PostgreSQL port")
    DB_NAME: str = Field(default="orderhub", description="Database name")
    DB_USER: str = Field(default="postgres", description="Database user")
    DB_PASSWORD: str = Field(default="postgres", description="Database password")
    DATABASE_URL: Optional[str] = Field(
        default=None, description="Full database URL (overrides DB_* settings)"
    )

    @property
    def database_url(self) -> str:
        """Build PostgreSQL database URL from components or use explicit URL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    # ===================
    # Security Settings
    # ===================
    SECRET_KEY: str = Field(
        default="change-this-to-a-random-secret-key-in-production",
        description="JWT signing key - MUST change in production",
    )
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT signing algorithm")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(
        default=30, description="JWT token expiration in minutes"
    )

    @field_validator("SECRET_KEY")
    @classmethod
    def warn_default_secret(cls, v: str) -> str:
        """Fail in prod if default secret; warn in dev."""
        if "change-this" in v.lower():
            import os
            import warnings

            if os.getenv("ENVIRONMENT", "development").lower() == "production":
                raise ValueError(
                    "Default SECRET_KEY detected in production. Set a secure SECRET_KEY."
                )
            warnings.warn(
                "WARNING: Using default SECRET_KEY. Do not use this in production.",
                UserWarning,
                stacklevel=2,
            )
        return v

    # ===================
    # CORS Settings
    # ===================
    ALLOWED_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        description="Allowed CORS origins",
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    FRONTEND_URL: str = Field(
        default="http://localhost:3000", description="Frontend URL for redirects"
    )

    @model_validator(mode="after")
    def add_frontend_url_to_cors(self):
        """Ensure FRONTEND_URL is allowed for CORS."""
        if self.FRONTEND_URL and self.FRONTEND_URL not in self.ALLOWED_ORIGINS:
            self.ALLOWED_ORIGINS = list(self.ALLOWED_ORIGINS) + [self.FRONTEND_URL]
        return self

    # ===================
    # Media Storage
    # ===================
    UPLOAD_DIR: str = Field(default="./uploads/media", description="Upload dir")
    MEDIA_BASE_URL: str = Field(
        default="http://localhost:8000/media", description="Public URL prefix for uploads"
    )
    MAX_FILE_SIZE_MB: int = Field(default=50, description="Max upload size (MB)")

    # ===================
    # Pricing Defaults (used when system_config has no row)
    # ===================
    DEFAULT_PRODUCT_MARGIN_PCT: Decimal = Field(default=Decimal("80"))
    DEFAULT_SHIPPING_MARGIN_PCT: Decimal = Field(default=Decimal("0"))
    DEFAULT_SAMPLE_MARGIN_PCT: Decimal = Field(default=Decimal("80"))

    # ===================
    # Delivery Estimation
    # ===================
    AIR_TRANSIT_DAYS: int = Field(default=15, ge=0)
    BOAT_TRANSIT_DAYS: int = Field(default=25, ge=0)

    # ===================
    # Order Housekeeping
    # ===================
    DRAFT_RETENTION_DAYS: int = Field(default=15, ge=1)
    OPTIONAL_ORDER_TABLES: List[str] = Field(
        default=["workflow_log", "manufacturer_notifications"],
        description="Auxiliary order-scoped tables purged best-effort on order delete",
    )

    @field_validator("OPTIONAL_ORDER_TABLES", mode="before")
    @classmethod
    def parse_optional_tables(cls, v):
        if isinstance(v, str):
            v = [name.strip() for name in v.split(",") if name.strip()]
        for name in v:
            if not _TABLE_NAME.match(name):
                raise ValueError(f"Invalid table name in OPTIONAL_ORDER_TABLES: {name!r}")
        return v

    # ===================
    # Logging
    # ===================
    LOG_LEVEL: str = Field(default="INFO")
    LOG_JSON: bool = Field(default=False, description="Emit one JSON object per log line")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Singleton settings loader (cached)."""
    return Settings()


settings = get_settings()
