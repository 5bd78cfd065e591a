"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Optional, Union
import os

from gatepass.core.constants import ACCESS_TOKEN_EXPIRE_MINUTES as DEFAULT_ACCESS_TOKEN_EXPIRE_MINUTES

DEFAULT_SECRET_KEY = "your-secret-key-change-in-production"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Database - Support both full URL and individual components
    DATABASE_URL: Optional[str] = None
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_HOST: Optional[str] = None
    POSTGRES_PORT: Optional[str] = None
    POSTGRES_DB: Optional[str] = None

    # Security
    # SECRET_KEY also seals check-in credentials; changing it invalidates every issued code
    SECRET_KEY: str = DEFAULT_SECRET_KEY
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = DEFAULT_ACCESS_TOKEN_EXPIRE_MINUTES

    # CORS - Can be a list or comma-separated string
    CORS_ORIGINS: Union[list, str] = ["*"]

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    # Application
    APP_TITLE: str = "Gatepass Check-in"
    APP_DESCRIPTION: str = "Tamper-evident QR credentials and attendee check-in/check-out"
    APP_VERSION: str = "1.0.0"

    # Environment
    ENVIRONMENT: str = "development"  # development, staging, production

    # Logging
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL

    # Database Connection Pool Configuration (ignored for SQLite)
    DB_POOL_SIZE: int = 15
    DB_MAX_OVERFLOW: int = 25

    # Credentials
    CREDENTIAL_STORAGE_DIR: str = "./storage"
    CREDENTIAL_IMAGE_SIZE: int = 300  # Minimum edge of the rendered PNG, in pixels
    CREDENTIAL_QR_MAX_VERSION: int = 25  # Largest QR version that still scans at CREDENTIAL_IMAGE_SIZE
    CREDENTIAL_PLACEHOLDER_ON_FAILURE: bool = True

    # Presence
    ALLOW_REENTRY: bool = False  # Allow DEPARTED -> PRESENT on a new scan

    @field_validator('CREDENTIAL_QR_MAX_VERSION')
    @classmethod
    def check_qr_version(cls, v: int) -> int:
        """QR versions run from 1 to 40."""
        if not 1 <= v <= 40:
            raise ValueError("CREDENTIAL_QR_MAX_VERSION must be between 1 and 40")
        return v

    def get_database_url(self) -> str:
        """
        Get database URL from either DATABASE_URL or individual components.
        Priority: DATABASE_URL > individual components > default (dev only)
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL

        if all([self.POSTGRES_USER, self.POSTGRES_PASSWORD,
                self.POSTGRES_HOST, self.POSTGRES_DB]):
            port = self.POSTGRES_PORT or "5432"
            return (
                f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
                f"@{self.POSTGRES_HOST}:{port}/{self.POSTGRES_DB}"
            )

        # Development fallback only
        if self.ENVIRONMENT == "development":
            return "sqlite:///./gatepass.db"

        raise ValueError(
            "Database configuration missing. Provide either DATABASE_URL or "
            "all of: POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_HOST, POSTGRES_DB"
        )

    def validate_production_config(self) -> None:
        """Validate that production-critical settings are properly configured."""
        if self.ENVIRONMENT == "production":
            issues = []

            if self.SECRET_KEY == DEFAULT_SECRET_KEY:
                issues.append("SECRET_KEY must be changed from default value")

            if len(self.SECRET_KEY) < 32:
                issues.append("SECRET_KEY should be at least 32 characters")

            if self.CORS_ORIGINS == ["*"]:
                issues.append("CORS_ORIGINS should be restricted to specific domains")

            if issues:
                raise ValueError(
                    "Production configuration errors:\n" +
                    "\n".join(f"  - {issue}" for issue in issues)
                )


settings = Settings()

if os.getenv("ENVIRONMENT") == "production":
    settings.validate_production_config()
