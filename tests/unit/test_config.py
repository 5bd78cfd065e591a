"""Unit tests for application settings."""
import pytest
from pydantic import ValidationError

from gatepass.core.config import Settings, DEFAULT_SECRET_KEY


@pytest.mark.unit
class TestSettings:
    """Test settings parsing and validation."""

    def test_cors_origins_from_comma_string(self):
        settings = Settings(CORS_ORIGINS="https://a.example, https://b.example,")
        assert settings.CORS_ORIGINS == ["https://a.example", "https://b.example"]

    def test_database_url_wins(self):
        settings = Settings(DATABASE_URL="sqlite:///x.db", POSTGRES_USER="u")
        assert settings.get_database_url() == "sqlite:///x.db"

    def test_database_url_from_components(self):
        settings = Settings(
            DATABASE_URL=None,
            POSTGRES_USER="gate",
            POSTGRES_PASSWORD="pw",
            POSTGRES_HOST="db",
            POSTGRES_DB="gatepass",
        )
        assert settings.get_database_url() == "postgresql://gate:pw@db:5432/gatepass"

    def test_production_requires_database(self):
        settings = Settings(ENVIRONMENT="production", DATABASE_URL=None, POSTGRES_USER=None)
        with pytest.raises(ValueError, match="Database configuration missing"):
            settings.get_database_url()

    def test_qr_version_bounds(self):
        with pytest.raises(ValidationError):
            Settings(CREDENTIAL_QR_MAX_VERSION=41)

    def test_reentry_disabled_by_default(self):
        assert Settings().ALLOW_REENTRY is False


@pytest.mark.unit
class TestProductionValidation:
    """Test production configuration checks."""

    def test_default_secret_rejected(self):
        settings = Settings(ENVIRONMENT="production", SECRET_KEY=DEFAULT_SECRET_KEY, CORS_ORIGINS="https://a.example")
        with pytest.raises(ValueError, match="SECRET_KEY must be changed"):
            settings.validate_production_config()

    def test_wildcard_cors_rejected(self):
        settings = Settings(ENVIRONMENT="production", SECRET_KEY="s" * 40, CORS_ORIGINS=["*"])
        with pytest.raises(ValueError, match="CORS_ORIGINS"):
            settings.validate_production_config()

    def test_valid_production_config(self):
        settings = Settings(ENVIRONMENT="production", SECRET_KEY="s" * 40, CORS_ORIGINS="https://a.example")
        settings.validate_production_config()

    def test_development_not_validated(self):
        Settings(ENVIRONMENT="development").validate_production_config()
