"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, secrets, gateway keys)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, field_validator, ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Literal


DEFAULT_JWT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="storefront",
        description="MongoDB database name"
    )

    # Authentication
    JWT_SECRET: str = Field(
        default=DEFAULT_JWT_SECRET,
        description="Secret used to sign access tokens"
    )
    JWT_ALGORITHM: str = Field(
        default="HS256",
        description="Access token signing algorithm"
    )
    JWT_EXPIRES_DAYS: int = Field(
        default=30,
        description="Access token lifetime in days"
    )
    RESET_TOKEN_EXPIRES_MINUTES: int = Field(
        default=10,
        description="Password reset token lifetime in minutes"
    )
    PASSWORD_MIN_LENGTH: int = Field(
        default=6,
        description="Minimum accepted password length"
    )

    # Payment gateway (Razorpay)
    RAZORPAY_KEY_ID: Optional[str] = Field(
        default=None,
        description="Razorpay API key id"
    )
    RAZORPAY_KEY_SECRET: Optional[str] = Field(
        default=None,
        description="Razorpay API key secret (also signs checkout callbacks)"
    )
    RAZORPAY_WEBHOOK_SECRET: Optional[str] = Field(
        default=None,
        description="Razorpay webhook signature secret"
    )
    RAZORPAY_BASE_URL: str = Field(
        default="https://api.razorpay.com/v1",
        description="Razorpay REST API base URL"
    )
    PAYMENT_CURRENCY: str = Field(
        default="INR",
        description="Currency used for gateway orders"
    )
    PAYMENT_TIMEOUT: float = Field(
        default=15.0,
        description="Payment gateway request timeout in seconds"
    )

    # Product images
    UPLOAD_DIR: str = Field(
        default="uploads",
        description="Directory for uploaded product images"
    )
    MAX_UPLOAD_BYTES: int = Field(
        default=5 * 1024 * 1024,
        description="Maximum accepted image upload size"
    )

    # Application
    APP_URL: str = Field(
        default="http://localhost:8000",
        description="Public storefront base URL (used in password reset links)"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v, info: ValidationInfo):
        """Ensure the signing secret is changed in production."""
        if info.data.get("ENVIRONMENT") == "production" and v == DEFAULT_JWT_SECRET:
            raise ValueError("JWT_SECRET must be changed in production environment")
        return v

    @field_validator("RAZORPAY_KEY_SECRET")
    @classmethod
    def validate_razorpay_secret(cls, v, info: ValidationInfo):
        """Ensure gateway credentials are set in production."""
        if info.data.get("ENVIRONMENT") == "production" and not v:
            raise ValueError("RAZORPAY_KEY_SECRET is required in production environment")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def payment_gateway_configured(self) -> bool:
        return bool(self.RAZORPAY_KEY_ID and self.RAZORPAY_KEY_SECRET)


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if not settings.MONGODB_DB_NAME:
        errors.append("MONGODB_DB_NAME is required")

    if settings.JWT_EXPIRES_DAYS <= 0:
        errors.append("JWT_EXPIRES_DAYS must be positive")

    # Production-specific validations
    if settings.is_production:
        if not settings.RAZORPAY_KEY_ID:
            errors.append("RAZORPAY_KEY_ID is required in production")
        if not settings.RAZORPAY_KEY_SECRET:
            errors.append("RAZORPAY_KEY_SECRET is required in production")
        if not settings.RAZORPAY_WEBHOOK_SECRET:
            errors.append("RAZORPAY_WEBHOOK_SECRET is required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
