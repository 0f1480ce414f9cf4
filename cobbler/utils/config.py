"""
Configuration management using pydantic-settings

Loads configuration from environment variables and .env file
"""

from decimal import Decimal
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database Configuration
    DB_HOST: str = Field(default="localhost", description="Database host")
    DB_PORT: int = Field(default=5432, description="Database port")
    DB_NAME: str = Field(default="cobbler_db", description="Database name")
    DB_USER: str = Field(default="cobbler_user", description="Database user")
    DB_PASSWORD: str = Field(default="cobbler_password", description="Database password")
    DB_MIN_CONNECTIONS: int = Field(default=1, description="Minimum pooled connections")
    DB_MAX_CONNECTIONS: int = Field(default=10, description="Maximum pooled connections")
    STORE_BACKEND: str = Field(
        default="postgres",
        description="Persistence backend: 'postgres' or 'memory'"
    )

    # Authentication
    AUTH_TOKEN: str = Field(..., min_length=1, description="Shared secret expected in X-Token (required)")

    # Application Settings
    API_HOST: str = Field(default="0.0.0.0", description="API host to bind to")
    API_PORT: int = Field(default=3001, description="API port to listen on")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_JSON: bool = Field(default=False, description="Emit log records as JSON lines")
    ENVIRONMENT: str = Field(default="production", description="'development' exposes error details")
    CORS_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:5173",
            "http://localhost:8080",
            "http://localhost:3000",
        ],
        description="Origins allowed by the CORS middleware"
    )

    # Listing
    DEFAULT_PAGE_SIZE: int = Field(default=50, ge=1, description="Default enquiries per page")
    MAX_PAGE_SIZE: int = Field(default=200, ge=1, description="Upper bound for the limit query parameter")

    # Billing
    DEFAULT_GST_RATE: Decimal = Field(default=Decimal("18"), ge=0, le=100, description="Invoice-level GST rate")
    INVOICE_NUMBER_ATTEMPTS: int = Field(
        default=5,
        ge=1,
        description="Regenerations allowed when a random invoice number collides"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance"""
    return settings
