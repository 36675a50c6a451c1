"""
EstateList Application Configuration
Loads settings from .env file using Pydantic v2 with BaseSettings
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ==================== Project Info ====================
    PROJECT_NAME: str = "EstateList API"
    PROJECT_DESCRIPTION: str = "Property classifieds - listings, geo search, wishlists and enquiries"
    VERSION: str = "1.0.0"

    # ==================== Database ====================
    DATABASE_URL: str = "sqlite:///estatelist_local.db"

    # ==================== Security & Authentication ====================
    SECRET_KEY: str = "change-this-secret-key-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days
    PASSWORD_RESET_EXPIRE_HOURS: int = 10
    MIN_PASSWORD_LENGTH: int = 6

    # ==================== CORS & Frontend ====================
    CLIENT_URL: str = "http://localhost:3000"
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # ==================== Server Configuration ====================
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # ==================== Geocoding (Google Maps) ====================
    GOOGLE_MAPS_API_KEY: str = ""
    GEOCODING_TIMEOUT: float = 10.0

    # ==================== Object Storage (S3) ====================
    AWS_REGION: str = "us-east-1"
    AWS_BUCKET_NAME: str = ""
    IMAGE_MAX_WIDTH: int = 1600
    IMAGE_MAX_HEIGHT: int = 900
    IMAGE_UPLOAD_WORKERS: int = 4

    # ==================== Email Configuration ====================
    SMTP_SERVER: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    EMAIL_FROM: str = "noreply@estatelist.app"
    EMAIL_REPLY_TO: Optional[str] = None

    # ==================== Listings & Search ====================
    SEARCH_PAGE_SIZE: int = 12
    BROWSE_PAGE_SIZE: int = 2
    DEFAULT_SEARCH_RADIUS_KM: float = 10.0
    RELATED_RADIUS_KM: float = 50.0
    RELATED_LIMIT: int = 3

    # ==================== Features ====================
    DEBUG: bool = False
    TESTING: bool = False
    LOG_LEVEL: str = "INFO"

    # ==================== Configuration Loading ====================
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="allow",  # Allow extra environment variables
        validate_default=True,
    )


# ==================== Settings Singleton ====================
@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Create default settings instance
settings = get_settings()


def is_production() -> bool:
    """Check if running in production"""
    return not settings.DEBUG and settings.CLIENT_URL.startswith("https")
