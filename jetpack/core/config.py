"""
Application Configuration

Centralized settings management using Pydantic Settings.
Supports environment variables and .env files.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Library settings with environment variable support."""
    
    # ==========================================================================
    # Storage Settings
    # ==========================================================================
    STORAGE_BACKEND: str = "azure"  # azure, local
    
    # Azure Blob Storage connection string
    STORAGE_CONNECTION: Optional[str] = None
    
    # Optional CDN host; returned URLs are rewritten to https://<host>/...
    CDN_HOST_NAME: Optional[str] = None
    CACHE_CONTROL_YEARS: int = 1
    
    # Local storage (development)
    LOCAL_STORAGE_PATH: str = "./data/storage"
    LOCAL_STORAGE_BASE_URL: str = "http://localhost:8000/storage"
    
    # ==========================================================================
    # Messaging Settings
    # ==========================================================================
    SENDGRID_API_TOKEN: Optional[str] = None
    SENDGRID_API_URL: str = "https://api.sendgrid.com/v3/mail/send"
    EMAIL_SENDER_ADDRESS: Optional[str] = None
    EMAIL_SENDER_NAME: Optional[str] = None
    EMAIL_TIMEOUT_SECONDS: float = 30.0
    
    # ==========================================================================
    # Logging Settings
    # ==========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT_JSON: bool = True  # JSON for production, console for development
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Global settings instance
settings = Settings()
