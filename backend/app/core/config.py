"""
TenderDesk - Application Settings
Environment-driven configuration (reads .env when present)
"""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "TenderDesk API"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./tenderdesk.db"
    DATABASE_ECHO: bool = False

    # Auth
    JWT_SECRET: str = "tenderdesk-secret-key-change-in-production"
    JWT_EXPIRATION_HOURS: int = 24
    DEFAULT_USER_PASSWORD: str = "password123"
    EMAIL_DOMAIN: str = "mintergraph.com"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Generative AI (any OpenAI-compatible endpoint)
    AI_API_KEY: str = ""
    AI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    AI_MODEL: str = "gemini-2.5-flash"
    AI_VISION_MODEL: str = "gemini-2.5-flash"
    AI_MAX_TOKENS: int = 4096

    # Company profile used by the eligibility check
    COMPANY_NAME: str = "M Intergraph"
    COMPANY_TURNOVER_LAKHS: int = 250
    COMPANY_YEARS_IN_BUSINESS: int = 5
    COMPANY_CERTIFICATIONS: List[str] = ["ISO 9001", "ISO 27001"]

    # Local time of dates printed on tender notices (IST)
    DOCUMENT_UTC_OFFSET_MINUTES: int = 330

    # Notification windows (days)
    ALERT_WINDOW_DAYS: int = 15
    EXPIRY_WINDOW_DAYS: int = 30


settings = Settings()
