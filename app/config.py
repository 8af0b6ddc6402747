# app/config.py
import os
import logging
import sys # For sys.exit() on critical errors
from pathlib import Path
from typing import Optional, Literal, List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Conditional loading of .env for local development ONLY ---
# In deployed environments the variables come from the platform, never from a
# .env file that might be sitting in the repository.
if os.getenv("ENVIRONMENT") not in ("PROD", "STAGE"):
    load_dotenv()


# --- Configure basic logging early to capture configuration errors ---
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    """
    Auth service configuration using pydantic-settings.
    Loads from environment variables (and .env outside PROD/STAGE).
    Fields without a default *must* be present in the environment.
    """

    # ========================
    # APP CORE CONFIGURATION
    # ========================
    APP_NAME: str = "Auth Workflow API"
    VERSION: str = "1.0.0"
    ENVIRONMENT: Literal["DEV", "STAGE", "PROD"] = "DEV"
    FRONTEND_URL: str = "http://localhost:3000"
    DEBUG: bool = True
    PORT: int = 8000

    # ========================
    # SECURITY CONFIGURATION
    # ========================
    SECRET_KEY: str # Required. Generate via `secrets.token_urlsafe(64)`.
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    RESET_PASSWORD_TOKEN_EXPIRE_MINUTES: int = 10
    VERIFY_EMAIL_TOKEN_EXPIRE_MINUTES: int = 10

    # ========================
    # DATABASE CONFIGURATION
    # ========================
    # Must use an async driver, e.g. "postgresql+asyncpg://..." or "sqlite+aiosqlite:///./auth.db"
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600 # Seconds
    DB_SSL_MODE: str = "require"

    # ========================
    # EMAIL SERVICE CONFIG
    # ========================
    MAIL_SERVER: Optional[str] = None
    MAIL_PORT: int = 587
    MAIL_USERNAME: Optional[str] = None
    MAIL_PASSWORD: Optional[str] = None
    MAIL_FROM: Optional[str] = None
    MAIL_TLS: bool = True
    EMAIL_TEMPLATE_DIR: Path = Path(__file__).parent / "templates" / "emails"

    # ========================
    # LOGGING CONFIGURATION
    # ========================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE_PATH: Optional[Path] = None # Keep None in PROD, containers log to stdout

    # ========================
    # MAINTENANCE
    # ========================
    TOKEN_CLEANUP_INTERVAL_SECONDS: int = 3600

    # ========================
    # CORS ORIGINS
    # Set as a JSON array string: CORS_ORIGINS='["https://your-frontend.com"]'
    CORS_ORIGINS: List[str] = []

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    def __init__(self, **values):
        super().__init__(**values)
        # asyncpg only honours sslmode when it is part of the URL
        if "postgresql+asyncpg" in self.DATABASE_URL and "sslmode=" not in self.DATABASE_URL:
            separator = "&" if "?" in self.DATABASE_URL else "?"
            self.DATABASE_URL = f"{self.DATABASE_URL}{separator}sslmode={self.DB_SSL_MODE}"
            logger.info(f"Appended sslmode={self.DB_SSL_MODE} to DATABASE_URL.")

        self._validate_runtime_settings()

    def _validate_runtime_settings(self):
        """
        Critical checks enforced according to `ENVIRONMENT`.
        """
        if self.ENVIRONMENT == "PROD":
            logger.info("Running in PRODUCTION environment. Applying production specific validations.")

            if self.DEBUG:
                logger.critical("PRODUCTION ERROR: DEBUG is True in PROD environment.")
                raise ValueError("DEBUG must be False in production.")

            if len(self.SECRET_KEY) < 32:
                logger.critical("PRODUCTION ERROR: SECRET_KEY is too short (min 32 chars).")
                raise ValueError("SECRET_KEY must be a strong, unique value in production.")

            if not self.MAIL_SERVER or not self.MAIL_FROM:
                logger.critical("PRODUCTION ERROR: MAIL_SERVER or MAIL_FROM is not set. Reset and verification emails will fail.")
                raise ValueError("MAIL_SERVER and MAIL_FROM must be configured in production.")

            if "*" in self.CORS_ORIGINS:
                logger.critical("PRODUCTION ERROR: CORS_ORIGINS cannot contain '*' in production.")
                raise ValueError("CORS_ORIGINS cannot be '*' in production.")

            if not self.FRONTEND_URL.startswith("https://"):
                logger.critical(f"PRODUCTION ERROR: FRONTEND_URL '{self.FRONTEND_URL}' must use HTTPS in production.")
                raise ValueError("FRONTEND_URL must use HTTPS in production.")

        if not self.DATABASE_URL:
            logger.critical("CRITICAL ERROR: DATABASE_URL is not set. Database connection will fail.")
            raise ValueError("DATABASE_URL must be set in environment variables.")

# --- Initialize settings with validation ---
try:
    settings = Settings()
    logger.info(f"Configuration loaded successfully for {settings.ENVIRONMENT} environment.")
except Exception as e:
    logger.critical(f"Critical Configuration Error: {e}")
    sys.exit(1)
