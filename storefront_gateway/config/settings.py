import logging
from typing import Optional

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Service
    PROJECT_NAME: str = "Storefront Gateway"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Upstream
    BACKEND_URL: str = "https://gialai-ocop-be.onrender.com"
    UPSTREAM_TIMEOUT: float = 30.0

    # Federated session lookup
    SESSION_URL: Optional[str] = None
    SESSION_TIMEOUT: float = 5.0

    # Durable client state (credential, profile, banner dismissal)
    STATE_FILE: str = ".storefront_state.json"

    # Where protected views send anonymous users
    LOGIN_PATH: str = "/login"

    model_config = ConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8"
    )

    def configure_logging(self):
        """Configure logging based on LOG_LEVEL environment variable."""
        log_level = getattr(logging, self.LOG_LEVEL.upper(), logging.INFO)
        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

settings = Settings()
