import logging
import sys

from pydantic_settings import BaseSettings
from typing import List, Optional


def setup_logging():
    """Configure application logging."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # Set third-party loggers to WARNING to reduce noise
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# Initialize logging on import
setup_logging()

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # API Keys (server-side only)
    openai_api_key: Optional[str] = None
    openai_api_url: str = "https://api.openai.com/v1/chat/completions"

    # Default generation parameters (presets derive from these)
    default_model: str = "gpt-4o-mini"
    default_max_tokens: int = 1000
    default_temperature: float = 0.9
    default_top_p: float = 0.95

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    allowed_origins: List[str] = ["http://localhost:3000"]

    # Timeout settings (seconds)
    provider_timeout: int = 60

    # Upper bound on how much of an upstream error body is read (bytes)
    error_body_limit: int = 64 * 1024

    # Simulated typing used when the relay cannot stream
    typing_fragment_size: int = 3
    typing_delay_min_ms: int = 10
    typing_delay_max_ms: int = 50

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


def warn_if_unconfigured():
    """Log a warning when no provider API key is set. The relay still starts."""
    if not settings.openai_api_key:
        logger.warning("=" * 60)
        logger.warning("OPENAI_API_KEY is not set.")
        logger.warning("POST /api/llm will answer with 'API key not configured'")
        logger.warning("until the key is added to your .env file:")
        logger.warning("    OPENAI_API_KEY=sk-...")
        logger.warning("=" * 60)


settings = Settings()
