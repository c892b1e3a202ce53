import logging
import sys
from functools import lru_cache
from typing import Callable, List, Literal, Optional, TypeVar

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=BaseSettings)

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def split_origins(value: str) -> List[str]:
    return [o.strip() for o in value.split(",") if o.strip()]


class BaseServiceSettings(BaseSettings):
    """What every service sharing the database needs."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    VERSION: str = "1.0.0"
    ENVIRONMENT: Literal["development", "production", "test"] = "development"
    LOG_LEVEL: Literal["debug", "info", "warn", "error"] = "info"

    # Database
    DATABASE_URL: str
    DATABASE_ECHO: bool = False

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"


class Settings(BaseServiceSettings):
    APP_NAME: str = "LangChain Flow API"
    PORT: int = 3001

    # Authentication
    JWT_SECRET: str = Field(min_length=32)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31)

    # LLM and external APIs (optional)
    OPENAI_API_KEY: Optional[str] = None
    ANTHROPIC_API_KEY: Optional[str] = None
    GITHUB_TOKEN: Optional[str] = None
    VERCEL_TOKEN: Optional[str] = None

    # Security
    CORS_ORIGIN: str = "http://localhost:3000"

    # Companion services
    INTERTOOLS_SERVER_URL: Optional[str] = None

    @property
    def cors_origins(self) -> List[str]:
        return split_origins(self.CORS_ORIGIN)


class InterToolsSettings(BaseServiceSettings):
    APP_NAME: str = "InterTools"
    PORT: int = 3002
    # public base URL baked into the served script
    INTERTOOLS_URL: str = "http://localhost:3002"
    INTERTOOLS_CORS_ORIGIN: str = "*"
    PREVIEW_CHARS: int = 200
    DEFAULT_MESSAGE_LIMIT: int = 50
    MAX_MESSAGE_LIMIT: int = 500

    @property
    def cors_origins(self) -> List[str]:
        return split_origins(self.INTERTOOLS_CORS_ORIGIN)


class WebSettings(BaseServiceSettings):
    APP_NAME: str = "LangChain Flow Web"
    PORT: int = 3000
    API_URL: str = "http://localhost:3001"
    POLL_INTERVAL_SECONDS: float = 2.0


@lru_cache
def get_database_settings() -> BaseServiceSettings:
    return BaseServiceSettings()


@lru_cache
def get_settings() -> Settings:
    """Build the API settings once per process."""
    return Settings()


@lru_cache
def get_intertools_settings() -> InterToolsSettings:
    return InterToolsSettings()


@lru_cache
def get_web_settings() -> WebSettings:
    return WebSettings()


def load_settings_or_exit(factory: Callable[[], S] = get_settings) -> S:
    try:
        return factory()
    except ValidationError as e:
        logger.error("Invalid environment variables: %s", e)
        sys.exit(1)


def configure_logging(settings: BaseServiceSettings) -> None:
    logging.basicConfig(
        level=LOG_LEVELS[settings.LOG_LEVEL],
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
