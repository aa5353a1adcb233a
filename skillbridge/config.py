from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./skillbridge.db"

    # JWT Authentication (tokens are issued by the identity service)
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Application
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Reward policy
    REWARD_RATE_PER_MINUTE: int = 2
    REWARD_RATING_THRESHOLD: float = 3.0

    # Connections & reviews
    DEFAULT_CONNECTION_MESSAGE: str = "I'd like to connect with you!"
    MAX_FEEDBACK_LENGTH: int = 1000
    MAX_MESSAGE_LENGTH: int = 2000

    # Optional fallback when the postgres driver is unavailable locally
    FALLBACK_DATABASE_URL: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
