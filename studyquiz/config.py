"""Application configuration module."""

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./studyquiz.db"
    SQL_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
    LOG_JSON: bool = False
    LOG_FILE: Optional[str] = None

    # API settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "StudyQuiz Analytics"

    # Weakness detection
    WEAKNESS_WINDOW_SIZE: int = 10
    WEAKNESS_ACCURACY_THRESHOLD: float = 60.0
    STRENGTH_ACCURACY_THRESHOLD: float = 80.0
    HISTORY_SUBMISSION_LIMIT: int = 50
    # Push onto the stored buffer instead of rescanning history when it is safe
    OUTCOME_BUFFER_ENABLED: bool = False

    # Personalization
    FOCUS_TOPIC_LIMIT: int = 5

    # Optimistic upsert retries
    UPSERT_MAX_RETRIES: int = 5
    UPSERT_RETRY_DELAY: float = 0.01

    @model_validator(mode="after")
    def check_thresholds(self) -> "Settings":
        """Validate the analytics thresholds against each other."""
        if self.WEAKNESS_WINDOW_SIZE < 1:
            raise ValueError(f"WEAKNESS_WINDOW_SIZE must be >= 1, got {self.WEAKNESS_WINDOW_SIZE}")
        if not (0 <= self.WEAKNESS_ACCURACY_THRESHOLD <= self.STRENGTH_ACCURACY_THRESHOLD <= 100):
            raise ValueError(
                "Thresholds must satisfy 0 <= WEAKNESS_ACCURACY_THRESHOLD <= "
                f"STRENGTH_ACCURACY_THRESHOLD <= 100, got {self.WEAKNESS_ACCURACY_THRESHOLD} "
                f"and {self.STRENGTH_ACCURACY_THRESHOLD}"
            )
        if self.HISTORY_SUBMISSION_LIMIT < 1:
            raise ValueError(f"HISTORY_SUBMISSION_LIMIT must be >= 1, got {self.HISTORY_SUBMISSION_LIMIT}")
        if self.FOCUS_TOPIC_LIMIT < 0:
            raise ValueError(f"FOCUS_TOPIC_LIMIT must be >= 0, got {self.FOCUS_TOPIC_LIMIT}")
        return self


# Create global settings instance
settings = Settings()
