from datetime import timedelta
from pathlib import Path

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env"

MIN_UPDATE_INTERVAL_SECONDS = 60


class ConfigurationError(Exception):
    """Raised when required settings are missing or invalid at startup."""


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database settings
    DATABASE_URL: str
    USE_DATABASE: bool = True
    RESET_ON_STARTUP: bool = False

    # =================================================================
    # RANKING SETTINGS
    # =================================================================
    UPDATE_INTERVAL_SECONDS: int = 120  # Background refresh cadence
    RANKING_WINDOW_SECONDS: int = 24 * 60 * 60  # 3600 for hourly deployments
    RECOMPUTE_EVERY_BATCHES: int = 10
    MIN_NEW_RECORDS_FOR_RECOMPUTE: int = 5
    REGISTRY_PATH: str | None = None

    # =================================================================
    # CHECKPOINT INGESTION SETTINGS
    # =================================================================
    REMOTE_STORAGE: str | None = None
    CHECKPOINTS_DIR: str = "checkpoints"
    BACKFILL_PROGRESS_FILE_PATH: str = "backfill_progress/backfill_progress"
    STARTING_CHECKPOINT: int = 0
    POLL_INTERVAL_SECONDS: float = 1.0

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 1
    DB_POOL_MAX_SIZE: int = 4
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def _database_url_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("DATABASE_URL must be set")
        return value

    @field_validator("UPDATE_INTERVAL_SECONDS")
    @classmethod
    def _interval_floor(cls, value: int) -> int:
        if value < MIN_UPDATE_INTERVAL_SECONDS:
            raise ValueError(
                f"UPDATE_INTERVAL_SECONDS must be at least {MIN_UPDATE_INTERVAL_SECONDS} seconds"
            )
        return value

    @field_validator("RANKING_WINDOW_SECONDS", "RECOMPUTE_EVERY_BATCHES")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value

    @field_validator("MIN_NEW_RECORDS_FOR_RECOMPUTE", "STARTING_CHECKPOINT")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @field_validator("REMOTE_STORAGE")
    @classmethod
    def _remote_is_http(cls, value: str | None) -> str | None:
        if value and not value.startswith("http"):
            raise ValueError("REMOTE_STORAGE must be a valid HTTP/HTTPS URL")
        return value

    @property
    def ranking_window(self) -> timedelta:
        return timedelta(seconds=self.RANKING_WINDOW_SECONDS)

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        The indexer is a single writer, so development keeps the pool tiny.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update({"max_size": min(self.DB_POOL_MAX_SIZE, 2), "timeout": 15.0})

        return config

    def summary(self) -> dict:
        """Non-secret view of the configuration for startup logs."""
        return {
            "environment": self.environment,
            "update_interval_seconds": self.UPDATE_INTERVAL_SECONDS,
            "window_seconds": self.RANKING_WINDOW_SECONDS,
            "recompute_every_batches": self.RECOMPUTE_EVERY_BATCHES,
            "min_new_records_for_recompute": self.MIN_NEW_RECORDS_FOR_RECOMPUTE,
            "remote_storage": self.REMOTE_STORAGE,
            "checkpoints_dir": self.CHECKPOINTS_DIR,
            "progress_file": self.BACKFILL_PROGRESS_FILE_PATH,
            "use_database": self.USE_DATABASE,
        }


def load_settings(**overrides) -> Settings:
    """
    Build the process settings once at startup.

    Raises:
        ConfigurationError: if a required value is missing or invalid
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'settings'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from e
