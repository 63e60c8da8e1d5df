"""Settings and logging setup, driven by ROUTE_RECONCILER_* environment variables."""

import sys
from functools import lru_cache

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from route_reconciler.convergence import BackoffPolicy

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


class ReconcilerSettings(BaseSettings):
    """Timeouts, retry pacing and remote client options."""

    model_config = SettingsConfigDict(env_prefix="ROUTE_RECONCILER_", env_file=".env", extra="ignore")

    create_timeout: float = Field(120.0, description="Seconds for a create call and its confirmation.")
    delete_timeout: float = Field(300.0, description="Seconds for a delete call.")
    retry_min_delay: float = Field(0.5, description="First delay between attempts.")
    retry_max_delay: float = Field(10.0, description="Cap on the delay between attempts.")
    retry_multiplier: float = Field(2.0, description="Delay growth per attempt.")

    aws_region: str | None = Field(None, description="Region for the EC2 client.")
    aws_profile: str | None = Field(None, description="Named credentials profile.")

    log_level: str = "INFO"

    @field_validator("create_timeout", "delete_timeout", "retry_min_delay", "retry_max_delay")
    @classmethod
    def positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("retry_multiplier")
    @classmethod
    def not_shrinking(cls, v: float) -> float:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @model_validator(mode="after")
    def delay_bounds(self) -> "ReconcilerSettings":
        if self.retry_max_delay < self.retry_min_delay:
            raise ValueError("retry_max_delay must not be below retry_min_delay")
        return self

    def backoff_policy(self) -> BackoffPolicy:
        return BackoffPolicy(
            min_delay=self.retry_min_delay,
            max_delay=self.retry_max_delay,
            multiplier=self.retry_multiplier,
        )


@lru_cache
def get_settings() -> ReconcilerSettings:
    return ReconcilerSettings()


def configure_logging(level: str | None = None) -> int:
    """Replace loguru's default sink with one stderr sink at ``level``."""
    logger.remove()
    return logger.add(sys.stderr, level=(level or get_settings().log_level).upper(), format=LOG_FORMAT)
