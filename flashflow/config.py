from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

from flashflow.srs.vocabulary import SchedulerMode


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime.

    The scheduling engine never calls this itself; callers read the clock
    once and pass ``now`` down so every review stays replayable.
    """
    return datetime.now(UTC)


class Settings(BaseSettings):
    # Step scheduler
    learning_steps: list[float] = [60.0, 600.0]  # seconds
    relearning_steps: list[float] = [600.0]  # seconds
    graduating_interval_days: int = 1
    easy_interval_days: int = 4
    minimum_ease_factor: float = 1.3
    initial_ease_factor: float = 2.5

    # Stability scheduler
    weights: list[float] = [
        0.4, 0.6, 2.4, 5.8, 4.93, 0.94, 0.86, 0.01, 1.49,
        0.14, 0.94, 2.18, 0.05, 0.34, 1.26, 0.29, 2.61,
    ]
    target_retention: float = 0.9

    timezone: str = "UTC"
    scheduler_mode: SchedulerMode = SchedulerMode.HYBRID
    debug: bool = False

    model_config = {"env_prefix": "FLASHFLOW_", "env_file": ".env"}

    @field_validator("learning_steps", "relearning_steps")
    @classmethod
    def _positive_steps(cls, value: list[float]) -> list[float]:
        if not value:
            raise ValueError("step ladder must contain at least one step")
        if any(step <= 0 for step in value):
            raise ValueError("step delays must be positive")
        return value

    @field_validator("graduating_interval_days", "easy_interval_days")
    @classmethod
    def _at_least_one_day(cls, value: int) -> int:
        if value < 1:
            raise ValueError("intervals must be at least 1 day")
        return value

    @field_validator("target_retention")
    @classmethod
    def _retention_is_probability(cls, value: float) -> float:
        if not 0.0 < value < 1.0:
            raise ValueError("target retention must be between 0 and 1")
        return value

    @field_validator("minimum_ease_factor")
    @classmethod
    def _positive_ease(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("minimum ease factor must be positive")
        return value

    @model_validator(mode="after")
    def _initial_ease_above_floor(self) -> "Settings":
        if self.initial_ease_factor < self.minimum_ease_factor:
            raise ValueError(
                f"initial ease factor {self.initial_ease_factor} is below "
                f"the minimum {self.minimum_ease_factor}"
            )
        return self

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {value}") from exc
        return value


settings = Settings()
