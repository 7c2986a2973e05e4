from functools import lru_cache
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chronoplan.models.entities import Algorithm


class Settings(BaseSettings):
    app_name: str = "ChronoPlan"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    default_algorithm: Algorithm = Algorithm.GREEDY
    max_computation_time_ms: int = 30000
    optimization_iterations: int = 100
    slot_granularity_minutes: int = 15
    buffer_time_minutes_default: int = 15

    model_config = SettingsConfigDict(env_prefix="CHRONOPLAN_", env_file=".env", extra="ignore")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


class SoftConstraintWeights(BaseModel):
    time_preferences: float = Field(0.3, ge=0.0, le=1.0)
    resource_optimization: float = Field(0.2, ge=0.0, le=1.0)
    personal_preferences: float = Field(0.2, ge=0.0, le=1.0)
    business_optimization: float = Field(0.3, ge=0.0, le=1.0)

    def for_category(self, category: str, default: float = 0.25) -> float:
        return getattr(self, category, default)

    def as_dict(self) -> Dict[str, float]:
        return self.model_dump()


class SchedulerOptions(BaseModel):
    algorithm: Algorithm = Algorithm.GREEDY
    max_computation_time_ms: int = Field(30000, ge=0)
    optimization_iterations: int = Field(100, ge=0)
    slot_granularity_minutes: int = 15
    soft_constraint_weights: SoftConstraintWeights = Field(default_factory=SoftConstraintWeights)
    buffer_time_minutes_default: int = Field(15, ge=0)
    random_seed: Optional[int] = None

    @field_validator("slot_granularity_minutes")
    @classmethod
    def validate_granularity(cls, v: int):
        """Granularity must be a positive number of minutes no longer than a day."""
        if v < 1 or v > 1440:
            raise ValueError("slot_granularity_minutes must be between 1 and 1440")
        return v

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides) -> "SchedulerOptions":
        settings = settings or get_settings()
        values = {
            "algorithm": settings.default_algorithm,
            "max_computation_time_ms": settings.max_computation_time_ms,
            "optimization_iterations": settings.optimization_iterations,
            "slot_granularity_minutes": settings.slot_granularity_minutes,
            "buffer_time_minutes_default": settings.buffer_time_minutes_default,
        }
        values.update(overrides)
        return cls(**values)

    @property
    def effective_granularity(self) -> int:
        # Fast mode trades resolution for speed: double, at least an hour.
        if self.algorithm == Algorithm.FAST:
            return max(self.slot_granularity_minutes * 2, 60)
        return self.slot_granularity_minutes

    @property
    def effective_iterations(self) -> int:
        if self.algorithm == Algorithm.OPTIMAL:
            return self.optimization_iterations
        if self.algorithm == Algorithm.BALANCED:
            return max(1, self.optimization_iterations // 2)
        return 0
