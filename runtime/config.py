"""
MalleableEngine — Runtime Settings
Process-wide configuration loaded once from the environment (prefix MALLEABLE_).

Settings are frozen: they are established at process start and never
mutated while an engine is running.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


LogLevel = Literal["error", "info", "debug"]


class Settings(BaseSettings):
    """Immutable runtime configuration."""

    log_level: LogLevel = Field("info", description="Diagnostics verbosity: error, info or debug")
    log_format: Literal["console", "json"] = Field("console", description="Log renderer")
    output_dir: str = Field("schedules", description="Directory for rendered schedule images")
    lp_epsilon: float = Field(
        0.01, gt=0, le=1,
        description="Relative tolerance at which the LP engine stops its makespan search",
    )
    ilp_max_slices: int = Field(
        120, ge=4, le=2000,
        description="Upper bound on the number of time slices of the relaxation engine",
    )
    improvement_passes: int = Field(
        3, ge=0, le=50,
        description="Sweeps of the allotment descent run after rounding (0 disables it)",
    )
    improvement_trials: int = Field(
        2000, ge=0,
        description="Upper bound on list schedules tried by one allotment descent",
    )
    lp_time_limit_seconds: Optional[float] = Field(
        None, gt=0, description="Per-solve time limit handed to the LP backend. None = unlimited."
    )

    model_config = SettingsConfigDict(env_prefix="MALLEABLE_", frozen=True)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_level(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process settings, reading the environment on first use."""
    return Settings()
