"""Application settings loaded from environment variables or a YAML file."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from regular.scheduler.models import DEFAULT_NAME, Config, Period


def _env_file() -> str | None:
    # Tests build Settings from explicit arguments only; a developer .env must not leak in.
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Schedule configuration. Environment variables use the REGULAR_ prefix.

    ``REGULAR_PERIODS`` takes a JSON list, e.g.
    ``[{"start": "09:00", "end": "17:00"}]``.
    """

    # Schedule
    name: str = Field(default=DEFAULT_NAME)
    periods: list[Period] = Field(default_factory=list)
    success_interval: int = Field(default=0, description="ms after success; <0 stops")
    fail_interval: int = Field(default=0, description="ms after failure; <0 is fatal")

    # Engine
    tick_seconds: float = Field(default=60.0, gt=0)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="REGULAR_",
        env_file=_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Same isolation for REGULAR_* variables exported in the shell running pytest.
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @classmethod
    def from_yaml(cls, path: str | Path, **overrides: Any) -> "Settings":
        """Load settings from a YAML mapping; *overrides* win over the file."""
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            msg = f"{path}: expected a mapping at the top level"
            raise ValueError(msg)
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**data)

    def to_config(self) -> Config:
        """Build the engine Config from these settings."""
        return Config(
            name=self.name,
            periods=tuple(self.periods),
            success_interval=self.success_interval,
            fail_interval=self.fail_interval,
        )
