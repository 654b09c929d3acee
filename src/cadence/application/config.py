from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from cadence.domain import constants
from cadence.domain.srs.models import SchedulerTuning


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/cadence/config.toml",
        Path.home() / ".cadence.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for cadence.
    Supports loading from:
    1. Environment variables (CADENCE_*)
    2. Config file (~/.config/cadence/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="CADENCE_",
        extra="ignore",
    )

    # Paths
    deck_path: Path = Field(default_factory=lambda: Path.cwd() / "deck.yaml")

    # Output
    verbose: int = 1

    # Scheduler tuning
    min_ease_factor: float = Field(default=constants.MIN_EASE_FACTOR, gt=0)
    default_ease_factor: float = Field(default=constants.DEFAULT_EASE_FACTOR, gt=0)
    leech_threshold: int = Field(default=constants.LEECH_THRESHOLD, ge=1)
    mature_interval: int = Field(default=constants.MATURE_INTERVAL, ge=1)

    # Workload
    target_daily_minutes: float = Field(default=constants.DEFAULT_TARGET_DAILY_MINUTES, ge=0)
    avg_minutes_per_card: float = constants.DEFAULT_MINUTES_PER_CARD
    forecast_days: int = Field(default=constants.DEFAULT_FORECAST_DAYS, ge=1)
    due_limit: int = Field(default=constants.DEFAULT_DUE_LIMIT, ge=1)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # Find the first existing file
        toml_file = None
        for f in config_files():
            if f.exists():
                toml_file = f
                break

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        else:
            return (
                init_settings,
                env_settings,
            )

    @field_validator("deck_path", mode="before")
    @classmethod
    def resolve_deck_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("avg_minutes_per_card")
    @classmethod
    def check_positive_minutes(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("avg_minutes_per_card must be positive")
        return v

    def tuning(self) -> SchedulerTuning:
        return SchedulerTuning(
            min_ease_factor=self.min_ease_factor,
            default_ease_factor=self.default_ease_factor,
            leech_threshold=self.leech_threshold,
            mature_interval=self.mature_interval,
        )


def resolve_config(overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Build the final configuration.

    Priority: overrides > environment > config file > defaults.
    `None` overrides are ignored so unset CLI flags fall through.
    """
    clean = {k: v for k, v in (overrides or {}).items() if v is not None}
    return AppConfig(**clean)
