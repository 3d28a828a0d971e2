import json
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from shiori.domain.constants import (
    DEFAULT_DAILY_NEW_ITEM_LIMIT,
    DEFAULT_LEVELS,
    DEFAULT_MAX_QUEUE_SIZE,
    DEFAULT_RECOMPUTE_EVERY,
    MAXIMUM_INTERVAL,
    TARGET_RETENTION,
)
from shiori.domain.models import LevelScale

from .scheduler import MemoryScheduler, SchedulerParameters

CONFIG_FILES = [
    Path.home() / ".config/shiori/config.toml",
    Path.home() / ".shiori.toml",
]


class AppConfig(BaseSettings):
    """
    Configuration model for shiori.
    Supports loading from:
    1. Environment variables (SHIORI_*)
    2. Config file (~/.config/shiori/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="SHIORI_",
        extra="ignore",
    )

    # Curriculum
    levels: Annotated[list[str], NoDecode] = Field(default_factory=lambda: list(DEFAULT_LEVELS))
    corpus_path: Path | None = None

    # Scheduling
    target_retention: float = Field(default=TARGET_RETENTION, gt=0.0, lt=1.0)
    maximum_interval: int = Field(default=MAXIMUM_INTERVAL, ge=1)
    max_queue_size: int = Field(default=DEFAULT_MAX_QUEUE_SIZE, ge=0)

    # Curriculum introduction
    daily_new_item_limit: int = Field(default=DEFAULT_DAILY_NEW_ITEM_LIMIT, ge=0)

    # Batch recomputation cadence (reviews between snapshots)
    recompute_every: int = Field(default=DEFAULT_RECOMPUTE_EVERY, ge=1)

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

        # First existing config file wins
        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)

        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (
            init_settings,
            env_settings,
        )

    @field_validator("levels", mode="before")
    @classmethod
    def split_levels(cls, v: Any) -> Any:
        # SHIORI_LEVELS="N5,N4,N3" as well as a JSON list
        if isinstance(v, str):
            if v.strip().startswith("["):
                return json.loads(v)
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @field_validator("levels")
    @classmethod
    def check_levels(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("levels must not be empty")
        if len(set(v)) != len(v):
            raise ValueError(f"levels must be unique: {v}")
        return v

    @field_validator("corpus_path", mode="before")
    @classmethod
    def resolve_corpus_path(cls, v: Any) -> Path | None:
        if v is None or v == "":
            return None
        return Path(v).expanduser().resolve()

    @property
    def scale(self) -> LevelScale:
        return LevelScale(tuple(self.levels))

    def memory_scheduler(self) -> MemoryScheduler:
        """FSRS scheduler tuned to the configured retention and interval cap."""
        return MemoryScheduler(
            SchedulerParameters(
                request_retention=self.target_retention,
                maximum_interval=self.maximum_interval,
            )
        )


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/shiori/config.toml (if exists)
    3. Environment variables (SHIORI_*)
    4. cli_overrides (passed from Typer)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
