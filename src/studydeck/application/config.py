from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from studydeck.domain.constants import (
    DEFAULT_SESSION_LIMIT,
    GEMINI_BASE_URL,
    GEMINI_DEFAULT_MODEL,
    REQUEST_TIMEOUT,
)


def config_files() -> list[Path]:
    """Candidate config file locations, in priority order."""
    return [
        Path.home() / ".config/studydeck/config.toml",
        Path.home() / ".studydeck.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for studydeck.
    Supports loading from:
    1. Environment variables (STUDYDECK_*)
    2. Config file (~/.config/studydeck/config.toml)
    3. Manual overrides (CLI / API)
    """

    model_config = SettingsConfigDict(
        env_prefix="STUDYDECK_",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/studydeck")
    database_path: Path | None = None
    uploads_dir: Path | None = None
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/studydeck/logs")

    # Storage
    backend: Literal["sqlite", "memory"] = "sqlite"

    # Question generation
    gemini_api_key: str | None = None
    gemini_model: str = GEMINI_DEFAULT_MODEL
    gemini_base_url: str = GEMINI_BASE_URL
    request_timeout: float = REQUEST_TIMEOUT

    # Scheduling
    session_limit: int = Field(default=DEFAULT_SESSION_LIMIT, ge=1)
    cascade_budgets: bool = False

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    verbose: int = 1

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

        # First existing file wins
        toml_file = next((f for f in config_files() if f.exists()), None)

        # Earlier sources take priority: overrides > env > file
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

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def resolve_dir(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("database_path", "uploads_dir", mode="before")
    @classmethod
    def resolve_optional_path(cls, v: Any) -> Path | None:
        if v:
            return Path(v).expanduser().resolve()
        return None


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/studydeck/config.toml (if exists)
    3. Environment variables (STUDYDECK_*)
    4. cli_overrides (passed from Typer or the HTTP layer)

    Paths left unset are derived from data_dir.
    """
    config = AppConfig(**(cli_overrides or {}))

    if config.database_path is None:
        config.database_path = config.data_dir / "studydeck.sqlite"

    if config.uploads_dir is None:
        config.uploads_dir = config.data_dir / "uploads"

    return config
