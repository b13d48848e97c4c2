from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from fluentia.domain.constants import PROGRESS_TABLE, REQUEST_TIMEOUT


class AppConfig(BaseSettings):
    """
    Configuration model for fluentia.
    Supports loading from:
    1. Environment variables (FLUENTIA_*)
    2. Config file (~/.config/fluentia/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="FLUENTIA_",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".config/fluentia")
    cache_file: Path | None = None

    # Remote store
    remote_backend: Literal["none", "supabase", "memory"] = "none"
    supabase_url: str | None = None
    supabase_key: str | None = None
    progress_table: str = PROGRESS_TABLE
    request_timeout: float = REQUEST_TIMEOUT

    # Identity
    user_id: str | None = None

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

        # Home may be patched in tests; look the files up at load time
        toml_files = [
            Path.home() / ".config/fluentia/config.toml",
            Path.home() / ".fluentia.toml",
        ]
        toml_file = next((f for f in toml_files if f.exists()), None)

        # Earlier sources win: CLI overrides, then env, then the file
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", mode="before")
    @classmethod
    def resolve_data_dir(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("cache_file", mode="before")
    @classmethod
    def resolve_cache_file(cls, v: Any) -> Path | None:
        if not v:
            return None
        return Path(v).expanduser().resolve()

    @property
    def storage_path(self) -> Path:
        """File backing the local key/value store."""
        return self.cache_file or self.data_dir / "storage.json"


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/fluentia/config.toml (if exists)
    3. Environment variables (FLUENTIA_*)
    4. cli_overrides (passed from Typer)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
