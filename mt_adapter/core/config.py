"""Application configuration via pydantic-settings.

All values loaded from the .env file at the project root.
The .env file takes precedence over OS-level environment variables
so stale system env vars never shadow the project config.
Settings are read once at startup and never mutated afterwards.
"""

from pathlib import Path
from typing import Any, Tuple, Type

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

# Resolve .env from project root (two levels up: mt_adapter/core/config.py → project root)
_ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    """Central adapter settings. .env file wins over OS env vars."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Override source priority: .env file > OS env vars > defaults."""
        return (init_settings, dotenv_settings, env_settings, file_secret_settings)

    # --- Upstream translation model ---
    upstream_base_url: str = "https://dashscope.aliyuncs.com/compatible-mode/v1"
    # Empty → the caller's bearer token is forwarded as the upstream credential
    upstream_api_key: str = ""
    # Empty → the caller's model name is forwarded unchanged
    upstream_model: str = ""
    upstream_timeout_seconds: float = 60.0
    default_translation_options: dict[str, Any] = Field(
        default_factory=lambda: {"source_lang": "auto"}
    )

    # --- Auth ---
    # Empty → any well-formed bearer token passes the gate
    access_tokens: list[str] = Field(default_factory=list)

    # --- Models listing ---
    served_models: list[str] = Field(
        default_factory=lambda: ["qwen-mt-turbo", "qwen-mt-plus"]
    )

    # --- App ---
    app_env: str = "development"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def model_override(self) -> str | None:
        """Fixed upstream model name, or None to pass the caller's through."""
        return self.upstream_model.strip() or None


settings = Settings()


def get_settings() -> Settings:
    """Return the process-wide settings singleton."""
    return settings
