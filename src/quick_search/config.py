"""Configuration management using Pydantic settings with an optional JSON file overlay."""

import json
import os
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

# --- Paths ---

APP_NAME = "quick-search"


def get_config_dir() -> Path:
    """Get the configuration directory (e.g. ~/.config/quick-search)."""
    if os.name == "nt":
        base = Path(os.environ.get("APPDATA", Path.home() / ".config")).expanduser()
    else:
        base = Path("~/.config").expanduser()

    path = base / APP_NAME
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_default_credentials_dir() -> Path:
    """Get the default directory holding per-source cookie contexts."""
    return get_config_dir() / "credentials"


CONFIG_FILE = get_config_dir() / "config.json"


def load_config_file() -> dict[str, Any]:
    """Load settings from the JSON config file if it exists."""
    if not CONFIG_FILE.exists():
        return {}

    try:
        text = CONFIG_FILE.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        return json.loads(text)
    except (OSError, ValueError):
        return {}


# Used when no engine is configured for the default (non-aggregate) mode
DEFAULT_WEB_SEARCH_URL = "https://www.google.com/search?q=%s"


class ScrapeSettings(BaseSettings):
    """Hidden-browser scraping configuration (micro-blogging source)."""

    model_config = SettingsConfigDict(env_prefix="QUICK_SEARCH_SCRAPE_")

    headless: bool = Field(default=True)
    timeout: float = Field(default=15.0, description="Global deadline for one scrape, in seconds")
    settle_delay: float = Field(default=2.0, description="Wait after load before the first poll")
    poll_interval: float = Field(default=1.5, description="Wait between DOM polls")
    max_attempts: int = Field(default=8, description="Maximum number of DOM polls")
    max_items: int = Field(default=10, description="Maximum entries extracted per poll")


TransportType = Literal["stdio", "streamable-http", "sse"]


class ServerSettings(BaseSettings):
    """Server configuration."""

    model_config = SettingsConfigDict(env_prefix="QUICK_SEARCH_SERVER_")

    logging_level: str = Field(default="INFO")
    transport: TransportType = Field(default="stdio", description="MCP transport: stdio, streamable-http, or sse")
    host: str = Field(default="127.0.0.1", description="Host for HTTP transports")
    port: int = Field(default=8384, description="Port for HTTP transports")


class AppSettings(BaseSettings):
    """Root application settings.

    Priority: Environment Variables > Config File > Defaults
    """

    model_config = SettingsConfigDict(env_prefix="QUICK_SEARCH_", extra="ignore")

    fetch_timeout_ms: int = Field(default=15000, description="Per-request timeout for source APIs")
    max_query_length: int = Field(default=2000)
    web_search_url: str = Field(default=DEFAULT_WEB_SEARCH_URL, description="Engine used by the default search mode")
    credentials_dir: Optional[str] = Field(default=None, description="Directory for per-source cookie contexts")

    scrape: ScrapeSettings = Field(default_factory=ScrapeSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Config file values arrive as init kwargs and must yield to env vars
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    def get_credentials_dir(self) -> Path:
        """Get the credentials directory, creating if needed."""
        if self.credentials_dir:
            path = Path(self.credentials_dir).expanduser()
        else:
            path = get_default_credentials_dir()
        path.mkdir(parents=True, exist_ok=True)
        return path


def _load_settings() -> AppSettings:
    """Load settings with file config as base, env vars overlay."""
    file_data = load_config_file()
    return AppSettings(**file_data)


settings = _load_settings()
