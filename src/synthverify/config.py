"""
SynthVerify Configuration.

Centralized configuration management using Pydantic Settings.
Loads configuration from environment variables.
"""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_xdg_state_dir() -> str:
    """
    Get XDG-compliant state directory for SynthVerify logs.

    Follows XDG Base Directory Specification:
    - Uses $XDG_STATE_HOME/synthverify if XDG_STATE_HOME is set
    - Falls back to $HOME/.local/state/synthverify if not set
    - Returns relative path ./logs if HOME not available (dev/testing)

    Returns:
        str: Path to state/logs directory
    """
    xdg_state_home = os.getenv("XDG_STATE_HOME")
    if xdg_state_home:
        return str(Path(xdg_state_home) / "synthverify" / "logs")

    home = os.getenv("HOME")
    if home:
        return str(Path(home) / ".local" / "state" / "synthverify" / "logs")

    return "./logs"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database (backs both the item document store and the session store)
    database_url: str = "sqlite:///./synthverify.db"
    backing_store_enabled: bool = True

    # Analytics cache
    analytics_cache_ttl_seconds: float = 300.0  # 5 minutes
    analytics_debounce_seconds: float = 1.0
    analytics_enabled: bool = True
    analytics_auto_update: bool = True

    # Save coordination
    save_status_display_seconds: float = 10.0  # How long "saved" stays visible

    # Duplicate detection (primary content field first, then fallbacks)
    dedup_key_fields: list[str] = ["query", "full_seed"]

    # Export
    final_collection_name: str = "synth_verified"
    export_dir: str = "."

    # Hub push
    hub_endpoint: str = "https://huggingface.co"
    hub_token: str = ""
    hub_repo_id: str = ""
    hub_format: str = "jsonl"  # jsonl or parquet
    hub_public: bool = False

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = True

    # Application
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_dir: str = ""  # XDG-compliant log directory (defaults to XDG state dir if empty)
    log_format: str = "standard"  # standard or json
    log_console_enabled: bool = True
    log_file_enabled: bool = True
    log_max_bytes: int = 10_485_760  # 10MB per log file
    log_backup_count: int = 5
    log_to_stdout: bool = True  # Log INFO/DEBUG to stdout
    log_to_stderr: bool = True  # Log WARNING/ERROR/CRITICAL to stderr

    @property
    def log_directory(self) -> Path:
        """Get the log directory path, using XDG default if not specified."""
        if self.log_dir:
            return Path(self.log_dir).expanduser()
        return Path(get_xdg_state_dir())

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


# Global settings instance
settings = Settings()
