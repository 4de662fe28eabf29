"""Configuration management for Grove MCP."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_config_root() -> Path:
    return Path.home() / ".config"


class GroveSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    config_root: Path = Field(
        default_factory=_default_config_root,
        validation_alias=AliasChoices("GROVE_CONFIG_ROOT", "XDG_CONFIG_HOME"),
    )
    repo_path: Path = Field(default=Path("."), validation_alias="GROVE_REPO_PATH")
    git_path: str | None = Field(default=None, validation_alias="GROVE_GIT_PATH")
    host_url: str = Field(default="http://127.0.0.1:4096", validation_alias="GROVE_HOST_URL")
    host_timeout: float = Field(default=10.0, validation_alias="GROVE_HOST_TIMEOUT")
    session_id: str | None = Field(default=None, validation_alias="GROVE_SESSION_ID")
    swarm_prefix: str = Field(default="wt/", validation_alias="GROVE_SWARM_PREFIX")
    log_level: str = Field(default="INFO", validation_alias="GROVE_LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "GROVE_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("config_root", mode="before")
    @classmethod
    def _parse_config_root(cls, value):
        if value is None or value == "":
            return _default_config_root()
        return value

    @field_validator("host_timeout")
    @classmethod
    def _validate_host_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("GROVE_HOST_TIMEOUT must be > 0")
        return value

    @property
    def state_dir(self) -> Path:
        """Directory holding the mode and session-state records."""

        return self.config_root / "grove"

    @property
    def mode_path(self) -> Path:
        return self.state_dir / "mode.json"

    @property
    def state_path(self) -> Path:
        return self.state_dir / "state.json"


@lru_cache(maxsize=1)
def get_settings() -> GroveSettings:
    """Return cached settings instance."""

    settings = GroveSettings()
    settings.config_root = settings.config_root.expanduser().resolve()
    settings.repo_path = settings.repo_path.expanduser().resolve()
    return settings


__all__ = ["GroveSettings", "get_settings"]
