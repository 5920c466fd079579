"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "PALACE_"
DEFAULT_CONFIG_PATH = Path("~/.config/palace-index/config.yaml")

PALACE_DIRNAME = ".palace"
DB_FILENAME = "palace.db"

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("workspace", "root"): "workspace_root",
    ("storage", "db_path"): "db_path",
    ("chunking", "max_lines"): "chunk_max_lines",
    ("chunking", "max_bytes"): "chunk_max_bytes",
    ("scan", "workers"): "scan_workers",
    ("search", "default_limit"): "search_default_limit",
    ("search", "max_limit"): "search_max_limit",
    ("search", "overfetch"): "search_overfetch",
    ("verify", "mode"): "verify_mode",
    ("verify", "preview_limit"): "stale_preview_limit",
    ("git", "binary"): "git_binary",
    ("watch", "debounce_seconds"): "watch_debounce_seconds",
    ("logging", "level"): "log_level",
    ("logging", "json"): "log_json",
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    workspace_root: Path = Field(default_factory=Path.cwd)
    db_path: Path | None = None
    chunk_max_lines: int = Field(default=120, ge=1)
    chunk_max_bytes: int = Field(default=8 * 1024, ge=1)
    scan_workers: int = Field(default=0, ge=0)
    search_default_limit: int = Field(default=10, ge=1)
    search_max_limit: int = Field(default=50, ge=1)
    search_overfetch: int = Field(default=3, ge=1)
    verify_mode: Literal["fast", "strict"] = "fast"
    stale_preview_limit: int = Field(default=20, ge=1)
    git_binary: str = "git"
    watch_debounce_seconds: float = Field(default=1.0, ge=0.0)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_json: bool = True

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @field_validator("workspace_root", "db_path", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path | None:
        if value is None or value == "":
            return None
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("paths must be a path or string")

    def database_path(self, root: Path | None = None) -> Path:
        """Return the index database for a workspace, honouring the override."""
        if self.db_path is not None:
            return self.db_path
        base = (root or self.workspace_root).expanduser().resolve()
        return base / PALACE_DIRNAME / "index" / DB_FILENAME

    def clamp_limit(self, limit: int | None) -> int:
        if limit is None or limit <= 0:
            return self.search_default_limit
        return min(limit, self.search_max_limit)

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        else:
            mapped_key = _YAML_KEY_MAP.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in Settings.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map environment variables with PALACE_ prefix into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings", "PALACE_DIRNAME", "DB_FILENAME"]
