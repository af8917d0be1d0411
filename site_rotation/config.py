"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local env overrides (gitignored)
  4. Environment variables        — ``SITE_ROTATION_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

Application config covers where and how state is stored and reported. User
rotation preferences (cooldown, alternation, regions) are NOT configuration:
they are persisted documents edited through ``site-rotation prefs set``.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite state store settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/site_rotation.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class ExportConfig(BaseModel):
    """History export file settings."""

    model_config = ConfigDict(frozen=True)

    export_dir: str = "data/exports"
    filename_prefix: str = "site-history"


class MetricsConfig(BaseModel):
    """Rolling-window lengths reported by ``metrics`` and ``status``."""

    model_config = ConfigDict(frozen=True)

    windows_days: list[int] = [7, 30]

    @field_validator("windows_days")
    @classmethod
    def validate_windows(cls, v: list[int]) -> list[int]:
        if not v:
            raise ValueError("windows_days must contain at least one window.")
        bad = [d for d in v if d < 1]
        if bad:
            raise ValueError(f"windows_days entries must be >= 1, got {bad}.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "WARNING"
    log_file: str = "data/logs/site_rotation.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration."""

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    export: ExportConfig = ExportConfig()
    metrics: MetricsConfig = MetricsConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``; when that default file is
            absent the built-in defaults are used.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If an explicitly given ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    load_dotenv(dotenv_path=root / ".env", override=False)

    raw: dict[str, Any] = {}
    if config_path is None:
        config_path = root / "config" / "default.toml"
        if config_path.exists():
            raw = _read_toml(config_path)
    else:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        raw = _read_toml(config_path)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        raw = _deep_merge(raw, _read_toml(local_config_path))

    raw = _apply_env_overrides(raw)

    return _build_app_config(raw)


def _read_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply SITE_ROTATION_* env vars to the raw config dict.

    Supported overrides:
      SITE_ROTATION_DB_PATH    → raw["database"]["db_path"]
      SITE_ROTATION_LOG_LEVEL  → raw["logging"]["level"]
      SITE_ROTATION_DEBUG      → raw["debug"]
    """
    if db_path := os.environ.get("SITE_ROTATION_DB_PATH"):
        raw.setdefault("database", {})["db_path"] = db_path

    if log_level := os.environ.get("SITE_ROTATION_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("SITE_ROTATION_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        export=ExportConfig(**raw.get("export", {})),
        metrics=MetricsConfig(**raw.get("metrics", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
