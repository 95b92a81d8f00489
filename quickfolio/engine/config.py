"""
QuickFolio Configuration — Load and validate quickfolio.yaml at startup.

Usage:
    from quickfolio.engine.config import load_config, get_config
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from quickfolio.engine.errors import QuickFolioConfigError

CONFIG_FILENAME = "quickfolio.yaml"
DATABASE_URL_ENV = "QUICKFOLIO_DATABASE_URL"


# ---------------------------------------------------------------------------
# Pydantic models for quickfolio.yaml
# ---------------------------------------------------------------------------

class DatabaseConfig(BaseModel):
    url: str = "sqlite:///quickfolio.db"
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 1800
    pool_pre_ping: bool = True
    create_tables: bool = True


class CorsConfig(BaseModel):
    allow_origin: str = "*"
    allow_methods: List[str] = Field(
        default_factory=lambda: ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    )
    allow_headers: List[str] = Field(
        default_factory=lambda: ["Content-Type", "Authorization"]
    )

    def headers(self) -> Dict[str, str]:
        """Header mapping attached to every API response."""
        return {
            "Access-Control-Allow-Origin": self.allow_origin,
            "Access-Control-Allow-Methods": ", ".join(self.allow_methods),
            "Access-Control-Allow-Headers": ", ".join(self.allow_headers),
        }


class ApiConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    cors: CorsConfig = CorsConfig()


class LogAsyncQueueConfig(BaseModel):
    flush_interval_ms: int = 100
    flush_batch_size: int = 50
    max_queue_size: int = 10000


class LoggingConfig(BaseModel):
    level: str = "INFO"
    directory: str = ".quickfolio/logs"
    structured: bool = True
    async_queue: LogAsyncQueueConfig = LogAsyncQueueConfig()

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"logging level must be DEBUG/INFO/WARNING/ERROR/CRITICAL, got '{v}'")
        return v


class ExportConfig(BaseModel):
    date_format: str = "%m/%d/%Y"
    directory: str = "."


class QuickFolioConfig(BaseModel):
    """Root model for quickfolio.yaml."""
    name: str = "QuickFolio"
    version: str = "1.0.0"
    environment: str = "dev"

    database: DatabaseConfig = DatabaseConfig()
    api: ApiConfig = ApiConfig()
    logging: LoggingConfig = LoggingConfig()
    export: ExportConfig = ExportConfig()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

_config: Optional[QuickFolioConfig] = None


def _find_project_root() -> Path:
    """Find the project root by looking for quickfolio.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / CONFIG_FILENAME).exists():
            return parent
    return current


def get_project_root() -> Path:
    """Return the project root directory."""
    return _find_project_root()


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    db_url = os.environ.get(DATABASE_URL_ENV)
    if db_url:
        database = dict(data.get("database") or {})
        database["url"] = db_url
        data["database"] = database
    return data


def load_config(config_path: Optional[str] = None) -> QuickFolioConfig:
    """
    Load and validate quickfolio.yaml.

    Args:
        config_path: Explicit path to quickfolio.yaml. If None, auto-discovers.

    Returns:
        Validated QuickFolioConfig instance. Defaults are used when the file
        does not exist.
    """
    global _config

    if config_path is None:
        root = _find_project_root()
        config_path = str(root / CONFIG_FILENAME)

    path = Path(config_path)
    raw: Dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise QuickFolioConfigError(f"Invalid YAML in {path}: {e}", path=str(path))

    # The project header may be nested under "quickfolio:"
    header = raw.get("quickfolio", {}) or {}
    config_data = {
        "name": header.get("name", raw.get("name", "QuickFolio")),
        "version": header.get("version", raw.get("version", "1.0.0")),
        "environment": header.get("environment", raw.get("environment", "dev")),
        "database": raw.get("database", {}) or {},
        "api": raw.get("api", {}) or {},
        "logging": raw.get("logging", {}) or {},
        "export": raw.get("export", {}) or {},
    }
    config_data = _apply_env_overrides(config_data)

    try:
        _config = QuickFolioConfig(**config_data)
    except ValidationError as e:
        raise QuickFolioConfigError(
            f"Invalid configuration in {path}",
            path=str(path),
            errors=e.errors(),
        )
    return _config


def get_config() -> QuickFolioConfig:
    """Get the currently loaded config, loading if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: QuickFolioConfig) -> None:
    """Install an already-built config (tests, embedding)."""
    global _config
    _config = config


def get_environment() -> str:
    """Get the current environment."""
    return get_config().environment
