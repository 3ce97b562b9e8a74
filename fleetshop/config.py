"""Application configuration loaded from config.yaml + environment variables."""

from __future__ import annotations

import logging

import yaml
from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings

_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml() -> dict:
    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


_yaml = _load_yaml()


class PlanningConfig(BaseSettings):
    reconcile_delay_seconds: float = 1.0


class OilChangeConfig(BaseSettings):
    default_interval_km: int = 10000
    warning_threshold_pct: int = 90


class AuthConfig(BaseSettings):
    session_max_age_days: int = 30


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///data/fleetshop.db"
    log_level: str = "INFO"
    planning: PlanningConfig = Field(default_factory=PlanningConfig)
    oil_change: OilChangeConfig = Field(default_factory=OilChangeConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def get_settings() -> Settings:
    """Build Settings by merging YAML defaults with env overrides."""
    y = _yaml
    planning = PlanningConfig(**y.get("planning", {}))
    oil = OilChangeConfig(**y.get("oil_change", {}))
    auth = AuthConfig(**y.get("auth", {}))
    overrides = {}
    db_url = y.get("database", {}).get("url")
    if db_url:
        overrides["database_url"] = db_url
    if y.get("log_level"):
        overrides["log_level"] = y["log_level"]
    return Settings(planning=planning, oil_change=oil, auth=auth, **overrides)


def configure_logging(level: str | None = None) -> None:
    """Install a basic root handler once (app start and CLI)."""
    level = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
