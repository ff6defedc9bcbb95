"""Application configuration loaded from config.yaml + environment variables."""

from __future__ import annotations

import yaml
from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings

_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"

DEFAULT_PROHIBITED_TERMS = [
    # Discriminatory language
    "whites only", "no minorities", "no children", "adults only",
    "no section 8", "christian only", "no muslims", "no jews",
    "preferred religion", "males only", "females only",
    "no disabled", "no wheelchairs",
    # Misleading financial claims
    "guaranteed return", "guaranteed investment", "guaranteed profit",
    "risk-free investment", "100% financing", "no money down",
    # Scam indicators
    "wire money", "western union", "moneygram", "cash only deal",
    "overseas owner", "out of country", "foreign investor",
    # Inappropriate content
    "adult entertainment", "adult business", "adult services",
    # Illegal activity
    "grow operation", "grow house", "drug manufacturing",
]


def _load_yaml() -> dict:
    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


_yaml = _load_yaml()


class ModerationConfig(BaseSettings):
    prohibited_terms: list[str] = Field(default_factory=lambda: list(DEFAULT_PROHIBITED_TERMS))
    report_flag_threshold: int = 3
    notify_agent_on_decision: bool = True
    notify_admins_on_submission: bool = True


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///data/marketplace.db"
    session_max_age_days: int = 7
    resend_api_key: str = ""
    app_url: str = "http://localhost:8000"
    email_from: str = "Homestead <noreply@homestead.example>"
    moderation: ModerationConfig = Field(default_factory=ModerationConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def get_settings() -> Settings:
    """Build Settings by merging YAML defaults with env overrides."""
    y = _yaml
    mod = ModerationConfig(**y.get("moderation", {}))
    overrides = {
        k: y[k] for k in ("session_max_age_days", "app_url", "email_from") if k in y
    }
    db_url = y.get("database", {}).get("url")
    if db_url:
        overrides["database_url"] = db_url
    return Settings(moderation=mod, **overrides)
