"""Configuration loading from settings.yaml and .env."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv


def load_config(
    config_dir: str | Path | None = None,
) -> dict:
    """Load settings.yaml and .env, return merged config dict."""
    if config_dir is None:
        config_dir = Path(__file__).resolve().parent.parent / "config"
    config_dir = Path(config_dir)

    # Load .env (silently skip if missing)
    env_path = config_dir / ".env"
    load_dotenv(env_path)

    settings_path = config_dir / "settings.yaml"
    if not settings_path.exists():
        raise FileNotFoundError(f"Config not found: {settings_path}")

    with open(settings_path, encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}

    # Storage paths may be overridden per environment
    cfg["_overrides"] = {
        key: value
        for key, value in (
            ("state_file", os.getenv("PACING_STATE_FILE", "")),
            ("history_db", os.getenv("PACING_HISTORY_DB", "")),
        )
        if value
    }

    return cfg


def storage_path(cfg: dict, key: str, default: str) -> str:
    """Resolve a storage path: env override, then settings, then default."""
    override = cfg.get("_overrides", {}).get(key)
    if override:
        return override
    return (cfg.get("storage") or {}).get(key) or default
