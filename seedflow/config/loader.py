"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

    1. config/config.yaml  -- static defaults checked into the repo
    2. .env file           -- local developer overrides (not committed)
    3. Environment vars    -- set at deploy time

The ``_deep_merge`` helper does recursive dict merging::

    base = {"stages": {"dwell": {"reading": 1.3}}}
    overrides = {"stages": {"dismiss_delay": 1.5}}
    result = {"stages": {"dwell": {"reading": 1.3}, "dismiss_delay": 1.5}}
"""

from pathlib import Path

import yaml

from seedflow.config.settings import Settings


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built settings; a fresh ``Settings()`` is read when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "backend": {
            "base_url": settings.backend_base_url,
            "extraction_timeout": settings.extraction_timeout_seconds,
            "config_timeout": settings.config_timeout_seconds,
        },
        "llm": {
            "openai_configured": bool(settings.openai_api_key),
            "text_model": settings.openai_text_model,
            "explanation_max_tokens": settings.explanation_max_tokens,
        },
        "ai_limits": {
            "max_words": settings.ai_max_words,
            "max_characters": settings.ai_max_characters,
        },
        "stages": {
            "dwell": settings.stage_dwell_times(),
            "dismiss_delay": settings.completion_dismiss_delay,
            "tick_interval": settings.progress_tick_interval,
        },
        "tasks": {
            "max_concurrent": settings.task_max_concurrent,
            "timeout": settings.task_timeout_seconds,
            "max_retries": settings.task_max_retries,
            "retention": settings.task_retention_seconds,
        },
        "persistence": {
            "seed_db_path": settings.seed_db_path,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
