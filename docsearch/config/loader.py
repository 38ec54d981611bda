"""YAML configuration loader with environment variable overrides.

Configuration is layered (later layers override earlier):

  1. Built-in defaults (``DEFAULT_CONFIG`` below)
  2. ``config/config.yaml`` -- static prompt text and action instructions
  3. Environment / ``.env`` via :class:`Settings`

:func:`load_config` returns one plain dict; services receive the slices
they need through their constructors.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml

from docsearch.config.settings import Settings

DEFAULT_CONFIG: dict[str, Any] = {
    "ask": {
        "system_prompt": (
            "You are a helpful documentation assistant. Use the provided context "
            "snippets when relevant. Answer concisely. If you are unsure, say you "
            "do not have enough information."
        ),
        "no_context": "No relevant context available.",
    },
    "generation": {
        "system_prompt": (
            "You are a helpful writing assistant. Keep responses concise and in "
            "the same language as the input."
        ),
        "default_instruction": (
            "Help improve the following content while keeping meaning unchanged."
        ),
        "actions": {},
    },
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file leaves
              the built-in defaults in place.
        settings: Settings instance to read overrides from.  A fresh one is
                  created when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
        _deep_merge(config, yaml_config)

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "ai": {
            "driver": settings.ai_driver,
            "completion_model": settings.ai_completion_model,
            "embedding_model": settings.ai_embedding_model,
            "embedding_dimension": settings.ai_embedding_dimension,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(config, env_overrides)
    return config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
