"""Configuration loading for X-Track.

Settings live in ``~/.config/xtrack/config.toml``. Missing keys fall
back to defaults, and ``XTRACK_API_URL`` overrides the API base URL.
"""

import copy
import os
from pathlib import Path
from typing import Any, Optional

import toml

from xtrack.analytics.window import ALL_PAGE_SIZE, FILTER_RANGES
from xtrack.services.http import DEFAULT_BASE_URL, DEFAULT_TIMEOUT

CONFIG_DIR = Path.home() / ".config" / "xtrack"
CONFIG_PATH = CONFIG_DIR / "config.toml"
SESSION_DB_PATH = CONFIG_DIR / "session.db"

API_URL_ENV = "XTRACK_API_URL"

DEFAULT_CONFIG: dict[str, Any] = {
    "api": {
        "base_url": DEFAULT_BASE_URL,
        "timeout": DEFAULT_TIMEOUT,
        "mode": "remote",  # remote or demo
    },
    "dashboard": {
        "page_size": ALL_PAGE_SIZE,
        "table_limit": 10,
        "default_filter": "all",
    },
}


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Path] = None) -> dict[str, Any]:
    """Load configuration merged over the defaults.

    Args:
        config_path: Path to the TOML file; defaults to CONFIG_PATH.

    Returns:
        Configuration dict. A missing or unreadable file yields defaults.
    """
    path = config_path or CONFIG_PATH
    config = copy.deepcopy(DEFAULT_CONFIG)

    if path.exists():
        try:
            config = _merge(config, toml.load(path))
        except (toml.TomlDecodeError, OSError):
            pass

    env_url = os.environ.get(API_URL_ENV)
    if env_url:
        config["api"]["base_url"] = env_url

    return config


def create_template_config(config_path: Optional[Path] = None) -> Path:
    """Write a template configuration file.

    Returns:
        Path of the written file.
    """
    path = config_path or CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        toml.dump(DEFAULT_CONFIG, f)

    return path


def validate_config(config: dict) -> list[str]:
    """Validate configuration and return a list of problems.

    Args:
        config: Configuration dictionary.

    Returns:
        Human readable problems; empty when the config is usable.
    """
    problems = []
    api = config.get("api", {})
    dashboard = config.get("dashboard", {})

    if api.get("mode", "remote") not in ("remote", "demo"):
        problems.append("api.mode must be 'remote' or 'demo'")
    if api.get("mode", "remote") == "remote" and not api.get("base_url"):
        problems.append(f"api.base_url (or set {API_URL_ENV} env var)")

    timeout = api.get("timeout", DEFAULT_TIMEOUT)
    if not isinstance(timeout, (int, float)) or timeout <= 0:
        problems.append("api.timeout must be a positive number")

    page_size = dashboard.get("page_size", ALL_PAGE_SIZE)
    if not isinstance(page_size, int) or not 1 <= page_size <= 100:
        problems.append("dashboard.page_size must be between 1 and 100")

    table_limit = dashboard.get("table_limit", 10)
    if not isinstance(table_limit, int) or table_limit < 1:
        problems.append("dashboard.table_limit must be a positive integer")

    if dashboard.get("default_filter", "all") not in FILTER_RANGES:
        problems.append(f"dashboard.default_filter must be one of {list(FILTER_RANGES)}")

    return problems
