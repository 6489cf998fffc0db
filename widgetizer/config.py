"""Configuration loading for Widgetizer.

Configuration lives in an optional ``widgetizer.yaml`` at the workspace root.
Missing keys fall back to DEFAULT_CONFIG; ``WIDGETIZER_SERVER_URL`` overrides
the preview server URL.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "widgetizer.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "data_dir": "data",
    "server_url": "http://localhost:3001",
    "core_widgets_dir": None,
    "export_version": "",
}

PACKAGE_DIR = Path(__file__).parent
CORE_WIDGETS_DIR = PACKAGE_DIR / "core_widgets"
CORE_SNIPPETS_DIR = PACKAGE_DIR / "core_snippets"


def load_config(root: Path) -> dict[str, Any]:
    """Load configuration from widgetizer.yaml.

    Args:
        root: Workspace root directory.

    Returns:
        Dictionary containing configuration values, with defaults applied.
    """
    config = DEFAULT_CONFIG.copy()
    config_path = root / CONFIG_FILENAME
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
            if isinstance(loaded, dict):
                config.update(loaded)
    env_server = os.environ.get("WIDGETIZER_SERVER_URL")
    if env_server:
        config["server_url"] = env_server
    return config


def resolve_data_dir(root: Path, config: dict[str, Any]) -> Path:
    """Return the absolute data directory for a configuration."""
    data_dir = Path(str(config.get("data_dir") or DEFAULT_CONFIG["data_dir"]))
    return data_dir if data_dir.is_absolute() else root / data_dir


def resolve_core_widgets_dir(root: Path, config: dict[str, Any]) -> Path:
    """Return the core widgets directory, defaulting to the packaged set."""
    configured = config.get("core_widgets_dir")
    if not configured:
        return CORE_WIDGETS_DIR
    path = Path(str(configured))
    return path if path.is_absolute() else root / path
