from __future__ import annotations

import os
from typing import Any

import yaml
from pydantic import ValidationError

from ..errors import DevLaunchError
from .models import Settings

# Default path to the configuration file.
# Can be overridden with the "DEVLAUNCH_CONFIG" environment variable.
DEFAULT_CONFIG: str = os.getenv("DEVLAUNCH_CONFIG", "devlaunch.yaml")


def load_settings(path: str | None = None) -> Settings:
    """
    Load settings from a YAML configuration file.

    Args:
        path (str | None): Optional path to the configuration file.
                           If not provided, DEFAULT_CONFIG is used.

    Returns:
        Settings: Settings initialized from the file, with environment overrides applied.
                  A missing or empty file yields default settings.

    Raises:
        DevLaunchError: If a value in the file or the environment is invalid.
    """
    file_path: str = path or DEFAULT_CONFIG
    data: dict[str, Any] = {}

    if os.path.exists(file_path):
        with open(file_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
            if isinstance(loaded, dict):
                data = loaded

    try:
        return Settings(**data)
    except ValidationError as e:
        raise DevLaunchError(
            f"Invalid configuration:\n{e}",
            hint=f"Check {file_path} and the DEVLAUNCH_* environment variables.",
            code="INVALID_CONFIG",
        ) from e
