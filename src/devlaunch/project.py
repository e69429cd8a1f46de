from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .errors import DevLaunchError
from .platform import Platform

_APP_ID_KEYS = {
    Platform.ANDROID: "package",
    Platform.IOS: "bundleIdentifier",
}


def read_app_config(project_root: str | Path) -> dict[str, Any]:
    """
    Read `app.json` from the project root.

    Both `{"expo": {...}}` and a bare top-level config are accepted; a missing
    file yields an empty config.
    """
    path = Path(project_root) / "app.json"
    if not path.exists():
        return {}
    with path.open(encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        return {}
    expo = data.get("expo")
    return expo if isinstance(expo, dict) else data


def resolve_application_id(project_root: str | Path, platform: Platform) -> str:
    """
    Return the application identifier configured for `platform`.

    Raises:
        DevLaunchError: If the project does not configure one.
    """
    config = read_app_config(project_root)
    section = config.get(platform.value) or {}
    key = _APP_ID_KEYS[platform]
    app_id = section.get(key) if isinstance(section, dict) else None
    if not app_id:
        raise DevLaunchError(
            f"No {platform.value} application id is configured for {project_root}.",
            hint=f'Set "{platform.value}.{key}" in app.json.',
            code="NO_APPLICATION_ID",
        )
    return str(app_id)


__all__ = ["read_app_config", "resolve_application_id"]
