from __future__ import annotations

import json
import os
import sys
import threading
from collections.abc import Mapping, MutableMapping
from pathlib import Path
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, merge_contextvars

_LOG_DIR = Path(os.getenv("DEVLAUNCH_LOG_DIR", "artifacts/logs"))
_LOG_FILE = _LOG_DIR / "devlaunch.log"


def _ensure_log_dir() -> bool:
    try:
        _LOG_DIR.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False
    return True


def _level_from_env() -> int:
    """Get log level from DEVLAUNCH_LOG_LEVEL (TRACE|DEBUG|INFO|WARNING|ERROR)."""
    import logging

    raw = os.getenv("DEVLAUNCH_LOG_LEVEL", "INFO").upper()
    if raw == "TRACE":
        # Level below DEBUG
        return 5
    return getattr(logging, raw, logging.INFO)


_file_lock = threading.RLock()


def _copy_event_to_message(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> Mapping[str, Any]:
    if "event" in event_dict and "message" not in event_dict:
        event_dict["message"] = event_dict["event"]
    return event_dict


def _drop_none_values(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> Mapping[str, Any]:
    return {k: v for k, v in event_dict.items() if v is not None}


def _file_sink_processor(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Duplicate every record as a JSON line into artifacts/logs/devlaunch.log."""
    if not _ensure_log_dir():
        return event_dict

    line = json.dumps(event_dict, ensure_ascii=False, default=str)
    try:
        with _file_lock:
            with _LOG_FILE.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
    except OSError:
        # Never break execution because of log write issues
        pass

    return event_dict


def bind_context(
    *,
    platform: str | None = None,
    device: str | None = None,
    udid: str | None = None,
) -> None:
    """
    Bind platform/device info into the logging context.

    Device managers call this once a device is resolved, so every later record
    of the orchestration session names the device it concerns.
    """
    bind_contextvars(platform=platform, device=device, udid=udid)


_CONFIGURED = False


def setup_logging() -> None:
    """
    Centralized setup of structured logging with JSON output and file duplication.

    Includes:
    - Log level from DEVLAUNCH_LOG_LEVEL
    - ISO 8601 timestamp (key: "timestamp")
    - Context (platform, device, udid) via contextvars
    - Duplication of each record into artifacts/logs/devlaunch.log
    - JSON lines printed to stderr, keeping stdout for command output
    """
    import logging

    global _CONFIGURED
    if _CONFIGURED:
        return

    level = _level_from_env()

    structlog.configure(
        processors=[
            merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
            structlog.processors.CallsiteParameterAdder(
                [structlog.processors.CallsiteParameter.MODULE]
            ),
            _copy_event_to_message,
            _drop_none_values,
            _file_sink_processor,
            structlog.processors.JSONRenderer(default=str),
        ],
        # Resolve sys.stderr per call: CLI runners and test capture swap it
        logger_factory=lambda *args: structlog.PrintLogger(sys.stderr),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )

    # Sync root logging level (for third-party libraries)
    logging.getLogger().setLevel(level)

    _CONFIGURED = True


def get_logger(name: str | None = None) -> Any:
    """
    Get a structlog logger instance.

    Ensures logging is configured even when the library is used without the CLI.
    """
    if not _CONFIGURED:
        setup_logging()
    return structlog.get_logger(name or __name__)


__all__ = [
    "setup_logging",
    "bind_context",
    "get_logger",
    "clear_contextvars",
]
