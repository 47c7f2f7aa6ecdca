"""Logging setup for the API process.

Configures the root logger once from ``settings.logging``: level, JSON or
plain-text lines, and an optional log file.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from .config import LoggingSettings, settings

_configured = False
_installed: list[logging.Handler] = []


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def build_formatter(fmt: str) -> logging.Formatter:
    if fmt == "json":
        return JsonFormatter()
    return logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")


def setup_logging(config: LoggingSettings | None = None, *, force: bool = False) -> None:
    """Configure root logging handlers.

    Safe to call more than once; later calls are ignored unless ``force``
    is set.

    Args:
        config: Logging settings, defaults to the process settings
        force: Replace handlers installed by an earlier call
    """
    global _configured
    if _configured and not force:
        return

    config = config or settings.logging
    formatter = build_formatter(config.format)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.file:
        handlers.append(logging.FileHandler(config.file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    for handler in _installed:
        root.removeHandler(handler)
        handler.close()
    _installed[:] = handlers
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(config.level.upper())

    _configured = True
