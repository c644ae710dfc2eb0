from __future__ import annotations

import logging
from typing import Optional

from metroproximity.config.models import LoggingSettings


def configure_logging(settings: LoggingSettings, *, level_override: Optional[str] = None) -> None:
    level_name = level_override or settings.level
    level = getattr(logging, level_name.upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: {level_name}")

    handlers: Optional[list[logging.Handler]] = None
    if settings.file is not None:
        settings.file.parent.mkdir(parents=True, exist_ok=True)
        handlers = [logging.FileHandler(settings.file, encoding="utf-8"), logging.StreamHandler()]

    # `force=True` lets the CLI re-apply a `--log-level` after an earlier basicConfig call.
    logging.basicConfig(level=level, format=settings.format, handlers=handlers, force=True)
