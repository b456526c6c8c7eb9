"""Logging helpers for the blend allocator."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from iron_blender.config import LOG_LEVEL_ENV


def resolve_level(default: int = logging.INFO) -> int:
    raw = (os.getenv(LOG_LEVEL_ENV) or "").strip().upper()
    if not raw:
        return default
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else default


def configure_logging(level: int | None = None, log_path: str | None = None) -> None:
    """Configure default logging if no handlers are present."""
    root = logging.getLogger()
    if root.handlers:
        return
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_path:
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    logging.basicConfig(
        level=level if level is not None else resolve_level(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )
