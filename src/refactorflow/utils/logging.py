"""Logging setup for processes hosting a refactor workflow.

Logs go to a rotating ``refactorflow.log`` and, unless disabled, to stderr.
The directory comes from the explicit argument, then ``settings.log_dir``,
then ``REFACTORFLOW_LOG_DIR``, then ``~/.refactorflow/logs``.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from ..services.settings import Settings

__all__ = ["setup_logging", "get_logger", "get_log_path", "LOG_FILE_NAME"]

LOG_FILE_NAME = "refactorflow.log"
_DEFAULT_LOG_DIR = Path.home() / ".refactorflow" / "logs"
_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
# asyncio reports every slow callback at DEBUG; provider tasks make that noisy.
_QUIET_LOGGERS: tuple[str, ...] = ("asyncio",)
_LOG_PATH: Path | None = None


def setup_logging(
    settings: Settings | None = None,
    *,
    level: int | None = None,
    log_dir: Path | str | None = None,
    console: bool | None = None,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Install the root handlers once and return the log file path.

    Explicit keyword arguments win over ``settings``; ``debug_logging``
    selects DEBUG over INFO. A second call is a no-op unless ``force``.
    """

    global _LOG_PATH
    if _LOG_PATH is not None and not force:
        return _LOG_PATH

    if level is None:
        level = logging.DEBUG if settings is not None and settings.debug_logging else logging.INFO
    if console is None:
        console = settings.console_logging if settings is not None else True
    if log_dir is None and settings is not None:
        log_dir = settings.log_dir

    directory = Path(log_dir or os.environ.get("REFACTORFLOW_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / LOG_FILE_NAME

    formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _LOG_PATH = log_path
    return log_path


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_log_path() -> Path | None:
    """Return the log file installed by :func:`setup_logging`, if any."""

    return _LOG_PATH
