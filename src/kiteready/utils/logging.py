"""Logging setup shared by the CLI and editor hosts."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["LOG_FORMAT", "setup_logging", "set_debug", "get_log_path"]

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_DEFAULT_LOG_DIR = Path.home() / ".kiteready" / "logs"
_LOG_FILE_NAME = "kiteready.log"
_QUIET_LOGGERS: tuple[str, ...] = ("asyncio", "PySide6")

_state: dict[str, object] = {"path": None, "handlers": ()}


def setup_logging(
    debug: bool = False,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 512_000,
    backup_count: int = 2,
    force: bool = False,
) -> Path:
    """Install a rotating log file (and optionally stderr) on the root logger.

    Calling this twice is a no-op unless ``force`` is set; hosts that embed the
    controller usually own logging and never call it at all.
    """

    existing = get_log_path()
    if existing is not None and not force:
        return existing

    directory = Path(log_dir or os.environ.get("KITEREADY_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / _LOG_FILE_NAME

    level = logging.DEBUG if debug else logging.INFO
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=_DATE_FORMAT)
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
    _quiet_external_loggers(level)

    _state["path"] = log_path
    _state["handlers"] = tuple(handlers)
    return log_path


def set_debug(enabled: bool) -> None:
    """Switch the configured handlers between INFO and DEBUG at runtime."""

    level = logging.DEBUG if enabled else logging.INFO
    logging.getLogger().setLevel(level)
    for handler in _state["handlers"]:  # type: ignore[union-attr]
        handler.setLevel(level)
    _quiet_external_loggers(level)


def get_log_path() -> Path | None:
    """Return the active log file, or ``None`` before :func:`setup_logging`."""

    path = _state["path"]
    return path if isinstance(path, Path) else None


def _quiet_external_loggers(root_level: int) -> None:
    quiet_level = max(root_level, logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
