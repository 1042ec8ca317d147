"""Logging helpers used by the miniserver CLI and the generated runtime.

Console output goes through Rich on stderr so relayed child output on stdout
stays untouched. An optional in-memory "flight recorder" keeps recent records
at DEBUG granularity and writes them to disk when something goes wrong.
"""

from __future__ import annotations

import logging
import os
import platform
import sys
from importlib.metadata import PackageNotFoundError, version
from logging.handlers import MemoryHandler
from pathlib import Path
from typing import TYPE_CHECKING, Literal, TypeAlias

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from logging import Logger

# pylint: disable=too-few-public-methods

PROJECT_PREFIX = "miniserver"
ACCESS_LOGGER = "miniserver.server.access"


class ThirdPartyPrefixFilter(logging.Filter):
    """Annotate third-party log records with a short prefix.

    Records from loggers outside the project get `record.prefix` set to a
    bracketed token like "[urllib3]"; project records get an empty prefix.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not record.name.startswith(PROJECT_PREFIX):
            record.prefix = f"[{record.name.split('.')[0]}]"
        else:
            record.prefix = ""
        return True


def config_console_handler(
    level: int = logging.INFO, debug_mode: bool = False, color: bool = True
) -> RichHandler:
    """Configure and return a RichHandler for console output.

    Args:
        level: Minimum level for console output (overridden to DEBUG in debug_mode).
        debug_mode: When True, include timestamps, logger names and source paths.
        color: Enable color output when True.

    Returns:
        RichHandler: Handler writing to stderr, ready for the root logger.
    """
    ColorSystem: TypeAlias = Literal["auto", "standard", "256", "truecolor", "windows"]
    color_system: ColorSystem | None = "auto" if color else None
    console = Console(color_system=color_system, stderr=True)

    if debug_mode:
        level = logging.DEBUG

    handler = RichHandler(
        level=level,
        console=console,
        rich_tracebacks=True,
        show_time=False,
        show_path=debug_mode,
        enable_link_path=debug_mode,
    )

    fmt = (
        "%(prefix)s %(message)s"
        if not debug_mode
        else "%(asctime)s %(name)s: %(message)s"
    )
    handler.setFormatter(logging.Formatter(fmt=fmt))

    if not debug_mode:
        handler.addFilter(ThirdPartyPrefixFilter())

    return handler


def config_runtime_logging(access_log: bool = True) -> None:
    """Configure logging inside the generated runtime process.

    The root logger gets a colorless console handler unless something already
    configured it. Per-request lines go to :data:`ACCESS_LOGGER`, which is
    raised to WARNING when `access_log` is False so only failures show.

    Args:
        access_log: Whether to emit one INFO line per HTTP request.
    """
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=logging.INFO, handlers=[config_console_handler(color=False)]
        )
    logging.getLogger(ACCESS_LOGGER).setLevel(
        logging.NOTSET if access_log else logging.WARNING
    )


def config_flight_recorder(
    path: Path,
    capacity: int = 2000,
    flush_level: int = logging.WARNING,
    flush_on_close: bool = False,
) -> MemoryHandler:
    """Configure and return an in-memory flight recorder backed by a file.

    Args:
        path: Destination file path for flushed records.
        capacity: Number of records to buffer in memory.
        flush_level: Level at or above which the buffer is flushed.
        flush_on_close: If True, flush the buffer when the handler is closed.

    Returns:
        MemoryHandler: A memory-backed handler with a FileHandler target.
    """
    file_handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] [%(process)d:%(threadName)s] %(levelname)s %(name)s:%(lineno)d: %(message)s"
        )
    )

    return MemoryHandler(
        capacity=capacity,
        flushLevel=flush_level,
        target=file_handler,
        flushOnClose=flush_on_close,
    )


def _dist_version(name: str) -> str:
    try:
        return version(name)
    except PackageNotFoundError:
        return "<not installed>"


def log_startup(  # pylint: disable=too-many-arguments
    logger: Logger,
    *,
    app_version: str,
    level: int,
    handlers: list[logging.Handler],
    log_path: Path | None,
    flight_recorder: bool,
    flight_capacity: int | None,
    force_flush_fr: bool,
) -> None:
    """Log a one-line startup summary and DEBUG diagnostics.

    Args:
        logger: Logger used to emit startup messages.
        app_version: Application version string to display.
        level: Effective console logging level (numeric).
        handlers: Active logging handlers attached to the root logger.
        log_path: Path to the flight-recorder output file, or None.
        flight_recorder: Whether the in-memory flight recorder is enabled.
        flight_capacity: Configured capacity of the flight recorder buffer, or None.
        force_flush_fr: Whether the flight recorder flushes on close.
    """
    logger.info(
        "miniserver %s - console=%s, flight-recorder=%s",
        app_version,
        logging.getLevelName(level),
        "ON" if flight_recorder else "OFF",
    )

    logger.debug("Python: %s (%s)", sys.version.split()[0], sys.executable)
    logger.debug("Platform: %s %s", platform.system(), platform.release())
    logger.debug("PID: %s", os.getpid())
    logger.debug("CWD: %s", Path.cwd())
    logger.debug("Click: %s", _dist_version("click"))
    logger.debug("Rich: %s", _dist_version("rich"))
    logger.debug("Handlers: %s", [type(h).__name__ for h in handlers])
    if flight_recorder:
        logger.debug(
            "Flight recorder: path=%s, capacity=%s, flush_on_close=%s",
            str(log_path) if log_path else "<none>",
            flight_capacity,
            force_flush_fr,
        )
