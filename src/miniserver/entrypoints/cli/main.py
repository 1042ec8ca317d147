"""miniserver CLI entry point.

Defines the top-level ``miniserver`` command (via Click-Extra) and its single
``start`` command.

Notes
- The CLI version is sourced from `miniserver.__version__` and displayed
  automatically by Click-Extra (``--version``).
- Relayed runtime output is written to stdout; logs and messages go to stderr.

Examples
    $ miniserver --version
    $ miniserver start
    $ miniserver -v start
"""

import logging
import signal
from pathlib import Path
from typing import TYPE_CHECKING

import click
import click_extra as clickx
from platformdirs import user_log_dir

from miniserver import __version__, config, launcher
from miniserver.errors import MiniserverError
from miniserver.logging import config_console_handler, config_flight_recorder, log_startup

from .helpers import error, warn

if TYPE_CHECKING:
    from logging import Handler

logger = logging.getLogger(__name__)


HELP = """miniserver command-line interface.

    Compiles the handlers of the project in the current directory, generates a
    bootstrap entry point that loads the services configuration, links the
    handlers and starts the server, then runs it and relays its output until
    interrupted.
    """


@clickx.extra_group(
    version=__version__,
    help=HELP,
    params=[
        clickx.ColorOption(show_envvar=True),
        clickx.ExtraVersionOption(),
    ],
)
@click.option(
    "--verbose",
    "-v",
    "verbose_count",
    count=True,
    help=(
        "Increase the default WARNING verbosity by one level "
        "for each additional repetition of the option."
    ),
    default=0,
)
@click.option(
    "--quiet",
    "-q",
    "quiet_count",
    count=True,
    help=(
        "Decrease the default WARNING verbosity by one level "
        "for each additional repetition of the option."
    ),
    default=0,
)
@click.option(
    "--debug/--no-debug",
    is_flag=True,
    help="Enable debug mode (timestamps, logger names and source paths).",
    default=False,
)
@click.option(
    "--log-path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to log file (overrides default flight recorder path).",
    default=Path(user_log_dir("miniserver", appauthor=False, ensure_exists=True))
    / "latest.log",
    envvar="MINISERVER_LOG_PATH",
    show_default=True,
    show_envvar=True,
)
@click.option(
    "--flight-recorder/--no-flight-recorder",
    "flight_recorder",
    is_flag=True,
    help=(
        "Keep the last log records at DEBUG granularity in memory and write "
        "them to --log-path when a WARNING/ERROR occurs."
    ),
    default=True,
    show_envvar=True,
)
@click.option(
    "--force-flush/--no-force-flush",
    "force_flush_flight_recorder",
    is_flag=True,
    help="Force-flush the flight recorder buffer to --log-path on program exit.",
    default=False,
    show_default=True,
    show_envvar=True,
)
@clickx.pass_context
def miniserver(  # pylint: disable=too-many-arguments, too-many-positional-arguments
    ctx: click.Context,
    verbose_count: int,
    quiet_count: int,
    debug: bool,
    log_path: Path,
    flight_recorder: bool,
    force_flush_flight_recorder: bool,
) -> None:
    """miniserver command-line interface."""

    # 0) compute effective verbosity
    level = logging.WARNING - (10 * verbose_count) + (10 * quiet_count)
    level = max(logging.DEBUG, min(logging.CRITICAL, level))

    handlers: list[Handler] = []

    # 1) console handler
    use_color = ctx.color is not False
    handlers.append(
        config_console_handler(level=level, debug_mode=debug, color=use_color)
    )

    # 2) flight recorder
    if flight_recorder:
        handlers.append(
            config_flight_recorder(
                path=log_path,
                capacity=2000,
                flush_on_close=force_flush_flight_recorder,
            )
        )

    # 3) root logger
    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)

    log_startup(
        logger,
        app_version=__version__,
        level=level,
        handlers=handlers,
        log_path=log_path,
        flight_recorder=flight_recorder,
        flight_capacity=2000 if flight_recorder else None,
        force_flush_fr=force_flush_flight_recorder,
    )

    ctx.call_on_close(logging.shutdown)


@click.command()
def start() -> None:
    """Compile the project, generate the bootstrap and run the server."""
    try:
        code = launcher.start(Path.cwd())
    except (MiniserverError, config.CompilerCommandError) as e:
        error(str(e))
        raise SystemExit(1) from e
    if code < 0:
        # Killed by a signal: report it the way a shell does.
        signum = -code
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = f"signal {signum}"
        warn(f"Runtime was killed by {name}.")
        raise SystemExit(128 + signum)
    if code != 0:
        warn(f"Runtime exited with code {code}.")
        raise SystemExit(code)


miniserver.add_command(start)
