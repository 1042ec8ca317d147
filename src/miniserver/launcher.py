"""Build-then-launch orchestration behind ``miniserver start``.

The sequence is strictly ordered: the workspace is prepared (blocking), the
bootstrap is written into the fresh build directory, and only then is the
runtime spawned and supervised until it exits or the launcher is interrupted.
"""

from __future__ import annotations

import logging
import shlex
import sys
from collections.abc import Sequence
from pathlib import Path

from miniserver import config
from miniserver.bootstrap import BootstrapParams, synthesize_bootstrap
from miniserver.lifecycle import Lifecycle
from miniserver.supervisor import ChildSupervisor, ChunkCallback, write_to_stdout
from miniserver.workspace import prepare_workspace

logger = logging.getLogger(__name__)


def build_launch_command(bootstrap_path: Path, interpreter: str | None = None) -> str:
    """Return the shell command line that runs `bootstrap_path`.

    Args:
        bootstrap_path: The generated bootstrap program.
        interpreter: Shell command prefix for the interpreter; defaults to the
            current interpreter.
    """
    prefix = interpreter or shlex.quote(sys.executable)
    return f"{prefix} {shlex.quote(str(bootstrap_path))}"


def launch(
    bootstrap_path: Path,
    *,
    cwd: Path,
    interpreter: str | None = None,
    sink: ChunkCallback | None = None,
) -> int:
    """Run the bootstrap as a supervised child, relaying its output to `sink`.

    Both child streams go to the same sink (stdout by default).

    Returns:
        The child's exit code once it exits on its own.
    """
    sink = sink or write_to_stdout
    supervisor = ChildSupervisor(cwd=cwd)
    with Lifecycle(supervisor) as lifecycle:
        with lifecycle.deferred():
            child = supervisor.start(build_launch_command(bootstrap_path, interpreter))
            child.on_output_chunk(sink)
            child.on_error_chunk(sink)
        return lifecycle.run(child)


def start(
    cwd: Path,
    *,
    compiler_command: Sequence[str] | None = None,
    interpreter: str | None = None,
    sink: ChunkCallback | None = None,
) -> int:
    """Prepare the workspace, synthesize the bootstrap and launch it.

    Args:
        cwd: Project directory.
        compiler_command: Explicit compiler argv (see :mod:`miniserver.config`).
        interpreter: Interpreter command prefix; defaults to `MINISERVER_PYTHON`
            or the current interpreter.
        sink: Receiver for relayed child output.

    Returns:
        The runtime's exit code.

    Raises:
        MiniserverError: If preparation or synthesis fails; nothing is spawned.
    """
    cwd = cwd.resolve()
    build_dir = prepare_workspace(
        cwd / config.BUILD_DIR, cwd=cwd, command=compiler_command
    )
    params = BootstrapParams(
        workdir=cwd,
        services_config=config.SERVICES_CONFIG_FILE,
        build_dir=config.BUILD_DIR,
    )
    bootstrap_path = synthesize_bootstrap(params, build_dir)
    logger.info("Launching %s", bootstrap_path.relative_to(cwd))
    return launch(
        bootstrap_path,
        cwd=cwd,
        interpreter=interpreter or config.get_interpreter(),
        sink=sink,
    )
