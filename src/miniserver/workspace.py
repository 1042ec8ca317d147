"""Workspace preparation: recreate the build directory and compile into it.

Both steps block the caller. Any failure is fatal for the current run and is
raised as a :class:`~miniserver.errors.MiniserverError` subclass; nothing is
retried.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

from miniserver import config
from miniserver.errors import CompilationError, WorkspaceError

logger = logging.getLogger(__name__)


def recreate_build_dir(build_dir: Path) -> None:
    """Remove `build_dir` recursively (if present) and create it empty.

    Args:
        build_dir: The build output directory.

    Raises:
        WorkspaceError: If the directory cannot be removed or created.
    """
    try:
        shutil.rmtree(build_dir)
        logger.debug("Removed previous build directory %s", build_dir)
    except FileNotFoundError:
        logger.debug("No previous build directory at %s", build_dir)
    except OSError as e:
        raise WorkspaceError(build_dir, str(e)) from e

    try:
        build_dir.mkdir(parents=True)
    except OSError as e:
        raise WorkspaceError(build_dir, str(e)) from e


def compile_sources(
    build_dir: Path, *, cwd: Path, command: Sequence[str] | None = None
) -> None:
    """Run the compiler so it emits into `build_dir`.

    Args:
        build_dir: Output directory handed to the compiler.
        cwd: Project directory the compiler runs in.
        command: Explicit compiler argv; defaults to
            :func:`miniserver.config.get_compiler_command`.

    Raises:
        CompilationError: If the compiler cannot be started or exits non-zero.
    """
    argv = list(command) if command is not None else config.get_compiler_command(build_dir)
    logger.info("Compiling sources into %s", build_dir)
    logger.debug("Compiler command: %s", argv)

    try:
        result = subprocess.run(  # noqa: S603
            argv,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        raise CompilationError(argv, None, str(e)) from e

    output = "".join(part for part in (result.stdout, result.stderr) if part)
    if result.returncode != 0:
        raise CompilationError(argv, result.returncode, output)
    if output.strip():
        logger.debug("Compiler output:\n%s", output.rstrip())


def prepare_workspace(
    build_dir: Path, *, cwd: Path, command: Sequence[str] | None = None
) -> Path:
    """Recreate `build_dir`, then compile the project into it.

    Returns:
        The prepared build directory.
    """
    recreate_build_dir(build_dir)
    compile_sources(build_dir, cwd=cwd, command=command)
    return build_dir
