"""Configuration utilities for miniserver.

This module centralizes the naming conventions of a miniserver project and the
small environment-driven helpers used to locate the compiler and interpreter.
"""

import os
import shlex
import sys
from pathlib import Path

SERVICES_CONFIG_FILE = "servicesconfig.json"  # pragma: no mutate
BUILD_DIR = ".miniserver"  # pragma: no mutate
HANDLERS_SUBDIR = "handlers"  # pragma: no mutate
BOOTSTRAP_FILENAME = "index.py"  # pragma: no mutate

COMPILER_ENV_VAR = "MINISERVER_COMPILER"  # pragma: no mutate
INTERPRETER_ENV_VAR = "MINISERVER_PYTHON"  # pragma: no mutate
OUT_DIR_PLACEHOLDER = "{out_dir}"  # pragma: no mutate


class CompilerCommandError(Exception):
    """Raised when MINISERVER_COMPILER is set but cannot be used."""


def get_compiler_command(out_dir: Path) -> list[str]:
    """Get the compiler command line for emitting into `out_dir`.

    By default the bundled reference compiler is run with the current
    interpreter. Setting `MINISERVER_COMPILER` replaces it; the value is split
    shell-style and every `{out_dir}` placeholder is replaced.

    Args:
        out_dir: Directory the compiler must write its output into.

    Returns:
        The argv list to run.

    Raises:
        CompilerCommandError: If `MINISERVER_COMPILER` is malformed or does not
            mention `{out_dir}`.
    """
    if not (template := os.environ.get(COMPILER_ENV_VAR, "").strip()):
        return [sys.executable, "-m", "miniserver.compiler", "--out-dir", str(out_dir)]

    try:
        parts = shlex.split(template)
    except ValueError as e:
        raise CompilerCommandError(f"{COMPILER_ENV_VAR} is malformed: {e}") from e
    if not any(OUT_DIR_PLACEHOLDER in part for part in parts):
        raise CompilerCommandError(
            f"{COMPILER_ENV_VAR} must contain the {OUT_DIR_PLACEHOLDER} placeholder."
        )
    return [part.replace(OUT_DIR_PLACEHOLDER, str(out_dir)) for part in parts]


def get_interpreter() -> str | None:
    """Return the interpreter command prefix from `MINISERVER_PYTHON`, if set."""
    return os.environ.get(INTERPRETER_ENV_VAR, "").strip() or None
