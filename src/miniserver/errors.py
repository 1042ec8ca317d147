"""Error definitions for the miniserver launcher and its runtime helpers."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

# ============================================================================
#                               Base error
# ============================================================================


class MiniserverError(Exception):
    """Base class for miniserver errors."""


# ============================================================================
#                      Build (workspace / compilation)
# ============================================================================


class WorkspaceError(MiniserverError):
    """Raised when the build directory cannot be removed or recreated."""

    def __init__(self, build_dir: Path, reason: str) -> None:
        super().__init__(f"Cannot prepare build directory '{build_dir}': {reason}")
        self.build_dir = build_dir
        self.reason = reason


class CompilationError(MiniserverError):
    """Raised when the compiler cannot be started or exits non-zero."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int | None,
        output: str = "",
    ) -> None:
        if returncode is None:
            message = f"Compiler could not be started: {' '.join(command)}"
        else:
            message = f"Compilation failed with exit code {returncode}."
        if output.strip():
            message = f"{message}\n\n{output.rstrip()}"
        super().__init__(message)
        self.command = list(command)
        self.returncode = returncode
        self.output = output


# ============================================================================
#                           Bootstrap generation
# ============================================================================


class BootstrapError(MiniserverError):
    """Base class for bootstrap generation errors."""


class UnsafeSubstitutionError(BootstrapError):
    """Raised when a value would break the generated bootstrap source."""

    def __init__(self, field: str, value: str) -> None:
        super().__init__(
            f"Value for '{field}' cannot be embedded in the bootstrap program: {value!r}"
        )
        self.field = field
        self.value = value


class BootstrapWriteError(BootstrapError):
    """Raised when the bootstrap program cannot be written to disk."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot write bootstrap program '{path}': {reason}")
        self.path = path
        self.reason = reason


# ============================================================================
#                           Child process lifecycle
# ============================================================================


class LaunchError(MiniserverError):
    """Raised when the child runtime process cannot be spawned."""

    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"Cannot start '{command}': {reason}")
        self.command = command
        self.reason = reason


class LifecycleError(MiniserverError):
    """Raised when the process lifecycle is misused (e.g. installed twice)."""


# ============================================================================
#                       Runtime (inside the bootstrap)
# ============================================================================


class ServicesConfigError(MiniserverError):
    """Raised when the services configuration file is missing or malformed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot load services configuration '{path}': {reason}")
        self.path = path
        self.reason = reason


class HandlerLinkError(MiniserverError):
    """Raised when a handler module cannot be discovered, imported or linked."""

    def __init__(self, location: Path, reason: str) -> None:
        super().__init__(f"Cannot link handler '{location}': {reason}")
        self.location = location
        self.reason = reason
