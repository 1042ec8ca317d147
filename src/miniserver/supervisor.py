"""Child-process supervision: spawn, relay output, terminate.

A :class:`ChildSupervisor` starts shell commands as child processes and owns
them until :meth:`ChildSupervisor.close`. Each :class:`ChildProcess` pumps its
stdout and stderr on dedicated relay threads and hands every chunk, as soon as
it is read, to the registered callbacks.
"""

from __future__ import annotations

import contextlib
import logging
import os
import signal
import subprocess
import threading
from collections.abc import Callable, Mapping
from pathlib import Path
from types import TracebackType
from typing import IO

import click

from miniserver.errors import LaunchError

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[bytes], None]

CHUNK_SIZE = 64 * 1024  # pragma: no mutate
DEFAULT_TERMINATE_TIMEOUT = 5.0  # seconds


def write_to_stdout(chunk: bytes) -> None:
    """Write a raw output chunk to the parent's stdout immediately."""
    stream = click.get_binary_stream("stdout")
    stream.write(chunk)
    stream.flush()


class _StreamRelay:
    """Pump one child stream on a thread and fan chunks out to callbacks.

    Chunks read before the first callback subscribes are held and replayed to
    it, so early output is never lost. Delivery happens under a lock, which
    keeps per-stream ordering intact.
    """

    def __init__(self, name: str, stream: IO[bytes]) -> None:
        self.name = name
        self._stream = stream
        self._lock = threading.Lock()
        self._callbacks: list[ChunkCallback] = []
        self._pending: list[bytes] = []
        self._thread = threading.Thread(
            target=self._pump, name=f"miniserver-relay-{name}", daemon=True
        )

    def start(self) -> None:
        self._thread.start()

    def subscribe(self, callback: ChunkCallback) -> None:
        with self._lock:
            self._callbacks.append(callback)
            pending, self._pending = self._pending, []
            for chunk in pending:
                self._deliver(callback, chunk)

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def _deliver(self, callback: ChunkCallback, chunk: bytes) -> None:
        try:
            callback(chunk)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Output callback failed on %s", self.name)

    def _dispatch(self, chunk: bytes) -> None:
        with self._lock:
            if not self._callbacks:
                self._pending.append(chunk)
                return
            for callback in self._callbacks:
                self._deliver(callback, chunk)

    def _pump(self) -> None:
        with contextlib.closing(self._stream):
            while chunk := self._stream.read(CHUNK_SIZE):
                self._dispatch(chunk)
        logger.debug("Relay %s reached end of stream", self.name)


class ChildProcess:
    """Handle on a supervised child process."""

    def __init__(
        self,
        command: str,
        process: subprocess.Popen[bytes],
        *,
        terminate_timeout: float = DEFAULT_TERMINATE_TIMEOUT,
    ) -> None:
        self.command = command
        self._process = process
        self._terminate_timeout = terminate_timeout
        assert process.stdout is not None and process.stderr is not None
        self._stdout = _StreamRelay("stdout", process.stdout)
        self._stderr = _StreamRelay("stderr", process.stderr)

    def start_relays(self) -> None:
        self._stdout.start()
        self._stderr.start()

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    def on_output_chunk(self, callback: ChunkCallback) -> None:
        """Register `callback` for every chunk the child writes to stdout."""
        self._stdout.subscribe(callback)

    def on_error_chunk(self, callback: ChunkCallback) -> None:
        """Register `callback` for every chunk the child writes to stderr."""
        self._stderr.subscribe(callback)

    def poll(self) -> int | None:
        return self._process.poll()

    def wait(self, timeout: float | None = None) -> int:
        return self._process.wait(timeout)

    def drain(self, timeout: float | None = None) -> None:
        """Wait for both relays to deliver everything up to end of stream."""
        self._stdout.join(timeout)
        self._stderr.join(timeout)

    def _signal(self, signum: int) -> None:
        # The child leads its own process group on POSIX, so the shell and the
        # interpreter it started are signalled together.
        with contextlib.suppress(ProcessLookupError):
            if os.name == "posix":
                os.killpg(self._process.pid, signum)
            elif signum == signal.SIGTERM:
                self._process.terminate()
            else:
                self._process.kill()

    def terminate(self) -> int:
        """Stop the child: TERM first, KILL if it outlives the timeout.

        Returns:
            The child's exit code.
        """
        if (code := self.poll()) is not None:
            return code

        logger.debug("Terminating child %s (pid %s)", self.command, self.pid)
        kill = getattr(signal, "SIGKILL", signal.SIGTERM)
        self._signal(signal.SIGTERM)
        try:
            code = self.wait(self._terminate_timeout)
        except subprocess.TimeoutExpired:
            logger.warning(
                "Child (pid %s) ignored SIGTERM for %.1fs; killing it.",
                self.pid,
                self._terminate_timeout,
            )
            self._signal(kill)
            return self.wait()
        if os.name == "posix":
            # A shell that did not exec its command may leave it behind.
            self._signal(kill)
        return code


class ChildSupervisor:
    """Start and own child processes for the lifetime of the launcher.

    Args:
        cwd: Working directory for spawned children.
        env: Extra environment variables layered over the current environment.
        terminate_timeout: Grace period between TERM and KILL on close.
    """

    def __init__(
        self,
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        terminate_timeout: float = DEFAULT_TERMINATE_TIMEOUT,
    ) -> None:
        self._cwd = cwd
        self._env = {**os.environ, "PYTHONUNBUFFERED": "1", **(env or {})}
        self._terminate_timeout = terminate_timeout
        self._children: list[ChildProcess] = []
        self._closed = False

    @property
    def children(self) -> tuple[ChildProcess, ...]:
        return tuple(self._children)

    def start(self, command: str) -> ChildProcess:
        """Spawn `command` through the shell with piped stdout/stderr.

        Raises:
            LaunchError: If the supervisor is closed or the shell cannot start.
        """
        if self._closed:
            raise LaunchError(command, "supervisor is closed")

        logger.info("Starting %s", command)
        try:
            process = subprocess.Popen(  # noqa: S602  # pylint: disable=consider-using-with
                command,
                shell=True,
                cwd=self._cwd,
                env=self._env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                bufsize=0,
                start_new_session=os.name == "posix",
            )
        except OSError as e:
            raise LaunchError(command, str(e)) from e

        child = ChildProcess(
            command, process, terminate_timeout=self._terminate_timeout
        )
        # Registered before the relay threads start so close() always sees it.
        self._children.append(child)
        child.start_relays()
        logger.debug("Child started with pid %s", child.pid)
        return child

    def close(self) -> None:
        """Terminate every child still running. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        for child in self._children:
            code = child.terminate()
            logger.debug("Child (pid %s) exited with %s", child.pid, code)

    def __enter__(self) -> ChildSupervisor:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
