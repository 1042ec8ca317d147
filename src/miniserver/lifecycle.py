"""Process lifecycle: interrupt handling and the single teardown path.

The launcher owns exactly one :class:`Lifecycle`. Installing it registers the
process-wide signal handlers; a signal turns into ``SystemExit(0)`` raised in
the main thread, and leaving the ``with`` block runs :meth:`Lifecycle.close`,
which terminates the supervised children and restores the previous handlers.

Example:
    ```py
    with Lifecycle(supervisor) as lifecycle:
        child = supervisor.start(command)
        return lifecycle.run(child)
    ```
"""

from __future__ import annotations

import contextlib
import logging
import signal
from collections.abc import Iterator
from types import FrameType, TracebackType
from typing import TYPE_CHECKING, Any

from miniserver.errors import LifecycleError

if TYPE_CHECKING:
    from miniserver.supervisor import ChildProcess, ChildSupervisor

logger = logging.getLogger(__name__)

# The child runs in its own session, so a terminal hangup or quit reaches only
# the launcher.
SHUTDOWN_SIGNALS: tuple[signal.Signals, ...] = tuple(
    getattr(signal, name)
    for name in ("SIGINT", "SIGTERM", "SIGHUP", "SIGQUIT")
    if hasattr(signal, name)
)
SIGNAL_EXIT_CODE = 0
DRAIN_TIMEOUT = 5.0  # seconds


class Lifecycle:
    """Own the process-wide shutdown signals for a supervised run."""

    def __init__(
        self,
        supervisor: ChildSupervisor,
        *,
        signals: tuple[signal.Signals, ...] = SHUTDOWN_SIGNALS,
    ) -> None:
        self.supervisor = supervisor
        self._signals = signals
        self._previous: dict[signal.Signals, Any] = {}
        self._installed = False
        self._closed = False
        self._deferring = False
        self._pending: signal.Signals | None = None

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self) -> None:
        """Register the shutdown handler for each signal.

        Raises:
            LifecycleError: If this lifecycle was already installed or closed.
        """
        if self._installed or self._closed:
            raise LifecycleError("Lifecycle can only be installed once.")
        for signum in self._signals:
            self._previous[signum] = signal.signal(signum, self._on_signal)
        self._installed = True
        logger.debug("Installed shutdown handlers for %s", [s.name for s in self._signals])

    def _on_signal(self, signum: int, frame: FrameType | None) -> None:  # pylint: disable=unused-argument
        if self._closed:
            logger.debug("Ignoring %s during shutdown.", signal.Signals(signum).name)
            return
        if self._deferring:
            self._pending = signal.Signals(signum)
            return
        logger.info("Received %s, shutting down.", signal.Signals(signum).name)
        raise SystemExit(SIGNAL_EXIT_CODE)

    @contextlib.contextmanager
    def deferred(self) -> Iterator[None]:
        """Hold shutdown signals until the block completes.

        Wrap steps that must not be interrupted halfway, such as spawning a
        child and registering it with the supervisor. A signal received inside
        the block is acted on when the block exits.
        """
        self._deferring = True
        try:
            yield
        finally:
            self._deferring = False
        if self._pending is not None and not self._closed:
            signum, self._pending = self._pending, None
            logger.info("Received %s, shutting down.", signum.name)
            raise SystemExit(SIGNAL_EXIT_CODE)

    def run(self, child: ChildProcess) -> int:
        """Block until `child` exits on its own and return its exit code.

        Output still in flight is relayed before returning. A shutdown signal
        interrupts the wait with ``SystemExit``.
        """
        code = child.wait()
        child.drain(DRAIN_TIMEOUT)
        if code != 0:
            logger.warning("Runtime process exited with code %s.", code)
        else:
            logger.info("Runtime process exited.")
        return code

    def close(self) -> None:
        """Terminate supervised children and restore the previous handlers."""
        if self._closed:
            return
        self._closed = True
        try:
            self.supervisor.close()
        finally:
            for signum, previous in self._previous.items():
                signal.signal(signum, previous)
            self._previous.clear()
            logger.debug("Lifecycle closed.")

    def __enter__(self) -> Lifecycle:
        self.install()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
