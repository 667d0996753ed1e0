"""Cooperative shutdown flag and the signal listener that raises it."""

from __future__ import annotations

import asyncio
import signal
import sys
from typing import TYPE_CHECKING

from rpcramp._internal.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = get_logger("engine.shutdown")

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownSignal:
    """Process-wide, write-once cancellation flag.

    One instance is created per process and passed explicitly to every
    connection worker, the streaming request source and the ramp
    controller. Once set it is never reset.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    def is_set(self) -> bool:
        """Return True once shutdown has been requested."""
        return self._event.is_set()

    def trigger(self, reason: str = "requested") -> bool:
        """Set the flag.

        Args:
            reason: Short description recorded on the first call.

        Returns:
            True if this call set the flag, False if it was already set.
        """
        if self._event.is_set():
            return False
        self.reason = reason
        self._event.set()
        return True

    async def wait(self) -> None:
        """Block until the flag is set."""
        await self._event.wait()


class ShutdownCoordinator:
    """Listens for termination signals and raises a :class:`ShutdownSignal`.

    Handlers are attached to the running event loop by :meth:`install` and
    detached by :meth:`remove`. Only the first signal has an effect; later
    ones are logged and ignored.

    Attributes:
        shutdown: The flag raised on the first signal.
    """

    def __init__(
        self,
        shutdown: ShutdownSignal,
        signals: Iterable[signal.Signals] = DEFAULT_SIGNALS,
    ) -> None:
        self.shutdown = shutdown
        self._signals = tuple(signals)
        self._installed = False

    def _handle(self, signum: signal.Signals) -> None:
        name = signal.Signals(signum).name
        if self.shutdown.trigger(reason=name):
            logger.warning("Received %s, shutting down...", name)
        else:
            logger.debug("Received %s again, shutdown already in progress", name)

    def install(self) -> None:
        """Install handlers for the configured signals on the running loop."""
        if self._installed:
            return
        loop = asyncio.get_running_loop()

        if sys.platform != "win32":
            for sig in self._signals:
                loop.add_signal_handler(sig, self._handle, sig)
        else:
            # Windows doesn't support add_signal_handler
            for sig in self._signals:
                signal.signal(
                    sig,
                    lambda s, _f: loop.call_soon_threadsafe(self._handle, s),
                )
        self._installed = True
        logger.debug("Shutdown handlers installed for %s", [s.name for s in self._signals])

    def remove(self) -> None:
        """Remove the handlers, restoring defaults."""
        if not self._installed:
            return
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            for sig in self._signals:
                loop.remove_signal_handler(sig)
        else:
            for sig in self._signals:
                handler = (
                    signal.default_int_handler if sig == signal.SIGINT else signal.SIG_DFL
                )
                signal.signal(sig, handler)
        self._installed = False
