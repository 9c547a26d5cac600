# src/cwlog/writer/scheduler.py
"""Background flush scheduling.

FlushScheduler owns one thread that calls the writer's flush on a fixed
interval and whenever signal() is called. Flush errors are logged and
discarded here; the writer keeps them as its sticky error and raises them
from close().

Thread Safety:
    signal() and stop() may be called from any thread. The flush callable
    only ever runs on the scheduler thread, so scheduled flushes never
    overlap each other.
"""

import threading
from collections.abc import Callable

import structlog

from cwlog.writer.errors import DeliveryError

logger = structlog.get_logger(__name__)


class FlushScheduler:
    """Triggers flushes on a timer, on demand, until stopped.

    Example:
        scheduler = FlushScheduler(writer.flush, interval=2.0)
        scheduler.start()
        scheduler.signal()   # flush as soon as possible
        scheduler.stop()     # returns once the thread has exited
    """

    def __init__(
        self,
        flush: Callable[[], None],
        interval: float = 2.0,
        *,
        name: str = "cwlog-flush",
    ) -> None:
        """Initialize a stopped scheduler.

        Args:
            flush: Called on every tick or signal.
            interval: Seconds between periodic flushes.
            name: Thread name.

        Raises:
            ValueError: If interval is not positive.
        """
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")
        self._flush = flush
        self._interval = interval
        self._wake = threading.Event()
        self._shutdown = threading.Event()
        self._ready = threading.Event()
        self._flush_count = 0
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        """Start the scheduler thread and wait until it is running."""
        self._thread.start()
        self._ready.wait(timeout=5.0)

    def signal(self) -> None:
        """Request a flush without waiting for the next tick."""
        self._wake.set()

    def stop(self, timeout: float | None = None) -> None:
        """Stop the loop and wait for the thread to exit.

        A flush already in progress completes first. Once stop() returns no
        further scheduled flush can start.

        Args:
            timeout: Maximum seconds to wait, None to wait indefinitely.
        """
        self._shutdown.set()
        self._wake.set()
        if not self._thread.is_alive():
            return
        if self._thread is threading.current_thread():
            # stop() from inside a scheduled flush; the loop exits on return
            return
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.error("Flush scheduler did not exit within timeout", timeout=timeout)

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive()

    @property
    def flush_count(self) -> int:
        """Number of flushes the scheduler has triggered."""
        return self._flush_count

    def _run(self) -> None:
        self._ready.set()
        while True:
            signalled = self._wake.wait(timeout=self._interval)
            if self._shutdown.is_set():
                break
            self._wake.clear()
            self._flush_count += 1
            try:
                self._flush()
            except DeliveryError as e:
                # Recorded as the writer's sticky error; close() raises it
                logger.debug(
                    "Scheduled flush failed",
                    trigger="signal" if signalled else "tick",
                    error=str(e),
                )
            except Exception as e:
                logger.error(
                    "Scheduled flush failed unexpectedly",
                    error=str(e),
                    error_type=type(e).__name__,
                )
        logger.debug("Flush scheduler stopped", flushes=self._flush_count)
