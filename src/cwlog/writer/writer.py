# src/cwlog/writer/writer.py
"""LogWriter: a file-like writer that ships lines to a log stream.

The LogWriter is the hub of the delivery engine:
1. write() splits incoming bytes into lines and buffers them as events
2. A FlushScheduler thread drains one batch per tick or signal
3. Each batch is delivered under the RetryPolicy, chaining sequence tokens
4. close() ends the input, stops the scheduler and drains the rest

Design principles:
- Order is preserved end to end: one producer appends, deliveries are
  serialized, and a batch is fully resolved before the next is drained
- Self-healing errors (stale token, already accepted, missing destination)
  are handled inside flush(); only terminal failures reach the caller
- A terminal delivery failure is sticky: the writer is poisoned and every
  later flush()/close() raises it without touching the network

Thread Safety:
    - write() may be called from any thread; it holds _lock while splitting
      and appending
    - flush() runs on the scheduler thread, or on the closing thread once
      the scheduler has stopped; _flush_lock serializes it
    - _lock guards the splitter and buffer, _flush_lock guards the sequence
      token and the sticky error
"""

import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import IO, TYPE_CHECKING, Any

import structlog

from cwlog.core.clock import DEFAULT_CLOCK, Clock
from cwlog.writer.buffer import EventBuffer
from cwlog.writer.errors import (
    AlreadyAcceptedError,
    CwlogError,
    DeliveryError,
    DestinationNotFoundError,
    InputReadError,
    InvalidSequenceTokenError,
    WriterClosedError,
)
from cwlog.writer.events import MAX_BATCH_BYTES, MAX_BATCH_EVENTS, Destination, EmptyLineMode, LogEvent
from cwlog.writer.protocols import DeliveryClient, DestinationProvisioner
from cwlog.writer.retry import RetryConfig, RetryOutcome, RetryPolicy, classify_error
from cwlog.writer.scheduler import FlushScheduler
from cwlog.writer.sequence import SequenceTracker
from cwlog.writer.splitter import LineSplitter

if TYPE_CHECKING:
    from cwlog.core.config import WriterSettings

logger = structlog.get_logger(__name__)

_COPY_CHUNK_SIZE = 32 * 1024


class WriterState(StrEnum):
    """Lifecycle of a LogWriter: OPEN -> CLOSING -> CLOSED."""

    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass(frozen=True)
class WriterConfig:
    """Runtime configuration for a LogWriter."""

    flush_interval: float = 2.0  # seconds
    max_batch_bytes: int = MAX_BATCH_BYTES
    max_batch_events: int = MAX_BATCH_EVENTS
    empty_lines: EmptyLineMode = EmptyLineMode.DROP
    empty_line_placeholder: str = " "
    retry: RetryConfig = field(default_factory=RetryConfig)

    @classmethod
    def from_settings(cls, settings: "WriterSettings") -> "WriterConfig":
        """Factory from WriterSettings config model."""
        return cls(
            flush_interval=settings.flush_interval_seconds,
            max_batch_bytes=settings.max_batch_bytes,
            max_batch_events=settings.max_batch_events,
            empty_lines=settings.empty_lines,
            empty_line_placeholder=settings.empty_line_placeholder,
            retry=RetryConfig.from_settings(settings),
        )


class LogWriter:
    """Buffers lines written to it and delivers them in ordered batches.

    The writer starts its scheduler on construction and must be closed to
    deliver the tail of the input. It is usable as a context manager.

    Example:
        >>> writer = LogWriter(Destination("app", "web-1"), client)
        >>> writer.write(b"started\\n")
        >>> writer.close()   # raises if the data could not be delivered
    """

    def __init__(
        self,
        destination: Destination,
        client: DeliveryClient,
        *,
        provisioner: DestinationProvisioner | None = None,
        config: WriterConfig | None = None,
        clock: Clock = DEFAULT_CLOCK,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the writer and start its flush scheduler.

        Args:
            destination: Log group and stream to append to
            client: Performs the actual append calls
            provisioner: Creates the destination when it is missing. Without
                one, a missing destination is an ordinary failed attempt.
            config: Batching, scheduling and retry settings
            clock: Source of event timestamps
            sleep: Backoff sleep function; tests pass a recorder
        """
        self._config = config or WriterConfig()
        self._destination = destination
        self._client = client
        self._provisioner = provisioner

        self._lock = threading.Lock()
        self._flush_lock = threading.Lock()
        self._close_lock = threading.Lock()

        self._splitter = LineSplitter()
        self._buffer = EventBuffer(
            clock=clock,
            max_batch_bytes=self._config.max_batch_bytes,
            max_batch_events=self._config.max_batch_events,
            empty_lines=self._config.empty_lines,
            empty_line_placeholder=self._config.empty_line_placeholder,
        )
        self._sequence = SequenceTracker()
        self._retry = RetryPolicy(self._config.retry, sleep=sleep)

        self._state = WriterState.OPEN
        self._flush_error: DeliveryError | None = None
        self._close_error: CwlogError | None = None

        # Health metrics, written only under _flush_lock
        self._batches_delivered = 0
        self._events_delivered = 0
        self._delivery_attempts = 0

        self._scheduler = FlushScheduler(self.flush, self._config.flush_interval)
        self._scheduler.start()
        logger.debug(
            "Log writer started",
            destination=str(destination),
            flush_interval=self._config.flush_interval,
        )

    # -- input side ---------------------------------------------------------

    def write(self, data: bytes) -> int:
        """Split data into lines and buffer the completed ones.

        Returns once the bytes have been consumed, so a fast producer is
        held back while the buffer lock is busy.

        Returns:
            Number of bytes consumed (always len(data)).

        Raises:
            WriterClosedError: If the input side has been closed.
        """
        chunk = bytes(data)
        with self._lock:
            if self._splitter.finished:
                raise WriterClosedError("write to closed log writer")
            for line in self._splitter.feed(chunk):
                self._buffer.append(line)
        return len(chunk)

    def close_input(self, error: BaseException | None = None) -> None:
        """Mark the end of the input.

        A clean close buffers the final unterminated line. Closing with an
        error discards it, and close() will raise InputReadError. Only the
        first call is recorded.

        Args:
            error: The input source's failure, or None on clean EOF.
        """
        with self._lock:
            for line in self._splitter.finish(error):
                self._buffer.append(line)

    def copy_from(self, source: IO[bytes], *, tee: IO[bytes] | None = None) -> int:
        """Pump a binary stream into the writer until EOF.

        A read failure closes the input with that error instead of raising;
        close() reports it as InputReadError.

        Args:
            source: Stream to read, e.g. sys.stdin.buffer
            tee: Optional stream that receives a copy of every chunk

        Returns:
            Number of bytes copied.
        """
        read = getattr(source, "read1", source.read)
        copied = 0
        while True:
            try:
                chunk = read(_COPY_CHUNK_SIZE)
            except OSError as e:
                logger.error("Reading input failed", error=str(e), bytes_copied=copied)
                self.close_input(e)
                return copied
            if not chunk:
                return copied
            if tee is not None:
                tee.write(chunk)
                tee.flush()
            copied += self.write(chunk)

    # -- delivery side ------------------------------------------------------

    def signal_flush(self) -> None:
        """Ask the scheduler to flush now instead of at the next tick."""
        self._scheduler.signal()

    def flush(self) -> None:
        """Deliver one batch of buffered events.

        Raises:
            DeliveryError: The sticky error, if delivery failed terminally
                now or on an earlier flush.
            CwlogError: The recorded outcome of a failed close().
        """
        if self._flush_error is not None:
            raise self._flush_error
        if self._state == WriterState.CLOSED:
            if self._close_error is not None:
                raise self._close_error
            return

        with self._flush_lock:
            if self._flush_error is not None:
                raise self._flush_error

            with self._lock:
                batch = self._buffer.drain()
            if not batch:
                return

            try:
                stats = self._retry.run(lambda: self._attempt_delivery(batch))
            except DeliveryError as e:
                self._flush_error = e
                logger.error(
                    "Delivery failed, writer disabled",
                    destination=str(self._destination),
                    events_lost=len(batch),
                    error=str(e),
                )
                raise

            self._batches_delivered += 1
            self._events_delivered += len(batch)
            self._delivery_attempts += stats.attempts
            logger.debug(
                "Batch delivered",
                events=len(batch),
                attempts=stats.attempts,
                buffered=len(self._buffer),
            )

    def _attempt_delivery(self, batch: Sequence[LogEvent]) -> RetryOutcome:
        """Make one append call and classify its result.

        Side effects of the classification (token adoption, provisioning)
        happen here so the retry policy stays backend-agnostic.
        """
        try:
            next_token = self._client.put_log_events(self._destination, batch, self._sequence.current)
        except Exception as e:
            outcome = classify_error(e)
            if isinstance(e, AlreadyAcceptedError):
                self._sequence.update(e.expected_token, source="already_accepted")
            elif isinstance(e, InvalidSequenceTokenError) and e.expected_token is not None:
                self._sequence.update(e.expected_token, source="stale_token")
            elif isinstance(e, DestinationNotFoundError):
                return self._provision(e)
            return outcome

        self._sequence.update(next_token)
        return RetryOutcome.success()

    def _provision(self, error: DestinationNotFoundError) -> RetryOutcome:
        if self._provisioner is None:
            return RetryOutcome.retry(error)
        logger.info("Destination missing, creating it", destination=str(self._destination))
        try:
            self._provisioner.provision(self._destination)
        except Exception as e:
            return RetryOutcome.retry(e)
        # A fresh stream takes no sequence token
        self._sequence.update(None, source="provisioned")
        return RetryOutcome.retry(error)

    def _flush_all(self) -> None:
        """Flush until the buffer is empty or a flush raises.

        A poisoned writer raises its sticky error even when a scheduled
        flush already drained the buffer.
        """
        if self._flush_error is not None:
            raise self._flush_error
        while len(self._buffer) > 0:
            self.flush()

    # -- lifecycle ----------------------------------------------------------

    def close(self) -> None:
        """End the input, stop the scheduler and deliver everything buffered.

        Blocks until all data is delivered or a terminal error occurs. The
        outcome is final: later calls return or raise it again without any
        further delivery.

        Raises:
            InputReadError: If the input was closed with an error
            DeliveryError: If buffered events could not be delivered
        """
        with self._close_lock:
            if self._state == WriterState.CLOSED:
                if self._close_error is not None:
                    raise self._close_error
                return

            self._state = WriterState.CLOSING
            try:
                self._close()
            except CwlogError as e:
                self._close_error = e
                raise
            finally:
                self._state = WriterState.CLOSED
            logger.info("Log writer closed", **self.stats)

    def _close(self) -> None:
        self.close_input()
        self._scheduler.stop()

        read_error = self._splitter.error
        if read_error is not None:
            raise InputReadError(f"reading input failed: {read_error}") from read_error

        self._flush_all()

    def __enter__(self) -> "LogWriter":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    # -- introspection ------------------------------------------------------

    @property
    def state(self) -> WriterState:
        return self._state

    @property
    def destination(self) -> Destination:
        return self._destination

    @property
    def sequence_token(self) -> str | None:
        """Token the next append will carry."""
        return self._sequence.current

    @property
    def stats(self) -> dict[str, Any]:
        """Return a snapshot of writer health metrics.

        Reads are approximately consistent; counters may be slightly stale
        while a flush is in progress.
        """
        with self._lock:
            buffered_events = len(self._buffer)
            buffered_bytes = self._buffer.size
            truncated = self._buffer.truncated_count
        return {
            "state": str(self._state),
            "buffered_events": buffered_events,
            "buffered_bytes": buffered_bytes,
            "batches_delivered": self._batches_delivered,
            "events_delivered": self._events_delivered,
            "delivery_attempts": self._delivery_attempts,
            "lines_truncated": truncated,
            "poisoned": self._flush_error is not None,
        }
