"""Log delivery engine.

Turns a byte stream into ordered, size-bounded batches of log events and
delivers them to an append-only log stream.

Components:
- splitter: LineSplitter, incremental newline splitting
- buffer: EventBuffer, pending events with batch-size accounting
- sequence: SequenceTracker, the continuation token for ordered appends
- retry: RetryPolicy and error classification
- scheduler: FlushScheduler, periodic and on-demand flushing
- writer: LogWriter, the aggregate tying it all together
- protocols: DeliveryClient / DestinationProvisioner collaborator contracts
- errors: exception hierarchy

Usage:
    from cwlog.writer import Destination, LogWriter

    with LogWriter(Destination("group", "stream"), client) as writer:
        writer.write(b"hello\\n")
"""

from cwlog.writer.buffer import EventBuffer
from cwlog.writer.errors import (
    AlreadyAcceptedError,
    CwlogError,
    DeliveryError,
    DeliveryRejectedError,
    DestinationNotFoundError,
    InputReadError,
    InvalidSequenceTokenError,
    MaxRetriesExceeded,
    ProvisioningError,
    WriterClosedError,
)
from cwlog.writer.events import Destination, EmptyLineMode, LogEvent
from cwlog.writer.protocols import DeliveryClient, DestinationProvisioner
from cwlog.writer.retry import RetryAction, RetryConfig, RetryOutcome, RetryPolicy, classify_error
from cwlog.writer.scheduler import FlushScheduler
from cwlog.writer.sequence import SequenceTracker
from cwlog.writer.splitter import LineSplitter
from cwlog.writer.writer import LogWriter, WriterConfig, WriterState

__all__ = [
    "AlreadyAcceptedError",
    "CwlogError",
    "DeliveryClient",
    "DeliveryError",
    "DeliveryRejectedError",
    "Destination",
    "DestinationNotFoundError",
    "DestinationProvisioner",
    "EmptyLineMode",
    "EventBuffer",
    "FlushScheduler",
    "InputReadError",
    "InvalidSequenceTokenError",
    "LineSplitter",
    "LogEvent",
    "LogWriter",
    "MaxRetriesExceeded",
    "ProvisioningError",
    "RetryAction",
    "RetryConfig",
    "RetryOutcome",
    "RetryPolicy",
    "SequenceTracker",
    "WriterClosedError",
    "WriterConfig",
    "WriterState",
    "classify_error",
]
