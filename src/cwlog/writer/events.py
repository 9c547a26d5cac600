# src/cwlog/writer/events.py
"""Log event data model and CloudWatch Logs batch limits.

The limits below are fixed by the PutLogEvents API:
https://docs.aws.amazon.com/AmazonCloudWatchLogs/latest/APIReference/API_PutLogEvents.html
"""

from dataclasses import dataclass
from enum import StrEnum

# Maximum bytes in one batch: sum of UTF-8 message bytes plus
# EVENT_OVERHEAD_BYTES per event.
MAX_BATCH_BYTES = 1_048_576

# Maximum number of events in one batch.
MAX_BATCH_EVENTS = 10_000

# Fixed per-event accounting overhead applied by the API.
EVENT_OVERHEAD_BYTES = 26


class EmptyLineMode(StrEnum):
    """Handling of blank input lines.

    CloudWatch Logs rejects events with an empty message, so blank lines
    are either dropped or replaced by a placeholder message.
    """

    DROP = "drop"
    PLACEHOLDER = "placeholder"


@dataclass(frozen=True, slots=True)
class LogEvent:
    """A single line of input, stamped at append time.

    Attributes:
        message: Line text without its delimiter
        timestamp: Milliseconds since the Unix epoch
    """

    message: str
    timestamp: int

    @property
    def size(self) -> int:
        """Bytes this event counts against the batch limit."""
        return event_size(self.message)

    def to_api(self) -> dict[str, str | int]:
        """Render as a PutLogEvents ``logEvents`` entry."""
        return {"timestamp": self.timestamp, "message": self.message}


@dataclass(frozen=True, slots=True)
class Destination:
    """Log group / log stream pair that events are appended to."""

    log_group: str
    log_stream: str

    def __str__(self) -> str:
        return f"{self.log_group}/{self.log_stream}"


def event_size(message: str) -> int:
    """Return the batch accounting size of a message."""
    return len(message.encode("utf-8")) + EVENT_OVERHEAD_BYTES
