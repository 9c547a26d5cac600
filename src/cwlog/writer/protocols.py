# src/cwlog/writer/protocols.py
"""Protocol definitions for the writer's external collaborators.

The writer never talks to a backend directly. It hands batches to a
DeliveryClient and, when the destination is missing, asks a
DestinationProvisioner to create it.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cwlog.writer.events import Destination, LogEvent


@runtime_checkable
class DeliveryClient(Protocol):
    """Appends batches of events to a destination stream.

    Error handling:
        Implementations translate backend failures into the typed errors
        in cwlog.writer.errors:
        - AlreadyAcceptedError: batch already stored (carries next token)
        - InvalidSequenceTokenError: stale token (carries expected token)
        - DestinationNotFoundError: log group/stream missing
        - DeliveryRejectedError: request can never succeed as sent
        Any other exception is treated as transient and retried.

    Thread Safety:
        put_log_events() is never called concurrently for one writer.
    """

    def put_log_events(
        self,
        destination: "Destination",
        events: "Sequence[LogEvent]",
        sequence_token: str | None,
    ) -> str | None:
        """Append events in order and return the next sequence token.

        Args:
            destination: Target log group and stream
            events: Non-empty batch, oldest first
            sequence_token: Token from the previous append, or None for the
                first append to a new stream

        Returns:
            Token to send with the next append. Backends that no longer
            enforce sequence tokens may return None.
        """
        ...


@runtime_checkable
class DestinationProvisioner(Protocol):
    """Creates a missing destination out of band."""

    def provision(self, destination: "Destination") -> None:
        """Create the log group and stream if they do not exist.

        Must be idempotent. Failures raise and count as a failed delivery
        attempt.
        """
        ...
