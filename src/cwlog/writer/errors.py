# src/cwlog/writer/errors.py
"""Exceptions raised by the log writer and its collaborators.

Delivery clients translate backend errors into the typed errors below so
the retry policy can classify them without knowing the backend. Anything
a client raises that is not one of these is treated as a transient error.
"""


class CwlogError(Exception):
    """Base class for all cwlog errors."""


class DeliveryError(CwlogError):
    """Raised by flush() and close() when a batch cannot be delivered."""


class AlreadyAcceptedError(DeliveryError):
    """The batch was already accepted by the destination.

    Attributes:
        expected_token: Sequence token to use for the next append, if the
            destination reported one
    """

    def __init__(self, message: str, expected_token: str | None = None) -> None:
        self.expected_token = expected_token
        super().__init__(message)


class InvalidSequenceTokenError(DeliveryError):
    """The sequence token sent with the batch is stale.

    Attributes:
        expected_token: Sequence token the destination expects instead
    """

    def __init__(self, message: str, expected_token: str | None = None) -> None:
        self.expected_token = expected_token
        super().__init__(message)


class DestinationNotFoundError(DeliveryError):
    """The log group or log stream does not exist."""


class DeliveryRejectedError(DeliveryError):
    """The destination rejected the request in a way retrying cannot fix.

    Examples are malformed parameters or missing permissions.
    """


class MaxRetriesExceeded(DeliveryError):
    """Raised when a batch exhausts its delivery attempts.

    Once raised the writer is poisoned: every later flush() and close()
    re-raises this same exception without touching the network.
    """

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Max retries ({attempts}) exceeded: {last_error}")


class ProvisioningError(CwlogError):
    """Raised when the log group or stream could not be created."""

    def __init__(self, resource: str, message: str) -> None:
        self.resource = resource
        super().__init__(f"Failed to create {resource}: {message}")


class InputReadError(CwlogError):
    """The input stream failed before end of file.

    Raised by close(); the original error is chained as __cause__.
    """


class WriterClosedError(CwlogError):
    """write() was called after the writer's input side was closed."""
