# src/cwlog/destinations/cloudwatch.py
"""CloudWatch Logs delivery backend.

Wraps a boto3 ``logs`` client and translates its ClientError codes into
the writer's typed delivery errors:

    DataAlreadyAcceptedException  -> AlreadyAcceptedError
    InvalidSequenceTokenException -> InvalidSequenceTokenError
    ResourceNotFoundException     -> DestinationNotFoundError
    InvalidParameterException,
    UnrecognizedClientException,
    AccessDeniedException         -> DeliveryRejectedError

Everything else (throttling, service errors, connection failures) is
re-raised untouched and retried by the writer as a transient failure.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

import structlog
from botocore.exceptions import ClientError

from cwlog.writer.errors import (
    AlreadyAcceptedError,
    DeliveryError,
    DeliveryRejectedError,
    DestinationNotFoundError,
    InvalidSequenceTokenError,
    ProvisioningError,
)

if TYPE_CHECKING:
    from cwlog.writer.events import Destination, LogEvent

logger = structlog.get_logger(__name__)

_REJECTED_CODES = frozenset(
    {
        "InvalidParameterException",
        "UnrecognizedClientException",
        "AccessDeniedException",
    }
)

# "... The next expected sequenceToken is: 4958..." and
# "... The next batch can be sent with sequenceToken: 4958..."
_TOKEN_IN_MESSAGE = re.compile(r"sequenceToken(?: is)?:\s*(\S+)")


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def _expected_token(error: ClientError) -> str | None:
    """Extract the expected sequence token from a token-related error.

    botocore places modeled error fields at the top level of the parsed
    response. Older service responses only carry the token in the message.
    """
    token = error.response.get("expectedSequenceToken")
    if token is None:
        message = str(error.response.get("Error", {}).get("Message", ""))
        match = _TOKEN_IN_MESSAGE.search(message)
        if match is not None:
            token = match.group(1)
    if token is None or token == "null":
        return None
    return str(token)


def translate_error(error: ClientError) -> DeliveryError | None:
    """Map a PutLogEvents ClientError to a typed delivery error.

    Returns:
        The typed error, or None if the error is transient and should be
        re-raised as is.
    """
    code = _error_code(error)
    message = str(error)
    if code == "DataAlreadyAcceptedException":
        return AlreadyAcceptedError(message, expected_token=_expected_token(error))
    if code == "InvalidSequenceTokenException":
        return InvalidSequenceTokenError(message, expected_token=_expected_token(error))
    if code == "ResourceNotFoundException":
        return DestinationNotFoundError(message)
    if code in _REJECTED_CODES:
        return DeliveryRejectedError(message)
    return None


class CloudWatchLogsClient:
    """DeliveryClient backed by CloudWatch Logs PutLogEvents.

    Example:
        client = CloudWatchLogsClient(boto3.client("logs"))
        token = client.put_log_events(destination, batch, None)

    Thread safety:
        boto3 clients are thread-safe; the writer never calls
        put_log_events() concurrently anyway.
    """

    _name = "cloudwatch"

    def __init__(self, logs_client: Any) -> None:
        """Wrap a boto3 CloudWatch Logs client."""
        self._client = logs_client

    @property
    def name(self) -> str:
        return self._name

    def put_log_events(
        self,
        destination: Destination,
        events: Sequence[LogEvent],
        sequence_token: str | None,
    ) -> str | None:
        """Append events and return the next sequence token.

        Raises:
            AlreadyAcceptedError, InvalidSequenceTokenError,
            DestinationNotFoundError, DeliveryRejectedError: see module docs
            ClientError, BotoCoreError: transient failures
        """
        request: dict[str, Any] = {
            "logGroupName": destination.log_group,
            "logStreamName": destination.log_stream,
            "logEvents": [event.to_api() for event in events],
        }
        if sequence_token:
            request["sequenceToken"] = sequence_token

        try:
            response = self._client.put_log_events(**request)
        except ClientError as e:
            translated = translate_error(e)
            if translated is None:
                raise
            raise translated from e

        rejected = response.get("rejectedLogEventsInfo")
        if rejected:
            logger.warning(
                "CloudWatch Logs rejected some events",
                destination=str(destination),
                too_new_start_index=rejected.get("tooNewLogEventStartIndex"),
                too_old_end_index=rejected.get("tooOldLogEventEndIndex"),
                expired_end_index=rejected.get("expiredLogEventEndIndex"),
            )

        return response.get("nextSequenceToken")


class CloudWatchProvisioner:
    """DestinationProvisioner that creates the log group and log stream.

    Creation is idempotent: ResourceAlreadyExistsException is expected
    when only the stream was missing, or when another process won the race.
    """

    def __init__(self, logs_client: Any) -> None:
        self._client = logs_client

    def provision(self, destination: Destination) -> None:
        """Create the destination's log group, then its log stream.

        Raises:
            ProvisioningError: If either resource could not be created
        """
        self._create(
            "log group",
            self._client.create_log_group,
            logGroupName=destination.log_group,
        )
        self._create(
            "log stream",
            self._client.create_log_stream,
            logGroupName=destination.log_group,
            logStreamName=destination.log_stream,
        )

    def _create(self, resource: str, operation: Callable[..., Any], **params: str) -> None:
        try:
            operation(**params)
        except ClientError as e:
            if _error_code(e) == "ResourceAlreadyExistsException":
                logger.debug("Resource already exists", resource=resource, **params)
                return
            raise ProvisioningError(resource, str(e)) from e
        logger.info("Created CloudWatch Logs resource", resource=resource, **params)
