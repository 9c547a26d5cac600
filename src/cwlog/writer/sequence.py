# src/cwlog/writer/sequence.py
"""Sequence token bookkeeping for ordered appends."""

import structlog

logger = structlog.get_logger(__name__)


class SequenceTracker:
    """Holds the continuation token for the next PutLogEvents call.

    The token is None only before the first append to a brand-new stream.
    It is replaced after every successful append (from the response) and
    whenever the destination reports the token it expects instead.

    Thread Safety:
        Single writer. Only the flush path reads or replaces the token and
        flushes are serialized.
    """

    def __init__(self, token: str | None = None) -> None:
        self._token = token
        self._updates = 0

    @property
    def current(self) -> str | None:
        """Token to send with the next append."""
        return self._token

    @property
    def updates(self) -> int:
        """Number of times the token has been replaced."""
        return self._updates

    def update(self, token: str | None, *, source: str = "response") -> None:
        """Adopt a new token.

        Args:
            token: The new token.
            source: Where the token came from, for logging
                ("response", "stale_token", "already_accepted").
        """
        if source != "response":
            logger.debug(
                "Adopting sequence token reported by destination",
                source=source,
                previous=self._token,
                token=token,
            )
        self._token = token
        self._updates += 1
