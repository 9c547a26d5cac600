# src/cwlog/writer/splitter.py
"""Incremental line assembly for arbitrarily chunked input.

Input arrives as byte chunks whose boundaries have nothing to do with line
boundaries. LineSplitter keeps the unterminated tail between calls and
hands back complete lines as soon as their newline arrives.

Lines are split on raw bytes before decoding. b"\\n" never occurs inside
a multi-byte UTF-8 sequence, so a chunk boundary can split a character
without corrupting it.
"""

import structlog

logger = structlog.get_logger(__name__)


class LineSplitter:
    """Turns a chunked byte stream into newline-delimited lines.

    Lines are returned without the trailing b"\\n"; a single b"\\r" before
    it is also removed. Undecodable bytes are replaced with U+FFFD.

    The splitter reports the end of input exactly once through finish().
    A clean finish yields the final unterminated line (if any); a failed
    finish discards it, since the source broke mid-line.

    Thread Safety:
        NOT thread-safe. LogWriter serializes feed() and finish() under its
        buffer lock.

    Example:
        splitter = LineSplitter()
        splitter.feed(b"alpha\\nbe")   # ["alpha"]
        splitter.feed(b"ta\\ngam")     # ["beta"]
        splitter.finish()              # ["gam"]
    """

    def __init__(self) -> None:
        self._partial = bytearray()
        self._finished = False
        self._error: BaseException | None = None

    def feed(self, chunk: bytes) -> list[str]:
        """Consume a chunk and return the lines it completed.

        Args:
            chunk: Any number of bytes, including zero.

        Returns:
            Completed lines in input order. May be empty.

        Raises:
            ValueError: If called after finish().
        """
        if self._finished:
            raise ValueError("feed() called after finish()")

        last_newline = chunk.rfind(b"\n")
        if last_newline < 0:
            self._partial += chunk
            return []

        data = bytes(self._partial) + chunk[:last_newline]
        self._partial = bytearray(chunk[last_newline + 1 :])
        return [_decode(line) for line in data.split(b"\n")]

    def finish(self, error: BaseException | None = None) -> list[str]:
        """Mark end of input and return the final unterminated line, if any.

        Only the first call has an effect; later calls return no lines and
        leave the recorded outcome untouched.

        Args:
            error: The input source's failure, or None on clean EOF.

        Returns:
            The trailing line on a clean finish, otherwise nothing.
        """
        if self._finished:
            return []
        self._finished = True
        self._error = error

        tail = bytes(self._partial)
        self._partial.clear()
        if error is not None:
            if tail:
                logger.warning(
                    "Discarding partial line after input failure",
                    partial_bytes=len(tail),
                    error=str(error),
                )
            return []
        return [_decode(tail)] if tail else []

    @property
    def finished(self) -> bool:
        """True once finish() has been called."""
        return self._finished

    @property
    def error(self) -> BaseException | None:
        """The input failure passed to finish(), if any."""
        return self._error

    @property
    def pending_bytes(self) -> int:
        """Bytes of the current unterminated line."""
        return len(self._partial)


def _decode(line: bytes) -> str:
    if line.endswith(b"\r"):
        line = line[:-1]
    return line.decode("utf-8", errors="replace")
