# tests/integration/writer/test_writer_lifecycle.py
"""Lifecycle tests with a real flush timer and real threads.

These run the scheduler at a short interval instead of driving flushes by
hand, so delivery races between the timer thread, producers and close()
are exercised for real.
"""

import io
import threading
import time
from collections.abc import Callable

import pytest

from cwlog.writer.errors import InvalidSequenceTokenError, MaxRetriesExceeded
from cwlog.writer.events import Destination
from cwlog.writer.retry import RetryConfig
from cwlog.writer.writer import LogWriter, WriterConfig, WriterState
from tests.fixtures.doubles import RecordingClient

pytestmark = pytest.mark.slow

FAST = WriterConfig(flush_interval=0.02, max_batch_events=5, retry=RetryConfig(backoff_unit=0.001))


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class TestTimedDelivery:
    def test_timer_delivers_while_input_is_open(self) -> None:
        client = RecordingClient()
        writer = LogWriter(Destination("g", "s"), client, config=FAST)

        writer.write(b"early 1\nearly 2\n")
        assert wait_for(lambda: len(client.messages) == 2)
        assert writer.state == WriterState.OPEN

        writer.write(b"late\n")
        writer.close()

        assert client.messages == ["early 1", "early 2", "late"]

    def test_close_drains_backlog_larger_than_one_batch(self) -> None:
        client = RecordingClient()
        writer = LogWriter(Destination("g", "s"), client, config=FAST)

        writer.copy_from(io.BytesIO(b"".join(f"line {i}\n".encode() for i in range(103))))
        writer.close()

        assert client.messages == [f"line {i}" for i in range(103)]
        assert all(len(call.events) <= 5 for call in client.calls)

    def test_tokens_chain_across_timer_and_close(self) -> None:
        client = RecordingClient([None, InvalidSequenceTokenError("stale", expected_token="99")])
        writer = LogWriter(Destination("g", "s"), client, config=FAST)

        for i in range(12):
            writer.write(f"{i}\n".encode())
            time.sleep(0.003)
        writer.close()

        assert client.messages.count("0") == 1
        assert client.calls[0].sequence_token is None
        assert client.calls[2].sequence_token == "99"
        delivered = [m for call in client.calls[2:] for m in call.messages]
        assert delivered == [str(i) for i in range(12)][len(client.calls[0].events) :]


class TestConcurrentProducers:
    def test_whole_lines_from_many_threads(self) -> None:
        client = RecordingClient()
        writer = LogWriter(Destination("g", "s"), client, config=FAST)

        def produce(name: str) -> None:
            for i in range(50):
                writer.write(f"{name}-{i}\n".encode())

        threads = [threading.Thread(target=produce, args=(f"t{n}",)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        writer.close()

        assert len(client.messages) == 200
        for n in range(4):
            mine = [m for m in client.messages if m.startswith(f"t{n}-")]
            assert mine == [f"t{n}-{i}" for i in range(50)]


class TestFailureUnderTimer:
    def test_timer_failure_poisons_writer(self) -> None:
        client = RecordingClient(fail_always=ConnectionError("down"))
        config = WriterConfig(flush_interval=0.02, retry=RetryConfig(max_attempts=2, backoff_unit=0.001))
        writer = LogWriter(Destination("g", "s"), client, config=config)

        writer.write(b"doomed\n")
        assert wait_for(lambda: writer.stats["poisoned"])
        calls = len(client.calls)

        writer.write(b"also doomed\n")
        with pytest.raises(MaxRetriesExceeded):
            writer.close()

        assert len(client.calls) == calls == 2

    def test_timer_failure_on_last_batch_fails_close(self) -> None:
        client = RecordingClient(fail_always=ConnectionError("down"))
        config = WriterConfig(flush_interval=0.02, retry=RetryConfig(max_attempts=2, backoff_unit=0.001))
        writer = LogWriter(Destination("g", "s"), client, config=config)

        writer.write(b"only line\n")
        assert wait_for(lambda: writer.stats["poisoned"])
        assert writer.stats["buffered_events"] == 0

        with pytest.raises(MaxRetriesExceeded):
            writer.close()

        assert len(client.calls) == 2
