# tests/conftest.py
"""Shared test fixtures and hypothesis configuration.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/

Writer fixtures use a one-hour flush interval so the scheduler never fires
on its own during a test; tests that need a flush call flush(),
signal_flush() or close() explicitly.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from typing import Any

import boto3
import pytest
from hypothesis import Phase, Verbosity, settings

from cwlog.core.clock import MockClock
from cwlog.writer.events import Destination
from cwlog.writer.retry import RetryConfig
from cwlog.writer.writer import LogWriter, WriterConfig
from tests.fixtures.doubles import RecordingClient, RecordingProvisioner, SleepRecorder

# =============================================================================
# Hypothesis profiles
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Writer fixtures
# =============================================================================

NEVER = 3600.0


@pytest.fixture
def destination() -> Destination:
    return Destination("test-group", "test-stream")


@pytest.fixture
def clock() -> MockClock:
    """Mock clock starting at a fixed epoch millisecond."""
    return MockClock(start=1_700_000_000_000)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def client() -> RecordingClient:
    return RecordingClient()


@pytest.fixture
def provisioner() -> RecordingProvisioner:
    return RecordingProvisioner()


@pytest.fixture
def make_writer(
    destination: Destination,
    clock: MockClock,
    sleeps: SleepRecorder,
) -> Iterator[Callable[..., LogWriter]]:
    """Factory fixture for LogWriters that are torn down after the test.

    Keyword arguments override WriterConfig fields; ``client`` and
    ``provisioner`` are passed through to the writer.
    """
    created: list[LogWriter] = []

    def _make(
        client: RecordingClient,
        *,
        provisioner: RecordingProvisioner | None = None,
        retry: RetryConfig | None = None,
        **config_overrides: object,
    ) -> LogWriter:
        config_overrides.setdefault("flush_interval", NEVER)
        config = WriterConfig(retry=retry or RetryConfig(), **config_overrides)  # type: ignore[arg-type]
        writer = LogWriter(
            destination,
            client,
            provisioner=provisioner,
            config=config,
            clock=clock,
            sleep=sleeps,
        )
        created.append(writer)
        return writer

    yield _make

    for writer in created:
        # Stop scheduler threads of writers a test left open
        writer._scheduler.stop(timeout=5.0)


# =============================================================================
# AWS fixtures
# =============================================================================


@pytest.fixture
def logs_client() -> Any:
    """Real boto3 CloudWatch Logs client with fake credentials.

    Tests drive it through botocore's Stubber; no request leaves the process.
    """
    return boto3.client(
        "logs",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
