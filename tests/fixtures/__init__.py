# tests/fixtures/__init__.py
"""Shared test doubles for cwlog tests.

Available doubles:
- RecordingClient: DeliveryClient that records calls and replays scripted failures
- RecordingProvisioner: DestinationProvisioner that counts calls
- SleepRecorder: stand-in for time.sleep that records requested delays
"""

from tests.fixtures.doubles import DeliveryCall, RecordingClient, RecordingProvisioner, SleepRecorder

__all__ = [
    "DeliveryCall",
    "RecordingClient",
    "RecordingProvisioner",
    "SleepRecorder",
]
