"""
Shared fixtures: an in-memory sink standing in for InfluxDB.
"""

from contextlib import contextmanager

import pytest

from imu_ingest.config import Settings
from imu_ingest.services.sink import SinkWriteError


class RecordingBatchWriter:
    """Collects enqueued points; the last `fail_async` of them fail on close."""

    def __init__(self, sink):
        self.failed = 0
        self.points = []
        self._sink = sink

    def enqueue(self, point):
        self.points.append(point)

    def close(self):
        lost = min(self._sink.fail_async, len(self.points))
        self.failed = lost
        stored = self.points[:len(self.points) - lost]
        self._sink.points.extend(stored)


class RecordingSink:
    """PointSink that keeps written points in memory."""

    def __init__(self):
        self.points = []
        self.blocking_writes = 0
        self.batches = 0
        self.fail_blocking = False
        self.fail_async = 0
        self.reachable = True
        self.closed = False

    def write(self, point):
        self.blocking_writes += 1
        if self.fail_blocking:
            raise SinkWriteError("connection refused")
        self.points.append(point)

    @contextmanager
    def batch(self):
        self.batches += 1
        writer = RecordingBatchWriter(self)
        try:
            yield writer
        finally:
            writer.close()

    def ping(self):
        return self.reachable

    def close(self):
        self.closed = True


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def settings():
    return Settings(
        influx_url="http://influx.test:8086",
        influx_token="test-token",
        influx_org="test-org",
        influx_bucket="test-bucket",
    )


CSV_HEADER = "p,e,ts,rep_id,is_rep_active,g1,g2,g3,a1,a2,a3,m1,m2,m3"
CSV_ROW = "alice,squat,2024-01-01T00:00:00Z,1,true,0.1,0.2,0.3,1.1,1.2,1.3,9.1,9.2,9.3"


@pytest.fixture
def csv_body():
    """Single-row upload used throughout the tests."""
    return f"{CSV_HEADER}\n{CSV_ROW}\n"


@pytest.fixture
def make_csv():
    """Build a CSV body from data rows, header included."""
    def _make(*rows):
        return "\n".join([CSV_HEADER, *rows]) + "\n"
    return _make


@pytest.fixture
def reading_json():
    return {
        "participant": "bob",
        "exercise": "deadlift",
        "timestamp": "2024-03-05T10:15:30.250Z",
        "rep_id": 7,
        "is_rep_active": False,
        "accelerometer": [0.5, -0.25, 9.81],
        "gyroscope": [1.0, 2.0, 3.0],
        "magnetometer": [30.5, -12.0, 44.75],
    }
