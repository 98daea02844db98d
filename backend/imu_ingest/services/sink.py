"""
Time-series sink adapters.

The ingestion code talks to the PointSink protocol. InfluxSink is the
production implementation backed by a single long-lived InfluxDB client.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Protocol

from influxdb_client import InfluxDBClient, Point, WritePrecision
from influxdb_client.client.write_api import SYNCHRONOUS, WriteOptions

from imu_ingest.config import Settings
from imu_ingest.models.reading import ExercisePoint


logger = logging.getLogger(__name__)


class SinkWriteError(RuntimeError):
    """A blocking write was not acknowledged by the sink."""


class BatchWriter(Protocol):
    """Non-blocking writer scoped to one batch request."""

    failed: int

    def enqueue(self, point: ExercisePoint) -> None:
        ...


class PointSink(Protocol):
    """Write target for exercise points."""

    def write(self, point: ExercisePoint) -> None:
        ...

    def batch(self) -> Any:
        """Context manager yielding a BatchWriter, joined on exit."""
        ...

    def ping(self) -> bool:
        ...

    def close(self) -> None:
        ...


def to_influx_point(point: ExercisePoint) -> Point:
    """Convert an ExercisePoint into an influxdb_client Point."""
    influx_point = Point(point.measurement)
    for key, value in point.tags.items():
        influx_point.tag(key, value)
    for key, value in point.fields.items():
        influx_point.field(key, value)
    return influx_point.time(point.time, WritePrecision.NS)


def _count_lines(data: Any) -> int:
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    if not isinstance(data, str):
        return 1
    return max(1, sum(1 for line in data.splitlines() if line.strip()))


class InfluxBatchWriter:
    """
    Buffered writer for one batch request.

    Wraps a batching write API. Failed background writes are counted per
    point through the error callback. close() flushes the buffer and
    waits for the background writer, so `failed` is final afterwards.
    """

    def __init__(self, client: InfluxDBClient, bucket: str, org: str):
        self.failed = 0
        self._bucket = bucket
        self._org = org
        self._lock = threading.Lock()
        self._write_api = client.write_api(
            write_options=WriteOptions(max_retries=0),
            error_callback=self._on_error,
        )

    def enqueue(self, point: ExercisePoint) -> None:
        self._write_api.write(
            bucket=self._bucket,
            org=self._org,
            record=to_influx_point(point),
        )

    def close(self) -> None:
        self._write_api.close()

    def _on_error(self, conf: Any, data: Any, exception: Exception) -> None:
        lost = _count_lines(data)
        logger.error(f"Write error ({lost} points): {exception}")
        with self._lock:
            self.failed += lost


class InfluxSink:
    """PointSink backed by InfluxDB 2.x."""

    def __init__(self, settings: Settings, client: Optional[InfluxDBClient] = None):
        self._bucket = settings.influx_bucket
        self._org = settings.influx_org
        if client is None:
            client = InfluxDBClient(
                url=settings.influx_url,
                token=settings.influx_token,
                org=settings.influx_org,
                timeout=settings.influx_timeout_ms,
            )
        self._client = client
        self._sync_api = client.write_api(write_options=SYNCHRONOUS)

    def write(self, point: ExercisePoint) -> None:
        """
        Write a single point and wait for the sink to acknowledge it.

        Raises:
            SinkWriteError: If the write fails for any reason
        """
        try:
            self._sync_api.write(
                bucket=self._bucket,
                org=self._org,
                record=to_influx_point(point),
            )
        except Exception as e:
            logger.error(f"Blocking write failed: {e}")
            raise SinkWriteError(str(e)) from e

    @contextmanager
    def batch(self) -> Iterator[InfluxBatchWriter]:
        writer = InfluxBatchWriter(self._client, self._bucket, self._org)
        try:
            yield writer
        finally:
            writer.close()

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except Exception as e:
            logger.warning(f"Sink ping failed: {e}")
            return False

    def close(self) -> None:
        self._sync_api.close()
        self._client.close()
