"""
Tests for the ingestion pipelines.
"""

import logging
from datetime import datetime, timezone

import pytest

from imu_ingest.models.reading import SensorReading
from imu_ingest.services.csv_parser import CsvFormatError
from imu_ingest.services.ingestion import (
    MESSAGE_COMPLETE,
    MESSAGE_PARTIAL,
    BatchOutcome,
    ingest_csv,
    ingest_one,
)
from imu_ingest.services.point_builder import InvalidSensorData
from imu_ingest.services.sink import SinkWriteError


def _row(participant="alice", timestamp="2024-01-01T00:00:00Z", rep_id="1", active="true"):
    return (
        f"{participant},squat,{timestamp},{rep_id},{active},"
        "0.1,0.2,0.3,1.1,1.2,1.3,9.1,9.2,9.3"
    )


class TestBatchOutcome:
    """Tests for the CSV outcome tally."""

    def test_complete(self):
        outcome = BatchOutcome(total=4)

        assert outcome.complete
        assert outcome.status_code == 200
        assert outcome.summary() == {"message": MESSAGE_COMPLETE, "total": 4}

    def test_partial(self):
        outcome = BatchOutcome(total=4, errors=1)

        assert not outcome.complete
        assert outcome.successful == 3
        assert outcome.status_code == 207
        assert outcome.summary() == {
            "message": MESSAGE_PARTIAL,
            "total": 4,
            "errors": 1,
            "successful": 3,
        }

    def test_all_rows_failed_is_still_partial(self):
        outcome = BatchOutcome(total=2, errors=2)

        assert outcome.status_code == 207
        assert outcome.successful == 0


class TestIngestCsv:
    """Tests for batch CSV ingestion."""

    def test_all_rows_stored(self, sink, make_csv):
        body = make_csv(_row(rep_id="1"), _row(rep_id="2"), _row(rep_id="3"))

        outcome = ingest_csv(body.encode(), sink)

        assert outcome.total == 3
        assert outcome.errors == 0
        assert [p.tags["rep_id"] for p in sink.points] == ["1", "2", "3"]

    def test_single_row_scenario(self, sink, csv_body):
        """One data row lands with gyroscope values from columns 5-7."""
        outcome = ingest_csv(csv_body.encode(), sink)

        assert outcome.summary() == {"message": MESSAGE_COMPLETE, "total": 1}
        point = sink.points[0]
        assert point.time == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert point.fields["gyroscope_x"] == 0.1
        assert point.fields["accelerometer_x"] == 1.1
        assert point.fields["magnetometer_z"] == 9.3

    def test_header_row_not_parsed(self, sink):
        """The first record is skipped even when it looks like data."""
        body = "\n".join([_row(participant="header"), _row(participant="data")])

        outcome = ingest_csv(body.encode(), sink)

        assert outcome.total == 1
        assert [p.tags["participant"] for p in sink.points] == ["data"]

    def test_bad_row_counted_and_logged(self, sink, make_csv, caplog):
        """Row k of the data fails; the log names its 1-based line number."""
        body = make_csv(_row(rep_id="1"), _row(rep_id="2"), _row(active="maybe"), _row(rep_id="4"))

        with caplog.at_level(logging.WARNING, logger="imu_ingest.services.ingestion"):
            outcome = ingest_csv(body.encode(), sink)

        assert outcome.total == 4
        assert outcome.errors == 1
        assert outcome.successful == 3
        assert len(sink.points) == 3
        assert any("Line 4:" in r.getMessage() for r in caplog.records)

    def test_mixed_failures(self, sink, make_csv):
        body = make_csv(
            _row(),
            "alice,squat,2024-01-01T00:00:00Z,1,true,0.1",
            _row(timestamp="yesterday"),
            _row(rep_id="x"),
            "alice,squat,2024-01-01T00:00:00Z,1,true,0.1,nope,0.3,1.1,1.2,1.3,9.1,9.2,9.3",
        )

        outcome = ingest_csv(body.encode(), sink)

        assert outcome.total == 5
        assert outcome.errors == 4
        assert len(sink.points) == 1

    def test_sensor_parse_failure_writes_nothing_for_row(self, sink, make_csv):
        body = make_csv(
            "alice,squat,2024-01-01T00:00:00Z,1,true,0.1,0.2,0.3,bad,1.2,1.3,9.1,9.2,9.3"
        )

        outcome = ingest_csv(body.encode(), sink)

        assert outcome.errors == 1
        assert sink.points == []

    def test_header_only(self, sink, make_csv):
        with pytest.raises(CsvFormatError, match="No data records provided"):
            ingest_csv(make_csv().encode(), sink)

        assert sink.batches == 0

    def test_empty_body(self, sink):
        with pytest.raises(CsvFormatError):
            ingest_csv(b"", sink)

    def test_malformed_csv(self, sink):
        with pytest.raises(CsvFormatError, match="Invalid CSV format"):
            ingest_csv(b'h\n"unterminated\n', sink)

        assert sink.points == []

    def test_row_wider_than_header(self, sink, make_csv):
        body = make_csv(_row(), _row() + ",extra")

        with pytest.raises(CsvFormatError, match="Invalid CSV format"):
            ingest_csv(body.encode(), sink)

        assert sink.batches == 0

    def test_extra_columns_in_header_and_rows(self, sink):
        header = "p,e,ts,rep_id,is_rep_active,g1,g2,g3,a1,a2,a3,m1,m2,m3,note"
        body = "\n".join([header, _row() + ",left knee", _row() + ","])

        outcome = ingest_csv(body.encode(), sink)

        assert outcome.errors == 0
        assert len(sink.points) == 2

    def test_async_write_failures_counted(self, sink, make_csv):
        """Points the sink loses after enqueue count as errors."""
        sink.fail_async = 2
        body = make_csv(_row(rep_id="1"), _row(rep_id="2"), _row(rep_id="3"))

        outcome = ingest_csv(body.encode(), sink)

        assert outcome.total == 3
        assert outcome.errors == 2
        assert outcome.status_code == 207
        assert len(sink.points) == 1

    def test_one_batch_per_request(self, sink, csv_body):
        ingest_csv(csv_body.encode(), sink)
        ingest_csv(csv_body.encode(), sink)

        assert sink.batches == 2
        assert sink.blocking_writes == 0

    def test_resubmission_produces_identical_points(self, sink, csv_body):
        """Same series key and timestamp, so the database overwrites."""
        ingest_csv(csv_body.encode(), sink)
        ingest_csv(csv_body.encode(), sink)

        first, second = sink.points
        assert first == second


class TestIngestOne:
    """Tests for single-reading ingestion."""

    @pytest.fixture
    def reading(self):
        return SensorReading(
            participant="bob",
            exercise="deadlift",
            timestamp=datetime(2024, 3, 5, 10, 15, 30, tzinfo=timezone.utc),
            rep_id=7,
            is_rep_active=False,
            accelerometer=[0.5, -0.25, 9.81],
            gyroscope=[1.0, 2.0, 3.0],
            magnetometer=[30.5, -12.0, 44.75],
        )

    def test_blocking_write(self, sink, reading):
        point = ingest_one(reading, sink)

        assert sink.blocking_writes == 1
        assert sink.points == [point]
        assert point.fields["rep_active"] is False

    def test_invalid_axes_not_written(self, sink, reading):
        reading.accelerometer = [0.5, -0.25]

        with pytest.raises(InvalidSensorData):
            ingest_one(reading, sink)

        assert sink.blocking_writes == 0

    def test_sink_failure_propagates(self, sink, reading):
        sink.fail_blocking = True

        with pytest.raises(SinkWriteError):
            ingest_one(reading, sink)
