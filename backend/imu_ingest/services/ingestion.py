"""
Ingestion pipelines.

ingest_csv handles a batch upload with per-row partial failure;
ingest_one handles a single decoded reading with a blocking write.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from imu_ingest.models.reading import ExercisePoint, SensorReading
from imu_ingest.services.csv_parser import CsvFormatError, ImuCsvParser, RowError
from imu_ingest.services.point_builder import InvalidSensorData, build_point
from imu_ingest.services.sink import PointSink


logger = logging.getLogger(__name__)


MESSAGE_COMPLETE = "CSV successfully processed"
MESSAGE_PARTIAL = "CSV partially processed"


@dataclass
class BatchOutcome:
    """Row tally for one CSV request."""

    total: int
    errors: int = 0

    @property
    def successful(self) -> int:
        return self.total - self.errors

    @property
    def complete(self) -> bool:
        return self.errors == 0

    @property
    def status_code(self) -> int:
        # 207 Multi-Status when some rows failed
        return 200 if self.complete else 207

    def summary(self) -> dict[str, Any]:
        """Response body for this outcome."""
        if self.complete:
            return {"message": MESSAGE_COMPLETE, "total": self.total}
        return {
            "message": MESSAGE_PARTIAL,
            "total": self.total,
            "errors": self.errors,
            "successful": self.successful,
        }


def ingest_csv(
    raw: bytes,
    sink: PointSink,
    parser: Optional[ImuCsvParser] = None,
) -> BatchOutcome:
    """
    Parse a CSV upload and write every valid row to the sink.

    Rows are handled one at a time, in order. A failing row is logged
    and counted, then skipped. Points are enqueued without waiting; the
    batch writer is joined before returning so asynchronous write
    failures are included in the outcome.

    Args:
        raw: Request body
        sink: Destination for the points
        parser: CSV parser (a default ImuCsvParser if None)

    Returns:
        BatchOutcome with total and error counts

    Raises:
        CsvFormatError: If the body is not CSV or has no data rows
    """
    parser = parser or ImuCsvParser()
    records = parser.read_records(raw)
    if len(records) < 2:
        raise CsvFormatError("No data records provided")

    outcome = BatchOutcome(total=len(records) - 1)

    with sink.batch() as writer:
        for index, record in enumerate(records[1:]):
            row_number = index + 2
            try:
                reading = parser.parse_row(record, row_number)
                point = build_point(reading)
            except RowError as e:
                logger.warning(str(e))
                outcome.errors += 1
                continue
            except InvalidSensorData as e:
                logger.warning(f"Line {row_number}: {e}")
                outcome.errors += 1
                continue

            writer.enqueue(point)

    if writer.failed:
        logger.error(f"{writer.failed} points failed to write")
    outcome.errors += writer.failed

    logger.info(
        f"CSV batch processed: total={outcome.total} "
        f"successful={outcome.successful} errors={outcome.errors}"
    )
    return outcome


def ingest_one(reading: SensorReading, sink: PointSink) -> ExercisePoint:
    """
    Validate a single reading and write it, waiting for the sink.

    Raises:
        InvalidSensorData: If a sensor array is not 3 long (nothing written)
        SinkWriteError: If the sink rejects the write
    """
    point = build_point(reading)
    sink.write(point)
    return point
