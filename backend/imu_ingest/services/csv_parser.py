"""
IMU batch CSV parser.

Decodes an uploaded CSV body into records and converts each data record
into a SensorReading. Record-level failures raise RowError so the caller
can count them and carry on with the rest of the batch.

Column layout (header row required, at least 14 columns):

    participant, exercise, timestamp, rep_id, is_rep_active,
    gyro_x, gyro_y, gyro_z, accel_x, accel_y, accel_z, mag_x, mag_y, mag_z

Gyroscope columns come before accelerometer columns. Existing uploads
depend on this order.
"""

import io
import json
import math
import re
from datetime import datetime

import pandas as pd
from pydantic import AwareDatetime, ConfigDict, TypeAdapter, ValidationError

from imu_ingest.models.reading import SensorReading


MIN_COLUMNS = 14

# (sensor, first column) in wire order
SENSOR_COLUMNS = (
    ("gyroscope", 5),
    ("accelerometer", 8),
    ("magnetometer", 11),
)

TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_INTEGER = re.compile(r"[+-]?[0-9]+")

# Same timestamp grammar as the JSON endpoint
_TIMESTAMP = TypeAdapter(AwareDatetime, config=ConfigDict(strict=True))


class CsvFormatError(ValueError):
    """The request body cannot be used as a batch at all."""


class RowError(ValueError):
    """A single data record could not be converted."""

    def __init__(self, row_number: int, reason: str):
        super().__init__(f"Line {row_number}: {reason}")
        self.row_number = row_number
        self.reason = reason


def parse_rfc3339(text: str) -> datetime:
    """
    Parse an RFC 3339 timestamp into an aware datetime.

    Raises:
        ValueError: If text is not a timestamp with a UTC offset
    """
    try:
        return _TIMESTAMP.validate_json(json.dumps(text))
    except ValidationError as e:
        problem = e.errors()[0].get("msg", "invalid datetime")
        raise ValueError(f"{problem}: {text!r}") from None


def parse_bool(text: str) -> bool:
    """Parse 1/t/true/... and 0/f/false/... spellings."""
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError(f"not a boolean: {text!r}")


def parse_int(text: str) -> int:
    if not _INTEGER.fullmatch(text):
        raise ValueError(f"not an integer: {text!r}")
    return int(text)


def parse_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"not a finite number: {text!r}")
    return value


def _cells(row: tuple) -> list[str]:
    # Padding on short rows is NaN; empty cells stay ""
    cells = []
    for value in row:
        if not isinstance(value, str):
            break
        cells.append(value)
    return cells


class ImuCsvParser:
    """Parser for IMU repetition CSV uploads."""

    def read_records(self, raw: bytes) -> list[list[str]]:
        """
        Decode the body into CSV records, skipping blank lines.

        Every cell is kept as text. The first record sets the record
        width: shorter records come back shorter, wider ones are a
        format error.

        Raises:
            CsvFormatError: If the body is not valid UTF-8 CSV
        """
        try:
            text = raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise CsvFormatError("Invalid CSV format") from e

        try:
            df = pd.read_csv(
                io.StringIO(text),
                header=None,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except pd.errors.EmptyDataError:
            return []
        except pd.errors.ParserError as e:
            raise CsvFormatError("Invalid CSV format") from e

        return [_cells(row) for row in df.itertuples(index=False, name=None)]

    def parse_row(self, record: list[str], row_number: int) -> SensorReading:
        """
        Convert one data record into a SensorReading.

        Args:
            record: Field values of the record
            row_number: 1-based record number including the header

        Raises:
            RowError: On the first failing step (column count, timestamp,
                rep id, active flag) or when any sensor value is bad
        """
        if len(record) < MIN_COLUMNS:
            raise RowError(
                row_number,
                f"insufficient columns: expected at least {MIN_COLUMNS}, got {len(record)}",
            )

        try:
            timestamp = parse_rfc3339(record[2])
        except ValueError as e:
            raise RowError(row_number, f"invalid timestamp: {e}") from None

        try:
            rep_id = parse_int(record[3])
        except ValueError as e:
            raise RowError(row_number, f"invalid rep_id: {e}") from None

        try:
            is_rep_active = parse_bool(record[4])
        except ValueError as e:
            raise RowError(row_number, f"invalid is_rep_active: {e}") from None

        sensors = self._parse_sensors(record, row_number)

        return SensorReading(
            participant=record[0],
            exercise=record[1],
            timestamp=timestamp,
            rep_id=rep_id,
            is_rep_active=is_rep_active,
            gyroscope=sensors["gyroscope"],
            accelerometer=sensors["accelerometer"],
            magnetometer=sensors["magnetometer"],
        )

    def _parse_sensors(self, record: list[str], row_number: int) -> dict[str, list[float]]:
        sensors: dict[str, list[float]] = {}
        bad_columns: list[str] = []

        for sensor, start in SENSOR_COLUMNS:
            values = []
            for col in range(start, start + 3):
                try:
                    values.append(parse_float(record[col]))
                except ValueError:
                    # 1-based column numbers
                    bad_columns.append(f"{col + 1} ({record[col]!r})")
            sensors[sensor] = values

        if bad_columns:
            raise RowError(
                row_number,
                "invalid sensor value at column " + ", ".join(bad_columns),
            )
        return sensors
