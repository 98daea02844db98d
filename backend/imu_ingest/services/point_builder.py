"""
Point construction for IMU readings.

Shared by the CSV batch path and the single-record JSON path.
"""

from typing import Sequence

from imu_ingest.models.reading import (
    AXES,
    AXIS_COUNT,
    FIELD_REP_ACTIVE,
    SENSORS,
    TAG_EXERCISE,
    TAG_PARTICIPANT,
    TAG_REP_ID,
    ExercisePoint,
    FieldValue,
    SensorReading,
    field_name,
)


class InvalidSensorData(ValueError):
    """A sensor array does not hold exactly one value per axis."""


def validate_axes(reading: SensorReading) -> None:
    """
    Check that every sensor array has exactly three components.

    Raises:
        InvalidSensorData: Naming the first offending sensor
    """
    for sensor in SENSORS:
        values: Sequence[float] = getattr(reading, sensor)
        if values is None or len(values) != AXIS_COUNT:
            count = 0 if values is None else len(values)
            raise InvalidSensorData(
                f"invalid sensor data format: {sensor} has {count} values, "
                f"expected {AXIS_COUNT}"
            )


def build_point(reading: SensorReading) -> ExercisePoint:
    """
    Convert a reading into an ExercisePoint.

    Values are copied as-is; there is no unit conversion or rounding.

    Raises:
        InvalidSensorData: If any sensor array is not 3 long
    """
    validate_axes(reading)

    fields: dict[str, FieldValue] = {FIELD_REP_ACTIVE: bool(reading.is_rep_active)}
    for sensor in SENSORS:
        values = getattr(reading, sensor)
        for axis, value in zip(AXES, values):
            # Field types are fixed by the first write; keep them float
            fields[field_name(sensor, axis)] = float(value)

    return ExercisePoint(
        time=reading.timestamp,
        tags={
            TAG_PARTICIPANT: reading.participant,
            TAG_EXERCISE: reading.exercise,
            TAG_REP_ID: str(reading.rep_id),
        },
        fields=fields,
    )
