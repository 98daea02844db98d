"""
IMU reading and time-series point models.

A SensorReading is one decoded sample of a repetition. A valid reading
becomes exactly one ExercisePoint, the write-only record handed to the
time-series sink.
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Sequence, Union


MEASUREMENT = "exercise_data"
AXIS_COUNT = 3
AXES = ("x", "y", "z")

# Sensor names in the order their fields are written
SENSORS = ("accelerometer", "gyroscope", "magnetometer")

TAG_PARTICIPANT = "participant"
TAG_EXERCISE = "exercise"
TAG_REP_ID = "rep_id"
FIELD_REP_ACTIVE = "rep_active"


FieldValue = Union[bool, float]


@dataclass
class SensorReading:
    """One IMU sample for a single repetition."""

    participant: str
    exercise: str
    timestamp: datetime
    rep_id: int
    is_rep_active: bool

    # (x, y, z) per sensor
    accelerometer: Sequence[float]
    gyroscope: Sequence[float]
    magnetometer: Sequence[float]


@dataclass(frozen=True)
class ExercisePoint:
    """
    Timestamped, tagged multi-field record for the time-series sink.

    Built once from a validated SensorReading and not modified afterwards;
    tags and fields are read-only views over private copies.
    """

    time: datetime
    tags: Mapping[str, str] = field(default_factory=dict, hash=False)
    fields: Mapping[str, FieldValue] = field(default_factory=dict, hash=False)
    measurement: str = MEASUREMENT

    def __post_init__(self):
        object.__setattr__(self, "tags", MappingProxyType(dict(self.tags)))
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))


def field_name(sensor: str, axis: str) -> str:
    return f"{sensor}_{axis}"
