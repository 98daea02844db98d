"""
API schemas (Pydantic models) for request/response validation.
"""

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    FiniteFloat,
    ValidationError,
    field_validator,
)

from imu_ingest.models.reading import AXIS_COUNT, SensorReading


# ============================================================================
# Request Schemas
# ============================================================================

class ImuReadingIn(BaseModel):
    """Single IMU reading posted as JSON, no type coercion."""
    model_config = ConfigDict(strict=True)

    participant: str
    exercise: str
    timestamp: AwareDatetime
    rep_id: int
    is_rep_active: bool
    accelerometer: list[FiniteFloat]
    gyroscope: list[FiniteFloat]
    magnetometer: list[FiniteFloat]

    @field_validator("accelerometer", "gyroscope", "magnetometer")
    @classmethod
    def _three_axes(cls, values: list[float]) -> list[float]:
        if len(values) != AXIS_COUNT:
            raise ValueError(
                f"invalid sensor data format: expected {AXIS_COUNT} values, got {len(values)}"
            )
        return values

    def to_reading(self) -> SensorReading:
        return SensorReading(
            participant=self.participant,
            exercise=self.exercise,
            timestamp=self.timestamp,
            rep_id=self.rep_id,
            is_rep_active=self.is_rep_active,
            accelerometer=list(self.accelerometer),
            gyroscope=list(self.gyroscope),
            magnetometer=list(self.magnetometer),
        )


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten a ValidationError into 'field: problem; ...'."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        problems.append(f"{location}: {message}" if location else message)
    return "; ".join(problems) or "Invalid request body"


# ============================================================================
# Response Schemas
# ============================================================================

class CsvProcessedResponse(BaseModel):
    """Every row of the upload was stored."""
    message: str
    total: int


class CsvPartialResponse(CsvProcessedResponse):
    """Some rows of the upload failed."""
    errors: int
    successful: int


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str


class HealthResponse(BaseModel):
    status: str
    sink: str
