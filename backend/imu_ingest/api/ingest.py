"""
API routes for IMU ingestion.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.requests import ClientDisconnect

from imu_ingest.api.schemas import (
    CsvPartialResponse,
    CsvProcessedResponse,
    ErrorResponse,
    ImuReadingIn,
    MessageResponse,
    describe_validation_error,
)
from imu_ingest.services.csv_parser import CsvFormatError
from imu_ingest.services.ingestion import ingest_csv, ingest_one
from imu_ingest.services.point_builder import InvalidSensorData
from imu_ingest.services.sink import PointSink, SinkWriteError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/imu", tags=["imu"])


def get_sink(request: Request) -> PointSink:
    """Sink shared by all requests of this application."""
    return request.app.state.sink


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


@router.post(
    "/csv",
    response_model=CsvProcessedResponse,
    responses={
        207: {"model": CsvPartialResponse},
        400: {"model": ErrorResponse},
    },
)
async def ingest_csv_upload(request: Request):
    """
    Ingest a CSV batch of IMU readings.

    Rows that fail to parse or to write are counted and reported in a
    207 response; the rest of the batch is still stored.
    """
    try:
        raw = await request.body()
    except ClientDisconnect:
        return _error(400, "Failed to read request body")

    try:
        outcome = await run_in_threadpool(ingest_csv, raw, get_sink(request))
    except CsvFormatError as e:
        logger.info(f"Rejected CSV upload: {e}")
        return _error(400, str(e))

    return JSONResponse(status_code=outcome.status_code, content=outcome.summary())


@router.post(
    "",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def ingest_reading(request: Request):
    """
    Store a single IMU reading posted as JSON.

    The write is acknowledged by the database before responding.
    """
    try:
        raw = await request.body()
    except ClientDisconnect:
        return _error(400, "Failed to read request body")

    try:
        payload = ImuReadingIn.model_validate_json(raw)
        await run_in_threadpool(ingest_one, payload.to_reading(), get_sink(request))
    except ValidationError as e:
        return _error(400, describe_validation_error(e))
    except InvalidSensorData as e:
        return _error(400, str(e))
    except SinkWriteError:
        return _error(500, "Failed to write to database")

    return MessageResponse(message="Data stored successfully")
