"""
IMU Ingest - Flask Backend

Alternative to FastAPI for environments where FastAPI isn't available.
Same API structure, different framework.
"""

import logging
import os
from typing import Optional

from flask import Flask, current_app, jsonify, request
from pydantic import ValidationError

from imu_ingest.api.schemas import ImuReadingIn, describe_validation_error
from imu_ingest.config import Settings
from imu_ingest.services.csv_parser import CsvFormatError
from imu_ingest.services.ingestion import ingest_csv, ingest_one
from imu_ingest.services.point_builder import InvalidSensorData
from imu_ingest.services.sink import InfluxSink, PointSink, SinkWriteError


# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


SINK_EXTENSION = "imu_sink"


def _sink() -> PointSink:
    return current_app.extensions[SINK_EXTENSION]


def _error(status_code: int, message: str):
    return jsonify({"error": message}), status_code


# ============================================================================
# Health Endpoints
# ============================================================================

def root():
    """Root endpoint - basic service info."""
    return jsonify({
        "name": "IMU Ingest",
        "version": "0.1.0",
        "status": "running",
    })


def health_check():
    """Health check endpoint, including sink reachability."""
    sink_up = _sink().ping()
    return jsonify({
        "status": "healthy" if sink_up else "degraded",
        "sink": "up" if sink_up else "down",
    })


# ============================================================================
# Ingestion Endpoints
# ============================================================================

def ingest_csv_upload():
    """Ingest a CSV batch of IMU readings."""
    raw = request.get_data(cache=False)

    try:
        outcome = ingest_csv(raw, _sink())
    except CsvFormatError as e:
        logger.info(f"Rejected CSV upload: {e}")
        return _error(400, str(e))

    return jsonify(outcome.summary()), outcome.status_code


def ingest_reading():
    """Store a single IMU reading posted as JSON."""
    raw = request.get_data(cache=False)

    try:
        payload = ImuReadingIn.model_validate_json(raw)
        ingest_one(payload.to_reading(), _sink())
    except ValidationError as e:
        return _error(400, describe_validation_error(e))
    except InvalidSensorData as e:
        return _error(400, str(e))
    except SinkWriteError:
        return _error(500, "Failed to write to database")

    return jsonify({"message": "Data stored successfully"})


# ============================================================================
# Startup
# ============================================================================

def create_app(
    settings: Optional[Settings] = None,
    sink: Optional[PointSink] = None,
) -> Flask:
    """Create and configure the Flask app."""
    if settings is None:
        settings = Settings.from_env()
    if sink is None:
        sink = InfluxSink(settings)

    app = Flask(__name__)
    app.config["IMU_SETTINGS"] = settings
    app.extensions[SINK_EXTENSION] = sink

    app.add_url_rule("/", view_func=root)
    app.add_url_rule("/health", view_func=health_check)
    app.add_url_rule("/imu/csv", view_func=ingest_csv_upload, methods=["POST"])
    app.add_url_rule("/imu", view_func=ingest_reading, methods=["POST"])

    logger.info(
        f"Flask app ready (org={settings.influx_org!r}, bucket={settings.influx_bucket!r})"
    )
    return app


if __name__ == "__main__":
    settings = Settings.from_env()
    create_app(settings).run(host=settings.host, port=settings.port)
