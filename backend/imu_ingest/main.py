"""
IMU Ingest - FastAPI Backend

Main application entry point and configuration.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from imu_ingest.api.ingest import get_sink, router as ingest_router
from imu_ingest.api.schemas import HealthResponse
from imu_ingest.config import Settings
from imu_ingest.services.sink import InfluxSink, PointSink


# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


APP_NAME = "IMU Ingest"
APP_VERSION = "0.1.0"


def create_app(
    settings: Optional[Settings] = None,
    sink: Optional[PointSink] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Service settings (read from the environment if None)
        sink: Point sink to write to (an InfluxSink built from settings if None)
    """
    if settings is None:
        settings = Settings.from_env()
    if sink is None:
        sink = InfluxSink(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info(
            f"Starting {APP_NAME} (org={settings.influx_org!r}, "
            f"bucket={settings.influx_bucket!r})"
        )
        yield
        logger.info(f"Shutting down {APP_NAME}")
        app.state.sink.close()

    app = FastAPI(
        title=APP_NAME,
        description="""
        Ingestion API for exercise repetition IMU data.

        ## Endpoints
        - POST /imu/csv: batch upload, one reading per CSV row
        - POST /imu: single reading as JSON

        Readings are written to the `exercise_data` measurement.
        """,
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.sink = sink

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(ingest_router)

    @app.get("/")
    async def root():
        """Root endpoint - basic service info."""
        return {
            "name": APP_NAME,
            "version": APP_VERSION,
            "status": "running",
        }

    @app.get("/health", response_model=HealthResponse)
    def health_check(request: Request):
        """Health check endpoint, including sink reachability."""
        sink_up = get_sink(request).ping()
        return HealthResponse(
            status="healthy" if sink_up else "degraded",
            sink="up" if sink_up else "down",
        )

    return app


app = create_app()
