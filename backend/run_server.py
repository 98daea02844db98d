#!/usr/bin/env python3
"""
Launch script for the IMU Ingest backend.

Usage:
    python run_server.py [--port PORT] [--host HOST] [--flask]

Examples:
    python run_server.py                    # FastAPI on $PORT (default 8080)
    python run_server.py --port 5000        # Run on port 5000
    python run_server.py --flask            # Use the Flask deployment
"""

import argparse
import sys
from dataclasses import replace
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from imu_ingest.config import ConfigError, Settings


def main():
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    parser = argparse.ArgumentParser(description="IMU Ingest Backend Server")
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=settings.port,
        help=f"Port to run server on (default: $PORT or {settings.port})"
    )
    parser.add_argument(
        "--host", "-H",
        default=settings.host,
        help=f"Host to bind to (default: $HOST or {settings.host})"
    )
    parser.add_argument(
        "--flask",
        action="store_true",
        help="Serve the Flask deployment instead of FastAPI"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Run in debug mode"
    )

    args = parser.parse_args()
    settings = replace(settings, host=args.host, port=args.port)

    print("IMU Ingest Backend")
    print("=" * 40)
    print(f"InfluxDB: {settings.influx_url} (org={settings.influx_org}, bucket={settings.influx_bucket})")
    print(f"Server: http://{settings.host}:{settings.port} ({'flask' if args.flask else 'fastapi'})")
    print("=" * 40)

    print("\nAPI Endpoints:")
    print("  GET  /          - Service info")
    print("  GET  /health    - Health incl. database reachability")
    print("  POST /imu/csv   - Batch CSV upload")
    print("  POST /imu       - Single JSON reading")
    print("\nStarting server...")

    if args.flask:
        from imu_ingest.flask_app import create_app

        create_app(settings).run(host=settings.host, port=settings.port, debug=args.debug)
        return

    import uvicorn

    uvicorn.run(
        "imu_ingest.main:app",
        host=settings.host,
        port=settings.port,
        reload=args.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
