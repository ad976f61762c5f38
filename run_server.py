"""Build service API entry point.

Usage:
    # Development (in-memory job store, debug logging):
    python run_server.py --job-store memory --log-level debug

    # Production (SQLite job store from SMACK_API_JOB_DB_PATH):
    python run_server.py --host 0.0.0.0 --port 9000
"""
from __future__ import annotations

import argparse
import logging

logger = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(description="Smack Builders API Server")
    parser.add_argument("--host", default=None, help="Bind address (default: SMACK_API_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port (default: SMACK_API_PORT or 8000)")
    parser.add_argument("--job-store", choices=["sqlite", "memory"], default=None, help="Job store backend")
    parser.add_argument("--max-concurrent", type=int, default=None, help="Builds running at once")
    parser.add_argument("--log-level", default=None, choices=["debug", "info", "warning", "error"])
    args = parser.parse_args()

    import uvicorn

    from smack_builders.api.config import ApiSettings
    from smack_builders.api.main import create_app

    overrides = {
        "host": args.host,
        "port": args.port,
        "job_store": args.job_store,
        "max_concurrent": args.max_concurrent,
        "log_level": args.log_level.upper() if args.log_level else None,
    }
    settings = ApiSettings(**{k: v for k, v in overrides.items() if v is not None})
    app = create_app(settings)

    logger.info("Starting Smack Builders API on %s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
