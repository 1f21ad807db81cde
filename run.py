#!/usr/bin/env python3
"""
Startup script for the PulseCare donor engine API.

Usage:
    python run.py                 # serve with settings from the environment / .env
    python run.py --port 9000     # override the bind address
    python run.py --check         # validate geography and thresholds, then exit
"""
import argparse
import sys
import uvicorn
from pulsecare.core.config import settings
from pulsecare.core.exceptions import ConfigurationError
from pulsecare.core.logging import logger


def check_configuration() -> bool:
    """Build the engine once so a bad table or threshold fails before serving."""
    from pulsecare.services.engine import get_engine

    try:
        engine = get_engine()
    except ConfigurationError as e:
        logger.error(f"Configuration check failed: {e}")
        return False

    logger.info(
        f"Configuration OK: {len(engine.index.divisions())} divisions, "
        f"{len(engine.index.districts())} districts, shortage {engine.shortage_config!r}"
    )
    return True


def main():
    parser = argparse.ArgumentParser(description=f"Run the {settings.APP_NAME} API")
    parser.add_argument("--host", default=settings.HOST, help="Bind address")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Bind port")
    parser.add_argument("--check", action="store_true", help="Validate configuration and exit")
    args = parser.parse_args()

    logger.info(f"Environment: {settings.ENVIRONMENT}, debug: {settings.DEBUG}")

    if not check_configuration():
        sys.exit(1)
    if args.check:
        return

    config = {
        "app": "pulsecare.main:app",
        "host": args.host,
        "port": args.port,
        "reload": settings.DEBUG,
        "log_level": settings.LOG_LEVEL.lower(),
        "access_log": settings.DEBUG,
    }
    if not settings.DEBUG:
        config["workers"] = settings.WORKERS

    logger.info(f"Starting server on {args.host}:{args.port}")
    try:
        uvicorn.run(**config)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")

if __name__ == "__main__":
    main()
