"""
FleetRent - Main Application Entry Point
"""

import argparse
import sys

from loguru import logger

from shared.config import settings, ensure_directories
from backend.database import init_database, reset_database


def setup_logging():
    """Configure logging"""
    ensure_directories()

    logger.remove()  # Remove default handler
    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=settings.log_level,
        colorize=True,
    )
    logger.add(
        settings.log_file,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
        level=settings.log_level,
        rotation="10 MB",
        retention="30 days",
        compression="zip",
    )
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=f"{settings.app_name} API server")
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables")
    parser.add_argument("--seed", action="store_true", help="load demo data")
    parser.add_argument("--host", default=settings.api_host)
    parser.add_argument("--port", type=int, default=settings.api_port)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_logging()

    # Initialize database
    try:
        if args.reset:
            reset_database()
        else:
            init_database()
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        sys.exit(1)

    if args.seed:
        from backend.seed import seed_demo_data
        seed_demo_data()

    # Run API server
    from server_api.app import app
    logger.info(f"Starting {settings.app_name} API on {args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=settings.debug)


if __name__ == "__main__":
    main()
