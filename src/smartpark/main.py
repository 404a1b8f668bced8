# File: src/smartpark/main.py
"""
Main application entry point for the SmartPark parking management system

Usage:
    smartpark                       # console menu on the default layout
    smartpark --gui                 # Tkinter window
    smartpark --layout layout.json --audit-db sqlite:///audit.db
"""

from typing import List, Optional
import argparse
import logging
import sys

from .config import AppConfig, setup_logging
from .domain.exceptions import ParkingError
from .infrastructure.factories import ParkingServiceFactory


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="smartpark", description=AppConfig.APP_NAME)
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--layout", dest="layout_path", help="JSON floor/slot layout file")
    parser.add_argument("--audit-file", dest="audit_file", help="append-only token log file")
    parser.add_argument("--audit-db", dest="audit_db_url", help="SQLAlchemy URL for the token audit table")
    parser.add_argument("--redis-url", dest="redis_url", help="publish parking events to this Redis server")
    parser.add_argument("--log-level", dest="log_level", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--gui", action="store_true", help="start the graphical interface")
    return parser


def load_config(args: argparse.Namespace) -> AppConfig:
    config = AppConfig()
    if args.config:
        config = AppConfig.from_file(args.config, base=config)
    config = AppConfig.from_env(base=config)
    return config.with_overrides(
        layout_path=args.layout_path,
        audit_file=args.audit_file,
        audit_db_url=args.audit_db_url,
        redis_url=args.redis_url,
        log_level=args.log_level,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args)
    except (OSError, ValueError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    logger = setup_logging(config)
    logger.info("Starting SmartPark...")

    try:
        service, closeables = ParkingServiceFactory.create_service(config)
    except (OSError, ValueError, KeyError, ParkingError) as e:
        logger.error(f"Failed to initialize parking service: {e}")
        return 1

    try:
        if args.gui:
            from .presentation.controller import ParkingAppController
            from .presentation.parking_gui import ParkingManagementApp
            ParkingManagementApp(ParkingAppController(service)).run()
        else:
            from .presentation.cli import ParkingCLI
            ParkingCLI(service).start()
    finally:
        for resource in closeables:
            resource.close()
        logger.info("SmartPark stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
