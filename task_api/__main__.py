"""Entry point for running the task API."""

import argparse
import logging
import os

import uvicorn

from .db import DEFAULT_DB_PATH
from .server import DB_ENV_VAR, create_app

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000


def create_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Task API - CRUD and status metrics for tasks stored in SQLite"
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Port to run on (default: {DEFAULT_PORT})",
    )
    parser.add_argument(
        "--db",
        default=os.environ.get(DB_ENV_VAR, DEFAULT_DB_PATH),
        help=f"SQLite database path (default: ${DB_ENV_VAR} or {DEFAULT_DB_PATH})",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="info",
        help="Log level (default: info)",
    )
    return parser


def main(argv=None):
    args = create_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = create_app(args.db)

    logger.info(f"Starting task API on {args.host}:{args.port} (db: {args.db})")
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
