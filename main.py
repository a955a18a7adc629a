"""
main.py
-------
Maintenance entry point for the Empresta aê data core.

Usage:
    python main.py init-db        create the schema (idempotent)
    python main.py reset-db       drop every table and recreate the schema
    python main.py sweep-tokens   delete expired or revoked refresh tokens
    python main.py check-db       run the database health probe
"""

import argparse
import sys

from db.connection import check_connection, close_pool
from db.init_db import create_tables, drop_tables
from services.auth_service import AuthService
from utils.logger import get_logger

logger = get_logger(__name__)


def init_db() -> int:
    create_tables()
    return 0


def reset_db() -> int:
    drop_tables()
    create_tables()
    return 0


def sweep_tokens() -> int:
    removed = AuthService().clean_expired_tokens()
    logger.info(f"Token sweep finished: {removed} removed")
    return 0


def check_db() -> int:
    if check_connection():
        logger.info("Database is reachable.")
        return 0
    logger.error("Database is NOT reachable.")
    return 1


COMMANDS = {
    "init-db": init_db,
    "reset-db": reset_db,
    "sweep-tokens": sweep_tokens,
    "check-db": check_db,
}


def main(argv: list[str] | None = None) -> int:
    """Parse the command, run it, and return an exit code."""
    parser = argparse.ArgumentParser(prog="empresta-ae", description="Empresta aê maintenance tasks")
    parser.add_argument("command", choices=sorted(COMMANDS))
    args = parser.parse_args(argv)

    # ── 1. Run the task (the pool opens on first query) ───
    try:
        return COMMANDS[args.command]()
    finally:
        # ── 2. Cleanup ────────────────────────────────────
        close_pool()


if __name__ == "__main__":
    sys.exit(main())
