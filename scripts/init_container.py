#!/usr/bin/env python3
"""
Init container script for Stuff Tracker.

Applies database migrations before the API starts and, when asked, repairs
cached location paths afterwards.

Usage:
    python -m scripts.init_container [--rebuild-paths]

Exit codes:
    0 - Success
    1 - Migration or path rebuild failure
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import subprocess
import sys
from pathlib import Path

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [init] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("init_container")


def _log_output(output: str, level: int) -> None:
    for line in output.strip().split("\n"):
        if line.strip():
            logger.log(level, f"alembic: {line}")


def run_migrations() -> bool:
    """
    Upgrade the schema to the latest alembic revision.

    Returns:
        True if migrations succeeded, False otherwise
    """
    logger.info("Running database migrations...")

    # Project root (parent of scripts/), where alembic.ini lives
    project_dir = Path(__file__).parent.parent

    try:
        result = subprocess.run(
            ["alembic", "upgrade", "head"],
            cwd=project_dir,
            capture_output=True,
            text=True,
            check=True,
            timeout=300,  # 5 minute timeout
        )
    except subprocess.TimeoutExpired:
        logger.error("Migration timed out after 5 minutes")
        return False
    except subprocess.CalledProcessError as e:
        logger.error(f"Migration failed with exit code {e.returncode}")
        if e.stderr:
            _log_output(e.stderr, logging.ERROR)
        if e.stdout:
            _log_output(e.stdout, logging.INFO)
        return False
    except FileNotFoundError:
        logger.error("alembic command not found - ensure it's installed")
        return False

    if result.stdout:
        _log_output(result.stdout, logging.INFO)
    logger.info("Database migrations completed successfully")
    return True


async def _rebuild_paths() -> int:
    from scripts.rebuild_location_paths import rebuild_all
    from stuff_tracker.core.database import close_db, get_db_context

    try:
        async with get_db_context() as session:
            rebuilt = await rebuild_all(session)
    finally:
        await close_db()
    return sum(rebuilt.values())


def rebuild_paths() -> bool:
    """
    Recompute cached location paths for every owner.

    Returns:
        True if the rebuild succeeded, False otherwise
    """
    logger.info("Rebuilding cached location paths...")
    try:
        rewritten = asyncio.run(_rebuild_paths())
    except Exception as e:
        logger.error(f"Path rebuild failed: {e}", exc_info=True)
        return False

    logger.info(f"Path rebuild completed: {rewritten} location(s) rewritten")
    return True


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for init container.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Prepare the database before the API starts")
    parser.add_argument(
        "--rebuild-paths",
        action="store_true",
        help="Recompute cached location paths after migrating",
    )
    args = parser.parse_args(argv)

    logger.info("=" * 60)
    logger.info("Stuff Tracker Init Container Starting")
    logger.info("=" * 60)

    if not run_migrations():
        logger.error("FAILED: Database migrations failed - aborting startup")
        return 1

    if args.rebuild_paths and not rebuild_paths():
        logger.error("FAILED: Location path rebuild failed - aborting startup")
        return 1

    logger.info("=" * 60)
    logger.info("Init Container Completed Successfully")
    logger.info("=" * 60)

    return 0


if __name__ == "__main__":
    sys.exit(main())
