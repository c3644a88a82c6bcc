"""
Copy catalog content from one environment's database into another's.

Usage:
    catalog-sync [--yes] [--source URL] [--dest URL]

Defaults come from SYNC_SOURCE_DATABASE_URL and SYNC_DEST_DATABASE_URL.
The destination's content tables are TRUNCATED and replaced in a single
transaction; on any error the destination is left as it was.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from catalog import config
from catalog.services.replicator import SYNC_TABLES, EnvironmentReplicator, ReplicationRefused

logger = logging.getLogger("catalog.sync")


def confirm(message: str) -> bool:
    """Prompt for y/N on stdin. Anything but 'y' declines."""
    try:
        answer = input(f"{message} (y/N) ")
    except EOFError:
        return False
    return answer.strip().lower() == "y"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="catalog-sync", description=__doc__.strip().splitlines()[0])
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    parser.add_argument("--source", default=config.settings.SYNC_SOURCE_DATABASE_URL, help="Source database URL")
    parser.add_argument("--dest", default=config.settings.SYNC_DEST_DATABASE_URL, help="Destination database URL")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=config.settings.LOG_LEVEL, format="%(message)s")

    replicator = EnvironmentReplicator(args.source, args.dest)
    try:
        replicator.check_distinct()
    except ReplicationRefused as e:
        logger.error("Error: %s", e)
        return 1

    if not args.yes:
        tables = ", ".join(SYNC_TABLES)
        if not confirm(f"This will TRUNCATE {tables} in the destination database and replace them. Continue?"):
            logger.info("Aborted.")
            return 0

    try:
        report = asyncio.run(replicator.run())
    except ReplicationRefused as e:
        logger.error("Error: %s", e)
        return 1
    except Exception:
        logger.exception("Sync failed; destination left unchanged")
        return 1

    logger.info("Sync complete: %d rows across %d tables.", report.total_rows, len(report.tables))
    return 0


if __name__ == "__main__":
    sys.exit(main())
