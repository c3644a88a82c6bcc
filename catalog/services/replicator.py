"""
Environment replicator — copy the catalog content tables from one database to another.

Unlike the relation replacer, every destination step runs inside ONE
transaction: truncate all tables (dependents first), then repopulate them
(referenced tables first). Any failure rolls the destination back to where
it started.

Only the statically listed content tables are copied. Access-control data
(users, roles, sessions) is never touched.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import unquote, urlparse

import asyncpg

from catalog.errors import RelationEngineError

logger = logging.getLogger(__name__)

# Dependency order: every table comes after the tables it references.
SYNC_TABLES: tuple[str, ...] = (
    "publishers",
    "creators",
    "semantic_labels",
    "games",
    "products",
    "products_creators",
    "games_creators",
    "product_semantic_labels",
    "game_semantic_labels",
    "game_based_on",
    "entity_references",
    "product_isbns",
)

_LOCAL_HOSTS = {"", "localhost", "127.0.0.1", "::1"}


class ReplicationRefused(RelationEngineError):
    """The replicator will not run with this configuration."""

    code = "replication_refused"


@dataclass
class ReplicationReport:
    """Rows copied per table, in insert order."""

    tables: dict[str, int] = field(default_factory=dict)

    @property
    def total_rows(self) -> int:
        return sum(self.tables.values())


def store_identity(dsn: str) -> tuple[str, int, str]:
    """
    Reduce a DSN to (host, port, database), the parts that pick a physical store.

    Credentials and options are ignored: two DSNs that differ only in user
    or sslmode still point at the same database.
    """
    dsn = dsn.strip()
    if "://" in dsn:
        parsed = urlparse(dsn)
        host = unquote(parsed.hostname or "")
        port = parsed.port or 5432
        database = unquote(parsed.path.lstrip("/")) or unquote(parsed.username or "") or "postgres"
    else:
        # libpq keyword form: "host=... port=... dbname=..."
        params = dict(part.split("=", 1) for part in dsn.split() if "=" in part)
        host = params.get("host", "")
        port = int(params.get("port", 5432))
        database = params.get("dbname") or params.get("user") or "postgres"

    host = host.lower()
    if host in _LOCAL_HOSTS:
        host = "localhost"
    return host, port, database


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class EnvironmentReplicator:
    """Replace destination content tables with a point-in-time copy of the source."""

    def __init__(
        self,
        source_dsn: str,
        dest_dsn: str,
        tables: tuple[str, ...] = SYNC_TABLES,
        connect: Callable[[str], Awaitable[asyncpg.Connection]] = asyncpg.connect,
    ) -> None:
        self.source_dsn = source_dsn
        self.dest_dsn = dest_dsn
        self.tables = tables
        self.connect = connect

    def check_distinct(self) -> None:
        """
        Refuse to run when source and destination are the same database.

        Raises:
            ReplicationRefused: a DSN is missing or both resolve to one store
        """
        if not self.source_dsn or not self.dest_dsn:
            raise ReplicationRefused("Both source and destination database URLs must be set.")
        if self.source_dsn.strip() == self.dest_dsn.strip() or store_identity(self.source_dsn) == store_identity(
            self.dest_dsn
        ):
            raise ReplicationRefused("Source and destination resolve to the same database (safety check).")

    async def run(self) -> ReplicationReport:
        """
        Copy every table from source to destination.

        Returns:
            ReplicationReport with the row count inserted per table

        Raises:
            ReplicationRefused: same store, checked before connecting
            asyncpg.PostgresError / OSError: copy failed, destination unchanged
        """
        self.check_distinct()

        # One connection per side, nothing pooled
        source = await self.connect(self.source_dsn)
        try:
            dest = await self.connect(self.dest_dsn)
            try:
                await source.fetchval("SELECT 1")
                await dest.fetchval("SELECT 1")
                snapshot = await self.export(source)
                return await self.load(dest, snapshot)
            finally:
                await dest.close()
        finally:
            await source.close()

    async def export(self, source: asyncpg.Connection) -> dict[str, tuple[list[str], list[tuple[Any, ...]]]]:
        """Read every table inside one read-only snapshot so the copy is consistent."""
        snapshot: dict[str, tuple[list[str], list[tuple[Any, ...]]]] = {}
        async with source.transaction(isolation="repeatable_read", readonly=True):
            for table in self.tables:
                rows = await source.fetch(f"SELECT * FROM {quote_ident(table)}")  # nosec B608
                columns = list(rows[0].keys()) if rows else []
                snapshot[table] = (columns, [tuple(row.values()) for row in rows])
                logger.info("Exported %d rows from source.%s", len(rows), table)
        return snapshot

    async def load(
        self,
        dest: asyncpg.Connection,
        snapshot: dict[str, tuple[list[str], list[tuple[Any, ...]]]],
    ) -> ReplicationReport:
        """Truncate and repopulate the destination in a single transaction."""
        report = ReplicationReport()
        async with dest.transaction():
            # Write policies check the admin role; LOCAL so it ends with the transaction
            await dest.execute("SELECT set_config('app.role', 'admin', true)")

            for table in reversed(self.tables):
                await dest.execute(f"TRUNCATE {quote_ident(table)} CASCADE")

            for table in self.tables:
                columns, values = snapshot.get(table, ([], []))
                if not values:
                    logger.info("Skipped %s (0 rows)", table)
                    report.tables[table] = 0
                    continue

                column_list = ", ".join(quote_ident(c) for c in columns)
                placeholders = ", ".join(f"${i + 1}" for i in range(len(columns)))
                await dest.executemany(
                    f"INSERT INTO {quote_ident(table)} ({column_list}) VALUES ({placeholders})",  # nosec B608
                    values,
                )
                report.tables[table] = len(values)
                logger.info("Inserted %d rows into destination.%s", len(values), table)

        return report
