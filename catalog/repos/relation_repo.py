"""
Repository for relation rows owned by a host.

One table per (host_type, kind), except references: every host type shares
entity_references, told apart by the entity_type column.

Every method opens its own admin connection unless a connection is passed
in. Without one, delete_for_host() and insert_rows() commit independently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

import asyncpg

from catalog.db import admin_conn, system_conn
from catalog.errors import STORE_ERRORS, ValidationRejected, translate_store_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelationTable:
    """Where one relation kind of one host type is stored."""

    table: str
    owner_column: str
    columns: tuple[str, ...]
    # (column, value) pinning the host type in a shared table
    discriminator: tuple[str, str] | None = None
    order_by: str | None = None

    def owner_filter(self) -> tuple[str, list[Any]]:
        """WHERE clause (with $1 the host id) and extra args selecting one host's rows."""
        if self.discriminator is None:
            return f"{self.owner_column} = $1", []
        column, value = self.discriminator
        return f"{self.owner_column} = $1 AND {column} = $2", [value]


def _references(host_type: str) -> RelationTable:
    return RelationTable(
        table="entity_references",
        owner_column="entity_id",
        columns=("reference_type", "label", "url", "citation_details"),
        discriminator=("entity_type", host_type),
        order_by="created_at, id",
    )


RELATION_TABLES: dict[tuple[str, str], RelationTable] = {
    ("product", "creators"): RelationTable("products_creators", "product_id", ("creator_id", "role")),
    ("game", "creators"): RelationTable("games_creators", "game_id", ("creator_id", "role")),
    ("product", "labels"): RelationTable(
        "product_semantic_labels", "product_id", ("label_id", "idx"), order_by="idx"
    ),
    ("game", "labels"): RelationTable("game_semantic_labels", "game_id", ("label_id", "idx"), order_by="idx"),
    ("game", "based_on"): RelationTable(
        "game_based_on",
        "game_id",
        ("based_on_game_id", "based_on_url", "label"),
        order_by="created_at, id",
    ),
    ("product", "isbns"): RelationTable(
        "product_isbns", "product_id", ("isbn", "label"), order_by="created_at, id"
    ),
    ("product", "references"): _references("product"),
    ("game", "references"): _references("game"),
    ("publisher", "references"): _references("publisher"),
    ("creator", "references"): _references("creator"),
}


def relation_table(host_type: str, kind: str) -> RelationTable:
    try:
        return RELATION_TABLES[(host_type, kind)]
    except KeyError:
        raise ValidationRejected(f"{host_type} has no {kind!r} relation") from None


def _command_count(status: str) -> int:
    """Row count from an asyncpg command tag like 'DELETE 3'."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, IndexError):
        return 0


class RelationRepo:
    """All relation-row database operations."""

    async def delete_for_host(
        self,
        host_type: str,
        host_id: UUID,
        kind: str,
        conn: asyncpg.Connection | None = None,
    ) -> int:
        """
        Delete every row of one relation kind for one host.

        Args:
            host_type: Owning host type
            host_id: Owning host UUID
            kind: Relation kind
            conn: Run on this connection/transaction instead of a fresh one

        Returns:
            Number of rows deleted
        """
        target = relation_table(host_type, kind)
        where, extra = target.owner_filter()
        sql = f"DELETE FROM {target.table} WHERE {where}"  # nosec B608

        try:
            if conn is not None:
                status = await conn.execute(sql, host_id, *extra)
            else:
                async with admin_conn() as own:
                    status = await own.execute(sql, host_id, *extra)
        except STORE_ERRORS as e:
            raise translate_store_error(e, operation="delete") from e

        deleted = _command_count(status)
        logger.debug("relation_repo: deleted %d %s rows for %s %s", deleted, kind, host_type, host_id)
        return deleted

    async def insert_rows(
        self,
        host_type: str,
        host_id: UUID,
        kind: str,
        rows: list[dict[str, Any]],
        conn: asyncpg.Connection | None = None,
    ) -> int:
        """
        Insert a batch of relation rows for one host. All or nothing.

        Args:
            host_type: Owning host type
            host_id: Owning host UUID
            kind: Relation kind
            rows: Column dicts keyed by the table's insert columns
            conn: Run on this connection/transaction instead of a fresh one

        Returns:
            Number of rows inserted

        Raises:
            ReferentialViolation: a row points at a missing host, creator or label
            ValidationRejected: a row violates a CHECK/NOT NULL/unique constraint
        """
        if not rows:
            return 0

        target = relation_table(host_type, kind)
        columns = [target.owner_column, *target.columns]
        if target.discriminator is not None:
            columns.append(target.discriminator[0])
        placeholders = ", ".join(f"${i + 1}" for i in range(len(columns)))
        sql = f"INSERT INTO {target.table} ({', '.join(columns)}) VALUES ({placeholders})"  # nosec B608

        args = []
        for row in rows:
            values = [host_id, *(row.get(col) for col in target.columns)]
            if target.discriminator is not None:
                values.append(target.discriminator[1])
            args.append(values)

        try:
            if conn is not None:
                await conn.executemany(sql, args)
            else:
                async with admin_conn() as own:
                    await own.executemany(sql, args)
        except STORE_ERRORS as e:
            raise translate_store_error(e, operation="write") from e

        logger.debug("relation_repo: inserted %d %s rows for %s %s", len(args), kind, host_type, host_id)
        return len(args)

    async def list_for_host(self, host_type: str, host_id: UUID, kind: str) -> list[dict[str, Any]]:
        """
        Read the stored rows of one relation kind for one host.

        Labels come back in idx order, which reconstructs the order they
        were submitted in.
        """
        target = relation_table(host_type, kind)
        where, extra = target.owner_filter()
        order = f" ORDER BY {target.order_by}" if target.order_by else ""
        sql = f"SELECT * FROM {target.table} WHERE {where}{order}"  # nosec B608

        try:
            async with system_conn() as conn:
                rows = await conn.fetch(sql, host_id, *extra)
        except STORE_ERRORS as e:
            raise translate_store_error(e, operation="read") from e
        return [dict(row) for row in rows]

    async def replace_in_transaction(
        self,
        host_type: str,
        host_id: UUID,
        kind: str,
        rows: list[dict[str, Any]],
    ) -> int:
        """
        Delete and insert on one connection inside one transaction.

        Either the stored set becomes rows or nothing changes.

        Returns:
            Number of rows inserted
        """
        try:
            async with admin_conn() as conn:
                await self.delete_for_host(host_type, host_id, kind, conn=conn)
                return await self.insert_rows(host_type, host_id, kind, rows, conn=conn)
        except STORE_ERRORS as e:
            # Commit/rollback failures surface here, outside the inner calls
            raise translate_store_error(e, operation="write") from e
