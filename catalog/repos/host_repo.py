"""Repository for host rows: products, games, publishers, creators."""

from __future__ import annotations

from typing import Any
from uuid import UUID

import asyncpg

from catalog.db import admin_conn, system_conn
from catalog.errors import STORE_ERRORS, NotFound, ValidationRejected, translate_store_error
from catalog.models.hosts import HOST_TABLES, HostRecord


def host_table(host_type: str) -> str:
    """Resolve a host type to its table. Unknown types are rejected, never defaulted."""
    try:
        return HOST_TABLES[host_type]
    except KeyError:
        raise ValidationRejected(f"Unknown host type: {host_type!r}") from None


def _row_to_host(host_type: str, row: asyncpg.Record) -> HostRecord:
    """Convert a database row to a HostRecord."""
    fields = dict(row)
    host_id = fields.pop("id")
    created_at = fields.pop("created_at", None)
    return HostRecord(host_type=host_type, id=host_id, created_at=created_at, fields=fields)


class HostRepo:
    """All host-row database operations."""

    async def create(self, host_type: str, fields: dict[str, Any]) -> HostRecord:
        """
        Insert a host row.

        Args:
            host_type: product, game, publisher or creator
            fields: Validated column values (keys come from the host model)

        Returns:
            Newly created HostRecord

        Raises:
            ReferentialViolation: publisher_id/game_id points nowhere
            ValidationRejected: constraint violation (duplicate slug, bad enum)
            StoreUnavailable: storage call failed
        """
        table = host_table(host_type)
        columns = list(fields)
        placeholders = ", ".join(f"${i + 1}" for i in range(len(columns)))

        try:
            async with admin_conn() as conn:
                # S608/B608: False positive - table and columns come from fixed mappings/models
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO {table} ({", ".join(columns)})
                    VALUES ({placeholders})
                    RETURNING *
                    """,  # nosec B608
                    *fields.values(),
                )
        except STORE_ERRORS as e:
            raise translate_store_error(e, operation="write") from e
        return _row_to_host(host_type, row)

    async def update(self, host_type: str, host_id: UUID, fields: dict[str, Any]) -> HostRecord:
        """
        Update a host row. Only the given fields change.

        Args:
            host_type: product, game, publisher or creator
            host_id: Host UUID
            fields: Validated column values to set

        Returns:
            Updated HostRecord

        Raises:
            NotFound: no such host
        """
        table = host_table(host_type)
        if not fields:
            host = await self.get(host_type, host_id)
            if host is None:
                raise NotFound(f"{host_type} {host_id} not found")
            return host

        set_clause = ", ".join(f"{k} = ${i + 2}" for i, k in enumerate(fields))

        try:
            async with admin_conn() as conn:
                # S608/B608: False positive - set_clause only contains validated column names
                row = await conn.fetchrow(
                    f"""
                    UPDATE {table}
                    SET {set_clause}
                    WHERE id = $1
                    RETURNING *
                    """,  # nosec B608
                    host_id,
                    *fields.values(),
                )
        except STORE_ERRORS as e:
            raise translate_store_error(e, operation="write") from e

        if row is None:
            raise NotFound(f"{host_type} {host_id} not found")
        return _row_to_host(host_type, row)

    async def get(self, host_type: str, host_id: UUID) -> HostRecord | None:
        table = host_table(host_type)
        try:
            async with system_conn() as conn:
                row = await conn.fetchrow(f"SELECT * FROM {table} WHERE id = $1", host_id)  # nosec B608
        except STORE_ERRORS as e:
            raise translate_store_error(e, operation="read") from e
        return _row_to_host(host_type, row) if row else None

    async def exists(self, host_type: str, host_id: UUID) -> bool:
        table = host_table(host_type)
        try:
            async with system_conn() as conn:
                found = await conn.fetchval(
                    f"SELECT EXISTS(SELECT 1 FROM {table} WHERE id = $1)",  # nosec B608
                    host_id,
                )
        except STORE_ERRORS as e:
            raise translate_store_error(e, operation="read") from e
        return bool(found)

    async def delete(self, host_type: str, host_id: UUID) -> None:
        """
        Delete a host row. The cleanup trigger removes its entity_references.

        Raises:
            NotFound: no such host
            Conflict: a restrictive foreign key still points at the host
        """
        table = host_table(host_type)
        try:
            async with admin_conn() as conn:
                result = await conn.execute(f"DELETE FROM {table} WHERE id = $1", host_id)  # nosec B608
        except STORE_ERRORS as e:
            raise translate_store_error(e, operation="delete") from e

        if result == "DELETE 0":
            raise NotFound(f"{host_type} {host_id} not found")
