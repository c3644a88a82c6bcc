"""
Relation replacer — make one host's stored set of one relation kind equal a target list.

Replace strategy: delete every existing row for (host, kind), then insert the
whole target list in one batch. By default the two steps are independent
storage calls, so a failed insert leaves the kind empty. That state is
reported (emptied=True), never hidden. atomic=True runs both steps in one
transaction instead.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ValidationError

from catalog.errors import RelationEngineError, ValidationRejected
from catalog.models.outcomes import ReplaceOutcome
from catalog.models.relations import HOST_RELATION_KINDS, RELATION_ROW_MODELS
from catalog.repos.relation_repo import RelationRepo

logger = logging.getLogger(__name__)

# Columns that, with the host id, form the join table's primary key
UNIQUE_KEYS: dict[str, tuple[str, ...]] = {
    "creators": ("creator_id", "role"),
    "labels": ("label_id",),
}


def coerce_rows(kind: str, rows: list[Any]) -> list[BaseModel]:
    """
    Validate target rows against the row model for kind.

    Accepts model instances or plain dicts. A repeated primary key is
    rejected here, since the insert would fail only after the old rows
    were deleted.

    Raises:
        ValidationRejected: unknown kind, a row that fails validation, or
            a duplicate key within the target list
    """
    model = RELATION_ROW_MODELS.get(kind)
    if model is None:
        raise ValidationRejected(f"Unknown relation kind: {kind!r}")
    try:
        validated = [row if isinstance(row, model) else model.model_validate(row) for row in rows]
    except ValidationError as e:
        raise ValidationRejected(f"Invalid {kind} row", detail=str(e)) from e

    key_columns = UNIQUE_KEYS.get(kind)
    if key_columns:
        seen: set[tuple[Any, ...]] = set()
        for row in validated:
            key = tuple(getattr(row, col) for col in key_columns)
            if key in seen:
                raise ValidationRejected(
                    f"Duplicate {kind} row",
                    detail=", ".join(f"{col}={value}" for col, value in zip(key_columns, key)),
                )
            seen.add(key)
    return validated


def to_storage_rows(kind: str, rows: list[BaseModel]) -> list[dict[str, Any]]:
    """
    Turn validated rows into column dicts.

    Labels get idx = list position so stored order reproduces the caller's.
    Everything else is stored verbatim.
    """
    if kind == "labels":
        return [{"label_id": row.label_id, "idx": idx} for idx, row in enumerate(rows)]
    if kind == "references":
        return [
            {
                "reference_type": row.reference_type,
                "label": row.label,
                "url": row.url,
                "citation_details": (
                    row.citation_details.model_dump(exclude_none=True) if row.citation_details else None
                ),
            }
            for row in rows
        ]
    return [row.model_dump() for row in rows]


def check_kind(host_type: str, kind: str) -> None:
    """Reject relation kinds the host type does not carry."""
    kinds = HOST_RELATION_KINDS.get(host_type)
    if kinds is None:
        raise ValidationRejected(f"Unknown host type: {host_type!r}")
    if kind not in kinds:
        raise ValidationRejected(f"{host_type} has no {kind!r} relation")


class RelationReplacer:
    """Delete-then-insert replacement of one relation kind."""

    def __init__(self, relation_repo: RelationRepo | None = None, *, atomic: bool = False) -> None:
        self.relation_repo = relation_repo or RelationRepo()
        self.atomic = atomic

    async def replace(
        self,
        host_type: str,
        host_id: UUID,
        kind: str,
        rows: list[Any],
    ) -> ReplaceOutcome:
        """
        Make the stored rows for (host, kind) equal rows.

        Args:
            host_type: Owning host type
            host_id: Owning host UUID (must already exist)
            kind: creators, labels, references, based_on or isbns
            rows: Complete target list; empty means remove all

        Returns:
            ReplaceOutcome. On failure, emptied tells whether the old rows
            were already deleted when the insert failed.

        Raises:
            ValidationRejected: bad kind for this host or invalid rows,
                raised before any storage call
        """
        check_kind(host_type, kind)
        storage_rows = to_storage_rows(kind, coerce_rows(kind, rows))

        if self.atomic:
            return await self._replace_atomic(host_type, host_id, kind, storage_rows)

        # Step 1: clear. If this fails nothing changed.
        try:
            await self.relation_repo.delete_for_host(host_type, host_id, kind)
        except RelationEngineError as e:
            logger.warning("replace %s on %s %s: clearing old rows failed: %s", kind, host_type, host_id, e)
            return ReplaceOutcome(kind=kind, error=e.to_dict(), emptied=False)

        if not storage_rows:
            return ReplaceOutcome(kind=kind, applied_count=0)

        # Step 2: insert. Old rows are already gone; a failure leaves the kind empty.
        try:
            applied = await self.relation_repo.insert_rows(host_type, host_id, kind, storage_rows)
        except RelationEngineError as e:
            logger.error(
                "replace %s on %s %s: old rows removed but inserting %d new rows failed: %s",
                kind,
                host_type,
                host_id,
                len(storage_rows),
                e,
            )
            return ReplaceOutcome(kind=kind, error=e.to_dict(), emptied=True)

        logger.info("replace %s on %s %s: %d rows", kind, host_type, host_id, applied)
        return ReplaceOutcome(kind=kind, applied_count=applied)

    async def _replace_atomic(
        self,
        host_type: str,
        host_id: UUID,
        kind: str,
        storage_rows: list[dict[str, Any]],
    ) -> ReplaceOutcome:
        try:
            applied = await self.relation_repo.replace_in_transaction(host_type, host_id, kind, storage_rows)
        except RelationEngineError as e:
            logger.warning("atomic replace %s on %s %s rolled back: %s", kind, host_type, host_id, e)
            return ReplaceOutcome(kind=kind, error=e.to_dict(), emptied=False)

        logger.info("atomic replace %s on %s %s: %d rows", kind, host_type, host_id, applied)
        return ReplaceOutcome(kind=kind, applied_count=applied)


relation_replacer = RelationReplacer()
