"""Outcome shapes returned by the relation replacer and mutation orchestrator."""

from __future__ import annotations

from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field

from catalog.errors import PartialMutation
from catalog.models.hosts import HostRecord, HostType


class ReplaceOutcome(BaseModel):
    """
    Result of replacing one relation kind on one host.

    Success carries applied_count (0 for an intentional "remove all").
    Failure carries error; emptied tells whether the old rows are already
    gone (delete succeeded, insert failed) or untouched (delete failed).
    """

    kind: str
    applied_count: int | None = None
    error: dict[str, Any] | None = None
    emptied: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class MutationResult(BaseModel):
    """What a host create/update returns, whether or not every kind applied."""

    status: Literal["success", "partial"]
    host: HostRecord
    applied_kinds: list[str] = Field(default_factory=list)
    failed_kind: str | None = None
    error: dict[str, Any] | None = None
    relation_emptied: bool = False

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def raise_for_status(self) -> MutationResult:
        """Raise PartialMutation when a relation kind failed, else return self."""
        if self.status == "partial":
            error = self.error or {}
            message = error.get("message") or f"failed to apply {self.failed_kind}"
            raise PartialMutation(
                f"{self.host.host_type} {self.host.id} saved but {self.failed_kind} failed: {message}",
                host_id=self.host.id,
                applied_kinds=list(self.applied_kinds),
                failed_kind=self.failed_kind or "",
                relation_emptied=self.relation_emptied,
                detail=error.get("detail"),
            )
        return self


class DeleteResult(BaseModel):
    host_type: HostType
    host_id: UUID
    # Join-table cleanups that failed before the host delete. Logged, not fatal.
    cleanup_errors: list[str] = Field(default_factory=list)
