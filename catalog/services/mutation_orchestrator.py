"""
Mutation orchestrator — host write plus relation replacements as one logical operation.

Sequence for create/update:
1. Validate the host payload and the relation payload (nothing written on rejection)
2. Write the host row (failure here is terminal, no relation touched)
3. Replace each relation kind present in the payload, in a fixed order
4. Stop at the first failed kind and report a partial mutation

There is no compensating transaction: a host write that the store accepted
stays, as do the relation kinds applied before the failure.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ValidationError

from catalog.errors import NotAuthorized, RelationEngineError, ValidationRejected
from catalog.models.hosts import HOST_CREATE_MODELS, HOST_UPDATE_MODELS, HostRecord
from catalog.models.outcomes import DeleteResult, MutationResult, ReplaceOutcome
from catalog.models.relations import HOST_RELATION_KINDS, RELATION_ORDER, RelationPayload
from catalog.repos.host_repo import HostRepo
from catalog.repos.relation_repo import RelationRepo
from catalog.services.relation_replacer import RelationReplacer, check_kind, coerce_rows

logger = logging.getLogger(__name__)

# Join rows the orchestrator clears itself before deleting a host. References
# are left to the cleanup trigger.
OWNED_JOIN_KINDS: dict[str, tuple[str, ...]] = {
    "product": ("creators", "labels", "isbns"),
    "game": ("creators", "labels", "based_on"),
    "publisher": (),
    "creator": (),
}


def require_admin(is_admin: bool) -> None:
    if not is_admin:
        raise NotAuthorized("Catalog mutations require the admin role.")


def validate_host_payload(host_type: str, payload: dict[str, Any] | BaseModel, *, partial: bool) -> dict[str, Any]:
    """
    Validate a host payload and return the columns to write.

    For updates (partial=True) only the fields the caller sent are returned,
    so an omitted field is left alone while an explicit null clears it.

    Raises:
        ValidationRejected: unknown host type or invalid payload
    """
    models = HOST_UPDATE_MODELS if partial else HOST_CREATE_MODELS
    model = models.get(host_type)
    if model is None:
        raise ValidationRejected(f"Unknown host type: {host_type!r}")

    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    try:
        validated = model.model_validate(payload)
    except ValidationError as e:
        raise ValidationRejected(f"Invalid {host_type} payload", detail=str(e)) from e
    return validated.model_dump(exclude_unset=partial)


def validate_relation_payload(
    host_type: str, relations: RelationPayload | dict[str, Any] | None
) -> RelationPayload:
    """Validate relation targets, including duplicate keys, and check every present kind belongs to host_type."""
    if relations is None:
        return RelationPayload()
    if not isinstance(relations, RelationPayload):
        try:
            relations = RelationPayload.model_validate(relations)
        except ValidationError as e:
            raise ValidationRejected("Invalid relation payload", detail=str(e)) from e

    for kind in relations.present_kinds():
        check_kind(host_type, kind)
        coerce_rows(kind, getattr(relations, kind))
    return relations


class MutationOrchestrator:
    """Compose host writes and relation replacements."""

    def __init__(
        self,
        host_repo: HostRepo | None = None,
        relation_repo: RelationRepo | None = None,
        replacer: RelationReplacer | None = None,
        order: tuple[str, ...] = RELATION_ORDER,
    ) -> None:
        self.host_repo = host_repo or HostRepo()
        self.relation_repo = relation_repo or RelationRepo()
        self.replacer = replacer or RelationReplacer(self.relation_repo)
        # Every kind must appear exactly once or _apply_relations never visits it
        if sorted(order) != sorted(RELATION_ORDER):
            raise ValueError(f"order must list each of {', '.join(RELATION_ORDER)} exactly once, got {order!r}")
        self.order = tuple(order)

    async def mutate_host(
        self,
        host_type: str,
        host_payload: dict[str, Any] | BaseModel,
        relations: RelationPayload | dict[str, Any] | None = None,
        *,
        host_id: UUID | None = None,
        is_admin: bool,
    ) -> MutationResult:
        """
        Create (host_id None) or update a host together with its relations.

        Args:
            host_type: product, game, publisher or creator
            host_payload: Host fields
            relations: Target lists per relation kind; absent kinds are untouched
            host_id: Existing host to update, or None to create
            is_admin: Caller's admin capability, already verified upstream

        Returns:
            MutationResult with status "success", or "partial" naming the
            failed kind. The host row persists in both cases.

        Raises:
            NotAuthorized: is_admin is False
            ValidationRejected: invalid payload, nothing written
            ReferentialViolation / NotFound / StoreUnavailable: host write failed,
                no relation touched
        """
        require_admin(is_admin)
        fields = validate_host_payload(host_type, host_payload, partial=host_id is not None)
        relations = validate_relation_payload(host_type, relations)

        if host_id is None:
            host = await self.host_repo.create(host_type, fields)
            logger.info("created %s %s", host_type, host.id)
        else:
            host = await self.host_repo.update(host_type, host_id, fields)
            logger.info("updated %s %s", host_type, host.id)

        return await self._apply_relations(host, relations)

    async def replace_host_relations(
        self,
        host_type: str,
        host_id: UUID,
        kind: str,
        rows: list[Any],
        *,
        is_admin: bool,
    ) -> ReplaceOutcome:
        """Replace a single relation kind on an existing host."""
        require_admin(is_admin)
        return await self.replacer.replace(host_type, host_id, kind, rows)

    async def _apply_relations(self, host: HostRecord, relations: RelationPayload) -> MutationResult:
        present = set(relations.present_kinds())
        applied: list[str] = []

        for kind in self.order:
            if kind not in present:
                continue
            outcome = await self.replacer.replace(host.host_type, host.id, kind, getattr(relations, kind))
            if not outcome.ok:
                logger.warning(
                    "%s %s saved but %s failed (applied: %s, emptied: %s)",
                    host.host_type,
                    host.id,
                    kind,
                    ", ".join(applied) or "none",
                    outcome.emptied,
                )
                return MutationResult(
                    status="partial",
                    host=host,
                    applied_kinds=applied,
                    failed_kind=kind,
                    error=outcome.error,
                    relation_emptied=outcome.emptied,
                )
            applied.append(kind)

        return MutationResult(status="success", host=host, applied_kinds=applied)

    async def delete_host(self, host_type: str, host_id: UUID, *, is_admin: bool) -> DeleteResult:
        """
        Delete a host.

        Join rows owned directly are cleared first; a failure there is logged
        and does not stop the host delete. References are removed by the
        cleanup trigger whatever happens here.

        Raises:
            NotAuthorized: is_admin is False
            NotFound: no such host
            Conflict: another row still depends on the host through a
                restrictive foreign key; nothing deleted
        """
        require_admin(is_admin)
        if host_type not in HOST_RELATION_KINDS:
            raise ValidationRejected(f"Unknown host type: {host_type!r}")

        cleanup_errors: list[str] = []
        for kind in OWNED_JOIN_KINDS[host_type]:
            try:
                await self.relation_repo.delete_for_host(host_type, host_id, kind)
            except RelationEngineError as e:
                logger.error("delete %s %s: clearing %s failed, continuing: %s", host_type, host_id, kind, e)
                cleanup_errors.append(kind)

        await self.host_repo.delete(host_type, host_id)
        logger.info("deleted %s %s", host_type, host_id)
        return DeleteResult(host_type=host_type, host_id=host_id, cleanup_errors=cleanup_errors)


mutation_orchestrator = MutationOrchestrator()
