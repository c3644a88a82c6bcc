"""Admin host routes — create, update, replace one relation kind, delete."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from catalog.auth import require_admin
from catalog.errors import (
    Conflict,
    NotAuthorized,
    NotFound,
    ReferentialViolation,
    RelationEngineError,
    StoreUnavailable,
    ValidationRejected,
)
from catalog.models.outcomes import MutationResult
from catalog.models.relations import MutateHostRequest
from catalog.services.mutation_orchestrator import mutation_orchestrator

router = APIRouter(prefix="/api/admin", tags=["admin"])

# URL segment -> host type
COLLECTIONS: dict[str, str] = {
    "products": "product",
    "games": "game",
    "publishers": "publisher",
    "creators": "creator",
}

_STATUS_BY_ERROR: dict[type[RelationEngineError], int] = {
    ValidationRejected: status.HTTP_400_BAD_REQUEST,
    NotAuthorized: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    Conflict: status.HTTP_409_CONFLICT,
    ReferentialViolation: 422,
    StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}

_STATUS_BY_CODE = {cls.code: code for cls, code in _STATUS_BY_ERROR.items()}


def _host_type(collection: str) -> str:
    host_type = COLLECTIONS.get(collection)
    if host_type is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown collection.")
    return host_type


def _http_error(e: RelationEngineError) -> HTTPException:
    code = _STATUS_BY_ERROR.get(type(e), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=code, detail=e.to_dict())


def _mutation_response(result: MutationResult, success_status: int) -> JSONResponse:
    # 207: host saved, one relation section needs resubmitting
    code = success_status if result.ok else status.HTTP_207_MULTI_STATUS
    return JSONResponse(status_code=code, content=result.model_dump(mode="json"))


@router.post("/{collection}", status_code=201)
async def create_host(
    collection: str,
    req: MutateHostRequest,
    claims: dict = Depends(require_admin),
) -> JSONResponse:
    """Create a host and attach its relations."""
    host_type = _host_type(collection)
    try:
        result = await mutation_orchestrator.mutate_host(host_type, req.host, req.relations, is_admin=True)
    except RelationEngineError as e:
        raise _http_error(e) from e
    return _mutation_response(result, status.HTTP_201_CREATED)


@router.put("/{collection}/{host_id}", status_code=200)
async def update_host(
    collection: str,
    host_id: UUID,
    req: MutateHostRequest,
    claims: dict = Depends(require_admin),
) -> JSONResponse:
    """Update a host. Relation kinds present in the body are replaced, others left alone."""
    host_type = _host_type(collection)
    try:
        result = await mutation_orchestrator.mutate_host(
            host_type, req.host, req.relations, host_id=host_id, is_admin=True
        )
    except RelationEngineError as e:
        raise _http_error(e) from e
    return _mutation_response(result, status.HTTP_200_OK)


@router.put("/{collection}/{host_id}/relations/{kind}", status_code=200)
async def replace_relation(
    collection: str,
    host_id: UUID,
    kind: str,
    rows: list[dict[str, Any]],
    claims: dict = Depends(require_admin),
) -> JSONResponse:
    """Replace one relation kind. Used to resubmit the kind a partial mutation named."""
    host_type = _host_type(collection)
    try:
        outcome = await mutation_orchestrator.replace_host_relations(
            host_type, host_id, kind, rows, is_admin=True
        )
    except RelationEngineError as e:
        raise _http_error(e) from e

    if outcome.ok:
        return JSONResponse(status_code=status.HTTP_200_OK, content=outcome.model_dump(mode="json"))
    code = _STATUS_BY_CODE.get((outcome.error or {}).get("code"), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(status_code=code, content=outcome.model_dump(mode="json"))


@router.delete("/{collection}/{host_id}", status_code=200)
async def delete_host(
    collection: str,
    host_id: UUID,
    claims: dict = Depends(require_admin),
) -> dict[str, Any]:
    """Delete a host. 409 when another row still depends on it."""
    host_type = _host_type(collection)
    try:
        result = await mutation_orchestrator.delete_host(host_type, host_id, is_admin=True)
    except RelationEngineError as e:
        raise _http_error(e) from e
    return {"success": True, "cleanup_errors": result.cleanup_errors}
