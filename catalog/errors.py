"""
Relation engine error taxonomy.

Services raise these; routes translate them to HTTP status codes.
Storage exceptions are translated in exactly one place,
translate_store_error(), so every repo reports failures the same way.
"""

from __future__ import annotations

from typing import Literal

import asyncpg

StoreOperation = Literal["read", "write", "delete"]


class RelationEngineError(Exception):
    """Base class for every failure the engine reports."""

    code = "engine_error"

    def __init__(self, message: str, *, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict[str, str | None]:
        return {"code": self.code, "message": self.message, "detail": self.detail}


class ValidationRejected(RelationEngineError):
    """Payload malformed or violates a declared constraint. Nothing written."""

    code = "validation_rejected"


class ReferentialViolation(RelationEngineError):
    """A reference or assignment pointed at a row that does not exist."""

    code = "referential_violation"


class Conflict(RelationEngineError):
    """Deletion blocked by a structural dependency elsewhere. Nothing deleted."""

    code = "conflict"


class NotFound(RelationEngineError):
    code = "not_found"


class NotAuthorized(RelationEngineError):
    """Caller lacks the admin capability."""

    code = "not_authorized"


class StoreUnavailable(RelationEngineError):
    """
    Storage call failed for infrastructure reasons.

    Retrying the whole operation is safe: delete-then-insert converges to
    the same end state.
    """

    code = "store_unavailable"


class PartialMutation(RelationEngineError):
    """
    Host write succeeded but one relation kind failed to apply.

    The host row and every kind in applied_kinds persist. Only failed_kind
    needs to be resubmitted.
    """

    code = "partial_mutation"

    def __init__(
        self,
        message: str,
        *,
        host_id,
        applied_kinds: list[str],
        failed_kind: str,
        cause: RelationEngineError | None = None,
        relation_emptied: bool = False,
        detail: str | None = None,
    ):
        if detail is None and cause is not None:
            detail = cause.detail or cause.message
        super().__init__(message, detail=detail)
        self.host_id = host_id
        self.applied_kinds = applied_kinds
        self.failed_kind = failed_kind
        self.cause = cause
        self.relation_emptied = relation_emptied


_VALIDATION_ERRORS = (
    asyncpg.CheckViolationError,
    asyncpg.NotNullViolationError,
    asyncpg.UniqueViolationError,
    asyncpg.DataError,
)

_CONNECTION_ERRORS = (
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
    asyncpg.TooManyConnectionsError,
    OSError,
    TimeoutError,
)


# What a repo catches around a storage call
STORE_ERRORS = (asyncpg.PostgresError, *_CONNECTION_ERRORS)


def translate_store_error(exc: BaseException, *, operation: StoreOperation) -> RelationEngineError:
    """
    Map a storage exception onto the engine taxonomy.

    Foreign-key violations mean different things depending on direction:
    on a write the target is missing (ReferentialViolation), on a delete
    something still points at the row (Conflict).

    Args:
        exc: Exception raised by asyncpg or the socket layer
        operation: What the failing call was doing

    Returns:
        The engine error to raise, with exc as its cause
    """
    if isinstance(exc, RelationEngineError):
        return exc

    message = str(exc) or exc.__class__.__name__
    detail = getattr(exc, "detail", None)

    if isinstance(exc, asyncpg.ForeignKeyViolationError):
        if operation == "delete":
            err: RelationEngineError = Conflict(message, detail=detail)
        else:
            err = ReferentialViolation(message, detail=detail)
    elif isinstance(exc, _VALIDATION_ERRORS):
        err = ValidationRejected(message, detail=detail)
    elif isinstance(exc, asyncpg.InsufficientPrivilegeError):
        err = NotAuthorized(message, detail=detail)
    elif isinstance(exc, _CONNECTION_ERRORS):
        err = StoreUnavailable(message, detail=detail)
    else:
        # Unclassified server error: surface as retryable rather than guess
        err = StoreUnavailable(message, detail=detail)

    err.__cause__ = exc
    return err
