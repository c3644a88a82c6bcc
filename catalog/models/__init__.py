"""
Pydantic models for the catalog relation engine.

All data shapes defined here. No imports from db, repos, or routes.
"""

from catalog.models.hosts import (
    HOST_CREATE_MODELS,
    HOST_TABLES,
    HOST_UPDATE_MODELS,
    HostRecord,
    HostType,
)
from catalog.models.outcomes import DeleteResult, MutationResult, ReplaceOutcome
from catalog.models.relations import (
    HOST_RELATION_KINDS,
    RELATION_ORDER,
    RELATION_ROW_MODELS,
    BasedOnLinkIn,
    CitationDetails,
    CreatorAssignmentIn,
    IsbnIn,
    LabelAssignmentIn,
    MutateHostRequest,
    ReferenceIn,
    RelationKind,
    RelationPayload,
)

__all__ = [
    # Host models
    "HostType",
    "HostRecord",
    "HOST_TABLES",
    "HOST_CREATE_MODELS",
    "HOST_UPDATE_MODELS",
    # Relation models
    "RelationKind",
    "RelationPayload",
    "MutateHostRequest",
    "RELATION_ORDER",
    "RELATION_ROW_MODELS",
    "HOST_RELATION_KINDS",
    "ReferenceIn",
    "CitationDetails",
    "CreatorAssignmentIn",
    "LabelAssignmentIn",
    "BasedOnLinkIn",
    "IsbnIn",
    # Outcomes
    "ReplaceOutcome",
    "MutationResult",
    "DeleteResult",
]
