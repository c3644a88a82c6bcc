"""
Repository layer for the catalog.

All SQL lives here and ONLY here. No database access outside this module
(the environment replicator works on raw connections of its own).
"""

from catalog.repos.host_repo import HostRepo
from catalog.repos.relation_repo import RELATION_TABLES, RelationRepo, RelationTable

__all__ = [
    "HostRepo",
    "RelationRepo",
    "RelationTable",
    "RELATION_TABLES",
]
