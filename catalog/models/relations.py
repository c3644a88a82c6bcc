"""Relation row models: references, creator/label assignments, based-on links, ISBNs."""

from __future__ import annotations

from typing import Any, Literal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field, model_validator

from catalog.models.hosts import URL_PATTERN, Lang

RelationKind = Literal["creators", "labels", "references", "based_on", "isbns"]

ReferenceKind = Literal["official", "source", "review", "social"]

# Default replacement order. Fixed so error messages and tests are reproducible.
RELATION_ORDER: tuple[RelationKind, ...] = ("creators", "labels", "references", "based_on", "isbns")

# Which relation kinds each host type carries.
HOST_RELATION_KINDS: dict[str, frozenset[str]] = {
    "product": frozenset({"creators", "labels", "references", "isbns"}),
    "game": frozenset({"creators", "labels", "references", "based_on"}),
    "publisher": frozenset({"references"}),
    "creator": frozenset({"references"}),
}


class CitationDetails(BaseModel):
    model_config = {"extra": "forbid"}

    author: str | None = None
    published_date: str | None = None
    publication_name: str | None = None
    language: Lang | None = None


class ReferenceIn(BaseModel):
    """A typed external link to attach to a host."""

    model_config = {"extra": "forbid", "populate_by_name": True}

    reference_type: ReferenceKind = Field(validation_alias=AliasChoices("reference_type", "kind"))
    label: str = Field(min_length=1, max_length=255)
    url: str = Field(pattern=URL_PATTERN)
    citation_details: CitationDetails | None = None


class CreatorAssignmentIn(BaseModel):
    model_config = {"extra": "forbid"}

    creator_id: UUID
    role: str = Field(min_length=1, max_length=100)


class LabelAssignmentIn(BaseModel):
    """Label to attach. Display position comes from list order, not the payload."""

    model_config = {"extra": "forbid"}

    label_id: UUID


class BasedOnLinkIn(BaseModel):
    """
    A game's "based on" source: another game in the catalog or an external URL.

    Exactly one of based_on_game_id / based_on_url is set. The source type is
    derived from which one, never stored.
    """

    model_config = {"extra": "forbid"}

    based_on_game_id: UUID | None = None
    based_on_url: str | None = Field(default=None, pattern=URL_PATTERN)
    label: str = Field(min_length=1, max_length=255)

    @model_validator(mode="after")
    def exactly_one_source(self) -> BasedOnLinkIn:
        if (self.based_on_game_id is None) == (self.based_on_url is None):
            raise ValueError("exactly one of based_on_game_id or based_on_url must be set")
        return self

    @property
    def source_type(self) -> Literal["game", "url"]:
        return "game" if self.based_on_game_id is not None else "url"


class IsbnIn(BaseModel):
    model_config = {"extra": "forbid"}

    isbn: str = Field(min_length=1, max_length=20)
    label: str | None = Field(default=None, max_length=255)


RELATION_ROW_MODELS: dict[str, type[BaseModel]] = {
    "creators": CreatorAssignmentIn,
    "labels": LabelAssignmentIn,
    "references": ReferenceIn,
    "based_on": BasedOnLinkIn,
    "isbns": IsbnIn,
}


class RelationPayload(BaseModel):
    """
    Target collections for one host mutation.

    None means "leave this kind alone"; an empty list means "remove all".
    """

    model_config = {"extra": "forbid"}

    creators: list[CreatorAssignmentIn] | None = None
    labels: list[LabelAssignmentIn] | None = None
    references: list[ReferenceIn] | None = None
    based_on: list[BasedOnLinkIn] | None = None
    isbns: list[IsbnIn] | None = None

    def present_kinds(self) -> list[str]:
        return [kind for kind in RELATION_ORDER if getattr(self, kind) is not None]


class MutateHostRequest(BaseModel):
    """What the admin client sends to create or update a host."""

    model_config = {"extra": "forbid"}

    # Validated against the host type's model by the orchestrator
    host: dict[str, Any] = Field(default_factory=dict)
    relations: RelationPayload = Field(default_factory=RelationPayload)
