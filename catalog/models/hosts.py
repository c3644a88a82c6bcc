"""Host entity models: products, games, publishers, creators."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

HostType = Literal["product", "game", "publisher", "creator"]

# host_type -> table name. Mirrors the CASE in validate_entity_reference().
HOST_TABLES: dict[str, str] = {
    "product": "products",
    "game": "games",
    "publisher": "publishers",
    "creator": "creators",
}

ProductType = Literal["Core Rulebook", "Adventure", "Supplement", "Zine", "Quickstart", "Other"]
Lang = Literal["fi", "sv", "en"]

SLUG_PATTERN = r"^[a-z0-9-]+$"
URL_PATTERN = r"^https?://\S+$"


def _blank_to_none(value: Any) -> Any:
    # Admin forms post "" for an unselected publisher
    if value == "":
        return None
    return value


class PublisherCreate(BaseModel):
    model_config = {"extra": "forbid"}

    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255, pattern=SLUG_PATTERN)
    description: str | None = None


class PublisherUpdate(BaseModel):
    model_config = {"extra": "forbid"}

    name: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = Field(default=None, min_length=1, max_length=255, pattern=SLUG_PATTERN)
    description: str | None = None


class CreatorCreate(BaseModel):
    model_config = {"extra": "forbid"}

    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255, pattern=SLUG_PATTERN)


class CreatorUpdate(BaseModel):
    model_config = {"extra": "forbid"}

    name: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = Field(default=None, min_length=1, max_length=255, pattern=SLUG_PATTERN)


class ProductCreate(BaseModel):
    model_config = {"extra": "forbid"}

    title: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255, pattern=SLUG_PATTERN)
    publisher_id: UUID | None = None
    game_id: UUID | None = None
    product_type: ProductType = "Other"
    year: int | None = Field(default=None, ge=1900, le=2100)
    description: str | None = None
    lang: Lang = "fi"

    @field_validator("publisher_id", "game_id", mode="before")
    @classmethod
    def blank_ids_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)


class ProductUpdate(BaseModel):
    model_config = {"extra": "forbid"}

    title: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = Field(default=None, min_length=1, max_length=255, pattern=SLUG_PATTERN)
    publisher_id: UUID | None = None
    game_id: UUID | None = None
    product_type: ProductType | None = None
    year: int | None = Field(default=None, ge=1900, le=2100)
    description: str | None = None
    lang: Lang | None = None

    @field_validator("publisher_id", "game_id", mode="before")
    @classmethod
    def blank_ids_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)


class GameCreate(BaseModel):
    model_config = {"extra": "forbid"}

    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255, pattern=SLUG_PATTERN)
    description: str | None = None
    publisher_id: UUID | None = None
    number_of_players: str | None = Field(default=None, max_length=50)
    in_language: Lang | None = None
    url: str | None = Field(default=None, pattern=URL_PATTERN)
    license: str | None = None
    image_url: str | None = Field(default=None, pattern=URL_PATTERN)

    @field_validator("publisher_id", mode="before")
    @classmethod
    def blank_ids_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)


class GameUpdate(BaseModel):
    model_config = {"extra": "forbid"}

    name: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = Field(default=None, min_length=1, max_length=255, pattern=SLUG_PATTERN)
    description: str | None = None
    publisher_id: UUID | None = None
    number_of_players: str | None = Field(default=None, max_length=50)
    in_language: Lang | None = None
    url: str | None = Field(default=None, pattern=URL_PATTERN)
    license: str | None = None
    image_url: str | None = Field(default=None, pattern=URL_PATTERN)

    @field_validator("publisher_id", mode="before")
    @classmethod
    def blank_ids_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)


HOST_CREATE_MODELS: dict[str, type[BaseModel]] = {
    "product": ProductCreate,
    "game": GameCreate,
    "publisher": PublisherCreate,
    "creator": CreatorCreate,
}

HOST_UPDATE_MODELS: dict[str, type[BaseModel]] = {
    "product": ProductUpdate,
    "game": GameUpdate,
    "publisher": PublisherUpdate,
    "creator": CreatorUpdate,
}


class HostRecord(BaseModel):
    """A persisted host row. Scalar columns other than id/created_at live in fields."""

    host_type: HostType
    id: UUID
    created_at: datetime | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
