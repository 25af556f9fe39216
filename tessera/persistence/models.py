"""Storage records wrapping domain entities."""

from __future__ import annotations

from typing import Generic

from pydantic import BaseModel, ConfigDict, Field

from ..models import EntityT


class StoredRecord(BaseModel, Generic[EntityT]):
    """A persisted entity and the key it is stored under.

    Adapters that need a surrogate key or extra bookkeeping put it here,
    leaving the domain entity untouched.
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1)
    entity: EntityT

    @classmethod
    def wrap(cls, entity: EntityT) -> "StoredRecord[EntityT]":
        return cls(key=entity.identifier, entity=entity)
