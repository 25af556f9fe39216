"""Token entities and provider result types."""

from __future__ import annotations

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .identity import Principal, anonymous_principal
from .utils.clock import ensure_utc


class TokenEntity(BaseModel):
    """Fields shared by every persisted credential.

    The stored hash is the entity's identifier; the plaintext secret is
    never part of the entity.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., min_length=1)
    redirect_uri: str = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)
    ticket: str = Field(..., min_length=1)
    valid_to: datetime
    created: datetime

    @field_validator("valid_to", "created")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def check_lifetime(self) -> "TokenEntity":
        if self.valid_to <= self.created:
            raise ValueError("valid_to must be later than created")
        return self

    @property
    def identifier(self) -> str:  # pragma: no cover - overridden
        raise NotImplementedError

    def is_owned_by(self, client_id: str, redirect_uri: str, subject: str) -> bool:
        return (
            self.client_id == client_id
            and self.redirect_uri == redirect_uri
            and self.subject == subject
        )

    def is_expired(self, instant: datetime) -> bool:
        return self.valid_to <= ensure_utc(instant)


class ScopedTokenEntity(TokenEntity):
    """Entity carrying an ordered, duplicate-free scope list."""

    scope: list[str] = Field(default_factory=list)

    @field_validator("scope")
    @classmethod
    def unique_scope(cls, scope: list[str]) -> list[str]:
        return list(dict.fromkeys(scope))


class AuthorizationCode(ScopedTokenEntity):
    """Single-use code exchanged for tokens at the token endpoint."""

    code: str = Field(..., min_length=1)

    @property
    def identifier(self) -> str:
        return self.code


class AccessToken(ScopedTokenEntity):
    """Bearer token with a bounded lifetime."""

    token: str = Field(..., min_length=1)

    @property
    def identifier(self) -> str:
        return self.token


class RefreshToken(TokenEntity):
    """Long-lived token used to obtain new access tokens."""

    token: str = Field(..., min_length=1)

    @property
    def identifier(self) -> str:
        return self.token


EntityT = TypeVar("EntityT", bound=TokenEntity)


class TokenCreationResult(BaseModel, Generic[EntityT]):
    """Plaintext secret handed to the caller and the entity to persist."""

    token: str
    entity: EntityT


class TokenValidationResult(BaseModel, Generic[EntityT]):
    """Outcome of matching a presented secret against stored candidates."""

    principal: Principal = Field(default_factory=anonymous_principal)
    entity: EntityT | None = None

    @property
    def is_valid(self) -> bool:
        return self.entity is not None and self.principal.is_authenticated

    @classmethod
    def anonymous(cls) -> "TokenValidationResult[EntityT]":
        return cls()


class TokenRotationResult(BaseModel):
    """Principal recovered from a refresh token plus the token to use next.

    ``refresh_token`` is ``None`` when authentication failed or the
    replacement could not be stored.
    """

    principal: Principal = Field(default_factory=anonymous_principal)
    refresh_token: str | None = None


__all__ = [
    "TokenEntity",
    "AuthorizationCode",
    "AccessToken",
    "RefreshToken",
    "EntityT",
    "TokenCreationResult",
    "TokenValidationResult",
    "TokenRotationResult",
]
