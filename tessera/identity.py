"""Claims and principals.

A :class:`Principal` is an authentication type plus an insertion-ordered set
of :class:`Claim` records, unique by ``(type, value)``. Principals are
immutable; the ``with_*``/``without_*`` helpers return new instances.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import NAME_CLAIM_TYPES, ClaimType


class Claim(BaseModel):
    """A single ``(type, value)`` attribute asserted about a principal."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., min_length=1)
    value: str
    alias: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.type, self.value)

    def __str__(self) -> str:
        return f"{self.type}={self.value}"


class Principal(BaseModel):
    """A validated identity: an authentication type and its claims."""

    model_config = ConfigDict(frozen=True)

    authentication_type: str | None = None
    claims: tuple[Claim, ...] = ()

    @field_validator("claims")
    @classmethod
    def unique_claims(cls, claims: tuple[Claim, ...]) -> tuple[Claim, ...]:
        seen = set()
        unique: list[Claim] = []
        for claim in claims:
            if claim.key in seen:
                continue
            seen.add(claim.key)
            unique.append(claim)
        return tuple(unique)

    @property
    def name(self) -> str | None:
        """Value of the first name-bearing claim, by preference order."""
        for claim_type in NAME_CLAIM_TYPES:
            claim = self.find_first(claim_type)
            if claim is not None and claim.value:
                return claim.value
        return None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.authentication_type) and bool(self.name)

    @property
    def scopes(self) -> list[str]:
        return [c.value for c in self.claims if c.type == ClaimType.SCOPE]

    def find(self, claim_type: str) -> list[Claim]:
        return [c for c in self.claims if c.type == claim_type]

    def find_first(self, claim_type: str) -> Claim | None:
        for claim in self.claims:
            if claim.type == claim_type:
                return claim
        return None

    def has_claim(self, claim_type: str, value: str | None = None) -> bool:
        return any(
            c.type == claim_type and (value is None or c.value == value)
            for c in self.claims
        )

    def with_claims(self, *claims: Claim) -> "Principal":
        return Principal(
            authentication_type=self.authentication_type,
            claims=self.claims + tuple(claims),
        )

    def without_claims(self, *claim_types: str) -> "Principal":
        return Principal(
            authentication_type=self.authentication_type,
            claims=tuple(c for c in self.claims if c.type not in claim_types),
        )

    def with_authentication_type(self, authentication_type: str | None) -> "Principal":
        return Principal(authentication_type=authentication_type, claims=self.claims)

    def __str__(self) -> str:
        claims = ", ".join(str(c) for c in self.claims)
        return (
            f"Principal(authentication_type={self.authentication_type}, "
            f"name={self.name}, claims=[{claims}])"
        )


def create_principal(authentication_type: str | None, *claims: Claim) -> Principal:
    """Build a principal from an authentication type and claims."""
    return Principal(authentication_type=authentication_type, claims=tuple(claims))


def anonymous_principal() -> Principal:
    """Return a fresh anonymous principal (no authentication type, no claims)."""
    return Principal()


def to_claim(data: Mapping[str, Any]) -> Claim:
    """Convert a wire claim object ``{type, value, alias?}`` into a :class:`Claim`."""
    return Claim(type=data["type"], value=data["value"], alias=data.get("alias"))


def from_claim(claim: Claim) -> dict[str, str]:
    """Convert a :class:`Claim` into its wire object."""
    data = {"type": claim.type, "value": claim.value}
    if claim.alias is not None:
        data["alias"] = claim.alias
    return data


def claims_to_payload(claims: Iterable[Claim]) -> dict[str, Any]:
    """Group claims by type into a JWT payload.

    Types that occur once map to a string, repeated types map to a list.
    Aliases are not representable in a JWT payload and are dropped.
    """
    payload: dict[str, Any] = {}
    for claim in claims:
        if claim.type not in payload:
            payload[claim.type] = claim.value
        elif isinstance(payload[claim.type], list):
            payload[claim.type].append(claim.value)
        else:
            payload[claim.type] = [payload[claim.type], claim.value]
    return payload


def claims_from_payload(
    payload: Mapping[str, Any], exclude: Iterable[str] = ()
) -> list[Claim]:
    """Expand a JWT payload back into claims, skipping ``exclude`` keys."""
    skipped = set(exclude)
    claims: list[Claim] = []
    for claim_type, raw in payload.items():
        if claim_type in skipped or raw is None:
            continue
        values = raw if isinstance(raw, list) else [raw]
        for value in values:
            claims.append(Claim(type=claim_type, value=_stringify(value)))
    return claims


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return json.dumps(value, separators=(",", ":"))


__all__ = [
    "Claim",
    "Principal",
    "create_principal",
    "anonymous_principal",
    "to_claim",
    "from_claim",
    "claims_to_payload",
    "claims_from_payload",
]
