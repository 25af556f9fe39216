"""Repository abstraction for credential persistence."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from ..models import AccessToken, AuthorizationCode, EntityT, RefreshToken


class TokenStore(Protocol[EntityT]):
    """Persistence of one credential kind, keyed by the stored hash.

    Each operation is atomic per key. Compound sequences built from these
    calls are not.
    """

    async def get(self, identifier: str) -> EntityT | None:
        """Return the entity stored under ``identifier``."""

    async def get_candidates(
        self,
        expires_after: datetime,
        redirect_uri: str | None = None,
        client_id: str | None = None,
    ) -> list[EntityT]:
        """Return entities with ``valid_to > expires_after`` matching the filters."""

    async def insert(self, entity: EntityT) -> EntityT | None:
        """Store ``entity``; return ``None`` if its key already exists."""

    async def delete_by_owner(
        self,
        client_id: str,
        redirect_uri: str,
        subject: str,
        created_before: datetime | None = None,
    ) -> int:
        """Delete the owner's entities, optionally only those created earlier."""

    async def delete(self, entity: EntityT | str) -> bool:
        """Delete one entity; ``True`` only for the caller that removed it."""

    async def delete_expired(self, before: datetime) -> int:
        """Delete entities with ``valid_to <= before``."""


class TokenRepository(Protocol):
    """Protocol for credential persistence backends."""

    authorization_codes: TokenStore[AuthorizationCode]
    access_tokens: TokenStore[AccessToken]
    refresh_tokens: TokenStore[RefreshToken]

    async def purge(self) -> None:
        """Remove every stored credential."""
