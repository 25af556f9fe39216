"""In-memory implementation of the token repository."""

from __future__ import annotations

import logging
import threading
from datetime import datetime

from ..models import AccessToken, AuthorizationCode, EntityT, RefreshToken, TokenEntity
from ..utils.clock import ensure_utc
from .models import StoredRecord
from .repository import TokenRepository, TokenStore

logger = logging.getLogger(__name__)


class MemoryTokenStore(TokenStore[EntityT]):
    """Store one credential kind in a lock-guarded dict.

    Useful for tests or single-process deployments. Data is not persisted
    across process restarts.
    """

    def __init__(self, kind: str = "token") -> None:
        self.kind = kind
        self._records: dict[str, StoredRecord[EntityT]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    # ------------------------------------------------------------------
    async def get(self, identifier: str) -> EntityT | None:
        with self._lock:
            record = self._records.get(identifier)
        return record.entity if record else None

    async def get_candidates(
        self,
        expires_after: datetime,
        redirect_uri: str | None = None,
        client_id: str | None = None,
    ) -> list[EntityT]:
        instant = ensure_utc(expires_after)
        with self._lock:
            records = list(self._records.values())
        return [
            r.entity
            for r in records
            if r.entity.valid_to > instant
            and (redirect_uri is None or r.entity.redirect_uri == redirect_uri)
            and (client_id is None or r.entity.client_id == client_id)
        ]

    async def insert(self, entity: EntityT) -> EntityT | None:
        record = StoredRecord.wrap(entity)
        with self._lock:
            if record.key in self._records:
                logger.warning(f"Duplicate {self.kind} key rejected")
                return None
            self._records[record.key] = record
        return entity

    async def delete_by_owner(
        self,
        client_id: str,
        redirect_uri: str,
        subject: str,
        created_before: datetime | None = None,
    ) -> int:
        cutoff = ensure_utc(created_before) if created_before is not None else None
        with self._lock:
            doomed = [
                key
                for key, r in self._records.items()
                if r.entity.is_owned_by(client_id, redirect_uri, subject)
                and (cutoff is None or r.entity.created < cutoff)
            ]
            for key in doomed:
                del self._records[key]
        if doomed:
            logger.debug(f"Removed {len(doomed)} {self.kind}(s) for {client_id}/{subject}")
        return len(doomed)

    async def delete(self, entity: EntityT | str) -> bool:
        key = entity.identifier if isinstance(entity, TokenEntity) else entity
        with self._lock:
            return self._records.pop(key, None) is not None

    async def delete_expired(self, before: datetime) -> int:
        instant = ensure_utc(before)
        with self._lock:
            doomed = [k for k, r in self._records.items() if r.entity.is_expired(instant)]
            for key in doomed:
                del self._records[key]
        if doomed:
            logger.debug(f"Collected {len(doomed)} expired {self.kind}(s)")
        return len(doomed)

    async def clear(self) -> None:
        with self._lock:
            self._records.clear()


class MemoryTokenRepository(TokenRepository):
    """Group one in-memory store per credential kind."""

    def __init__(self) -> None:
        self.authorization_codes: MemoryTokenStore[AuthorizationCode] = MemoryTokenStore(
            "authorization code"
        )
        self.access_tokens: MemoryTokenStore[AccessToken] = MemoryTokenStore("access token")
        self.refresh_tokens: MemoryTokenStore[RefreshToken] = MemoryTokenStore("refresh token")

    async def purge(self) -> None:
        for store in (self.authorization_codes, self.access_tokens, self.refresh_tokens):
            await store.clear()
