"""Persistence layer for issued credentials."""

from __future__ import annotations

import logging

from ..config import TesseraConfig, load_config
from .inmemory import MemoryTokenRepository, MemoryTokenStore
from .models import StoredRecord
from .repository import TokenRepository, TokenStore

logger = logging.getLogger(__name__)


def get_repository(
    backend: str | None = None, config: TesseraConfig | None = None
) -> TokenRepository:
    """Factory function to obtain a token repository.

    The backend is taken from ``backend`` or from ``config.repository``.
    Only the in-memory backend ships with tessera; external adapters
    implement :class:`TokenRepository` and are passed to the manager
    directly.
    """

    if backend is None:
        config = config or load_config()
        backend = config.repository.backend

    if backend == "memory":
        logger.debug("Using in-memory token repository")
        return MemoryTokenRepository()
    raise ValueError(f"Unsupported repository backend: {backend}")


__all__ = [
    "StoredRecord",
    "TokenStore",
    "TokenRepository",
    "MemoryTokenStore",
    "MemoryTokenRepository",
    "get_repository",
]
