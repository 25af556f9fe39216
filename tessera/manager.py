"""Facade binding a token provider to a token repository.

Every ``authenticate_*`` call returns either an authenticated principal or
the anonymous principal. Only malformed arguments raise.

Creation is last-write-wins per ``(kind, client_id, redirect_uri, subject)``:
the owner's live entities are deleted, the new entity is inserted, and any
owner entity issued strictly before it (a racing creation that slipped in
between) is swept afterwards.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional, Union

from .config import TesseraConfig, load_config
from .constants import ClaimType
from .errors import MalformedInputError
from .identity import Claim, Principal, anonymous_principal
from .models import (
    EntityT,
    RefreshToken,
    TokenCreationResult,
    TokenRotationResult,
    TokenValidationResult,
)
from .persistence import TokenRepository, TokenStore, get_repository
from .providers import TokenProvider, get_token_provider
from .utils.clock import Clock, resolve_expiry, utcnow

logger = logging.getLogger(__name__)

Expiry = Union[datetime, timedelta]


class TokenManager:
    """Create and authenticate credentials for a protocol front end."""

    def __init__(
        self,
        provider: TokenProvider,
        repository: TokenRepository,
        config: Optional[TesseraConfig] = None,
        clock: Clock = utcnow,
    ) -> None:
        self.provider = provider
        self.repository = repository
        self.config = config or TesseraConfig()
        self.clock = clock

    @property
    def refresh_token_policy(self) -> str:
        return self.config.refresh_token_policy

    # ------------------------------------------------------------------
    # Creation
    async def create_authorization_code(
        self,
        client_id: str,
        redirect_uri: str,
        principal: Principal,
        scope: Optional[Iterable[str]] = None,
        expire: Optional[Expiry] = None,
    ) -> Optional[str]:
        scope = list(scope or [])
        return await self._create(
            self.repository.authorization_codes,
            "authorization code",
            client_id,
            redirect_uri,
            principal,
            scope,
            expire if expire is not None else self.config.lifetimes.authorization_code_delta(),
            lambda p, valid_to: self.provider.create_authorization_code(
                client_id, redirect_uri, p, scope, valid_to
            ),
        )

    async def create_access_token(
        self,
        client_id: str,
        redirect_uri: str,
        principal: Principal,
        scope: Optional[Iterable[str]] = None,
        expire: Optional[Expiry] = None,
    ) -> Optional[str]:
        scope = list(scope or [])
        return await self._create(
            self.repository.access_tokens,
            "access token",
            client_id,
            redirect_uri,
            principal,
            scope,
            expire if expire is not None else self.config.lifetimes.access_token_delta(),
            lambda p, valid_to: self.provider.create_access_token(
                client_id, redirect_uri, p, scope, valid_to
            ),
        )

    async def create_refresh_token(
        self,
        client_id: str,
        redirect_uri: str,
        principal: Principal,
        scope: Optional[Iterable[str]] = None,
        expire: Optional[Expiry] = None,
    ) -> Optional[str]:
        return await self._create(
            self.repository.refresh_tokens,
            "refresh token",
            client_id,
            redirect_uri,
            principal,
            list(scope or []),
            expire if expire is not None else self.config.lifetimes.refresh_token_delta(),
            lambda p, valid_to: self.provider.create_refresh_token(
                client_id, redirect_uri, p, valid_to
            ),
        )

    # ------------------------------------------------------------------
    # Authentication
    async def authenticate_authorization_code(self, redirect_uri: str, code: str) -> Principal:
        """Redeem a single-use code.

        The code is deleted before the principal is returned; when two
        callers race on the same code only the one whose delete succeeds
        gets the principal.
        """
        _require(redirect_uri=redirect_uri, code=code)
        store = self.repository.authorization_codes
        candidates = await store.get_candidates(self.clock(), redirect_uri=redirect_uri)
        result = self.provider.validate_authorization_code(candidates, code)
        if not result.is_valid:
            return anonymous_principal()
        if not await store.delete(result.entity):
            logger.warning(f"Authorization code for {result.entity.client_id} was already redeemed")
            return anonymous_principal()
        logger.info(f"Redeemed authorization code for {result.entity.client_id}")
        return result.principal

    async def authenticate_access_token(
        self, token: str, redirect_uri: Optional[str] = None
    ) -> Principal:
        _require(token=token)
        candidates = await self.repository.access_tokens.get_candidates(
            self.clock(), redirect_uri=redirect_uri
        )
        result = self.provider.validate_access_token(candidates, token)
        return result.principal if result.is_valid else anonymous_principal()

    async def authenticate_refresh_token(
        self, client_id: str, redirect_uri: str, token: str
    ) -> Principal:
        """Authenticate a refresh token.

        Under the ``rotate`` policy the token is consumed like an
        authorization code; use :meth:`rotate_refresh_token` to receive its
        replacement in the same step.
        """
        result = await self._consume_refresh_token(client_id, redirect_uri, token)
        return result.principal if result.is_valid else anonymous_principal()

    async def rotate_refresh_token(
        self,
        client_id: str,
        redirect_uri: str,
        token: str,
        expire: Optional[Expiry] = None,
    ) -> TokenRotationResult:
        """Authenticate a refresh token and return the token to use next.

        With the ``reuse`` policy the presented token is returned unchanged.
        With ``rotate`` it is consumed and a replacement is issued.
        """
        result = await self._consume_refresh_token(client_id, redirect_uri, token)
        if not result.is_valid:
            return TokenRotationResult()
        if self.refresh_token_policy == "reuse":
            return TokenRotationResult(principal=result.principal, refresh_token=token)
        replacement = await self.create_refresh_token(
            client_id, redirect_uri, result.principal, expire=expire
        )
        return TokenRotationResult(principal=result.principal, refresh_token=replacement)

    # ------------------------------------------------------------------
    async def collect_garbage(self) -> int:
        """Delete expired credentials of every kind and return the count."""
        now = self.clock()
        removed = 0
        for store in (
            self.repository.authorization_codes,
            self.repository.access_tokens,
            self.repository.refresh_tokens,
        ):
            removed += await store.delete_expired(now)
        if removed:
            logger.info(f"Collected {removed} expired credential(s)")
        return removed

    # ------------------------------------------------------------------
    async def _consume_refresh_token(
        self, client_id: str, redirect_uri: str, token: str
    ) -> TokenValidationResult[RefreshToken]:
        _require(client_id=client_id, redirect_uri=redirect_uri, token=token)
        store = self.repository.refresh_tokens
        candidates = await store.get_candidates(
            self.clock(), redirect_uri=redirect_uri, client_id=client_id
        )
        result = self.provider.validate_refresh_token(candidates, token)
        if not result.is_valid:
            return TokenValidationResult()
        if self.refresh_token_policy == "rotate" and not await store.delete(result.entity):
            logger.warning(f"Refresh token for {client_id} was already rotated")
            return TokenValidationResult()
        return result

    async def _create(
        self,
        store: TokenStore[EntityT],
        kind: str,
        client_id: str,
        redirect_uri: str,
        principal: Principal,
        scope: List[str],
        expire: Expiry,
        issue: Callable[[Principal, datetime], TokenCreationResult[EntityT]],
    ) -> Optional[str]:
        _require(client_id=client_id, redirect_uri=redirect_uri)
        if principal is None:
            raise MalformedInputError("principal is required")
        if not principal.is_authenticated:
            logger.warning(f"Refusing to issue {kind} for an unauthenticated principal")
            return None

        now = self.clock()
        valid_to = resolve_expiry(expire, now)
        if valid_to <= now:
            raise MalformedInputError(f"{kind} expiry must be in the future")

        await store.delete_expired(now)

        result = issue(_stored_principal(principal, client_id, scope), valid_to)
        entity = result.entity
        await store.delete_by_owner(client_id, redirect_uri, entity.subject)
        if await store.insert(entity) is None:
            logger.error(f"Could not store {kind} for {client_id}: key conflict")
            return None
        await store.delete_by_owner(
            client_id, redirect_uri, entity.subject, created_before=entity.created
        )
        logger.info(f"Issued {kind} for {client_id}/{entity.subject}")
        return result.token


def _stored_principal(principal: Principal, client_id: str, scope: List[str]) -> Principal:
    """Principal as sealed into a ticket: no embedded tokens, scope and client added."""
    cleaned = principal.without_claims(
        ClaimType.ACCESS_TOKEN, ClaimType.REFRESH_TOKEN, ClaimType.CLIENT
    )
    extra = [Claim(type=ClaimType.SCOPE, value=s) for s in scope]
    extra.append(Claim(type=ClaimType.CLIENT, value=client_id))
    return cleaned.with_claims(*extra)


def _require(**arguments: Optional[str]) -> None:
    for name, value in arguments.items():
        if not value:
            raise MalformedInputError(f"{name} is required")


def create_token_manager(
    config: Optional[TesseraConfig] = None,
    repository: Optional[TokenRepository] = None,
    clock: Optional[Clock] = None,
) -> TokenManager:
    """Build a manager from configuration.

    The provider follows ``config.token_format`` and the repository
    ``config.repository.backend`` unless one is passed in.
    """

    config = config or load_config()
    clock = clock or utcnow
    provider = get_token_provider(config, clock=clock)
    repository = repository or get_repository(config=config)
    return TokenManager(provider, repository, config=config, clock=clock)


__all__ = ["TokenManager", "create_token_manager"]
