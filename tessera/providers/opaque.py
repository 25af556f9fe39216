"""Opaque hash+ticket credentials.

The bearer secret handed to the client is never stored. The repository holds
its PBKDF2 hash, used to find the entity, and a ticket: the principal
encrypted with the secret itself. A stored record without the secret cannot
be turned back into a principal.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..config import SecretConfig
from ..constants import AuthenticationType
from ..errors import TicketDecryptionError
from ..factory import TokenFactory
from ..identity import Principal
from ..models import (
    AccessToken,
    AuthorizationCode,
    EntityT,
    RefreshToken,
    TokenCreationResult,
    TokenValidationResult,
)
from ..security.crypto import CryptoProvider, PBKDF2CryptoProvider
from ..security.principal import PrincipalProvider
from ..utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)


class OpaqueTokenProvider:
    """Token provider issuing random secrets backed by encrypted tickets."""

    def __init__(
        self,
        crypto: Optional[CryptoProvider] = None,
        principal_provider: Optional[PrincipalProvider] = None,
        factory: Optional[TokenFactory] = None,
        secrets: Optional[SecretConfig] = None,
        clock: Clock = utcnow,
    ) -> None:
        self.crypto = crypto or PBKDF2CryptoProvider()
        self.principal_provider = principal_provider or PrincipalProvider(self.crypto)
        self.factory = factory or TokenFactory()
        self.secrets = secrets or SecretConfig()
        self.clock = clock

    # ------------------------------------------------------------------
    def create_authorization_code(
        self,
        client_id: str,
        redirect_uri: str,
        principal: Principal,
        scope: Optional[Iterable[str]],
        expire_time: datetime,
    ) -> TokenCreationResult[AuthorizationCode]:
        code, hashed, ticket = self._seal(principal, self.secrets.authorization_code)
        entity = self.factory.create_authorization_code(
            client_id, redirect_uri, principal.name, scope,
            code=hashed, ticket=ticket, valid_to=expire_time, created=self.clock(),
        )
        return TokenCreationResult(token=code, entity=entity)

    def create_access_token(
        self,
        client_id: str,
        redirect_uri: str,
        principal: Principal,
        scope: Optional[Iterable[str]],
        expire_time: datetime,
    ) -> TokenCreationResult[AccessToken]:
        token, hashed, ticket = self._seal(principal, self.secrets.access_token)
        entity = self.factory.create_access_token(
            client_id, redirect_uri, principal.name, scope,
            token=hashed, ticket=ticket, valid_to=expire_time, created=self.clock(),
        )
        return TokenCreationResult(token=token, entity=entity)

    def create_refresh_token(
        self,
        client_id: str,
        redirect_uri: str,
        principal: Principal,
        expire_time: datetime,
    ) -> TokenCreationResult[RefreshToken]:
        token, hashed, ticket = self._seal(principal, self.secrets.refresh_token)
        entity = self.factory.create_refresh_token(
            client_id, redirect_uri, principal.name,
            token=hashed, ticket=ticket, valid_to=expire_time, created=self.clock(),
        )
        return TokenCreationResult(token=token, entity=entity)

    # ------------------------------------------------------------------
    def validate_authorization_code(
        self, candidates: Sequence[AuthorizationCode], code: str
    ) -> TokenValidationResult[AuthorizationCode]:
        return self._open(candidates, code, "authorization code")

    def validate_access_token(
        self, candidates: Sequence[AccessToken], token: str
    ) -> TokenValidationResult[AccessToken]:
        return self._open(candidates, token, "access token")

    def validate_refresh_token(
        self, candidates: Sequence[RefreshToken], token: str
    ) -> TokenValidationResult[RefreshToken]:
        return self._open(candidates, token, "refresh token")

    # ------------------------------------------------------------------
    def _seal(self, principal: Principal, bits: int):
        """Return ``(plaintext, hash, ticket)`` for a fresh secret."""
        plaintext, hashed = self.crypto.create_secret(bits)
        ticket = self.principal_provider.encrypt(principal, plaintext)
        return plaintext, hashed, ticket

    def _open(
        self, candidates: Sequence[EntityT], plaintext: str, kind: str
    ) -> TokenValidationResult[EntityT]:
        now = self.clock()
        for candidate in candidates:
            if candidate.is_expired(now):
                continue
            if not self.crypto.validate_hash(plaintext, candidate.identifier):
                continue
            try:
                principal = self.principal_provider.decrypt(candidate.ticket, plaintext)
            except TicketDecryptionError:
                logger.warning(f"Matched {kind} has an undecryptable ticket")
                return TokenValidationResult()
            logger.debug(f"Validated {kind} for {candidate.client_id}")
            return TokenValidationResult(
                principal=principal.with_authentication_type(AuthenticationType.OAUTH),
                entity=candidate,
            )
        logger.warning(f"No live {kind} matched among {len(candidates)} candidate(s)")
        return TokenValidationResult()


__all__ = ["OpaqueTokenProvider"]
