"""Signed (JWT) credentials.

The bearer secret is still a random string whose hash indexes the stored
entity, but the ticket is a JWS over the principal's claims instead of a
ciphertext. The ticket carries ``c_hash``/``at_hash`` of the secret, and a
refresh ticket uses the same digest as its ``jti``, so a ticket cannot be
moved onto another entity without failing verification.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Sequence

import jwt

from ..config import SecretConfig
from ..constants import RESERVED_JWT_CLAIMS, AuthenticationType, JwtClaimType
from ..factory import TokenFactory
from ..identity import Principal, anonymous_principal, claims_from_payload, claims_to_payload
from ..models import (
    AccessToken,
    AuthorizationCode,
    EntityT,
    RefreshToken,
    TokenCreationResult,
    TokenValidationResult,
)
from ..security.crypto import CryptoProvider, PBKDF2CryptoProvider
from ..security.jws import JsonWebToken, JwsService
from ..security.validator import TokenValidator
from ..utils.clock import Clock, to_unix, utcnow

logger = logging.getLogger(__name__)


class JwtTokenProvider:
    """Token provider whose tickets are signed JWTs."""

    def __init__(
        self,
        jws: JwsService,
        crypto: Optional[CryptoProvider] = None,
        factory: Optional[TokenFactory] = None,
        validator: Optional[TokenValidator] = None,
        secrets: Optional[SecretConfig] = None,
        clock: Clock = utcnow,
    ) -> None:
        self.jws = jws
        self.crypto = crypto or PBKDF2CryptoProvider()
        self.factory = factory or TokenFactory()
        self.validator = validator or TokenValidator()
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
        code, hashed = self.crypto.create_secret(self.secrets.authorization_code)
        now = self.clock()
        binding = {
            JwtClaimType.AUTHORIZATION_CODE_HASH: self.validator.create_authorization_code_hash(
                code, self.jws.algorithm
            )
        }
        ticket = self.jws.sign(self._payload(client_id, principal, expire_time, now, binding))
        entity = self.factory.create_authorization_code(
            client_id, redirect_uri, principal.name, scope,
            code=hashed, ticket=ticket, valid_to=expire_time, created=now,
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
        token, hashed = self.crypto.create_secret(self.secrets.access_token)
        now = self.clock()
        binding = {
            JwtClaimType.ACCESS_TOKEN_HASH: self.validator.create_access_token_hash(
                token, self.jws.algorithm
            )
        }
        ticket = self.jws.sign(self._payload(client_id, principal, expire_time, now, binding))
        entity = self.factory.create_access_token(
            client_id, redirect_uri, principal.name, scope,
            token=hashed, ticket=ticket, valid_to=expire_time, created=now,
        )
        return TokenCreationResult(token=token, entity=entity)

    def create_refresh_token(
        self,
        client_id: str,
        redirect_uri: str,
        principal: Principal,
        expire_time: datetime,
    ) -> TokenCreationResult[RefreshToken]:
        token, hashed = self.crypto.create_secret(self.secrets.refresh_token)
        now = self.clock()
        binding = {
            JwtClaimType.ID: self.validator.create_refresh_token_hash(token, self.jws.algorithm)
        }
        ticket = self.jws.sign(self._payload(client_id, principal, expire_time, now, binding))
        entity = self.factory.create_refresh_token(
            client_id, redirect_uri, principal.name,
            token=hashed, ticket=ticket, valid_to=expire_time, created=now,
        )
        return TokenCreationResult(token=token, entity=entity)

    def issue_identity_token(
        self,
        client_id: str,
        principal: Principal,
        expire_time: datetime,
        access_token: Optional[str] = None,
        authorization_code: Optional[str] = None,
    ) -> str:
        """Sign an OIDC ID token, bound to the given code and/or access token."""
        binding: Dict[str, Any] = {}
        if access_token is not None:
            binding[JwtClaimType.ACCESS_TOKEN_HASH] = self.validator.create_access_token_hash(
                access_token, self.jws.algorithm
            )
        if authorization_code is not None:
            binding[JwtClaimType.AUTHORIZATION_CODE_HASH] = (
                self.validator.create_authorization_code_hash(authorization_code, self.jws.algorithm)
            )
        payload = self._payload(client_id, principal, expire_time, self.clock(), binding)
        return self.jws.sign(payload)

    # ------------------------------------------------------------------
    def validate_authorization_code(
        self, candidates: Sequence[AuthorizationCode], code: str
    ) -> TokenValidationResult[AuthorizationCode]:
        return self._open(
            candidates, code, "authorization code",
            JwtClaimType.AUTHORIZATION_CODE_HASH,
            self.validator.validate_authorization_code_hash,
        )

    def validate_access_token(
        self, candidates: Sequence[AccessToken], token: str
    ) -> TokenValidationResult[AccessToken]:
        return self._open(
            candidates, token, "access token",
            JwtClaimType.ACCESS_TOKEN_HASH,
            self.validator.validate_access_token_hash,
        )

    def validate_refresh_token(
        self, candidates: Sequence[RefreshToken], token: str
    ) -> TokenValidationResult[RefreshToken]:
        return self._open(
            candidates, token, "refresh token",
            JwtClaimType.ID,
            self.validator.validate_refresh_token_hash,
        )

    def read_token(self, raw: str, audience: Optional[str] = None) -> Principal:
        """Verify a signed token without a repository round trip.

        Returns the anonymous principal when the signature, lifetime,
        audience or issuer does not check out. Structurally broken tokens
        raise :class:`~tessera.errors.MalformedTokenError`.
        """
        try:
            payload = self.jws.verify(raw, audience=audience, now=self.clock())
        except jwt.PyJWTError as exc:
            logger.warning(f"Signed token rejected: {exc}")
            return anonymous_principal()
        return principal_from_payload(payload)

    # ------------------------------------------------------------------
    def _payload(
        self,
        client_id: str,
        principal: Principal,
        expire_time: datetime,
        now: datetime,
        binding: Dict[str, Any],
    ) -> Dict[str, Any]:
        payload = claims_to_payload(
            c for c in principal.claims if c.type not in RESERVED_JWT_CLAIMS
        )
        subject = principal.find_first(JwtClaimType.SUBJECT)
        payload.update(
            {
                JwtClaimType.SUBJECT: subject.value if subject else principal.name,
                JwtClaimType.AUDIENCE: client_id,
                JwtClaimType.EXPIRATION_TIME: to_unix(expire_time),
                JwtClaimType.NOT_BEFORE: to_unix(now),
                JwtClaimType.ISSUED_AT: to_unix(now),
                JwtClaimType.ID: uuid.uuid4().hex,
            }
        )
        if self.jws.issuer:
            payload[JwtClaimType.ISSUER] = self.jws.issuer
        payload.update(binding)
        return payload

    def _open(
        self,
        candidates: Sequence[EntityT],
        plaintext: str,
        kind: str,
        binding_claim: Optional[str] = None,
        check_binding=None,
    ) -> TokenValidationResult[EntityT]:
        now = self.clock()
        for candidate in candidates:
            if candidate.is_expired(now):
                continue
            if not self.crypto.validate_hash(plaintext, candidate.identifier):
                continue
            try:
                payload = self.jws.verify(candidate.ticket, audience=candidate.client_id, now=now)
            except jwt.PyJWTError as exc:
                logger.warning(f"Matched {kind} failed signature checks: {exc}")
                return TokenValidationResult()
            if binding_claim is not None:
                algorithm = JsonWebToken.parse(candidate.ticket).algorithm
                if not check_binding(plaintext, payload.get(binding_claim, ""), algorithm):
                    logger.warning(f"Matched {kind} is not bound to the presented secret")
                    return TokenValidationResult()
            logger.debug(f"Validated {kind} for {candidate.client_id}")
            return TokenValidationResult(principal=principal_from_payload(payload), entity=candidate)
        logger.warning(f"No live {kind} matched among {len(candidates)} candidate(s)")
        return TokenValidationResult()


def principal_from_payload(payload: Dict[str, Any]) -> Principal:
    """Rebuild an OAuth principal from verified JWT claims."""
    claims = claims_from_payload(payload, exclude=RESERVED_JWT_CLAIMS)
    return Principal(authentication_type=AuthenticationType.OAUTH, claims=tuple(claims))


__all__ = ["JwtTokenProvider", "principal_from_payload"]
