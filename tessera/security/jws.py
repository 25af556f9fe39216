"""JWS signing and verification services."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

import jwt

from ..constants import JwtClaimType
from ..errors import MalformedTokenError, UnsupportedAlgorithmError
from ..utils.clock import Clock, ensure_utc, utcnow
from .keys import KeyProvider

logger = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = frozenset(
    {
        "HS256", "HS384", "HS512",
        "RS256", "RS384", "RS512",
        "PS256", "PS384", "PS512",
        "ES256", "ES384", "ES512",
    }
)


@dataclass(frozen=True)
class JsonWebToken:
    """Decoded, unverified segments of a compact JWS."""

    header: Dict[str, Any]
    payload: Dict[str, Any]
    signature: bytes

    @property
    def algorithm(self) -> Optional[str]:
        return self.header.get("alg")

    @property
    def key_id(self) -> Optional[str]:
        return self.header.get("kid")

    @classmethod
    def parse(cls, raw: str) -> "JsonWebToken":
        """Split ``raw`` into its three segments.

        Raises :class:`MalformedTokenError` when the segment count is wrong
        or a segment is not base64url-encoded JSON.
        """
        if not raw:
            raise MalformedTokenError("Token is empty")
        segments = raw.split(".")
        if len(segments) != 3:
            raise MalformedTokenError(f"Expected 3 token segments, got {len(segments)}")
        try:
            header = json.loads(_b64url_decode(segments[0]))
            payload = json.loads(_b64url_decode(segments[1]))
            signature = _b64url_decode(segments[2])
        except (binascii.Error, ValueError) as exc:
            raise MalformedTokenError("Token segments are not decodable") from exc
        if not isinstance(header, dict) or not isinstance(payload, dict):
            raise MalformedTokenError("Token header and payload must be JSON objects")
        return cls(header=header, payload=payload, signature=signature)


class JwsService:
    """Signs and verifies compact JSON Web Signatures with PyJWT.

    Only algorithms in ``allowed_algorithms`` are accepted on verification,
    and the key is chosen by the token's ``kid`` header, never by the
    algorithm the token claims.
    """

    def __init__(
        self,
        key_provider: KeyProvider,
        algorithm: str = "HS256",
        issuer: Optional[str] = None,
        leeway: int = 0,
        allowed_algorithms: Optional[Iterable[str]] = None,
        clock: Clock = utcnow,
    ) -> None:
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise UnsupportedAlgorithmError(f"Unsupported signing algorithm: {algorithm}")
        allowed = set(allowed_algorithms or [algorithm])
        unknown = allowed - SUPPORTED_ALGORITHMS
        if unknown:
            raise UnsupportedAlgorithmError(f"Unsupported algorithms: {sorted(unknown)}")
        self.key_provider = key_provider
        self.algorithm = algorithm
        self.issuer = issuer
        self.leeway = leeway
        self.allowed_algorithms = frozenset(allowed)
        self.clock = clock

    def sign(self, payload: Dict[str, Any]) -> str:
        """Sign ``payload`` and return the compact serialization."""
        headers = {"typ": "JWT"}
        if self.key_provider.key_id:
            headers["kid"] = self.key_provider.key_id
        return jwt.encode(
            payload,
            self.key_provider.get_signing_key(),
            algorithm=self.algorithm,
            headers=headers,
        )

    def verify(
        self, raw: str, audience: Optional[str] = None, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Verify ``raw`` and return its payload.

        Time claims are checked against ``now``, defaulting to the service's
        clock, rather than the wall clock.

        Raises :class:`MalformedTokenError` for structurally broken tokens
        and a :class:`jwt.InvalidTokenError` subclass for tokens that are
        well-formed but fail signature, time, audience or issuer checks.
        """
        token = JsonWebToken.parse(raw)
        algorithm = token.algorithm
        if not isinstance(algorithm, str) or algorithm not in self.allowed_algorithms:
            raise jwt.InvalidAlgorithmError(f"Algorithm {algorithm!r} is not allowed")
        key = self.key_provider.get_verification_key(token.key_id)
        payload = jwt.decode(
            raw,
            key,
            algorithms=[algorithm],
            audience=audience,
            issuer=self.issuer,
            leeway=self.leeway,
            options={
                "require": [
                    JwtClaimType.EXPIRATION_TIME,
                    JwtClaimType.ISSUED_AT,
                    JwtClaimType.SUBJECT,
                ],
                "verify_aud": audience is not None,
                "verify_exp": False,
                "verify_nbf": False,
                "verify_iat": False,
            },
        )
        self._check_times(payload, ensure_utc(now or self.clock()).timestamp())
        return payload

    def _check_times(self, payload: Dict[str, Any], now: float) -> None:
        times: Dict[str, float] = {}
        for claim in (
            JwtClaimType.EXPIRATION_TIME,
            JwtClaimType.NOT_BEFORE,
            JwtClaimType.ISSUED_AT,
        ):
            if claim not in payload:
                continue
            value = payload[claim]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise jwt.DecodeError(f"The {claim} claim must be a number")
            times[claim] = value

        expires = times.get(JwtClaimType.EXPIRATION_TIME)
        if expires is not None and expires <= now - self.leeway:
            raise jwt.ExpiredSignatureError("Signature has expired")
        for claim in (JwtClaimType.NOT_BEFORE, JwtClaimType.ISSUED_AT):
            if claim in times and times[claim] > now + self.leeway:
                raise jwt.ImmatureSignatureError(f"The token is not yet valid ({claim})")


def _b64url_decode(segment: str) -> bytes:
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


__all__ = ["JsonWebToken", "JwsService", "SUPPORTED_ALGORITHMS"]
