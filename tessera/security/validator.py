"""OIDC ``at_hash`` / ``c_hash`` binding between ID tokens and credentials."""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging

from ..errors import MalformedInputError, UnsupportedAlgorithmError

logger = logging.getLogger(__name__)

_FAMILIES = ("HS", "RS", "PS", "ES")
_DIGESTS = {
    "256": hashlib.sha256,
    "384": hashlib.sha384,
    "512": hashlib.sha512,
}


class TokenValidator:
    """Compute and check the truncated digests that bind an ID token.

    The hash is the standard base64 encoding of the left 16 bytes of the
    SHA-2 digest named by the signing algorithm's suffix.
    """

    def create_authorization_code_hash(self, code: str, algorithm: str) -> str:
        return _left_half_hash(code, algorithm)

    def create_access_token_hash(self, token: str, algorithm: str) -> str:
        return _left_half_hash(token, algorithm)

    def validate_authorization_code_hash(self, code: str, hash: str, algorithm: str) -> bool:
        return _matches(code, hash, algorithm)

    def validate_access_token_hash(self, token: str, hash: str, algorithm: str) -> bool:
        return _matches(token, hash, algorithm)

    def create_refresh_token_hash(self, token: str, algorithm: str) -> str:
        return _left_half_hash(token, algorithm)

    def validate_refresh_token_hash(self, token: str, hash: str, algorithm: str) -> bool:
        return _matches(token, hash, algorithm)


def _digest_for(algorithm: str):
    if not algorithm or len(algorithm) != 5:
        raise UnsupportedAlgorithmError(f"Unsupported algorithm: {algorithm!r}")
    family, size = algorithm[:2].upper(), algorithm[2:]
    if family not in _FAMILIES or size not in _DIGESTS:
        raise UnsupportedAlgorithmError(f"Unsupported algorithm: {algorithm!r}")
    return _DIGESTS[size]


def _left_half_hash(value: str, algorithm: str) -> str:
    if value is None:
        raise MalformedInputError("A value to hash is required")
    digest = _digest_for(algorithm)(value.encode("utf-8")).digest()
    return base64.b64encode(digest[:16]).decode("ascii")


def _matches(value: str, expected: str, algorithm: str) -> bool:
    actual = _left_half_hash(value, algorithm)
    if not expected or not isinstance(expected, str):
        return False
    matched = hmac.compare_digest(actual.encode("ascii"), expected.encode("utf-8"))
    if not matched:
        logger.debug(f"{algorithm} hash binding mismatch")
    return matched


__all__ = ["TokenValidator"]
