"""Key management utilities for signing and verification."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

logger = logging.getLogger(__name__)

PemData = Union[str, bytes]


class KeyProvider:
    """Provides signing and verification keys with rotation support."""

    key_id: Optional[str] = None

    def get_signing_key(self) -> Any:  # pragma: no cover - interface
        """Return the current key used for signing."""
        raise NotImplementedError

    def get_verification_keys(self) -> Dict[Optional[str], Any]:  # pragma: no cover
        """Return mapping of ``kid`` to keys accepted for verification."""
        raise NotImplementedError

    def get_verification_key(self, key_id: Optional[str]) -> Any:
        """Return the key registered under ``key_id``.

        Tokens without a ``kid`` header are verified with the current key.
        An unknown ``kid`` is an invalid token, not a malformed one.
        """
        keys = self.get_verification_keys()
        if key_id is None:
            return keys[self.key_id]
        if not isinstance(key_id, str):
            raise jwt.InvalidTokenError("Key ID header parameter must be a string")
        if key_id not in keys:
            raise jwt.InvalidSignatureError(f"Unknown key id: {key_id}")
        return keys[key_id]


class StaticKeyProvider(KeyProvider):
    """Keys held in process memory.

    Either a shared ``secret`` (HMAC algorithms) or a PEM ``private_key``
    (RSA/EC algorithms) must be supplied. ``public_key`` defaults to the one
    derived from the private key. ``previous_keys`` maps retired key ids to
    keys that should still verify tokens signed before a rotation.
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        private_key: Optional[PemData] = None,
        public_key: Optional[PemData] = None,
        key_id: Optional[str] = None,
        previous_keys: Optional[Dict[str, Any]] = None,
    ) -> None:
        if secret and private_key is not None:
            raise ValueError("Configure either a shared secret or a private key, not both")
        if secret:
            self._signing_key: Any = secret
            self._verification_key: Any = secret
        elif private_key is not None:
            loaded = serialization.load_pem_private_key(_as_bytes(private_key), password=None)
            self._signing_key = loaded
            self._verification_key = (
                serialization.load_pem_public_key(_as_bytes(public_key))
                if public_key is not None
                else loaded.public_key()
            )
        else:
            raise ValueError("A signing secret or private key is required")
        self.key_id = key_id
        self._previous = dict(previous_keys or {})

    @classmethod
    def from_files(
        cls,
        private_key_path: Union[str, Path],
        public_key_path: Optional[Union[str, Path]] = None,
        key_id: Optional[str] = None,
    ) -> "StaticKeyProvider":
        private_key = Path(private_key_path).read_bytes()
        public_key = Path(public_key_path).read_bytes() if public_key_path else None
        logger.info(f"Loaded signing key from {private_key_path}")
        return cls(private_key=private_key, public_key=public_key, key_id=key_id)

    def get_signing_key(self) -> Any:
        return self._signing_key

    def get_verification_keys(self) -> Dict[Optional[str], Any]:
        keys: Dict[Optional[str], Any] = dict(self._previous)
        keys[self.key_id] = self._verification_key
        return keys

    def rotate(self, key_id: str, secret: Optional[str] = None, private_key: Optional[PemData] = None) -> None:
        """Make a new key current while keeping the old one for verification."""
        if self.key_id is None:
            raise ValueError("Key rotation requires the current key to have a key id")
        replacement = StaticKeyProvider(secret=secret, private_key=private_key, key_id=key_id)
        self._previous[self.key_id] = self._verification_key
        self._signing_key = replacement._signing_key
        self._verification_key = replacement._verification_key
        self.key_id = key_id
        logger.info(f"Rotated signing key to {key_id}")


def generate_rsa_key_pair(key_size: int = 2048) -> Tuple[bytes, bytes]:
    """Return a new ``(private_pem, public_pem)`` RSA key pair."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem


def _as_bytes(value: PemData) -> bytes:
    return value.encode("ascii") if isinstance(value, str) else value


__all__ = ["KeyProvider", "StaticKeyProvider", "generate_rsa_key_pair"]
