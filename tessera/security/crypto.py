"""Hashing and symmetric encryption primitives."""

from __future__ import annotations

import base64
import binascii
import hmac
import logging
import math
import os
import secrets
from typing import Protocol, Tuple

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..errors import MalformedHashError, MalformedInputError, TicketDecryptionError

logger = logging.getLogger(__name__)

_DIGESTS = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}
_HASH_PREFIX = "pbkdf2_"
_TICKET_SALT_BYTES = 16
_TICKET_INFO = b"tessera-ticket-v1"


class CryptoProvider(Protocol):
    """Contract for hashing and symmetric encryption."""

    def create_hash(self, text: str) -> str:
        """Return a self-describing hash of ``text``."""

    def create_secret(self, bits: int) -> Tuple[str, str]:
        """Return a random secret of at least ``bits`` bits and its hash."""

    def validate_hash(self, text: str, correct_hash: str) -> bool:
        """Return ``True`` if ``text`` hashes to ``correct_hash``."""

    def encrypt(self, text: str, key: str) -> str:
        """Encrypt ``text`` with a key derived from ``key``."""

    def decrypt(self, ciphertext: str, key: str) -> str:
        """Reverse :meth:`encrypt`; raise on wrong key or tampering."""


class PBKDF2CryptoProvider:
    """PBKDF2 hashes with authenticated (Fernet) encryption.

    Hashes are encoded as ``pbkdf2_<digest>$<iterations>$<salt>$<hash>`` so
    each one carries its own recipe. Raising ``iterations`` only affects new
    hashes; existing ones keep validating with the count they were made with.

    Ciphertexts are ``<salt>.<fernet token>``. The Fernet key is derived from
    the caller's key with HKDF, which is appropriate because the keys used
    here are high-entropy bearer secrets rather than passwords.
    """

    def __init__(
        self,
        digest: str = "sha256",
        iterations: int = 10000,
        salt_bytes: int = 16,
        hash_bytes: int = 32,
    ) -> None:
        if digest not in _DIGESTS:
            raise ValueError(f"Unsupported PBKDF2 digest: {digest}")
        if iterations < 1 or salt_bytes < 8 or hash_bytes < 16:
            raise ValueError("PBKDF2 parameters are too weak")
        self.digest = digest
        self.iterations = iterations
        self.salt_bytes = salt_bytes
        self.hash_bytes = hash_bytes

    # ------------------------------------------------------------------
    # Hashing
    def create_hash(self, text: str) -> str:
        if text is None:
            raise MalformedInputError("text is required")
        salt = os.urandom(self.salt_bytes)
        derived = self._derive(text, salt, self.digest, self.iterations, self.hash_bytes)
        return "$".join(
            [
                f"{_HASH_PREFIX}{self.digest}",
                str(self.iterations),
                _b64encode(salt),
                _b64encode(derived),
            ]
        )

    def create_secret(self, bits: int) -> Tuple[str, str]:
        text = generate_secret(bits)
        return text, self.create_hash(text)

    def validate_hash(self, text: str, correct_hash: str) -> bool:
        if text is None:
            raise MalformedInputError("text is required")
        digest, iterations, salt, expected = _parse_hash(correct_hash)
        actual = self._derive(text, salt, digest, iterations, len(expected))
        return hmac.compare_digest(actual, expected)

    def needs_rehash(self, correct_hash: str) -> bool:
        """Return ``True`` if ``correct_hash`` was made with a weaker recipe."""
        digest, iterations, _, _ = _parse_hash(correct_hash)
        return digest != self.digest or iterations < self.iterations

    # ------------------------------------------------------------------
    # Encryption
    def encrypt(self, text: str, key: str) -> str:
        if not key:
            raise MalformedInputError("An encryption key is required")
        salt = os.urandom(_TICKET_SALT_BYTES)
        token = _fernet(key, salt).encrypt(text.encode("utf-8"))
        return f"{_b64encode(salt)}.{token.decode('ascii')}"

    def decrypt(self, ciphertext: str, key: str) -> str:
        if not key:
            raise MalformedInputError("A decryption key is required")
        salt_part, sep, token = (ciphertext or "").partition(".")
        if not sep or not token:
            raise TicketDecryptionError("Ciphertext is not in the expected format")
        try:
            salt = _b64decode(salt_part)
            plaintext = _fernet(key, salt).decrypt(token.encode("ascii"))
        except (InvalidToken, binascii.Error, ValueError) as exc:
            logger.debug(f"Ticket decryption failed: {type(exc).__name__}")
            raise TicketDecryptionError("Unable to decrypt ticket") from exc
        return plaintext.decode("utf-8")

    # ------------------------------------------------------------------
    @staticmethod
    def _derive(text: str, salt: bytes, digest: str, iterations: int, length: int) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=_DIGESTS[digest](),
            length=length,
            salt=salt,
            iterations=iterations,
        )
        return kdf.derive(text.encode("utf-8"))


def generate_secret(bits: int) -> str:
    """Return a URL-safe random string carrying at least ``bits`` bits of entropy."""
    if bits < 1:
        raise MalformedInputError("Secret length must be positive")
    return secrets.token_urlsafe(math.ceil(bits / 8))


def _parse_hash(value: str) -> Tuple[str, int, bytes, bytes]:
    if not value:
        raise MalformedHashError("Hash is empty")
    parts = value.split("$")
    if len(parts) != 4 or not parts[0].startswith(_HASH_PREFIX):
        raise MalformedHashError("Hash does not have the pbkdf2 format")
    digest = parts[0][len(_HASH_PREFIX):]
    if digest not in _DIGESTS:
        raise MalformedHashError(f"Unsupported hash digest: {digest}")
    try:
        iterations = int(parts[1])
        salt = _b64decode(parts[2])
        expected = _b64decode(parts[3])
    except (ValueError, binascii.Error) as exc:
        raise MalformedHashError("Hash components are not decodable") from exc
    if iterations < 1 or not salt or not expected:
        raise MalformedHashError("Hash components are empty")
    return digest, iterations, salt, expected


def _fernet(key: str, salt: bytes) -> Fernet:
    derived = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        info=_TICKET_INFO,
    ).derive(key.encode("utf-8"))
    return Fernet(base64.urlsafe_b64encode(derived))


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode(data: str) -> bytes:
    return base64.b64decode(data.encode("ascii"), validate=True)


__all__ = ["CryptoProvider", "PBKDF2CryptoProvider", "generate_secret"]
