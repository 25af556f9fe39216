"""Cryptographic building blocks: hashing, tickets, signatures and hash binding."""

from .crypto import CryptoProvider, PBKDF2CryptoProvider, generate_secret
from .jws import JsonWebToken, JwsService
from .keys import KeyProvider, StaticKeyProvider, generate_rsa_key_pair
from .principal import PrincipalProvider
from .validator import TokenValidator

__all__ = [
    "CryptoProvider",
    "PBKDF2CryptoProvider",
    "generate_secret",
    "JsonWebToken",
    "JwsService",
    "KeyProvider",
    "StaticKeyProvider",
    "generate_rsa_key_pair",
    "PrincipalProvider",
    "TokenValidator",
]
