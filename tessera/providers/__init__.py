"""Token providers for the opaque and signed credential formats."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import JwtConfig, TesseraConfig, load_config
from ..security.crypto import CryptoProvider, PBKDF2CryptoProvider
from ..security.jws import JwsService
from ..security.keys import KeyProvider, StaticKeyProvider
from ..utils.clock import Clock, utcnow
from .base import TokenProvider
from .opaque import OpaqueTokenProvider
from .signed import JwtTokenProvider

logger = logging.getLogger(__name__)


def get_token_provider(
    config: Optional[TesseraConfig] = None,
    crypto: Optional[CryptoProvider] = None,
    clock: Optional[Clock] = None,
) -> TokenProvider:
    """Factory function to obtain the token provider named by ``token_format``."""

    config = config or load_config()
    crypto = crypto or PBKDF2CryptoProvider(**config.crypto.model_dump())
    clock = clock or utcnow

    if config.token_format == "opaque":
        return OpaqueTokenProvider(crypto=crypto, secrets=config.secrets, clock=clock)
    if config.token_format == "jwt":
        jws = JwsService(
            _key_provider(config.jwt),
            algorithm=config.jwt.algorithm,
            issuer=config.jwt.issuer,
            leeway=config.jwt.leeway,
            allowed_algorithms=config.jwt.allowed_algorithms or None,
            clock=clock,
        )
        return JwtTokenProvider(jws, crypto=crypto, secrets=config.secrets, clock=clock)
    raise ValueError(f"Unsupported token format: {config.token_format}")


def _key_provider(settings: JwtConfig) -> KeyProvider:
    if settings.private_key_path:
        return StaticKeyProvider.from_files(
            settings.private_key_path, settings.public_key_path, key_id=settings.key_id
        )
    if settings.signing_key:
        return StaticKeyProvider(secret=settings.signing_key, key_id=settings.key_id)
    raise ValueError("The jwt token format requires jwt.signing_key or jwt.private_key_path")


__all__ = [
    "TokenProvider",
    "OpaqueTokenProvider",
    "JwtTokenProvider",
    "get_token_provider",
]
