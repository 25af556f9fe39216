from __future__ import annotations

import os
from datetime import timedelta
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field


class CryptoConfig(BaseModel):
    """PBKDF2 parameters used for new hashes."""

    digest: Literal["sha256", "sha384", "sha512"] = "sha256"
    iterations: int = Field(10000, ge=1)
    salt_bytes: int = Field(16, ge=8)
    hash_bytes: int = Field(32, ge=16)


class LifetimeConfig(BaseModel):
    """Default credential lifetimes in seconds."""

    authorization_code: int = Field(300, gt=0)
    access_token: int = Field(3600, gt=0)
    refresh_token: int = Field(2592000, gt=0)

    def authorization_code_delta(self) -> timedelta:
        return timedelta(seconds=self.authorization_code)

    def access_token_delta(self) -> timedelta:
        return timedelta(seconds=self.access_token)

    def refresh_token_delta(self) -> timedelta:
        return timedelta(seconds=self.refresh_token)


class SecretConfig(BaseModel):
    """Entropy, in bits, of generated bearer secrets."""

    authorization_code: int = Field(256, ge=256)
    access_token: int = Field(512, ge=256)
    refresh_token: int = Field(1024, ge=256)


class JwtConfig(BaseModel):
    """Signing settings for the JWT token format."""

    issuer: str = "tessera"
    algorithm: str = "HS256"
    allowed_algorithms: List[str] = Field(default_factory=list)
    signing_key: Optional[str] = None
    private_key_path: Optional[str] = None
    public_key_path: Optional[str] = None
    key_id: Optional[str] = None
    leeway: int = Field(0, ge=0)


class RepositoryConfig(BaseModel):
    """Token repository settings."""

    backend: Literal["memory"] = "memory"


class TesseraConfig(BaseModel):
    """Top-level configuration model."""

    token_format: Literal["opaque", "jwt"] = "opaque"
    refresh_token_policy: Literal["reuse", "rotate"] = "reuse"
    crypto: CryptoConfig = CryptoConfig()
    lifetimes: LifetimeConfig = LifetimeConfig()
    secrets: SecretConfig = SecretConfig()
    jwt: JwtConfig = JwtConfig()
    repository: RepositoryConfig = RepositoryConfig()


def load_config(path: Optional[str] = None) -> TesseraConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to TESSERA_CONFIG env
            variable or 'tessera.yaml' in the current directory.
    """

    config_path = path or os.getenv("TESSERA_CONFIG", "tessera.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = TesseraConfig(**data)
    else:
        config = TesseraConfig()

    env_format = os.getenv("TESSERA_TOKEN_FORMAT")
    if env_format:
        config = TesseraConfig(**{**config.model_dump(), "token_format": env_format})
    env_key = os.getenv("TESSERA_JWT_SIGNING_KEY")
    if env_key:
        config.jwt.signing_key = env_key
    env_issuer = os.getenv("TESSERA_JWT_ISSUER")
    if env_issuer:
        config.jwt.issuer = env_issuer
    return config
