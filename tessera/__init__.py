"""Tessera: OAuth2/OIDC credential issuance and validation."""

from .config import TesseraConfig, load_config
from .identity import Claim, Principal, anonymous_principal, create_principal
from .manager import TokenManager, create_token_manager
from .persistence import MemoryTokenRepository, get_repository
from .providers import JwtTokenProvider, OpaqueTokenProvider, get_token_provider

__version__ = "0.1.0"
__all__ = [
    "Claim",
    "Principal",
    "anonymous_principal",
    "create_principal",
    "TesseraConfig",
    "load_config",
    "TokenManager",
    "create_token_manager",
    "MemoryTokenRepository",
    "get_repository",
    "JwtTokenProvider",
    "OpaqueTokenProvider",
    "get_token_provider",
]
