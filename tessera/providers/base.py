"""Token provider contract shared by the opaque and signed formats."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..identity import Principal
from ..models import (
    AccessToken,
    AuthorizationCode,
    RefreshToken,
    TokenCreationResult,
    TokenValidationResult,
)


class TokenProvider(Protocol):
    """Create and validate credentials without touching storage.

    ``create_*`` returns the plaintext secret and the entity to persist.
    ``validate_*`` matches a presented secret against repository candidates
    and never raises for an unknown, expired or tampered credential.
    """

    def create_authorization_code(
        self,
        client_id: str,
        redirect_uri: str,
        principal: Principal,
        scope: Optional[Iterable[str]],
        expire_time: datetime,
    ) -> TokenCreationResult[AuthorizationCode]:
        ...

    def create_access_token(
        self,
        client_id: str,
        redirect_uri: str,
        principal: Principal,
        scope: Optional[Iterable[str]],
        expire_time: datetime,
    ) -> TokenCreationResult[AccessToken]:
        ...

    def create_refresh_token(
        self,
        client_id: str,
        redirect_uri: str,
        principal: Principal,
        expire_time: datetime,
    ) -> TokenCreationResult[RefreshToken]:
        ...

    def validate_authorization_code(
        self, candidates: Sequence[AuthorizationCode], code: str
    ) -> TokenValidationResult[AuthorizationCode]:
        ...

    def validate_access_token(
        self, candidates: Sequence[AccessToken], token: str
    ) -> TokenValidationResult[AccessToken]:
        ...

    def validate_refresh_token(
        self, candidates: Sequence[RefreshToken], token: str
    ) -> TokenValidationResult[RefreshToken]:
        ...
