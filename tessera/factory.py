"""Side-effect free constructors for token entities."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from .models import AccessToken, AuthorizationCode, RefreshToken


class TokenFactory:
    """Build entities from already computed hashes and tickets.

    Nothing here touches the clock, the repository or any key material; the
    caller supplies every value, including ``created``.
    """

    def create_authorization_code(
        self,
        client_id: str,
        redirect_uri: str,
        subject: str,
        scope: Optional[Iterable[str]],
        code: str,
        ticket: str,
        valid_to: datetime,
        created: datetime,
    ) -> AuthorizationCode:
        return AuthorizationCode(
            client_id=client_id,
            redirect_uri=redirect_uri,
            subject=subject,
            scope=list(scope or []),
            code=code,
            ticket=ticket,
            valid_to=valid_to,
            created=created,
        )

    def create_access_token(
        self,
        client_id: str,
        redirect_uri: str,
        subject: str,
        scope: Optional[Iterable[str]],
        token: str,
        ticket: str,
        valid_to: datetime,
        created: datetime,
    ) -> AccessToken:
        return AccessToken(
            client_id=client_id,
            redirect_uri=redirect_uri,
            subject=subject,
            scope=list(scope or []),
            token=token,
            ticket=ticket,
            valid_to=valid_to,
            created=created,
        )

    def create_refresh_token(
        self,
        client_id: str,
        redirect_uri: str,
        subject: str,
        token: str,
        ticket: str,
        valid_to: datetime,
        created: datetime,
    ) -> RefreshToken:
        return RefreshToken(
            client_id=client_id,
            redirect_uri=redirect_uri,
            subject=subject,
            token=token,
            ticket=ticket,
            valid_to=valid_to,
            created=created,
        )


__all__ = ["TokenFactory"]
