"""Principal tickets: serialized principals sealed with a bearer secret."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from ..errors import TicketDecryptionError
from ..identity import Claim, Principal, anonymous_principal, create_principal
from .crypto import CryptoProvider

logger = logging.getLogger(__name__)


class PrincipalProvider:
    """Serialize principals to encrypted tickets and back.

    The wire form is the principal's JSON model dump:
    ``{"authentication_type": ..., "claims": [{"type", "value", "alias"}]}``.
    """

    def __init__(self, crypto: CryptoProvider) -> None:
        self.crypto = crypto

    def encrypt(self, principal: Principal, key: str) -> str:
        return self.crypto.encrypt(principal.model_dump_json(), key)

    def decrypt(self, ticket: str, key: str) -> Principal:
        """Recover the principal sealed in ``ticket``.

        Raises :class:`TicketDecryptionError` on a wrong key, a tampered
        ticket, or a plaintext that is not a serialized principal.
        """
        data = self.crypto.decrypt(ticket, key)
        try:
            return Principal.model_validate_json(data)
        except ValidationError as exc:
            logger.warning("Decrypted ticket does not hold a principal")
            raise TicketDecryptionError("Ticket payload is not a principal") from exc

    def create(self, authentication_type: Optional[str], *claims: Claim) -> Principal:
        return create_principal(authentication_type, *claims)

    def anonymous(self) -> Principal:
        return anonymous_principal()


__all__ = ["PrincipalProvider"]
