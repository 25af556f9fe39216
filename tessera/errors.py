"""Exception types raised by tessera.

Credential validation never raises: unknown, expired or tampered credentials
resolve to the anonymous principal. The exceptions below are reserved for
malformed call arguments and corrupt stored data.
"""

from __future__ import annotations


class TesseraError(Exception):
    """Base class for all tessera errors."""


class MalformedInputError(TesseraError, ValueError):
    """A required argument is missing or structurally invalid."""


class MalformedHashError(MalformedInputError):
    """A stored hash string cannot be parsed into its recipe."""


class MalformedTokenError(MalformedInputError):
    """A signed token does not have three decodable segments."""


class UnsupportedAlgorithmError(MalformedInputError):
    """The requested digest or signature algorithm is not supported."""


class TicketDecryptionError(TesseraError):
    """A ticket could not be decrypted with the supplied key.

    Raised for a wrong key as well as for tampered or truncated ciphertext.
    """
