"""Well-known claim types and authentication types."""

from __future__ import annotations


class ClaimType:
    """Claim types used inside stored principals."""

    ACCESS_TOKEN = "urn:oauth:accesstoken"
    REFRESH_TOKEN = "urn:oauth:refreshtoken"
    SCOPE = "urn:oauth:scope"
    CLIENT = "urn:oauth:client"
    GRANT_TYPE = "urn:oauth:granttype"
    REDIRECT_URI = "urn:oauth:redirecturi"
    ID = "urn:oauth:id"
    ISSUER = "urn:oauth:issuer"
    VALID_FROM = "urn:oauth:validfrom"
    NAME = "name"
    EXPIRATION = "urn:oauth:expiration"
    AUTHENTICATION_INSTANT = "urn:oauth:authenticationinstant"
    ROLE = "role"


class JwtClaimType:
    """Registered and OIDC claim names used in signed tokens."""

    SUBJECT = "sub"
    ISSUER = "iss"
    AUDIENCE = "aud"
    EXPIRATION_TIME = "exp"
    NOT_BEFORE = "nbf"
    ISSUED_AT = "iat"
    ID = "jti"
    ACCESS_TOKEN_HASH = "at_hash"
    AUTHORIZATION_CODE_HASH = "c_hash"
    GIVEN_NAME = "given_name"
    FAMILY_NAME = "family_name"
    NAME = "unique_name"


# Claims consulted, in order, to resolve a principal's name.
NAME_CLAIM_TYPES = (ClaimType.NAME, JwtClaimType.NAME, JwtClaimType.SUBJECT)

# Registered claims managed by the signer, never copied back into principals.
RESERVED_JWT_CLAIMS = frozenset(
    {
        JwtClaimType.ISSUER,
        JwtClaimType.AUDIENCE,
        JwtClaimType.EXPIRATION_TIME,
        JwtClaimType.NOT_BEFORE,
        JwtClaimType.ISSUED_AT,
        JwtClaimType.ID,
        JwtClaimType.ACCESS_TOKEN_HASH,
        JwtClaimType.AUTHORIZATION_CODE_HASH,
    }
)


class AuthenticationType:
    OAUTH = "OAuth"
    API_KEY = "ApiKey"
    PASSWORD = "Password"
