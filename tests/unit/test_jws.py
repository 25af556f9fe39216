"""Tests for JWS signing, verification and key handling."""

import base64
import json
import time
from datetime import timedelta

import jwt
import pytest

from tessera.errors import MalformedTokenError, UnsupportedAlgorithmError
from tessera.security.jws import JsonWebToken, JwsService
from tessera.security.keys import StaticKeyProvider, generate_rsa_key_pair


def _claims(**overrides):
    now = int(time.time())
    claims = {"sub": "alice", "iat": now, "nbf": now, "exp": now + 300, "aud": "client1"}
    claims.update(overrides)
    return claims


def test_hmac_sign_and_verify(signing_key):
    service = JwsService(StaticKeyProvider(secret=signing_key), issuer="https://issuer")

    raw = service.sign(_claims(iss="https://issuer"))
    payload = service.verify(raw, audience="client1")

    assert payload["sub"] == "alice"
    assert payload["iss"] == "https://issuer"
    assert JsonWebToken.parse(raw).header == {"alg": "HS256", "typ": "JWT"}


def test_issuer_is_checked(signing_key):
    keys = StaticKeyProvider(secret=signing_key)
    signer = JwsService(keys)
    verifier = JwsService(keys, issuer="https://issuer")

    with pytest.raises(jwt.InvalidTokenError):
        verifier.verify(signer.sign(_claims(iss="https://elsewhere")), audience="client1")


def test_rsa_sign_and_verify():
    private_pem, public_pem = generate_rsa_key_pair()
    signer = JwsService(StaticKeyProvider(private_key=private_pem), algorithm="RS256")
    verifier = JwsService(
        StaticKeyProvider(private_key=private_pem, public_key=public_pem), algorithm="RS256"
    )

    payload = verifier.verify(signer.sign(_claims()), audience="client1")

    assert payload["sub"] == "alice"


def test_wrong_key_fails_signature(signing_key):
    signer = JwsService(StaticKeyProvider(secret=signing_key))
    verifier = JwsService(StaticKeyProvider(secret=signing_key[::-1]))

    with pytest.raises(jwt.InvalidSignatureError):
        verifier.verify(signer.sign(_claims()), audience="client1")


def test_wrong_audience_is_rejected(signing_key):
    service = JwsService(StaticKeyProvider(secret=signing_key))

    with pytest.raises(jwt.InvalidAudienceError):
        service.verify(service.sign(_claims()), audience="client2")


def test_expired_token_is_rejected(signing_key):
    service = JwsService(StaticKeyProvider(secret=signing_key))
    past = int(time.time()) - 600

    with pytest.raises(jwt.ExpiredSignatureError):
        service.verify(service.sign(_claims(iat=past, nbf=past, exp=past + 60)), audience="client1")


def test_leeway_tolerates_small_clock_skew(signing_key):
    service = JwsService(StaticKeyProvider(secret=signing_key), leeway=120)
    just_expired = int(time.time()) - 30

    payload = service.verify(service.sign(_claims(exp=just_expired)), audience="client1")

    assert payload["exp"] == just_expired


def test_algorithm_outside_allow_list_is_rejected(signing_key):
    keys = StaticKeyProvider(secret=signing_key)
    signer = JwsService(keys, algorithm="HS512")
    verifier = JwsService(keys, algorithm="HS256")

    with pytest.raises(jwt.InvalidAlgorithmError):
        verifier.verify(signer.sign(_claims()), audience="client1")


def test_allow_list_can_accept_several_algorithms(signing_key):
    keys = StaticKeyProvider(secret=signing_key)
    signer = JwsService(keys, algorithm="HS512")
    verifier = JwsService(keys, algorithm="HS256", allowed_algorithms=["HS256", "HS512"])

    assert verifier.verify(signer.sign(_claims()), audience="client1")["sub"] == "alice"


def test_unsupported_algorithm_is_refused(signing_key):
    with pytest.raises(UnsupportedAlgorithmError):
        JwsService(StaticKeyProvider(secret=signing_key), algorithm="none")


def test_missing_required_claim_is_rejected(signing_key):
    service = JwsService(StaticKeyProvider(secret=signing_key))
    claims = _claims()
    del claims["sub"]

    with pytest.raises(jwt.MissingRequiredClaimError):
        service.verify(service.sign(claims), audience="client1")


@pytest.mark.parametrize("raw", ["", "abc", "a.b", "a.b.c.d", "a.b.c", "e30.bm90IGpzb24.c2ln"])
def test_malformed_tokens_raise(signing_key, raw):
    service = JwsService(StaticKeyProvider(secret=signing_key))

    with pytest.raises(MalformedTokenError):
        service.verify(raw)


def test_rotated_keys_still_verify_old_tokens(signing_key):
    keys = StaticKeyProvider(secret=signing_key, key_id="k1")
    service = JwsService(keys)
    old = service.sign(_claims())

    keys.rotate("k2", secret=signing_key + "-rotated")
    new = service.sign(_claims())

    assert JsonWebToken.parse(old).key_id == "k1"
    assert JsonWebToken.parse(new).key_id == "k2"
    assert service.verify(old, audience="client1")["sub"] == "alice"
    assert service.verify(new, audience="client1")["sub"] == "alice"


def test_unknown_key_id_is_an_invalid_signature(signing_key):
    signer = JwsService(StaticKeyProvider(secret=signing_key, key_id="unknown"))
    verifier = JwsService(StaticKeyProvider(secret=signing_key, key_id="k1"))

    with pytest.raises(jwt.InvalidSignatureError):
        verifier.verify(signer.sign(_claims()), audience="client1")


def test_key_provider_requires_exactly_one_key_source(signing_key):
    private_pem, _ = generate_rsa_key_pair()
    with pytest.raises(ValueError):
        StaticKeyProvider()
    with pytest.raises(ValueError):
        StaticKeyProvider(secret=signing_key, private_key=private_pem)


def test_keys_load_from_files(tmp_path):
    private_pem, public_pem = generate_rsa_key_pair()
    (tmp_path / "private.pem").write_bytes(private_pem)
    (tmp_path / "public.pem").write_bytes(public_pem)

    keys = StaticKeyProvider.from_files(
        tmp_path / "private.pem", tmp_path / "public.pem", key_id="rsa-1"
    )
    service = JwsService(keys, algorithm="RS256")

    assert JsonWebToken.parse(service.sign(_claims())).key_id == "rsa-1"


def _unsigned(header, claims):
    def segment(obj):
        return base64.urlsafe_b64encode(json.dumps(obj).encode()).rstrip(b"=").decode()

    return f"{segment(header)}.{segment(claims)}.c2ln"


@pytest.mark.parametrize(
    "header",
    [
        {"alg": "HS256", "kid": ["x"]},
        {"alg": "HS256", "kid": {"x": 1}},
        {"alg": ["HS256"]},
    ],
)
def test_non_string_header_values_are_invalid_tokens(signing_key, header):
    service = JwsService(StaticKeyProvider(secret=signing_key, key_id="k1"))

    with pytest.raises(jwt.InvalidTokenError):
        service.verify(_unsigned(header, _claims()), audience="client1")


def test_time_claims_follow_the_service_clock(signing_key, clock):
    service = JwsService(StaticKeyProvider(secret=signing_key), clock=clock)
    clock.advance(hours=2)
    issued = int(clock().timestamp())
    raw = service.sign(_claims(iat=issued, nbf=issued, exp=issued + 300))

    assert service.verify(raw, audience="client1")["sub"] == "alice"
    clock.advance(minutes=5)
    with pytest.raises(jwt.ExpiredSignatureError):
        service.verify(raw, audience="client1")


def test_explicit_instant_overrides_the_clock(signing_key, clock):
    service = JwsService(StaticKeyProvider(secret=signing_key), clock=clock)
    raw = service.sign(_claims())

    with pytest.raises(jwt.ImmatureSignatureError):
        service.verify(raw, audience="client1", now=clock() - timedelta(hours=1))
    with pytest.raises(jwt.ExpiredSignatureError):
        service.verify(raw, audience="client1", now=clock() + timedelta(hours=1))


def test_non_numeric_time_claim_is_rejected(signing_key):
    service = JwsService(StaticKeyProvider(secret=signing_key))

    with pytest.raises(jwt.InvalidTokenError):
        service.verify(service.sign(_claims(nbf="soon")), audience="client1")
