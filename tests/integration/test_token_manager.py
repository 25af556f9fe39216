"""End-to-end tests of the token manager over the in-memory repository."""

import asyncio
from datetime import timedelta

import pytest

from tessera.config import TesseraConfig
from tessera.constants import AuthenticationType, ClaimType
from tessera.errors import MalformedInputError
from tessera.identity import Claim, anonymous_principal, create_principal
from tessera.manager import TokenManager
from tessera.persistence import MemoryTokenRepository, MemoryTokenStore
from tessera.providers import JwtTokenProvider, OpaqueTokenProvider
from tessera.security.jws import JwsService
from tessera.security.keys import StaticKeyProvider


@pytest.fixture(params=["opaque", "jwt"])
def token_format(request):
    return request.param


def build_manager(token_format, crypto, clock, signing_key, policy="reuse"):
    config = TesseraConfig(token_format=token_format, refresh_token_policy=policy)
    if token_format == "opaque":
        provider = OpaqueTokenProvider(crypto=crypto, clock=clock)
    else:
        jws = JwsService(StaticKeyProvider(secret=signing_key), issuer="https://issuer")
        provider = JwtTokenProvider(jws, crypto=crypto, clock=clock)
    return TokenManager(provider, MemoryTokenRepository(), config=config, clock=clock)


@pytest.fixture
def manager(token_format, crypto, clock, signing_key):
    return build_manager(token_format, crypto, clock, signing_key)


@pytest.mark.asyncio
async def test_authorization_code_round_trip_is_single_use(manager, clock):
    alice = create_principal(AuthenticationType.PASSWORD, Claim(type="sub", value="alice"))

    code = await manager.create_authorization_code(
        "client1", "http://cb", alice, ["openid"], clock() + timedelta(minutes=5)
    )
    first = await manager.authenticate_authorization_code("http://cb", code)
    second = await manager.authenticate_authorization_code("http://cb", code)

    assert code
    assert first.is_authenticated
    assert first.has_claim("sub", "alice")
    assert second == anonymous_principal()


@pytest.mark.asyncio
async def test_code_is_bound_to_redirect_uri(manager, alice):
    code = await manager.create_authorization_code("client1", "http://cb", alice, ["openid"])

    assert not (await manager.authenticate_authorization_code("http://evil", code)).is_authenticated
    assert (await manager.authenticate_authorization_code("http://cb", code)).is_authenticated


@pytest.mark.asyncio
async def test_concurrent_redemption_yields_one_principal(manager, alice):
    code = await manager.create_authorization_code("client1", "http://cb", alice, ["openid"])

    results = await asyncio.gather(
        manager.authenticate_authorization_code("http://cb", code),
        manager.authenticate_authorization_code("http://cb", code),
        manager.authenticate_authorization_code("http://cb", code),
    )

    assert sum(1 for p in results if p.is_authenticated) == 1


@pytest.mark.asyncio
async def test_second_access_token_replaces_the_first(manager, alice):
    first = await manager.create_access_token("client1", "http://cb", alice, ["openid"])
    second = await manager.create_access_token("client1", "http://cb", alice, ["openid"])
    other = await manager.create_access_token("client2", "http://cb", alice, ["openid"])

    assert len(manager.repository.access_tokens) == 2
    assert not (await manager.authenticate_access_token(first)).is_authenticated
    assert (await manager.authenticate_access_token(second)).is_authenticated
    assert (await manager.authenticate_access_token(other, "http://cb")).is_authenticated


@pytest.mark.asyncio
async def test_expired_token_is_anonymous(manager, clock, alice):
    token = await manager.create_access_token(
        "client1", "http://cb", alice, ["openid"], timedelta(minutes=5)
    )
    clock.advance(minutes=5, seconds=1)

    assert await manager.authenticate_access_token(token) == anonymous_principal()


@pytest.mark.asyncio
async def test_flipped_character_is_anonymous(manager, alice):
    token = await manager.create_access_token("client1", "http://cb", alice, ["openid"])
    flipped = token[:-1] + ("A" if token[-1] != "A" else "B")

    assert not (await manager.authenticate_access_token(flipped)).is_authenticated


@pytest.mark.asyncio
async def test_unauthenticated_principal_cannot_get_credentials(manager):
    nameless = create_principal(AuthenticationType.PASSWORD, Claim(type="email", value="x@y"))

    assert await manager.create_access_token("client1", "http://cb", anonymous_principal()) is None
    assert await manager.create_authorization_code("client1", "http://cb", nameless) is None
    assert len(manager.repository.access_tokens) == 0
    assert len(manager.repository.authorization_codes) == 0


@pytest.mark.asyncio
async def test_malformed_arguments_raise(manager, clock, alice):
    with pytest.raises(MalformedInputError):
        await manager.create_access_token("", "http://cb", alice)
    with pytest.raises(MalformedInputError):
        await manager.create_access_token("client1", "http://cb", alice, expire=clock() - timedelta(seconds=1))
    with pytest.raises(MalformedInputError):
        await manager.create_access_token("client1", "http://cb", alice, expire=timedelta(0))
    with pytest.raises(MalformedInputError):
        await manager.create_refresh_token("client1", "http://cb", alice, expire=timedelta(0))
    with pytest.raises(MalformedInputError):
        await manager.authenticate_authorization_code("http://cb", "")
    with pytest.raises(ValueError):
        await manager.authenticate_access_token(None)


@pytest.mark.asyncio
async def test_stored_principal_carries_scope_and_client(manager, alice):
    principal = alice.with_claims(Claim(type=ClaimType.ACCESS_TOKEN, value="leaked"))
    token = await manager.create_access_token(
        "client1", "http://cb", principal, ["openid", "profile"]
    )

    recovered = await manager.authenticate_access_token(token)

    assert recovered.authentication_type == AuthenticationType.OAUTH
    assert recovered.scopes == ["openid", "profile"]
    assert recovered.has_claim(ClaimType.CLIENT, "client1")
    assert not recovered.has_claim(ClaimType.ACCESS_TOKEN)


@pytest.mark.asyncio
async def test_creation_collects_expired_entities(manager, clock, alice):
    await manager.create_authorization_code(
        "client1", "http://cb", alice, [], timedelta(minutes=1)
    )
    clock.advance(minutes=2)
    await manager.create_authorization_code("client2", "http://cb", alice, [], timedelta(minutes=1))

    assert len(manager.repository.authorization_codes) == 1


@pytest.mark.asyncio
async def test_collect_garbage_counts_every_kind(manager, clock, alice):
    await manager.create_authorization_code("client1", "http://cb", alice, [], timedelta(minutes=1))
    await manager.create_access_token("client1", "http://cb", alice, [], timedelta(minutes=1))
    await manager.create_refresh_token("client1", "http://cb", alice, [], timedelta(days=1))
    clock.advance(minutes=2)

    assert await manager.collect_garbage() == 2
    assert len(manager.repository.refresh_tokens) == 1


@pytest.mark.asyncio
async def test_storage_conflict_returns_none(manager, alice):
    class ConflictingStore(MemoryTokenStore):
        async def insert(self, entity):
            return None

    manager.repository.access_tokens = ConflictingStore("access token")

    assert await manager.create_access_token("client1", "http://cb", alice) is None


@pytest.mark.asyncio
async def test_refresh_token_reuse_policy(manager, alice):
    token = await manager.create_refresh_token("client1", "http://cb", alice, ["offline_access"])

    rotation = await manager.rotate_refresh_token("client1", "http://cb", token)

    assert rotation.refresh_token == token
    assert rotation.principal.has_claim("sub", "alice")
    assert (await manager.authenticate_refresh_token("client1", "http://cb", token)).is_authenticated
    assert not (await manager.authenticate_refresh_token("client2", "http://cb", token)).is_authenticated


@pytest.mark.asyncio
async def test_refresh_token_rotate_policy(token_format, crypto, clock, signing_key, alice):
    manager = build_manager(token_format, crypto, clock, signing_key, policy="rotate")
    token = await manager.create_refresh_token("client1", "http://cb", alice, ["offline_access"])

    rotation = await manager.rotate_refresh_token("client1", "http://cb", token)

    assert rotation.refresh_token and rotation.refresh_token != token
    assert rotation.principal.scopes == ["offline_access"]
    assert not (await manager.authenticate_refresh_token("client1", "http://cb", token)).is_authenticated
    replay = await manager.rotate_refresh_token("client1", "http://cb", token)
    assert replay.refresh_token is None
    assert (await manager.authenticate_refresh_token("client1", "http://cb", rotation.refresh_token)).is_authenticated


@pytest.mark.asyncio
async def test_default_lifetimes_come_from_config(manager, clock, alice):
    await manager.create_authorization_code("client1", "http://cb", alice)

    [entity] = await manager.repository.authorization_codes.get_candidates(clock())
    assert entity.valid_to - clock() == timedelta(seconds=300)


@pytest.mark.asyncio
async def test_credentials_follow_the_injected_clock(manager, clock, alice):
    clock.advance(hours=2)
    code = await manager.create_authorization_code("client1", "http://cb", alice, ["openid"])
    token = await manager.create_access_token("client1", "http://cb", alice, ["openid"])
    refresh = await manager.create_refresh_token("client1", "http://cb", alice, ["openid"])

    assert (await manager.authenticate_authorization_code("http://cb", code)).is_authenticated
    assert (await manager.authenticate_access_token(token)).is_authenticated
    assert (await manager.authenticate_refresh_token("client1", "http://cb", refresh)).is_authenticated
