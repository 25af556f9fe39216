from datetime import timedelta

import pytest

from tessera.constants import AuthenticationType
from tessera.identity import Claim, create_principal
from tessera.security.crypto import PBKDF2CryptoProvider
from tessera.utils.clock import utcnow

SIGNING_KEY = "tessera-test-signing-key-0123456789abcdef-0123456789abcdef-0123456789abcdef"


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self):
        self.now = utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def crypto():
    # Low iteration count keeps the suite fast.
    return PBKDF2CryptoProvider(iterations=1000)


@pytest.fixture
def alice():
    return create_principal(
        AuthenticationType.PASSWORD,
        Claim(type="sub", value="alice"),
        Claim(type="email", value="alice@example.com"),
    )


@pytest.fixture
def signing_key():
    return SIGNING_KEY
