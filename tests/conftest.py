import base64

import pytest

from authpro import Authenticator, AuthenticatorType, HashAlgorithm, MappingIconResolver
from authpro_api import create_app

# RFC 4226 / RFC 6238 test keys
RFC_SHA1_KEY = b"12345678901234567890"
RFC_SHA256_KEY = b"12345678901234567890123456789012"
RFC_SHA512_KEY = b"1234567890123456789012345678901234567890123456789012345678901234"

EXAMPLE_SECRET = "JBSWY3DPEHPK3PXP"
MOTP_SECRET = "abcdef0123456789"


def b32(raw: bytes) -> str:
    return base64.b32encode(raw).decode("ascii").rstrip("=")


@pytest.fixture
def totp_auth():
    return Authenticator(issuer="Example", username="alice", secret=EXAMPLE_SECRET)


@pytest.fixture
def hotp_auth():
    return Authenticator(
        issuer="Example",
        username="bob",
        secret=b32(RFC_SHA1_KEY),
        type=AuthenticatorType.HOTP,
        counter=0,
    )


@pytest.fixture
def steam_auth():
    return Authenticator(issuer="Steam", username="gaben", secret=EXAMPLE_SECRET,
                         type=AuthenticatorType.STEAM_OTP)


@pytest.fixture
def motp_auth():
    return Authenticator(issuer="Legacy VPN", secret=MOTP_SECRET, type=AuthenticatorType.MOBILE_OTP)


@pytest.fixture
def sha512_auth():
    return Authenticator(issuer="Vault", username="ops@example.com", secret=b32(RFC_SHA512_KEY),
                         algorithm=HashAlgorithm.SHA512, digits=8, period=60)


@pytest.fixture
def icon_resolver():
    return MappingIconResolver({"example": "example_icon", "github": "github", "steam": "steam"})


@pytest.fixture
def app():
    app = create_app({"TESTING": True, "ICONS": {"example": "example_icon"}})
    yield app


@pytest.fixture
def client(app):
    return app.test_client()
