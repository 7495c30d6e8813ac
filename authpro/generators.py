"""
generators.py — code generators for the four authenticator families.

Core algorithms
- HOTP (RFC 4226):
  code = Truncate(HMAC-<algo>(key=secret, msg=counter)) mod 10^digits
- TOTP (RFC 6238):
  HOTP with counter = floor(timestamp / period)
- Steam Guard:
  HMAC-SHA1 over floor(timestamp / 30), truncated like HOTP, then rendered
  as 5 characters of a 26-letter alphabet instead of decimal digits.
- Mobile-OTP (motp.sourceforge.net):
  first N hex chars of MD5(str(floor(timestamp / 10)) + secret), no HMAC.

Every generator exposes compute(counter) -> str. For the time-based
generators the argument is a Unix timestamp in seconds; for HOTP it is the
counter itself.
"""

import base64
import binascii
import hashlib
import hmac
import logging
import struct

from .errors import ConfigurationError, FormatError
from .otp_types import (
    AuthenticatorType,
    HashAlgorithm,
    DEFAULT_ALGORITHM,
    default_digits,
    default_period,
    digest_for,
)

logger = logging.getLogger(__name__)


# --- RFC helpers -----------------------------------------------------------
MAX_COUNTER = 0xFFFFFFFFFFFFFFFF


def int_to_bytes(i: int) -> bytes:
    """8-byte big-endian counter, as RFC 4226 requires.

    Example: int_to_bytes(1) -> b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x01'
    """
    return struct.pack(">Q", i)


def dynamic_truncate(hmac_digest: bytes) -> int:
    """
    RFC 4226 dynamic truncation.

    - offset = last_byte & 0x0F
    - take 4 bytes from offset, clear the MSB of the first one
    - return the 31-bit unsigned integer
    """
    offset = hmac_digest[-1] & 0x0F
    code = (
        ((hmac_digest[offset] & 0x7F) << 24)
        | ((hmac_digest[offset + 1] & 0xFF) << 16)
        | ((hmac_digest[offset + 2] & 0xFF) << 8)
        | (hmac_digest[offset + 3] & 0xFF)
    )
    return code


def decode_base32(secret_b32: str) -> bytes:
    """Decode an unpadded RFC 4648 base-32 secret (case-insensitive)."""
    secret = secret_b32.rstrip("=")
    missing_padding = len(secret) % 8
    if missing_padding:
        secret += "=" * (8 - missing_padding)
    try:
        return base64.b32decode(secret, casefold=True)
    except (binascii.Error, ValueError) as e:
        # ValueError: non-ASCII input
        raise FormatError("Invalid Base32 secret") from e


def encode_base32(raw: bytes) -> str:
    """Encode bytes as upper-case base-32 without '=' padding."""
    return base64.b32encode(raw).decode("ascii").rstrip("=")


# --- Generators ------------------------------------------------------------
class Hotp:
    """HMAC-based one-time password generator."""

    def __init__(self, secret: str, algorithm: HashAlgorithm = DEFAULT_ALGORITHM,
                 digits: int = 6) -> None:
        self._key = decode_base32(secret)
        self._digest = digest_for(algorithm)
        self._digits = digits

    def hmac_truncate(self, counter: int) -> int:
        if counter < 0 or counter > MAX_COUNTER:
            raise ValueError("counter must fit in an unsigned 64-bit integer")
        digest = hmac.new(self._key, int_to_bytes(counter), self._digest).digest()
        return dynamic_truncate(digest)

    def compute(self, counter: int) -> str:
        otp = self.hmac_truncate(counter) % (10 ** self._digits)
        return str(otp).zfill(self._digits)


class Totp:
    """Time-based generator; compute() takes a Unix timestamp."""

    def __init__(self, secret: str, period: int = 30,
                 algorithm: HashAlgorithm = DEFAULT_ALGORITHM, digits: int = 6) -> None:
        if period <= 0:
            raise ValueError("period must be positive")
        self._hotp = Hotp(secret, algorithm, digits)
        self._period = period

    def compute(self, counter: int) -> str:
        return self._hotp.compute(counter // self._period)


class SteamOtp:
    """Steam Guard codes: fixed 30s period, SHA1, 5 characters."""

    PERIOD = 30
    DIGITS = 5
    ALPHABET = "23456789BCDFGHJKMNPQRTVWXY"

    def __init__(self, secret: str) -> None:
        self._hotp = Hotp(secret, HashAlgorithm.SHA1, self.DIGITS)

    def compute(self, counter: int) -> str:
        full_code = self._hotp.hmac_truncate(counter // self.PERIOD)
        chars = []
        for _ in range(self.DIGITS):
            full_code, index = divmod(full_code, len(self.ALPHABET))
            chars.append(self.ALPHABET[index])
        return "".join(chars)


class MobileOtp:
    """Mobile-OTP: MD5 over the 10s time step and the secret (PIN appended)."""

    SECRET_MIN_LENGTH = 16
    PERIOD = 10

    def __init__(self, secret: str, digits: int = 6) -> None:
        self._secret = secret
        self._digits = digits

    def compute(self, counter: int) -> str:
        material = str(counter // self.PERIOD) + self._secret
        digest = hashlib.md5(material.encode("utf-8")).hexdigest()
        return digest[:self._digits]


def create_generator(auth_type: AuthenticatorType, secret: str,
                     algorithm: HashAlgorithm = DEFAULT_ALGORITHM,
                     digits: int = None, period: int = None):
    """Select the generator for *auth_type*.

    *digits* and *period* fall back to the type defaults only when None.

    Raises:
        ConfigurationError: if the type is not one of the four known variants.
    """
    if auth_type == AuthenticatorType.TOTP:
        generator = Totp(secret,
                         default_period(auth_type) if period is None else period,
                         algorithm,
                         default_digits(auth_type) if digits is None else digits)
    elif auth_type == AuthenticatorType.HOTP:
        generator = Hotp(secret, algorithm, default_digits(auth_type) if digits is None else digits)
    elif auth_type == AuthenticatorType.MOBILE_OTP:
        generator = MobileOtp(secret, default_digits(auth_type) if digits is None else digits)
    elif auth_type == AuthenticatorType.STEAM_OTP:
        generator = SteamOtp(secret)
    else:
        raise ConfigurationError(f"Unknown authenticator type: {auth_type!r}")

    logger.debug("Selected %s generator", type(generator).__name__)
    return generator
