"""
otp_types.py — closed variants used across the core.

Every type-specific constant (digits range, default period, generation
method) is read from the single table below. Adding a new authenticator type
means adding a row here; any lookup of a type without a row raises
ConfigurationError.
"""

import enum
import hashlib
from typing import Callable, NamedTuple

from .errors import ConfigurationError


class AuthenticatorType(enum.IntEnum):
    # values are the ones persisted in backup files
    HOTP = 1
    TOTP = 2
    MOBILE_OTP = 3
    STEAM_OTP = 4


class HashAlgorithm(enum.IntEnum):
    SHA1 = 0
    SHA256 = 1
    SHA512 = 2


class GenerationMethod(enum.Enum):
    TIME = "time"
    COUNTER = "counter"


DEFAULT_ALGORITHM = HashAlgorithm.SHA1


class TypeSpec(NamedTuple):
    method: GenerationMethod
    hmac_based: bool
    default_digits: int
    min_digits: int
    max_digits: int
    default_period: int


_TYPE_SPECS = {
    AuthenticatorType.HOTP: TypeSpec(GenerationMethod.COUNTER, True, 6, 6, 10, 30),
    AuthenticatorType.TOTP: TypeSpec(GenerationMethod.TIME, True, 6, 6, 10, 30),
    AuthenticatorType.MOBILE_OTP: TypeSpec(GenerationMethod.TIME, False, 6, 6, 6, 10),
    AuthenticatorType.STEAM_OTP: TypeSpec(GenerationMethod.TIME, True, 5, 5, 5, 30),
}

_DIGESTS = {
    HashAlgorithm.SHA1: hashlib.sha1,
    HashAlgorithm.SHA256: hashlib.sha256,
    HashAlgorithm.SHA512: hashlib.sha512,
}

_ALGORITHM_NAMES = {
    HashAlgorithm.SHA1: "SHA1",
    HashAlgorithm.SHA256: "SHA256",
    HashAlgorithm.SHA512: "SHA512",
}


def type_spec(auth_type: AuthenticatorType) -> TypeSpec:
    try:
        return _TYPE_SPECS[auth_type]
    except KeyError:
        raise ConfigurationError(f"Unknown authenticator type: {auth_type!r}") from None


def generation_method(auth_type: AuthenticatorType) -> GenerationMethod:
    return type_spec(auth_type).method


def is_hmac_based(auth_type: AuthenticatorType) -> bool:
    return type_spec(auth_type).hmac_based


def default_digits(auth_type: AuthenticatorType) -> int:
    return type_spec(auth_type).default_digits


def default_period(auth_type: AuthenticatorType) -> int:
    return type_spec(auth_type).default_period


def digest_for(algorithm: HashAlgorithm) -> Callable:
    """Return the hashlib constructor used for HMAC with *algorithm*."""
    try:
        return _DIGESTS[algorithm]
    except KeyError:
        raise ConfigurationError(f"Unknown hash algorithm: {algorithm!r}") from None


def algorithm_name(algorithm: HashAlgorithm) -> str:
    try:
        return _ALGORITHM_NAMES[algorithm]
    except KeyError:
        raise ConfigurationError(f"Unknown hash algorithm: {algorithm!r}") from None


def algorithm_from_name(name: str) -> HashAlgorithm:
    """Case-insensitive lookup of "SHA1" / "SHA256" / "SHA512".

    Raises KeyError for anything else; callers decide which error that is.
    """
    upper = name.upper()
    for algorithm, algo_name in _ALGORITHM_NAMES.items():
        if algo_name == upper:
            return algorithm
    raise KeyError(name)
