"""
migration.py — Google Authenticator "otpauth-migration" records to Authenticator.

Decoding the protobuf payload of an otpauth-migration://offline?data=... link
happens elsewhere; this module receives one already decoded entry.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from .authenticator import (
    Authenticator,
    ISSUER_MAX_LENGTH,
    USERNAME_MAX_LENGTH,
    clean_secret,
)
from .errors import ConfigurationError, FormatError
from .generators import encode_base32
from .icons import IconResolver
from .otp_types import AuthenticatorType, HashAlgorithm, default_digits, default_period

logger = logging.getLogger(__name__)


class MigrationType(enum.Enum):
    TOTP = "totp"
    HOTP = "hotp"


class MigrationAlgorithm(enum.Enum):
    SHA1 = "sha1"


@dataclass
class MigrationAuthenticator:
    issuer: str
    username: str
    type: MigrationType
    algorithm: MigrationAlgorithm
    secret: bytes
    counter: int = 0


_TYPES = {
    MigrationType.TOTP: AuthenticatorType.TOTP,
    MigrationType.HOTP: AuthenticatorType.HOTP,
}

_ALGORITHMS = {
    MigrationAlgorithm.SHA1: HashAlgorithm.SHA1,
}


def from_migration(entry: MigrationAuthenticator,
                   icon_resolver: Optional[IconResolver] = None) -> Authenticator:
    """
    Convert one decoded migration entry.

    Google Authenticator may leave the issuer empty, in which case the
    username is used as the issuer. When an issuer is present the exported
    username has the form "<issuer>: <username>" and the prefix is removed.

    Raises:
        ConfigurationError: unknown type or algorithm.
        FormatError: the secret cannot be encoded or the result is invalid.
    """
    if not entry.issuer:
        issuer = (entry.username or "").strip()[:ISSUER_MAX_LENGTH]
        username = None
    else:
        issuer = entry.issuer.strip()[:ISSUER_MAX_LENGTH]
        username = (entry.username or "").replace(f"{entry.issuer}: ", "")
        username = username.strip()[:USERNAME_MAX_LENGTH] or None

    try:
        auth_type = _TYPES[entry.type]
    except KeyError:
        raise ConfigurationError(f"Unknown migration type: {entry.type!r}") from None

    try:
        algorithm = _ALGORITHMS[entry.algorithm]
    except KeyError:
        raise ConfigurationError(f"Unknown migration algorithm: {entry.algorithm!r}") from None

    try:
        secret = clean_secret(encode_base32(bytes(entry.secret)), auth_type)
    except (TypeError, ValueError) as e:
        raise FormatError("Failed to parse secret") from e

    auth = Authenticator(
        issuer=issuer,
        username=username,
        algorithm=algorithm,
        type=auth_type,
        secret=secret,
        counter=entry.counter,
        digits=default_digits(auth_type),
        period=default_period(auth_type),
        icon=icon_resolver.find_service_key_by_name(issuer) if icon_resolver is not None else None,
    )

    if not auth.is_valid():
        logger.warning("Rejected migration entry for issuer %r: authenticator is invalid", issuer)
        raise FormatError("Authenticator is invalid")

    return auth
