"""
authpro
=======

One-time-password records, code generation and encrypted backups.

Quick use
---------
>>> from authpro import Authenticator
>>> auth = Authenticator.from_otpauth_uri(
...     "otpauth://totp/Example:alice?secret=JBSWY3DPEHPK3PXP&issuer=Example")
>>> auth.get_code()          # current 6 digit code
>>> auth.to_otpauth_uri()

>>> from authpro import Backup
>>> data = Backup([auth]).to_bytes("hunter2")
>>> Backup.from_bytes(data, "hunter2").authenticators
"""

from .authenticator import (
    Authenticator,
    CodeCache,
    ISSUER_MAX_LENGTH,
    USERNAME_MAX_LENGTH,
    clean_secret,
    is_valid_secret,
)
from .backup import Backup, FILE_EXTENSION, MIME_TYPE
from .errors import (
    AuthproError,
    BackupReadError,
    ConfigurationError,
    FormatError,
    ValidationError,
)
from .generators import Hotp, MobileOtp, SteamOtp, Totp, create_generator
from .icons import IconResolver, MappingIconResolver
from .migration import (
    MigrationAlgorithm,
    MigrationAuthenticator,
    MigrationType,
    from_migration,
)
from .otp_types import AuthenticatorType, DEFAULT_ALGORITHM, GenerationMethod, HashAlgorithm

__version__ = "1.0.0"

__all__ = [
    "Authenticator",
    "AuthenticatorType",
    "AuthproError",
    "Backup",
    "BackupReadError",
    "CodeCache",
    "ConfigurationError",
    "DEFAULT_ALGORITHM",
    "FILE_EXTENSION",
    "FormatError",
    "GenerationMethod",
    "HashAlgorithm",
    "Hotp",
    "ISSUER_MAX_LENGTH",
    "IconResolver",
    "MIME_TYPE",
    "MappingIconResolver",
    "MigrationAlgorithm",
    "MigrationAuthenticator",
    "MigrationType",
    "MobileOtp",
    "SteamOtp",
    "Totp",
    "USERNAME_MAX_LENGTH",
    "ValidationError",
    "clean_secret",
    "create_generator",
    "from_migration",
    "is_valid_secret",
]
