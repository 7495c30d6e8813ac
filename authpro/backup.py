"""
backup.py — .authpro backup files.

Layout of an encrypted backup (no length prefixes):

    b"AuthenticatorPro" | salt (20 bytes) | IV (16 bytes) | AES-256-CBC ciphertext

The key is PBKDF2-HMAC-SHA1(password, salt, 64000 iterations, 32 bytes) and
the plaintext is the same UTF-8 JSON document an unencrypted backup holds:

    {"Authenticators": [...], "Categories": [...] | null,
     "AuthenticatorCategories": [...] | null, "CustomIcons": [...] | null}

Categories, category assignments and custom icons are carried as opaque JSON
objects.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .authenticator import Authenticator
from .errors import BackupReadError, FormatError, ValidationError

logger = logging.getLogger(__name__)

FILE_EXTENSION = "authpro"
MIME_TYPE = "application/octet-stream"

HEADER = b"AuthenticatorPro"
SALT_LENGTH = 20
ITERATIONS = 64000
KEY_SIZE = 32


def _derive_key(password: str, salt: bytes) -> Tuple[bytes, int]:
    """Return (key, block length in bytes) for *password* and *salt*."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA1(),
        length=KEY_SIZE,
        salt=salt,
        iterations=ITERATIONS,
    )
    key = kdf.derive(password.encode("utf-8"))
    return key, algorithms.AES.block_size // 8


def _encrypt(plaintext: bytes, key: bytes, iv: bytes) -> bytes:
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def _decrypt(ciphertext: bytes, key: bytes, iv: bytes) -> bytes:
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    return unpadder.update(padded) + unpadder.finalize()


def _optional_tuple(value: Optional[Sequence[Any]]) -> Optional[Tuple[Any, ...]]:
    return tuple(value) if value is not None else None


@dataclass(frozen=True)
class Backup:
    authenticators: Sequence[Authenticator]
    categories: Optional[Sequence[Dict[str, Any]]] = None
    authenticator_categories: Optional[Sequence[Dict[str, Any]]] = None
    custom_icons: Optional[Sequence[Dict[str, Any]]] = None

    def __post_init__(self) -> None:
        if self.authenticators is None:
            raise ValidationError("Backup must contain authenticators")
        object.__setattr__(self, "authenticators", tuple(self.authenticators))
        for name in ("categories", "authenticator_categories", "custom_icons"):
            object.__setattr__(self, name, _optional_tuple(getattr(self, name)))

    # --- JSON ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "Authenticators": [auth.to_dict() for auth in self.authenticators],
            "Categories": _list_or_none(self.categories),
            "AuthenticatorCategories": _list_or_none(self.authenticator_categories),
            "CustomIcons": _list_or_none(self.custom_icons),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Backup":
        if not isinstance(data, dict):
            raise FormatError("Backup must be a JSON object")

        fields = {str(key).lower(): value for key, value in data.items()}
        authenticators = fields.get("authenticators")
        if authenticators is None:
            raise ValidationError("Backup must contain authenticators")
        if not isinstance(authenticators, list):
            raise FormatError("Authenticators must be a list")

        return cls(
            authenticators=[Authenticator.from_dict(item) for item in authenticators],
            categories=fields.get("categories"),
            authenticator_categories=fields.get("authenticatorcategories"),
            custom_icons=fields.get("customicons"),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    # --- Bytes -----------------------------------------------------------------
    def to_bytes(self, password: Optional[str] = None) -> bytes:
        """Serialize, encrypting when a non-empty password is given."""
        plaintext = self.to_json().encode("utf-8")

        if not password:
            return plaintext

        salt = os.urandom(SALT_LENGTH)
        key, block_length = _derive_key(password, salt)
        iv = os.urandom(block_length)
        ciphertext = _encrypt(plaintext, key, iv)

        logger.debug("Encrypted backup of %d authenticators (%d bytes)",
                     len(self.authenticators), len(ciphertext))
        return HEADER + salt + iv + ciphertext

    @classmethod
    def from_bytes(cls, data: bytes, password: Optional[str] = None) -> "Backup":
        """
        Restore a backup.

        Raises:
            BackupReadError: header mismatch, wrong password, corrupted or
                malformed content.
        """
        if not password:
            text = _decode_utf8(data)
        else:
            if data[:len(HEADER)] != HEADER:
                raise BackupReadError("Header does not match.")

            offset = len(HEADER)
            salt = data[offset:offset + SALT_LENGTH]
            key, block_length = _derive_key(password, salt)
            offset += SALT_LENGTH
            iv = data[offset:offset + block_length]
            payload = data[offset + block_length:]

            try:
                raw = _decrypt(payload, key, iv)
            except ValueError as e:
                logger.warning("Backup could not be decrypted")
                raise BackupReadError() from e
            text = _decode_utf8(raw)

        try:
            return cls.from_dict(json.loads(text))
        except (ValueError, TypeError) as e:
            logger.warning("Backup content is invalid")
            raise BackupReadError("File invalid") from e

    @staticmethod
    def is_readable_without_password(data: bytes) -> bool:
        """
        Cheap check used to decide whether to ask for a password.

        True when the data is brace-delimited and parses as a JSON object.
        Ciphertext that happens to start with 0x7B and end with 0x7D still
        passes the brace test and is only rejected by the JSON parse.
        """
        if not data or data[:1] != b"{" or data[-1:] != b"}":
            return False
        try:
            return isinstance(json.loads(data.decode("utf-8")), dict)
        except ValueError:
            return False


def _list_or_none(value: Optional[Sequence[Any]]) -> Optional[list]:
    return list(value) if value is not None else None


def _decode_utf8(data: bytes) -> str:
    try:
        return bytes(data).decode("utf-8")
    except UnicodeDecodeError as e:
        raise BackupReadError("File invalid") from e
