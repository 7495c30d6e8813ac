"""
authenticator.py — the OTP record and everything that reads or writes one.

- Authenticator: one account's configuration (type, issuer, secret, ...).
- clean_secret / is_valid_secret: secret rules shared by every import path.
- Authenticator.from_otpauth_uri / to_otpauth_uri: otpauth:// interchange.
- Authenticator.from_dict / to_dict: the JSON object stored in backups.
- CodeCache: caller-owned memo of generators and last counter codes.

URI shape:
    otpauth://totp/Example:alice@example.com?secret=JBSWY3DPEHPK3PXP&issuer=Example
    ─────────┬───┬───────┬─────────────────┬─────────────────────────────────
             │   │       │                 └── query (secret, issuer, ...)
             │   │       └── username
             │   └── issuer in label
             └── type (totp or hotp)
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl, quote, unquote

from .errors import ConfigurationError, FormatError, ValidationError
from .generators import MAX_COUNTER, MobileOtp, create_generator, decode_base32
from .icons import IconResolver
from .otp_types import (
    AuthenticatorType,
    GenerationMethod,
    HashAlgorithm,
    DEFAULT_ALGORITHM,
    algorithm_from_name,
    algorithm_name,
    default_digits,
    default_period,
    generation_method,
    is_hmac_based,
    type_spec,
)

logger = logging.getLogger(__name__)

ISSUER_MAX_LENGTH = 32
USERNAME_MAX_LENGTH = 40

STEAM_ISSUER = "Steam"

_URI_PATTERN = re.compile(r"^otpauth://([a-z]+)/([^?]*)(.*)$")


# --- Secret rules ----------------------------------------------------------
def clean_secret(secret: str, auth_type: AuthenticatorType) -> str:
    """Normalize a user supplied secret.

    HMAC based secrets are base-32, which is case-insensitive, so they are
    upper-cased. Spaces and hyphens are removed for every type.
    """
    if is_hmac_based(auth_type):
        secret = secret.upper()
    return secret.replace(" ", "").replace("-", "")


def is_valid_secret(secret: Optional[str], auth_type: AuthenticatorType) -> bool:
    if not secret:
        return False

    if is_hmac_based(auth_type):
        try:
            return len(decode_base32(secret)) > 0
        except FormatError:
            return False

    if auth_type == AuthenticatorType.MOBILE_OTP:
        return len(secret) >= MobileOtp.SECRET_MIN_LENGTH

    raise ConfigurationError(f"Unknown authenticator type: {auth_type!r}")


def _truncate(value: str, max_length: int) -> str:
    return value.strip()[:max_length]


def _parse_int(args: Dict[str, str], name: str, default: int) -> int:
    if name not in args:
        return default
    try:
        return int(args[name])
    except ValueError as e:
        raise FormatError(f"{name.capitalize()} parameter cannot be parsed.") from e


# --- Record ----------------------------------------------------------------
@dataclass
class Authenticator:
    issuer: str
    secret: str
    type: AuthenticatorType = AuthenticatorType.TOTP
    username: Optional[str] = None
    algorithm: HashAlgorithm = DEFAULT_ALGORITHM
    digits: Optional[int] = None
    period: Optional[int] = None
    counter: int = 0
    icon: Optional[str] = None
    ranking: int = 0

    def __post_init__(self) -> None:
        if self.digits is None:
            self.digits = default_digits(self.type)
        if self.period is None:
            self.period = default_period(self.type)

    # --- Codes -------------------------------------------------------------
    def create_generator(self):
        return create_generator(self.type, self.secret, self.algorithm, self.digits, self.period)

    def current_counter(self, now: Optional[int] = None) -> int:
        """Value fed to the generator when no counter is given.

        Time based: the start of the current period in Unix seconds.
        Counter based: the stored counter.
        """
        if generation_method(self.type) == GenerationMethod.TIME:
            if now is None:
                now = int(time.time())
            return now - (now % self.period)
        return self.counter

    def get_code(self, counter: Optional[int] = None) -> str:
        if counter is None:
            counter = self.current_counter()
        return self.create_generator().compute(counter)

    def seconds_remaining(self, now: Optional[int] = None) -> Optional[int]:
        """Seconds until the current time based code expires, None for HOTP."""
        if generation_method(self.type) != GenerationMethod.TIME:
            return None
        if now is None:
            now = int(time.time())
        return self.period - (now % self.period)

    # --- Validation --------------------------------------------------------
    def is_valid(self) -> bool:
        spec = type_spec(self.type)
        valid = (
            bool(self.issuer)
            and is_valid_secret(self.secret, self.type)
            and spec.min_digits <= self.digits <= spec.max_digits
            and 0 <= self.counter <= MAX_COUNTER
        )
        if spec.method == GenerationMethod.TIME:
            valid = valid and self.period > 0
        return valid

    # --- otpauth:// ----------------------------------------------------------
    @classmethod
    def from_otpauth_uri(cls, uri: str, icon_resolver: Optional[IconResolver] = None) -> "Authenticator":
        """
        Parse an otpauth:// URI.

        Issuer and username are resolved in this order:
        1. the label contains a colon: "issuer:username"
        2. an issuer query parameter: label is the username, unless the
           label is the issuer itself
        3. otherwise the whole label is the issuer

        Raises:
            FormatError: malformed URI, unknown type or algorithm, bad number,
                negative counter, missing secret.
            ValidationError: the parsed record fails is_valid().
        """
        match = _URI_PATTERN.match(uri.strip())
        if not match:
            raise FormatError("URI is not valid")

        scheme, raw_label, query = match.groups()
        label = unquote(raw_label)

        args: Dict[str, str] = {}
        for key, value in parse_qsl(query.lstrip("?"), keep_blank_values=True):
            args.setdefault(key, value)

        if ":" in label:
            issuer_value, username_value = label.split(":", 1)
            if issuer_value == "":
                issuer, username = username_value, None
            else:
                issuer, username = issuer_value, username_value
        elif "issuer" in args:
            # exported records without a username carry the issuer as label
            issuer = args["issuer"]
            username = label if label != issuer else None
        else:
            issuer, username = label, None

        if scheme == "totp":
            if issuer == STEAM_ISSUER or "steam" in args:
                auth_type = AuthenticatorType.STEAM_OTP
            else:
                auth_type = AuthenticatorType.TOTP
        elif scheme == "hotp":
            auth_type = AuthenticatorType.HOTP
        else:
            raise FormatError(f"Unknown type: {scheme}")

        algorithm = DEFAULT_ALGORITHM
        if "algorithm" in args and auth_type != AuthenticatorType.STEAM_OTP:
            try:
                algorithm = algorithm_from_name(args["algorithm"])
            except KeyError:
                raise FormatError(f"Unknown algorithm: {args['algorithm']}") from None

        digits = _parse_int(args, "digits", default_digits(auth_type))

        period = _parse_int(args, "period", default_period(auth_type))
        if auth_type != AuthenticatorType.TOTP:
            period = default_period(auth_type)

        counter = 0
        if auth_type == AuthenticatorType.HOTP:
            counter = _parse_int(args, "counter", 0)
            if counter < 0:
                raise FormatError("Counter cannot be negative.")
            if counter > MAX_COUNTER:
                raise FormatError("Counter is out of range.")

        if "secret" not in args:
            raise FormatError("Secret parameter is required.")
        secret = clean_secret(args["secret"], auth_type)

        icon = None
        if icon_resolver is not None:
            icon = icon_resolver.find_service_key_by_name(args["icon"] if "icon" in args else issuer)

        if username is not None:
            username = _truncate(username, USERNAME_MAX_LENGTH) or None

        auth = cls(
            issuer=_truncate(issuer, ISSUER_MAX_LENGTH),
            secret=secret,
            type=auth_type,
            username=username,
            algorithm=algorithm,
            digits=digits,
            period=period,
            counter=counter,
            icon=icon,
        )

        if not auth.is_valid():
            logger.warning("Rejected %s URI for issuer %r: authenticator is invalid", scheme, auth.issuer)
            raise ValidationError("Authenticator is invalid")

        logger.debug("Imported %s authenticator for issuer %r", auth_type.name, auth.issuer)
        return auth

    def to_otpauth_uri(self) -> str:
        if self.type == AuthenticatorType.HOTP:
            scheme = "hotp"
        elif self.type in (AuthenticatorType.TOTP, AuthenticatorType.STEAM_OTP):
            scheme = "totp"
        else:
            raise ConfigurationError(f"Unsupported authenticator type for otpauth URI: {self.type!r}")

        label = self.issuer if not self.username else f"{self.issuer}:{self.username}"

        params: List[Tuple[str, Any]] = [("secret", self.secret), ("issuer", self.issuer)]

        if self.algorithm != DEFAULT_ALGORITHM:
            params.append(("algorithm", algorithm_name(self.algorithm)))

        if self.digits != default_digits(self.type):
            params.append(("digits", self.digits))

        if self.type == AuthenticatorType.TOTP and self.period != default_period(self.type):
            params.append(("period", self.period))

        if self.type == AuthenticatorType.HOTP:
            params.append(("counter", self.counter))

        query = "&".join(f"{key}={quote(str(value), safe='')}" for key, value in params)

        if self.type == AuthenticatorType.STEAM_OTP and self.issuer != STEAM_ISSUER:
            query += "&steam"

        return f"otpauth://{scheme}/{quote(label, safe='')}?{query}"

    # --- Backup representation ---------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "Type": int(self.type),
            "Icon": self.icon,
            "Issuer": self.issuer,
            "Username": self.username,
            "Secret": self.secret,
            "Algorithm": int(self.algorithm),
            "Digits": self.digits,
            "Period": self.period,
            "Counter": self.counter,
            "Ranking": self.ranking,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Authenticator":
        """Build a record from its backup JSON object (keys matched case-insensitively)."""
        if not isinstance(data, dict):
            raise FormatError("Authenticator entry must be an object")

        fields = {str(key).lower(): value for key, value in data.items()}
        counter = fields.get("counter") or 0
        if not isinstance(counter, int) or not 0 <= counter <= MAX_COUNTER:
            raise FormatError(f"Authenticator entry has an invalid counter: {counter!r}")

        try:
            auth_type = AuthenticatorType(fields["type"])
            algorithm = HashAlgorithm(fields.get("algorithm", DEFAULT_ALGORITHM))
            return cls(
                issuer=fields["issuer"],
                secret=fields["secret"],
                type=auth_type,
                username=fields.get("username"),
                algorithm=algorithm,
                digits=fields.get("digits"),
                period=fields.get("period"),
                counter=counter,
                icon=fields.get("icon"),
                ranking=fields.get("ranking") or 0,
            )
        except KeyError as e:
            raise FormatError(f"Authenticator entry is missing {e.args[0]!r}") from e
        except ValueError as e:
            raise FormatError(f"Authenticator entry is malformed: {e}") from e


# --- Code cache ------------------------------------------------------------
@dataclass
class _CacheEntry:
    params: Tuple
    generator: Any
    last_counter: Optional[int] = None
    code: Optional[str] = None


class CodeCache:
    """
    Memoizes generators per record (keyed by secret) and, for counter based
    records, the last code together with the counter it was computed for.

    Not thread safe: callers sharing a cache between threads must lock.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, _CacheEntry] = {}

    @staticmethod
    def _params(auth: Authenticator) -> Tuple:
        return (auth.type, auth.secret, auth.algorithm, auth.digits, auth.period)

    def get_code(self, auth: Authenticator, counter: Optional[int] = None) -> str:
        if counter is None:
            counter = auth.current_counter()

        params = self._params(auth)
        entry = self._entries.get(auth.secret)
        if entry is None or entry.params != params:
            entry = _CacheEntry(params, auth.create_generator())
            self._entries[auth.secret] = entry

        if (generation_method(auth.type) == GenerationMethod.COUNTER
                and entry.code is not None and entry.last_counter == counter):
            return entry.code

        entry.code = entry.generator.compute(counter)
        entry.last_counter = counter
        return entry.code

    def invalidate(self, auth: Authenticator) -> None:
        self._entries.pop(auth.secret, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
