import pytest

from authpro import (
    Authenticator,
    AuthenticatorType,
    ConfigurationError,
    FormatError,
    HashAlgorithm,
    ValidationError,
)

from .conftest import EXAMPLE_SECRET


def test_example_uri_parses():
    auth = Authenticator.from_otpauth_uri(
        "otpauth://totp/Example:alice?secret=JBSWY3DPEHPK3PXP&issuer=Example")
    assert auth == Authenticator(
        issuer="Example",
        username="alice",
        secret="JBSWY3DPEHPK3PXP",
        type=AuthenticatorType.TOTP,
        algorithm=HashAlgorithm.SHA1,
        digits=6,
        period=30,
    )


def test_issuer_parameter_makes_label_the_username():
    auth = Authenticator.from_otpauth_uri("otpauth://totp/alice%40example.com?secret=JBSWY3DPEHPK3PXP&issuer=ACME%20Co")
    assert auth.issuer == "ACME Co"
    assert auth.username == "alice@example.com"


def test_label_equal_to_issuer_parameter_has_no_username():
    auth = Authenticator.from_otpauth_uri("otpauth://totp/ACME%20Co?secret=JBSWY3DPEHPK3PXP&issuer=ACME%20Co")
    assert auth.issuer == "ACME Co"
    assert auth.username is None


def test_label_without_issuer_is_the_issuer():
    auth = Authenticator.from_otpauth_uri("otpauth://totp/GitHub?secret=JBSWY3DPEHPK3PXP")
    assert auth.issuer == "GitHub"
    assert auth.username is None


def test_label_colon_wins_over_issuer_parameter():
    auth = Authenticator.from_otpauth_uri("otpauth://totp/Label:bob?secret=JBSWY3DPEHPK3PXP&issuer=Other")
    assert auth.issuer == "Label"
    assert auth.username == "bob"


def test_encoded_colon_in_label():
    auth = Authenticator.from_otpauth_uri("otpauth://totp/Example%3A%20alice?secret=JBSWY3DPEHPK3PXP")
    assert auth.issuer == "Example"
    assert auth.username == "alice"


def test_empty_issuer_before_colon():
    auth = Authenticator.from_otpauth_uri("otpauth://totp/:alice?secret=JBSWY3DPEHPK3PXP")
    assert auth.issuer == "alice"
    assert auth.username is None


def test_issuer_and_username_are_trimmed_and_truncated():
    issuer = "I" * 40
    username = "u" * 50
    auth = Authenticator.from_otpauth_uri(f"otpauth://totp/%20{issuer}:{username}%20?secret=JBSWY3DPEHPK3PXP")
    assert auth.issuer == "I" * 32
    assert auth.username == "u" * 40


def test_secret_is_cleaned():
    auth = Authenticator.from_otpauth_uri("otpauth://totp/Example?secret=jbsw%20y3dp-ehpk3pxp")
    assert auth.secret == EXAMPLE_SECRET


def test_hotp_uri():
    auth = Authenticator.from_otpauth_uri(
        "otpauth://hotp/Example:bob?secret=JBSWY3DPEHPK3PXP&counter=7&digits=8&algorithm=sha256")
    assert auth.type == AuthenticatorType.HOTP
    assert auth.counter == 7
    assert auth.digits == 8
    assert auth.algorithm == HashAlgorithm.SHA256


def test_counter_is_ignored_for_totp():
    auth = Authenticator.from_otpauth_uri("otpauth://totp/Example?secret=JBSWY3DPEHPK3PXP&counter=7")
    assert auth.counter == 0


def test_period_only_applies_to_totp():
    totp = Authenticator.from_otpauth_uri("otpauth://totp/Example?secret=JBSWY3DPEHPK3PXP&period=60")
    hotp = Authenticator.from_otpauth_uri("otpauth://hotp/Example?secret=JBSWY3DPEHPK3PXP&period=60")
    assert totp.period == 60
    assert hotp.period == 30


@pytest.mark.parametrize("uri", [
    "otpauth://totp/Steam:gaben?secret=JBSWY3DPEHPK3PXP",
    "otpauth://totp/Steam?secret=JBSWY3DPEHPK3PXP",
    "otpauth://totp/Valve:gaben?secret=JBSWY3DPEHPK3PXP&steam",
    "otpauth://totp/gaben?secret=JBSWY3DPEHPK3PXP&issuer=Steam",
])
def test_steam_detection(uri):
    auth = Authenticator.from_otpauth_uri(uri)
    assert auth.type == AuthenticatorType.STEAM_OTP
    assert auth.digits == 5


def test_steam_ignores_algorithm():
    auth = Authenticator.from_otpauth_uri("otpauth://totp/Steam?secret=JBSWY3DPEHPK3PXP&algorithm=SHA512")
    assert auth.algorithm == HashAlgorithm.SHA1


def test_first_query_value_wins():
    auth = Authenticator.from_otpauth_uri("otpauth://totp/Example?secret=JBSWY3DPEHPK3PXP&digits=8&digits=7")
    assert auth.digits == 8


def test_icon_resolved_from_issuer_or_icon_parameter(icon_resolver):
    by_issuer = Authenticator.from_otpauth_uri("otpauth://totp/Example?secret=JBSWY3DPEHPK3PXP", icon_resolver)
    by_param = Authenticator.from_otpauth_uri(
        "otpauth://totp/Example?secret=JBSWY3DPEHPK3PXP&icon=GitHub", icon_resolver)
    unknown = Authenticator.from_otpauth_uri("otpauth://totp/Nowhere?secret=JBSWY3DPEHPK3PXP", icon_resolver)
    assert by_issuer.icon == "example_icon"
    assert by_param.icon == "github"
    assert unknown.icon is None


@pytest.mark.parametrize("uri,message", [
    ("https://example.com/?secret=JBSWY3DPEHPK3PXP", "URI is not valid"),
    ("otpauth://", "URI is not valid"),
    ("otpauth://motp/Example?secret=JBSWY3DPEHPK3PXP", "Unknown type"),
    ("otpauth://totp/Example?secret=JBSWY3DPEHPK3PXP&algorithm=MD5", "Unknown algorithm"),
    ("otpauth://totp/Example?secret=JBSWY3DPEHPK3PXP&digits=six", "Digits parameter cannot be parsed"),
    ("otpauth://totp/Example?secret=JBSWY3DPEHPK3PXP&period=", "Period parameter cannot be parsed"),
    ("otpauth://hotp/Example?secret=JBSWY3DPEHPK3PXP&counter=x", "Counter parameter cannot be parsed"),
    ("otpauth://hotp/Example?secret=JBSWY3DPEHPK3PXP&counter=-1", "Counter cannot be negative"),
    ("otpauth://totp/Example?issuer=Example", "Secret parameter is required"),
])
def test_format_errors(uri, message):
    with pytest.raises(FormatError, match=message):
        Authenticator.from_otpauth_uri(uri)


@pytest.mark.parametrize("uri", [
    "otpauth://totp/?secret=JBSWY3DPEHPK3PXP",
    "otpauth://totp/Example?secret=",
    "otpauth://totp/Example?secret=NOTBASE32!",
    "otpauth://totp/Example?secret=JBSWY3DPEHPK3PXP&digits=4",
    "otpauth://totp/Example?secret=JBSWY3DPEHPK3PXP&period=0",
    "otpauth://totp/Steam?secret=JBSWY3DPEHPK3PXP&digits=6",
])
def test_validation_errors(uri):
    with pytest.raises(ValidationError):
        Authenticator.from_otpauth_uri(uri)


# --- export ------------------------------------------------------------------
def test_export_minimal_totp(totp_auth):
    assert totp_auth.to_otpauth_uri() == (
        "otpauth://totp/Example%3Aalice?secret=JBSWY3DPEHPK3PXP&issuer=Example")


def test_export_omits_username_when_missing():
    auth = Authenticator(issuer="ACME Co", secret=EXAMPLE_SECRET)
    assert auth.to_otpauth_uri() == "otpauth://totp/ACME%20Co?secret=JBSWY3DPEHPK3PXP&issuer=ACME%20Co"


def test_export_non_default_parameters(sha512_auth):
    uri = sha512_auth.to_otpauth_uri()
    assert uri.startswith("otpauth://totp/Vault%3Aops%40example.com?")
    assert "&algorithm=SHA512" in uri
    assert "&digits=8" in uri
    assert "&period=60" in uri
    assert "counter" not in uri


def test_export_hotp_always_has_counter(hotp_auth):
    assert hotp_auth.to_otpauth_uri().endswith("&counter=0")


def test_export_steam_flag(steam_auth):
    assert "steam" not in steam_auth.to_otpauth_uri().split("?")[1]
    steam_auth.issuer = "Valve"
    assert steam_auth.to_otpauth_uri().endswith("&steam")
    assert steam_auth.to_otpauth_uri().startswith("otpauth://totp/")


def test_export_mobile_otp_unsupported(motp_auth):
    with pytest.raises(ConfigurationError):
        motp_auth.to_otpauth_uri()


@pytest.mark.parametrize("auth", [
    Authenticator(issuer="Example", username="alice", secret=EXAMPLE_SECRET),
    Authenticator(issuer="ACME Co", secret=EXAMPLE_SECRET, digits=8, period=45, algorithm=HashAlgorithm.SHA256),
    Authenticator(issuer="Bank & Trust", username="a+b@example.com", secret=EXAMPLE_SECRET,
                  type=AuthenticatorType.HOTP, counter=123456789012),
    Authenticator(issuer="Steam", username="gaben", secret=EXAMPLE_SECRET, type=AuthenticatorType.STEAM_OTP),
    Authenticator(issuer="Valve", secret=EXAMPLE_SECRET, type=AuthenticatorType.STEAM_OTP),
    Authenticator(issuer="Ünïcödé", username="名前", secret=EXAMPLE_SECRET, algorithm=HashAlgorithm.SHA512),
])
def test_round_trip(auth):
    assert Authenticator.from_otpauth_uri(auth.to_otpauth_uri()) == auth


def test_non_ascii_secret_is_validation_error():
    with pytest.raises(ValidationError):
        Authenticator.from_otpauth_uri("otpauth://totp/Example?secret=%C3%89ABC")


def test_counter_above_64_bits_is_format_error():
    with pytest.raises(FormatError, match="Counter is out of range"):
        Authenticator.from_otpauth_uri(
            "otpauth://hotp/Example?secret=JBSWY3DPEHPK3PXP&counter=18446744073709551616")
