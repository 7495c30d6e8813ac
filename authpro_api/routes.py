"""
authpro API routes - Flask blueprint mounted under /api.

Examples:
curl -X POST http://localhost:5000/api/code -H "Content-Type: application/json" \
     -d '{"uri": "otpauth://totp/Example:alice?secret=JBSWY3DPEHPK3PXP&issuer=Example"}'
curl -X POST http://localhost:5000/api/backup -H "Content-Type: application/json" \
     -d '{"uris": ["otpauth://..."], "password": "hunter2"}' -o accounts.authpro
curl -X POST http://localhost:5000/api/restore -H "X-Backup-Password: hunter2" \
     --data-binary @accounts.authpro
"""

import base64
import binascii
import io
import logging

import qrcode
from flask import Blueprint, Response, current_app, jsonify, request

from authpro import (
    Authenticator,
    Backup,
    BackupReadError,
    ConfigurationError,
    FILE_EXTENSION,
    FormatError,
    MIME_TYPE,
    MigrationAlgorithm,
    MigrationAuthenticator,
    MigrationType,
    ValidationError,
    from_migration,
)
from authpro.generators import MAX_COUNTER

logger = logging.getLogger(__name__)

api_bp = Blueprint("authpro", __name__, url_prefix="/api")

PASSWORD_HEADER = "X-Backup-Password"


def _icon_resolver():
    return current_app.extensions["authpro_icon_resolver"]


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise FormatError("JSON object body is required")
    return data


def _uri_from_body(data: dict) -> Authenticator:
    uri = data.get("uri")
    if not isinstance(uri, str):
        raise FormatError("uri is required")
    return Authenticator.from_otpauth_uri(uri, _icon_resolver())


# --- Error handlers ----------------------------------------------------------
@api_bp.errorhandler(BackupReadError)
def handle_backup_error(e):
    return jsonify({"error": "Could not read backup"}), 400


@api_bp.errorhandler(FormatError)
@api_bp.errorhandler(ValidationError)
def handle_bad_input(e):
    return jsonify({"error": str(e)}), 400


@api_bp.errorhandler(ConfigurationError)
def handle_configuration_error(e):
    logger.error("Configuration error: %s", e)
    return jsonify({"error": str(e)}), 422


# --- Codes and URIs ----------------------------------------------------------
@api_bp.route("/code", methods=["POST"])
def get_code():
    """
    Current code for an otpauth URI.
    Body: {"uri": "otpauth://...", "counter": 5}   (counter optional)
    """
    data = _json_body()
    auth = _uri_from_body(data)

    counter = data.get("counter")
    if counter is not None and (not isinstance(counter, int) or isinstance(counter, bool)
                                or not 0 <= counter <= MAX_COUNTER):
        raise FormatError("counter must be an unsigned 64-bit integer")

    return jsonify({
        "issuer": auth.issuer,
        "type": auth.type.name,
        "code": auth.get_code(counter),
        "remaining": auth.seconds_remaining() if counter is None else None,
    })


@api_bp.route("/uri", methods=["POST"])
def normalize_uri():
    """Parse a URI and return the normalized export plus the parsed record."""
    auth = _uri_from_body(_json_body())
    return jsonify({"uri": auth.to_otpauth_uri(), "authenticator": auth.to_dict()})


@api_bp.route("/qr", methods=["POST"])
def get_qr_code():
    """
    QR code (PNG, base64 data URI) of the normalized otpauth URI.
    Body: {"uri": "otpauth://..."}
    """
    auth = _uri_from_body(_json_body())
    uri = auth.to_otpauth_uri()

    qr = qrcode.QRCode(version=None, box_size=10, border=4)
    qr.add_data(uri)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    img_str = base64.b64encode(buffer.getvalue()).decode("ascii")

    return jsonify({"qr_code": f"data:image/png;base64,{img_str}", "uri": uri})


@api_bp.route("/migration", methods=["POST"])
def convert_migration():
    """
    Convert one decoded Google Authenticator migration entry.
    Body: {"issuer": "...", "username": "...", "type": "totp"|"hotp",
           "secret": "<base64 raw bytes>", "counter": 0}
    """
    data = _json_body()
    try:
        entry = MigrationAuthenticator(
            issuer=data.get("issuer") or "",
            username=data.get("username") or "",
            type=MigrationType(data.get("type", "totp")),
            algorithm=MigrationAlgorithm(data.get("algorithm", "sha1")),
            secret=base64.b64decode(data.get("secret", ""), validate=True),
            counter=int(data.get("counter", 0)),
        )
    except (ValueError, TypeError, binascii.Error) as e:
        raise FormatError(f"Migration entry is malformed: {e}") from e

    auth = from_migration(entry, _icon_resolver())
    return jsonify({"uri": auth.to_otpauth_uri(), "authenticator": auth.to_dict()})


# --- Backups -----------------------------------------------------------------
@api_bp.route("/backup", methods=["POST"])
def create_backup():
    """
    Build a .authpro file.
    Body: {"uris": [...], "password": "...", "categories": [...],
           "authenticator_categories": [...], "custom_icons": [...]}
    """
    data = _json_body()
    uris = data.get("uris")
    if not isinstance(uris, list):
        raise FormatError("uris must be a list")

    authenticators = []
    for ranking, uri in enumerate(uris):
        if not isinstance(uri, str):
            raise FormatError("uris must contain strings")
        auth = Authenticator.from_otpauth_uri(uri, _icon_resolver())
        auth.ranking = ranking
        authenticators.append(auth)

    backup = Backup(
        authenticators,
        categories=data.get("categories"),
        authenticator_categories=data.get("authenticator_categories"),
        custom_icons=data.get("custom_icons"),
    )
    password = data.get("password")
    if password is not None and not isinstance(password, str):
        raise FormatError("password must be a string")

    payload = backup.to_bytes(password)
    logger.info("Created backup with %d authenticators (encrypted=%s)",
                len(authenticators), bool(password))

    return Response(
        payload,
        mimetype=MIME_TYPE,
        headers={"Content-Disposition": f"attachment; filename=backup.{FILE_EXTENSION}"},
    )


@api_bp.route("/restore", methods=["POST"])
def restore_backup():
    """
    Read a .authpro file sent as the raw request body.
    Header X-Backup-Password (or ?password=) carries the password of
    encrypted backups.
    """
    password = request.headers.get(PASSWORD_HEADER) or request.args.get("password")
    backup = Backup.from_bytes(request.get_data(), password)
    return jsonify(backup.to_dict())


@api_bp.route("/check", methods=["POST"])
def check_backup():
    """Tell whether the raw body can be read without a password."""
    return jsonify({"readable_without_password": Backup.is_readable_without_password(request.get_data())})
