#!/usr/bin/env python3
"""
cli.py — command-line wrapper around the authpro core.

Subcommands:
- code    : print the current code for an otpauth URI (or watch it live)
- uri     : parse and re-export an otpauth URI in normalized form
- migrate : convert one decoded Google Authenticator migration entry
- backup  : read otpauth URIs from stdin, write a .authpro backup to stdout
- restore : read a .authpro backup from stdin, print otpauth URIs
- check   : tell whether the backup on stdin needs a password

eg..:
    authpro code "otpauth://totp/Example:alice?secret=JBSWY3DPEHPK3PXP&issuer=Example"
    authpro code "otpauth://hotp/Example?secret=JBSWY3DPEHPK3PXP&counter=3"
    authpro backup --password hunter2 < uris.txt > accounts.authpro
    authpro restore --password hunter2 < accounts.authpro
"""

import argparse
import binascii
import logging
import sys
import time

from .authenticator import Authenticator
from .backup import Backup
from .errors import AuthproError
from .migration import MigrationAlgorithm, MigrationAuthenticator, MigrationType, from_migration

logger = logging.getLogger(__name__)


# --- CLI command handlers ---
def cmd_code(args):
    auth = Authenticator.from_otpauth_uri(args.uri)

    if not args.watch or args.counter is not None or auth.seconds_remaining() is None:
        code = auth.get_code(args.counter)
        remaining = auth.seconds_remaining() if args.counter is None else None
        if remaining is None:
            print(f"{auth.issuer}: {code}")
        else:
            print(f"{auth.issuer}: {code}  (valid ~{remaining:2d}s)")
        return 0

    print("Press Ctrl+C to quit.\n")
    last_code = None
    try:
        while True:
            code = auth.get_code()
            remaining = auth.seconds_remaining()
            if code != last_code:
                print(f"{auth.issuer}: {code}  (valid ~{remaining:2d}s)")
                last_code = code
            else:
                print(f".. {remaining:2d}s left", end="\r", flush=True)
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nBye.")
    return 0


def cmd_uri(args):
    auth = Authenticator.from_otpauth_uri(args.uri)
    print(auth.to_otpauth_uri())
    return 0


def cmd_migrate(args):
    try:
        secret = binascii.unhexlify(args.secret_hex)
    except (binascii.Error, ValueError):
        print("[!] --secret-hex is not valid hex", file=sys.stderr)
        return 1

    entry = MigrationAuthenticator(
        issuer=args.issuer,
        username=args.username,
        type=MigrationType(args.type),
        algorithm=MigrationAlgorithm.SHA1,
        secret=secret,
        counter=args.counter,
    )
    print(from_migration(entry).to_otpauth_uri())
    return 0


def cmd_backup(args):
    authenticators = []
    for line in sys.stdin:
        line = line.strip()
        if not line:
            continue
        auth = Authenticator.from_otpauth_uri(line)
        auth.ranking = len(authenticators)
        authenticators.append(auth)

    data = Backup(authenticators).to_bytes(args.password)
    sys.stdout.buffer.write(data)
    sys.stdout.buffer.flush()
    logger.info("Wrote backup with %d authenticators", len(authenticators))
    return 0


def cmd_restore(args):
    backup = Backup.from_bytes(sys.stdin.buffer.read(), args.password)
    for auth in backup.authenticators:
        try:
            print(auth.to_otpauth_uri())
        except AuthproError as e:
            print(f"[!] {auth.issuer}: {e}", file=sys.stderr)
    return 0


def cmd_check(args):
    if Backup.is_readable_without_password(sys.stdin.buffer.read()):
        print("[+] Backup is readable without a password")
    else:
        print("[-] Backup needs a password (or is not a backup)")
    return 0


def cmd_help(args):
    print("'authpro -h' for help.")
    return 0


# --- Argparse builder ---
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="authpro", description="OTP codes, otpauth URIs and .authpro backups")
    p.add_argument("--verbose", action="store_true", help="Verbose (debug) logging")
    sub = p.add_subparsers(dest="cmd")
    p.set_defaults(func=cmd_help)

    # code
    pc = sub.add_parser("code", help="Print the code for an otpauth URI")
    pc.add_argument("uri", help="otpauth:// URI")
    pc.add_argument("--counter", type=int, help="Explicit counter (or Unix time for time based types)")
    pc.add_argument("--watch", action="store_true", help="Keep printing time based codes as they change")
    pc.set_defaults(func=cmd_code)

    # uri
    pu = sub.add_parser("uri", help="Normalize an otpauth URI")
    pu.add_argument("uri", help="otpauth:// URI")
    pu.set_defaults(func=cmd_uri)

    # migrate
    pm = sub.add_parser("migrate", help="Convert a decoded Google Authenticator migration entry")
    pm.add_argument("--issuer", default="", help="Issuer field of the entry (may be empty)")
    pm.add_argument("--username", default="", help="Name field of the entry")
    pm.add_argument("--type", choices=[t.value for t in MigrationType], default=MigrationType.TOTP.value)
    pm.add_argument("--secret-hex", required=True, help="Raw secret bytes as hex")
    pm.add_argument("--counter", type=int, default=0)
    pm.set_defaults(func=cmd_migrate)

    # backup
    pb = sub.add_parser("backup", help="otpauth URIs on stdin -> .authpro backup on stdout")
    pb.add_argument("--password", help="Encrypt the backup with this password")
    pb.set_defaults(func=cmd_backup)

    # restore
    pr = sub.add_parser("restore", help=".authpro backup on stdin -> otpauth URIs on stdout")
    pr.add_argument("--password", help="Password of an encrypted backup")
    pr.set_defaults(func=cmd_restore)

    # check
    pk = sub.add_parser("check", help="Tell whether the backup on stdin needs a password")
    pk.set_defaults(func=cmd_check)

    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except AuthproError as e:
        print(f"[!] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
