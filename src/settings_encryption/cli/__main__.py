"""CLI entry point: python -m settings_encryption.cli selftest"""

import argparse
import sys

import structlog

from settings_encryption.config.settings import get_settings
from settings_encryption.crypto.engine import CipherEngine
from settings_encryption.crypto.errors import ConfigurationError, EncryptionError
from settings_encryption.logging_config import configure_logging

SELFTEST_SAMPLE = "Hello World Test!"


def build_engine(key: str | None = None) -> CipherEngine:
    settings = get_settings()
    return CipherEngine(
        key,
        settings.token_prefix,
        key_material=settings.key_material(),
    )


def run_selftest(engine: CipherEngine) -> bool:
    """Round-trip a fixed sample and report whether it survived."""
    log = structlog.get_logger()
    token = engine.encrypt(SELFTEST_SAMPLE)
    decrypted = engine.decrypt(token)
    matched = decrypted == SELFTEST_SAMPLE

    print(f"Original:  {SELFTEST_SAMPLE}")
    print(f"Encrypted: {token}")
    print(f"Decrypted: {decrypted}")
    print("Match!" if matched else "No match")

    log.info("selftest_complete", matched=matched, encrypted=engine.is_encrypted(token))
    return matched


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="settings_encryption.cli",
        description="Settings encryption diagnostics",
    )
    parser.add_argument(
        "--key",
        type=str,
        default=None,
        help="Explicit key material (default: derive from settings)",
    )
    subparsers = parser.add_subparsers(dest="command")

    encrypt_parser = subparsers.add_parser("encrypt", help="Print the token for a value")
    encrypt_parser.add_argument("value")

    decrypt_parser = subparsers.add_parser("decrypt", help="Print the plaintext of a token")
    decrypt_parser.add_argument("token")

    check_parser = subparsers.add_parser("check", help="Report whether a value is a token")
    check_parser.add_argument("value")

    subparsers.add_parser("selftest", help="Round-trip a sample value")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    settings = get_settings()
    configure_logging(json_output=settings.log_json, log_level=settings.log_level)

    try:
        engine = build_engine(args.key)
    except ConfigurationError as e:
        print(f"Encryption error: {e}", file=sys.stderr)
        return 2

    try:
        if args.command == "encrypt":
            print(engine.encrypt(args.value))
        elif args.command == "decrypt":
            print(engine.decrypt(args.token))
        elif args.command == "check":
            encrypted = engine.is_encrypted(args.value)
            print("Encrypted" if encrypted else "Not encrypted")
        elif args.command == "selftest":
            return 0 if run_selftest(engine) else 1
    except EncryptionError as e:
        print(f"Encryption error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
