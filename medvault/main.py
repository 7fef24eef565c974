"""
MedVault - Command Line Entry Point

Usage:
    medvault keygen
    medvault encrypt --public-key HEX [--input FILE]
    medvault decrypt --private-key HEX [--input FILE]
    medvault symkey
    medvault sym-encrypt --key HEX --iv HEX [--scheme aes-256-gcm] [--input FILE]
    medvault sym-decrypt --key HEX --iv HEX [--scheme aes-256-gcm] [--input FILE]
    medvault upload [--public-key HEX] [--input FILE]
    medvault fetch CID [--private-key HEX]

Input defaults to stdin and is parsed as JSON when possible. Results are
written to stdout as JSON; logs go to stderr.
"""

import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from dotenv import load_dotenv

from .config import VaultConfig
from .errors import VaultError
from .encryption import (
    EncryptedEnvelope,
    EncryptionService,
    SymmetricKey,
    SymmetricScheme,
)
from .encryption.payload import parse_payload
from .vault import RecordVault


logger = logging.getLogger("medvault")


def _read_input(path: Optional[str]) -> str:
    if path in (None, "-"):
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _read_payload(path: Optional[str]) -> Any:
    """Input as JSON if it parses, else the stripped text."""
    return parse_payload(_read_input(path).strip().encode("utf-8"))


def _emit(value: Any) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False))


def _scheme(args: argparse.Namespace, config: VaultConfig) -> SymmetricScheme:
    if args.scheme:
        return SymmetricScheme(args.scheme)
    return config.symmetric_scheme


def cmd_info(args: argparse.Namespace, config: VaultConfig) -> None:
    """Print a summary of the available operations."""
    print("=" * 50)
    print("MedVault")
    print("=" * 50)
    print("\nAvailable operations:")
    print("  - Key pairs (secp256k1)")
    print("  - ECIES envelopes (AES-256-CBC + HMAC-SHA256)")
    print(f"  - Symmetric encryption (default {config.symmetric_scheme.value})")
    print(f"  - IPFS storage via {config.ipfs_api_url}")
    print("\n")


def cmd_keygen(args: argparse.Namespace, config: VaultConfig) -> None:
    _emit(EncryptionService.from_config(config).generate_key_pair().to_dict())


def cmd_encrypt(args: argparse.Namespace, config: VaultConfig) -> None:
    service = EncryptionService.from_config(config)
    envelope = service.encrypt_with_public_key(_read_payload(args.input), args.public_key)
    _emit(envelope.to_dict())


def cmd_decrypt(args: argparse.Namespace, config: VaultConfig) -> None:
    service = EncryptionService.from_config(config)
    envelope = EncryptedEnvelope.from_json(_read_input(args.input))
    _emit(service.decrypt_with_private_key(envelope, args.private_key))


def cmd_symkey(args: argparse.Namespace, config: VaultConfig) -> None:
    _emit(EncryptionService.from_config(config).generate_symmetric_key().to_dict())


def cmd_sym_encrypt(args: argparse.Namespace, config: VaultConfig) -> None:
    service = EncryptionService.from_config(config)
    material = SymmetricKey.from_dict({"key": args.key, "iv": args.iv})
    _emit(service.encrypt_symmetric(_read_payload(args.input), material, _scheme(args, config)))


def cmd_sym_decrypt(args: argparse.Namespace, config: VaultConfig) -> None:
    service = EncryptionService.from_config(config)
    material = SymmetricKey.from_dict({"key": args.key, "iv": args.iv})
    ciphertext = _read_input(args.input).strip()
    _emit(service.decrypt_symmetric(ciphertext, material, _scheme(args, config)))


def cmd_upload(args: argparse.Namespace, config: VaultConfig) -> None:
    with RecordVault(config) as vault:
        record = _read_payload(args.input)
        if args.public_key:
            result = vault.seal(record, args.public_key)
        else:
            result = vault.store_plain(record)
    _emit(result.to_dict())


def cmd_fetch(args: argparse.Namespace, config: VaultConfig) -> None:
    with RecordVault(config) as vault:
        if args.private_key:
            _emit(vault.open(args.cid, args.private_key))
        else:
            _emit(vault.gateway.retrieve(args.cid))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="medvault",
        description="Encrypt medical records and store them on IPFS",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--api-url", help="IPFS HTTP API URL (overrides MEDVAULT_IPFS_API_URL)")
    parser.add_argument("--log-level", help="Logging level (overrides MEDVAULT_LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("info", help="Show available operations")
    subparsers.add_parser("keygen", help="Generate a secp256k1 key pair")
    subparsers.add_parser("symkey", help="Generate a symmetric key and IV")

    encrypt_parser = subparsers.add_parser("encrypt", help="Encrypt to a public key")
    encrypt_parser.add_argument("--public-key", required=True, help="Recipient public key (hex)")
    encrypt_parser.add_argument("--input", "-i", help="Input file (default: stdin)")

    decrypt_parser = subparsers.add_parser("decrypt", help="Decrypt an envelope")
    decrypt_parser.add_argument("--private-key", required=True, help="Private key (hex)")
    decrypt_parser.add_argument("--input", "-i", help="Envelope JSON file (default: stdin)")

    for name, help_text in (("sym-encrypt", "Symmetric encrypt"),
                            ("sym-decrypt", "Symmetric decrypt")):
        sym_parser = subparsers.add_parser(name, help=help_text)
        sym_parser.add_argument("--key", required=True, help="32-byte key (hex)")
        sym_parser.add_argument("--iv", required=True, help="16-byte IV (hex)")
        sym_parser.add_argument("--scheme", choices=[s.value for s in SymmetricScheme],
                                help="Symmetric scheme (default from config)")
        sym_parser.add_argument("--input", "-i", help="Input file (default: stdin)")

    upload_parser = subparsers.add_parser("upload", help="Upload a record to IPFS")
    upload_parser.add_argument("--public-key", help="Encrypt to this public key first")
    upload_parser.add_argument("--input", "-i", help="Record file (default: stdin)")

    fetch_parser = subparsers.add_parser("fetch", help="Fetch a record from IPFS")
    fetch_parser.add_argument("cid", help="Content identifier")
    fetch_parser.add_argument("--private-key", help="Decrypt with this private key")

    return parser


COMMANDS = {
    "info": cmd_info,
    "keygen": cmd_keygen,
    "encrypt": cmd_encrypt,
    "decrypt": cmd_decrypt,
    "symkey": cmd_symkey,
    "sym-encrypt": cmd_sym_encrypt,
    "sym-decrypt": cmd_sym_decrypt,
    "upload": cmd_upload,
    "fetch": cmd_fetch,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for MedVault."""
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv()
    try:
        config = VaultConfig.from_env().with_overrides(
            ipfs_api_url=args.api_url,
            log_level=args.log_level.upper() if args.log_level else None,
        )
    except VaultError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    command = COMMANDS.get(args.command or "info")
    try:
        command(args, config)
    except VaultError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
