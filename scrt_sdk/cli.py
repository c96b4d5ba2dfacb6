"""
Command line access to address derivation and read-only chain lookups.
"""
import argparse
import json
import logging
import os
import sys
from typing import Any, List, Optional

from .address import AddressScheme, derive_address
from .client import SecretClient
from .config import ChainConfig, NetworkConfig
from .crypto import compressed_public_key
from .exceptions import InvalidKeyMaterial, ScrtError

DEFAULT_KEY_ENV = "SCRT_PRIVATE_KEY"


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, sort_keys=True))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scrt",
        description="Secret Network SDK command line")
    parser.add_argument(
        "--network",
        help="Network name from the packaged table",
        default=os.environ.get("SCRT_NETWORK", "mainnet")
    )
    parser.add_argument(
        "--lcd-url",
        help="Override the LCD gateway URL",
        default=os.environ.get("SCRT_LCD_URL")
    )
    parser.add_argument(
        "--debug",
        help="Enable debug output",
        action="store_true"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    address = sub.add_parser("address", help="Derive an account address")
    address.add_argument("--public-key", help="Compressed public key as hex")
    address.add_argument(
        "--key-env",
        help=f"Environment variable holding a private key (default {DEFAULT_KEY_ENV})",
        default=DEFAULT_KEY_ENV
    )
    address.add_argument("--prefix", help="Address prefix", default="secret")
    address.add_argument(
        "--legacy",
        help="Use the legacy hex address form",
        action="store_true"
    )

    account = sub.add_parser("account", help="Show account number and sequence")
    account.add_argument("address", help="Account address")

    tx = sub.add_parser("tx", help="Look up a transaction by hash")
    tx.add_argument("tx_hash", help="Transaction hash")

    sub.add_parser("networks", help="List known networks")
    return parser


def _public_key_from_args(args: argparse.Namespace) -> bytes:
    if args.public_key:
        try:
            return bytes.fromhex(args.public_key.removeprefix("0x"))
        except ValueError:
            raise InvalidKeyMaterial("Public key must be hex encoded") from None
    secret = os.environ.get(args.key_env)
    if not secret:
        raise InvalidKeyMaterial(
            f"Provide --public-key or set {args.key_env} to a private key"
        )
    return compressed_public_key(secret)


def _client(args: argparse.Namespace) -> SecretClient:
    return SecretClient(ChainConfig.from_network(args.network, base_url=args.lcd_url))


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI and return its exit code."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    try:
        if args.command == "networks":
            networks = NetworkConfig.load_networks()
            _print_json({name: {"chainId": n["chainId"], "lcd": n["lcd"]} for name, n in networks.items()})
            return 0

        if args.command == "address":
            scheme = AddressScheme.LEGACY_HEX if args.legacy else AddressScheme.BECH32
            print(derive_address(_public_key_from_args(args), prefix=args.prefix, scheme=scheme))
            return 0

        with _client(args) as client:
            if args.command == "account":
                _print_json(client.fetch_account_identity(args.address).model_dump())
                return 0

            result = client.find_tx(args.tx_hash)
            if result is None:
                print(f"Transaction {args.tx_hash} not found", file=sys.stderr)
                return 1
            _print_json(result)
            return 0
    except (ScrtError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
