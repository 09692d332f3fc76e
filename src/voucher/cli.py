"""
Command-line interface for the Flow voucher client.

Provides commands for paying, verifying payments and managing accounts.
"""

import argparse
import asyncio
import sys
from typing import Optional

import structlog

from voucher import __version__
from voucher.client import VoucherClient
from voucher.config import NetworkType, VoucherConfig, set_config
from voucher.core.models import SignatureAlgorithm
from voucher.errors import VoucherError
from voucher.tx.signer import generate_test_key


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_format
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    import logging
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--network",
        choices=[n.value for n in NetworkType],
        help="Flow network (default: from VOUCHER_NETWORK or testnet)",
    )
    parser.add_argument(
        "--access-url",
        help="Access node REST URL (overrides the network default)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Output logs in JSON format",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="flow-voucher",
        description="Flow voucher payments client",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    balance_parser = subparsers.add_parser("balance", help="Show the FLOW balance of an account")
    balance_parser.add_argument("address", help="Account address")
    _add_common_arguments(balance_parser)

    account_parser = subparsers.add_parser("account", help="Show an account and its keys")
    account_parser.add_argument("address", help="Account address")
    _add_common_arguments(account_parser)

    fusd_parser = subparsers.add_parser("transfer-fusd", help="Transfer FUSD")
    fusd_parser.add_argument("recipient", help="Recipient address")
    fusd_parser.add_argument("amount", help="Amount with 8 decimals (e.g. 10.00000000)")
    fusd_parser.add_argument("--sender", help="Sender address (default: service account)")
    _add_common_arguments(fusd_parser)

    verify_parser = subparsers.add_parser("verify-fusd", help="Verify an FUSD payment to the service account")
    verify_parser.add_argument("payer", help="Payer address")
    verify_parser.add_argument("amount", help="Expected amount with 8 decimals")
    verify_parser.add_argument("transaction_id", help="Payment transaction id")
    _add_common_arguments(verify_parser)

    flow_parser = subparsers.add_parser("transfer-flow", help="Transfer FLOW")
    flow_parser.add_argument("recipient", help="Recipient address")
    flow_parser.add_argument("amount", help="Amount with 8 decimals (e.g. 10.00000000)")
    flow_parser.add_argument("--sender", help="Sender address (default: service account)")
    _add_common_arguments(flow_parser)

    account_create_parser = subparsers.add_parser("create-account", help="Create an account for a public key")
    account_create_parser.add_argument("public_key", help="Uncompressed ECDSA_P256 public key (hex)")
    account_create_parser.add_argument("--payer", help="Paying account (default: service account)")
    _add_common_arguments(account_create_parser)

    keygen_parser = subparsers.add_parser("generate-key", help="Generate a new key pair")
    keygen_parser.add_argument(
        "--algorithm",
        choices=[a.value for a in SignatureAlgorithm],
        default=SignatureAlgorithm.ECDSA_P256.value,
    )

    return parser


def build_config(args: argparse.Namespace) -> VoucherConfig:
    """Create configuration from the environment and command-line overrides."""
    overrides = {
        "log_level": getattr(args, "log_level", "INFO"),
        "log_json": getattr(args, "log_json", False),
    }
    if getattr(args, "network", None):
        overrides["network"] = NetworkType(args.network)
    if getattr(args, "access_url", None):
        overrides["access_api_url"] = args.access_url

    config = VoucherConfig(**overrides)
    set_config(config)
    return config


async def run_command(args: argparse.Namespace, client: Optional[VoucherClient] = None) -> int:
    """Run a client command and print its outcome."""
    client = client or VoucherClient(build_config(args))

    async with client:
        if args.command == "balance":
            balance = await client.get_account_balance(args.address)
            print(f"{balance} FLOW")

        elif args.command == "account":
            account = await client.get_account(args.address)
            print(f"Address: {account.address}")
            print(f"Balance: {account.balance} FLOW")
            for key in account.keys:
                print(
                    f"  Key {key.index}: {key.signature_algorithm.value}/{key.hash_algorithm.value} "
                    f"weight={key.weight} seq={key.sequence_number}"
                    f"{' revoked' if key.revoked else ''}"
                )

        elif args.command == "transfer-fusd":
            sender = args.sender or client.account_address
            tx_id = await client.transfer_fusd(sender, args.recipient, args.amount)
            print(tx_id)

        elif args.command == "verify-fusd":
            await client.verify_fusd_transfer(args.payer, args.amount, args.transaction_id)
            print("Payment verified")

        elif args.command == "transfer-flow":
            sender = args.sender or client.account_address
            tx_id = await client.transfer_tokens(sender, args.recipient, args.amount)
            print(tx_id)

        elif args.command == "create-account":
            payer = args.payer or client.account_address
            result = await client.create_account(payer, args.public_key)
            if not result.ok:
                print(f"Account creation failed ({result.reason.value}): {result.error_message}")
                return 1
            print(result.address)

    return 0


def main() -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Setup logging
    log_level = getattr(args, "log_level", "WARNING")
    log_json = getattr(args, "log_json", False)
    setup_logging(log_level, log_json)

    if args.command == "generate-key":
        signer = generate_test_key(SignatureAlgorithm.parse(args.algorithm))
        print(f"Private key: {signer.private_key_hex}")
        print(f"Public key:  {signer.public_key_hex}")
        return

    try:
        sys.exit(asyncio.run(run_command(args)))
    except (VoucherError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
