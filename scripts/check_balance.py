#!/usr/bin/env python3
"""
Check the balance and keys of the service account on testnet.
"""

import asyncio
import argparse
import sys
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from voucher.config import NetworkType, VoucherConfig
from voucher.core.models import Address
from voucher.node.interface import AccountNotFoundError
from voucher.node.rest import FlowRestAdapter
from voucher.tx.signer import EcdsaSigner


async def check_balance(address: str, keys_dir: str, network: str):
    """Check the balance of the service account."""
    config = VoucherConfig(network=NetworkType(network))
    account_address = Address.from_hex(address)

    print(f"\n📬 Service Address: {account_address}")

    local_public_key = None
    key_path = Path(keys_dir) / "service.key"
    if key_path.exists():
        signer = EcdsaSigner(config=config)
        signer.load_key_from_file(str(key_path))
        local_public_key = signer.public_key

    node = FlowRestAdapter(config)
    await node.connect()

    try:
        try:
            account = await node.get_account(account_address)
        except AccountNotFoundError:
            print(f"\n❌ Account {account_address} does not exist on {network}")
            return

        print("\n💰 Balance:")
        print(f"   Total: {account.balance} FLOW")

        print("\n🔑 Keys:")
        for key in account.keys:
            marker = ""
            if local_public_key is not None and key.public_key == local_public_key:
                marker = "  <- service.key"
            status = "revoked" if key.revoked else f"weight {key.weight}"
            print(
                f"   {key.index}. {key.signature_algorithm.value}/{key.hash_algorithm.value} "
                f"{status}, seq {key.sequence_number}{marker}"
            )

        if account.balance >= Decimal("0.01"):
            print("\n✅ Sufficient balance for demo transactions!")
        else:
            print("\n⚠️  Balance may be low for transaction fees")
            print("   Faucet: https://testnet-faucet.onflow.org/")

        return {
            "address": account_address.hex,
            "balance": str(account.balance),
            "keys": len(account.keys),
        }

    finally:
        await node.disconnect()


def main():
    parser = argparse.ArgumentParser(description="Check service account balance")
    parser.add_argument("address", help="Service account address")
    parser.add_argument(
        "--keys-dir", "-k",
        default="./keys",
        help="Directory containing keys (default: ./keys)"
    )
    parser.add_argument(
        "--network", "-n",
        choices=[n.value for n in NetworkType],
        default=NetworkType.TESTNET.value,
    )

    args = parser.parse_args()
    asyncio.run(check_balance(args.address, args.keys_dir, args.network))


if __name__ == "__main__":
    main()
