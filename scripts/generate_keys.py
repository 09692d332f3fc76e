#!/usr/bin/env python3
"""
Generate a Flow account key pair for the service account.

This script generates:
- Private key (service.key, hex encoded scalar)
- Public key (service.pub, hex encoded, 64 bytes)
- key_info.json with the algorithms to register the key with
"""

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from voucher.config import VoucherConfig
from voucher.core.models import HashAlgorithm, SignatureAlgorithm
from voucher.tx.signer import generate_test_key


def generate_keys(output_dir: str = "./keys", algorithm: str = "ECDSA_P256") -> dict:
    """
    Generate a new key pair.

    Args:
        output_dir: Directory to save keys
        algorithm: Signature algorithm of the key

    Returns:
        Dictionary with key info
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    signature_algorithm = SignatureAlgorithm.parse(algorithm)
    signer = generate_test_key(signature_algorithm, VoucherConfig(_env_file=None))

    key_path = output_path / "service.key"
    key_path.write_text(signer.private_key_hex + "\n")
    key_path.chmod(0o600)

    pub_path = output_path / "service.pub"
    pub_path.write_text(signer.public_key_hex + "\n")

    info = {
        "private_key_path": str(key_path),
        "public_key_path": str(pub_path),
        "public_key": signer.public_key_hex,
        "signature_algorithm": signature_algorithm.value,
        "hash_algorithm": HashAlgorithm.SHA3_256.value,
    }

    info_path = output_path / "key_info.json"
    with open(info_path, "w") as f:
        json.dump(info, f, indent=2)

    return info


def main():
    parser = argparse.ArgumentParser(description="Generate a Flow account key pair")
    parser.add_argument(
        "--output-dir", "-o",
        default="./keys",
        help="Output directory for keys (default: ./keys)"
    )
    parser.add_argument(
        "--algorithm", "-a",
        choices=[a.value for a in SignatureAlgorithm],
        default=SignatureAlgorithm.ECDSA_P256.value,
        help="Signature algorithm (default: ECDSA_P256)"
    )
    parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Overwrite existing keys"
    )

    args = parser.parse_args()

    output_path = Path(args.output_dir)
    key_path = output_path / "service.key"

    if key_path.exists() and not args.force:
        print(f"⚠️  Keys already exist at {args.output_dir}")
        print("   Use --force to overwrite")

        info_path = output_path / "key_info.json"
        if info_path.exists():
            with open(info_path) as f:
                info = json.load(f)
            print("\n📋 Existing Key Info:")
            print(f"   Public key: {info['public_key']}")
        return

    print("🔑 Generating new Flow account key...")
    info = generate_keys(args.output_dir, args.algorithm)

    print("\n✅ Keys generated successfully!")
    print(f"\n📁 Keys saved to: {args.output_dir}/")
    print("   - service.key (KEEP SECRET!)")
    print("   - service.pub")
    print("   - key_info.json")

    print(f"\n🔐 Public key ({info['signature_algorithm']}/{info['hash_algorithm']}):")
    print(f"   {info['public_key']}")

    print("\n💰 To create a funded testnet account:")
    print("   1. Go to https://testnet-faucet.onflow.org/")
    print("   2. Paste the public key above")
    print(f"   3. Select {info['signature_algorithm']} and {info['hash_algorithm']}")
    print("   4. Set VOUCHER_ACCOUNT_ADDRESS to the created address")
    print("      and VOUCHER_PRIVATE_KEY_HEX to the contents of service.key")

    print("\n⚠️  IMPORTANT: Keep your service.key file secure!")


if __name__ == "__main__":
    main()
