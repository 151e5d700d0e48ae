#!/usr/bin/env python3
"""
UTxO RPC Provider - Infrastructure Test

This script tests the connection to your UTxO RPC endpoint.

Usage:
    python main.py [address]
"""

import asyncio
import logging
import sys

from config import settings
from u5c import U5CProvider, U5CError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def test_infrastructure(address: str = "") -> bool:
    """
    Test the infrastructure setup:
    1. Connect to the endpoint
    2. Read protocol parameters
    3. Optionally list UTxOs at an address
    """
    print("=" * 60)
    print("UTxO RPC Provider - Infrastructure Test")
    print("=" * 60)
    print()
    print(f"UTxO RPC URL: {settings.u5c_url}")
    print()

    provider = U5CProvider.from_settings(settings)

    print("[1/3] Testing connection...")
    if not await provider.client.connect():
        print("❌ FAILED: Could not connect")
        print()
        print("Troubleshooting:")
        print("  1. Is the indexer (e.g. Dolos) running and synced?")
        print(f"  2. Is its gRPC port reachable at {settings.u5c_url}?")
        print("  3. Are the API key headers in config/settings.py correct?")
        return False
    print("✅ Connected")

    try:
        print()
        print("[2/3] Reading protocol parameters...")
        params = await provider.get_protocol_parameters()
        print(f"✅ Protocol version {params.protocol_version[0]}.{params.protocol_version[1]}")
        print(f"   Fee: {params.min_fee_a} * size + {params.min_fee_b}")
        for version, model in sorted(params.cost_models.items()):
            print(f"   PlutusV{version} cost model: {len(model)} parameters")
        if params.defaulted_fields:
            print(f"⚠️  Defaulted: {', '.join(sorted(params.defaulted_fields))}")

        print()
        if address:
            print("[3/3] Fetching UTxOs...")
            utxos = await provider.get_utxos(address)
            total = sum(u.assets.lovelace for u in utxos)
            print(f"✅ {len(utxos)} UTxOs, {total / 1_000_000:,.6f} ADA")
            for utxo in utxos[:10]:
                print(f"   {utxo.tx_hash[:16]}..#{utxo.output_index}: {len(utxo.assets) - 1} tokens")
        else:
            print("[3/3] Skipped UTxO fetch (no address given)")

        print()
        print("=" * 60)
        print("✅ All infrastructure tests passed!")
        print("=" * 60)
        return True

    except U5CError as e:
        print(f"❌ Error during testing: {e}")
        logger.exception("Test failed with exception")
        return False

    finally:
        await provider.client.disconnect()


async def main():
    """Main entry point"""
    try:
        success = await test_infrastructure(sys.argv[1] if len(sys.argv) > 1 else "")
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    asyncio.run(main())
