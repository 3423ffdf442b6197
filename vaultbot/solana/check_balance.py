"""
Utility script to check a custodial wallet's balances.
"""

import argparse
import asyncio
from loguru import logger
from solana.rpc.async_api import AsyncClient

from vaultbot.config import SOLANA_RPC_URL, WALLET_DATA_FILE
from vaultbot.main import setup_logging
from vaultbot.solana.models import BalanceReport
from vaultbot.solana.wallet_store import WalletStore
from vaultbot.utils.wallet_storage import WalletCatalog


def format_report(address: str, report: BalanceReport) -> str:
    lines = [
        f"Wallet: {address}",
        f"SOL:  {report.sol:.5f}",
        f"USDC: {report.usdc:.5f}",
        f"USDi: {report.usdi:.5f}",
    ]
    if report.unknown:
        lines.append("Unavailable: " + ", ".join(asset.value for asset in report.unknown))
    return "\n".join(lines)


async def check_user_balances(user_id: str, rpc_url: str = SOLANA_RPC_URL,
                              wallet_data_file: str = WALLET_DATA_FILE) -> bool:
    """Print balances of a user's wallet. Returns False if the user has none."""
    async_client = AsyncClient(rpc_url)
    try:
        store = WalletStore(WalletCatalog(wallet_data_file), async_client)
        wallet = store.get_wallet(user_id)
        if wallet is None:
            print(f"No wallet found for user {user_id}")
            return False

        report = await store.check_balances(user_id)
        print(format_report(wallet.public_key, report))
        return True
    finally:
        await async_client.close()


async def main():
    parser = argparse.ArgumentParser(description="Check a vault user's wallet balances")
    parser.add_argument("user_id", type=str, help="User identifier in the wallet catalog")
    parser.add_argument("--rpc-url", type=str, default=SOLANA_RPC_URL, help="Solana RPC endpoint")
    parser.add_argument("--data-file", type=str, default=WALLET_DATA_FILE, help="Wallet catalog file")

    args = parser.parse_args()
    logger.debug(f"Checking balances for user {args.user_id}")
    await check_user_balances(args.user_id, args.rpc_url, args.data_file)


def run():
    setup_logging()
    asyncio.run(main())


if __name__ == "__main__":
    run()
