"""
Custodial wallet store.

Owns the user id -> wallet catalog and answers balance queries for a user's
wallet against the network.
"""

from decimal import Decimal, ROUND_DOWN
from typing import TYPE_CHECKING, Optional

from loguru import logger
from solana.rpc.async_api import AsyncClient
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from vaultbot.config import BALANCE_DISPLAY_DECIMALS
from vaultbot.errors import InvalidKeyData, InvalidWalletData, WalletNotFound
from vaultbot.solana.key_material import KeyMaterial
from vaultbot.solana.models import (
    AssetKind,
    BalanceReport,
    BalanceResult,
    BalanceState,
    Wallet,
)
from vaultbot.solana.token_program import get_token_account

if TYPE_CHECKING:
    from vaultbot.utils.wallet_storage import WalletCatalog


def truncate_decimals(value, places: int = BALANCE_DISPLAY_DECIMALS) -> float:
    """Cut a number to a fixed number of decimal places without rounding up."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_DOWN))


def raw_to_ui(raw_amount: int, decimals: int, places: int = BALANCE_DISPLAY_DECIMALS) -> float:
    """Convert base units to a display amount truncated to `places` decimals."""
    return truncate_decimals(Decimal(raw_amount).scaleb(-decimals), places)


class WalletStore:
    """
    Manages custodial wallets: creation, recovery, reset, backup state and balances.
    """

    def __init__(self,
                 catalog: "WalletCatalog",
                 async_client: AsyncClient,
                 key_material: Optional[KeyMaterial] = None):
        """
        Initialize the wallet store.

        Args:
            catalog: Persistent wallet catalog
            async_client: Async Solana RPC client used for balance queries
            key_material: Key generator, a default one is created if omitted
        """
        self.catalog = catalog
        self.async_client = async_client
        self.key_material = key_material or KeyMaterial()

    def get_wallet(self, user_id: str) -> Optional[Wallet]:
        return self.catalog.get(user_id)

    def create_wallet(self, user_id: str) -> Wallet:
        """
        Create a fresh wallet for a user, replacing any existing one.

        The keypair is derived from a new mnemonic, which is kept only until
        the user backs it up.

        Args:
            user_id: Opaque user identifier

        Returns:
            The new wallet record
        """
        seed_phrase = self.key_material.generate_mnemonic()
        keypair = self.key_material.derive_keypair(seed_phrase)
        wallet = Wallet(
            public_key=str(keypair.pubkey()),
            secret_key=self.key_material.encode_secret(keypair),
            seed_phrase_backed_up=False,
            seed_phrase=seed_phrase,
        )
        self.catalog.put(user_id, wallet)
        logger.info(f"Created new wallet for user {user_id}: {wallet.public_key}")
        return wallet

    def update_wallet(self, user_id: str, wallet: Wallet) -> None:
        self.catalog.put(user_id, wallet)
        logger.info(f"Replaced wallet for user {user_id}: {wallet.public_key}")

    def mark_seed_phrase_backed_up(self, user_id: str) -> None:
        """Flag the wallet as backed up and erase its stored mnemonic."""
        wallet = self.catalog.get(user_id)
        if wallet is None:
            return
        updated = wallet.model_copy(update={"seed_phrase_backed_up": True, "seed_phrase": None})
        self.catalog.put(user_id, updated)
        logger.info(f"Seed phrase marked as backed up for user {user_id}")

    def reset_wallet(self, user_id: str) -> None:
        """Delete a user's wallet. There is no way back."""
        if self.catalog.delete(user_id):
            logger.warning(f"Wallet reset for user {user_id}")

    def get_keypair_for_user(self, user_id: str) -> Keypair:
        """
        Load the signing keypair of a user's wallet.

        Raises:
            WalletNotFound: If the user has no wallet
            InvalidWalletData: If the stored secret key is corrupt
        """
        wallet = self.catalog.get(user_id)
        if wallet is None:
            raise WalletNotFound("Wallet not found")

        try:
            keypair = self.key_material.keypair_from_stored_secret(wallet.secret_key)
        except InvalidKeyData as e:
            logger.error(f"Invalid wallet data for user {user_id}: {str(e)}")
            raise InvalidWalletData("Invalid wallet data") from e

        if str(keypair.pubkey()) != wallet.public_key:
            logger.error(f"Stored secret key does not match public key for user {user_id}")
            raise InvalidWalletData("Invalid wallet data")
        return keypair

    async def check_balance_detailed(self, user_id: str, asset: AssetKind) -> BalanceResult:
        """
        Query one balance of a user's wallet.

        Args:
            user_id: Opaque user identifier
            asset: SOL, USDC or USDi

        Returns:
            ZERO when there is no wallet or no token account, AVAILABLE with a
            truncated amount, or UNKNOWN when the query failed
        """
        wallet = self.catalog.get(user_id)
        if wallet is None:
            return BalanceResult(asset=asset)

        try:
            owner = Pubkey.from_string(wallet.public_key)
            if asset is AssetKind.SOL:
                response = await self.async_client.get_balance(owner)
                raw_amount = response.value
            else:
                token_account = get_token_account(owner, asset.mint)
                account_info = await self.async_client.get_account_info(token_account)
                if account_info.value is None:
                    return BalanceResult(asset=asset)
                response = await self.async_client.get_token_account_balance(token_account)
                raw_amount = int(response.value.amount)
        except Exception as e:
            logger.error(
                f"Error checking {asset.value} balance for user {user_id}: {str(e)}",
                extra={"user_id": user_id, "asset": asset.value}
            )
            return BalanceResult(asset=asset, state=BalanceState.UNKNOWN)

        amount = raw_to_ui(raw_amount, asset.decimals)
        state = BalanceState.AVAILABLE if raw_amount > 0 else BalanceState.ZERO
        return BalanceResult(asset=asset, amount=amount, raw_amount=raw_amount, state=state)

    async def check_balance(self, user_id: str, asset: AssetKind) -> float:
        """
        Query one balance, reporting failures as zero.

        Missing accounts and network errors both read as 0; use
        check_balance_detailed to tell them apart.
        """
        result = await self.check_balance_detailed(user_id, asset)
        return result.amount

    async def check_balances(self, user_id: str) -> BalanceReport:
        """Query SOL, USDC and USDi balances in turn."""
        sol = await self.check_balance_detailed(user_id, AssetKind.SOL)
        usdc = await self.check_balance_detailed(user_id, AssetKind.USDC)
        usdi = await self.check_balance_detailed(user_id, AssetKind.USDI)
        return BalanceReport(
            sol=sol.amount,
            usdc=usdc.amount,
            usdi=usdi.amount,
            unknown=[result.asset for result in (sol, usdc, usdi) if result.is_unknown],
        )
