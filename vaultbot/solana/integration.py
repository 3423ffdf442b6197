"""
Integration module that combines the vault components.

VaultOrchestrator is the caller boundary: every user-facing flow is one
async method taking already parsed arguments and returning a result or
raising a VaultError subclass.
"""

from typing import Optional

from loguru import logger
from solana.rpc.async_api import AsyncClient

from vaultbot.config import MINIMUM_SOL_BALANCE
from vaultbot.errors import (
    InsufficientBalance,
    InsufficientGasReserve,
    InvalidMnemonic,
    NetworkUnavailable,
    SeedAlreadyBackedUp,
    WalletNotFound,
)
from vaultbot.solana.models import (
    AssetKind,
    BalanceReport,
    BalanceResult,
    ConfirmationOutcome,
    DepositInfo,
    SwapDirection,
    Wallet,
)
from vaultbot.solana.swap_program import build_swap_instructions
from vaultbot.solana.token_program import build_transfer_instructions, parse_address, to_raw_amount
from vaultbot.solana.tx_executor import ProgressNotifier, TxExecutor
from vaultbot.solana.wallet_store import WalletStore
from vaultbot.state.session_manager import PendingFlow, SessionManager


class VaultOrchestrator:
    """
    Orchestrates deposit, mint, convert, withdraw, backup, recovery and reset.

    Operations that touch a user's wallet or submit transactions run under
    that user's lock, so two requests from one user never interleave.
    """

    def __init__(self,
                 wallet_store: WalletStore,
                 async_client: AsyncClient,
                 sessions: Optional[SessionManager] = None,
                 tx_executor: Optional[TxExecutor] = None,
                 minimum_sol_balance: float = MINIMUM_SOL_BALANCE):
        """
        Initialize the orchestrator.

        Args:
            wallet_store: Custodial wallet store
            async_client: Async Solana RPC client
            sessions: Optional SessionManager. If None, creates a new one.
            tx_executor: Optional TxExecutor. If None, creates a new one.
            minimum_sol_balance: SOL required before a swap is attempted
        """
        self.wallet_store = wallet_store
        self.async_client = async_client
        self.sessions = sessions if sessions else SessionManager()
        self.tx_executor = tx_executor if tx_executor else TxExecutor(async_client)
        self.minimum_sol_balance = minimum_sol_balance

        logger.info("VaultOrchestrator initialized")

    def _require_wallet(self, user_id: str) -> Wallet:
        wallet = self.wallet_store.get_wallet(user_id)
        if wallet is None:
            raise WalletNotFound("Wallet not found")
        return wallet

    async def _balance(self, user_id: str, asset: AssetKind) -> BalanceResult:
        """
        Balance to check an amount against.

        Raises:
            NetworkUnavailable: If the balance could not be read
        """
        result = await self.wallet_store.check_balance_detailed(user_id, asset)
        if result.is_unknown:
            raise NetworkUnavailable(f"Could not read {asset.value} balance")
        return result

    async def _require_amount(self, user_id: str, asset: AssetKind, amount: float) -> float:
        balance = await self._balance(user_id, asset)
        available = balance.amount
        # Compared in base units; the display amount is truncated
        if to_raw_amount(amount, asset.decimals) > balance.raw_amount:
            logger.info(
                f"Rejected {asset.value} request for user {user_id}: {amount} > {available}",
                extra={"user_id": user_id, "asset": asset.value}
            )
            raise InsufficientBalance(asset.value, available, requested=amount)
        return available

    async def _require_positive(self, user_id: str, asset: AssetKind) -> float:
        balance = await self._balance(user_id, asset)
        if balance.raw_amount <= 0:
            raise InsufficientBalance(asset.value, balance.amount)
        return balance.amount

    async def _require_gas(self, user_id: str) -> None:
        balance = await self._balance(user_id, AssetKind.SOL)
        if balance.raw_amount < to_raw_amount(self.minimum_sol_balance, AssetKind.SOL.decimals):
            raise InsufficientGasReserve(balance.amount, self.minimum_sol_balance)

    async def deposit_info(self, user_id: str) -> DepositInfo:
        """
        Return the deposit address, creating the wallet on first use.

        Args:
            user_id: Opaque user identifier

        Returns:
            DepositInfo with the address and current balances
        """
        async with self.sessions.lock_for(user_id):
            wallet = self.wallet_store.get_wallet(user_id)
            created = wallet is None
            if created:
                wallet = self.wallet_store.create_wallet(user_id)

        balances = await self.wallet_store.check_balances(user_id)
        return DepositInfo(address=wallet.public_key, created=created, balances=balances)

    async def balances(self, user_id: str) -> BalanceReport:
        self._require_wallet(user_id)
        return await self.wallet_store.check_balances(user_id)

    async def begin_mint(self, user_id: str) -> float:
        """Arm the mint flow; returns the USDC balance available to mint with."""
        self._require_wallet(user_id)
        available = await self._require_positive(user_id, AssetKind.USDC)
        self.sessions.start(user_id, PendingFlow.AWAITING_MINT_AMOUNT)
        return available

    async def begin_convert(self, user_id: str) -> float:
        """Arm the conversion flow; returns the USDi balance available to convert."""
        self._require_wallet(user_id)
        available = await self._require_positive(user_id, AssetKind.USDI)
        self.sessions.start(user_id, PendingFlow.AWAITING_CONVERSION_AMOUNT)
        return available

    async def begin_withdraw(self, user_id: str) -> float:
        """Arm the withdrawal flow; returns the USDC balance available to withdraw."""
        self._require_wallet(user_id)
        available = await self._require_positive(user_id, AssetKind.USDC)
        self.sessions.start(user_id, PendingFlow.AWAITING_WITHDRAWAL_AMOUNT)
        return available

    async def _swap(
        self,
        user_id: str,
        amount: float,
        direction: SwapDirection,
        notifier: Optional[ProgressNotifier],
        strict: bool
    ) -> ConfirmationOutcome:
        table = direction.table
        async with self.sessions.lock_for(user_id):
            self._require_wallet(user_id)
            if direction is SwapDirection.DEPOSIT:
                await self._require_gas(user_id)
            await self._require_amount(user_id, table.input_asset, amount)

            keypair = self.wallet_store.get_keypair_for_user(user_id)
            instructions = await build_swap_instructions(
                self.async_client, keypair.pubkey(), amount, direction
            )
            logger.info(
                f"Submitting {direction.value} swap of {amount} {table.input_asset.value} for user {user_id}"
            )
            return await self.tx_executor.execute(keypair, instructions, notifier=notifier, strict=strict)

    async def mint(
        self,
        user_id: str,
        amount: float,
        notifier: Optional[ProgressNotifier] = None,
        strict: bool = False
    ) -> ConfirmationOutcome:
        """
        Swap USDC into USDi.

        Raises:
            WalletNotFound, InsufficientGasReserve, InsufficientBalance,
            NetworkUnavailable, InvalidWalletData, TransactionFailed
        """
        return await self._swap(user_id, amount, SwapDirection.DEPOSIT, notifier, strict)

    async def convert(
        self,
        user_id: str,
        amount: float,
        notifier: Optional[ProgressNotifier] = None,
        strict: bool = False
    ) -> ConfirmationOutcome:
        """Swap USDi back into USDC."""
        return await self._swap(user_id, amount, SwapDirection.WITHDRAW, notifier, strict)

    async def check_withdrawal_amount(self, user_id: str, amount: float) -> float:
        """
        Check a withdrawal amount against the USDC balance.

        Returns:
            The available USDC balance
        """
        self._require_wallet(user_id)
        return await self._require_amount(user_id, AssetKind.USDC, amount)

    async def withdraw(
        self,
        user_id: str,
        amount: float,
        address: str,
        notifier: Optional[ProgressNotifier] = None,
        strict: bool = False
    ) -> ConfirmationOutcome:
        """
        Send USDC to an external address.

        Raises:
            InvalidAddress: Before any network call, if the address is malformed
            WalletNotFound, InsufficientBalance, NetworkUnavailable,
            InvalidWalletData, TransactionFailed
        """
        parse_address(address)
        async with self.sessions.lock_for(user_id):
            self._require_wallet(user_id)
            await self._require_amount(user_id, AssetKind.USDC, amount)

            keypair = self.wallet_store.get_keypair_for_user(user_id)
            instructions = await build_transfer_instructions(
                self.async_client, keypair.pubkey(), address, amount
            )
            logger.info(f"Submitting withdrawal of {amount} USDC for user {user_id} to {address}")
            return await self.tx_executor.execute(keypair, instructions, notifier=notifier, strict=strict)

    async def backup(self, user_id: str) -> str:
        """
        Export the wallet's seed phrase, once.

        Returns:
            The 24-word phrase

        Raises:
            WalletNotFound: If the user has no wallet
            SeedAlreadyBackedUp: If the phrase was already exported
        """
        async with self.sessions.lock_for(user_id):
            wallet = self._require_wallet(user_id)
            if wallet.seed_phrase_backed_up or not wallet.seed_phrase:
                raise SeedAlreadyBackedUp("Seed phrase has already been backed up")

            seed_phrase = wallet.seed_phrase
            self.wallet_store.mark_seed_phrase_backed_up(user_id)
            return seed_phrase

    def begin_recover(self, user_id: str) -> None:
        self.sessions.start(user_id, PendingFlow.AWAITING_SEED_PHRASE)

    async def recover(self, user_id: str, seed_phrase: str) -> Wallet:
        """
        Replace the user's wallet with the one derived from a seed phrase.

        Raises:
            InvalidMnemonic: If the phrase fails validation; nothing is changed
        """
        key_material = self.wallet_store.key_material
        if not key_material.validate_mnemonic(seed_phrase):
            raise InvalidMnemonic("Invalid seed phrase")

        keypair = key_material.derive_keypair(seed_phrase)
        wallet = Wallet(
            public_key=str(keypair.pubkey()),
            secret_key=key_material.encode_secret(keypair),
            seed_phrase_backed_up=True,
        )
        async with self.sessions.lock_for(user_id):
            self.wallet_store.update_wallet(user_id, wallet)
        logger.info(f"Recovered wallet for user {user_id}: {wallet.public_key}")
        return wallet

    def begin_reset(self, user_id: str) -> None:
        self.sessions.start(user_id, PendingFlow.AWAITING_RESET_CONFIRMATION)

    async def reset(self, user_id: str, confirmed: bool) -> bool:
        """
        Delete the user's wallet if confirmed.

        Returns:
            True if the wallet was reset
        """
        if not confirmed:
            logger.info(f"Wallet reset cancelled by user {user_id}")
            return False

        async with self.sessions.lock_for(user_id):
            self.wallet_store.reset_wallet(user_id)
        return True
