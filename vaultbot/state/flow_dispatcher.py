"""
Routes free-text replies to the flow the user has pending.

Invalid input never leaves a flow: the state stays as it was and the reply
asks again. Steps that submit a transaction give up their slot before
submitting. Terminal results (transaction outcome, recovery, reset answer)
return the user to NONE.
"""

from typing import Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict

from vaultbot.config import EXPLORER_TX_URL
from vaultbot.errors import (
    ConfirmationTimeout,
    InsufficientBalance,
    InsufficientGasReserve,
    InvalidAddress,
    InvalidMnemonic,
    InvalidWalletData,
    NetworkUnavailable,
    TransactionFailed,
    VaultError,
    WalletNotFound,
)
from vaultbot.solana.integration import VaultOrchestrator
from vaultbot.solana.models import ConfirmationOutcome, Wallet
from vaultbot.solana.tx_executor import ProgressNotifier
from vaultbot.state.session_manager import InvalidTransition, PendingFlow
from vaultbot.utils.validation_utils import (
    parse_confirmation,
    validate_amount_input,
    validate_wallet_address,
)

# Failures on an amount step that the user can fix by sending another amount
RETRYABLE_AMOUNT_ERRORS = (InsufficientBalance, InsufficientGasReserve, NetworkUnavailable)


class FlowReply(BaseModel):
    """What the front-end should tell the user after a message."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool
    text: str
    flow: PendingFlow
    outcome: Optional[ConfirmationOutcome] = None
    wallet: Optional[Wallet] = None
    error: Optional[str] = None


def describe_error(error: VaultError) -> str:
    """User-facing text for a vault failure."""
    if isinstance(error, WalletNotFound):
        return "❌ No wallet found. Use /deposit first."
    if isinstance(error, InvalidWalletData):
        return "❌ Invalid wallet data. Please reset your wallet using /reset."
    if isinstance(error, InsufficientGasReserve):
        return (
            "❌ Insufficient SOL for transaction fees.\n\n"
            f"You need at least {error.required} SOL for transaction fees.\n"
            f"Current balance: {error.available:.5f} SOL"
        )
    if isinstance(error, InsufficientBalance):
        return f"❌ Insufficient {error.asset} balance. You have {error.available:.5f} {error.asset} available."
    if isinstance(error, NetworkUnavailable):
        return "❌ Could not check your balance right now. Please try again."
    if isinstance(error, InvalidAddress):
        return "❌ Invalid Solana address. Please check and try again."
    if isinstance(error, InvalidMnemonic):
        return "❌ Invalid seed phrase. Please check and try again."
    if isinstance(error, ConfirmationTimeout):
        return (
            "⚠️ Transaction sent but confirmation timed out. "
            "Please check your balance in a few minutes."
        )
    if isinstance(error, TransactionFailed):
        return "❌ Transaction failed. Your funds were not moved. Please try again later."
    return "❌ Something went wrong. Please try again later."


def describe_outcome(outcome: ConfirmationOutcome) -> str:
    link = EXPLORER_TX_URL.format(signature=outcome.signature)
    if outcome.is_confirmed:
        return f"✅ Done! Here is the transaction record:\n\nTransaction: {link}"
    return (
        "⚠️ Transaction sent but confirmation timed out. "
        f"Please check your balance in a few minutes.\n\nTransaction: {link}"
    )


class FlowDispatcher:
    """Feeds a user's message into their pending flow."""

    def __init__(self, orchestrator: VaultOrchestrator):
        self.orchestrator = orchestrator
        self.sessions = orchestrator.sessions

    def _keep(self, user_id: str, text: str, error: Optional[VaultError] = None) -> FlowReply:
        return FlowReply(
            ok=False,
            text=text,
            flow=self.sessions.get_flow(user_id),
            error=type(error).__name__ if error else None,
        )

    def _fail(self, user_id: str, error: VaultError, consumed: bool = False) -> FlowReply:
        if not consumed:
            self.sessions.finish(user_id)
        return FlowReply(
            ok=False,
            text=describe_error(error),
            flow=self.sessions.get_flow(user_id),
            error=type(error).__name__,
        )

    def _done(self, user_id: str, text: str, consumed: bool = False, **payload) -> FlowReply:
        if not consumed:
            self.sessions.finish(user_id)
        return FlowReply(ok=True, text=text, flow=self.sessions.get_flow(user_id), **payload)

    def _rearm(self, user_id: str, flow: PendingFlow) -> None:
        # Only if nothing else was started while the request was running
        if self.sessions.get_flow(user_id) is PendingFlow.NONE:
            self.sessions.start(user_id, flow)

    async def handle_text(
        self,
        user_id: str,
        text: str,
        notifier: Optional[ProgressNotifier] = None
    ) -> Optional[FlowReply]:
        """
        Handle a free-text message.

        Args:
            user_id: Opaque user identifier
            text: Raw message text
            notifier: Optional transient message sink for transactions

        Returns:
            The reply to render, or None when no flow is pending
        """
        state = self.sessions.get_state(user_id)
        logger.debug(f"Dispatching message for user {user_id}", extra={"flow": state.flow.value})

        if state.flow is PendingFlow.AWAITING_MINT_AMOUNT:
            return await self._handle_swap_amount(user_id, text, notifier, withdrawal=False)
        if state.flow is PendingFlow.AWAITING_CONVERSION_AMOUNT:
            return await self._handle_swap_amount(user_id, text, notifier, withdrawal=True)
        if state.flow is PendingFlow.AWAITING_WITHDRAWAL_AMOUNT:
            return await self._handle_withdrawal_amount(user_id, text)
        if state.flow is PendingFlow.AWAITING_WITHDRAWAL_ADDRESS:
            return await self._handle_withdrawal_address(user_id, text, state.withdrawal_amount, notifier)
        if state.flow is PendingFlow.AWAITING_SEED_PHRASE:
            return await self._handle_seed_phrase(user_id, text)
        if state.flow is PendingFlow.AWAITING_RESET_CONFIRMATION:
            return await self._handle_reset_confirmation(user_id, text)
        return None

    async def _handle_swap_amount(
        self,
        user_id: str,
        text: str,
        notifier: Optional[ProgressNotifier],
        withdrawal: bool
    ) -> FlowReply:
        is_valid, value = validate_amount_input(text)
        if not is_valid:
            return self._keep(user_id, value)

        flow = PendingFlow.AWAITING_CONVERSION_AMOUNT if withdrawal else PendingFlow.AWAITING_MINT_AMOUNT
        operation = self.orchestrator.convert if withdrawal else self.orchestrator.mint

        # The slot is consumed before submission so a repeated message cannot swap twice
        self.sessions.finish(user_id)
        try:
            outcome = await operation(user_id, value, notifier=notifier)
        except RETRYABLE_AMOUNT_ERRORS as e:
            self._rearm(user_id, flow)
            return self._keep(user_id, describe_error(e), error=e)
        except VaultError as e:
            logger.error(f"Swap failed for user {user_id}: {str(e)}")
            return self._fail(user_id, e, consumed=True)

        return self._done(user_id, describe_outcome(outcome), consumed=True, outcome=outcome)

    async def _handle_withdrawal_amount(self, user_id: str, text: str) -> FlowReply:
        is_valid, value = validate_amount_input(text)
        if not is_valid:
            return self._keep(user_id, value)

        try:
            await self.orchestrator.check_withdrawal_amount(user_id, value)
        except RETRYABLE_AMOUNT_ERRORS as e:
            return self._keep(user_id, describe_error(e), error=e)
        except VaultError as e:
            return self._fail(user_id, e)

        try:
            self.sessions.advance(user_id, PendingFlow.AWAITING_WITHDRAWAL_ADDRESS, withdrawal_amount=value)
        except InvalidTransition:
            logger.info(f"Withdrawal amount for user {user_id} arrived after the step moved on")
            return self._keep(user_id, "This withdrawal is no longer waiting for an amount.")

        return FlowReply(
            ok=True,
            text=(
                "What receiving address do you want to use?\n"
                "Make sure the address can receive USDC on Solana network."
            ),
            flow=PendingFlow.AWAITING_WITHDRAWAL_ADDRESS,
        )

    async def _handle_withdrawal_address(
        self,
        user_id: str,
        text: str,
        amount: Optional[float],
        notifier: Optional[ProgressNotifier]
    ) -> FlowReply:
        is_valid, address = validate_wallet_address(text)
        if not is_valid:
            return self._keep(user_id, address, error=InvalidAddress(address))

        if amount is None:
            logger.error(f"Withdrawal address step for user {user_id} has no amount")
            return self._fail(user_id, VaultError("No withdrawal amount pending"))

        self.sessions.finish(user_id)
        try:
            outcome = await self.orchestrator.withdraw(user_id, amount, address, notifier=notifier)
        except VaultError as e:
            logger.error(f"Withdrawal failed for user {user_id}: {str(e)}")
            return self._fail(user_id, e, consumed=True)

        return self._done(user_id, describe_outcome(outcome), consumed=True, outcome=outcome)

    async def _handle_seed_phrase(self, user_id: str, text: str) -> FlowReply:
        try:
            wallet = await self.orchestrator.recover(user_id, text)
        except InvalidMnemonic as e:
            return self._keep(user_id, describe_error(e), error=e)

        return self._done(
            user_id,
            (
                "✅ Wallet recovered successfully!\n\n"
                f"Your wallet address: {wallet.public_key}\n\n"
                "You can now use all bot functions normally."
            ),
            wallet=wallet,
        )

    async def _handle_reset_confirmation(self, user_id: str, text: str) -> FlowReply:
        confirmed = parse_confirmation(text)
        if confirmed is None:
            return self._keep(user_id, "Please answer yes or no.")

        if await self.orchestrator.reset(user_id, confirmed):
            return self._done(user_id, "✅ Wallet has been reset.\n\nUse /deposit to create a new wallet.")
        return self._done(user_id, "Wallet reset cancelled.")
