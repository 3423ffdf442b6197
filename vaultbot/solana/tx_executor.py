"""
Transaction execution for the vault.

Stages a blockhash, compiles the instructions into one versioned transaction,
signs it with the wallet keypair, sends it and waits for confirmation. There
are no retries: every failure is terminal for the call and is surfaced.
"""

import asyncio
from enum import Enum
from typing import Any, List, Optional

from loguru import logger
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import TransactionExpiredBlockheightExceededError
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from vaultbot.config import CONFIRMATION_TIMEOUT
from vaultbot.errors import ConfirmationTimeout, TransactionFailed
from vaultbot.solana.models import ConfirmationOutcome, ConfirmationStatus


class PipelineStage(str, Enum):
    IDLE = "idle"
    BLOCKHASH_FETCHED = "blockhash_fetched"
    ASSEMBLED = "assembled"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    TIMED_OUT = "timed_out"
    STATUS_CHECKED = "status_checked"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class ProgressNotifier:
    """
    Shows transient progress messages to the user.

    Front-ends override both methods; the default does nothing. Whatever
    show() returns is passed back to clear().
    """

    async def show(self, text: str) -> Any:
        return None

    async def clear(self, handle: Any) -> None:
        return None


class TxExecutor:
    """
    Executes vault transactions and resolves their confirmation.
    """

    PROCESSING_MESSAGE = "Processing your transaction..."
    WAITING_MESSAGE = "⏳ Waiting for confirmation..."

    def __init__(self,
                async_client: AsyncClient,
                confirmation_timeout: float = CONFIRMATION_TIMEOUT):
        """
        Initialize the transaction executor.

        Args:
            async_client: Async Solana RPC client
            confirmation_timeout: Seconds to wait for confirmation before
                falling back to a status check
        """
        self.async_client = async_client
        self.confirmation_timeout = confirmation_timeout

    def _enter(self, stage: PipelineStage, signature: Optional[str] = None) -> None:
        logger.debug(f"Transaction pipeline -> {stage.value}", extra={"signature": signature})

    async def execute(
        self,
        keypair: Keypair,
        instructions: List[Instruction],
        notifier: Optional[ProgressNotifier] = None,
        strict: bool = False
    ) -> ConfirmationOutcome:
        """
        Run one transaction through the full pipeline.

        Args:
            keypair: Payer and only signer
            instructions: Instructions in execution order
            notifier: Optional transient message sink
            strict: Raise ConfirmationTimeout instead of returning an
                ambiguous outcome

        Returns:
            CONFIRMED or TIMED_OUT_LIKELY_SUCCEEDED outcome

        Raises:
            TransactionFailed: If the network rejected or failed the transaction
            ConfirmationTimeout: Only in strict mode, when confirmation timed out
        """
        notifier = notifier or ProgressNotifier()
        self._enter(PipelineStage.IDLE)

        processing = await self._show(notifier, self.PROCESSING_MESSAGE)
        try:
            try:
                latest = await self.async_client.get_latest_blockhash()
            except Exception as e:
                logger.error(f"Failed to get recent blockhash: {str(e)}")
                raise TransactionFailed("Failed to get recent blockhash") from e
            blockhash = latest.value.blockhash
            last_valid_block_height = latest.value.last_valid_block_height
            self._enter(PipelineStage.BLOCKHASH_FETCHED)

            transaction = self.build_transaction(keypair, instructions, blockhash)
            self._enter(PipelineStage.SIGNED)

            signature = await self._send(transaction)
            self._enter(PipelineStage.SUBMITTED, signature=str(signature))

            waiting = await self._show(notifier, self.WAITING_MESSAGE)
            try:
                outcome = await self._confirm(signature, last_valid_block_height)
            finally:
                await self._clear(notifier, waiting)
        except TransactionFailed:
            self._enter(PipelineStage.FAILED)
            raise
        finally:
            await self._clear(notifier, processing)

        if outcome.is_confirmed:
            self._enter(PipelineStage.CONFIRMED, signature=outcome.signature)
        if strict and outcome.is_ambiguous:
            raise ConfirmationTimeout(outcome.signature)
        return outcome

    def build_transaction(
        self,
        keypair: Keypair,
        instructions: List[Instruction],
        blockhash
    ) -> VersionedTransaction:
        """
        Compile and sign a single-signer transaction.

        Raises:
            TransactionFailed: If the message needs any signer besides the payer
        """
        message = MessageV0.try_compile(keypair.pubkey(), instructions, [], blockhash)
        self._enter(PipelineStage.ASSEMBLED)

        if message.header.num_required_signatures != 1:
            raise TransactionFailed(
                f"Transaction requires {message.header.num_required_signatures} signatures, expected 1"
            )

        transaction = VersionedTransaction(message, [keypair])
        if len(transaction.signatures) != 1 or transaction.signatures[0] == Signature.default():
            raise TransactionFailed("Transaction is not fully signed")
        return transaction

    async def _send(self, transaction: VersionedTransaction) -> Signature:
        try:
            response = await self.async_client.send_transaction(transaction)
        except Exception as e:
            logger.error(f"Error sending transaction: {str(e)}")
            raise TransactionFailed(str(e)) from e
        return response.value

    async def _confirm(self, signature: Signature, last_valid_block_height: int) -> ConfirmationOutcome:
        """
        Race confirmation against the timeout. On a timeout or a failed
        confirmation call, fall back to one status check.
        """
        try:
            response = await asyncio.wait_for(
                self.async_client.confirm_transaction(
                    signature,
                    commitment=Confirmed,
                    last_valid_block_height=last_valid_block_height
                ),
                timeout=self.confirmation_timeout
            )
        except (asyncio.TimeoutError, TransactionExpiredBlockheightExceededError):
            self._enter(PipelineStage.TIMED_OUT, signature=str(signature))
            logger.warning(f"Transaction confirmation timeout for {signature}")
            return await self._check_status(signature, "confirmation timed out")
        except Exception as e:
            # Already broadcast, so a transport error says nothing about the outcome
            logger.warning(f"Error confirming transaction {signature}: {str(e)}")
            return await self._check_status(signature, "confirmation unavailable")

        status = response.value[0] if response.value else None
        if status is not None and status.err is not None:
            logger.error(f"Transaction error: {status.err}", extra={"signature": str(signature)})
            raise TransactionFailed(str(status.err), signature=str(signature))

        logger.info(f"Transaction confirmed: {signature}")
        return ConfirmationOutcome(status=ConfirmationStatus.CONFIRMED, signature=str(signature))

    async def _check_status(self, signature: Signature, reason: str) -> ConfirmationOutcome:
        try:
            response = await self.async_client.get_signature_statuses([signature])
        except Exception as e:
            logger.error(f"Error checking transaction status: {str(e)}")
            return ConfirmationOutcome(
                status=ConfirmationStatus.TIMED_OUT_LIKELY_SUCCEEDED,
                signature=str(signature),
                reason="status check unavailable"
            )
        self._enter(PipelineStage.STATUS_CHECKED, signature=str(signature))

        status = response.value[0] if response.value else None
        if status is not None and status.err is not None:
            logger.error(f"Transaction error reported by status check: {status.err}", extra={"signature": str(signature)})
            raise TransactionFailed(str(status.err), signature=str(signature))

        logger.info(f"No error reported for {signature} ({reason}), treating as likely succeeded")
        return ConfirmationOutcome(
            status=ConfirmationStatus.TIMED_OUT_LIKELY_SUCCEEDED,
            signature=str(signature),
            reason=reason
        )

    async def _show(self, notifier: ProgressNotifier, text: str) -> Any:
        try:
            return await notifier.show(text)
        except Exception as e:
            logger.warning(f"Progress message failed: {str(e)}")
            return None

    async def _clear(self, notifier: ProgressNotifier, handle: Any) -> None:
        if handle is None:
            return
        try:
            await notifier.clear(handle)
        except Exception as e:
            logger.warning(f"Could not clear progress message: {str(e)}")
