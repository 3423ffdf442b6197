"""
Solana integration for the vault.

This package contains modules for interacting with the Solana blockchain,
including key material, wallet storage, instruction building and
transaction execution.
"""

from vaultbot.solana.models import (
    AssetKind,
    BalanceReport,
    ConfirmationOutcome,
    ConfirmationStatus,
    SwapDirection,
    Wallet,
)
from vaultbot.solana.key_material import KeyMaterial
from vaultbot.solana.wallet_store import WalletStore
from vaultbot.solana.tx_executor import TxExecutor, ProgressNotifier
from vaultbot.solana.swap_program import build_swap_instructions, encode_swap_data
from vaultbot.solana.token_program import build_transfer_instructions, parse_address
from vaultbot.solana.integration import VaultOrchestrator
