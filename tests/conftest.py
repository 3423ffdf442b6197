"""
Shared fixtures: an in-memory stand-in for the Solana RPC client and the
vault components wired on top of it.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature

from vaultbot.solana.constants import USDC_MINT, USDI_MINT
from vaultbot.solana.integration import VaultOrchestrator
from vaultbot.solana.key_material import KeyMaterial
from vaultbot.solana.token_program import get_token_account
from vaultbot.solana.tx_executor import ProgressNotifier, TxExecutor
from vaultbot.solana.wallet_store import WalletStore
from vaultbot.state.flow_dispatcher import FlowDispatcher
from vaultbot.state.session_manager import SessionManager
from vaultbot.utils.wallet_storage import WalletCatalog

# All-zero entropy, the standard 24-word BIP-39 test vector
TEST_MNEMONIC = " ".join(["abandon"] * 23 + ["art"])
TEST_SIGNATURE = Signature(bytes([7] * 64))


class FakeRpc:
    """Answers the RPC calls the vault makes from in-memory balances."""

    def __init__(self):
        self.lamports = {}
        self.token_amounts = {}

        self.get_balance = AsyncMock(side_effect=self._get_balance)
        self.get_account_info = AsyncMock(side_effect=self._get_account_info)
        self.get_token_account_balance = AsyncMock(side_effect=self._get_token_account_balance)
        self.get_latest_blockhash = AsyncMock(return_value=SimpleNamespace(
            value=SimpleNamespace(blockhash=Hash.default(), last_valid_block_height=1000)
        ))
        self.send_transaction = AsyncMock(return_value=SimpleNamespace(value=TEST_SIGNATURE))
        self.confirm_transaction = AsyncMock(return_value=SimpleNamespace(value=[SimpleNamespace(err=None)]))
        self.get_signature_statuses = AsyncMock(return_value=SimpleNamespace(value=[SimpleNamespace(err=None)]))
        self.close = AsyncMock()

    def fund(self, owner: Pubkey, lamports=None, usdc_raw=None, usdi_raw=None):
        """Set balances; a token amount of None leaves that account missing."""
        if lamports is not None:
            self.lamports[owner] = lamports
        if usdc_raw is not None:
            self.token_amounts[get_token_account(owner, USDC_MINT)] = usdc_raw
        if usdi_raw is not None:
            self.token_amounts[get_token_account(owner, USDI_MINT)] = usdi_raw

    def open_account(self, token_account: Pubkey):
        self.token_amounts.setdefault(token_account, 0)

    async def _get_balance(self, owner, *args, **kwargs):
        return SimpleNamespace(value=self.lamports.get(owner, 0))

    async def _get_account_info(self, pubkey, *args, **kwargs):
        if pubkey in self.token_amounts:
            return SimpleNamespace(value=SimpleNamespace(owner=pubkey))
        return SimpleNamespace(value=None)

    async def _get_token_account_balance(self, pubkey, *args, **kwargs):
        return SimpleNamespace(value=SimpleNamespace(amount=str(self.token_amounts[pubkey])))

    def sent_transaction(self, index: int = -1):
        return self.send_transaction.await_args_list[index].args[0]


class RecordingNotifier(ProgressNotifier):
    """Remembers which progress messages were shown and cleared."""

    def __init__(self):
        self.shown = []
        self.cleared = []

    async def show(self, text):
        self.shown.append(text)
        return len(self.shown)

    async def clear(self, handle):
        self.cleared.append(handle)

    @property
    def visible(self):
        return [h for h in range(1, len(self.shown) + 1) if h not in self.cleared]


@pytest.fixture
def rpc():
    return FakeRpc()


@pytest.fixture
def catalog_path(tmp_path):
    return str(tmp_path / "wallet_data.json")


@pytest.fixture
def catalog(catalog_path):
    return WalletCatalog(catalog_path)


@pytest.fixture
def key_material():
    return KeyMaterial()


@pytest.fixture
def store(catalog, rpc, key_material):
    return WalletStore(catalog, rpc, key_material)


@pytest.fixture
def sessions():
    return SessionManager()


@pytest.fixture
def executor(rpc):
    return TxExecutor(rpc, confirmation_timeout=0.05)


@pytest.fixture
def orchestrator(store, rpc, sessions, executor):
    return VaultOrchestrator(store, rpc, sessions=sessions, tx_executor=executor)


@pytest.fixture
def dispatcher(orchestrator):
    return FlowDispatcher(orchestrator)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def user_wallet(store):
    """A freshly created wallet for user-1; returns its owner pubkey."""
    wallet = store.create_wallet("user-1")
    return Pubkey.from_string(wallet.public_key)


@pytest.fixture
def mnemonic_phrase():
    return TEST_MNEMONIC
