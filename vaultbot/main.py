#!/usr/bin/env python
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from loguru import logger
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed

from vaultbot.config import LOG_DIR, LOG_LEVEL, SOLANA_NETWORK, SOLANA_RPC_URL, WALLET_DATA_FILE
from vaultbot.solana.integration import VaultOrchestrator
from vaultbot.solana.tx_executor import TxExecutor
from vaultbot.solana.wallet_store import WalletStore
from vaultbot.state.flow_dispatcher import FlowDispatcher
from vaultbot.state.session_manager import SessionManager
from vaultbot.utils.wallet_storage import WalletCatalog


def setup_logging(level: str = LOG_LEVEL, log_dir: str = LOG_DIR):
    """Configure structured logging with loguru."""
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    logger.remove()  # Remove default handler
    logger.add(
        f"{log_dir}/vault_{{time}}.log",
        rotation="1 day",
        retention="14 days",
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message} | {extra}",
        serialize=True,  # JSON formatting for structured logs
    )

    # Also send logs to stdout
    logger.add(
        sys.stdout,
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}"
    )

    # Redirect solana/httpx loggers to loguru
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


class InterceptHandler(logging.Handler):
    """Intercept standard logging and redirect to loguru."""
    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


@dataclass
class VaultEngine:
    """Everything a front-end needs to drive the vault."""
    async_client: AsyncClient
    wallet_store: WalletStore
    sessions: SessionManager
    orchestrator: VaultOrchestrator
    dispatcher: FlowDispatcher

    async def close(self):
        await self.async_client.close()


def build_engine(rpc_url: str = SOLANA_RPC_URL, wallet_data_file: str = WALLET_DATA_FILE) -> VaultEngine:
    """Wire the catalog, RPC client, store, pipeline and conversation state together."""
    async_client = AsyncClient(rpc_url, commitment=Confirmed)
    wallet_store = WalletStore(WalletCatalog(wallet_data_file), async_client)
    sessions = SessionManager()
    orchestrator = VaultOrchestrator(
        wallet_store=wallet_store,
        async_client=async_client,
        sessions=sessions,
        tx_executor=TxExecutor(async_client),
    )
    logger.info(f"Vault engine ready on {SOLANA_NETWORK} ({rpc_url})")
    return VaultEngine(
        async_client=async_client,
        wallet_store=wallet_store,
        sessions=sessions,
        orchestrator=orchestrator,
        dispatcher=FlowDispatcher(orchestrator),
    )
