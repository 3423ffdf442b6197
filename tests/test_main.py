"""
Tests for engine wiring and the balance script.
"""

import logging

import pytest
from loguru import logger

from vaultbot.main import InterceptHandler, VaultEngine, build_engine, setup_logging
from vaultbot.solana.check_balance import check_user_balances, format_report
from vaultbot.solana.models import AssetKind, BalanceReport


@pytest.mark.asyncio
async def test_build_engine_shares_components(catalog_path):
    engine = build_engine(rpc_url="http://127.0.0.1:8899", wallet_data_file=catalog_path)
    try:
        assert isinstance(engine, VaultEngine)
        assert engine.orchestrator.sessions is engine.sessions
        assert engine.dispatcher.orchestrator is engine.orchestrator
        assert engine.wallet_store.catalog.file_path == catalog_path
    finally:
        await engine.close()


def test_format_report():
    report = BalanceReport(sol=0.5, usdc=12.34567, usdi=0, unknown=[AssetKind.USDI])

    text = format_report("Addr111", report)

    assert "Wallet: Addr111" in text
    assert "USDC: 12.34567" in text
    assert "Unavailable: USDi" in text


@pytest.mark.asyncio
async def test_check_balances_for_unknown_user(catalog_path, capsys):
    assert await check_user_balances("ghost", "http://127.0.0.1:8899", catalog_path) is False
    assert "No wallet found" in capsys.readouterr().out


def test_setup_logging_writes_json_and_intercepts_stdlib(tmp_path):
    log_dir = tmp_path / "logs"
    try:
        setup_logging(level="DEBUG", log_dir=str(log_dir))
        logging.getLogger("solana.rpc").warning("forwarded from stdlib")
        assert any(isinstance(h, InterceptHandler) for h in logging.getLogger().handlers)
    finally:
        logger.remove()
        logging.basicConfig(handlers=[logging.NullHandler()], force=True)

    contents = "".join(path.read_text() for path in log_dir.glob("vault_*.log"))
    assert "forwarded from stdlib" in contents
