"""
Tests for CLMM swap instruction encoding.
"""

import pytest
from solders.keypair import Keypair
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID

from vaultbot.solana.constants import (
    CLMM_PROGRAM_ID,
    DEPOSIT_SQRT_PRICE_LIMIT_X64,
    INPUT_VAULT,
    OUTPUT_VAULT,
    SWAP_DISCRIMINATOR,
    TICK_ARRAY_DEPOSIT,
    TICK_ARRAY_WITHDRAW,
    USDC_MINT,
    USDI_MINT,
    WITHDRAW_SQRT_PRICE_LIMIT_X64,
)
from vaultbot.solana.models import SwapDirection
from vaultbot.solana.swap_program import (
    build_swap_instructions,
    build_swap_request,
    decode_swap_data,
    encode_swap_data,
    minimum_amount_out,
    swap_account_metas,
)
from vaultbot.solana.token_program import get_token_account

# Positions whose accounts trade places between directions
MIRRORED_PAIRS = [(3, 4), (5, 6), (11, 12)]


@pytest.mark.parametrize("raw_amount,expected", [
    (0, 0),
    (1, 0),
    (1000, 989),
    (5_000_000, 4_945_000),
    (1_000_001, 989_000),
])
def test_minimum_amount_out(raw_amount, expected):
    assert minimum_amount_out(raw_amount) == expected


def test_minimum_amount_out_large_amount_stays_exact():
    raw = 2 ** 63
    assert minimum_amount_out(raw) == raw * 989 // 1000
    assert minimum_amount_out(raw) < raw


def test_deposit_payload_layout():
    data = encode_swap_data(5_000_000, SwapDirection.DEPOSIT)

    assert len(data) == 41
    assert data[:8] == bytes.fromhex("2b04ed0b1ac91e62")
    assert data[8:16] == (5_000_000).to_bytes(8, "little")
    assert data[16:24] == (4_945_000).to_bytes(8, "little")
    assert data[40] == 1


def test_price_limit_is_split_low_then_high():
    data = encode_swap_data(1, SwapDirection.DEPOSIT)

    low = int.from_bytes(data[24:32], "little")
    high = int.from_bytes(data[32:40], "little")
    assert (high << 64) | low == DEPOSIT_SQRT_PRICE_LIMIT_X64
    assert high != 0


def test_withdraw_payload_uses_low_price_limit():
    decoded = decode_swap_data(encode_swap_data(2_500_000, SwapDirection.WITHDRAW))

    assert decoded == {
        "amount": 2_500_000,
        "minimum_amount_out": 2_472_500,
        "sqrt_price_limit_x64": WITHDRAW_SQRT_PRICE_LIMIT_X64,
        "direction_byte": 1,
    }


def test_decode_rejects_other_payloads():
    with pytest.raises(ValueError):
        decode_swap_data(bytes(41))
    with pytest.raises(ValueError):
        decode_swap_data(SWAP_DISCRIMINATOR + bytes(10))


def test_account_list_mirrors_between_directions():
    payer = Keypair().pubkey()
    deposit = swap_account_metas(build_swap_request(payer, 1.0, SwapDirection.DEPOSIT))
    withdraw = swap_account_metas(build_swap_request(payer, 1.0, SwapDirection.WITHDRAW))

    assert len(deposit) == len(withdraw) == 16

    for a, b in MIRRORED_PAIRS:
        assert deposit[a].pubkey == withdraw[b].pubkey
        assert deposit[b].pubkey == withdraw[a].pubkey

    moving = {a for pair in MIRRORED_PAIRS for a in pair} | {15}
    for index in range(16):
        if index not in moving:
            assert deposit[index] == withdraw[index]


def test_deposit_account_positions():
    payer = Keypair().pubkey()
    metas = swap_account_metas(build_swap_request(payer, 1.0, SwapDirection.DEPOSIT))

    assert metas[0].pubkey == payer
    assert metas[0].is_signer and metas[0].is_writable
    assert not any(meta.is_signer for meta in metas[1:])
    assert metas[3].pubkey == get_token_account(payer, USDC_MINT)
    assert metas[4].pubkey == get_token_account(payer, USDI_MINT)
    assert (metas[5].pubkey, metas[6].pubkey) == (INPUT_VAULT, OUTPUT_VAULT)
    assert (metas[11].pubkey, metas[12].pubkey) == (USDC_MINT, USDI_MINT)
    assert metas[15].pubkey == TICK_ARRAY_DEPOSIT


def test_withdraw_uses_its_own_tick_array():
    payer = Keypair().pubkey()
    metas = swap_account_metas(build_swap_request(payer, 1.0, SwapDirection.WITHDRAW))
    assert metas[15].pubkey == TICK_ARRAY_WITHDRAW


@pytest.mark.asyncio
async def test_swap_only_when_accounts_exist(rpc):
    payer = Keypair().pubkey()
    rpc.fund(payer, usdc_raw=5_000_000, usdi_raw=0)

    instructions = await build_swap_instructions(rpc, payer, 5, SwapDirection.DEPOSIT)

    assert len(instructions) == 1
    assert instructions[0].program_id == CLMM_PROGRAM_ID
    assert decode_swap_data(bytes(instructions[0].data))["amount"] == 5_000_000


@pytest.mark.asyncio
async def test_missing_accounts_are_created_before_swap(rpc):
    payer = Keypair().pubkey()

    instructions = await build_swap_instructions(rpc, payer, 1.25, SwapDirection.WITHDRAW)

    assert [ix.program_id for ix in instructions] == [
        ASSOCIATED_TOKEN_PROGRAM_ID,
        ASSOCIATED_TOKEN_PROGRAM_ID,
        CLMM_PROGRAM_ID,
    ]
    created = [ix.accounts[1].pubkey for ix in instructions[:2]]
    assert created == [get_token_account(payer, USDC_MINT), get_token_account(payer, USDI_MINT)]
