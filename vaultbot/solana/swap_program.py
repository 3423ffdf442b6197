"""
CLMM swap instruction encoding.

Builds the single swap instruction the pool program expects, plus the
associated token account creations it needs in front of it.

Instruction data layout (41 bytes, little-endian):

    0   8  discriminator
    8   8  amount in (base units)
    16  8  minimum amount out
    24  8  sqrt price limit, low 64 bits
    32  8  sqrt price limit, high 64 bits
    40  1  direction byte
"""

from typing import List

from loguru import logger
from solana.rpc.async_api import AsyncClient
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from vaultbot.config import MIN_OUT_DENOMINATOR, MIN_OUT_NUMERATOR
from vaultbot.solana.constants import (
    AMM_CONFIG,
    CLMM_PROGRAM_ID,
    MEMO_PROGRAM_ID,
    OBSERVATION_STATE,
    POOL_STATE,
    SWAP_DATA_LENGTH,
    SWAP_DIRECTION_BYTE,
    SWAP_DISCRIMINATOR,
    TICK_ARRAY_CURRENT,
    TICK_ARRAY_LOWER,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    USDC_MINT,
    USDI_MINT,
)
from vaultbot.solana.models import SwapDirection, SwapRequest
from vaultbot.solana.token_program import (
    create_token_account_instruction,
    get_token_account,
    to_raw_amount,
    token_account_exists,
)

U64_MASK = (1 << 64) - 1


def minimum_amount_out(raw_amount: int) -> int:
    """floor(raw_amount * 0.989), in integer arithmetic."""
    return raw_amount * MIN_OUT_NUMERATOR // MIN_OUT_DENOMINATOR


def encode_swap_data(raw_amount: int, direction: SwapDirection) -> bytes:
    """
    Encode the swap instruction payload.

    Args:
        raw_amount: Input amount in base units
        direction: Swap direction, selects the price limit

    Returns:
        The 41-byte instruction data
    """
    price_limit = direction.table.sqrt_price_limit_x64
    return b"".join([
        SWAP_DISCRIMINATOR,
        raw_amount.to_bytes(8, byteorder='little'),
        minimum_amount_out(raw_amount).to_bytes(8, byteorder='little'),
        (price_limit & U64_MASK).to_bytes(8, byteorder='little'),
        ((price_limit >> 64) & U64_MASK).to_bytes(8, byteorder='little'),
        bytes([SWAP_DIRECTION_BYTE]),
    ])


def decode_swap_data(data: bytes) -> dict:
    """Split swap instruction data back into its fields."""
    if len(data) != SWAP_DATA_LENGTH or data[:8] != SWAP_DISCRIMINATOR:
        raise ValueError("Not a swap instruction payload")
    low = int.from_bytes(data[24:32], 'little')
    high = int.from_bytes(data[32:40], 'little')
    return {
        "amount": int.from_bytes(data[8:16], 'little'),
        "minimum_amount_out": int.from_bytes(data[16:24], 'little'),
        "sqrt_price_limit_x64": (high << 64) | low,
        "direction_byte": data[40],
    }


def swap_account_metas(request: SwapRequest) -> List[AccountMeta]:
    """
    Account list for the swap instruction.

    Input/output token accounts, vaults and mints trade places between
    directions; every other position is fixed.
    """
    table = request.direction.table

    def writable(pubkey: Pubkey) -> AccountMeta:
        return AccountMeta(pubkey=pubkey, is_signer=False, is_writable=True)

    def readonly(pubkey: Pubkey) -> AccountMeta:
        return AccountMeta(pubkey=pubkey, is_signer=False, is_writable=False)

    return [
        AccountMeta(pubkey=request.payer, is_signer=True, is_writable=True),
        readonly(AMM_CONFIG),
        writable(POOL_STATE),
        writable(request.source_account),
        writable(request.destination_account),
        writable(table.input_vault),
        writable(table.output_vault),
        writable(OBSERVATION_STATE),
        readonly(TOKEN_PROGRAM_ID),
        readonly(TOKEN_2022_PROGRAM_ID),
        readonly(MEMO_PROGRAM_ID),
        writable(table.input_mint),
        writable(table.output_mint),
        writable(TICK_ARRAY_LOWER),
        writable(TICK_ARRAY_CURRENT),
        writable(table.tick_array),
    ]


def build_swap_request(payer: Pubkey, amount: float, direction: SwapDirection) -> SwapRequest:
    return SwapRequest(
        payer=payer,
        usdc_account=get_token_account(payer, USDC_MINT),
        usdi_account=get_token_account(payer, USDI_MINT),
        raw_amount=to_raw_amount(amount),
        direction=direction,
    )


def create_swap_instruction(request: SwapRequest) -> Instruction:
    return Instruction(
        program_id=CLMM_PROGRAM_ID,
        data=encode_swap_data(request.raw_amount, request.direction),
        accounts=swap_account_metas(request),
    )


async def build_swap_instructions(
    async_client: AsyncClient,
    payer: Pubkey,
    amount: float,
    direction: SwapDirection
) -> List[Instruction]:
    """
    Build the instruction list for a swap.

    Missing USDC or USDi accounts of the payer are created first, paid by
    the payer, in the same transaction.

    Args:
        async_client: Async Solana RPC client
        payer: Custodial wallet doing the swap
        amount: Input amount in token units, already validated
        direction: DEPOSIT or WITHDRAW

    Returns:
        Ordered instruction list ending with the swap
    """
    request = build_swap_request(payer, amount, direction)
    instructions: List[Instruction] = []

    for mint, token_account in ((USDC_MINT, request.usdc_account), (USDI_MINT, request.usdi_account)):
        if not await token_account_exists(async_client, token_account):
            logger.info(
                f"Adding token account creation for {payer} before swap",
                extra={"mint": str(mint), "token_account": str(token_account)}
            )
            instructions.append(create_token_account_instruction(payer=payer, owner=payer, mint=mint))

    instructions.append(create_swap_instruction(request))

    logger.debug(
        f"Built {direction.value} swap for {payer}",
        extra={"raw_amount": request.raw_amount, "instructions": len(instructions)}
    )
    return instructions
