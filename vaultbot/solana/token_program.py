"""
SPL Token program utilities for the vault.

Associated token account lookup and creation, and USDC transfers out of a
custodial wallet.
"""

from decimal import Decimal, ROUND_DOWN
from typing import List

import base58
from loguru import logger
from solana.rpc.async_api import AsyncClient
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from spl.token.instructions import create_associated_token_account, get_associated_token_address

from vaultbot.config import (
    SOLANA_ADDRESS_MAX_LENGTH,
    SOLANA_ADDRESS_MIN_LENGTH,
    TOKEN_DECIMALS,
)
from vaultbot.errors import InvalidAddress
from vaultbot.solana.constants import TOKEN_PROGRAM_ID, USDC_MINT
from vaultbot.solana.models import TransferRequest

# SPL Token Program Instruction Codes
TRANSFER_INSTRUCTION = 3  # Token Program instruction index for transfer

PUBKEY_LENGTH = 32


def parse_address(address: str) -> Pubkey:
    """
    Parse a base58 Solana address.

    Args:
        address: Address as typed by the user

    Returns:
        The public key

    Raises:
        InvalidAddress: If the text is not a 32-byte base58 key
    """
    candidate = (address or "").strip()
    if not SOLANA_ADDRESS_MIN_LENGTH <= len(candidate) <= SOLANA_ADDRESS_MAX_LENGTH:
        raise InvalidAddress(f"Invalid Solana address length: {len(candidate)}")

    try:
        decoded = base58.b58decode(candidate)
    except ValueError as e:
        raise InvalidAddress("Invalid characters in address") from e

    if len(decoded) != PUBKEY_LENGTH:
        raise InvalidAddress(f"Address decodes to {len(decoded)} bytes, expected {PUBKEY_LENGTH}")

    return Pubkey.from_bytes(decoded)


def to_raw_amount(amount: float, decimals: int = TOKEN_DECIMALS) -> int:
    """Convert a UI amount to base units, flooring any excess precision."""
    raw = Decimal(str(amount)).scaleb(decimals).to_integral_value(rounding=ROUND_DOWN)
    return int(raw)


def get_token_account(owner: Pubkey, mint: Pubkey) -> Pubkey:
    """Derive the associated token account of an owner for a mint."""
    return get_associated_token_address(owner, mint)


async def token_account_exists(async_client: AsyncClient, token_account: Pubkey) -> bool:
    """
    Check whether a token account has been created on chain.

    Args:
        async_client: Async Solana RPC client
        token_account: Token account address

    Returns:
        True if the account exists
    """
    response = await async_client.get_account_info(token_account)
    exists = response.value is not None
    if not exists:
        logger.debug(f"Token account {token_account} does not exist yet")
    return exists


def create_token_account_instruction(payer: Pubkey, owner: Pubkey, mint: Pubkey) -> Instruction:
    """
    Create an instruction that opens the owner's associated token account.

    Args:
        payer: Wallet paying rent for the new account
        owner: Owner of the new token account
        mint: Token mint

    Returns:
        Associated token account creation instruction
    """
    return create_associated_token_account(payer=payer, owner=owner, mint=mint)


def create_token_transfer_instruction(
    sender_token_account: Pubkey,
    recipient_token_account: Pubkey,
    owner: Pubkey,
    amount: int
) -> Instruction:
    """
    Create an SPL token transfer instruction.

    Args:
        sender_token_account: Sender's token account
        recipient_token_account: Recipient's token account
        owner: Owner of the sending token account
        amount: Amount to transfer in base units

    Returns:
        Instruction for the token transfer
    """
    keys = [
        AccountMeta(pubkey=sender_token_account, is_signer=False, is_writable=True),
        AccountMeta(pubkey=recipient_token_account, is_signer=False, is_writable=True),
        AccountMeta(pubkey=owner, is_signer=True, is_writable=False)
    ]

    data = bytes([TRANSFER_INSTRUCTION]) + amount.to_bytes(8, byteorder='little')

    return Instruction(
        program_id=TOKEN_PROGRAM_ID,
        data=data,
        accounts=keys
    )


def build_transfer_request(owner: Pubkey, destination: str, amount: float) -> TransferRequest:
    """
    Resolve source and destination USDC accounts for a withdrawal.

    Raises:
        InvalidAddress: If the destination cannot be parsed
    """
    destination_owner = parse_address(destination)
    return TransferRequest(
        owner=owner,
        source_account=get_token_account(owner, USDC_MINT),
        destination_owner=destination_owner,
        destination_account=get_token_account(destination_owner, USDC_MINT),
        raw_amount=to_raw_amount(amount),
    )


async def build_transfer_instructions(
    async_client: AsyncClient,
    owner: Pubkey,
    destination: str,
    amount: float
) -> List[Instruction]:
    """
    Build the instructions for a USDC withdrawal.

    The destination address is parsed before any network call. When the
    destination has no USDC account yet, the sender pays to create it.

    Args:
        async_client: Async Solana RPC client
        owner: Custodial wallet sending the funds
        destination: Recipient wallet address, unvalidated
        amount: Amount in USDC

    Returns:
        Ordered instruction list
    """
    request = build_transfer_request(owner, destination, amount)
    instructions: List[Instruction] = []

    if not await token_account_exists(async_client, request.destination_account):
        logger.info(
            f"Creating USDC account for recipient {request.destination_owner}",
            extra={"token_account": str(request.destination_account)}
        )
        instructions.append(
            create_token_account_instruction(
                payer=owner,
                owner=request.destination_owner,
                mint=USDC_MINT
            )
        )

    instructions.append(
        create_token_transfer_instruction(
            sender_token_account=request.source_account,
            recipient_token_account=request.destination_account,
            owner=owner,
            amount=request.raw_amount
        )
    )
    return instructions
