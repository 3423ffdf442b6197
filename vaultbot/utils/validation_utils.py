import math
from typing import Optional, Tuple, Union
from loguru import logger

from vaultbot.errors import InvalidAddress
from vaultbot.solana.token_program import parse_address

YES_ANSWERS = frozenset({"yes", "y", "confirm", "confirm_reset"})
NO_ANSWERS = frozenset({"no", "n", "cancel", "cancel_reset"})


def validate_amount_input(text: str) -> Tuple[bool, Union[float, str]]:
    """
    Validate user input for a token amount.

    Args:
        text: User input text

    Returns:
        Tuple (is_valid, value_or_error)
    """
    try:
        # Remove commas and currency signs if present
        cleaned_text = text.replace(",", "").replace("$", "").strip()
        amount = float(cleaned_text)
    except (ValueError, AttributeError):
        return False, "Please enter a valid number (e.g., 10 or 2.5)."

    if not math.isfinite(amount):
        return False, "Please enter a valid number (e.g., 10 or 2.5)."

    if amount <= 0:
        return False, "Amount must be a positive number."

    return True, amount


def validate_wallet_address(text: str) -> Tuple[bool, str]:
    """
    Validate a Solana wallet address.

    Args:
        text: The user input text

    Returns:
        A tuple of (is_valid, address_or_error_message)
    """
    try:
        return True, str(parse_address(text))
    except InvalidAddress as e:
        logger.debug(f"Rejected address input: {str(e)}")
        return False, "Invalid Solana address. Please check and try again."


def parse_confirmation(text: str) -> Optional[bool]:
    """
    Interpret a yes/no answer.

    Returns:
        True for yes, False for no, None if the answer is neither
    """
    answer = (text or "").strip().lower()
    if answer in YES_ANSWERS:
        return True
    if answer in NO_ANSWERS:
        return False
    return None
