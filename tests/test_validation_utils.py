"""
Tests for user input validation.
"""

import pytest
from solders.keypair import Keypair

from vaultbot.utils.validation_utils import (
    parse_confirmation,
    validate_amount_input,
    validate_wallet_address,
)


@pytest.mark.parametrize("text,amount", [
    ("10", 10.0),
    ("2.5", 2.5),
    ("1,000", 1000.0),
    ("$5", 5.0),
    ("  0.01 ", 0.01),
])
def test_valid_amounts(text, amount):
    assert validate_amount_input(text) == (True, amount)


@pytest.mark.parametrize("text", ["abc", "", "nan", "inf", "-1", "0", "1e400"])
def test_invalid_amounts(text):
    is_valid, message = validate_amount_input(text)
    assert is_valid is False
    assert isinstance(message, str)


def test_valid_address_is_normalized():
    pubkey = Keypair().pubkey()
    assert validate_wallet_address(f" {pubkey} ") == (True, str(pubkey))


def test_invalid_address():
    is_valid, message = validate_wallet_address("nope")
    assert is_valid is False
    assert "Invalid Solana address" in message


@pytest.mark.parametrize("text,expected", [
    ("yes", True),
    ("Y", True),
    ("confirm_reset", True),
    (" No ", False),
    ("cancel", False),
    ("maybe", None),
    ("", None),
])
def test_parse_confirmation(text, expected):
    assert parse_confirmation(text) is expected
