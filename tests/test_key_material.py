"""
Tests for mnemonic handling and keypair derivation.
"""

import base64

import pytest
from solders.keypair import Keypair

from vaultbot.errors import InvalidKeyData, InvalidMnemonic


def test_generated_mnemonic_has_24_valid_words(key_material):
    phrase = key_material.generate_mnemonic()

    assert len(phrase.split()) == 24
    assert key_material.validate_mnemonic(phrase)


def test_generated_mnemonics_differ(key_material):
    assert key_material.generate_mnemonic() != key_material.generate_mnemonic()


def test_validate_accepts_messy_whitespace_and_case(key_material, mnemonic_phrase):
    messy = "  " + mnemonic_phrase.upper().replace(" ", "   \n") + "  "
    assert key_material.validate_mnemonic(messy)


def test_validate_rejects_bad_checksum(key_material):
    assert not key_material.validate_mnemonic(" ".join(["abandon"] * 24))


def test_validate_rejects_twelve_word_phrase(key_material):
    twelve = " ".join(["abandon"] * 11 + ["about"])
    assert not key_material.validate_mnemonic(twelve)


def test_validate_rejects_unknown_words(key_material):
    assert not key_material.validate_mnemonic(" ".join(["notaword"] * 24))


def test_derivation_is_deterministic(key_material, mnemonic_phrase):
    first = key_material.derive_keypair(mnemonic_phrase)
    second = key_material.derive_keypair("  " + mnemonic_phrase.upper())

    assert first.pubkey() == second.pubkey()
    assert bytes(first) == bytes(second)


def test_different_phrases_give_different_keys(key_material, mnemonic_phrase):
    other = key_material.generate_mnemonic()
    assert key_material.derive_keypair(other).pubkey() != key_material.derive_keypair(mnemonic_phrase).pubkey()


def test_derive_rejects_invalid_phrase(key_material):
    with pytest.raises(InvalidMnemonic):
        key_material.derive_keypair("not a real phrase")


def test_stored_secret_round_trip(key_material, mnemonic_phrase):
    keypair = key_material.derive_keypair(mnemonic_phrase)
    encoded = key_material.encode_secret(keypair)

    assert len(base64.b64decode(encoded)) == 64
    assert key_material.keypair_from_stored_secret(encoded).pubkey() == keypair.pubkey()


@pytest.mark.parametrize("secret", [
    "!!! not base64 !!!",
    base64.b64encode(bytes(32)).decode(),
    base64.b64encode(bytes(65)).decode(),
    "",
])
def test_stored_secret_rejects_bad_data(key_material, secret):
    with pytest.raises(InvalidKeyData):
        key_material.keypair_from_stored_secret(secret)


def test_random_keypair_is_accepted(key_material):
    keypair = Keypair()
    restored = key_material.keypair_from_stored_secret(key_material.encode_secret(keypair))
    assert restored.pubkey() == keypair.pubkey()
