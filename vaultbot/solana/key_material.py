"""
Key material for custodial wallets.

Mnemonic generation and validation, seed derivation, and conversion between
keypairs and the base64 form kept in the wallet catalog.
"""

import base64
import binascii

from bip_utils import Bip32Slip10Ed25519
from loguru import logger
from mnemonic import Mnemonic
from solders.keypair import Keypair

from vaultbot.config import DERIVATION_PATH, MNEMONIC_STRENGTH
from vaultbot.errors import InvalidKeyData, InvalidMnemonic

SECRET_KEY_LENGTH = 64
SEED_LENGTH = 32
MNEMONIC_WORD_COUNT = MNEMONIC_STRENGTH // 32 * 3


class KeyMaterial:
    """
    Generates and restores wallet keys.

    The derivation path is fixed, so a phrase always maps to the same keypair.
    """

    def __init__(self, language: str = "english"):
        self._mnemonic = Mnemonic(language)

    @staticmethod
    def normalize_phrase(phrase: str) -> str:
        return " ".join(phrase.lower().split())

    def generate_mnemonic(self) -> str:
        """
        Generate a 24-word phrase from 256 bits of OS entropy.

        Returns:
            The space separated mnemonic
        """
        return self._mnemonic.generate(strength=MNEMONIC_STRENGTH)

    def validate_mnemonic(self, phrase: str) -> bool:
        """
        Check word count and checksum of a phrase.

        Args:
            phrase: User supplied phrase, any whitespace between words

        Returns:
            True if the phrase is a valid 24-word BIP-39 mnemonic
        """
        normalized = self.normalize_phrase(phrase)
        if len(normalized.split(" ")) != MNEMONIC_WORD_COUNT:
            return False
        return self._mnemonic.check(normalized)

    def derive_keypair(self, phrase: str) -> Keypair:
        """
        Derive the wallet keypair for a phrase.

        The 64-byte BIP-39 seed is cut to its first 32 bytes, which then seed
        SLIP-10 ed25519 derivation along the fixed Solana path.

        Args:
            phrase: A valid mnemonic

        Returns:
            The derived Keypair

        Raises:
            InvalidMnemonic: If the phrase fails validation
        """
        if not self.validate_mnemonic(phrase):
            raise InvalidMnemonic("Invalid seed phrase")

        seed = Mnemonic.to_seed(self.normalize_phrase(phrase), passphrase="")
        partial_seed = seed[:SEED_LENGTH]
        derived = Bip32Slip10Ed25519.FromSeed(partial_seed).DerivePath(DERIVATION_PATH)
        private_key = derived.PrivateKey().Raw().ToBytes()
        return Keypair.from_seed(private_key)

    @staticmethod
    def encode_secret(keypair: Keypair) -> str:
        """Encode the full 64-byte secret key as base64 for storage."""
        return base64.b64encode(bytes(keypair)).decode("utf-8")

    @staticmethod
    def keypair_from_stored_secret(secret: str) -> Keypair:
        """
        Rebuild a keypair from its stored base64 form.

        Args:
            secret: Base64 encoded 64-byte secret key

        Returns:
            Keypair object

        Raises:
            InvalidKeyData: If the value is not base64 or has the wrong length
        """
        try:
            raw = base64.b64decode(secret, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            raise InvalidKeyData(f"Secret key is not valid base64: {type(e).__name__}") from e

        if len(raw) != SECRET_KEY_LENGTH:
            raise InvalidKeyData(f"Secret key must be {SECRET_KEY_LENGTH} bytes, got {len(raw)}")

        try:
            return Keypair.from_bytes(raw)
        except Exception as e:
            logger.error(f"Stored secret key rejected by keypair parser: {type(e).__name__}")
            raise InvalidKeyData("Secret key bytes do not form a valid keypair") from e
