"""
Wallet Catalog Storage Utility

Keeps the user id -> wallet mapping in memory and writes the whole catalog to
a single JSON file after every mutation.
"""

import os
import json
import tempfile
from typing import Dict, Any, Optional, Iterator
from loguru import logger

from vaultbot.config import WALLET_DATA_FILE
from vaultbot.solana.models import Wallet


class WalletCatalog:
    """Maps each user id to exactly one wallet record, persisted as a snapshot."""

    def __init__(self, file_path: str = WALLET_DATA_FILE):
        """
        Initialize the catalog and load any existing snapshot.

        Args:
            file_path: Path of the JSON snapshot file
        """
        self.file_path = file_path
        self._wallets: Dict[str, Wallet] = {}
        self._load()

    def _load(self) -> None:
        """Read the snapshot file, if present, into memory."""
        if not os.path.exists(self.file_path):
            logger.info(f"No wallet catalog at {self.file_path}, starting empty")
            return

        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(
                f"Failed to load wallet catalog: {str(e)}",
                extra={"file_path": self.file_path}
            )
            return

        for user_id, user_data in raw.items():
            try:
                self._wallets[str(user_id)] = Wallet.model_validate(user_data["wallet"])
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed catalog entry for user {user_id}: {type(e).__name__}")

        logger.info(f"Loaded {len(self._wallets)} wallets from {self.file_path}")

    def _save(self) -> None:
        """Overwrite the snapshot file with the full catalog."""
        snapshot: Dict[str, Any] = {
            user_id: {"wallet": wallet.to_record()}
            for user_id, wallet in self._wallets.items()
        }

        directory = os.path.dirname(os.path.abspath(self.file_path))
        os.makedirs(directory, exist_ok=True)

        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".wallet_data.", suffix=".tmp")
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(snapshot, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.file_path)
        except OSError as e:
            logger.error(
                f"Failed to save wallet catalog: {str(e)}",
                extra={"file_path": self.file_path, "wallets": len(snapshot)}
            )
            raise

        logger.debug(f"Saved wallet catalog with {len(snapshot)} wallets")

    def get(self, user_id: str) -> Optional[Wallet]:
        return self._wallets.get(str(user_id))

    def put(self, user_id: str, wallet: Wallet) -> None:
        """Insert or overwrite a user's wallet and persist."""
        self._wallets[str(user_id)] = wallet
        self._save()

    def delete(self, user_id: str) -> bool:
        """
        Remove a user's wallet and persist.

        Returns:
            True if a wallet was removed
        """
        removed = self._wallets.pop(str(user_id), None) is not None
        self._save()
        return removed

    def __contains__(self, user_id: str) -> bool:
        return str(user_id) in self._wallets

    def __len__(self) -> int:
        return len(self._wallets)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._wallets))
