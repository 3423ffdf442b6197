"""
Models for vault operations.
"""
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from solders.pubkey import Pubkey

from vaultbot.config import SOL_DECIMALS, TOKEN_DECIMALS
from vaultbot.solana.constants import (
    DEPOSIT_SQRT_PRICE_LIMIT_X64,
    INPUT_VAULT,
    OUTPUT_VAULT,
    TICK_ARRAY_DEPOSIT,
    TICK_ARRAY_WITHDRAW,
    USDC_MINT,
    USDI_MINT,
    WITHDRAW_SQRT_PRICE_LIMIT_X64,
)


def _now_ms() -> int:
    return int(time.time() * 1000)


class Wallet(BaseModel):
    """A custodial wallet record as stored in the catalog."""
    model_config = ConfigDict(populate_by_name=True)

    public_key: str = Field(alias="publicKey")
    secret_key: str = Field(alias="secretKey", repr=False)
    created_at: int = Field(alias="createdAt", default_factory=_now_ms)
    seed_phrase_backed_up: bool = Field(alias="seedPhraseBackedUp", default=False)
    seed_phrase: Optional[str] = Field(alias="seedPhrase", default=None, repr=False)

    def to_record(self) -> Dict:
        """Serialize using the on-disk field names, dropping an absent seed phrase."""
        return self.model_dump(by_alias=True, exclude_none=True)


class AssetKind(str, Enum):
    """Assets the vault reports balances for."""
    SOL = "SOL"
    USDC = "USDC"
    USDI = "USDi"

    @property
    def decimals(self) -> int:
        return SOL_DECIMALS if self is AssetKind.SOL else TOKEN_DECIMALS

    @property
    def mint(self) -> Optional[Pubkey]:
        if self is AssetKind.USDC:
            return USDC_MINT
        if self is AssetKind.USDI:
            return USDI_MINT
        return None


@dataclass(frozen=True)
class DirectionTable:
    """Per-direction constants for the CLMM swap."""
    sqrt_price_limit_x64: int
    input_mint: Pubkey
    output_mint: Pubkey
    input_vault: Pubkey
    output_vault: Pubkey
    tick_array: Pubkey
    input_asset: AssetKind


_DEPOSIT_TABLE = DirectionTable(
    sqrt_price_limit_x64=DEPOSIT_SQRT_PRICE_LIMIT_X64,
    input_mint=USDC_MINT,
    output_mint=USDI_MINT,
    input_vault=INPUT_VAULT,
    output_vault=OUTPUT_VAULT,
    tick_array=TICK_ARRAY_DEPOSIT,
    input_asset=AssetKind.USDC,
)

_WITHDRAW_TABLE = DirectionTable(
    sqrt_price_limit_x64=WITHDRAW_SQRT_PRICE_LIMIT_X64,
    input_mint=USDI_MINT,
    output_mint=USDC_MINT,
    input_vault=OUTPUT_VAULT,
    output_vault=INPUT_VAULT,
    tick_array=TICK_ARRAY_WITHDRAW,
    input_asset=AssetKind.USDI,
)


class SwapDirection(str, Enum):
    """DEPOSIT swaps USDC into USDi, WITHDRAW swaps USDi back into USDC."""
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"

    @classmethod
    def from_flag(cls, is_withdrawal: bool) -> "SwapDirection":
        return cls.WITHDRAW if is_withdrawal else cls.DEPOSIT

    @property
    def table(self) -> DirectionTable:
        return _WITHDRAW_TABLE if self is SwapDirection.WITHDRAW else _DEPOSIT_TABLE


class SwapRequest(BaseModel):
    """A single CLMM swap, built per call and never persisted."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    payer: Pubkey
    usdc_account: Pubkey
    usdi_account: Pubkey
    raw_amount: int
    direction: SwapDirection

    @property
    def source_account(self) -> Pubkey:
        return self.usdi_account if self.direction is SwapDirection.WITHDRAW else self.usdc_account

    @property
    def destination_account(self) -> Pubkey:
        return self.usdc_account if self.direction is SwapDirection.WITHDRAW else self.usdi_account


class TransferRequest(BaseModel):
    """A USDC transfer out of a custodial wallet."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    owner: Pubkey
    source_account: Pubkey
    destination_owner: Pubkey
    destination_account: Pubkey
    raw_amount: int


class ConfirmationStatus(str, Enum):
    CONFIRMED = "confirmed"
    TIMED_OUT_LIKELY_SUCCEEDED = "timed_out_likely_succeeded"
    FAILED = "failed"


class ConfirmationOutcome(BaseModel):
    """Result of submitting a transaction and waiting for it."""
    status: ConfirmationStatus
    signature: Optional[str] = None
    reason: Optional[str] = None

    @property
    def is_confirmed(self) -> bool:
        return self.status is ConfirmationStatus.CONFIRMED

    @property
    def is_ambiguous(self) -> bool:
        return self.status is ConfirmationStatus.TIMED_OUT_LIKELY_SUCCEEDED


class BalanceState(str, Enum):
    AVAILABLE = "available"
    ZERO = "zero"
    UNKNOWN = "unknown"


class BalanceResult(BaseModel):
    """A balance that keeps "no account" and "query failed" apart."""
    asset: AssetKind
    amount: float = 0.0
    raw_amount: int = 0
    state: BalanceState = BalanceState.ZERO

    @property
    def is_unknown(self) -> bool:
        return self.state is BalanceState.UNKNOWN


class BalanceReport(BaseModel):
    """SOL, USDC and USDi balances of one wallet."""
    sol: float = 0.0
    usdc: float = 0.0
    usdi: float = 0.0
    unknown: List[AssetKind] = Field(default_factory=list)


class DepositInfo(BaseModel):
    """What the deposit flow returns: where to send funds and what is there now."""
    address: str
    created: bool = False
    balances: BalanceReport
