"""
Custodial stablecoin vault engine.

Holds user wallets, swaps USDC <-> USDi through a CLMM pool, withdraws USDC,
and tracks which multi-step flow each user has pending.
"""

__version__ = "0.1.0"
