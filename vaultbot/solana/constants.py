"""
On-chain addresses used by the vault.

The CLMM pool swaps USDC <-> USDi; every account below belongs to that pool
or to the programs it calls into.
"""

from solders.pubkey import Pubkey

# Programs
CLMM_PROGRAM_ID = Pubkey.from_string("CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK")
TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
TOKEN_2022_PROGRAM_ID = Pubkey.from_string("TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb")
MEMO_PROGRAM_ID = Pubkey.from_string("MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr")

# Pool accounts
AMM_CONFIG = Pubkey.from_string("E64NGkDLLCdQ2yFNPcavaKptrEgmiQaNykUuLC1Qgwyp")
POOL_STATE = Pubkey.from_string("6bGe466weTDXkv8emyRMxFxLDQyXkE7W89zod8e5AGVe")
OBSERVATION_STATE = Pubkey.from_string("8JxwSBohQa42ahYntvoxR91LEvNL9g1232wa5cMRwW4z")
INPUT_VAULT = Pubkey.from_string("Abd1ehgfMAAhmmVrWENYYLUzNHQrQHtaazr2f1SD6HUE")
OUTPUT_VAULT = Pubkey.from_string("GrXCVwWjQavypEw41RDiCqQNzj9aEoEdmHG6QaRunjyX")

# Tick arrays
TICK_ARRAY_LOWER = Pubkey.from_string("3JP1QNbACeXBFpwBBHjAg8YUxaZvHRZ6aUSkekKt521M")
TICK_ARRAY_CURRENT = Pubkey.from_string("E14EG74exe5oZeAL6cJksNDT59jFfYVu72o4QDqJBrEB")
TICK_ARRAY_DEPOSIT = Pubkey.from_string("FXMRNUwWrNAMiCZghjo3jvgmHak3Lrgcmd6QuuJZfkAx")
TICK_ARRAY_WITHDRAW = Pubkey.from_string("ChvSyZQDGr9jcioJXBwq6Ube8Emi9sCjW3bzSGW5pYbG")

# Mints
USDC_MINT = Pubkey.from_string("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v")
USDI_MINT = Pubkey.from_string("CXbKtuMVWc2LkedJjATZDNwaPSN6vHsuBGqYHUC4BN3B")

# Swap instruction
SWAP_DISCRIMINATOR = bytes.fromhex("2b04ed0b1ac91e62")
SWAP_DATA_LENGTH = 41
SWAP_DIRECTION_BYTE = 1

# sqrt price limits (x64) taken from known-good pool transactions
DEPOSIT_SQRT_PRICE_LIMIT_X64 = 79226673515401279992447579055
WITHDRAW_SQRT_PRICE_LIMIT_X64 = 4295048017
