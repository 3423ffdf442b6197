import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Network configuration
SOLANA_NETWORK = os.getenv("SOLANA_NETWORK", "mainnet")
SOLANA_RPC_URL = os.getenv(
    "SOLANA_RPC_URL",
    "https://api.devnet.solana.com" if SOLANA_NETWORK == "devnet" else "https://api.mainnet-beta.solana.com",
)

# Storage configuration
WALLET_DATA_FILE = os.getenv("WALLET_DATA_FILE", "wallet_data.json")

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")

# Timeout configuration
CONFIRMATION_TIMEOUT = int(os.getenv("CONFIRMATION_TIMEOUT", "30"))  # seconds
CONVERSATION_TIMEOUT = int(os.getenv("CONVERSATION_TIMEOUT", "300"))  # 5 minutes

# Minimum SOL kept in the wallet to pay for fees and account rent
MINIMUM_SOL_BALANCE = float(os.getenv("MINIMUM_SOL_BALANCE", "0.01"))

# Token constants
TOKEN_DECIMALS = 6  # USDC and USDi
SOL_DECIMALS = 9
BALANCE_DISPLAY_DECIMALS = 5

# Swap slippage: minimum out is 98.9% of the input amount
MIN_OUT_NUMERATOR = 989
MIN_OUT_DENOMINATOR = 1000

# Base58 encoded Solana addresses are 32-44 characters
SOLANA_ADDRESS_MIN_LENGTH = 32
SOLANA_ADDRESS_MAX_LENGTH = 44

# Mnemonic configuration
MNEMONIC_STRENGTH = 256  # 24 words
DERIVATION_PATH = "m/44'/501'/0'/0'"

# Explorer used when rendering transaction links
EXPLORER_TX_URL = os.getenv("EXPLORER_TX_URL", "https://solscan.io/tx/{signature}")
