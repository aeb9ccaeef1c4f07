"""
SIGNAL - discovery of historically profitable Solana wallets.
"""

__version__ = "0.1.0"
