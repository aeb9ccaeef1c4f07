"""
Data models for the SIGNAL wallet scanner.
"""

from .wallets import TrackedWallet, WalletTokenHistory
from .scan import Sighting, WalletPartial, ScanResult

__all__ = [
    # Persisted
    "TrackedWallet",
    "WalletTokenHistory",
    # Transient
    "Sighting",
    "WalletPartial",
    "ScanResult",
]
