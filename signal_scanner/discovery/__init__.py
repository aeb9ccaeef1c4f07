"""
Wallet discovery pipeline: dedup -> aggregate -> merge -> tag.
"""

from .tags import derive_tags
from .dedup import filter_new_sightings
from .aggregate import aggregate_sightings
from .merge import merge_wallet_aggregate, calculate_win_rate
from .scanner import WalletDiscoveryScanner

__all__ = [
    "derive_tags",
    "filter_new_sightings",
    "aggregate_sightings",
    "merge_wallet_aggregate",
    "calculate_win_rate",
    "WalletDiscoveryScanner",
]
