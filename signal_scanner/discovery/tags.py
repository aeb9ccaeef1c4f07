"""
Tag rule engine - derives category labels from cumulative wallet totals.
"""

from typing import List, Optional

from signal_scanner.config.settings import TagConfig

TRACKED_TAG = "Tracked"


def derive_tags(
    appearances: int,
    total_pnl_usd: float,
    total_pnl_percent: float,
    total_trades: int,
    config: Optional[TagConfig] = None
) -> List[str]:
    """Derive wallet tags from cumulative performance counters.

    Rules fire independently and are emitted in a fixed order. "Whale" and
    "High PnL" are mutually exclusive. A wallet no rule fires for is tagged
    "Tracked" and nothing else.

    Args:
        appearances: Distinct tokens the wallet was profitably sighted on
        total_pnl_usd: Cumulative realized profit in USD
        total_pnl_percent: Cumulative realized profit percent
        total_trades: Cumulative buys plus sells
        config: Thresholds; defaults reproduce the standard rule set

    Returns:
        Ordered list of tag labels
    """
    config = config or TagConfig()
    tags = []

    if appearances >= config.consistent_min_appearances:
        tags.append("Consistent")
    if appearances >= config.multi_winner_min_appearances:
        tags.append("Multi-Winner")

    if total_pnl_usd > config.whale_min_pnl_usd:
        tags.append("Whale")
    elif total_pnl_usd > config.high_pnl_min_pnl_usd:
        tags.append("High PnL")

    if total_pnl_percent > config.ten_x_min_pnl_percent:
        tags.append("10x Hunter")
    if total_trades > config.active_min_trades:
        tags.append("Active")
    if (appearances >= config.smart_money_min_appearances
            and total_pnl_usd > config.smart_money_min_pnl_usd):
        tags.append("Smart Money")

    return tags or [TRACKED_TAG]
