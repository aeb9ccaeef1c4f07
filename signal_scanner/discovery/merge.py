"""
Accumulation merger - folds a scan's wallet partial into the persisted totals
and recomputes the derived fields and tags.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from signal_scanner.config.settings import TagConfig, WinRateConfig
from signal_scanner.discovery.tags import derive_tags
from signal_scanner.models.scan import WalletPartial


def round_usd(value: float) -> float:
    return round(value, 2)


def round_percent(value: float) -> int:
    return int(round(value))


def calculate_win_rate(winning_tokens: int, config: Optional[WinRateConfig] = None) -> float:
    """min(cap, base + winning_tokens * per_token); always within [base, cap]."""
    config = config or WinRateConfig()
    return min(config.cap, config.base + max(winning_tokens, 0) * config.per_token)


def merge_wallet_aggregate(
    address: str,
    partial: WalletPartial,
    existing: Optional[Dict[str, Any]],
    now: datetime,
    tag_config: Optional[TagConfig] = None,
    win_rate_config: Optional[WinRateConfig] = None
) -> Dict[str, Any]:
    """Produce the next tracked_wallets row for one wallet.

    Args:
        address: Wallet address
        partial: This scan's new contribution for the wallet
        existing: Persisted row, or None for a first-time wallet
        now: Scan timestamp
        tag_config: Tag thresholds
        win_rate_config: Win rate parameters

    Returns:
        Row dictionary ready for upsert
    """
    if partial.token_count <= 0:
        raise ValueError(f"Wallet {address} has no new sightings to merge")

    existing = existing or {}

    total_pnl_usd = round_usd((existing.get('total_pnl_usd') or 0) + partial.pnl_usd)
    total_pnl = round_percent((existing.get('total_pnl') or 0) + partial.pnl_percent)
    total_volume_usd = round_usd((existing.get('total_volume_usd') or 0) + partial.volume_usd)
    appearances = (existing.get('appearances') or 0) + partial.token_count
    total_trades = (existing.get('total_trades') or 0) + partial.trades
    # Always equal to appearances under the current rules; kept as its own counter
    winning_tokens = (existing.get('winning_tokens') or 0) + partial.token_count

    return {
        'address': address,
        'total_pnl': total_pnl,
        'total_pnl_usd': total_pnl_usd,
        'total_volume_usd': total_volume_usd,
        'total_trades': total_trades,
        'appearances': appearances,
        'winning_tokens': winning_tokens,
        'pnl_percent': round_percent(total_pnl / appearances),
        'avg_return': round_percent(total_pnl / winning_tokens),
        'win_rate': calculate_win_rate(winning_tokens, win_rate_config),
        'tags': derive_tags(appearances, total_pnl_usd, total_pnl, total_trades, tag_config),
        'last_trade_at': now,
        'created_at': existing.get('created_at') or now,
        'updated_at': now,
    }
