"""
Per-wallet aggregator - folds one scan's new sightings into wallet partials.
"""

import logging
import pandas as pd
from dataclasses import asdict
from typing import Dict, List

from signal_scanner.models.scan import Sighting, WalletPartial

logger = logging.getLogger(__name__)


def aggregate_sightings(sightings: List[Sighting]) -> Dict[str, WalletPartial]:
    """Sum profit, trades and volume per wallet.

    token_count counts sightings, not distinct token addresses, so a token
    repeated for one wallet contributes twice.

    Args:
        sightings: Deduplicated sightings from the current scan

    Returns:
        Mapping of wallet address to WalletPartial
    """
    if not sightings:
        return {}

    df = pd.DataFrame([asdict(s) for s in sightings])
    df['trades'] = df['buys'] + df['sells']

    grouped = df.groupby('wallet_address', sort=False).agg(
        pnl_usd=('profit_usd', 'sum'),
        pnl_percent=('profit_percent', 'sum'),
        trades=('trades', 'sum'),
        token_count=('token_address', 'size'),
        volume_usd=('volume_usd', 'sum'),
    )

    partials = {
        str(address): WalletPartial(
            pnl_usd=float(row.pnl_usd),
            pnl_percent=float(row.pnl_percent),
            trades=int(row.trades),
            token_count=int(row.token_count),
            volume_usd=float(row.volume_usd),
        )
        for address, row in grouped.iterrows()
    }

    logger.info(f"Aggregated {len(sightings)} sightings into {len(partials)} wallets")
    return partials
