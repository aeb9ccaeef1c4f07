"""
Market-data provider interface consumed by the wallet scanner.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class MarketDataProvider(ABC):
    """Ranked token lists and per-token top traders, in normalized form."""

    @abstractmethod
    def fetch_ranked_tokens(
        self,
        ranking_attribute: str,
        direction: str = "DESC",
        limit: int = 50,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Tokens ranked by one attribute.

        Each dict carries token_address, symbol, name, price_change_24h_percent,
        volume_24h_usd and liquidity.
        """

    @abstractmethod
    def fetch_top_traders(
        self,
        token_address: str,
        trading_period: str = "WEEK",
        limit: int = 25
    ) -> List[Dict[str, Any]]:
        """Top traders of one token.

        Each dict carries wallet_address, realized_profit_usd,
        realized_profit_percent, volume_usd, buys, sells, token_balance and
        last_transaction_at.
        """
