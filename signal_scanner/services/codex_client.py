"""
Codex GraphQL API client.
Provides ranked token lists and per-token top traders for Solana.
"""

import logging
import requests
from typing import Dict, Any, List, Optional
from tenacity import Retrying, stop_after_attempt, wait_exponential

from signal_scanner.config.settings import SOLANA_NETWORK_ID
from signal_scanner.services.market_data import MarketDataProvider
from signal_scanner.utils.utcnow import utcfromtimestamp

logger = logging.getLogger(__name__)


FILTER_TOKENS_QUERY = """
query FilterTokens($filters: TokenFilters, $rankings: [TokenRanking], $limit: Int) {
  filterTokens(filters: $filters, rankings: $rankings, limit: $limit) {
    results {
      change24
      volume24
      liquidity
      token {
        address
        symbol
        name
      }
    }
  }
}
"""

TOKEN_TOP_TRADERS_QUERY = """
query TokenTopTraders($input: TokenTopTradersInput!) {
  tokenTopTraders(input: $input) {
    items {
      walletAddress
      realizedProfitUsd
      realizedProfitPercentage
      volumeUsd
      buys
      sells
      tokenBalance
      lastTransactionAt
    }
  }
}
"""


class CodexAPIError(Exception):
    """GraphQL-level error returned with an HTTP 200 response."""


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == '':
        return None
    return float(value)


def _to_int(value: Any) -> int:
    if value is None or value == '':
        return 0
    return int(float(value))


class CodexAPIClient(MarketDataProvider):
    """Codex API client for Solana token rankings and trader data."""

    BASE_URL = "https://graph.codex.io/graphql"

    def __init__(
        self,
        api_key: str,
        network_id: int = SOLANA_NETWORK_ID,
        base_url: Optional[str] = None,
        timeout_seconds: int = 30,
        max_retries: int = 3
    ):
        """Initialize Codex API client.

        Args:
            api_key: Codex API key
            network_id: Codex network identifier (default: Solana)
            base_url: GraphQL endpoint override
            timeout_seconds: Per-request timeout
            max_retries: Attempts per request, including the first
        """
        self.api_key = api_key
        self.network_id = network_id
        self.base_url = base_url or self.BASE_URL
        self.timeout_seconds = timeout_seconds
        self.max_retries = max(1, max_retries)
        self.headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "Authorization": self.api_key
        }
        self.session = requests.Session()
        self.session.headers.update(self.headers)

    def _make_request(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Make GraphQL request to the Codex API with retry logic.

        Args:
            query: GraphQL query document
            variables: Query variables

        Returns:
            The `data` object of the response
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=4, max=10),
            reraise=True
        )
        return retrying(self._post, query, variables)

    def _post(self, query: str, variables: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        try:
            response = self.session.post(
                self.base_url,
                json={"query": query, "variables": variables or {}},
                timeout=self.timeout_seconds
            )
            response.raise_for_status()

            payload = response.json()

            if payload.get('errors'):
                raise CodexAPIError(f"GraphQL errors: {payload['errors']}")

            return payload.get('data') or {}

        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed for Codex API: {e}")
            raise

    def filter_tokens(
        self,
        ranking_attribute: str = "change24",
        direction: str = "DESC",
        limit: int = 50,
        min_liquidity: Optional[float] = None,
        min_volume_24h: Optional[float] = None,
        min_price_change_24h: Optional[float] = None
    ) -> Dict[str, Any]:
        """Get ranked tokens with range filters.

        Args:
            ranking_attribute: Attribute to rank by (change24, volume24, ...)
            direction: Ranking direction (ASC, DESC)
            limit: Maximum number of tokens to return
            min_liquidity: Minimum liquidity in USD
            min_volume_24h: Minimum 24h volume in USD
            min_price_change_24h: Minimum 24h price change

        Returns:
            API response data with token results
        """
        filters: Dict[str, Any] = {"network": [self.network_id]}

        if min_liquidity is not None:
            filters["liquidity"] = {"gt": min_liquidity}
        if min_volume_24h is not None:
            filters["volume24"] = {"gt": min_volume_24h}
        if min_price_change_24h is not None:
            filters["change24"] = {"gt": min_price_change_24h}

        variables = {
            "filters": filters,
            "rankings": [{"attribute": ranking_attribute, "direction": direction}],
            "limit": limit
        }

        logger.debug(f"Filtering tokens with variables: {variables}")
        return self._make_request(FILTER_TOKENS_QUERY, variables)

    def get_token_top_traders(
        self,
        token_address: str,
        trading_period: str = "WEEK",
        limit: int = 25
    ) -> Dict[str, Any]:
        """Get top traders for a specific token.

        Args:
            token_address: Token mint address
            trading_period: Codex trading period enum (DAY, WEEK, MONTH, YEAR)
            limit: Maximum number of traders to return

        Returns:
            API response data with trader items
        """
        variables = {
            "input": {
                "tokenAddress": token_address,
                "networkId": self.network_id,
                "tradingPeriod": trading_period,
                "limit": limit
            }
        }

        logger.debug(f"Getting top traders for token {token_address}")
        return self._make_request(TOKEN_TOP_TRADERS_QUERY, variables)

    # Provider interface used by the wallet scanner

    def fetch_ranked_tokens(
        self,
        ranking_attribute: str,
        direction: str = "DESC",
        limit: int = 50,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Ranked token list, normalized."""
        response = self.filter_tokens(
            ranking_attribute=ranking_attribute,
            direction=direction,
            limit=limit,
            **(filters or {})
        )
        return self.normalize_filter_tokens_response(response)

    def fetch_top_traders(
        self,
        token_address: str,
        trading_period: str = "WEEK",
        limit: int = 25
    ) -> List[Dict[str, Any]]:
        """Top traders for a token, normalized."""
        response = self.get_token_top_traders(token_address, trading_period, limit)
        return self.normalize_top_traders_response(response)

    # Data normalization methods

    def normalize_filter_tokens_response(self, response: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Normalize filterTokens response to consistent format.

        Args:
            response: Response data

        Returns:
            List of normalized token dictionaries
        """
        results = (response.get('filterTokens') or {}).get('results') or []

        normalized_tokens = []
        for result in results:
            try:
                token = result.get('token') or {}
                normalized_token = {
                    "token_address": str(token.get('address') or ''),
                    "symbol": token.get('symbol'),
                    "name": token.get('name'),
                    "price_change_24h_percent": _to_float(result.get('change24')),
                    "volume_24h_usd": _to_float(result.get('volume24')),
                    "liquidity": _to_float(result.get('liquidity'))
                }

                if normalized_token["token_address"]:
                    normalized_tokens.append(normalized_token)

            except Exception as e:
                logger.warning(f"Failed to normalize token data: {e}, token: {result}")
                continue

        logger.info(f"Normalized {len(normalized_tokens)} tokens from response")
        return normalized_tokens

    def normalize_top_traders_response(self, response: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Normalize tokenTopTraders response to consistent format.

        Args:
            response: Response data

        Returns:
            List of normalized trader dictionaries
        """
        items = (response.get('tokenTopTraders') or {}).get('items') or []

        normalized_traders = []
        for item in items:
            try:
                last_tx = item.get('lastTransactionAt')
                normalized_trader = {
                    "wallet_address": str(item.get('walletAddress') or ''),
                    "realized_profit_usd": _to_float(item.get('realizedProfitUsd')) or 0.0,
                    "realized_profit_percent": _to_float(item.get('realizedProfitPercentage')) or 0.0,
                    "volume_usd": _to_float(item.get('volumeUsd')) or 0.0,
                    "buys": _to_int(item.get('buys')),
                    "sells": _to_int(item.get('sells')),
                    "token_balance": _to_float(item.get('tokenBalance')),
                    "last_transaction_at": utcfromtimestamp(int(last_tx)) if last_tx else None
                }

                if normalized_trader["wallet_address"]:
                    normalized_traders.append(normalized_trader)
                else:
                    logger.warning(f"Skipping trader with invalid address: {item}")

            except Exception as e:
                logger.warning(f"Failed to normalize trader data: {e}, trader: {item}")
                continue

        logger.info(f"Normalized {len(normalized_traders)} traders from response")
        return normalized_traders
