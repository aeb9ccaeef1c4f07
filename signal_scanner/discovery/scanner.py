"""
Wallet discovery scanner - end-to-end scan run.

Pulls trending tokens and their top traders from the market-data provider,
keeps only (wallet, token) pairs never seen before, folds them into the
per-wallet running totals and hands the writes to the wallet store.
"""

import logging
import random
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from signal_scanner.config.settings import Settings, get_settings
from signal_scanner.database.wallet_store import WalletStore
from signal_scanner.discovery.aggregate import aggregate_sightings
from signal_scanner.discovery.dedup import filter_new_sightings
from signal_scanner.discovery.merge import merge_wallet_aggregate, round_percent, round_usd
from signal_scanner.models.scan import ScanResult, Sighting
from signal_scanner.services.market_data import MarketDataProvider
from signal_scanner.utils.utcnow import utcnow

logger = logging.getLogger(__name__)


class WalletDiscoveryScanner:
    """Runs wallet discovery scans against injected provider and store."""

    def __init__(
        self,
        provider: Optional[MarketDataProvider],
        store: Optional[WalletStore],
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utcnow
    ):
        """Initialize the scanner.

        Args:
            provider: Market-data provider for ranked tokens and top traders
            store: Wallet store for dedup lookups and writes
            settings: Settings instance; global settings when None
            rng: Random source used to shuffle the trending token list
            sleep: Delay function between per-token provider calls
            clock: Timestamp source for the scan
        """
        settings = settings or get_settings()
        self.provider = provider
        self.store = store
        self.scanner_config = settings.scanner
        self.trending_config = settings.trending_tokens
        self.sighting_filters = settings.sighting_filters
        self.tag_config = settings.tags
        self.win_rate_config = settings.win_rate
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.clock = clock

    def ranking_strategies(self) -> List[Dict[str, Any]]:
        """Independent token rankings merged into one trending set."""
        config = self.trending_config
        return [
            {
                "name": "top_gainers",
                "ranking_attribute": "change24",
                "limit": config.gainers_limit,
                "filters": {
                    "min_liquidity": config.gainers_min_liquidity,
                    "min_volume_24h": config.gainers_min_volume_24h,
                    "min_price_change_24h": config.gainers_min_price_change_24h,
                },
            },
            {
                "name": "top_volume",
                "ranking_attribute": "volume24",
                "limit": config.volume_limit,
                "filters": {
                    "min_liquidity": config.volume_min_liquidity,
                    "min_volume_24h": config.volume_min_volume_24h,
                },
            },
        ]

    def fetch_trending_tokens(self) -> List[Dict[str, Any]]:
        """Merge the ranking strategies into a shuffled, capped token list."""
        excluded = set(self.trending_config.excluded_tokens)
        tokens_by_address: Dict[str, Dict[str, Any]] = {}

        for strategy in self.ranking_strategies():
            try:
                tokens = self.provider.fetch_ranked_tokens(
                    ranking_attribute=strategy["ranking_attribute"],
                    direction="DESC",
                    limit=strategy["limit"],
                    filters=strategy["filters"]
                ) or []
            except Exception as e:
                logger.error(f"Ranking strategy {strategy['name']} failed: {e}")
                continue

            logger.info(f"Ranking strategy {strategy['name']} returned {len(tokens)} tokens")

            for token in tokens:
                address = token.get('token_address') if isinstance(token, dict) else None
                if not address or address in excluded:
                    continue
                tokens_by_address.setdefault(address, token)

        tokens = list(tokens_by_address.values())
        self.rng.shuffle(tokens)
        return tokens[:self.scanner_config.tokens_to_scan]

    def qualify_trader(self, trader: Dict[str, Any], token: Dict[str, Any]) -> Optional[Sighting]:
        """Turn a top-trader record into a Sighting if it clears the thresholds."""
        try:
            wallet_address = trader.get('wallet_address')
            profit_usd = float(trader.get('realized_profit_usd') or 0)
            profit_percent = float(trader.get('realized_profit_percent') or 0)
            buys = int(trader.get('buys') or 0)
            sells = int(trader.get('sells') or 0)
            volume_usd = float(trader.get('volume_usd') or 0)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed trader record {trader}: {e}")
            return None

        if not wallet_address:
            return None
        if profit_usd <= self.sighting_filters.min_profit_usd:
            return None
        if profit_percent <= self.sighting_filters.min_profit_percent:
            return None
        if buys + sells < self.scanner_config.min_total_trades:
            return None

        return Sighting(
            wallet_address=wallet_address,
            token_address=token['token_address'],
            token_symbol=token.get('symbol'),
            profit_usd=profit_usd,
            profit_percent=profit_percent,
            volume_usd=volume_usd,
            buys=buys,
            sells=sells,
            last_trade_at=trader.get('last_transaction_at'),
        )

    def fetch_sightings(self, tokens: List[Dict[str, Any]]) -> List[Sighting]:
        """Fetch top traders for every token and keep the qualifying ones."""
        sightings: List[Sighting] = []

        for index, token in enumerate(tokens):
            if index > 0:
                # Rate limiting
                self.sleep(self.scanner_config.api_delay_seconds)

            try:
                traders = self.provider.fetch_top_traders(
                    token_address=token['token_address'],
                    trading_period=self.scanner_config.trading_period,
                    limit=self.scanner_config.traders_per_token
                ) or []
            except Exception as e:
                logger.error(f"Top traders call failed for token {token['token_address']}: {e}")
                continue

            token_sightings = [
                sighting for sighting in (self.qualify_trader(trader, token) for trader in traders)
                if sighting is not None
            ]
            logger.debug(
                f"Token {token.get('symbol') or token['token_address']}: "
                f"{len(token_sightings)}/{len(traders)} traders qualified"
            )
            sightings.extend(token_sightings)

        return sightings

    def build_history_entries(self, sightings: List[Sighting], now: datetime) -> List[Dict[str, Any]]:
        """One wallet_token_history row per new sighting."""
        return [
            {
                'wallet_address': s.wallet_address,
                'token_address': s.token_address,
                'token_symbol': s.token_symbol,
                'pnl_at_discovery': round_percent(s.profit_percent),
                'pnl_usd_at_discovery': round_usd(s.profit_usd),
                'trades_at_discovery': s.trades,
                'volume_usd': round_usd(s.volume_usd),
                'discovered_at': now,
            }
            for s in sightings
        ]

    def _rollback(self):
        try:
            self.store.rollback()
        except Exception as e:
            logger.error(f"Rollback failed: {e}")

    def run_scan(self) -> ScanResult:
        """Execute one discovery scan.

        Returns:
            ScanResult; failures are reported with success=False, never raised
        """
        if self.provider is None or self.store is None:
            missing = "market data provider" if self.provider is None else "wallet store"
            logger.error(f"Wallet scan aborted: {missing} not configured")
            return ScanResult(
                success=False,
                message="Scanner not configured",
                error=f"{missing} not configured"
            )

        now = self.clock()
        logger.info("Starting wallet scan...")

        try:
            tokens = self.fetch_trending_tokens()
            logger.info(f"Selected {len(tokens)} trending tokens")

            if not tokens:
                return ScanResult(success=True, message="No trending tokens found", timestamp=now)

            sightings = self.fetch_sightings(tokens)
            logger.info(f"Collected {len(sightings)} qualifying sightings from {len(tokens)} tokens")

            wallet_addresses = {s.wallet_address for s in sightings}
            if wallet_addresses:
                self.store.lock_wallets(wallet_addresses)
            known_pairs = self.store.find_known_pairs(wallet_addresses) if wallet_addresses else set()
            new_sightings = filter_new_sightings(sightings, known_pairs)

            if not new_sightings:
                # Nothing to write; end the transaction and release the wallet locks
                self._rollback()
                return ScanResult(
                    success=True,
                    message="No new wallet discoveries",
                    tokens_scanned=len(tokens),
                    timestamp=now
                )

            history_entries = self.build_history_entries(new_sightings, now)
            try:
                inserted = self.store.insert_history(history_entries)
                logger.info(f"Staged {inserted} token history entries")
            except Exception as e:
                logger.error(f"Failed to insert token history, continuing with wallet updates: {e}")

            partials = aggregate_sightings(new_sightings)
            existing = self.store.get_wallet_aggregates(partials.keys())

            rows = [
                merge_wallet_aggregate(
                    address,
                    partial,
                    existing.get(address),
                    now,
                    tag_config=self.tag_config,
                    win_rate_config=self.win_rate_config
                )
                for address, partial in partials.items()
            ]

            try:
                wallets_updated = self.store.upsert_wallet_aggregates(rows)
            except Exception as e:
                logger.error(f"Wallet upsert failed: {e}")
                self._rollback()
                return ScanResult(
                    success=False,
                    message="Wallet update failed",
                    tokens_scanned=len(tokens),
                    new_findings=len(new_sightings),
                    timestamp=now,
                    error=str(e)
                )

            logger.info(
                f"Wallet scan completed: {len(tokens)} tokens, {len(new_sightings)} new findings, "
                f"{wallets_updated} wallets updated ({len(existing)} existing)"
            )
            return ScanResult(
                success=True,
                message="Wallet scan completed",
                tokens_scanned=len(tokens),
                new_findings=len(new_sightings),
                wallets_updated=wallets_updated,
                timestamp=now
            )

        except Exception as e:
            logger.error(f"Wallet scan failed: {e}")
            self._rollback()
            return ScanResult(
                success=False,
                message="Wallet scan failed",
                timestamp=now,
                error=str(e)
            )
