"""Pytest configuration and fixtures."""

import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from signal_scanner.config.settings import Settings
from signal_scanner.database.connection import DatabaseConnection
from signal_scanner.database.wallet_store import SQLWalletStore
from signal_scanner.services.market_data import MarketDataProvider


SCAN_TIME = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeProvider(MarketDataProvider):
    """In-memory market-data provider.

    ranked_tokens maps ranking attribute to the token list it returns; traders
    maps token address to its top-trader records. Either can hold an exception
    instance, which is raised on call.
    """

    def __init__(
        self,
        ranked_tokens: Optional[Dict[str, Any]] = None,
        traders: Optional[Dict[str, Any]] = None
    ):
        self.ranked_tokens = ranked_tokens or {}
        self.traders = traders or {}
        self.ranked_calls: List[Dict[str, Any]] = []
        self.trader_calls: List[Dict[str, Any]] = []

    def fetch_ranked_tokens(self, ranking_attribute, direction="DESC", limit=50, filters=None):
        self.ranked_calls.append({
            "ranking_attribute": ranking_attribute,
            "direction": direction,
            "limit": limit,
            "filters": filters,
        })
        tokens = self.ranked_tokens.get(ranking_attribute, [])
        if isinstance(tokens, Exception):
            raise tokens
        return tokens

    def fetch_top_traders(self, token_address, trading_period="WEEK", limit=25):
        self.trader_calls.append({
            "token_address": token_address,
            "trading_period": trading_period,
            "limit": limit,
        })
        traders = self.traders.get(token_address, [])
        if isinstance(traders, Exception):
            raise traders
        return traders


class IdentityRandom(random.Random):
    """Random source whose shuffle keeps the input order."""

    def shuffle(self, x):
        return None


def make_token(address: str, symbol: Optional[str] = None) -> Dict[str, Any]:
    return {
        "token_address": address,
        "symbol": symbol or address.upper(),
        "name": f"{address} token",
        "price_change_24h_percent": 42.0,
        "volume_24h_usd": 250000.0,
        "liquidity": 80000.0,
    }


def make_trader(
    wallet: str,
    profit_usd: float = 6000.0,
    profit_percent: float = 120.0,
    buys: int = 3,
    sells: int = 2,
    volume_usd: float = 15000.0
) -> Dict[str, Any]:
    return {
        "wallet_address": wallet,
        "realized_profit_usd": profit_usd,
        "realized_profit_percent": profit_percent,
        "volume_usd": volume_usd,
        "buys": buys,
        "sells": sells,
        "token_balance": 0.0,
        "last_transaction_at": None,
    }


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with built-in defaults only."""
    return Settings(config_path=str(tmp_path / "missing.yaml"))


@pytest.fixture
def db_connection():
    db = DatabaseConnection("sqlite://")
    db.create_all_tables()
    yield db
    db.engine.dispose()


@pytest.fixture
def session(db_connection):
    with db_connection.get_session() as session:
        yield session


@pytest.fixture
def store(session) -> SQLWalletStore:
    return SQLWalletStore(session, batch_size=2)


@pytest.fixture
def identity_rng() -> IdentityRandom:
    return IdentityRandom()


@pytest.fixture
def sleeps() -> List[float]:
    return []
