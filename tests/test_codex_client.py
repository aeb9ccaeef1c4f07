"""Tests for the Codex GraphQL client."""

from datetime import datetime, timezone
from unittest import mock

import pytest
import requests

from signal_scanner.config.settings import SOLANA_NETWORK_ID
from signal_scanner.services.codex_client import (
    FILTER_TOKENS_QUERY,
    TOKEN_TOP_TRADERS_QUERY,
    CodexAPIClient,
    CodexAPIError,
)
from signal_scanner.services.market_data import MarketDataProvider


@pytest.fixture
def client() -> CodexAPIClient:
    return CodexAPIClient("test-key")


@pytest.fixture
def single_attempt() -> CodexAPIClient:
    return CodexAPIClient("test-key", max_retries=1)


FILTER_TOKENS_DATA = {
    "filterTokens": {
        "results": [
            {
                "change24": "0.85",
                "volume24": "125000.5",
                "liquidity": "60000",
                "token": {"address": "tokA", "symbol": "AAA", "name": "Token A"},
            },
            {
                "change24": None,
                "volume24": "1",
                "liquidity": "1",
                "token": {"address": None, "symbol": "NOPE"},
            },
        ]
    }
}

TOP_TRADERS_DATA = {
    "tokenTopTraders": {
        "items": [
            {
                "walletAddress": "w1",
                "realizedProfitUsd": "6000.25",
                "realizedProfitPercentage": 120.5,
                "volumeUsd": "15000",
                "buys": 3,
                "sells": "2",
                "tokenBalance": "0",
                "lastTransactionAt": 1717243200,
            },
            {
                "walletAddress": "",
                "realizedProfitUsd": "10",
            },
        ]
    }
}


class TestNormalization:
    def test_filter_tokens(self, client: CodexAPIClient) -> None:
        tokens = client.normalize_filter_tokens_response(FILTER_TOKENS_DATA)

        assert tokens == [{
            "token_address": "tokA",
            "symbol": "AAA",
            "name": "Token A",
            "price_change_24h_percent": 0.85,
            "volume_24h_usd": 125000.5,
            "liquidity": 60000.0,
        }]

    def test_top_traders(self, client: CodexAPIClient) -> None:
        traders = client.normalize_top_traders_response(TOP_TRADERS_DATA)

        assert len(traders) == 1
        trader = traders[0]
        assert trader["wallet_address"] == "w1"
        assert trader["realized_profit_usd"] == 6000.25
        assert trader["realized_profit_percent"] == 120.5
        assert trader["volume_usd"] == 15000.0
        assert trader["buys"] == 3
        assert trader["sells"] == 2
        assert trader["last_transaction_at"] == datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

    def test_empty_responses(self, client: CodexAPIClient) -> None:
        assert client.normalize_filter_tokens_response({}) == []
        assert client.normalize_filter_tokens_response({"filterTokens": None}) == []
        assert client.normalize_top_traders_response({"tokenTopTraders": {"items": None}}) == []

    def test_bad_trader_record_is_skipped(self, client: CodexAPIClient) -> None:
        data = {"tokenTopTraders": {"items": [{"walletAddress": "w1", "buys": "many"}]}}
        assert client.normalize_top_traders_response(data) == []


class TestProviderInterface:
    def test_is_market_data_provider(self, client: CodexAPIClient) -> None:
        assert isinstance(client, MarketDataProvider)

    def test_fetch_ranked_tokens(self, client: CodexAPIClient) -> None:
        with mock.patch.object(client, "_make_request", return_value=FILTER_TOKENS_DATA) as request:
            tokens = client.fetch_ranked_tokens(
                ranking_attribute="change24",
                direction="DESC",
                limit=100,
                filters={"min_liquidity": 10000, "min_volume_24h": 50000, "min_price_change_24h": 0.2},
            )

        assert [t["token_address"] for t in tokens] == ["tokA"]
        query, variables = request.call_args.args
        assert query == FILTER_TOKENS_QUERY
        assert variables["limit"] == 100
        assert variables["rankings"] == [{"attribute": "change24", "direction": "DESC"}]
        assert variables["filters"] == {
            "network": [SOLANA_NETWORK_ID],
            "liquidity": {"gt": 10000},
            "volume24": {"gt": 50000},
            "change24": {"gt": 0.2},
        }

    def test_fetch_ranked_tokens_without_change_filter(self, client: CodexAPIClient) -> None:
        with mock.patch.object(client, "_make_request", return_value={}) as request:
            client.fetch_ranked_tokens("volume24", filters={"min_liquidity": 50000})

        filters = request.call_args.args[1]["filters"]
        assert "change24" not in filters
        assert "volume24" not in filters

    def test_fetch_top_traders(self, client: CodexAPIClient) -> None:
        with mock.patch.object(client, "_make_request", return_value=TOP_TRADERS_DATA) as request:
            traders = client.fetch_top_traders("tokA", trading_period="WEEK", limit=25)

        assert [t["wallet_address"] for t in traders] == ["w1"]
        query, variables = request.call_args.args
        assert query == TOKEN_TOP_TRADERS_QUERY
        assert variables == {
            "input": {
                "tokenAddress": "tokA",
                "networkId": SOLANA_NETWORK_ID,
                "tradingPeriod": "WEEK",
                "limit": 25,
            }
        }


class TestRequests:
    def test_graphql_errors_raise(self, single_attempt: CodexAPIClient) -> None:
        response = mock.Mock()
        response.json.return_value = {"errors": [{"message": "Unauthorized"}]}
        response.raise_for_status.return_value = None

        with mock.patch.object(single_attempt.session, "post", return_value=response):
            with pytest.raises(CodexAPIError):
                single_attempt._make_request(FILTER_TOKENS_QUERY)

    def test_returns_data(self, client: CodexAPIClient) -> None:
        response = mock.Mock()
        response.json.return_value = {"data": FILTER_TOKENS_DATA}
        response.raise_for_status.return_value = None

        with mock.patch.object(client.session, "post", return_value=response) as post:
            assert client._make_request(FILTER_TOKENS_QUERY, {"limit": 1}) == FILTER_TOKENS_DATA

        assert post.call_args.kwargs["json"] == {"query": FILTER_TOKENS_QUERY, "variables": {"limit": 1}}
        assert client.session.headers["Authorization"] == "test-key"

    def test_http_errors_propagate(self, single_attempt: CodexAPIClient) -> None:
        response = mock.Mock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("500 Server Error")

        with mock.patch.object(single_attempt.session, "post", return_value=response):
            with pytest.raises(requests.exceptions.HTTPError):
                single_attempt._make_request(FILTER_TOKENS_QUERY)

    def test_retries_up_to_max_retries(self) -> None:
        client = CodexAPIClient("test-key", max_retries=2)
        connection_error = requests.exceptions.ConnectionError("connection reset")

        with mock.patch.object(client.session, "post", side_effect=connection_error) as post, \
                mock.patch("time.sleep") as sleep:
            with pytest.raises(requests.exceptions.ConnectionError):
                client._make_request(FILTER_TOKENS_QUERY)

        assert post.call_count == 2
        assert sleep.call_count == 1

    def test_recovers_after_transient_failure(self) -> None:
        client = CodexAPIClient("test-key", max_retries=3)
        response = mock.Mock()
        response.json.return_value = {"data": TOP_TRADERS_DATA}
        response.raise_for_status.return_value = None
        failures = [requests.exceptions.Timeout("read timed out"), response]

        with mock.patch.object(client.session, "post", side_effect=failures) as post, \
                mock.patch("time.sleep"):
            assert client._make_request(TOKEN_TOP_TRADERS_QUERY) == TOP_TRADERS_DATA

        assert post.call_count == 2

    def test_max_retries_floor(self) -> None:
        assert CodexAPIClient("test-key", max_retries=0).max_retries == 1
