"""Tests for merging scan partials into wallet aggregates."""

from datetime import datetime, timedelta, timezone

import pytest

from signal_scanner.config.settings import WinRateConfig
from signal_scanner.discovery.merge import (
    calculate_win_rate,
    merge_wallet_aggregate,
    round_percent,
    round_usd,
)
from signal_scanner.models.scan import WalletPartial

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestRounding:
    def test_round_usd(self) -> None:
        assert round_usd(1234.5678) == 1234.57

    def test_round_percent(self) -> None:
        assert round_percent(119.6) == 120
        assert isinstance(round_percent(119.6), int)


class TestWinRate:
    @pytest.mark.parametrize("winning_tokens", [0, 1, 5, 9, 10, 100, 10_000])
    def test_bounds(self, winning_tokens) -> None:
        assert 50 <= calculate_win_rate(winning_tokens) <= 95

    def test_values(self) -> None:
        assert calculate_win_rate(0) == 50
        assert calculate_win_rate(1) == 55
        assert calculate_win_rate(9) == 95
        assert calculate_win_rate(12) == 95

    def test_custom_config(self) -> None:
        assert calculate_win_rate(2, WinRateConfig(base=40, per_token=10, cap=55)) == 55


class TestMergeWalletAggregate:
    def test_first_time_wallet(self) -> None:
        partial = WalletPartial(pnl_usd=6000.0, pnl_percent=120.0, trades=5, token_count=1, volume_usd=1500.0)
        row = merge_wallet_aggregate("w1", partial, None, NOW)

        assert row["address"] == "w1"
        assert row["appearances"] == 1
        assert row["winning_tokens"] == 1
        assert row["total_trades"] == 5
        assert row["total_pnl_usd"] == 6000.00
        assert row["total_pnl"] == 120
        assert row["pnl_percent"] == 120
        assert row["avg_return"] == 120
        assert row["win_rate"] == 55
        assert row["tags"] == ["High PnL"]
        assert row["total_volume_usd"] == 1500.0
        assert row["created_at"] == NOW
        assert row["updated_at"] == NOW
        assert row["last_trade_at"] == NOW

    def test_existing_wallet_accumulates(self) -> None:
        created = NOW - timedelta(days=3)
        existing = {
            "address": "w1",
            "total_pnl": 400,
            "total_pnl_usd": 9000.0,
            "total_volume_usd": 20000.0,
            "total_trades": 20,
            "appearances": 4,
            "winning_tokens": 4,
            "created_at": created,
        }
        partial = WalletPartial(pnl_usd=3000.0, pnl_percent=80.0, trades=6, token_count=1, volume_usd=500.0)

        row = merge_wallet_aggregate("w1", partial, existing, NOW)

        assert row["appearances"] == 5
        assert row["winning_tokens"] == 5
        assert row["total_pnl_usd"] == 12000.0
        assert row["total_pnl"] == 480
        assert row["total_trades"] == 26
        assert row["pnl_percent"] == 96
        assert row["avg_return"] == 96
        assert row["win_rate"] == 75
        assert row["created_at"] == created
        assert row["updated_at"] == NOW
        assert row["tags"] == ["Consistent", "Multi-Winner", "Whale", "Smart Money"]

    def test_ten_x_hunter_on_high_cumulative_percent(self) -> None:
        existing = {"total_pnl": 450, "total_pnl_usd": 11000.0, "appearances": 4, "winning_tokens": 4}
        partial = WalletPartial(pnl_usd=1000.0, pnl_percent=100.0, trades=2, token_count=1)
        row = merge_wallet_aggregate("w1", partial, existing, NOW)
        assert "10x Hunter" in row["tags"]

    def test_empty_partial_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            merge_wallet_aggregate("w1", WalletPartial(), None, NOW)

    def test_additivity(self) -> None:
        existing = {
            "total_pnl": 33,
            "total_pnl_usd": 120.25,
            "total_volume_usd": 10.0,
            "total_trades": 4,
            "appearances": 1,
            "winning_tokens": 1,
            "created_at": NOW,
        }
        p1 = WalletPartial(pnl_usd=10.005, pnl_percent=12.4, trades=3, token_count=1, volume_usd=1.0)
        p2 = WalletPartial(pnl_usd=20.335, pnl_percent=7.4, trades=2, token_count=2, volume_usd=2.0)

        sequential = merge_wallet_aggregate(
            "w1", p2, merge_wallet_aggregate("w1", p1, existing, NOW), NOW
        )
        combined = merge_wallet_aggregate("w1", p1 + p2, existing, NOW)

        for field in ("appearances", "winning_tokens", "total_trades"):
            assert sequential[field] == combined[field]
        assert sequential["total_pnl_usd"] == pytest.approx(combined["total_pnl_usd"], abs=0.02)
        assert abs(sequential["total_pnl"] - combined["total_pnl"]) <= 1
        assert abs(sequential["pnl_percent"] - combined["pnl_percent"]) <= 1
        assert abs(sequential["avg_return"] - combined["avg_return"]) <= 1
        assert sequential["win_rate"] == combined["win_rate"]
