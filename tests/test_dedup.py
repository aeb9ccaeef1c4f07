"""Tests for sighting deduplication."""

from signal_scanner.discovery.dedup import filter_new_sightings
from signal_scanner.models.scan import Sighting


def sighting(wallet: str, token: str, profit_usd: float = 100.0) -> Sighting:
    return Sighting(
        wallet_address=wallet,
        token_address=token,
        token_symbol=None,
        profit_usd=profit_usd,
        profit_percent=20.0,
        volume_usd=500.0,
        buys=1,
        sells=1,
    )


class TestFilterNewSightings:
    def test_known_pairs_are_dropped(self) -> None:
        batch = [sighting("w1", "t1"), sighting("w1", "t2"), sighting("w2", "t1")]
        result = filter_new_sightings(batch, {("w1", "t1")})
        assert [s.pair for s in result] == [("w1", "t2"), ("w2", "t1")]

    def test_same_wallet_new_token_is_kept(self) -> None:
        result = filter_new_sightings([sighting("w1", "t9")], {("w1", "t1"), ("w2", "t9")})
        assert len(result) == 1

    def test_second_pass_is_empty(self) -> None:
        batch = [sighting("w1", "t1"), sighting("w2", "t2")]
        first = filter_new_sightings(batch, set())
        known = {s.pair for s in first}
        assert filter_new_sightings(batch, known) == []

    def test_repeated_pair_in_batch_first_wins(self) -> None:
        batch = [sighting("w1", "t1", 100.0), sighting("w1", "t1", 999.0)]
        result = filter_new_sightings(batch, set())
        assert len(result) == 1
        assert result[0].profit_usd == 100.0

    def test_known_pairs_not_mutated(self) -> None:
        known = {("w1", "t1")}
        filter_new_sightings([sighting("w2", "t2")], known)
        assert known == {("w1", "t1")}

    def test_empty_batch(self) -> None:
        assert filter_new_sightings([], {("w1", "t1")}) == []
