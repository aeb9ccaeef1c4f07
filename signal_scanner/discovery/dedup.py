"""
Sighting deduplicator - the only gate in front of the history uniqueness constraint.
"""

import logging
from typing import Iterable, List, Set, Tuple

from signal_scanner.models.scan import Sighting

logger = logging.getLogger(__name__)


def filter_new_sightings(
    sightings: Iterable[Sighting],
    known_pairs: Set[Tuple[str, str]]
) -> List[Sighting]:
    """Drop sightings whose (wallet, token) pair is already recorded.

    Pairs repeated within the batch are kept once, first occurrence wins.

    Args:
        sightings: Sightings from the current scan
        known_pairs: Recorded (wallet, token) pairs for the wallets in the batch

    Returns:
        Sightings for pairs never seen before
    """
    seen = set(known_pairs)
    new_sightings = []
    skipped = 0

    for sighting in sightings:
        if sighting.pair in seen:
            skipped += 1
            continue
        seen.add(sighting.pair)
        new_sightings.append(sighting)

    logger.info(f"Deduplicated sightings: {len(new_sightings)} new, {skipped} already known")
    return new_sightings
