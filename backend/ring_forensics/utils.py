"""
utils.py – Ring ID assignment & small numeric helpers shared by detectors.

Ring IDs
--------
A ring is created at most once per canonical cycle key: the sorted,
deduplicated set of account ids in the cycle.  A -> B -> C -> A, B -> C -> A -> B
and every other traversal of the same three accounts therefore share one key
and one RING_### id.  IDs are handed out sequentially from RING_000 in
first-discovery order.
"""
from __future__ import annotations

import math
from datetime import timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple


def format_ring_id(sequence: int) -> str:
    return f"RING_{sequence:03d}"


def canonical_cycle_key(accounts: Iterable[str]) -> Tuple[str, ...]:
    """Order-insensitive key for a cycle: sorted unique account ids."""
    return tuple(sorted(set(accounts)))


class RingRegistry:
    """Hands out sequential ring IDs, one per canonical cycle key."""

    def __init__(self) -> None:
        self._ids: Dict[Tuple[str, ...], str] = {}

    def __contains__(self, key: Tuple[str, ...]) -> bool:
        return key in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def register(self, key: Tuple[str, ...]) -> Optional[str]:
        """
        Return a fresh ring_id for a key seen for the first time, None when
        the key already owns a ring.
        """
        if key in self._ids:
            return None
        ring_id = format_ring_id(len(self._ids))
        self._ids[key] = ring_id
        return ring_id

    def ring_ids(self) -> List[str]:
        return list(self._ids.values())


def coefficient_of_variation(values: Sequence[float], zero_mean: float = 0.0) -> float:
    """
    Population standard deviation divided by the mean.

    `zero_mean` is returned when the mean is not positive (or `values` is
    empty), since the ratio is undefined there.
    """
    if not values:
        return zero_mean
    mean = sum(values) / len(values)
    if mean <= 0:
        return zero_mean
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return math.sqrt(variance) / mean


def nearest_bucket(amount: float, size: float = 100.0) -> float:
    """Round to the nearest multiple of `size`; halves round up."""
    return math.floor(amount / size + 0.5) * size


def floor_bucket(amount: float, size: float = 100.0) -> float:
    return math.floor(amount / size) * size


def whole_days(delta: timedelta) -> int:
    """Number of complete days in `delta`, truncated toward zero."""
    return int(delta.total_seconds() / 86400)


def safe_ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0
