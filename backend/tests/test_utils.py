"""
Tests for ring id assignment and the numeric helpers.
"""
from datetime import timedelta

import pytest

from ring_forensics.utils import (
    RingRegistry,
    canonical_cycle_key,
    coefficient_of_variation,
    floor_bucket,
    format_ring_id,
    nearest_bucket,
    whole_days,
)


class TestRingRegistry:
    def test_sequential_ids(self):
        registry = RingRegistry()
        assert registry.register(("A", "B", "C")) == "RING_000"
        assert registry.register(("A", "D", "E")) == "RING_001"
        assert registry.ring_ids() == ["RING_000", "RING_001"]
        assert len(registry) == 2

    def test_known_key_returns_none(self):
        registry = RingRegistry()
        registry.register(("A", "B", "C"))
        assert registry.register(("A", "B", "C")) is None
        assert ("A", "B", "C") in registry

    def test_canonical_key_ignores_rotation(self):
        assert canonical_cycle_key(["B", "C", "A"]) == canonical_cycle_key(["A", "B", "C"])

    def test_zero_padding(self):
        assert format_ring_id(7) == "RING_007"
        assert format_ring_id(1234) == "RING_1234"


class TestHelpers:
    def test_cv_population(self):
        assert coefficient_of_variation([100.0, 200.0, 150.0]) == pytest.approx(0.2722, abs=1e-4)

    def test_cv_uniform(self):
        assert coefficient_of_variation([5.0, 5.0, 5.0]) == 0.0

    def test_cv_zero_mean(self):
        assert coefficient_of_variation([0.0, 0.0]) == 0.0
        assert coefficient_of_variation([0.0, 0.0], zero_mean=1.0) == 1.0
        assert coefficient_of_variation([]) == 0.0

    def test_buckets(self):
        assert nearest_bucket(1049.0) == 1000.0
        assert nearest_bucket(1050.0) == 1100.0
        assert floor_bucket(1099.0) == 1000.0

    def test_whole_days_truncates(self):
        assert whole_days(timedelta(days=6, hours=23)) == 6
        assert whole_days(timedelta(hours=5)) == 0
