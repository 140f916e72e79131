"""
Tests for fan-in / fan-out hub detection on both tiers.
"""
from datetime import datetime, timedelta

import pytest

from ring_forensics.config import BASELINE, ENHANCED
from ring_forensics.graph_builder import build_graph, transactions_to_frame
from ring_forensics.models import Pattern, Transaction
from ring_forensics.smurf_detector import detect_smurfing

T0 = datetime(2024, 1, 10, 8, 0, 0)


def _run(txs, profile):
    return detect_smurfing(build_graph(txs), transactions_to_frame(txs), profile)


# ── Synthetic Datasets ────────────────────────────────────────────────


def _fan_in(amounts, n_senders=15, hours_apart=0.5):
    """len(amounts) transactions from n_senders distinct senders into HUB."""
    return [
        Transaction(
            transaction_id=f"TIN_{i}",
            sender_id=f"SENDER_{i % n_senders:03d}",
            receiver_id="HUB",
            amount=amount,
            timestamp=T0 + timedelta(hours=i * hours_apart),
        )
        for i, amount in enumerate(amounts)
    ]


def _fan_out(n_receivers, hours_apart=1.0):
    return [
        Transaction(
            transaction_id=f"TOUT_{i}",
            sender_id="HUB",
            receiver_id=f"RECEIVER_{i:03d}",
            amount=100.0 + i,
            timestamp=T0 + timedelta(hours=i * hours_apart),
        )
        for i in range(n_receivers)
    ]


def _three_bucket_amounts(n=20):
    buckets = [1000.0, 2000.0, 3000.0]
    return [buckets[i % 3] + (i % 5) for i in range(n)]


def _diverse_amounts(n=20):
    return [1.0 + i * (9999.0 / (n - 1)) for i in range(n)]


class TestEnhancedFanIn:
    def test_repetitive_amounts_flagged(self):
        matches = _run(_fan_in(_three_bucket_amounts()), ENHANCED)
        assert len(matches) == 1
        match = matches[0]
        assert match.pattern is Pattern.FAN_IN
        assert match.accounts == ("HUB",)
        assert match.unique_counterparties == 15
        assert match.window_transactions == 20
        assert match.amount_diversity == pytest.approx(0.15)
        assert match.confidence == pytest.approx(1 - match.amount_diversity)

    def test_diverse_amounts_suppressed(self):
        matches = _run(_fan_in(_diverse_amounts()), ENHANCED)
        assert all(m.pattern is not Pattern.FAN_IN for m in matches)

    def test_too_few_transactions(self):
        # 15 senders but only 15 transactions: below the 20-transaction floor.
        matches = _run(_fan_in(_three_bucket_amounts(15)), ENHANCED)
        assert matches == []


class TestBaselineFans:
    def test_fan_out_flagged(self):
        matches = _run(_fan_out(10), BASELINE)
        assert [m.pattern for m in matches] == [Pattern.FAN_OUT]
        assert matches[0].accounts == ("HUB",)
        assert matches[0].confidence is None

    def test_below_degree_threshold(self):
        assert _run(_fan_out(9), BASELINE) == []

    def test_spread_beyond_window(self):
        # 10 receivers, one every 10 hours: no 72h window holds all of them.
        assert _run(_fan_out(10, hours_apart=10.0), BASELINE) == []

    def test_diverse_fan_in_flagged_without_diversity_filter(self):
        matches = _run(_fan_in(_diverse_amounts(), n_senders=12), BASELINE)
        assert [m.pattern for m in matches] == [Pattern.FAN_IN]

    def test_spokes_not_flagged(self):
        matches = _run(_fan_in(_diverse_amounts(), n_senders=12), BASELINE)
        flagged = {acc for m in matches for acc in m.accounts}
        assert flagged == {"HUB"}

    def test_empty_batch(self):
        assert _run([], BASELINE) == []
