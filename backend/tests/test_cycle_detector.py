"""
Tests for bounded cycle detection and ring id assignment.
"""
from datetime import datetime, timedelta

from ring_forensics.config import BASELINE, ENHANCED
from ring_forensics.cycle_detector import detect_cycles
from ring_forensics.graph_builder import build_graph
from ring_forensics.models import Pattern, Transaction
from ring_forensics.utils import RingRegistry

T0 = datetime(2024, 1, 10, 10, 0, 0)


def _chain_txs(accounts, amounts, close=True):
    """Transactions along accounts[0] -> accounts[1] -> ... (-> accounts[0])."""
    pairs = list(zip(accounts, accounts[1:]))
    if close:
        pairs.append((accounts[-1], accounts[0]))
    return [
        Transaction(
            transaction_id=f"T{i}",
            sender_id=s,
            receiver_id=r,
            amount=amounts[i % len(amounts)],
            timestamp=T0 + timedelta(hours=i),
        )
        for i, (s, r) in enumerate(pairs)
    ]


class TestBaselineCycles:
    def test_finds_triangle(self):
        G = build_graph(_chain_txs(["A", "B", "C"], [100.0, 200.0, 150.0]))
        cycles = detect_cycles(G, BASELINE)
        assert len(cycles) == 1
        assert cycles[0].pattern is Pattern.CYCLE_3
        assert set(cycles[0].accounts) == {"A", "B", "C"}
        assert cycles[0].ring_id == "RING_000"
        assert cycles[0].confidence is None

    def test_uniform_amounts_accepted(self):
        G = build_graph(_chain_txs(["A", "B", "C"], [100.0]))
        assert len(detect_cycles(G, BASELINE)) == 1

    def test_cycle_lengths(self):
        G4 = build_graph(_chain_txs(["A", "B", "C", "D"], [100.0]))
        G5 = build_graph(_chain_txs(["A", "B", "C", "D", "E"], [100.0]))
        assert [c.pattern for c in detect_cycles(G4, BASELINE)] == [Pattern.CYCLE_4]
        assert [c.pattern for c in detect_cycles(G5, BASELINE)] == [Pattern.CYCLE_5]

    def test_long_cycle_ignored(self):
        G = build_graph(_chain_txs(["A", "B", "C", "D", "E", "F"], [100.0]))
        assert detect_cycles(G, BASELINE) == []

    def test_two_node_loop_ignored(self):
        G = build_graph(_chain_txs(["A", "B"], [100.0]))
        assert detect_cycles(G, BASELINE) == []

    def test_no_false_positive_on_chain(self):
        G = build_graph(_chain_txs(["A", "B", "C", "D"], [100.0], close=False))
        assert detect_cycles(G, BASELINE) == []

    def test_traversal_orders_share_one_ring(self):
        txs = [
            Transaction(transaction_id="T1", sender_id="B", receiver_id="C", amount=200.0, timestamp=T0),
            Transaction(transaction_id="T2", sender_id="C", receiver_id="A", amount=150.0, timestamp=T0),
            Transaction(transaction_id="T3", sender_id="A", receiver_id="B", amount=100.0, timestamp=T0),
        ]
        cycles = detect_cycles(build_graph(txs), BASELINE)
        assert len(cycles) == 1
        assert cycles[0].accounts[0] == "B"

    def test_rings_numbered_in_discovery_order(self):
        txs = _chain_txs(["A", "B", "C"], [100.0, 200.0, 150.0])
        txs += _chain_txs(["A", "D", "E"], [300.0, 500.0, 400.0])
        cycles = detect_cycles(build_graph(txs), BASELINE)
        assert [c.ring_id for c in cycles] == ["RING_000", "RING_001"]
        assert set(cycles[0].accounts) == {"A", "B", "C"}
        assert set(cycles[1].accounts) == {"A", "D", "E"}

    def test_registry_skips_known_keys(self):
        registry = RingRegistry()
        registry.register(("A", "B", "C"))
        G = build_graph(_chain_txs(["A", "B", "C"], [100.0, 200.0, 150.0]))
        assert detect_cycles(G, BASELINE, registry) == []


class TestEnhancedCycles:
    def test_uniform_amounts_rejected(self):
        G = build_graph(_chain_txs(["A", "B", "C"], [100.0]))
        assert detect_cycles(G, ENHANCED) == []

    def test_varied_amounts_accepted_with_confidence(self):
        G = build_graph(_chain_txs(["A", "B", "C"], [100.0, 200.0, 150.0]))
        cycles = detect_cycles(G, ENHANCED)
        assert len(cycles) == 1
        assert cycles[0].confidence == 0.9
        assert cycles[0].leg_amounts == (100.0, 200.0, 150.0)
        assert cycles[0].amount_cv > 0.2

    def test_rejected_cycle_gets_no_ring_id(self):
        txs = _chain_txs(["A", "B", "C"], [100.0])
        txs += _chain_txs(["X", "Y", "Z"], [100.0, 200.0, 150.0])
        cycles = detect_cycles(build_graph(txs), ENHANCED)
        assert len(cycles) == 1
        assert cycles[0].ring_id == "RING_000"
        assert set(cycles[0].accounts) == {"X", "Y", "Z"}
