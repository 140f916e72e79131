"""
Tests for PageRank influence, bridge centrality, velocity and burst windows.
"""
from datetime import datetime, timedelta

import pytest

from ring_forensics.graph_builder import build_graph, transactions_to_frame
from ring_forensics.graph_metrics import (
    compute_graph_metrics,
    pagerank_anomalies,
    pagerank_scores,
    path_centrality,
    peak_window_activity,
    transaction_velocity,
)
from ring_forensics.models import Transaction

T0 = datetime(2024, 1, 10, 10, 0, 0)


def _edges(pairs, step=timedelta(hours=1)):
    return [
        Transaction(
            transaction_id=f"T{i}",
            sender_id=s,
            receiver_id=r,
            amount=100.0,
            timestamp=T0 + step * i,
        )
        for i, (s, r) in enumerate(pairs)
    ]


class TestPageRank:
    def test_symmetric_cycle(self):
        pr = pagerank_scores(build_graph(_edges([("A", "B"), ("B", "C"), ("C", "A")])))
        assert pr == pytest.approx({"A": 100.0, "B": 100.0, "C": 100.0})

    def test_sink_ranks_highest(self):
        pr = pagerank_scores(build_graph(_edges([("A", "C"), ("B", "C")])))
        assert pr["C"] == pytest.approx(100.0)
        assert pr["A"] == pytest.approx(pr["B"])
        assert pr["A"] < pr["C"]

    def test_empty_graph(self):
        assert pagerank_scores(build_graph([])) == {}

    def test_anomalies_need_low_degree(self):
        G = build_graph(_edges([("A", "B"), ("B", "C"), ("C", "A")]))
        assert pagerank_anomalies(G, pagerank_scores(G)) == {"A", "B", "C"}


class TestPathCentrality:
    def test_chain(self):
        scores = path_centrality(build_graph(_edges([("A", "B"), ("B", "C")])))
        assert scores == pytest.approx({"A": 0.0, "B": 50.0, "C": 100.0})

    def test_diamond_counts_every_shortest_path(self):
        G = build_graph(_edges([("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")]))
        scores = path_centrality(G)
        assert scores["D"] == pytest.approx(100.0)
        assert scores["B"] == pytest.approx(25.0)
        assert scores["A"] == 0.0


class TestVelocity:
    def test_single_transaction_scores_zero(self):
        velocity = transaction_velocity(transactions_to_frame(_edges([("A", "B")])))
        assert velocity == {"A": 0.0, "B": 0.0}

    def test_simultaneous_transactions_max_out(self):
        txs = _edges([("A", "B"), ("A", "C")], step=timedelta(0))
        assert transaction_velocity(transactions_to_frame(txs))["A"] == 100.0

    def test_hourly_pair(self):
        # gap 1h, two transactions -> 2 tx/h implied -> 2 / 50 * 100
        txs = _edges([("A", "B"), ("A", "C")])
        assert transaction_velocity(transactions_to_frame(txs))["A"] == pytest.approx(4.0)

    def test_empty(self):
        assert transaction_velocity(transactions_to_frame([])) == {}


class TestPeakWindow:
    def test_burst_then_quiet(self):
        pairs = [("A", f"R{i}") for i in range(6)]
        txs = _edges(pairs[:5], step=timedelta(minutes=10))
        txs += [Transaction(
            transaction_id="LATE",
            sender_id="A",
            receiver_id="R5",
            amount=1.0,
            timestamp=T0 + timedelta(days=2),
        )]
        peaks = peak_window_activity(transactions_to_frame(txs), 24)
        assert peaks["A"] == 5
        assert peaks["R5"] == 1


class TestComputeGraphMetrics:
    def test_bundle(self):
        txs = _edges([("A", "B"), ("B", "C"), ("C", "A")])
        metrics = compute_graph_metrics(build_graph(txs), transactions_to_frame(txs))
        assert set(metrics.pagerank) == {"A", "B", "C"}
        assert set(metrics.betweenness) == {"A", "B", "C"}
        assert set(metrics.velocity) == {"A", "B", "C"}
        assert metrics.pagerank_anomalies == {"A", "B", "C"}
