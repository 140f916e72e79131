"""
graph_builder.py – Build the aggregated transaction graph for one run.

Nodes are account ids, created lazily the first time an id appears as sender
or receiver.  Every ordered (sender, receiver) pair collapses into a single
edge whose `amount` is the sum and `transaction_count` the number of
transfers between them.

Transaction-level detectors (fan patterns, amount and lifecycle anomalies,
velocity) also need the raw records; `transactions_to_frame` gives them a
pandas DataFrame in the same order.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Sequence

import networkx as nx
import pandas as pd

from .models import Transaction

log = logging.getLogger(__name__)

FRAME_COLUMNS = ["transaction_id", "sender_id", "receiver_id", "amount", "timestamp"]


def build_graph(transactions: Sequence[Transaction]) -> nx.DiGraph:
    """
    Fold transactions into a directed graph with aggregated edges.

    Node attributes
    ---------------
    in_degree, out_degree : int   – distinct incoming / outgoing edges

    Edge attributes
    ---------------
    amount            : float – summed transferred amount
    transaction_count : int
    """
    G = nx.DiGraph()

    for tx in transactions:
        if G.has_edge(tx.sender_id, tx.receiver_id):
            edge = G[tx.sender_id][tx.receiver_id]
            edge["amount"] += tx.amount
            edge["transaction_count"] += 1
        else:
            G.add_edge(tx.sender_id, tx.receiver_id, amount=tx.amount, transaction_count=1)

    # Degrees count distinct counterpart edges, not transaction volume.
    for node in G.nodes:
        G.nodes[node]["in_degree"] = G.in_degree(node)
        G.nodes[node]["out_degree"] = G.out_degree(node)

    log.info("Graph built: %d nodes, %d edges", G.number_of_nodes(), G.number_of_edges())
    return G


def transactions_to_frame(transactions: Sequence[Transaction]) -> pd.DataFrame:
    """Tabular view of the batch, input order preserved."""
    if not transactions:
        df = pd.DataFrame({col: pd.Series(dtype="object") for col in FRAME_COLUMNS})
        df["amount"] = df["amount"].astype(float)
        df["timestamp"] = pd.to_datetime(df["timestamp"])
        return df

    df = pd.DataFrame([tx.model_dump() for tx in transactions], columns=FRAME_COLUMNS)
    df["amount"] = df["amount"].astype(float)
    df["timestamp"] = pd.to_datetime(df["timestamp"])
    return df


def account_activity(df: pd.DataFrame) -> pd.DataFrame:
    """
    One row per (account, transaction) incidence: every transaction appears
    once for its sender and once for its receiver.

    Columns: account_id, counterparty_id, direction ("out" / "in"), amount,
    timestamp, seq (position in the original batch).
    """
    sent = pd.DataFrame({
        "account_id":      df["sender_id"],
        "counterparty_id": df["receiver_id"],
        "direction":       "out",
        "amount":          df["amount"],
        "timestamp":       df["timestamp"],
        "seq":             range(len(df)),
    })
    received = pd.DataFrame({
        "account_id":      df["receiver_id"],
        "counterparty_id": df["sender_id"],
        "direction":       "in",
        "amount":          df["amount"],
        "timestamp":       df["timestamp"],
        "seq":             range(len(df)),
    })
    return pd.concat([sent, received], ignore_index=True)


def network_statistics(G: nx.DiGraph) -> Dict[str, Any]:
    """Compute graph-level network statistics for the summary."""
    n_nodes = G.number_of_nodes()
    n_edges = G.number_of_edges()

    return {
        "total_nodes": n_nodes,
        "total_edges": n_edges,
        "graph_density": round(nx.density(G), 6) if n_nodes > 1 else 0.0,
        "avg_degree": round((2 * n_edges) / n_nodes, 2) if n_nodes > 0 else 0.0,
        "connected_components": (
            nx.number_weakly_connected_components(G) if n_nodes > 0 else 0
        ),
    }
