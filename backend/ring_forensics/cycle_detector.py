"""
cycle_detector.py – Detect circular fund routing (money-mule rings).

Strategy
--------
Depth-bounded DFS from every node, following outgoing edges.  A path never
revisits an account; the only way back to the start node is the closing edge.
A cycle is recorded when the current node has an edge to the start and the
path holds CYCLE_MIN_LEN..CYCLE_MAX_LEN accounts.

The DFS uses an explicit stack whose depth never exceeds CYCLE_MAX_LEN, and
neighbours are pushed in reverse so cycles are discovered in the same order a
recursive pre-order walk would find them.  Ring IDs follow that order.

Canonical deduplication: [A,B,C] and [B,C,A] are the same ring; the key is
the sorted set of accounts.

Amount filter (enhanced profile)
--------------------------------
Legitimate round-trips and refunds move nearly the same amount on every leg.
When the profile sets `cycle_min_cv`, cycles whose per-edge aggregated amounts
have a coefficient of variation below it are discarded.  A discarded key is not
remembered, so another traversal over the same accounts is judged on its own
legs.
"""
from __future__ import annotations

import logging
from typing import List, Tuple

import networkx as nx

from .config import CYCLE_MAX_LEN, CYCLE_MIN_LEN, DetectionProfile
from .models import Pattern, PatternMatch
from .utils import RingRegistry, canonical_cycle_key, coefficient_of_variation

log = logging.getLogger(__name__)


def _leg_amounts(G: nx.DiGraph, cycle: Tuple[str, ...]) -> List[float]:
    legs = zip(cycle, cycle[1:] + cycle[:1])
    return [G[u][v]["amount"] for u, v in legs]


def _enumerate_cycles(G: nx.DiGraph, min_len: int, max_len: int):
    """Yield every bounded simple cycle as a tuple of accounts (start first)."""
    for start in G.nodes:
        stack: List[Tuple[str, ...]] = [(start,)]
        while stack:
            path = stack.pop()
            current = path[-1]

            if min_len <= len(path) <= max_len and G.has_edge(current, start):
                yield path

            if len(path) < max_len:
                for nbr in reversed(list(G.successors(current))):
                    if nbr not in path:
                        stack.append(path + (nbr,))


def detect_cycles(
    G: nx.DiGraph,
    profile: DetectionProfile,
    registry: RingRegistry | None = None,
) -> List[PatternMatch]:
    """
    Detect directed cycles of CYCLE_MIN_LEN to CYCLE_MAX_LEN accounts.

    Returns
    -------
    One PatternMatch per accepted canonical cycle, in discovery order:
        pattern      : cycle_length_N (N = number of edges)
        accounts     : cycle in traversal order, start node first
        ring_id      : RING_### assigned on first sighting
        leg_amounts  : aggregated amount on each edge of the cycle
        amount_cv    : coefficient of variation of leg_amounts
        confidence   : profile.cycle_confidence when the profile uses confidence
    """
    registry = registry if registry is not None else RingRegistry()
    matches: List[PatternMatch] = []
    rejected = 0

    for cycle in _enumerate_cycles(G, CYCLE_MIN_LEN, CYCLE_MAX_LEN):
        key = canonical_cycle_key(cycle)
        if key in registry:
            continue

        legs = _leg_amounts(G, cycle)
        cv = coefficient_of_variation(legs)
        if (
            profile.cycle_min_cv is not None
            and len(legs) >= CYCLE_MIN_LEN
            and cv < profile.cycle_min_cv
        ):
            rejected += 1
            continue

        ring_id = registry.register(key)
        matches.append(PatternMatch(
            pattern=Pattern.cycle(len(cycle)),
            accounts=cycle,
            ring_id=ring_id,
            leg_amounts=tuple(legs),
            amount_cv=round(cv, 4),
            confidence=profile.cycle_confidence if profile.use_confidence else None,
        ))

    log.info(
        "Cycle detection (%s): %d rings found, %d uniform-amount cycles discarded",
        profile.name,
        len(matches),
        rejected,
    )
    return matches
