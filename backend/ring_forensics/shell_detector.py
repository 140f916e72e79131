"""
shell_detector.py – Detect layered shell account chains.

Definition
----------
A layered shell is a simple directed path of SHELL_MIN_NODES to
SHELL_MAX_NODES accounts in which every intermediate account (everything but
the two endpoints) has a total degree (distinct in + out edges) of at most
SHELL_MAX_INTERMEDIATE_DEGREE: low-traffic pass-through accounts used to add
layers between source and destination.  Every account on the path, endpoints
included, is tagged `layered_shell`.

Amount filter (enhanced profile)
--------------------------------
Mules forward roughly what they receive.  With `shell_max_cv` set, the
per-edge aggregated amounts along the path must have a coefficient of
variation below it (taken as 1 when the mean amount is zero).

Algorithm
---------
Iterative DFS from every node with an explicit stack.  A path is only extended
through its last account when that account could serve as an intermediate, so
branches that can never qualify are pruned immediately.  Stack depth is capped
by SHELL_MAX_NODES.
"""
from __future__ import annotations

import logging
from typing import List, Tuple

import networkx as nx

from .config import (
    SHELL_MAX_INTERMEDIATE_DEGREE,
    SHELL_MAX_NODES,
    SHELL_MIN_NODES,
    DetectionProfile,
)
from .models import Pattern, PatternMatch
from .utils import coefficient_of_variation

log = logging.getLogger(__name__)


def _is_pass_through(G: nx.DiGraph, node: str) -> bool:
    return G.in_degree(node) + G.out_degree(node) <= SHELL_MAX_INTERMEDIATE_DEGREE


def _enumerate_shell_paths(G: nx.DiGraph):
    """Yield every simple path of SHELL_MIN_NODES..SHELL_MAX_NODES accounts whose
    intermediates are all pass-through accounts."""
    for start in G.nodes:
        stack: List[Tuple[str, ...]] = [(start,)]
        while stack:
            path = stack.pop()
            if len(path) >= SHELL_MIN_NODES:
                yield path
            if len(path) >= SHELL_MAX_NODES:
                continue
            # Extending makes the current tail an intermediate.
            if len(path) > 1 and not _is_pass_through(G, path[-1]):
                continue
            for nbr in reversed(list(G.successors(path[-1]))):
                if nbr not in path:
                    stack.append(path + (nbr,))


def detect_shell_networks(G: nx.DiGraph, profile: DetectionProfile) -> List[PatternMatch]:
    """
    Detect layered shell chains.

    Returns
    -------
    PatternMatch per qualifying path:
        accounts    : full path [source, shell1, ..., dest]
        leg_amounts : aggregated amount on every hop
        amount_cv   : coefficient of variation of leg_amounts
        confidence  : profile.shell_confidence when the profile uses confidence
    """
    matches: List[PatternMatch] = []
    candidates = 0

    for path in _enumerate_shell_paths(G):
        candidates += 1
        legs = [G[u][v]["amount"] for u, v in zip(path, path[1:])]
        cv = coefficient_of_variation(legs, zero_mean=1.0)
        if profile.shell_max_cv is not None and not cv < profile.shell_max_cv:
            continue
        matches.append(PatternMatch(
            pattern=Pattern.LAYERED_SHELL,
            accounts=path,
            leg_amounts=tuple(legs),
            amount_cv=round(cv, 4),
            confidence=profile.shell_confidence if profile.use_confidence else None,
        ))

    log.info(
        "Shell detection (%s): %d chains kept out of %d low-traffic paths",
        profile.name,
        len(matches),
        candidates,
    )
    return matches
