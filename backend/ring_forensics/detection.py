"""
detection.py – Run every pattern detector for one tier and fold the matches
into per-account records.

Attribution rules
-----------------
cycles            every account on the cycle; the account joins the cycle's
                  ring (ring_id is overwritten by later rings, ring_ids keeps
                  all of them)
fan_in / fan_out  the hub only; spokes are not suspicious on their own
layered_shell     every account on the path, endpoints included
anomalies         the single account the anomaly was measured on

The account map, ring registry and ring list belong to this run alone.
"""
from __future__ import annotations

import logging
from typing import Dict, List

import networkx as nx
import pandas as pd
from pydantic import BaseModel, Field

from .anomaly_detector import detect_amount_anomalies
from .config import DetectionProfile
from .cycle_detector import detect_cycles
from .lifecycle_detector import detect_lifecycle_anomalies
from .models import FraudRing, PatternMatch, SuspiciousAccount
from .shell_detector import detect_shell_networks
from .smurf_detector import detect_smurfing
from .utils import RingRegistry

log = logging.getLogger(__name__)


class DetectionResult(BaseModel):
    profile: DetectionProfile
    accounts: Dict[str, SuspiciousAccount] = Field(default_factory=dict)
    rings: List[FraudRing] = Field(default_factory=list)
    matches: List[PatternMatch] = Field(default_factory=list)


def _account(accounts: Dict[str, SuspiciousAccount], account_id: str) -> SuspiciousAccount:
    if account_id not in accounts:
        accounts[account_id] = SuspiciousAccount(account_id=account_id)
    return accounts[account_id]


def detect_patterns(G: nx.DiGraph, df: pd.DataFrame, profile: DetectionProfile) -> DetectionResult:
    """
    Run cycle, smurfing and shell detection (plus amount and lifecycle
    anomalies when the profile enables them) and aggregate the matches.

    Parameters
    ----------
    G       : aggregated transaction graph (read-only from here on)
    df      : the same batch as a DataFrame, input order preserved
    profile : BASELINE or ENHANCED
    """
    registry = RingRegistry()
    accounts: Dict[str, SuspiciousAccount] = {}
    rings: List[FraudRing] = []

    # 1. Cycles open rings
    cycles = detect_cycles(G, profile, registry)
    for match in cycles:
        rings.append(FraudRing(
            ring_id=match.ring_id,
            member_accounts=list(dict.fromkeys(match.accounts)),
            pattern_type="cycle",
        ))
        for acc in match.accounts:
            entry = _account(accounts, acc)
            entry.add_pattern(match.pattern, match.confidence)
            entry.assign_ring(match.ring_id)

    # 2. Every other pattern only tags accounts
    others: List[PatternMatch] = []
    others += detect_smurfing(G, df, profile)
    others += detect_shell_networks(G, profile)
    others += detect_amount_anomalies(df, profile)
    others += detect_lifecycle_anomalies(df, profile)

    for match in others:
        for acc in match.accounts:
            _account(accounts, acc).add_pattern(match.pattern, match.confidence)

    # 3. Degree snapshot
    for acc, entry in accounts.items():
        entry.in_degree = G.in_degree(acc) if acc in G else 0
        entry.out_degree = G.out_degree(acc) if acc in G else 0

    log.info(
        "Detection (%s): %d accounts implicated, %d rings, %d pattern matches",
        profile.name,
        len(accounts),
        len(rings),
        len(cycles) + len(others),
    )
    return DetectionResult(
        profile=profile,
        accounts=accounts,
        rings=rings,
        matches=cycles + others,
    )
