"""
smurf_detector.py – Detect smurfing hubs (fan-in / fan-out).

  Fan-in  : many unique senders -> 1 receiver inside one time window.
  Fan-out : 1 sender -> many unique receivers inside one time window.

Only accounts whose graph in-degree (fan-in) or out-degree (fan-out) reaches
`profile.fan_min_degree` are examined.  Their transactions are sorted by time
and a window of `profile.fan_window_hours` is anchored at every transaction
(end inclusive).

Amount diversity (enhanced profile)
-----------------------------------
Merchants receive many differently-sized payments; mule hubs pass through
repetitive amounts.  Window amounts are bucketed to the nearest 100 and
diversity = unique buckets / window transactions.  With `fan_max_diversity`
set, a window only counts when diversity is below it, and the pattern
confidence is 1 - diversity.  The scan stops at the first qualifying window.

Performance
-----------
Two-pointer sliding window over a counterparty counter: O(n) per hub plus the
bucket pass on windows that already meet the counterparty thresholds.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Dict, List, Optional

import networkx as nx
import pandas as pd

from .config import DetectionProfile
from .models import Pattern, PatternMatch
from .utils import nearest_bucket

log = logging.getLogger(__name__)


def _amount_diversity(amounts: List[float]) -> float:
    if not amounts:
        return 0.0
    return len({nearest_bucket(a) for a in amounts}) / len(amounts)


def _scan_windows(
    times: list,
    counterparts: list,
    amounts: list,
    window_td: timedelta,
    profile: DetectionProfile,
) -> Optional[Dict]:
    """
    Return evidence for the first qualifying window, None when no window
    qualifies.
    """
    n = len(times)
    right = 0
    window: Dict[str, int] = {}

    for left in range(n):
        while right < n and times[right] - times[left] <= window_td:
            cp = counterparts[right]
            window[cp] = window.get(cp, 0) + 1
            right += 1

        unique = len(window)
        tx_count = right - left
        if unique >= profile.fan_min_unique and tx_count >= profile.fan_min_tx:
            diversity = _amount_diversity(amounts[left:right])
            if profile.fan_max_diversity is None or diversity < profile.fan_max_diversity:
                return {
                    "unique_counterparties": unique,
                    "window_transactions": tx_count,
                    "amount_diversity": round(diversity, 4),
                }

        lcp = counterparts[left]
        window[lcp] -= 1
        if window[lcp] == 0:
            del window[lcp]

    return None


def _detect_direction(
    G: nx.DiGraph,
    df: pd.DataFrame,
    profile: DetectionProfile,
    pattern: Pattern,
) -> List[PatternMatch]:
    if pattern is Pattern.FAN_IN:
        hub_col, cp_col, degree = "receiver_id", "sender_id", G.in_degree
    else:
        hub_col, cp_col, degree = "sender_id", "receiver_id", G.out_degree

    hubs = [n for n in G.nodes if degree(n) >= profile.fan_min_degree]
    if not hubs:
        return []

    window_td = timedelta(hours=profile.fan_window_hours)
    candidates = df[df[hub_col].isin(hubs)].sort_values("timestamp", kind="mergesort")
    groups = dict(tuple(candidates.groupby(hub_col, sort=False)))

    matches: List[PatternMatch] = []
    for hub in hubs:
        grp = groups.get(hub)
        if grp is None:
            continue
        evidence = _scan_windows(
            grp["timestamp"].tolist(),
            grp[cp_col].tolist(),
            grp["amount"].tolist(),
            window_td,
            profile,
        )
        if evidence is None:
            continue
        confidence = None
        if profile.use_confidence:
            confidence = round(1.0 - evidence["amount_diversity"], 4)
        matches.append(PatternMatch(
            pattern=pattern,
            accounts=(hub,),
            confidence=confidence,
            **evidence,
        ))
    return matches


def detect_smurfing(
    G: nx.DiGraph,
    df: pd.DataFrame,
    profile: DetectionProfile,
) -> List[PatternMatch]:
    """
    Detect fan-in and fan-out hubs.

    Returns
    -------
    PatternMatch per hub (fan-in hubs first) with keys:
        accounts              : (hub,)
        unique_counterparties : distinct senders / receivers in the window
        window_transactions   : transactions in the window
        amount_diversity      : unique 100-buckets / window transactions
    """
    if df.empty:
        return []

    fan_in = _detect_direction(G, df, profile, Pattern.FAN_IN)
    fan_out = _detect_direction(G, df, profile, Pattern.FAN_OUT)

    log.info(
        "Smurfing detection (%s): %d fan-in hubs, %d fan-out hubs",
        profile.name,
        len(fan_in),
        len(fan_out),
    )
    return fan_in + fan_out
