"""
scoring.py – Suspicion scoring, merchant suppression, adaptive filtering and
ring risk.

Scoring model
-------------
1. Pattern contributions  – sum of pattern weights; the enhanced tier weights
                            each pattern by its confidence (0.7 when absent)
2. Multi-pattern bonus    – enhanced only, accounts with two or more patterns
3. Velocity bonus         – baseline: burst of >= 20 tx inside 24 h
                            enhanced: velocity score > 70 (half above 50)
4. Merchant suppression   – score multiplied by the tier's merchant factor
                            once the capped sum is known
5. Graph-metric boosts    – bridge centrality, PageRank anomaly and extreme
                            velocity add fixed points (and confidence)

Scores are clamped to [0, 100] with one decimal; confidence to [0, 1] with
two.  The enhanced tier then drops low-evidence accounts with an adaptive
minimum score derived from the median.
"""
from __future__ import annotations

import logging
import statistics
from typing import Dict, List, Optional, Tuple

import networkx as nx
import pandas as pd
from pydantic import BaseModel, Field

from .config import (
    COLLECTOR_CONFIDENCE_BONUS,
    DISTRIBUTOR_CONFIDENCE_BONUS,
    INTERMEDIARY_CONFIDENCE_BONUS,
    MULTI_PATTERN_CONFIDENCE_STEP,
    DetectionProfile,
)
from .detection import DetectionResult
from .graph_builder import account_activity
from .graph_metrics import GraphMetrics, peak_window_activity
from .models import FraudRing, SuspiciousAccount
from .utils import floor_bucket, safe_ratio, whole_days

log = logging.getLogger(__name__)


class ScoringResult(BaseModel):
    accounts: List[SuspiciousAccount] = Field(default_factory=list)
    rings: List[FraudRing] = Field(default_factory=list)
    scored_count: int = 0
    filtered_count: int = 0
    threshold: Optional[float] = None


# ── Legitimate-merchant suppression ───────────────────────────────────────────

def is_legitimate_merchant(
    account: SuspiciousAccount,
    activity: Optional[pd.DataFrame],
    profile: DetectionProfile,
) -> bool:
    """
    High-degree accounts whose activity looks like an ordinary business.

    activity : the account's rows from graph_builder.account_activity()
    """
    if account.in_degree < profile.merchant_min_in_degree:
        return False
    if account.out_degree < profile.merchant_min_out_degree:
        return False
    if activity is None or activity.empty:
        return False

    times = activity["timestamp"]
    span_days = whole_days(times.max() - times.min())

    if not profile.merchant_requires_diversity:
        return span_days >= profile.merchant_min_span_days

    n = len(activity)
    amount_diversity = activity["amount"].map(floor_bucket).nunique() / n
    hour_diversity = times.dt.hour.nunique() / 24
    if (
        span_days >= profile.merchant_min_span_days
        and amount_diversity >= profile.merchant_min_amount_diversity
        and hour_diversity >= profile.merchant_min_hour_diversity
    ):
        return True

    if profile.merchant_balance_heuristic:
        incoming = activity.loc[activity["direction"] == "in", "amount"].sum()
        outgoing = activity.loc[activity["direction"] == "out", "amount"].sum()
        balance = safe_ratio(min(incoming, outgoing), max(incoming, outgoing))
        if balance > profile.merchant_min_balance_ratio and span_days >= profile.merchant_balance_span_days:
            return True

    return False


# ── Per-account scores ────────────────────────────────────────────────────────

def base_score(
    account: SuspiciousAccount,
    profile: DetectionProfile,
    velocity: float = 0.0,
    burst_peak: int = 0,
    tx_count: int = 0,
    merchant: bool = False,
) -> float:
    """Pattern points, multi-pattern and velocity bonuses, merchant factor."""
    patterns = account.detected_patterns
    if profile.use_confidence:
        score = sum(
            profile.pattern_weights.get(p, 0.0)
            * account.pattern_confidence.get(p, profile.default_pattern_confidence)
            for p in patterns
        )
    else:
        score = sum(profile.pattern_weights.get(p, 0.0) for p in patterns)

    if len(patterns) >= 2:
        score += profile.multi_pattern_bonus

    if profile.burst_window_hours is not None:
        if burst_peak >= profile.burst_min_tx and tx_count >= profile.burst_min_account_tx:
            score += profile.velocity_bonus
    elif profile.velocity_bonus_threshold is not None and velocity > profile.velocity_bonus_threshold:
        score += profile.velocity_bonus
    elif (
        profile.velocity_half_bonus_threshold is not None
        and velocity > profile.velocity_half_bonus_threshold
    ):
        score += profile.velocity_bonus * 0.5

    score = min(100.0, score)
    if merchant:
        score *= profile.merchant_factor
    return round(score, 1)


def confidence_score(account: SuspiciousAccount, profile: DetectionProfile) -> float:
    """Mean pattern confidence plus multi-pattern and degree-shape bonuses."""
    if not profile.use_confidence:
        return 0.0

    values = list(account.pattern_confidence.values())
    confidence = sum(values) / len(values) if values else 0.0

    n_patterns = len(account.detected_patterns)
    if n_patterns >= 2:
        confidence += MULTI_PATTERN_CONFIDENCE_STEP * (n_patterns - 1)

    in_deg, out_deg = account.in_degree, account.out_degree
    if in_deg > 10 and out_deg < 5:
        confidence += COLLECTOR_CONFIDENCE_BONUS
    if out_deg > 10 and in_deg < 5:
        confidence += DISTRIBUTOR_CONFIDENCE_BONUS
    if in_deg + out_deg > 15 and abs(in_deg - out_deg) < 3:
        confidence += INTERMEDIARY_CONFIDENCE_BONUS

    return min(1.0, confidence)


def apply_metric_boosts(
    account_id: str,
    score: float,
    confidence: float,
    metrics: GraphMetrics,
    profile: DetectionProfile,
) -> Tuple[float, float]:
    betweenness = metrics.betweenness.get(account_id, 0.0)
    velocity = metrics.velocity.get(account_id, 0.0)

    if betweenness > profile.betweenness_high:
        score += profile.betweenness_high_bonus
        confidence += profile.betweenness_high_confidence
    elif profile.betweenness_mid is not None and betweenness > profile.betweenness_mid:
        score += profile.betweenness_mid_bonus

    if account_id in metrics.pagerank_anomalies:
        score += profile.pagerank_anomaly_bonus
        confidence += profile.pagerank_anomaly_confidence

    if velocity > profile.extreme_velocity:
        score += profile.extreme_velocity_bonus

    score = round(min(100.0, max(0.0, score)), 1)
    confidence = round(min(1.0, max(0.0, confidence)), 2)
    return score, confidence


# ── Adaptive filtering ────────────────────────────────────────────────────────

def adaptive_threshold(scores: List[float], profile: DetectionProfile) -> float:
    """Median score clamped into [filter_floor, filter_ceiling]."""
    if not scores:
        return profile.filter_floor
    median = statistics.median(scores)
    return min(profile.filter_ceiling, max(profile.filter_floor, median))


def passes_filter(account: SuspiciousAccount, threshold: float, profile: DetectionProfile) -> bool:
    if account.suspicion_score < threshold:
        return False

    strong_pattern = any(
        account.pattern_confidence.get(p, profile.default_pattern_confidence)
        >= profile.filter_high_confidence
        for p in account.detected_patterns
    )
    if not strong_pattern and len(account.detected_patterns) < 2:
        return False

    if (
        account.suspicion_score < profile.filter_borderline_score
        and account.confidence_score < profile.filter_borderline_confidence
    ):
        return False
    return True


def adaptive_filter(
    accounts: List[SuspiciousAccount],
    profile: DetectionProfile,
) -> Tuple[List[SuspiciousAccount], Optional[float]]:
    """Return the retained accounts and the threshold used (None when off)."""
    if not profile.adaptive_filter or not accounts:
        return list(accounts), None

    threshold = adaptive_threshold([a.suspicion_score for a in accounts], profile)
    kept = [a for a in accounts if passes_filter(a, threshold, profile)]
    log.info(
        "Adaptive filter: threshold %.1f, kept %d of %d accounts",
        threshold,
        len(kept),
        len(accounts),
    )
    return kept, threshold


# ── Ring risk ─────────────────────────────────────────────────────────────────

def ring_risk(
    ring: FraudRing,
    profile: DetectionProfile,
    G: nx.DiGraph,
    member_scores: Dict[str, float],
) -> float:
    """
    Enhanced: 0.7 * average + 0.3 * max member score, members missing from
    `member_scores` counting as 0.
    Baseline: average (in + out) * 2 over members times the pattern factor.
    """
    members = ring.member_accounts
    if not members:
        return 0.0

    if profile.ring_risk_from_member_scores:
        scores = [member_scores.get(m, 0.0) for m in members]
        risk = (sum(scores) / len(scores)) * 0.7 + max(scores) * 0.3
    else:
        activity = [(G.in_degree(m) + G.out_degree(m)) * 2 for m in members if m in G]
        avg = sum(activity) / len(members)
        risk = avg * profile.ring_pattern_factors.get(ring.pattern_type, 1.0)

    return round(min(100.0, risk), 1)


# ── Main entry point ──────────────────────────────────────────────────────────

def _sort_key(account: SuspiciousAccount):
    return (-account.suspicion_score, -account.confidence_score, account.account_id)


def score_detection(
    detection: DetectionResult,
    G: nx.DiGraph,
    df: pd.DataFrame,
    metrics: GraphMetrics,
) -> ScoringResult:
    """
    Score every implicated account, filter (enhanced tier), and score rings.

    Returns accounts sorted by suspicion_score desc, confidence desc, then
    account id; rings sorted by risk_score desc with ties in discovery order.
    """
    profile = detection.profile
    accounts = list(detection.accounts.values())

    if df.empty or not accounts:
        activity_by_account: Dict[str, pd.DataFrame] = {}
    else:
        activity = account_activity(df)
        activity = activity[activity["account_id"].isin(list(detection.accounts))]
        activity_by_account = dict(tuple(activity.groupby("account_id", sort=False)))

    bursts: Dict[str, int] = {}
    if profile.burst_window_hours is not None:
        bursts = peak_window_activity(df, profile.burst_window_hours)

    merchants = 0
    for account in accounts:
        acc = account.account_id
        rows = activity_by_account.get(acc)
        merchant = is_legitimate_merchant(account, rows, profile)
        merchants += merchant

        score = base_score(
            account,
            profile,
            velocity=metrics.velocity.get(acc, 0.0),
            burst_peak=bursts.get(acc, 0),
            tx_count=0 if rows is None else len(rows),
            merchant=merchant,
        )
        score, confidence = apply_metric_boosts(
            acc, score, confidence_score(account, profile), metrics, profile,
        )
        account.suspicion_score = score
        account.confidence_score = confidence if profile.use_confidence else 0.0
        account.betweenness_centrality = round(metrics.betweenness.get(acc, 0.0), 1)
        account.pagerank_score = round(metrics.pagerank.get(acc, 0.0), 1)
        account.transaction_velocity = round(metrics.velocity.get(acc, 0.0), 1)

    kept, threshold = adaptive_filter(accounts, profile)
    kept.sort(key=_sort_key)

    member_scores = {a.account_id: a.suspicion_score for a in kept}
    for ring in detection.rings:
        ring.risk_score = ring_risk(ring, profile, G, member_scores)
    rings = sorted(detection.rings, key=lambda r: -r.risk_score)

    log.info(
        "Scoring (%s): %d accounts scored, %d merchants suppressed, %d retained",
        profile.name,
        len(accounts),
        merchants,
        len(kept),
    )
    return ScoringResult(
        accounts=kept,
        rings=rings,
        scored_count=len(accounts),
        filtered_count=len(accounts) - len(kept),
        threshold=threshold,
    )
