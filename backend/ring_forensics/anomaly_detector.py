"""
anomaly_detector.py – Detect repetitive amount profiles per account.

Every transaction counts for both its sender and its receiver.  Accounts with
fewer than AMOUNT_MIN_TX transactions are skipped.  Three ratios are computed
over an account's amounts:

  round   – share of amounts that are multiples of 100 or 1000
  repeat  – share taken by the single most frequent exact amount
  cluster – share of adjacent pairs (after sorting) within 5 % of their mean

An account is flagged when round > 0.6 (and >= 10 tx), repeat > 0.3, or
cluster > 0.4 (and >= 10 tx).
"""
from __future__ import annotations

import logging
from typing import List

import pandas as pd

from .config import (
    AMOUNT_ANOMALY_CONFIDENCE,
    AMOUNT_CLUSTER_RATIO,
    AMOUNT_CLUSTER_TOLERANCE,
    AMOUNT_MIN_TX,
    AMOUNT_RATIO_MIN_TX,
    AMOUNT_REPEAT_RATIO,
    AMOUNT_ROUND_RATIO,
    DetectionProfile,
)
from .graph_builder import account_activity
from .models import Pattern, PatternMatch

log = logging.getLogger(__name__)


def _cluster_pairs(amounts: pd.Series) -> int:
    ordered = amounts.sort_values().reset_index(drop=True)
    prev, curr = ordered.shift(1), ordered
    avg = (prev + curr) / 2
    close = ((curr - prev).abs() / avg.where(avg > 0)) < AMOUNT_CLUSTER_TOLERANCE
    return int(close.sum())


def detect_amount_anomalies(df: pd.DataFrame, profile: DetectionProfile) -> List[PatternMatch]:
    """
    Return one PatternMatch per flagged account carrying round_ratio,
    repeat_ratio, cluster_ratio and transaction_count as evidence.
    """
    matches: List[PatternMatch] = []
    if df.empty or not profile.detect_amount_anomalies:
        return matches

    activity = account_activity(df).sort_values("seq", kind="mergesort")

    for account, amounts in activity.groupby("account_id", sort=False)["amount"]:
        n = len(amounts)
        if n < AMOUNT_MIN_TX:
            continue

        round_ratio = float(((amounts % 100 == 0) | (amounts % 1000 == 0)).sum()) / n
        repeat_ratio = float(amounts.value_counts().iloc[0]) / n
        cluster_ratio = _cluster_pairs(amounts) / n

        if (
            (round_ratio > AMOUNT_ROUND_RATIO and n >= AMOUNT_RATIO_MIN_TX)
            or repeat_ratio > AMOUNT_REPEAT_RATIO
            or (cluster_ratio > AMOUNT_CLUSTER_RATIO and n >= AMOUNT_RATIO_MIN_TX)
        ):
            matches.append(PatternMatch(
                pattern=Pattern.AMOUNT_ANOMALY,
                accounts=(account,),
                confidence=AMOUNT_ANOMALY_CONFIDENCE if profile.use_confidence else None,
                round_ratio=round(round_ratio, 4),
                repeat_ratio=round(repeat_ratio, 4),
                cluster_ratio=round(cluster_ratio, 4),
                transaction_count=n,
            ))

    log.info("Amount anomaly detection: %d accounts flagged", len(matches))
    return matches
