"""
lifecycle_detector.py – Detect accounts that come alive fast and stay busy.

Patterns
--------
rapid_new_account      first activity fewer than 7 whole days after the
                       batch's earliest transaction, and at least 10 of the
                       account's transactions within 7 whole days of that
                       first activity.
high_activity_density  transactions / active span in whole days (floor 1)
                       above 5, with at least 20 transactions.

Day counts truncate toward zero, so "within 7 days" covers anything shorter
than 8 full days.
"""
from __future__ import annotations

import logging
from typing import List

import pandas as pd

from .config import (
    LIFECYCLE_CONFIDENCE,
    LIFECYCLE_DENSITY_MIN_TX,
    LIFECYCLE_DENSITY_PER_DAY,
    LIFECYCLE_FIRST_WEEK_MIN_TX,
    LIFECYCLE_NEW_ACCOUNT_DAYS,
    DetectionProfile,
)
from .graph_builder import account_activity
from .models import Pattern, PatternMatch
from .utils import whole_days

log = logging.getLogger(__name__)


def detect_lifecycle_anomalies(df: pd.DataFrame, profile: DetectionProfile) -> List[PatternMatch]:
    matches: List[PatternMatch] = []
    if df.empty or not profile.detect_lifecycle_anomalies:
        return matches

    confidence = LIFECYCLE_CONFIDENCE if profile.use_confidence else None
    dataset_start = df["timestamp"].min()
    activity = account_activity(df).sort_values("seq", kind="mergesort")

    for account, times in activity.groupby("account_id", sort=False)["timestamp"]:
        n = len(times)
        first, last = times.min(), times.max()

        days_since_start = whole_days(first - dataset_start)
        days_from_first = (times - first).dt.days
        first_week = int((days_from_first <= LIFECYCLE_NEW_ACCOUNT_DAYS).sum())

        if days_since_start < LIFECYCLE_NEW_ACCOUNT_DAYS and first_week >= LIFECYCLE_FIRST_WEEK_MIN_TX:
            matches.append(PatternMatch(
                pattern=Pattern.RAPID_NEW_ACCOUNT,
                accounts=(account,),
                confidence=confidence,
                days_since_start=days_since_start,
                transaction_count=first_week,
            ))

        density = n / max(1, whole_days(last - first))
        if density > LIFECYCLE_DENSITY_PER_DAY and n >= LIFECYCLE_DENSITY_MIN_TX:
            matches.append(PatternMatch(
                pattern=Pattern.HIGH_ACTIVITY_DENSITY,
                accounts=(account,),
                confidence=confidence,
                activity_density=round(density, 4),
                transaction_count=n,
            ))

    log.info("Lifecycle detection: %d anomalies flagged", len(matches))
    return matches
