"""
metrics.py – Precision / recall reporting for a finished run.

Without labelled data the figures are estimates: flagged accounts are bucketed
by score (>= 70 high, 50-69 medium, < 50 low), each bucket carries an assumed
precision (0.85 / 0.65 / 0.40) and recall is bounded conservatively by
min(0.70, n / max(100, 1.5 n)).

With a ground-truth set, an exact confusion matrix is computed over every
analysed account.  All rates are reported as percentages with two decimals.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional, Sequence

from .config import (
    ESTIMATE_HIGH_SCORE,
    ESTIMATE_MAX_RECALL,
    ESTIMATE_MEDIUM_SCORE,
    ESTIMATE_PRECISION,
)
from .models import SuspiciousAccount

log = logging.getLogger(__name__)


def _pct(value: float) -> float:
    return round(value * 100, 2)


def _f1(precision: float, recall: float) -> float:
    if precision + recall <= 0:
        return 0.0
    return 2 * precision * recall / (precision + recall)


def estimate_metrics(detected: Sequence[SuspiciousAccount]) -> Dict[str, Any]:
    n = len(detected)
    if n == 0:
        return {
            "precision": 0.0,
            "recall": 0.0,
            "f1Score": 0.0,
            "accuracy": 0.0,
            "estimated": True,
            "highConfidenceCount": 0,
            "mediumConfidenceCount": 0,
            "lowConfidenceCount": 0,
        }

    high = sum(1 for a in detected if a.suspicion_score >= ESTIMATE_HIGH_SCORE)
    medium = sum(
        1 for a in detected
        if ESTIMATE_MEDIUM_SCORE <= a.suspicion_score < ESTIMATE_HIGH_SCORE
    )
    low = n - high - medium

    precision = (
        high * ESTIMATE_PRECISION["high"]
        + medium * ESTIMATE_PRECISION["medium"]
        + low * ESTIMATE_PRECISION["low"]
    ) / n
    recall = min(ESTIMATE_MAX_RECALL, n / max(100, n * 1.5))

    return {
        "precision": _pct(precision),
        "recall": _pct(recall),
        "f1Score": _pct(_f1(precision, recall)),
        "accuracy": 0.0,
        "estimated": True,
        "highConfidenceCount": high,
        "mediumConfidenceCount": medium,
        "lowConfidenceCount": low,
    }


def calculate_metrics(
    detected: Sequence[SuspiciousAccount],
    ground_truth: Optional[Iterable[str]] = None,
    all_accounts: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """
    Parameters
    ----------
    detected     : retained suspicious accounts
    ground_truth : account ids known to be fraudulent; None or empty means
                   the figures are estimated from scores
    all_accounts : every analysed account id, needed for true negatives
    """
    truth = set(ground_truth or ())
    if not truth:
        return estimate_metrics(detected)

    flagged = {a.account_id for a in detected}
    universe = set(all_accounts or ()) | flagged | truth

    tp = len(flagged & truth)
    fp = len(flagged - truth)
    fn = len(truth - flagged)
    tn = len(universe - flagged - truth)

    precision = tp / (tp + fp) if tp + fp else 0.0
    recall = tp / (tp + fn) if tp + fn else 0.0
    total = tp + fp + fn + tn
    accuracy = (tp + tn) / total if total else 0.0

    log.info("Metrics against ground truth: TP=%d FP=%d FN=%d TN=%d", tp, fp, fn, tn)
    return {
        "precision": _pct(precision),
        "recall": _pct(recall),
        "f1Score": _pct(_f1(precision, recall)),
        "accuracy": _pct(accuracy),
        "estimated": False,
        "truePositives": tp,
        "falsePositives": fp,
        "falseNegatives": fn,
        "trueNegatives": tn,
        "totalDetected": len(detected),
        "totalFraudulent": len(truth),
    }
