"""
engine.py – Run the forensics pipeline over one closed batch of transactions.

Pipeline
--------
1. Validate   – mappings are coerced into Transaction models
2. Build      – aggregated graph + DataFrame view of the batch
3. Metrics    – PageRank influence, bridge centrality, velocity
4. Detect     – every detector the profile enables
5. Score      – suspicion / confidence, merchant suppression, filtering
6. Format     – AnalysisResult with summary and precision/recall figures

`analyze` runs the enhanced tier first and falls back to the baseline tier
when the enhanced tier retains no suspicious accounts.  The enhanced metrics
are carried over into the fallback result.

Every call builds its own graph and maps; nothing is shared across calls.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .config import BASELINE, ENHANCED, MAX_TRANSACTIONS, DetectionProfile
from .detection import detect_patterns
from .formatter import format_output
from .graph_builder import build_graph, transactions_to_frame
from .graph_metrics import compute_graph_metrics
from .metrics import calculate_metrics
from .models import AnalysisResult, Transaction
from .scoring import ScoringResult, score_detection

__version__ = "1.2.0"

log = logging.getLogger(__name__)

TransactionLike = Union[Transaction, Mapping[str, Any]]


class BatchTooLargeError(ValueError):
    """Raised when a batch exceeds MAX_TRANSACTIONS."""


def coerce_transactions(records: Iterable[TransactionLike]) -> List[Transaction]:
    """Validate records into Transaction models (pydantic.ValidationError on bad input)."""
    return [
        r if isinstance(r, Transaction) else Transaction.model_validate(r)
        for r in records
    ]


def _check_batch_size(transactions: List[Transaction], limit: int) -> None:
    if len(transactions) > limit:
        log.warning("Rejected batch of %d transactions (limit %d)", len(transactions), limit)
        raise BatchTooLargeError(
            f"Batch holds {len(transactions)} transactions; the limit is {limit}."
        )


def _tier_metrics(
    scoring: ScoringResult,
    ground_truth: Optional[Iterable[str]],
    all_accounts: List[str],
    profile: DetectionProfile,
) -> Dict[str, Any]:
    metrics = calculate_metrics(scoring.accounts, ground_truth, all_accounts)
    if profile.adaptive_filter:
        metrics["accountsFiltered"] = scoring.filtered_count
        metrics["filterRate"] = round(
            scoring.filtered_count / scoring.scored_count * 100, 2
        ) if scoring.scored_count else 0.0
    return metrics


def run_tier(
    records: Iterable[TransactionLike],
    profile: DetectionProfile,
    ground_truth: Optional[Iterable[str]] = None,
    max_transactions: int = MAX_TRANSACTIONS,
) -> AnalysisResult:
    """Run the whole pipeline with a single detection profile."""
    start_time = time.perf_counter()

    transactions = coerce_transactions(records)
    _check_batch_size(transactions, max_transactions)

    G = build_graph(transactions)
    df = transactions_to_frame(transactions)
    all_accounts = list(G.nodes)

    graph_metrics = compute_graph_metrics(G, df)
    detection = detect_patterns(G, df, profile)
    scoring = score_detection(detection, G, df, graph_metrics)
    metrics = _tier_metrics(scoring, ground_truth, all_accounts, profile)

    elapsed = time.perf_counter() - start_time
    result = format_output(scoring, G, elapsed, len(all_accounts), profile.name, metrics)

    log.info(
        "Tier %s complete in %.3fs: %d rings, %d flagged accounts",
        profile.name,
        elapsed,
        result.summary.fraud_rings_detected,
        result.summary.suspicious_accounts_flagged,
    )
    return result


def analyze(
    records: Iterable[TransactionLike],
    ground_truth: Optional[Iterable[str]] = None,
    max_transactions: int = MAX_TRANSACTIONS,
) -> AnalysisResult:
    """
    Analyze a batch: enhanced tier first, baseline tier when the enhanced
    tier flags nobody.

    Raises
    ------
    pydantic.ValidationError : a record breaks the Transaction contract
    BatchTooLargeError       : more than `max_transactions` records
    """
    start_time = time.perf_counter()
    transactions = coerce_transactions(records)
    _check_batch_size(transactions, max_transactions)
    truth = list(ground_truth) if ground_truth is not None else None

    enhanced = run_tier(transactions, ENHANCED, truth, max_transactions)
    if enhanced.suspicious_accounts or not transactions:
        return enhanced

    log.warning("Enhanced tier flagged no accounts; falling back to baseline rules")
    baseline = run_tier(transactions, BASELINE, truth, max_transactions)
    baseline.metrics = dict(enhanced.metrics)
    baseline.summary.processing_time_seconds = round(time.perf_counter() - start_time, 3)
    return baseline
