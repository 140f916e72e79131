"""
formatter.py – Produce the final analysis result in the response contract.

Contract (mandatory fields + enrichments)
-----------------------------------------
{
  "suspicious_accounts": [{account_id, suspicion_score, detected_patterns, ring_id,
                           confidence_score, ring_ids, betweenness_centrality,
                           pagerank_score, transaction_velocity}],
  "fraud_rings":         [{ring_id, member_accounts, pattern_type, risk_score}],
  "summary":             {total_accounts_analyzed, suspicious_accounts_flagged,
                          fraud_rings_detected, processing_time_seconds,
                          detection_tier, network_statistics},
  "metrics":             {precision, recall, f1Score, accuracy, estimated, ...}
}

Ordering is decided upstream by scoring; this module only shapes the data.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import networkx as nx

from .graph_builder import network_statistics
from .models import AnalysisResult, AnalysisSummary, FraudRingOut, SuspiciousAccountOut
from .scoring import ScoringResult

log = logging.getLogger(__name__)


def format_output(
    scoring: ScoringResult,
    G: nx.DiGraph,
    processing_time: float,
    total_accounts: int,
    tier: str,
    metrics: Optional[Dict[str, Any]] = None,
) -> AnalysisResult:
    """
    Build the complete analysis result.

    Parameters
    ----------
    scoring         : output of scoring.score_detection()
    G               : NetworkX DiGraph of the batch
    processing_time : elapsed wall-clock seconds
    total_accounts  : unique account count of the batch
    tier            : profile name that produced `scoring`
    metrics         : output of metrics.calculate_metrics()
    """
    suspicious_accounts = [
        SuspiciousAccountOut(
            account_id=acc.account_id,
            suspicion_score=acc.suspicion_score,
            detected_patterns=[p.value for p in acc.detected_patterns],
            ring_id=acc.ring_id,
            confidence_score=acc.confidence_score,
            ring_ids=list(acc.ring_ids),
            betweenness_centrality=acc.betweenness_centrality,
            pagerank_score=acc.pagerank_score,
            transaction_velocity=acc.transaction_velocity,
        )
        for acc in scoring.accounts
    ]

    fraud_rings = [
        FraudRingOut(
            ring_id=ring.ring_id,
            member_accounts=list(ring.member_accounts),
            pattern_type=ring.pattern_type,
            risk_score=ring.risk_score,
        )
        for ring in scoring.rings
    ]

    summary = AnalysisSummary(
        total_accounts_analyzed=total_accounts,
        suspicious_accounts_flagged=len(suspicious_accounts),
        fraud_rings_detected=len(fraud_rings),
        processing_time_seconds=round(processing_time, 3),
        detection_tier=tier,
        network_statistics=network_statistics(G),
    )

    log.info(
        "Format complete (%s): %d suspicious accounts, %d fraud rings",
        tier,
        len(suspicious_accounts),
        len(fraud_rings),
    )
    return AnalysisResult(
        suspicious_accounts=suspicious_accounts,
        fraud_rings=fraud_rings,
        summary=summary,
        metrics=dict(metrics or {}),
    )
