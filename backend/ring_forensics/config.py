"""
config.py – Centralised configuration via environment variables.
All tunable thresholds live here so nothing is scattered across modules.

Tier-dependent thresholds are grouped into two frozen DetectionProfile
objects (BASELINE and ENHANCED) so that every detector and the scoring stage
run as one parameterised pipeline.
"""
from __future__ import annotations

import os
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict

from .models import Pattern


# ── Batch limits ───────────────────────────────────────────────────────────────
# Cycle and shell enumeration are exponential in the worst case; the caller
# refuses batches above this size before the engine runs.
MAX_TRANSACTIONS: int = int(os.getenv("MAX_TRANSACTIONS", "10000"))

# ── Graph search bounds ────────────────────────────────────────────────────────
CYCLE_MIN_LEN: int = 3
CYCLE_MAX_LEN: int = 5
SHELL_MIN_NODES: int = 3
SHELL_MAX_NODES: int = 5
SHELL_MAX_INTERMEDIATE_DEGREE: int = int(os.getenv("SHELL_MAX_INTERMEDIATE_DEGREE", "3"))

# ── Graph metrics ──────────────────────────────────────────────────────────────
PAGERANK_DAMPING: float = 0.85
PAGERANK_ITERATIONS: int = 20
PAGERANK_ANOMALY_MIN_SCORE: float = 50.0
PAGERANK_ANOMALY_MAX_DEGREE: int = 5
VELOCITY_FULL_SCALE_TX_PER_HOUR: float = 50.0

# ── Amount anomaly detection (enhanced tier) ───────────────────────────────────
AMOUNT_MIN_TX: int = 5
AMOUNT_ROUND_RATIO: float = 0.6
AMOUNT_REPEAT_RATIO: float = 0.3
AMOUNT_CLUSTER_RATIO: float = 0.4
AMOUNT_CLUSTER_TOLERANCE: float = 0.05
AMOUNT_RATIO_MIN_TX: int = 10
AMOUNT_ANOMALY_CONFIDENCE: float = 0.6

# ── Lifecycle anomaly detection (enhanced tier) ────────────────────────────────
LIFECYCLE_NEW_ACCOUNT_DAYS: int = 7
LIFECYCLE_FIRST_WEEK_MIN_TX: int = 10
LIFECYCLE_DENSITY_PER_DAY: float = 5.0
LIFECYCLE_DENSITY_MIN_TX: int = 20
LIFECYCLE_CONFIDENCE: float = 0.7

# ── Confidence scoring (enhanced tier) ─────────────────────────────────────────
MULTI_PATTERN_CONFIDENCE_STEP: float = 0.15
COLLECTOR_CONFIDENCE_BONUS: float = 0.1
DISTRIBUTOR_CONFIDENCE_BONUS: float = 0.1
INTERMEDIARY_CONFIDENCE_BONUS: float = 0.05

# ── Metrics estimator ──────────────────────────────────────────────────────────
ESTIMATE_HIGH_SCORE: float = 70.0
ESTIMATE_MEDIUM_SCORE: float = 50.0
ESTIMATE_PRECISION: Dict[str, float] = {"high": 0.85, "medium": 0.65, "low": 0.40}
ESTIMATE_MAX_RECALL: float = 0.70


class DetectionProfile(BaseModel):
    """
    Every threshold, weight and toggle that differs between the two tiers.

    Optional thresholds set to None switch the corresponding filter off.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    use_confidence: bool

    # cycles
    cycle_min_cv: Optional[float] = None
    cycle_confidence: float = 0.9

    # fan-in / fan-out
    fan_min_degree: int
    fan_window_hours: float
    fan_min_unique: int
    fan_min_tx: int = 1
    fan_max_diversity: Optional[float] = None

    # layered shells
    shell_max_cv: Optional[float] = None
    shell_confidence: float = 0.75

    # extra detectors
    detect_amount_anomalies: bool = False
    detect_lifecycle_anomalies: bool = False

    # scoring
    pattern_weights: Dict[Pattern, float]
    default_pattern_confidence: float = 0.7
    multi_pattern_bonus: float = 0.0
    velocity_bonus: float
    velocity_bonus_threshold: Optional[float] = None       # velocity score based
    velocity_half_bonus_threshold: Optional[float] = None
    burst_window_hours: Optional[float] = None             # 24h burst based
    burst_min_tx: int = 20
    burst_min_account_tx: int = 5
    betweenness_high: float
    betweenness_high_bonus: float
    betweenness_high_confidence: float = 0.0
    betweenness_mid: Optional[float] = None
    betweenness_mid_bonus: float = 0.0
    pagerank_anomaly_bonus: float
    pagerank_anomaly_confidence: float = 0.0
    extreme_velocity: float
    extreme_velocity_bonus: float = 5.0

    # legitimate-merchant suppression
    merchant_min_in_degree: int
    merchant_min_out_degree: int
    merchant_factor: float
    merchant_min_span_days: int = 30
    merchant_requires_diversity: bool = False
    merchant_min_amount_diversity: float = 0.4
    merchant_min_hour_diversity: float = 0.3
    merchant_balance_heuristic: bool = False
    merchant_min_balance_ratio: float = 0.6
    merchant_balance_span_days: int = 20

    # adaptive filtering
    adaptive_filter: bool = False
    filter_floor: float = 50.0
    filter_ceiling: float = 60.0
    filter_high_confidence: float = 0.75
    filter_borderline_score: float = 65.0
    filter_borderline_confidence: float = 0.7

    # ring risk
    ring_risk_from_member_scores: bool = False
    ring_pattern_factors: Dict[str, float] = {}


_CYCLE_PATTERNS = (Pattern.CYCLE_3, Pattern.CYCLE_4, Pattern.CYCLE_5)


BASELINE = DetectionProfile(
    name="baseline",
    use_confidence=False,
    fan_min_degree=int(os.getenv("BASELINE_FAN_THRESHOLD", "10")),
    fan_window_hours=72.0,
    fan_min_unique=int(os.getenv("BASELINE_FAN_THRESHOLD", "10")),
    pattern_weights={
        **{p: 40.0 for p in _CYCLE_PATTERNS},
        Pattern.FAN_IN: 30.0,
        Pattern.FAN_OUT: 30.0,
        Pattern.LAYERED_SHELL: 35.0,
    },
    velocity_bonus=10.0,
    burst_window_hours=24.0,
    betweenness_high=70.0,
    betweenness_high_bonus=5.0,
    pagerank_anomaly_bonus=8.0,
    extreme_velocity=80.0,
    merchant_min_in_degree=10,
    merchant_min_out_degree=10,
    merchant_factor=0.5,
    ring_pattern_factors={
        "cycle": 1.2,
        "fan_in": 1.1,
        "fan_out": 1.1,
        "layered_shell": 1.15,
    },
)

ENHANCED = DetectionProfile(
    name="enhanced",
    use_confidence=True,
    cycle_min_cv=float(os.getenv("CYCLE_MIN_CV", "0.2")),
    fan_min_degree=int(os.getenv("ENHANCED_FAN_THRESHOLD", "15")),
    fan_window_hours=48.0,
    fan_min_unique=int(os.getenv("ENHANCED_FAN_THRESHOLD", "15")),
    fan_min_tx=20,
    fan_max_diversity=0.3,
    shell_max_cv=float(os.getenv("SHELL_MAX_CV", "0.2")),
    detect_amount_anomalies=True,
    detect_lifecycle_anomalies=True,
    pattern_weights={
        **{p: 45.0 for p in _CYCLE_PATTERNS},
        Pattern.FAN_IN: 35.0,
        Pattern.FAN_OUT: 35.0,
        Pattern.LAYERED_SHELL: 40.0,
        Pattern.AMOUNT_ANOMALY: 25.0,
        Pattern.RAPID_NEW_ACCOUNT: 30.0,
        Pattern.HIGH_ACTIVITY_DENSITY: 25.0,
    },
    multi_pattern_bonus=15.0,
    velocity_bonus=12.0,
    velocity_bonus_threshold=70.0,
    velocity_half_bonus_threshold=50.0,
    betweenness_high=75.0,
    betweenness_high_bonus=8.0,
    betweenness_high_confidence=0.1,
    betweenness_mid=60.0,
    betweenness_mid_bonus=4.0,
    pagerank_anomaly_bonus=10.0,
    pagerank_anomaly_confidence=0.15,
    extreme_velocity=85.0,
    merchant_min_in_degree=15,
    merchant_min_out_degree=15,
    merchant_factor=0.3,
    merchant_requires_diversity=True,
    merchant_balance_heuristic=True,
    adaptive_filter=True,
    filter_floor=float(os.getenv("FILTER_MIN_SCORE_FLOOR", "50.0")),
    filter_ceiling=float(os.getenv("FILTER_MIN_SCORE_CEILING", "60.0")),
    ring_risk_from_member_scores=True,
)
