"""
models.py – Pydantic models for the engine's input and output contracts.

Transaction is the boundary record handed over by the ingestion collaborator.
Everything under "Run-scoped entities" lives only for a single analysis run.
The response models define the exact JSON contract returned to callers.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Pattern(str, Enum):
    """Every pattern tag a detector can attach to an account."""

    CYCLE_3 = "cycle_length_3"
    CYCLE_4 = "cycle_length_4"
    CYCLE_5 = "cycle_length_5"
    FAN_IN = "fan_in"
    FAN_OUT = "fan_out"
    LAYERED_SHELL = "layered_shell"
    AMOUNT_ANOMALY = "amount_anomaly"
    RAPID_NEW_ACCOUNT = "rapid_new_account"
    HIGH_ACTIVITY_DENSITY = "high_activity_density"

    @classmethod
    def cycle(cls, length: int) -> "Pattern":
        return cls(f"cycle_length_{length}")

    @property
    def is_cycle(self) -> bool:
        return self.value.startswith("cycle_length_")


# ── Input contract ────────────────────────────────────────────────────────────

class Transaction(BaseModel):
    """A single validated money transfer."""
    model_config = ConfigDict(frozen=True)

    transaction_id: str = Field(..., min_length=1)
    sender_id: str = Field(..., min_length=1)
    receiver_id: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0.0)
    timestamp: datetime

    @field_validator("amount")
    @classmethod
    def _finite_amount(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("amount must be finite")
        return value

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        # offset-aware values are stored as naive UTC; naive values are taken as UTC
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


# ── Run-scoped entities ───────────────────────────────────────────────────────

class PatternMatch(BaseModel):
    """
    One detected occurrence of a pattern.

    accounts   : every account implicated (cycle order for cycles, path order
                 for shells, the hub alone for fan patterns)
    confidence : per-pattern confidence, None for the baseline tier
    """
    pattern: Pattern
    accounts: Tuple[str, ...]
    confidence: Optional[float] = None
    ring_id: Optional[str] = None
    leg_amounts: Tuple[float, ...] = ()
    amount_cv: Optional[float] = None
    unique_counterparties: Optional[int] = None
    window_transactions: Optional[int] = None
    amount_diversity: Optional[float] = None
    round_ratio: Optional[float] = None
    repeat_ratio: Optional[float] = None
    cluster_ratio: Optional[float] = None
    transaction_count: Optional[int] = None
    days_since_start: Optional[int] = None
    activity_density: Optional[float] = None


class SuspiciousAccount(BaseModel):
    """Per-account aggregation of every pattern that implicated the account."""

    account_id: str
    detected_patterns: List[Pattern] = Field(default_factory=list)
    ring_id: Optional[str] = None
    ring_ids: List[str] = Field(default_factory=list)
    pattern_confidence: Dict[Pattern, float] = Field(default_factory=dict)
    in_degree: int = 0
    out_degree: int = 0
    suspicion_score: float = 0.0
    confidence_score: float = 0.0
    betweenness_centrality: float = 0.0
    pagerank_score: float = 0.0
    transaction_velocity: float = 0.0

    def add_pattern(self, pattern: Pattern, confidence: Optional[float] = None) -> None:
        if pattern not in self.detected_patterns:
            self.detected_patterns.append(pattern)
        if confidence is not None:
            self.pattern_confidence[pattern] = confidence

    def assign_ring(self, ring_id: str) -> None:
        # ring_id keeps the most recently assigned ring; ring_ids keeps all of them.
        if ring_id not in self.ring_ids:
            self.ring_ids.append(ring_id)
        self.ring_id = ring_id


class FraudRing(BaseModel):
    ring_id: str
    member_accounts: List[str]
    pattern_type: str = "cycle"
    risk_score: float = Field(0.0, ge=0.0, le=100.0)


# ── Response contract ─────────────────────────────────────────────────────────

class SuspiciousAccountOut(BaseModel):
    """
    Mandatory fields: account_id, suspicion_score, detected_patterns, ring_id,
    confidence_score. Graph metric snapshots are carried as extras.
    """
    model_config = ConfigDict(extra="allow")

    account_id: str
    suspicion_score: float = Field(..., ge=0.0, le=100.0)
    detected_patterns: List[str]
    ring_id: Optional[str] = None
    confidence_score: float = Field(0.0, ge=0.0, le=1.0)


class FraudRingOut(BaseModel):
    model_config = ConfigDict(extra="allow")

    ring_id: str
    member_accounts: List[str]
    pattern_type: str
    risk_score: float = Field(..., ge=0.0, le=100.0)


class AnalysisSummary(BaseModel):
    model_config = ConfigDict(extra="allow")

    total_accounts_analyzed: int
    suspicious_accounts_flagged: int
    fraud_rings_detected: int
    processing_time_seconds: float


class AnalysisResult(BaseModel):
    suspicious_accounts: List[SuspiciousAccountOut]
    fraud_rings: List[FraudRingOut]
    summary: AnalysisSummary
    metrics: Dict[str, Any] = Field(default_factory=dict)
