"""
Data models for the decision advisor: decisions, recommendations and the
store-wide insights/alerts of the periodic analysis.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import AlertType, InsightType


class Decision(BaseModel):
    """A business decision the player has to make."""

    id: str = Field(default_factory=lambda: f"decision_{uuid.uuid4().hex[:8]}")
    type: str  # pricing | hiring | inventory | expansion | customer_service | ...
    context: dict[str, Any] = Field(default_factory=dict)


class Recommendation(BaseModel):
    action: str
    reasoning: str
    confidence: float = Field(ge=0.0, le=1.0)
    expected_outcome: str
    details: dict[str, Any] = Field(default_factory=dict)


class RecommendationSet(BaseModel):
    decision_id: str
    type: str
    recommendations: list[Recommendation] = Field(default_factory=list)
    overall_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    timestamp: datetime


class DecisionOutcome(BaseModel):
    success: bool
    notes: str | None = None
    metrics: dict[str, float] = Field(default_factory=dict)


class DecisionRecord(BaseModel):
    """Decision kept for learning; the outcome is attached later."""

    decision: Decision
    recommendation_set: RecommendationSet
    timestamp: datetime
    outcome: DecisionOutcome | None = None


class Insight(BaseModel):
    type: InsightType
    category: str
    message: str
    priority: str


class Alert(BaseModel):
    type: AlertType
    message: str
    actions: list[str] = Field(default_factory=list)


class StoreAnalysis(BaseModel):
    """Raw analytic snapshots gathered by the periodic analysis."""

    financial: dict[str, Any]
    operational: dict[str, Any]
    customer: dict[str, Any]
    staff: dict[str, Any]
    market: dict[str, Any]


class PeriodicAnalysisReport(BaseModel):
    analysis: StoreAnalysis
    insights: list[Insight] = Field(default_factory=list)
    alerts: list[Alert] = Field(default_factory=list)
    timestamp: datetime
