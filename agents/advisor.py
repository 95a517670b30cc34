"""
Decision advisor ("AI assistant manager").

Scores recommended actions for typed business decisions using read-only
analytics snapshots, keeps a rolling decision history, and nudges its own
confidence/creativity from the outcomes the player reports back.
"""

import logging
import math
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Any

from agents.base import AutomationModule
from agents.exceptions import UnrecognizedDecisionTypeError
from config.config import AdvisorConfig
from models.analytics import AnalyticsSource, snapshot_dict
from models.decision import (
    Alert,
    Decision,
    DecisionOutcome,
    DecisionRecord,
    Insight,
    PeriodicAnalysisReport,
    Recommendation,
    RecommendationSet,
    StoreAnalysis,
)
from models.enums import AlertType, DecisionType, EventSource, InsightType, ModuleName
from models.state import WorldState
from utils.clock import Clock
from utils.event_bus import EventBus

logger = logging.getLogger(__name__)

Evaluator = Callable[[Decision], Awaitable[list[Recommendation]]]


def overall_confidence(recommendations: list[Recommendation]) -> float:
    """Arithmetic mean of recommendation confidences; 0 for an empty list."""
    if not recommendations:
        return 0.0
    mean = sum(r.confidence for r in recommendations) / len(recommendations)
    return max(0.0, min(1.0, mean))


@dataclass
class Intelligence:
    """Self-tuned parameters of the advisor"""

    learning_rate: float
    confidence: float
    risk_tolerance: float
    creativity_level: float


@dataclass
class PerformanceTracker:
    correct_decisions: int = 0
    total_decisions: int = 0
    learning_progress: float = 0.0  # success ratio


class DecisionAdvisor(AutomationModule):
    """Recommendation engine behind the ``aiAssistant`` automation."""

    module_name = ModuleName.AI_ASSISTANT
    source = EventSource.AI_ASSISTANT

    CONFIDENCE_FLOOR = 0.1
    PARAMETER_CEILING = 1.0

    def __init__(
        self,
        event_bus: EventBus | None,
        clock: Clock,
        world_state: WorldState,
        analytics: AnalyticsSource,
        config: AdvisorConfig | None = None,
    ):
        super().__init__(event_bus, clock, world_state, config or AdvisorConfig())
        self.analytics = analytics
        self.intelligence = Intelligence(
            learning_rate=self.settings.learning_rate,
            confidence=self.settings.confidence,
            risk_tolerance=self.settings.risk_tolerance,
            creativity_level=self.settings.creativity_level,
        )
        self.decision_history: deque[DecisionRecord] = deque(maxlen=self.settings.history_limit)
        self.performance = PerformanceTracker()
        self._evaluators: dict[DecisionType, Evaluator] = {
            DecisionType.PRICING: self._analyze_pricing,
            DecisionType.HIRING: self._analyze_hiring,
            DecisionType.INVENTORY: self._analyze_inventory,
            DecisionType.EXPANSION: self._analyze_expansion,
            DecisionType.CUSTOMER_SERVICE: self._analyze_customer_service,
        }

    def update_settings(self, new_settings: dict[str, Any]) -> list[str]:
        applied = super().update_settings(new_settings)
        if "learning_rate" in applied:
            self.intelligence.learning_rate = self.settings.learning_rate
        return applied

    # -- decision analysis --------------------------------------------------

    def _evaluator_for(self, decision_type: str) -> Evaluator:
        try:
            return self._evaluators[DecisionType(decision_type)]
        except ValueError:
            raise UnrecognizedDecisionTypeError(decision_type) from None

    async def analyze(self, decision: Decision) -> RecommendationSet:
        """Score recommendations for ``decision`` and remember it for learning."""
        logger.info(f"Analyzing decision {decision.id} of type '{decision.type}'")
        try:
            evaluator = self._evaluator_for(decision.type)
            recommendations = await evaluator(decision)
        except UnrecognizedDecisionTypeError as e:
            logger.info(f"{e}; falling back to manual review")
            recommendations = self._manual_review()

        now = self.clock.now()
        result = RecommendationSet(
            decision_id=decision.id,
            type=decision.type,
            recommendations=recommendations,
            overall_confidence=overall_confidence(recommendations),
            timestamp=now,
        )
        self.decision_history.append(DecisionRecord(decision=decision, recommendation_set=result, timestamp=now))

        await self.publish_event("aiAssistant:recommendation", result.model_dump(mode="json"))
        return result

    def _manual_review(self) -> list[Recommendation]:
        return [
            Recommendation(
                action="manual_review",
                reasoning="Decision type requires human judgment",
                confidence=self.settings.fallback_confidence,
                expected_outcome="Maintain control over unique situations",
            )
        ]

    async def _analyze_pricing(self, decision: Decision) -> list[Recommendation]:
        market = await self.analytics.market_snapshot(decision.context.get("product"))
        customer = await self.analytics.customer_snapshot()

        if market.trend == "rising" and customer.price_elasticity < 0.5:
            return [
                Recommendation(
                    action="increase_price",
                    reasoning="Market trend is rising and customers show low price sensitivity",
                    confidence=0.8,
                    expected_outcome="Increased profit margins with minimal sales impact",
                    details={"amount": 0.15},
                )
            ]
        if market.competition == "high":
            return [
                Recommendation(
                    action="competitive_pricing",
                    reasoning="High competition requires competitive pricing strategy",
                    confidence=0.7,
                    expected_outcome="Maintain market share and customer base",
                    details={"amount": -0.05},
                )
            ]
        return []

    async def _analyze_hiring(self, decision: Decision) -> list[Recommendation]:
        staffing = await self.analytics.staffing_snapshot()
        financial = await self.analytics.financial_snapshot()

        if staffing.workload > 0.8 and financial.can_afford_hiring:
            return [
                Recommendation(
                    action="hire_recommended",
                    reasoning="High workload and financial capacity support hiring",
                    confidence=0.85,
                    expected_outcome="Improved efficiency and reduced staff burnout",
                    details={"position": decision.context.get("position")},
                )
            ]
        if financial.tight_budget:
            return [
                Recommendation(
                    action="delay_hiring",
                    reasoning="Current financial constraints suggest delaying new hires",
                    confidence=0.75,
                    expected_outcome="Maintain financial stability",
                )
            ]
        return []

    async def _analyze_inventory(self, decision: Decision) -> list[Recommendation]:
        forecasts = await self.analytics.demand_forecast()
        financial = await self.analytics.financial_snapshot()

        recommendations = []
        for product in decision.context.get("products", []):
            product_id = product.get("id") if isinstance(product, dict) else str(product)
            forecast = forecasts.get(product_id)
            if forecast is None or forecast.trend != "increasing":
                continue
            recommendations.append(
                Recommendation(
                    action="increase_stock",
                    reasoning="Demand forecast shows increasing trend",
                    confidence=max(0.0, min(1.0, forecast.confidence)),
                    expected_outcome="Meet increased demand and avoid stockouts",
                    details={
                        "product": product_id,
                        "amount": math.ceil(forecast.projected * 1.2),
                        "cash_flow_positive": financial.projection_positive,
                    },
                )
            )
        return recommendations

    async def _analyze_expansion(self, decision: Decision) -> list[Recommendation]:
        financial = await self.analytics.financial_snapshot()
        market = await self.analytics.market_snapshot()

        if financial.expansion_ready and market.favorable:
            return [
                Recommendation(
                    action="proceed_expansion",
                    reasoning="Strong financial position and favorable market conditions",
                    confidence=0.8,
                    expected_outcome="Business growth and increased revenue potential",
                    details={"expansion_type": decision.context.get("expansion_type")},
                )
            ]
        return [
            Recommendation(
                action="defer_expansion",
                reasoning="Current conditions not optimal for expansion",
                confidence=0.7,
                expected_outcome="Maintain stability and build stronger foundation",
            )
        ]

    async def _analyze_customer_service(self, decision: Decision) -> list[Recommendation]:
        customer = await self.analytics.customer_snapshot()
        operational = await self.analytics.operational_snapshot()

        if customer.satisfaction < 0.7:
            return [
                Recommendation(
                    action="improve_service",
                    reasoning="Customer satisfaction below target threshold",
                    confidence=0.9,
                    expected_outcome="Improved customer retention and reputation",
                    details={"focus": "training", "efficiency": operational.efficiency},
                )
            ]
        return []

    # -- learning -----------------------------------------------------------

    def record_outcome(self, decision_id: str, outcome: DecisionOutcome) -> bool:
        """
        Attach a realized outcome to a remembered decision and adjust the
        advisor's parameters. Returns False if the decision is unknown.
        """
        record = next((r for r in self.decision_history if r.decision.id == decision_id), None)
        if record is None:
            logger.warning(f"No decision {decision_id} in history; outcome ignored")
            return False

        record.outcome = outcome
        self.performance.total_decisions += 1
        if outcome.success:
            self.performance.correct_decisions += 1
        self.performance.learning_progress = self.performance.correct_decisions / self.performance.total_decisions
        self._adjust_intelligence(outcome)
        return True

    def _bounded(self, value: float) -> float:
        return max(self.CONFIDENCE_FLOOR, min(self.PARAMETER_CEILING, value))

    def _adjust_intelligence(self, outcome: DecisionOutcome) -> None:
        rate = self.intelligence.learning_rate
        if outcome.success:
            self.intelligence.confidence = self._bounded(self.intelligence.confidence + rate * 0.1)
        else:
            self.intelligence.confidence = self._bounded(self.intelligence.confidence - rate * 0.05)
            self.intelligence.creativity_level = self._bounded(self.intelligence.creativity_level + rate * 0.1)
        logger.debug(
            f"Advisor confidence={self.intelligence.confidence:.3f} "
            f"creativity={self.intelligence.creativity_level:.3f}"
        )

    # -- periodic analysis --------------------------------------------------

    async def periodic_analysis(self) -> PeriodicAnalysisReport:
        """Gather store-wide snapshots and classify them into insights and alerts."""
        logger.info("Performing periodic store analysis")
        analysis = StoreAnalysis(
            financial=snapshot_dict(await self.analytics.financial_snapshot()),
            operational=snapshot_dict(await self.analytics.operational_snapshot()),
            customer=snapshot_dict(await self.analytics.customer_snapshot()),
            staff=snapshot_dict(await self.analytics.staffing_snapshot()),
            market=snapshot_dict(await self.analytics.market_snapshot()),
        )
        report = PeriodicAnalysisReport(
            analysis=analysis,
            insights=generate_insights(analysis),
            alerts=generate_alerts(analysis),
            timestamp=self.clock.now(),
        )
        for alert in report.alerts:
            logger.warning(f"Advisor alert ({alert.type.value}): {alert.message}")

        await self.publish_event("aiAssistant:periodicAnalysis", report.model_dump(mode="json"))
        return report

    def performance_report(self) -> dict[str, Any]:
        return {
            "decisions_made": self.performance.total_decisions,
            "success_rate": self.performance.learning_progress,
            "intelligence": asdict(self.intelligence),
            "recent_decisions": [r.model_dump(mode="json") for r in list(self.decision_history)[-10:]],
        }


def generate_insights(analysis: StoreAnalysis) -> list[Insight]:
    insights = []
    if analysis.financial.get("trend") == "declining":
        insights.append(
            Insight(
                type=InsightType.WARNING,
                category="financial",
                message="Revenue trend showing decline - consider cost optimization",
                priority="high",
            )
        )
    if analysis.operational.get("efficiency", 1.0) < 0.7:
        insights.append(
            Insight(
                type=InsightType.SUGGESTION,
                category="operational",
                message="Operational efficiency below target - automation could help",
                priority="medium",
            )
        )
    if analysis.customer.get("satisfaction", 0.0) > 0.9:
        insights.append(
            Insight(
                type=InsightType.POSITIVE,
                category="customer",
                message="Excellent customer satisfaction - opportunity for premium pricing",
                priority="low",
            )
        )
    return insights


def generate_alerts(analysis: StoreAnalysis) -> list[Alert]:
    alerts = []
    if analysis.financial.get("cash_flow", 0.0) < 0:
        alerts.append(
            Alert(
                type=AlertType.CRITICAL,
                message="Negative cash flow detected - immediate action required",
                actions=["reduce_expenses", "increase_sales", "seek_financing"],
            )
        )
    if analysis.staff.get("burnout_risk", 0.0) > 0.8:
        alerts.append(
            Alert(
                type=AlertType.URGENT,
                message="High staff burnout risk - consider additional hiring",
                actions=["hire_staff", "reduce_hours", "improve_benefits"],
            )
        )
    return alerts
