"""
Module: connectors.store_analytics

Analytics source that derives its snapshots from the shared world state and,
when available, from the live cashier and inventory modules.
"""

import logging

import numpy as np

from agents.cashier import AutomatedCashier
from agents.replenishment import AutomatedInventory, classify_trend
from models.analytics import (
    CustomerSnapshot,
    FinancialSnapshot,
    MarketSnapshot,
    OperationalSnapshot,
    ProductDemand,
    StaffingSnapshot,
)
from models.enums import DemandTrend
from models.state import WorldState

logger = logging.getLogger(__name__)

_REVENUE_TRENDS = {
    DemandTrend.INCREASING: "growing",
    DemandTrend.STABLE: "stable",
    DemandTrend.DECREASING: "declining",
}


class WorldStateAnalytics:
    """Read-only analytics over the running store."""

    def __init__(
        self,
        world_state: WorldState,
        inventory: AutomatedInventory | None = None,
        cashier: AutomatedCashier | None = None,
        hiring_reserve: float = 1500.0,
        tight_budget_below: float = 500.0,
        expansion_reserve: float = 10000.0,
        revenue_window_days: int = 7,
    ):
        self.world_state = world_state
        self.inventory = inventory
        self.cashier = cashier
        self.hiring_reserve = hiring_reserve
        self.tight_budget_below = tight_budget_below
        self.expansion_reserve = expansion_reserve
        self.revenue_window_days = revenue_window_days

    async def market_snapshot(self, product_id: str | None = None) -> MarketSnapshot:
        market = self.world_state.market
        return MarketSnapshot(trend=market.trend, competition=market.competition, favorable=market.favorable)

    async def staffing_snapshot(self) -> StaffingSnapshot:
        staff = self.world_state.staff
        if not staff:
            return StaffingSnapshot(workload=0.0, burnout_risk=0.0)
        workload = float(np.mean([member.workload for member in staff]))
        # highest individual fatigue
        burnout = float(max(member.fatigue for member in staff))
        return StaffingSnapshot(workload=workload, burnout_risk=burnout)

    async def financial_snapshot(self) -> FinancialSnapshot:
        finances = self.world_state.finances
        window = finances.daily_revenue[-self.revenue_window_days :]
        trend = _REVENUE_TRENDS[classify_trend(window)]
        return FinancialSnapshot(
            cash=finances.cash,
            cash_flow=finances.revenue - finances.expenses,
            trend=trend,
            can_afford_hiring=finances.cash >= self.hiring_reserve,
            tight_budget=finances.cash < self.tight_budget_below,
            expansion_ready=finances.cash >= self.expansion_reserve,
        )

    async def customer_snapshot(self) -> CustomerSnapshot:
        satisfaction = self.world_state.customer_satisfaction
        if self.cashier is not None and self.cashier.metrics.transactions_processed:
            satisfaction = self.cashier.metrics.customer_satisfaction_rate
        return CustomerSnapshot(satisfaction=satisfaction, price_elasticity=self.world_state.market.price_elasticity)

    async def operational_snapshot(self) -> OperationalSnapshot:
        if self.cashier is None or not self.cashier.history:
            return OperationalSnapshot(efficiency=0.8)
        return OperationalSnapshot(efficiency=1.0 - self.cashier.metrics.error_rate)

    async def demand_forecast(self) -> dict[str, ProductDemand]:
        if self.inventory is None:
            return {}
        return {
            product_id: ProductDemand(
                product_id=product_id,
                trend=forecast.trend.value,
                projected=forecast.daily_demand,
                confidence=forecast.confidence,
            )
            for product_id, forecast in self.inventory.forecasts.items()
        }
