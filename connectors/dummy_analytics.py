"""
Module: connectors.dummy_analytics

Provides a fixed-value analytics source for testing the decision advisor.
"""

import asyncio
from dataclasses import dataclass, field

from models.analytics import (
    CustomerSnapshot,
    FinancialSnapshot,
    MarketSnapshot,
    OperationalSnapshot,
    ProductDemand,
    StaffingSnapshot,
)


@dataclass
class DummyAnalyticsSource:
    """
    Analytics source that returns whatever snapshots it was built with.
    Defaults describe a healthy, unremarkable store.
    """

    market: MarketSnapshot = field(
        default_factory=lambda: MarketSnapshot(trend="stable", competition="medium", favorable=True)
    )
    staffing: StaffingSnapshot = field(default_factory=lambda: StaffingSnapshot(workload=0.7, burnout_risk=0.3))
    financial: FinancialSnapshot = field(
        default_factory=lambda: FinancialSnapshot(
            cash=1000.0,
            cash_flow=1000.0,
            trend="stable",
            can_afford_hiring=True,
            tight_budget=False,
            expansion_ready=True,
        )
    )
    customer: CustomerSnapshot = field(
        default_factory=lambda: CustomerSnapshot(satisfaction=0.8, price_elasticity=0.3)
    )
    operational: OperationalSnapshot = field(default_factory=lambda: OperationalSnapshot(efficiency=0.8))
    demand: dict[str, ProductDemand] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    async def market_snapshot(self, product_id: str | None = None) -> MarketSnapshot:
        await asyncio.sleep(0)
        self.calls.append("market")
        return self.market

    async def staffing_snapshot(self) -> StaffingSnapshot:
        await asyncio.sleep(0)
        self.calls.append("staffing")
        return self.staffing

    async def financial_snapshot(self) -> FinancialSnapshot:
        await asyncio.sleep(0)
        self.calls.append("financial")
        return self.financial

    async def customer_snapshot(self) -> CustomerSnapshot:
        await asyncio.sleep(0)
        self.calls.append("customer")
        return self.customer

    async def operational_snapshot(self) -> OperationalSnapshot:
        await asyncio.sleep(0)
        self.calls.append("operational")
        return self.operational

    async def demand_forecast(self) -> dict[str, ProductDemand]:
        await asyncio.sleep(0)
        self.calls.append("demand")
        return self.demand
