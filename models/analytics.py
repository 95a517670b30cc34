"""
Read-only analytic snapshots consumed by the decision advisor, and the
AnalyticsSource interface that produces them.
"""

from dataclasses import asdict, dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass
class MarketSnapshot:
    trend: str  # rising | stable | declining
    competition: str  # low | medium | high
    favorable: bool


@dataclass
class StaffingSnapshot:
    workload: float  # 0..1, average load across staff
    burnout_risk: float  # 0..1


@dataclass
class FinancialSnapshot:
    cash: float
    cash_flow: float
    trend: str  # growing | stable | declining
    can_afford_hiring: bool
    tight_budget: bool
    expansion_ready: bool

    @property
    def projection_positive(self) -> bool:
        return self.cash_flow >= 0


@dataclass
class CustomerSnapshot:
    satisfaction: float
    price_elasticity: float


@dataclass
class OperationalSnapshot:
    efficiency: float


@dataclass
class ProductDemand:
    product_id: str
    trend: str  # increasing | stable | decreasing
    projected: float  # units per day
    confidence: float


def snapshot_dict(snapshot: Any) -> dict[str, Any]:
    """Plain-dict view of a snapshot, for event payloads."""
    return asdict(snapshot)


@runtime_checkable
class AnalyticsSource(Protocol):
    """Provider of store analytics. Implementations must not mutate the store."""

    async def market_snapshot(self, product_id: str | None = None) -> MarketSnapshot: ...

    async def staffing_snapshot(self) -> StaffingSnapshot: ...

    async def financial_snapshot(self) -> FinancialSnapshot: ...

    async def customer_snapshot(self) -> CustomerSnapshot: ...

    async def operational_snapshot(self) -> OperationalSnapshot: ...

    async def demand_forecast(self) -> dict[str, ProductDemand]: ...
