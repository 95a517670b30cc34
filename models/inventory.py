"""
Inventory-related data models for the replenishment engine.
Includes InventoryRecord, DemandForecast, RestockOrder and RestockCandidate dataclasses.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .enums import DemandTrend, RestockOrderStatus, Urgency


@dataclass
class InventoryRecord:
    """
    Engine-side cache of one product's stock position.
    The authoritative quantity lives in the world state; this copy is refreshed on each check.
    """

    product_id: str
    name: str
    current_stock: int
    max_stock: int
    reorder_point: int
    cost: float
    lead_time_days: int
    category: str = "default"
    supplier: str = "default"
    average_daily_sales: float = 0.0
    last_restock: datetime | None = None

    @property
    def stock_ratio(self) -> float:
        if self.max_stock <= 0:
            return 0.0
        return self.current_stock / self.max_stock

    @property
    def headroom(self) -> int:
        """Units that still fit on the shelf."""
        return self.max_stock - self.current_stock


@dataclass
class DemandForecast:
    """
    Projected daily demand for a product. Replaced wholesale on every recomputation.
    """

    product_id: str
    daily_demand: float
    trend: DemandTrend
    confidence: float
    last_updated: datetime


@dataclass
class RestockOrder:
    """Purchase order placed with a supplier, awaiting or past delivery."""

    product_id: str
    product_name: str
    quantity: int
    unit_cost: float
    supplier: str
    order_date: datetime
    expected_delivery: datetime
    urgency: Urgency
    status: RestockOrderStatus = RestockOrderStatus.PENDING
    delivered_at: datetime | None = None
    id: str = field(default_factory=lambda: f"auto_order_{uuid.uuid4().hex[:12]}")

    @property
    def total_cost(self) -> float:
        return self.quantity * self.unit_cost

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_cost": self.unit_cost,
            "total_cost": self.total_cost,
            "supplier": self.supplier,
            "order_date": self.order_date.isoformat(),
            "expected_delivery": self.expected_delivery.isoformat(),
            "urgency": self.urgency.value,
            "status": self.status.value,
            "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
        }


@dataclass
class RestockCandidate:
    """A product the engine would like to reorder in the current check cycle."""

    record: InventoryRecord
    quantity: int
    urgency: Urgency

    @property
    def cost(self) -> float:
        return self.quantity * self.record.cost
