"""
Automated inventory: demand forecasting and budget-constrained replenishment.

Every check cycle the engine refreshes its stock cache from the world state,
flags products that are at or below their reorder point (or that would stock
out within their lead time), sizes orders with an Economic Order Quantity
policy and admits them by urgency until the cycle budget is used up.
At most one order per product is outstanding at any time.
"""

import asyncio
import logging
import math
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any

import numpy as np

from agents.base import AutomationModule
from agents.exceptions import BudgetExceededError
from config.config import InventoryConfig
from models.enums import DemandTrend, EventSource, ModuleName, RestockOrderStatus, Urgency
from models.inventory import DemandForecast, InventoryRecord, RestockCandidate, RestockOrder
from models.state import ProductStock, WorldState
from utils.clock import SECONDS_PER_DAY, Clock
from utils.event_bus import EventBus

logger = logging.getLogger(__name__)

# Month-indexed (Jan..Dec) demand multipliers per product category
SEASONAL_FACTORS: dict[str, list[float]] = {
    "beverages": [0.8, 0.8, 0.9, 1.0, 1.2, 1.3, 1.4, 1.3, 1.1, 1.0, 0.9, 0.8],
    "snacks": [1.1, 1.0, 0.9, 0.9, 1.0, 1.1, 1.2, 1.1, 1.0, 1.0, 1.1, 1.2],
    "default": [1.0] * 12,
}

CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "beverages": ("drink", "soda", "juice", "water"),
    "snacks": ("snack", "chip", "candy"),
}

TREND_MULTIPLIERS = {
    DemandTrend.INCREASING: 1.1,
    DemandTrend.STABLE: 1.0,
    DemandTrend.DECREASING: 0.9,
}


def reorder_point_for(max_stock: int, reorder_fraction: float) -> int:
    return max(1, math.floor(max_stock * reorder_fraction))


def needs_restock(
    record: InventoryRecord, forecast: DemandForecast | None, min_daily_demand: float = 0.1
) -> bool:
    """At or below the reorder point, or projected to stock out within lead time plus one day."""
    if record.current_stock <= record.reorder_point:
        return True
    if forecast is not None:
        days_until_stockout = record.current_stock / max(forecast.daily_demand, min_daily_demand)
        if days_until_stockout <= record.lead_time_days + 1:
            return True
    return False


def economic_order_quantity(
    daily_demand: float, unit_cost: float, ordering_cost: float, holding_cost_rate: float
) -> float:
    """EOQ = sqrt(2 * annual demand * ordering cost / holding cost)."""
    annual_demand = daily_demand * 365
    holding_cost = unit_cost * holding_cost_rate
    if holding_cost <= 0:
        return math.inf
    return math.sqrt((2 * annual_demand * ordering_cost) / holding_cost)


def order_quantity(
    record: InventoryRecord, daily_demand: float, config: InventoryConfig, seasonal_factor: float = 1.0
) -> int:
    """EOQ clamped to [1, min(max order, shelf headroom)], then seasonally scaled and floored."""
    eoq = economic_order_quantity(daily_demand, record.cost, config.ordering_cost, config.holding_cost_rate)
    eoq = min(eoq, config.max_order_quantity, record.headroom)
    eoq = max(eoq, 1)
    if config.seasonal_adjustment:
        eoq *= seasonal_factor
    return math.floor(eoq)


def classify_urgency(record: InventoryRecord, forecast: DemandForecast | None) -> Urgency:
    ratio = record.stock_ratio
    if ratio < 0.1:
        return Urgency.CRITICAL
    if ratio < 0.2:
        return Urgency.HIGH
    if forecast is not None and forecast.trend == DemandTrend.INCREASING:
        return Urgency.MEDIUM
    return Urgency.LOW


def resolve_category(record: InventoryRecord) -> str:
    """Known category of the record, else a guess from the product name."""
    if record.category != "default" and record.category in SEASONAL_FACTORS:
        return record.category
    name = record.name.lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(keyword in name for keyword in keywords):
            return category
    return "default"


def seasonal_factor(category: str, month: int) -> float:
    """Multiplier for ``category`` in calendar ``month`` (1-12)."""
    factors = SEASONAL_FACTORS.get(category, SEASONAL_FACTORS["default"])
    return factors[month - 1]


def classify_trend(window: list[int] | np.ndarray) -> DemandTrend:
    """Compare the mean of the earliest third of the window with the latest third (+/-10%)."""
    if len(window) < 3:
        return DemandTrend.STABLE
    span = math.ceil(len(window) / 3)
    early = float(np.mean(window[:span]))
    late = float(np.mean(window[-span:]))
    if late > early * 1.1:
        return DemandTrend.INCREASING
    if late < early * 0.9:
        return DemandTrend.DECREASING
    return DemandTrend.STABLE


def forecast_demand(
    product_id: str,
    daily_sales: list[int],
    window_days: int,
    now: datetime,
    min_daily_demand: float = 0.1,
) -> DemandForecast:
    """Moving average over the trailing window, adjusted by trend and floored."""
    window = np.asarray(daily_sales[-window_days:], dtype=float)
    average = float(window.mean()) if window.size else 0.0
    trend = classify_trend(window)
    projected = average * TREND_MULTIPLIERS[trend]
    return DemandForecast(
        product_id=product_id,
        daily_demand=max(min_daily_demand, projected),
        trend=trend,
        confidence=min(0.9, window.size / window_days) if window_days > 0 else 0.0,
        last_updated=now,
    )


def plan_batch(
    candidates: list[RestockCandidate], budget_limit: float
) -> tuple[list[RestockCandidate], list[RestockCandidate]]:
    """
    Admit candidates most-urgent first while the running cost stays within budget.
    Returns (admitted, skipped); an over-budget candidate is skipped, not deferred.
    """
    ranked = sorted(candidates, key=lambda c: c.urgency.priority, reverse=True)
    admitted: list[RestockCandidate] = []
    skipped: list[RestockCandidate] = []
    committed = 0.0
    for candidate in ranked:
        try:
            _check_budget(candidate, committed, budget_limit)
        except BudgetExceededError as e:
            logger.info(f"Budget limit reached, skipping order: {e}")
            skipped.append(candidate)
            continue
        admitted.append(candidate)
        committed += candidate.cost
    return admitted, skipped


def _check_budget(candidate: RestockCandidate, committed: float, budget_limit: float) -> None:
    if committed + candidate.cost > budget_limit:
        raise BudgetExceededError(candidate.record.product_id, candidate.cost, committed, budget_limit)


@dataclass
class InventoryMetrics:
    orders_placed: int = 0
    orders_delivered: int = 0
    stockouts_prevented: int = 0
    budget_skips: int = 0
    committed_spend: float = 0.0
    delivered_spend: float = 0.0


class AutomatedInventory(AutomationModule):
    """Replenishment engine behind the ``inventory`` automation."""

    module_name = ModuleName.INVENTORY
    source = EventSource.INVENTORY

    def __init__(
        self,
        event_bus: EventBus | None,
        clock: Clock,
        world_state: WorldState,
        config: InventoryConfig | None = None,
    ):
        super().__init__(event_bus, clock, world_state, config or InventoryConfig())
        self.records: dict[str, InventoryRecord] = {}
        self.forecasts: dict[str, DemandForecast] = {}
        self.pending_orders: dict[str, RestockOrder] = {}
        self.order_history: deque[RestockOrder] = deque(maxlen=self.settings.order_history_limit)
        self.metrics = InventoryMetrics()
        self._deliveries: set[asyncio.Task] = set()
        self.refresh_from_world()
        logger.info(f"Tracking {len(self.records)} products")

    # -- tracking -----------------------------------------------------------

    def _record_from_stock(self, stock: ProductStock) -> InventoryRecord:
        return InventoryRecord(
            product_id=stock.product_id,
            name=stock.name,
            category=stock.category,
            current_stock=max(0, stock.quantity),
            max_stock=stock.max_stock,
            reorder_point=reorder_point_for(stock.max_stock, self.settings.reorder_fraction),
            cost=stock.cost,
            lead_time_days=stock.lead_time_days,
            supplier=stock.supplier,
            average_daily_sales=self._average_daily_sales(stock.product_id),
            last_restock=stock.last_restock,
        )

    def _average_daily_sales(self, product_id: str) -> float:
        history = self.world_state.sales_history.get(product_id, [])
        return float(np.mean(history)) if history else 0.0

    def refresh_from_world(self) -> None:
        """Rebuild the stock cache from the authoritative world state."""
        refreshed: dict[str, InventoryRecord] = {}
        for product_id, stock in self.world_state.inventory.items():
            if stock.quantity < 0:
                logger.warning(f"World stock for {product_id} is negative ({stock.quantity}); clamping to 0")
                stock.quantity = 0
            refreshed[product_id] = self._record_from_stock(stock)
        self.records = refreshed

    def update_forecasts(self) -> dict[str, DemandForecast]:
        """Recompute every product's forecast from its trailing sales window."""
        now = self.clock.now()
        forecasts = {}
        for product_id in self.records:
            sales = self.world_state.sales_history.get(product_id, [])
            forecasts[product_id] = forecast_demand(
                product_id,
                sales,
                self.settings.demand_forecast_days,
                now,
                self.settings.min_daily_demand,
            )
        self.forecasts = forecasts
        logger.info(f"Updated demand forecasts for {len(forecasts)} products")
        return forecasts

    # -- policy -------------------------------------------------------------

    def needs_restock(self, product_id: str) -> bool:
        record = self.records[product_id]
        return needs_restock(record, self.forecasts.get(product_id), self.settings.min_daily_demand)

    def daily_demand_for(self, record: InventoryRecord) -> float:
        forecast = self.forecasts.get(record.product_id)
        demand = forecast.daily_demand if forecast else record.average_daily_sales
        return max(demand, self.settings.min_daily_demand)

    def optimal_order_quantity(self, record: InventoryRecord) -> int:
        factor = seasonal_factor(resolve_category(record), self.clock.now().month)
        return order_quantity(record, self.daily_demand_for(record), self.settings, factor)

    def urgency_for(self, record: InventoryRecord) -> Urgency:
        return classify_urgency(record, self.forecasts.get(record.product_id))

    def restock_candidates(self) -> list[RestockCandidate]:
        candidates = []
        for product_id, record in self.records.items():
            if product_id in self.pending_orders:
                continue
            if not self.needs_restock(product_id):
                continue
            quantity = self.optimal_order_quantity(record)
            if quantity <= 0:
                continue
            candidates.append(RestockCandidate(record=record, quantity=quantity, urgency=self.urgency_for(record)))
        return candidates

    # -- ordering -----------------------------------------------------------

    async def perform_check(self) -> list[RestockOrder]:
        """One check cycle: refresh, evaluate every product, place a budgeted batch."""
        logger.info("Performing automated inventory check")
        self.refresh_from_world()
        candidates = self.restock_candidates()
        orders = await self.process_restock_orders(candidates) if candidates else []

        await self.publish_event(
            "inventory:statusUpdate",
            {
                "total_products": len(self.records),
                "restock_needed": len(candidates),
                "orders_placed": len(orders),
                "pending_orders": len(self.pending_orders),
                "timestamp": self.clock.now().isoformat(),
            },
        )
        return orders

    async def process_restock_orders(self, candidates: list[RestockCandidate]) -> list[RestockOrder]:
        logger.info(f"Processing {len(candidates)} restock candidates")
        admitted, skipped = plan_batch(candidates, self.settings.budget_limit)
        self.metrics.budget_skips += len(skipped)

        orders = []
        for candidate in admitted:
            order = self.place_order(candidate.record, candidate.quantity, candidate.urgency)
            if order is not None:
                orders.append(order)

        if orders:
            await self.publish_event(
                "inventory:restockOrdered",
                {
                    "orders": [o.to_dict() for o in orders],
                    "total_cost": sum(o.total_cost for o in orders),
                    "skipped": [c.record.product_id for c in skipped],
                    "timestamp": self.clock.now().isoformat(),
                },
            )
        return orders

    def place_order(self, record: InventoryRecord, quantity: int, urgency: Urgency) -> RestockOrder | None:
        """
        Create an order and schedule its delivery. Returns None without side
        effects when the product already has an outstanding order.
        """
        if record.product_id in self.pending_orders:
            logger.debug(f"Order for {record.product_id} already pending; not re-ordering")
            return None
        if quantity <= 0:
            return None

        now = self.clock.now()
        order = RestockOrder(
            product_id=record.product_id,
            product_name=record.name,
            quantity=quantity,
            unit_cost=record.cost,
            supplier=record.supplier,
            order_date=now,
            expected_delivery=now + timedelta(days=record.lead_time_days),
            urgency=urgency,
        )
        self.pending_orders[record.product_id] = order
        self.order_history.append(order)
        self.metrics.orders_placed += 1
        self.metrics.committed_spend += order.total_cost

        task = asyncio.create_task(self._await_delivery(order, record.lead_time_days), name=order.id)
        self._deliveries.add(task)
        task.add_done_callback(self._deliveries.discard)

        logger.info(f"Restock order placed: {quantity}x {record.name} - ${order.total_cost:.2f} ({urgency.value})")
        return order

    async def _await_delivery(self, order: RestockOrder, lead_time_days: int) -> None:
        await self.clock.sleep(lead_time_days * SECONDS_PER_DAY)
        await self.process_delivery(order)

    async def process_delivery(self, order: RestockOrder) -> None:
        if order.status == RestockOrderStatus.DELIVERED:
            return
        logger.info(f"Processing delivery: {order.quantity}x {order.product_name}")
        now = self.clock.now()

        stock = self.world_state.inventory.get(order.product_id)
        if stock is not None:
            stock.quantity = max(0, stock.quantity) + order.quantity
            stock.last_restock = now
            record = self.records.get(order.product_id)
            if record is not None:
                record.current_stock = stock.quantity
                record.last_restock = now
            finances = self.world_state.finances
            finances.cash -= order.total_cost
            finances.expenses += order.total_cost
            self.metrics.stockouts_prevented += 1
            self.metrics.delivered_spend += order.total_cost
        else:
            logger.warning(f"Delivered product {order.product_id} is no longer stocked; delivery not charged")

        if self.pending_orders.get(order.product_id) is order:
            del self.pending_orders[order.product_id]
        order.status = RestockOrderStatus.DELIVERED
        order.delivered_at = now

        self.metrics.orders_delivered += 1

        await self.publish_event("inventory:deliveryReceived", order.to_dict())

    async def handle_low_stock(self, product_id: str) -> RestockOrder | None:
        """React to a low-stock signal with an immediate high-urgency order."""
        logger.warning(f"Low stock alert received for {product_id}")
        if not self.settings.auto_restock:
            return None

        self.refresh_from_world()
        record = self.records.get(product_id)
        if record is None:
            logger.warning(f"Low stock alert for untracked product {product_id}")
            return None
        if product_id in self.pending_orders:
            return None

        quantity = self.optimal_order_quantity(record)
        if quantity <= 0:
            return None
        candidate = RestockCandidate(record=record, quantity=quantity, urgency=Urgency.HIGH)
        try:
            _check_budget(candidate, 0.0, self.settings.budget_limit)
        except BudgetExceededError as e:
            self.metrics.budget_skips += 1
            logger.info(f"Skipping low-stock order: {e}")
            return None

        order = self.place_order(record, quantity, Urgency.HIGH)
        if order is not None:
            await self.publish_event(
                "inventory:restockOrdered",
                {
                    "orders": [order.to_dict()],
                    "total_cost": order.total_cost,
                    "skipped": [],
                    "timestamp": self.clock.now().isoformat(),
                },
            )
        return order

    async def on_store_opened(self) -> None:
        self.update_forecasts()
        await self.perform_check()

    async def shutdown(self) -> None:
        """Cancel outstanding delivery waits (engine teardown only)."""
        tasks = list(self._deliveries)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # -- reporting ----------------------------------------------------------

    def inventory_status(self) -> dict[str, Any]:
        status = {
            "total_products": len(self.records),
            "low_stock_items": 0,
            "overstocked_items": 0,
            "pending_orders": len(self.pending_orders),
            "total_value": 0.0,
        }
        for record in self.records.values():
            status["total_value"] += record.current_stock * record.cost
            if record.current_stock <= record.reorder_point:
                status["low_stock_items"] += 1
            elif record.current_stock > record.max_stock * self.settings.overstock_fraction:
                status["overstocked_items"] += 1
        return status

    async def daily_analysis(self) -> dict[str, Any]:
        logger.info("Performing daily inventory analysis")
        report = {
            "metrics": asdict(self.metrics),
            "inventory_status": self.inventory_status(),
            "timestamp": self.clock.now().isoformat(),
        }
        await self.publish_event("inventory:dailyAnalysis", report)
        return report

    def performance_report(self) -> dict[str, Any]:
        return {
            "metrics": asdict(self.metrics),
            "inventory_status": self.inventory_status(),
            "demand_forecasts": {pid: asdict(f) for pid, f in self.forecasts.items()},
            "recent_orders": [o.to_dict() for o in list(self.order_history)[-10:]],
            "settings": self.settings_dict(),
        }
