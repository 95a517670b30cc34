"""
Shared world state read and written by the automation modules.

The engine does not own this record: the game supplies it at startup and
persists it elsewhere. Modules only mutate the parts they own (the cashier
books revenue, the inventory engine books deliveries).
"""

from datetime import datetime

from pydantic import BaseModel, Field


class StoreFinances(BaseModel):
    """Cash position and running counters of the store"""

    cash: float = 1000.0
    revenue: float = 0.0
    expenses: float = 0.0
    transactions_today: int = 0
    daily_revenue: list[float] = Field(default_factory=list)  # oldest first


class ProductStock(BaseModel):
    """Authoritative stock entry for one product"""

    product_id: str
    name: str
    category: str = "default"
    quantity: int = 0
    max_stock: int = 50
    cost: float = 5.0
    price: float = 8.0
    supplier: str = "default"
    lead_time_days: int = 2
    last_restock: datetime | None = None


class StaffMember(BaseModel):
    name: str
    role: str
    workload: float = Field(default=0.5, ge=0.0, le=1.0)
    fatigue: float = Field(default=0.2, ge=0.0, le=1.0)


class MarketConditions(BaseModel):
    trend: str = "stable"  # rising | stable | declining
    competition: str = "medium"  # low | medium | high
    favorable: bool = True
    price_elasticity: float = 0.3


class WorldState(BaseModel):
    """Single mutable record of the store shared by all automation modules."""

    finances: StoreFinances = Field(default_factory=StoreFinances)
    inventory: dict[str, ProductStock] = Field(default_factory=dict)
    staff: list[StaffMember] = Field(default_factory=list)
    market: MarketConditions = Field(default_factory=MarketConditions)
    customer_satisfaction: float = Field(default=0.8, ge=0.0, le=1.0)
    # product_id -> units sold per day, oldest first
    sales_history: dict[str, list[int]] = Field(default_factory=dict)

    def add_product(self, product: ProductStock) -> None:
        self.inventory[product.product_id] = product

    def record_daily_sales(self, product_id: str, quantity: int) -> None:
        """Append one day of sales for a product."""
        self.sales_history.setdefault(product_id, []).append(max(0, int(quantity)))
