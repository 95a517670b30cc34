from datetime import datetime, timedelta

from models.automation import AutomationConfig, AutomationMetrics
from models.enums import ModuleName, PaymentMethod, RestockOrderStatus, TransactionStatus, Urgency
from models.inventory import InventoryRecord, RestockOrder
from models.state import ProductStock, WorldState
from models.transaction import Customer, Transaction


def test_automation_config_merge():
    config = AutomationConfig(module=ModuleName.SECURITY, settings={"alert_level": "medium"})
    config.merge({"alert_level": "high", "auto_response": True})
    config.merge(None)
    assert config.settings == {"alert_level": "high", "auto_response": True}
    assert config.enabled is False


def test_automation_metrics_defaults():
    metrics = AutomationMetrics()
    assert metrics.efficiency.error_rate == 0.02
    assert metrics.quality.quality_score == 0.88
    assert metrics.costs.roi == 0.0


def test_inventory_record_ratios():
    record = InventoryRecord(
        product_id="P1", name="Water", current_stock=15, max_stock=60, reorder_point=12, cost=1.0, lead_time_days=1
    )
    assert record.stock_ratio == 0.25
    assert record.headroom == 45

    record.max_stock = 0
    assert record.stock_ratio == 0.0


def test_restock_order_cost_and_dict():
    ordered = datetime(2024, 6, 1, 9)
    order = RestockOrder(
        product_id="P1",
        product_name="Water",
        quantity=12,
        unit_cost=1.5,
        supplier="acme",
        order_date=ordered,
        expected_delivery=ordered + timedelta(days=2),
        urgency=Urgency.CRITICAL,
    )
    assert order.total_cost == 18.0
    data = order.to_dict()
    assert data["status"] == RestockOrderStatus.PENDING.value
    assert data["urgency"] == "critical"
    assert data["expected_delivery"] == "2024-06-03T09:00:00"
    assert data["delivered_at"] is None


def test_transaction_duration_and_summary():
    created = datetime(2024, 6, 1, 9)
    transaction = Transaction(customer=Customer(name="Pat"), created_at=created)
    assert transaction.duration is None

    transaction.status = TransactionStatus.COMPLETED
    transaction.ended_at = created + timedelta(seconds=42)
    transaction.total = 10.456
    transaction.payment_method = PaymentMethod.CARD

    summary = transaction.summary()
    assert summary["duration"] == 42.0
    assert summary["total"] == 10.46
    assert summary["payment_method"] == "card"


def test_world_state_sales_history():
    world = WorldState()
    world.add_product(ProductStock(product_id="P1", name="Water"))
    world.record_daily_sales("P1", 4)
    world.record_daily_sales("P1", -2)
    assert world.sales_history["P1"] == [4, 0]
    assert world.inventory["P1"].max_stock == 50
