import random
from datetime import timedelta

import pytest

from agents.cashier import AutomatedCashier, escalation_score
from config.config import CashierConfig
from models.enums import ConversationStage, TransactionStatus
from models.state import WorldState
from models.transaction import CartItem, Customer, EscalationNotice, Transaction
from utils.clock import SimulatedClock
from utils.event_bus import EventBus

CASHIER_EVENTS = (
    "cashier:transactionStarted",
    "cashier:transactionCompleted",
    "cashier:transactionFailed",
    "cashier:escalation",
    "cashier:conversation",
    "cashier:metricsUpdated",
)

# Enough simulated time for any single checkout to finish
CHECKOUT_WINDOW = 600


def make_customer(name: str = "Pat", items: int = 2, **flags) -> Customer:
    cart = [CartItem(product_id=f"p{i}", name=f"Item {i}", price=5.0) for i in range(items)]
    return Customer(name=name, cart=cart, **flags)


# --- Fixtures --- #


@pytest.fixture
def quiet_config() -> CashierConfig:
    """No random scan or payment failures, no upselling."""
    return CashierConfig(scan_error_rate=0.0, payment_failure_rate=0.0, upsell_probability=0.0)


@pytest.fixture
def cashier(
    event_bus: EventBus, clock: SimulatedClock, world_state: WorldState, quiet_config: CashierConfig, rng
) -> AutomatedCashier:
    return AutomatedCashier(event_bus, clock, world_state, config=quiet_config, rng=rng)


@pytest.fixture
def recorder(record_events):
    return record_events(*CASHIER_EVENTS)


# --- Escalation screening --- #


def test_escalation_score_counts_true_factors():
    assert escalation_score(make_customer()) == 0.0
    assert escalation_score(make_customer(mood="angry", has_complaint=True, is_vip=True)) == pytest.approx(0.5)


def test_three_risk_factors_stay_below_threshold(cashier: AutomatedCashier):
    """Large cart, payment issue and VIP: 3/6 = 0.5 < 0.7."""
    customer = make_customer(items=21, payment_issue=True, is_vip=True)
    assert escalation_score(customer) == pytest.approx(0.5)
    assert cashier.needs_escalation(customer) is False


def test_escalation_boundary(cashier: AutomatedCashier):
    four = make_customer(mood="angry", has_complaint=True, special_request=True, is_vip=True)
    five = make_customer(mood="angry", has_complaint=True, special_request=True, is_vip=True, payment_issue=True)
    assert cashier.needs_escalation(four) is False  # 0.667
    assert cashier.needs_escalation(five) is True  # 0.833


def test_cart_of_exactly_large_size_is_not_a_risk_factor():
    assert make_customer(items=20).risk_factors()[3] is False
    assert make_customer(items=21).risk_factors()[3] is True


@pytest.mark.asyncio
async def test_submit_queues_moderate_risk_customer(cashier: AutomatedCashier, recorder):
    customer = make_customer(items=21, payment_issue=True, is_vip=True)

    result = await cashier.submit(customer)

    assert isinstance(result, Transaction)
    assert result.status == TransactionStatus.QUEUED
    assert list(cashier.queue) == [result]
    assert recorder.types == ["cashier:transactionStarted"]
    assert recorder.events[0].payload["automated"] is True


@pytest.mark.asyncio
async def test_submit_escalates_high_risk_customer(cashier: AutomatedCashier, recorder):
    customer = make_customer(mood="angry", has_complaint=True, special_request=True, is_vip=True, payment_issue=True)

    result = await cashier.submit(customer)

    assert isinstance(result, EscalationNotice)
    assert result.escalated is True
    assert len(cashier.queue) == 0
    assert recorder.types == ["cashier:escalation"]
    assert recorder.events[0].payload["reason"] == "Customer situation requires human cashier"
    assert cashier.escalations == 1


# --- Pipeline --- #


@pytest.mark.asyncio
async def test_transaction_completes_and_books_revenue(
    cashier: AutomatedCashier, clock: SimulatedClock, world_state: WorldState, recorder
):
    cash_before = world_state.finances.cash
    transaction = await cashier.submit(make_customer(items=3))

    admitted = await cashier.tick()
    assert admitted == [transaction]
    assert transaction.status == TransactionStatus.PROCESSING

    await clock.advance(CHECKOUT_WINDOW)

    assert transaction.status == TransactionStatus.COMPLETED
    assert transaction.total_items == 3
    assert transaction.subtotal == pytest.approx(15.0)
    assert transaction.tax == pytest.approx(1.2)
    assert transaction.total == pytest.approx(16.2)
    assert 0.0 <= transaction.satisfaction <= 1.0
    assert transaction.duration > 0
    assert transaction.id not in cashier.active
    assert cashier.history[-1] is transaction

    assert world_state.finances.revenue == pytest.approx(16.2)
    assert world_state.finances.cash == pytest.approx(cash_before + 16.2)
    assert world_state.finances.transactions_today == 1

    stages = [step.stage for step in transaction.conversation]
    assert stages == [
        ConversationStage.GREETING,
        ConversationStage.PROCESSING,
        ConversationStage.COMPLETION,
        ConversationStage.FAREWELL,
    ]
    assert "$16.20" in transaction.conversation[2].message
    assert recorder.types[-1] == "cashier:transactionCompleted"


@pytest.mark.asyncio
async def test_concurrency_cap_under_burst(cashier: AutomatedCashier, clock: SimulatedClock):
    transactions = [await cashier.submit(make_customer(name=f"c{i}")) for i in range(8)]

    admitted = await cashier.tick()
    assert admitted == transactions[:3]
    assert cashier.processing_count == 3
    assert len(cashier.queue) == 5

    # A second tick with every slot busy admits nothing
    assert await cashier.tick() == []

    for _ in range(10):
        await clock.advance(CHECKOUT_WINDOW)
        await cashier.tick()
        assert cashier.processing_count <= 3

    await clock.advance(CHECKOUT_WINDOW)
    assert all(t.status == TransactionStatus.COMPLETED for t in transactions)
    assert cashier.peak_processing == 3


@pytest.mark.asyncio
async def test_queue_is_admitted_in_arrival_order(cashier: AutomatedCashier, clock: SimulatedClock):
    first = await cashier.submit(make_customer(name="first"))
    cashier.settings.max_concurrent = 1
    second = await cashier.submit(make_customer(name="second"))

    assert await cashier.tick() == [first]
    await clock.advance(CHECKOUT_WINDOW)
    assert await cashier.tick() == [second]


@pytest.mark.asyncio
async def test_payment_failure_fails_and_escalates(
    event_bus: EventBus, clock: SimulatedClock, world_state: WorldState, recorder
):
    config = CashierConfig(scan_error_rate=0.0, payment_failure_rate=1.0, upsell_probability=0.0)
    cashier = AutomatedCashier(event_bus, clock, world_state, config=config, rng=random.Random(7))

    transaction = await cashier.submit(make_customer())
    await cashier.tick()
    await clock.advance(CHECKOUT_WINDOW)

    assert transaction.status == TransactionStatus.FAILED
    assert "Payment processing failed" in transaction.error
    assert world_state.finances.revenue == 0.0
    assert cashier.metrics.transactions_failed == 1
    assert recorder.types[-2:] == ["cashier:transactionFailed", "cashier:escalation"]
    assert recorder.events[-1].payload["transaction_id"] == transaction.id


@pytest.mark.asyncio
async def test_scan_anomaly_is_recovered_in_line(
    event_bus: EventBus, clock: SimulatedClock, world_state: WorldState
):
    config = CashierConfig(scan_error_rate=1.0, payment_failure_rate=0.0, upsell_probability=0.0)
    cashier = AutomatedCashier(event_bus, clock, world_state, config=config, rng=random.Random(3))

    transaction = await cashier.submit(make_customer(items=2))
    await cashier.tick()
    await clock.advance(CHECKOUT_WINDOW)

    assert transaction.status == TransactionStatus.COMPLETED
    assert transaction.scan_errors == 2
    assert transaction.total_items == 2


@pytest.mark.asyncio
async def test_upsell_stage_when_always_offered(event_bus: EventBus, clock: SimulatedClock, world_state: WorldState):
    config = CashierConfig(scan_error_rate=0.0, payment_failure_rate=0.0, upsell_probability=1.0)
    cashier = AutomatedCashier(event_bus, clock, world_state, config=config, rng=random.Random(5))

    transaction = await cashier.submit(make_customer())
    await cashier.tick()
    await clock.advance(CHECKOUT_WINDOW)

    assert ConversationStage.UPSELLING in [step.stage for step in transaction.conversation]


# --- Metrics --- #


def test_satisfaction_is_bounded(cashier: AutomatedCashier, clock: SimulatedClock):
    for seconds in (1, 30, 45, 61, 600):
        transaction = Transaction(customer=make_customer(), created_at=clock.now())
        transaction.ended_at = transaction.created_at + timedelta(seconds=seconds)
        for _ in range(20):
            assert 0.0 <= cashier.calculate_satisfaction(transaction) <= 1.0


@pytest.mark.asyncio
async def test_update_metrics_from_history(
    event_bus: EventBus, clock: SimulatedClock, world_state: WorldState, recorder
):
    config = CashierConfig(scan_error_rate=0.0, payment_failure_rate=0.0, upsell_probability=0.0)
    cashier = AutomatedCashier(event_bus, clock, world_state, config=config, rng=random.Random(11))
    for i in range(2):
        await cashier.submit(make_customer(name=f"c{i}"))
    await cashier.tick()
    await clock.advance(CHECKOUT_WINDOW)

    cashier.settings.payment_failure_rate = 1.0
    await cashier.submit(make_customer(name="unlucky"))
    await cashier.tick()
    await clock.advance(CHECKOUT_WINDOW)

    metrics = await cashier.update_metrics()

    assert metrics.transactions_processed == 2
    assert metrics.transactions_failed == 1
    assert metrics.error_rate == pytest.approx(1 / 3)
    assert metrics.escalation_rate == pytest.approx(1 / 3)
    assert 0.0 <= metrics.customer_satisfaction_rate <= 1.0
    assert recorder.of_type("cashier:metricsUpdated")[-1].payload["transactions_processed"] == 2


@pytest.mark.asyncio
async def test_update_metrics_without_history_keeps_defaults(cashier: AutomatedCashier, recorder):
    metrics = await cashier.update_metrics()
    assert metrics.error_rate == 0.03
    assert recorder.of_type("cashier:metricsUpdated") == []


def test_history_is_bounded(event_bus: EventBus, clock: SimulatedClock, world_state: WorldState):
    cashier = AutomatedCashier(event_bus, clock, world_state, config=CashierConfig(history_limit=5))
    for _ in range(8):
        cashier.history.append(Transaction(customer=make_customer(), created_at=clock.now()))
    assert len(cashier.history) == 5


def test_performance_report_shape(cashier: AutomatedCashier):
    report = cashier.performance_report()
    assert set(report) == {
        "metrics",
        "active_transactions",
        "processing",
        "queue_length",
        "recent_transactions",
        "settings",
    }
    assert report["settings"]["max_concurrent"] == 3


@pytest.mark.asyncio
async def test_missing_item_price_uses_default(cashier: AutomatedCashier, clock: SimulatedClock):
    customer = Customer(name="Lee", cart=[CartItem(name="Mystery item", price=None, quantity=None)])

    transaction = await cashier.submit(customer)
    await cashier.tick()
    await clock.advance(CHECKOUT_WINDOW)

    assert transaction.total_items == 1
    assert transaction.subtotal == pytest.approx(5.0)
