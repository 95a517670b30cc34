"""
Automated cashier: a bounded-concurrency checkout pipeline.

Customers are screened for escalation, queued, and admitted FIFO into
processing by ``tick`` while fewer than ``max_concurrent`` checkouts are in
flight. Each admitted checkout runs greeting -> scan -> upsell -> total ->
payment -> farewell, with simulated delays between stages. A failed payment
ends the checkout and hands the customer to a human cashier.
"""

import asyncio
import logging
import random
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any

from agents.base import AutomationModule
from agents.exceptions import PaymentFailureError, ScanAnomalyError
from config.config import CashierConfig
from models.enums import ConversationStage, EventSource, ModuleName, PaymentMethod, TransactionStatus
from models.state import WorldState
from models.transaction import CartItem, ConversationStep, Customer, EscalationNotice, Transaction
from utils.clock import Clock
from utils.event_bus import EventBus

logger = logging.getLogger(__name__)

CONVERSATION_TEMPLATES: dict[ConversationStage, list[str]] = {
    ConversationStage.GREETING: [
        "Hello! Welcome to our store. How can I help you today?",
        "Good morning! What can I assist you with?",
        "Hi there! Ready to check out?",
        "Welcome! I'm here to help with your purchase.",
    ],
    ConversationStage.PROCESSING: [
        "Let me scan these items for you...",
        "Processing your purchase now...",
        "Just getting your total ready...",
        "Almost done with your transaction...",
    ],
    ConversationStage.UPSELLING: [
        "Would you like to add any batteries with that?",
        "We have a special offer on snacks today, interested?",
        "Can I interest you in our store loyalty program?",
        "Would you like a bag for your items?",
    ],
    ConversationStage.COMPLETION: [
        "Your total comes to ${total:.2f}. Will that be cash or card?",
        "That'll be ${total:.2f}. How would you like to pay?",
        "Your purchase total is ${total:.2f}. Payment method?",
        "All set! That's ${total:.2f}. Cash or card today?",
    ],
    ConversationStage.FAREWELL: [
        "Thank you for shopping with us! Have a great day!",
        "Thanks for your purchase! Come back soon!",
        "Have a wonderful day, and thank you for choosing us!",
        "Thanks for visiting! See you next time!",
    ],
}


def escalation_score(customer: Customer, large_cart_size: int = 20) -> float:
    """Share of the customer's risk factors that are true, in [0, 1]."""
    factors = customer.risk_factors(large_cart_size)
    return sum(factors) / len(factors)


@dataclass
class CashierMetrics:
    transactions_processed: int = 0
    transactions_failed: int = 0
    average_transaction_time: float = 45.0  # seconds
    customer_satisfaction_rate: float = 0.82
    error_rate: float = 0.03
    escalation_rate: float = 0.0


class AutomatedCashier(AutomationModule):
    """Transaction pipeline behind the ``customerService`` automation."""

    module_name = ModuleName.CUSTOMER_SERVICE
    source = EventSource.CASHIER

    def __init__(
        self,
        event_bus: EventBus | None,
        clock: Clock,
        world_state: WorldState,
        config: CashierConfig | None = None,
        rng: random.Random | None = None,
    ):
        super().__init__(event_bus, clock, world_state, config or CashierConfig())
        self.rng = rng or random.Random()
        self.queue: deque[Transaction] = deque()
        self.active: dict[str, Transaction] = {}
        self.history: deque[Transaction] = deque(maxlen=self.settings.history_limit)
        self.metrics = CashierMetrics()
        self.customers_handled = 0
        self.escalations = 0
        self.peak_processing = 0
        self._tasks: set[asyncio.Task] = set()

    @property
    def processing_count(self) -> int:
        return sum(1 for t in self.active.values() if t.status == TransactionStatus.PROCESSING)

    def needs_escalation(self, customer: Customer) -> bool:
        score = escalation_score(customer, self.settings.large_cart_size)
        return score >= self.settings.escalation_threshold

    async def submit(self, customer: Customer) -> Transaction | EscalationNotice:
        """Accept a customer into the queue, or escalate straight away."""
        self.customers_handled += 1
        if self.needs_escalation(customer):
            logger.info(f"Escalating customer {customer.name} before queueing")
            return await self.escalate(customer, "Customer situation requires human cashier")

        transaction = Transaction(customer=customer, created_at=self.clock.now())
        self.queue.append(transaction)
        self.active[transaction.id] = transaction
        logger.info(f"Queued transaction {transaction.id} for {customer.name} ({len(customer.cart)} items)")

        await self.publish_event(
            "cashier:transactionStarted",
            {"transaction_id": transaction.id, "customer": customer.name, "automated": True},
        )
        return transaction

    async def escalate(
        self, customer: Customer, reason: str, transaction_id: str | None = None
    ) -> EscalationNotice:
        """Hand a customer over to the human-operated checkout."""
        self.escalations += 1
        notice = EscalationNotice(
            customer=customer,
            reason=reason,
            timestamp=self.clock.now(),
            transaction_id=transaction_id,
        )
        logger.warning(f"Escalating customer {customer.name} to human cashier: {reason}")
        await self.publish_event(
            "cashier:escalation",
            {
                "customer": customer.model_dump(),
                "reason": reason,
                "transaction_id": transaction_id,
                "timestamp": notice.timestamp.isoformat(),
            },
        )
        return notice

    async def tick(self) -> list[Transaction]:
        """Admit queued transactions FIFO until the concurrency limit is reached."""
        admitted: list[Transaction] = []
        while self.queue and self.processing_count < self.settings.max_concurrent:
            transaction = self.queue.popleft()
            transaction.status = TransactionStatus.PROCESSING
            transaction.started_at = self.clock.now()
            admitted.append(transaction)
            task = asyncio.create_task(self.process_transaction(transaction), name=transaction.id)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        self.peak_processing = max(self.peak_processing, self.processing_count)
        if admitted:
            logger.debug(f"Admitted {len(admitted)} transactions; {len(self.queue)} still queued")
        return admitted

    async def process_transaction(self, transaction: Transaction) -> None:
        logger.info(f"Processing automated transaction {transaction.id}")
        s = self.settings
        try:
            await self._converse(transaction, ConversationStage.GREETING)
            await self._delay(s.greeting_delay)

            await self._scan_items(transaction)
            await self._delay(s.post_scan_delay)

            if self.rng.random() < s.upsell_probability:
                await self._converse(transaction, ConversationStage.UPSELLING)
                await self._delay(s.upsell_delay)

            self._calculate_total(transaction)
            await self._converse(transaction, ConversationStage.COMPLETION, total=transaction.total)
            await self._delay(s.completion_delay)

            await self._process_payment(transaction)
            await self._delay(s.post_payment_delay)

            await self._converse(transaction, ConversationStage.FAREWELL)
            await self._delay(s.farewell_delay)

            await self._complete(transaction)
        except PaymentFailureError as e:
            await self._fail(transaction, e)
        except Exception as e:
            await self._fail(transaction, e)
            await self.handle_exception(e, {"stage": "process_transaction", "transaction_id": transaction.id})

    async def _delay(self, window: tuple[float, float]) -> None:
        low, high = window
        await self.clock.sleep(self.rng.uniform(low, high))

    async def _converse(self, transaction: Transaction, stage: ConversationStage, **data: Any) -> None:
        template = self.rng.choice(CONVERSATION_TEMPLATES[stage])
        step = ConversationStep(
            stage=stage,
            message=template.format(**data) if data else template,
            timestamp=self.clock.now(),
        )
        transaction.conversation.append(step)
        await self.publish_event(
            "cashier:conversation",
            {
                "transaction_id": transaction.id,
                "stage": stage.value,
                "message": step.message,
                "speaker": step.speaker,
            },
        )

    def _scan_item(self, item: CartItem) -> None:
        if self.rng.random() < self.settings.scan_error_rate:
            raise ScanAnomalyError(f"Scan of '{item.name or item.product_id}' needs manual verification")

    async def _scan_items(self, transaction: Transaction) -> None:
        total_items = 0
        subtotal = 0.0
        for item in transaction.items:
            await self._delay(self.settings.item_scan_delay)
            try:
                self._scan_item(item)
            except ScanAnomalyError as e:
                transaction.scan_errors += 1
                logger.warning(f"{transaction.id}: {e}")
                await self._delay(self.settings.scan_error_delay)
            quantity = item.quantity or 1
            price = item.price if item.price is not None else self.settings.default_item_price
            total_items += quantity
            subtotal += price * quantity

        transaction.total_items = total_items
        transaction.subtotal = subtotal
        await self._converse(transaction, ConversationStage.PROCESSING)

    def _calculate_total(self, transaction: Transaction) -> None:
        transaction.tax = transaction.subtotal * self.settings.tax_rate
        transaction.total = transaction.subtotal + transaction.tax

    async def _process_payment(self, transaction: Transaction) -> None:
        method = self.rng.choice(list(PaymentMethod))
        transaction.payment_method = method
        await self._delay(self.settings.payment_delays[method.value])
        if self.rng.random() < self.settings.payment_failure_rate:
            raise PaymentFailureError(f"Payment processing failed ({method.value})")

    async def _complete(self, transaction: Transaction) -> None:
        transaction.status = TransactionStatus.COMPLETED
        transaction.ended_at = self.clock.now()
        transaction.satisfaction = self.calculate_satisfaction(transaction)
        self.active.pop(transaction.id, None)
        self.history.append(transaction)
        self.metrics.transactions_processed += 1

        finances = self.world_state.finances
        finances.revenue += transaction.total
        finances.cash += transaction.total
        finances.transactions_today += 1

        logger.info(f"Automated transaction completed: {transaction.id} - ${transaction.total:.2f}")
        await self.publish_event(
            "cashier:transactionCompleted",
            {
                "transaction_id": transaction.id,
                "customer": transaction.customer.name,
                "total": transaction.total,
                "duration": transaction.duration,
                "satisfaction": transaction.satisfaction,
                "automated": True,
            },
        )

    async def _fail(self, transaction: Transaction, error: Exception) -> None:
        transaction.status = TransactionStatus.FAILED
        transaction.ended_at = self.clock.now()
        transaction.error = str(error)
        self.active.pop(transaction.id, None)
        self.history.append(transaction)
        self.metrics.transactions_failed += 1

        logger.error(f"Automated transaction failed: {transaction.id} - {error}")
        await self.publish_event(
            "cashier:transactionFailed",
            {"transaction_id": transaction.id, "customer": transaction.customer.name, "error": str(error)},
        )
        await self.escalate(transaction.customer, f"Automated checkout failed: {error}", transaction.id)

    def calculate_satisfaction(self, transaction: Transaction) -> float:
        satisfaction = 0.8
        expected = self.settings.expected_duration_seconds
        duration = transaction.duration or 0.0
        if duration < expected:
            satisfaction += 0.1
        elif duration > expected * 2:
            satisfaction -= 0.2

        if len(transaction.conversation) >= 4:
            satisfaction += 0.05

        satisfaction += (self.rng.random() - 0.5) * 0.1
        return max(0.0, min(1.0, satisfaction))

    async def update_metrics(self) -> CashierMetrics:
        """Recompute rolling metrics from recent finished transactions."""
        if self.customers_handled:
            self.metrics.escalation_rate = self.escalations / self.customers_handled
        if not self.history:
            return self.metrics

        completed = [t for t in self.history if t.status == TransactionStatus.COMPLETED]
        if completed:
            self.metrics.average_transaction_time = sum(t.duration or 0.0 for t in completed) / len(completed)
            self.metrics.customer_satisfaction_rate = sum(t.satisfaction or 0.0 for t in completed) / len(completed)

        recent = list(self.history)[-self.settings.metrics_window :]
        failed = sum(1 for t in recent if t.status == TransactionStatus.FAILED)
        self.metrics.error_rate = failed / len(recent)

        await self.publish_event("cashier:metricsUpdated", asdict(self.metrics))
        return self.metrics

    def performance_report(self) -> dict[str, Any]:
        return {
            "metrics": asdict(self.metrics),
            "active_transactions": len(self.active),
            "processing": self.processing_count,
            "queue_length": len(self.queue),
            "recent_transactions": [t.summary() for t in list(self.history)[-10:]],
            "settings": self.settings_dict(),
        }
