"""
Demonstrates the store automation engine on a simulated clock.

Builds a small store, enables the cashier, inventory and advisor automations,
feeds customer arrivals and a business decision through the event channel,
then fast-forwards a few simulated days and prints summary tables.
"""

import asyncio
import random

import pandas as pd

from agents.coordinator import create_automation_engine
from config.config import load_engine_config
from models.enums import EventSource, ModuleName
from models.events import AutomationEvent
from models.state import ProductStock, StaffMember, WorldState
from utils.clock import SimulatedClock
from utils.event_bus import EventBus
from utils.logger import get_logger

logger = get_logger("demos.automation_engine")
# Keep per-transaction INFO logs out of the demo output
get_logger("agents", level="WARNING")

SEED = 7


def build_store(rng: random.Random) -> WorldState:
    world = WorldState()
    catalogue = [
        ("soda", "Cola Drink", "beverages", 9, 1.2),
        ("water", "Spring Water", "beverages", 30, 0.5),
        ("chips", "Potato Chips", "snacks", 6, 1.0),
        ("candy", "Candy Bar", "snacks", 40, 0.8),
        ("batteries", "AA Batteries", "default", 12, 3.0),
    ]
    for product_id, name, category, quantity, cost in catalogue:
        world.add_product(
            ProductStock(product_id=product_id, name=name, category=category, quantity=quantity, cost=cost)
        )
        for _ in range(7):
            world.record_daily_sales(product_id, rng.randint(2, 9))
    world.staff = [
        StaffMember(name="Robin", role="cashier", workload=0.85, fatigue=0.6),
        StaffMember(name="Jo", role="stocker", workload=0.7, fatigue=0.4),
    ]
    return world


def customer_payload(rng: random.Random, index: int, world: WorldState) -> dict:
    products = list(world.inventory.values())
    cart = [
        {"product_id": p.product_id, "name": p.name, "price": p.price, "quantity": rng.randint(1, 3)}
        for p in rng.sample(products, rng.randint(1, 4))
    ]
    return {
        "name": f"Customer {index}",
        "cart": cart,
        "mood": rng.choice(["happy", "neutral", "neutral", "angry"]),
        "has_complaint": rng.random() < 0.1,
        "is_vip": rng.random() < 0.15,
    }


async def publish(event_bus: EventBus, event_type: str, payload: dict, source: EventSource) -> None:
    await event_bus.publish(AutomationEvent(event_type=event_type, payload=payload, source=source))


async def run_automation_demo():
    """Run one simulated store session end to end."""
    logger.info("--- Starting Store Automation Demo ---")
    rng = random.Random(SEED)
    clock = SimulatedClock()
    event_bus = EventBus()
    world = build_store(rng)

    coordinator = create_automation_engine(
        world, clock=clock, event_bus=event_bus, config=load_engine_config(), rng=rng
    )
    escalations: list[dict] = []

    async def on_escalation(event: AutomationEvent) -> None:
        escalations.append({"customer": event.payload["customer"]["name"], "reason": event.payload["reason"]})

    event_bus.subscribe("cashier:escalation", on_escalation)

    await coordinator.enable(ModuleName.CUSTOMER_SERVICE, {"quality": "premium"})
    await coordinator.enable(ModuleName.INVENTORY)
    await coordinator.enable(ModuleName.AI_ASSISTANT)
    coordinator.start()

    try:
        await publish(event_bus, "store:opened", {}, EventSource.STORE)

        for index in range(12):
            await publish(event_bus, "customer:arrived", customer_payload(rng, index, world), EventSource.CUSTOMER)
            await clock.advance(rng.uniform(5, 20))

        await publish(
            event_bus,
            "decision:required",
            {"id": "hire-1", "type": "hiring", "context": {"position": "cashier"}},
            EventSource.STORE,
        )
        await publish(
            event_bus,
            "decision:required",
            {"id": "stock-1", "type": "inventory", "context": {"products": [{"id": p} for p in world.inventory]}},
            EventSource.STORE,
        )

        await clock.advance_days(3)
        metrics = await coordinator.update_metrics()
    finally:
        await coordinator.stop()

    transactions = pd.DataFrame([t.summary() for t in coordinator.cashier.history])
    orders = pd.DataFrame([o.to_dict() for o in coordinator.inventory.order_history])
    stock = pd.DataFrame(
        [{"product": p.name, "quantity": p.quantity, "max_stock": p.max_stock} for p in world.inventory.values()]
    )
    decisions = pd.DataFrame(
        [
            {
                "decision": r.decision.id,
                "type": r.decision.type,
                "actions": ", ".join(rec.action for rec in r.recommendation_set.recommendations),
                "confidence": r.recommendation_set.overall_confidence,
            }
            for r in coordinator.advisor.decision_history
        ]
    )

    print("\n--- Transactions ---")
    print(transactions.to_string(index=False) if not transactions.empty else "none")
    print("\n--- Escalations ---")
    print(pd.DataFrame(escalations).to_string(index=False) if escalations else "none")
    print("\n--- Restock orders ---")
    if not orders.empty:
        print(orders[["product_name", "quantity", "total_cost", "urgency", "status"]].to_string(index=False))
    else:
        print("none")
    print("\n--- Stock after deliveries ---")
    print(stock.to_string(index=False))
    print("\n--- Advisor decisions ---")
    print(decisions.to_string(index=False) if not decisions.empty else "none")
    print("\n--- Automation metrics ---")
    print(pd.json_normalize(metrics.model_dump()).T.to_string(header=False))
    print(f"\nCash: ${world.finances.cash:.2f}  Revenue: ${world.finances.revenue:.2f}")

    logger.info("--- Store Automation Demo Finished ---")


if __name__ == "__main__":
    try:
        asyncio.run(run_automation_demo())
    except KeyboardInterrupt:
        logger.info("Demo stopped by user.")
