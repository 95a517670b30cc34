import random
import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path to allow `import agents`, `import utils`, etc.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from models.state import ProductStock, StaffMember, WorldState  # noqa: E402
from utils.clock import SimulatedClock  # noqa: E402
from utils.event_bus import EventBus  # noqa: E402


@pytest.fixture
def clock() -> SimulatedClock:
    return SimulatedClock()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def world_state() -> WorldState:
    """A small store: one low product, one healthy product, two staff members."""
    world = WorldState()
    world.add_product(ProductStock(product_id="soda", name="Cola Drink", category="beverages", quantity=8))
    world.add_product(ProductStock(product_id="chips", name="Potato Chips", category="snacks", quantity=45))
    world.staff = [
        StaffMember(name="Alex", role="cashier", workload=0.6, fatigue=0.3),
        StaffMember(name="Sam", role="stocker", workload=0.4, fatigue=0.1),
    ]
    return world


class EventRecorder:
    """Subscribes to a set of event types and keeps every event it sees, in order."""

    def __init__(self, event_bus: EventBus, *event_types: str):
        self.events = []
        for event_type in event_types:
            event_bus.subscribe(event_type, self.record)

    async def record(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list:
        return [e for e in self.events if e.event_type == event_type]

    @property
    def types(self) -> list[str]:
        return [e.event_type for e in self.events]


@pytest.fixture
def record_events(event_bus: EventBus):
    """Factory: ``record_events("cashier:escalation", ...)`` returns a recorder on the shared bus."""

    def _make(*event_types: str) -> EventRecorder:
        return EventRecorder(event_bus, *event_types)

    return _make
