import logging
from unittest.mock import AsyncMock

import pytest

from agents.base import AutomationModule
from config.config import InventoryConfig
from models.enums import EventSource, ModuleName
from models.events import AutomationEvent
from models.state import WorldState
from utils.clock import SimulatedClock
from utils.event_bus import EventBus

# --- Test Fixtures --- #


class StubModule(AutomationModule):
    module_name = ModuleName.MAINTENANCE
    source = EventSource.SYSTEM


@pytest.fixture
def mock_event_bus() -> AsyncMock:
    """Provides a mocked EventBus."""
    return AsyncMock(spec=EventBus)


@pytest.fixture
def module(mock_event_bus: AsyncMock, clock: SimulatedClock, world_state: WorldState) -> StubModule:
    return StubModule(mock_event_bus, clock, world_state, InventoryConfig())


# --- Test publish_event --- #


@pytest.mark.asyncio
async def test_publish_event_success(module: StubModule, mock_event_bus: AsyncMock, clock: SimulatedClock):
    await module.publish_event("maintenance:done", {"area": "aisle 3"})

    mock_event_bus.publish.assert_awaited_once()
    published_event = mock_event_bus.publish.call_args[0][0]
    assert isinstance(published_event, AutomationEvent)
    assert published_event.event_type == "maintenance:done"
    assert published_event.payload == {"area": "aisle 3"}
    assert published_event.source == EventSource.SYSTEM
    assert published_event.timestamp == clock.now()


@pytest.mark.asyncio
async def test_publish_event_no_bus(clock: SimulatedClock, world_state: WorldState, caplog):
    module = StubModule(None, clock, world_state, InventoryConfig())

    with caplog.at_level(logging.ERROR):
        await module.publish_event("maintenance:done", {})

    assert "Module maintenance has no event bus to publish to." in caplog.text


# --- Test settings --- #


def test_update_settings_applies_known_fields(module: StubModule, caplog):
    with caplog.at_level(logging.INFO):
        applied = module.update_settings({"budget_limit": 400.0, "overstock": True})

    assert applied == ["budget_limit"]
    assert module.settings.budget_limit == 400.0
    assert module.settings_dict()["budget_limit"] == 400.0
    assert "maintenance settings updated: budget_limit" in caplog.text


def test_setting_names_lists_config_fields(module: StubModule):
    names = module.setting_names()
    assert {"budget_limit", "auto_restock", "reorder_fraction"} <= names
    assert "overstock" not in names


# --- Test handle_exception --- #


@pytest.mark.asyncio
async def test_handle_exception_logs_and_publishes(module: StubModule, mock_event_bus: AsyncMock, caplog):
    error = RuntimeError("conveyor jammed")

    with caplog.at_level(logging.ERROR):
        await module.handle_exception(error, {"stage": "cleaning"})

    assert "Exception in maintenance module: conveyor jammed" in caplog.text
    published_event = mock_event_bus.publish.call_args[0][0]
    assert published_event.event_type == "automation:exception"
    details = published_event.payload["error_details"]
    assert details["error_type"] == "RuntimeError"
    assert details["context"] == {"stage": "cleaning"}
    assert details["module"] == "maintenance"


@pytest.mark.asyncio
async def test_store_opened_hook_is_a_no_op(module: StubModule, mock_event_bus: AsyncMock):
    await module.on_store_opened()
    mock_event_bus.publish.assert_not_called()
