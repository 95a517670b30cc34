import logging
from unittest.mock import AsyncMock

import pytest

from models.enums import EventSource
from models.events import AutomationEvent
from utils.event_bus import EventBus


# Test Initialization
def test_event_bus_initialization():
    """Test that the EventBus initializes with an empty subscribers dict."""
    bus = EventBus()
    assert bus.subscribers == {}


# Test Subscription Logic
def test_subscribe_multiple_callbacks_same_event():
    """Test subscribing multiple different callbacks to the same event keeps their order."""
    bus = EventBus()
    mock_callback1 = AsyncMock(name="cb1")
    mock_callback2 = AsyncMock(name="cb2")

    bus.subscribe("cashier:escalation", mock_callback1)
    bus.subscribe("cashier:escalation", mock_callback2)

    assert bus.subscribers["cashier:escalation"] == [mock_callback1, mock_callback2]


def test_subscribe_duplicate_callback(caplog):
    """Test that subscribing the exact same callback twice is ignored."""
    bus = EventBus()
    mock_callback = AsyncMock(name="cb_duplicate")

    with caplog.at_level(logging.WARNING):
        bus.subscribe("inventory:lowStock", mock_callback)
        bus.subscribe("inventory:lowStock", mock_callback)

    assert len(bus.subscribers["inventory:lowStock"]) == 1
    assert "already subscribed" in caplog.text


def test_subscribe_non_callable():
    """Test that subscribing a non-callable raises TypeError."""
    bus = EventBus()

    with pytest.raises(TypeError, match="Callback must be a callable async function."):
        bus.subscribe("store:opened", "not a function")  # type: ignore [arg-type]

    assert "store:opened" not in bus.subscribers


# Test Unsubscription Logic
def test_unsubscribe_last_callback():
    """Test unsubscribing the last callback removes the event type."""
    bus = EventBus()
    mock_callback = AsyncMock()

    bus.subscribe("store:opened", mock_callback)
    bus.unsubscribe("store:opened", mock_callback)

    assert "store:opened" not in bus.subscribers


def test_unsubscribe_nonexistent_callback(caplog):
    """Test unsubscribing a callback that was never subscribed logs a warning."""
    bus = EventBus()
    bus.subscribe("store:opened", AsyncMock(name="cb1"))

    with caplog.at_level(logging.WARNING):
        bus.unsubscribe("store:opened", AsyncMock(name="cb2_not_subscribed"))

    assert len(bus.subscribers["store:opened"]) == 1
    assert "Callback AsyncMock not found" in caplog.text


# Test Publishing Logic


def create_test_event(event_type: str, payload: dict | None = None) -> AutomationEvent:
    return AutomationEvent(
        event_type=event_type,
        payload=payload if payload is not None else {},
        source=EventSource.TEST_AGENT,
    )


@pytest.mark.asyncio
async def test_publish_calls_correct_subscribers():
    """Test that publish calls all and only the subscribers of the event type."""
    bus = EventBus()
    mock_callback_a1 = AsyncMock(name="cb_a1")
    mock_callback_a2 = AsyncMock(name="cb_a2")
    mock_callback_b1 = AsyncMock(name="cb_b1")

    bus.subscribe("customer:arrived", mock_callback_a1)
    bus.subscribe("customer:arrived", mock_callback_a2)
    bus.subscribe("store:opened", mock_callback_b1)

    test_event = create_test_event("customer:arrived", {"name": "Pat"})
    await bus.publish(test_event)

    mock_callback_a1.assert_called_once_with(test_event)
    mock_callback_a2.assert_called_once_with(test_event)
    mock_callback_b1.assert_not_called()


@pytest.mark.asyncio
async def test_publish_delivers_in_subscription_order():
    """Each subscriber finishes before the next one starts."""
    bus = EventBus()
    seen: list[str] = []

    async def first(event):
        seen.append("first")

    async def second(event):
        seen.append("second")

    bus.subscribe("automation:enabled", first)
    bus.subscribe("automation:enabled", second)

    await bus.publish(create_test_event("automation:enabled"))
    await bus.publish(create_test_event("automation:enabled"))

    assert seen == ["first", "second", "first", "second"]


@pytest.mark.asyncio
async def test_publish_with_callback_exception(caplog):
    """A failing subscriber is logged and does not stop later subscribers."""
    bus = EventBus()
    failing_callback = AsyncMock(name="cb_fail", side_effect=ValueError("Callback failed!"))
    mock_callback_ok = AsyncMock(name="cb_ok")

    bus.subscribe("mixed_event", failing_callback)
    bus.subscribe("mixed_event", mock_callback_ok)

    test_event = create_test_event("mixed_event")
    with caplog.at_level(logging.ERROR):
        await bus.publish(test_event)

    failing_callback.assert_called_once_with(test_event)
    mock_callback_ok.assert_called_once_with(test_event)
    assert "Error in subscriber callback 'AsyncMock'" in caplog.text
    assert "Callback failed!" in caplog.text


@pytest.mark.asyncio
async def test_publish_invalid_event_object(caplog):
    """Test publishing an object that is not an AutomationEvent."""
    bus = EventBus()
    mock_callback = AsyncMock(name="cb1")
    bus.subscribe("test_event", mock_callback)

    invalid_event = {"event_type": "test_event", "payload": {}}

    with caplog.at_level(logging.ERROR):
        await bus.publish(invalid_event)  # type: ignore [arg-type]

    assert f"Attempted to publish invalid event type: {type(invalid_event)}" in caplog.text
    mock_callback.assert_not_called()


def test_event_channel_prefix():
    assert create_test_event("cashier:transactionCompleted").channel == "cashier"
    assert create_test_event("standalone").channel == "standalone"
