"""
Base class for automation modules ("robot workers").
"""

import logging
from dataclasses import asdict, fields
from typing import Any

from config.config import apply_settings
from models.enums import EventSource, ModuleName
from models.events import AutomationEvent
from models.state import WorldState
from utils.clock import Clock
from utils.event_bus import EventBus

logger_base = logging.getLogger(__name__)


class AutomationModule:
    """
    Common plumbing for modules managed by the automation coordinator:
    event publishing, typed settings and exception reporting.
    """

    module_name: ModuleName
    source: EventSource = EventSource.AUTOMATION

    def __init__(self, event_bus: EventBus | None, clock: Clock, world_state: WorldState, settings: Any):
        self.event_bus = event_bus
        self.clock = clock
        self.world_state = world_state
        self.settings = settings

    async def publish_event(self, event_type: str, payload: dict[str, Any]) -> None:
        """Publish an event to the event bus"""
        if self.event_bus is None:
            logger_base.error(f"Module {self.module_name.value} has no event bus to publish to.")
            return

        event = AutomationEvent(
            event_type=event_type,
            payload=payload,
            source=self.source,
            timestamp=self.clock.now(),
        )
        await self.event_bus.publish(event)

    def update_settings(self, new_settings: dict[str, Any]) -> list[str]:
        """Apply control-surface settings that match this module's config fields."""
        applied = apply_settings(self.settings, new_settings)
        if applied:
            logger_base.info(f"{self.module_name.value} settings updated: {', '.join(applied)}")
        return applied

    def settings_dict(self) -> dict[str, Any]:
        return asdict(self.settings)

    def setting_names(self) -> set[str]:
        return {f.name for f in fields(self.settings)}

    async def on_store_opened(self) -> None:
        """Hook run by the coordinator when the store opens. No-op by default."""

    async def handle_exception(self, exception: Exception, context: dict[str, Any]) -> None:
        """Log an unexpected failure and report it on the event channel."""
        error_details = {
            "error_type": type(exception).__name__,
            "error_message": str(exception),
            "context": context,
            "module": self.module_name.value,
        }
        logger_base.error(
            f"Exception in {self.module_name.value} module: {exception}",
            exc_info=True,
        )
        await self.publish_event("automation:exception", {"error_details": error_details})
