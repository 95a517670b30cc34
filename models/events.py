"""
Data models for events on the automation event channel.
"""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import EventSource


class AutomationEvent(BaseModel):
    """Event exchanged between the store and the automation modules."""

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: str  # e.g. "cashier:transactionCompleted"
    payload: dict[str, Any] = Field(default_factory=dict)
    source: EventSource
    timestamp: datetime = Field(default_factory=datetime.now)

    @property
    def channel(self) -> str:
        """Prefix of the event name, e.g. "cashier" for "cashier:escalation"."""
        return self.event_type.split(":", 1)[0]
