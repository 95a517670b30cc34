"""
Checkout data models for the automated cashier.
Customer payloads arrive on the event channel (Pydantic); transactions are
plain dataclasses owned by the cashier pipeline.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import ConversationStage, PaymentMethod, TransactionStatus


class CartItem(BaseModel):
    product_id: str = ""
    name: str = ""
    price: float | None = None  # cashier falls back to its default item price
    quantity: int | None = 1


class Customer(BaseModel):
    """Customer arriving at the checkout, as published by the store."""

    customer_id: str = Field(default_factory=lambda: f"cust_{uuid.uuid4().hex[:8]}")
    name: str = "Customer"
    cart: list[CartItem] = Field(default_factory=list)
    mood: str = "neutral"
    has_complaint: bool = False
    special_request: bool = False
    payment_issue: bool = False
    is_vip: bool = False

    def risk_factors(self, large_cart_size: int = 20) -> list[bool]:
        """Boolean escalation factors, in a fixed order."""
        return [
            self.mood == "angry",
            self.has_complaint,
            self.special_request,
            len(self.cart) > large_cart_size,
            self.payment_issue,
            self.is_vip,
        ]


@dataclass
class ConversationStep:
    stage: ConversationStage
    message: str
    timestamp: datetime
    speaker: str = "cashier_ai"


@dataclass
class Transaction:
    """
    One automated checkout. Moves queued -> processing -> completed | failed.
    """

    customer: Customer
    created_at: datetime
    id: str = field(default_factory=lambda: f"auto_trans_{uuid.uuid4().hex[:12]}")
    status: TransactionStatus = TransactionStatus.QUEUED
    conversation: list[ConversationStep] = field(default_factory=list)
    total_items: int = 0
    scan_errors: int = 0
    subtotal: float = 0.0
    tax: float = 0.0
    total: float = 0.0
    payment_method: PaymentMethod | None = None
    satisfaction: float | None = None
    error: str | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @property
    def items(self) -> list[CartItem]:
        return self.customer.cart

    @property
    def duration(self) -> float | None:
        """Seconds from submission to terminal status."""
        if self.ended_at is None:
            return None
        return (self.ended_at - self.created_at).total_seconds()

    def summary(self) -> dict[str, Any]:
        return {
            "transaction_id": self.id,
            "customer": self.customer.name,
            "status": self.status.value,
            "total": round(self.total, 2),
            "duration": self.duration,
            "satisfaction": self.satisfaction,
            "payment_method": self.payment_method.value if self.payment_method else None,
        }


@dataclass
class EscalationNotice:
    """Hand-off of a customer to a human cashier."""

    customer: Customer
    reason: str
    timestamp: datetime
    transaction_id: str | None = None
    escalated: bool = True
