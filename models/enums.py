"""
Centralized Enum definitions for the project.
"""

from enum import Enum


class ModuleName(str, Enum):
    """Automation modules exposed on the coordinator control surface"""

    CUSTOMER_SERVICE = "customerService"
    INVENTORY = "inventory"
    MAINTENANCE = "maintenance"
    SECURITY = "security"
    AI_ASSISTANT = "aiAssistant"


class EventSource(str, Enum):
    """Publishers on the event channel"""

    AUTOMATION = "automation"
    CASHIER = "cashier"
    INVENTORY = "inventory"
    AI_ASSISTANT = "aiAssistant"
    STORE = "store"
    CUSTOMER = "customer"
    SYSTEM = "system"
    TEST_AGENT = "test_agent"


class TransactionStatus(str, Enum):
    """Lifecycle of an automated checkout"""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    CARD = "card"
    CASH = "cash"
    MOBILE = "mobile"


class ConversationStage(str, Enum):
    """Cashier script stages, in pipeline order"""

    GREETING = "greeting"
    PROCESSING = "processing"
    UPSELLING = "upselling"
    COMPLETION = "completion"
    FAREWELL = "farewell"


class Urgency(str, Enum):
    """Restock priority, used to order candidates under a budget"""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def priority(self) -> int:
        return {"critical": 4, "high": 3, "medium": 2, "low": 1}[self.value]


class DemandTrend(str, Enum):
    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


class RestockOrderStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"


class DecisionType(str, Enum):
    """Business decisions the advisor knows how to evaluate"""

    PRICING = "pricing"
    HIRING = "hiring"
    INVENTORY = "inventory"
    EXPANSION = "expansion"
    CUSTOMER_SERVICE = "customer_service"


class InsightType(str, Enum):
    POSITIVE = "positive"
    SUGGESTION = "suggestion"
    WARNING = "warning"


class AlertType(str, Enum):
    URGENT = "urgent"
    CRITICAL = "critical"
