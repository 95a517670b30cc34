"""
Error taxonomy of the automation engine.

Only UnknownModuleError reaches callers of the control surface. The others
are raised and handled inside the modules: a skipped order, an escalated
transaction, an in-line scan retry or a fallback recommendation.
"""


class AutomationError(Exception):
    """Base class for automation engine errors."""


class UnknownModuleError(AutomationError, KeyError):
    """Control-surface call targeted a module name that is not registered."""

    def __init__(self, module_name: str):
        self.module_name = module_name
        super().__init__(f"Unknown automation system: {module_name}")

    def __str__(self) -> str:
        return self.args[0]


class BudgetExceededError(AutomationError):
    """Restock order would push the cycle's spend past the budget limit."""

    def __init__(self, product_id: str, order_cost: float, committed: float, budget_limit: float):
        self.product_id = product_id
        self.order_cost = order_cost
        self.committed = committed
        self.budget_limit = budget_limit
        super().__init__(
            f"Order for {product_id} costs {order_cost:.2f}; {committed:.2f} of {budget_limit:.2f} already committed"
        )


class PaymentFailureError(AutomationError):
    """Simulated payment processing failure; terminates the transaction."""


class ScanAnomalyError(AutomationError):
    """Item scan needs manual verification; recovered in-line."""


class UnrecognizedDecisionTypeError(AutomationError, ValueError):
    """Decision type has no dedicated evaluator."""

    def __init__(self, decision_type: str):
        self.decision_type = decision_type
        super().__init__(f"No evaluator for decision type '{decision_type}'")
