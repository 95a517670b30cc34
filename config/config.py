"""
Configuration classes for the store automation engine.
Defines the tunables of each automation module in a type-safe, extensible way.
"""

import logging
from dataclasses import dataclass, field, fields
from typing import Annotated, Any

from pydantic import Field, TypeAdapter, ValidationError

from utils.env import automation_environment

logger = logging.getLogger(__name__)

Fraction = Annotated[float, Field(ge=0.0, le=1.0)]
PositiveInt = Annotated[int, Field(ge=1)]
PositiveFloat = Annotated[float, Field(gt=0.0)]
NonNegativeFloat = Annotated[float, Field(ge=0.0)]


@dataclass
class CashierConfig:
    escalation_threshold: Fraction = 0.7
    max_concurrent: PositiveInt = 3
    tax_rate: NonNegativeFloat = 0.08
    upsell_probability: Fraction = 0.3
    scan_error_rate: Fraction = 0.03
    payment_failure_rate: Fraction = 0.02
    expected_duration_seconds: PositiveFloat = 30.0
    history_limit: PositiveInt = 200
    metrics_window: PositiveInt = 20
    large_cart_size: PositiveInt = 20
    default_item_price: NonNegativeFloat = 5.0
    # (min, max) seconds
    greeting_delay: tuple[float, float] = (1.0, 2.0)
    item_scan_delay: tuple[float, float] = (0.5, 1.5)
    scan_error_delay: tuple[float, float] = (2.0, 3.0)
    post_scan_delay: tuple[float, float] = (2.0, 4.0)
    upsell_delay: tuple[float, float] = (1.0, 2.0)
    completion_delay: tuple[float, float] = (2.0, 3.0)
    post_payment_delay: tuple[float, float] = (2.0, 4.0)
    farewell_delay: tuple[float, float] = (0.5, 1.0)
    payment_delays: dict[str, tuple[float, float]] = field(
        default_factory=lambda: {
            "card": (3.0, 6.0),
            "cash": (2.0, 4.0),
            "mobile": (1.0, 3.0),
        }
    )


@dataclass
class InventoryConfig:
    auto_restock: bool = True
    reorder_fraction: Fraction = 0.2  # reorder point as a share of max stock
    max_order_quantity: PositiveInt = 100
    budget_limit: NonNegativeFloat = 1000.0
    demand_forecast_days: PositiveInt = 7
    seasonal_adjustment: bool = True
    ordering_cost: NonNegativeFloat = 10.0  # fixed cost per order
    holding_cost_rate: PositiveFloat = 0.1  # share of unit cost, annual
    min_daily_demand: PositiveFloat = 0.1
    overstock_fraction: Fraction = 0.9
    order_history_limit: PositiveInt = 500


@dataclass
class AdvisorConfig:
    learning_rate: Annotated[float, Field(gt=0.0, le=1.0)] = 0.1
    confidence: Fraction = 0.7
    risk_tolerance: Fraction = 0.3
    creativity_level: Fraction = 0.5
    history_limit: PositiveInt = 100
    fallback_confidence: Fraction = 0.5


@dataclass
class SchedulerConfig:
    """Job periods in seconds of clock time"""

    cashier_tick: float = 5.0
    cashier_metrics: float = 30.0
    inventory_check: float = 120.0
    demand_forecast: float = 3600.0
    inventory_daily_analysis: float = 86400.0
    advisor_analysis: float = 30.0
    coordinator_metrics: float = 300.0


@dataclass
class EngineConfig:
    cashier: CashierConfig = field(default_factory=CashierConfig)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)
    advisor: AdvisorConfig = field(default_factory=AdvisorConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)


# Control-surface settings each module starts with; merged by enable/configure.
DEFAULT_MODULE_SETTINGS: dict[str, dict[str, Any]] = {
    "customerService": {"quality": "standard", "personal_touch": 0.3, "escalation_threshold": 0.7},
    "inventory": {"auto_restock": True, "reorder_fraction": 0.2, "overstock": False, "budget_limit": 1000.0},
    "maintenance": {"schedule": "daily", "thoroughness": "standard", "emergency_response": True},
    "security": {"surveillance": "active", "alert_level": "medium", "auto_response": False},
    "aiAssistant": {"autonomy": "suggestions", "decision_making": "supervised", "learning_mode": True},
}


def validate_setting(config: Any, name: str, value: Any) -> Any:
    """
    Coerce ``value`` to the annotated type of field ``name`` on a config dataclass.
    Raises pydantic's ValidationError when the value cannot be coerced or breaks a bound.
    """
    annotation = next(f.type for f in fields(config) if f.name == name)
    return TypeAdapter(annotation).validate_python(value)


def apply_settings(config: Any, settings: dict[str, Any]) -> list[str]:
    """
    Copy matching keys of ``settings`` onto a config dataclass.
    Values are coerced to the field's type; invalid values are logged and skipped.
    Returns the names of the fields that were updated; other keys are ignored.
    """
    known = {f.name for f in fields(config)}
    applied = []
    for key, value in settings.items():
        if key not in known:
            logger.debug(f"Ignoring unknown setting '{key}' for {type(config).__name__}")
            continue
        try:
            setattr(config, key, validate_setting(config, key, value))
        except ValidationError as e:
            logger.warning(
                f"Rejected setting {key}={value!r} for {type(config).__name__}: {e.errors()[0]['msg']}"
            )
            continue
        applied.append(key)
    return applied


_ENV_OVERRIDES: list[tuple[str, str, str]] = [
    ("AUTOMATION_ESCALATION_THRESHOLD", "cashier", "escalation_threshold"),
    ("AUTOMATION_MAX_CONCURRENT", "cashier", "max_concurrent"),
    ("AUTOMATION_TAX_RATE", "cashier", "tax_rate"),
    ("AUTOMATION_BUDGET_LIMIT", "inventory", "budget_limit"),
    ("AUTOMATION_MAX_ORDER_QUANTITY", "inventory", "max_order_quantity"),
    ("AUTOMATION_LEARNING_RATE", "advisor", "learning_rate"),
]


def load_engine_config(environ: dict[str, str] | None = None) -> EngineConfig:
    """Build an EngineConfig from defaults plus ``AUTOMATION_*`` environment overrides."""
    env = automation_environment(environ)
    config = EngineConfig()
    for var, section, attr in _ENV_OVERRIDES:
        raw = env.get(var)
        if raw is None:
            continue
        target = getattr(config, section)
        try:
            setattr(target, attr, validate_setting(target, attr, raw))
        except ValidationError:
            logger.warning(f"Ignoring invalid value {raw!r} for {var}")
    return config


# Example usage:
# config = load_engine_config()
# cashier = AutomatedCashier(event_bus, clock, world, config=config.cashier)
