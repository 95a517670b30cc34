"""
Automation Coordinator: registers the automation modules, routes store
events to them, owns their control surface and aggregates their metrics.
"""

import logging
import random
from typing import Any

from agents.advisor import DecisionAdvisor
from agents.base import AutomationModule
from agents.cashier import AutomatedCashier
from agents.exceptions import UnknownModuleError
from agents.replenishment import AutomatedInventory
from config.config import DEFAULT_MODULE_SETTINGS, EngineConfig
from connectors.store_analytics import WorldStateAnalytics
from models.analytics import AnalyticsSource
from models.automation import (
    AutomationConfig,
    AutomationMetrics,
    AutomationRecommendation,
    AutomationStatus,
    ControlResult,
    SystemInfo,
)
from models.decision import Decision
from models.enums import EventSource, ModuleName
from models.events import AutomationEvent
from models.state import WorldState
from models.transaction import Customer
from utils.clock import Clock
from utils.event_bus import EventBus
from utils.scheduler import PeriodicScheduler

logger = logging.getLogger(__name__)

AVAILABLE_SYSTEMS: list[SystemInfo] = [
    SystemInfo(
        id=ModuleName.CUSTOMER_SERVICE,
        name="Automated Customer Service",
        description="AI-powered cashier handles routine transactions",
        category="customer",
        cost=200,
        requirements=["cashier_hired"],
    ),
    SystemInfo(
        id=ModuleName.INVENTORY,
        name="Automated Inventory Management",
        description="Smart restocking and inventory optimization",
        category="operations",
        cost=300,
        requirements=["stocker_hired"],
    ),
    SystemInfo(
        id=ModuleName.MAINTENANCE,
        name="Automated Maintenance",
        description="Scheduled cleaning and equipment maintenance",
        category="operations",
        cost=150,
        requirements=["janitor_hired"],
    ),
    SystemInfo(
        id=ModuleName.SECURITY,
        name="Automated Security Monitoring",
        description="AI surveillance and threat detection",
        category="security",
        cost=500,
        requirements=["security_hired"],
    ),
    SystemInfo(
        id=ModuleName.AI_ASSISTANT,
        name="AI Assistant Manager",
        description="Strategic decision support and analysis",
        category="management",
        cost=1000,
        requirements=["manager_hired"],
    ),
]

# Quality weight each enabled module contributes to the overall score
QUALITY_WEIGHTS: dict[ModuleName, float] = {
    ModuleName.CUSTOMER_SERVICE: 0.85,
    ModuleName.INVENTORY: 0.90,
    ModuleName.MAINTENANCE: 0.88,
    ModuleName.SECURITY: 0.92,
    ModuleName.AI_ASSISTANT: 0.95,
}
DEFAULT_QUALITY_WEIGHT = 0.80
IDLE_QUALITY_SCORE = 0.75
SAVINGS_PER_MODULE = 50.0
TASKS_PER_MODULE = 10
HOURS_SAVED_PER_MODULE = 2.5


class AutomationCoordinator:
    """Central control surface for the automation modules."""

    def __init__(
        self,
        event_bus: EventBus,
        clock: Clock,
        world_state: WorldState,
        cashier: AutomatedCashier,
        inventory: AutomatedInventory,
        advisor: DecisionAdvisor,
        config: EngineConfig | None = None,
        peers: dict[ModuleName, AutomationModule] | None = None,
    ):
        self.event_bus = event_bus
        self.clock = clock
        self.world_state = world_state
        self.config = config or EngineConfig()
        self.cashier = cashier
        self.inventory = inventory
        self.advisor = advisor
        self.modules: dict[ModuleName, AutomationModule] = {
            ModuleName.CUSTOMER_SERVICE: cashier,
            ModuleName.INVENTORY: inventory,
            ModuleName.AI_ASSISTANT: advisor,
        }
        self.modules.update(peers or {})
        self.configs: dict[ModuleName, AutomationConfig] = {
            name: AutomationConfig(module=name, settings=dict(DEFAULT_MODULE_SETTINGS.get(name.value, {})))
            for name in ModuleName
        }
        self.metrics = AutomationMetrics()
        self.scheduler = PeriodicScheduler(clock)
        self._register_jobs()
        self.register_event_handlers()

    # -- wiring -------------------------------------------------------------

    def register_event_handlers(self) -> None:
        """Subscribe to the store events that trigger automation."""
        self.event_bus.subscribe("customer:arrived", self.handle_customer_arrived)
        self.event_bus.subscribe("inventory:lowStock", self.handle_low_stock)
        self.event_bus.subscribe("store:opened", self.handle_store_opened)
        self.event_bus.subscribe("decision:required", self.handle_decision_required)

    def _register_jobs(self) -> None:
        periods = self.config.scheduler
        cashier_error = self.cashier.handle_exception
        inventory_error = self.inventory.handle_exception
        add = self.scheduler.add_job
        add("cashier.tick", periods.cashier_tick, self.cashier.tick, cashier_error)
        add("cashier.metrics", periods.cashier_metrics, self.cashier.update_metrics, cashier_error)
        add("inventory.check", periods.inventory_check, self._inventory_check_job, inventory_error)
        add("inventory.forecast", periods.demand_forecast, self._forecast_job, inventory_error)
        add("inventory.daily", periods.inventory_daily_analysis, self._daily_analysis_job, inventory_error)
        add("advisor.analysis", periods.advisor_analysis, self._advisor_job, self.advisor.handle_exception)
        add("automation.metrics", periods.coordinator_metrics, self.update_metrics)

    def start(self) -> None:
        """Start the periodic automation loops (needs a running event loop)."""
        self.scheduler.start()
        logger.info("Automation coordinator started")

    async def stop(self) -> None:
        await self.scheduler.stop()
        await self.inventory.shutdown()
        logger.info("Automation coordinator stopped")

    def is_enabled(self, module: ModuleName) -> bool:
        return self.configs[module].enabled

    # -- periodic jobs ------------------------------------------------------

    async def _inventory_check_job(self) -> None:
        if self.is_enabled(ModuleName.INVENTORY):
            await self.inventory.perform_check()

    async def _forecast_job(self) -> None:
        if self.is_enabled(ModuleName.INVENTORY):
            self.inventory.update_forecasts()

    async def _daily_analysis_job(self) -> None:
        if self.is_enabled(ModuleName.INVENTORY):
            await self.inventory.daily_analysis()

    async def _advisor_job(self) -> None:
        if self.is_enabled(ModuleName.AI_ASSISTANT):
            await self.advisor.periodic_analysis()

    # -- inbound events -----------------------------------------------------

    async def handle_customer_arrived(self, event: AutomationEvent) -> None:
        if not self.is_enabled(ModuleName.CUSTOMER_SERVICE):
            return
        customer = Customer.model_validate(event.payload)
        await self.cashier.submit(customer)

    async def handle_low_stock(self, event: AutomationEvent) -> None:
        if not self.is_enabled(ModuleName.INVENTORY):
            return
        product_id = event.payload.get("product_id") or event.payload.get("id")
        if not product_id:
            logger.warning(f"Low stock event without product id from {event.source.value}")
            return
        await self.inventory.handle_low_stock(product_id)

    async def handle_store_opened(self, event: AutomationEvent) -> None:
        for name, module in self.modules.items():
            if self.is_enabled(name):
                try:
                    await module.on_store_opened()
                except Exception as e:
                    await module.handle_exception(e, {"stage": "store_opened"})

    async def handle_decision_required(self, event: AutomationEvent) -> None:
        if not self.is_enabled(ModuleName.AI_ASSISTANT):
            return
        decision = Decision.model_validate(event.payload)
        await self.advisor.analyze(decision)

    # -- control surface ----------------------------------------------------

    def _resolve(self, module_name: str | ModuleName) -> ModuleName:
        try:
            return ModuleName(module_name)
        except ValueError:
            raise UnknownModuleError(str(module_name)) from None

    def _apply(self, module: ModuleName, settings: dict[str, Any] | None) -> list[str]:
        """Merge settings into the module's control map; returns keys its typed config rejected."""
        if not settings:
            return []
        rejected: list[str] = []
        target = self.modules.get(module)
        if target is not None:
            applied = target.update_settings(settings)
            known = target.setting_names()
            rejected = [key for key in settings if key in known and key not in applied]
        self.configs[module].merge({k: v for k, v in settings.items() if k not in rejected})
        return rejected

    def _control_result(self, module: ModuleName, message: str, rejected: list[str]) -> ControlResult:
        if rejected:
            message = f"{message}; rejected settings: {', '.join(rejected)}"
        return ControlResult(
            success=not rejected,
            module=module,
            message=message,
            settings=dict(self.configs[module].settings),
        )

    async def enable(self, module_name: str | ModuleName, settings: dict[str, Any] | None = None) -> ControlResult:
        module = self._resolve(module_name)
        self.configs[module].enabled = True
        rejected = self._apply(module, settings)

        logger.info(f"{module.value} automation enabled")
        await self._publish("automation:enabled", {"system": module.value, "settings": settings or {}})
        return self._control_result(module, f"{module.value} automation is now active", rejected)

    async def disable(self, module_name: str | ModuleName) -> ControlResult:
        module = self._resolve(module_name)
        self.configs[module].enabled = False

        logger.info(f"{module.value} automation disabled")
        await self._publish("automation:disabled", {"system": module.value})
        return ControlResult(module=module, message=f"{module.value} automation is now inactive")

    async def configure(self, module_name: str | ModuleName, settings: dict[str, Any]) -> ControlResult:
        module = self._resolve(module_name)
        rejected = self._apply(module, settings)

        logger.info(f"{module.value} automation configured: {settings}")
        await self._publish("automation:configured", {"system": module.value, "settings": settings})
        return self._control_result(module, f"{module.value} automation configured", rejected)

    def status(self) -> AutomationStatus:
        active = [name for name, cfg in self.configs.items() if cfg.enabled]
        inactive = [name for name, cfg in self.configs.items() if not cfg.enabled]
        return AutomationStatus(
            active=active,
            inactive=inactive,
            total_systems=len(self.configs),
            metrics=self.metrics.model_copy(deep=True),
        )

    async def emergency_shutdown(self, reason: str = "Manual override") -> ControlResult:
        """Disable every module, then announce the shutdown. Never fails."""
        logger.warning(f"Emergency automation shutdown initiated: {reason}")
        for cfg in self.configs.values():
            cfg.enabled = False

        try:
            await self._publish("automation:emergencyShutdown", {"reason": reason})
        except Exception as e:
            logger.error(f"Failed to announce emergency shutdown: {e}")
        return ControlResult(message="All automation systems have been shut down", settings={"reason": reason})

    # -- metrics & advice ---------------------------------------------------

    def available_systems(self) -> list[SystemInfo]:
        return list(AVAILABLE_SYSTEMS)

    async def update_metrics(self) -> AutomationMetrics:
        """Aggregate per-module quality, cost and savings into one metrics record."""
        enabled = [name for name, cfg in self.configs.items() if cfg.enabled]
        count = len(enabled)

        efficiency = self.metrics.efficiency
        efficiency.tasks_automated = count * TASKS_PER_MODULE
        efficiency.time_saved = count * HOURS_SAVED_PER_MODULE
        efficiency.error_rate = self.cashier.metrics.error_rate

        quality = self.metrics.quality
        if count:
            quality.quality_score = sum(QUALITY_WEIGHTS.get(n, DEFAULT_QUALITY_WEIGHT) for n in enabled) / count
        else:
            quality.quality_score = IDLE_QUALITY_SCORE
        quality.customer_satisfaction = self.cashier.metrics.customer_satisfaction_rate
        finished = self.cashier.metrics.transactions_processed + self.cashier.metrics.transactions_failed
        if finished:
            quality.task_completion_rate = self.cashier.metrics.transactions_processed / finished

        costs = self.metrics.costs
        costs.automation_costs = sum(s.cost for s in AVAILABLE_SYSTEMS if s.id in enabled)
        costs.operational_savings = count * SAVINGS_PER_MODULE
        costs.roi = costs.operational_savings / costs.automation_costs if costs.automation_costs > 0 else 0.0

        await self._publish("automation:metricsUpdated", self.metrics.model_dump())
        return self.metrics

    def recommendations(self) -> list[AutomationRecommendation]:
        status = self.status()
        recommendations = []
        if not status.active:
            recommendations.append(
                AutomationRecommendation(
                    type="enable",
                    system=ModuleName.CUSTOMER_SERVICE.value,
                    reason="Start with customer service automation for immediate efficiency gains",
                    priority="high",
                )
            )
        if status.metrics.efficiency.time_saved < 10 and ModuleName.INVENTORY in status.inactive:
            recommendations.append(
                AutomationRecommendation(
                    type="enable",
                    system=ModuleName.INVENTORY.value,
                    reason="Inventory automation will reduce manual restocking time",
                    priority="medium",
                )
            )
        if status.metrics.quality.quality_score < 0.8:
            recommendations.append(
                AutomationRecommendation(
                    type="configure",
                    system="all",
                    reason="Consider adjusting automation quality settings for better performance",
                    priority="medium",
                )
            )
        return recommendations

    async def _publish(self, event_type: str, payload: dict[str, Any]) -> None:
        event = AutomationEvent(
            event_type=event_type,
            payload=payload,
            source=EventSource.AUTOMATION,
            timestamp=self.clock.now(),
        )
        await self.event_bus.publish(event)


def create_automation_engine(
    world_state: WorldState,
    clock: Clock | None = None,
    event_bus: EventBus | None = None,
    config: EngineConfig | None = None,
    analytics: AnalyticsSource | None = None,
    rng: random.Random | None = None,
) -> AutomationCoordinator:
    """Construct and wire the modules around one world state."""
    clock = clock or Clock()
    event_bus = event_bus or EventBus()
    config = config or EngineConfig()

    cashier = AutomatedCashier(event_bus, clock, world_state, config=config.cashier, rng=rng)
    inventory = AutomatedInventory(event_bus, clock, world_state, config=config.inventory)
    analytics = analytics or WorldStateAnalytics(world_state, inventory=inventory, cashier=cashier)
    advisor = DecisionAdvisor(event_bus, clock, world_state, analytics, config=config.advisor)

    return AutomationCoordinator(
        event_bus=event_bus,
        clock=clock,
        world_state=world_state,
        cashier=cashier,
        inventory=inventory,
        advisor=advisor,
        config=config,
    )
