"""
Data models for the automation coordinator: per-module configuration,
control-call results and aggregated metrics.
"""

from typing import Any

from pydantic import BaseModel, Field

from .enums import ModuleName


class AutomationConfig(BaseModel):
    """Enabled flag plus free-form settings for one automation module"""

    module: ModuleName
    enabled: bool = False
    settings: dict[str, Any] = Field(default_factory=dict)

    def merge(self, settings: dict[str, Any] | None) -> None:
        if settings:
            self.settings.update(settings)


class ControlResult(BaseModel):
    """Outcome of an enable/disable/configure/shutdown call"""

    success: bool = True
    module: ModuleName | None = None
    message: str = ""
    settings: dict[str, Any] = Field(default_factory=dict)


class SystemInfo(BaseModel):
    """Catalogue entry describing an automation module"""

    id: ModuleName
    name: str
    description: str
    category: str
    cost: float
    requirements: list[str] = Field(default_factory=list)


class EfficiencyMetrics(BaseModel):
    time_saved: float = 0.0
    tasks_automated: int = 0
    error_rate: float = 0.02


class QualityMetrics(BaseModel):
    customer_satisfaction: float = 0.85
    task_completion_rate: float = 0.95
    quality_score: float = 0.88


class CostMetrics(BaseModel):
    operational_savings: float = 0.0
    automation_costs: float = 0.0
    roi: float = 0.0


class AutomationMetrics(BaseModel):
    efficiency: EfficiencyMetrics = Field(default_factory=EfficiencyMetrics)
    quality: QualityMetrics = Field(default_factory=QualityMetrics)
    costs: CostMetrics = Field(default_factory=CostMetrics)


class AutomationStatus(BaseModel):
    active: list[ModuleName]
    inactive: list[ModuleName]
    total_systems: int
    metrics: AutomationMetrics


class AutomationRecommendation(BaseModel):
    """Suggestion about which automation module to turn on or tune"""

    type: str  # enable | configure
    system: str
    reason: str
    priority: str
