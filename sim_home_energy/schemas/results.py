"""
Simulation and optimization response schemas.

Built from engine results with ``from_result()`` / ``from_candidate()`` and
dumped to JSON by the CLI and the result builder.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..simulation.catalog import describe_batteries
from ..simulation.engine import SimulationResult
from ..simulation.optimizer import OptimalSystemCandidate


class HourlyRecordSchema(BaseModel):
    """One row of the hourly breakdown (kWh, rounded to 2 decimals)."""

    hour: int = Field(..., ge=0, le=23)
    solar: float
    battery_charge: float
    battery_discharge: float
    battery_level: float
    grid_supply: float
    grid_export: float
    curtailed: float
    household_load: float
    ev_charging: float
    ev_from_solar: float
    ev_from_battery: float
    ev_from_grid: float


class InputIssueSchema(BaseModel):
    source: str
    field: str
    value: str
    reason: str
    action: str


class SimulationResponse(BaseModel):
    """
    Serialized outcome of one simulation.

    Attributes:
        scenario: Scenario name.
        summary: Headline figures (see ``SimulationResult.summary``).
        recommendation: Equilibrium suggestion sentence.
        hourly: 24 hourly rows.
        input_issues: Invalid inputs that were substituted.
        output_dir: Report directory when outputs were saved.
    """

    scenario: str
    summary: Dict[str, object]
    recommendation: str
    hourly: List[HourlyRecordSchema]
    input_issues: List[InputIssueSchema] = Field(default_factory=list)
    output_dir: Optional[str] = None

    @classmethod
    def from_result(
        cls,
        result: SimulationResult,
        scenario: str,
        output_dir: str | None = None,
    ) -> "SimulationResponse":
        return cls(
            scenario=scenario,
            summary=result.summary(),
            recommendation=result.equilibrium_suggestion(),
            hourly=[HourlyRecordSchema(**record.as_dict()) for record in result.hourly],
            input_issues=[
                InputIssueSchema(
                    source=issue.source,
                    field=issue.field,
                    value=issue.value,
                    reason=issue.reason,
                    action=issue.action,
                )
                for issue in result.input_issues
            ],
            output_dir=output_dir,
        )


class OptimalSystemResponse(BaseModel):
    """A recommended system as reported by one strategy."""

    strategy: str
    solar_kw: float
    batteries: str
    battery_units: int = Field(..., ge=0)
    payback_years: Optional[int] = None
    monthly_savings: float
    total_system_cost: float
    monthly_grid_needed_kwh: float
    cost_25y_with: float
    cost_25y_without: float
    net_savings_25y: float
    grid_free_pct: float

    @classmethod
    def from_candidate(cls, candidate: OptimalSystemCandidate) -> "OptimalSystemResponse":
        return cls(
            strategy=candidate.strategy,
            solar_kw=candidate.solar_kw,
            batteries=describe_batteries(candidate.batteries),
            battery_units=candidate.result.battery_units,
            payback_years=candidate.payback_years,
            monthly_savings=round(candidate.monthly_savings, 1),
            total_system_cost=round(candidate.total_system_cost),
            monthly_grid_needed_kwh=round(candidate.monthly_grid_needed_kwh, 1),
            cost_25y_with=round(candidate.cost_25y_with),
            cost_25y_without=round(candidate.cost_25y_without),
            net_savings_25y=round(candidate.net_savings_25y),
            grid_free_pct=round(candidate.result.finance.grid_free_pct, 1),
        )


class OptimizationResponse(BaseModel):
    """
    Serialized outcome of one or more strategy searches.

    ``recommendations`` maps each requested strategy to its system, or to
    ``None`` when no candidate qualified.
    """

    scenario: str
    recommendations: Dict[str, Optional[OptimalSystemResponse]]
    cancelled: bool = False
    output_dir: Optional[str] = None

    @classmethod
    def from_candidates(
        cls,
        scenario: str,
        candidates: Dict[str, OptimalSystemCandidate | None],
        cancelled: bool = False,
        output_dir: str | None = None,
    ) -> "OptimizationResponse":
        return cls(
            scenario=scenario,
            recommendations={
                name: OptimalSystemResponse.from_candidate(candidate) if candidate else None
                for name, candidate in candidates.items()
            },
            cancelled=cancelled,
            output_dir=output_dir,
        )
