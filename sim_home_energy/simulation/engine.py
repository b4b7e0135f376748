"""
Single-configuration simulation pipeline.

:func:`simulate` chains the stages (aggregate demand, daily allocation,
hourly simulation, financial projection) and packages everything in a
:class:`SimulationResult`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Tuple

import pandas as pd

from .allocator import DailyAllocation, allocate_daily
from .countries import get_country_profile
from .demand import (
    DailyEnergyTotals,
    SystemConfiguration,
    aggregate_demand,
    has_usable_capacity,
)
from .finance import (
    DEFAULT_ASSUMPTIONS,
    FinanceAssumptions,
    FinancialSummary,
    compute_system_cost,
    project_finances,
)
from .hourly import (
    WARMUP_MAX_ITERATIONS,
    HourlyRecord,
    HourlySimulation,
    HourlySimulator,
    WarmupResult,
)
from .validation import InputIssue, InputIssueLog, finite_or_zero

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationResult:
    """
    Everything the engine knows about one simulated configuration.

    Attributes:
        configuration: The simulated system.
        totals: Aggregated daily totals.
        allocation: Daily priority allocation.
        day: Recorded hourly pass (rounded and raw records, warm-up info).
        finance: Financial projection.
        input_issues: Every invalid input that was substituted.
    """

    configuration: SystemConfiguration
    totals: DailyEnergyTotals
    allocation: DailyAllocation
    day: HourlySimulation
    finance: FinancialSummary
    input_issues: Tuple[InputIssue, ...] = ()

    @property
    def hourly(self) -> Tuple[HourlyRecord, ...]:
        return self.day.records

    @property
    def warmup(self) -> WarmupResult:
        return self.day.warmup

    def hourly_frame(self) -> pd.DataFrame:
        """Rounded hourly records as a DataFrame indexed 0-23."""
        return pd.DataFrame([record.as_dict() for record in self.hourly])

    @property
    def solar_kw(self) -> float:
        """Installed PV size as simulated (invalid sizes count as 0 kW)."""
        return max(0.0, finite_or_zero(self.configuration.solar_kw))

    @property
    def battery_units(self) -> int:
        """Units of the battery line items that contributed storage."""
        return sum(
            item.quantity for item in self.configuration.batteries if has_usable_capacity(item)
        )

    def equilibrium_suggestion(self) -> str:
        return (
            f"Recommended: {self.solar_kw:g} kW solar + {self.battery_units} "
            f"batteries for your loads & EVs ({round(self.finance.grid_free_pct)}% grid-free)"
        )

    def summary(self) -> Dict[str, Any]:
        """Headline figures, rounded to one decimal like the UI shows them."""
        finance = self.finance
        return {
            "country": self.configuration.country.value,
            "currency": finance.currency,
            "solar_kw": self.solar_kw,
            "daily_solar_kwh": round(self.totals.solar_kwh, 1),
            "battery_capacity_kwh": round(self.totals.battery_capacity_kwh, 2),
            "monthly_bill_without_system": round(finance.bill_without, 1),
            "monthly_bill_with_system": round(finance.bill_with, 1),
            "monthly_savings": round(finance.monthly_savings, 1),
            "monthly_export_kwh": round(finance.export_kwh, 1),
            "monthly_export_credit": round(finance.export_credit, 1),
            "total_system_cost": round(finance.total_system_cost),
            "payback_years": finance.payback_years,
            "net_savings_25y": round(finance.net_savings_25y),
            "zero_bill_days": round(finance.zero_bill_days, 1),
            "co2_avoided_kg_per_year": round(finance.co2_avoided_kg),
            "grid_free_pct": round(finance.grid_free_pct, 1),
            "warmup_iterations": self.warmup.iterations,
            "input_issues": len(self.input_issues),
        }


def simulate(
    configuration: SystemConfiguration,
    *,
    warmup_max_iterations: int = WARMUP_MAX_ITERATIONS,
    assumptions: FinanceAssumptions = DEFAULT_ASSUMPTIONS,
) -> SimulationResult:
    """
    Simulate one day of ``configuration`` and project its finances.

    The call never raises on bad numbers: invalid inputs are replaced and
    reported through ``SimulationResult.input_issues``.

    Args:
        configuration: System to simulate.
        warmup_max_iterations: Cap on battery warm-up replays.
        assumptions: Economic constants.

    Returns:
        SimulationResult with 24 hourly records and the financial summary.

    Example:
        ```python
        config = SystemConfiguration(
            country=Country.MY,
            solar_kw=10.0,
            day_load=8.0,
            night_load=10.0,
            batteries=(BatteryLineItem(model=battery, quantity=1),),
        )
        result = simulate(config)
        result.finance.bill_with < result.finance.bill_without   # True
        ```
    """
    issues = InputIssueLog()
    profile = get_country_profile(configuration.country)
    mode = configuration.effective_net_metering
    export_enabled = profile.has_export_credit(mode)

    totals = aggregate_demand(configuration, issues)
    allocation = allocate_daily(totals, export_enabled)
    day = HourlySimulator.from_totals(profile, totals, export_enabled).run(
        max_iterations=warmup_max_iterations
    )
    system_cost = compute_system_cost(
        configuration.country,
        configuration.solar_kw,
        configuration.batteries,
        include_solar_cost=configuration.include_solar_cost,
        assumptions=assumptions,
    )
    finance = project_finances(
        configuration.country,
        mode,
        totals,
        allocation,
        day,
        system_cost,
        assumptions=assumptions,
    )

    if issues:
        logger.debug("Simulation substituted %d invalid input(s)", len(issues))

    return SimulationResult(
        configuration=configuration,
        totals=totals,
        allocation=allocation,
        day=day,
        finance=finance,
        input_issues=issues.freeze(),
    )
