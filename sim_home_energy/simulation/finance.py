"""
Financial projection of a simulated day.

Converts the daily allocation and the hourly export into monthly bills,
system cost, payback, 25-year cost of ownership, zero-bill days and CO2
avoided, using the country's tariffs and net-metering rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .allocator import DailyAllocation
from .catalog import BatteryLineItem
from .countries import Country, CountryProfile, NetMeteringMode, get_country_profile
from .demand import DailyEnergyTotals
from .hourly import HourlySimulation
from .validation import clamp, finite_or_zero


@dataclass(frozen=True)
class FinanceAssumptions:
    """
    Economic constants applied to every projection.

    Attributes:
        tariff_inflation: Yearly tariff escalation (decimal, 0.03 = 3 %/year).
            Applied to bills, public charging and savings alike.
        yearly_opex_fraction: Yearly maintenance as fraction of system cost.
        hardware_overhead_fraction: Inverter/installation allowance added on
            top of hardware cost.
        days_per_month: Days used to turn daily flows into monthly figures.
        days_per_year: Days used for yearly figures.
        payback_cap_years: Last year examined by the payback search.
        horizon_years: Horizon of the total-cost-of-ownership sums.
        zero_bill_threshold: Monthly bill (local currency) treated as zero.
    """

    tariff_inflation: float = 0.03
    yearly_opex_fraction: float = 0.005
    hardware_overhead_fraction: float = 0.10
    days_per_month: int = 30
    days_per_year: int = 365
    payback_cap_years: int = 50
    horizon_years: int = 25
    zero_bill_threshold: float = 0.1

    def escalation(self, year: int) -> float:
        """Compound tariff factor for 1-based ``year`` (1.0 in year 1)."""
        return (1.0 + self.tariff_inflation) ** (year - 1)


DEFAULT_ASSUMPTIONS = FinanceAssumptions()


@dataclass(frozen=True)
class SystemCost:
    """Upfront cost breakdown (local currency)."""

    solar: float
    batteries: float
    overhead: float

    @property
    def hardware(self) -> float:
        return self.solar + self.batteries

    @property
    def total(self) -> float:
        return self.hardware + self.overhead


def compute_system_cost(
    country: Country,
    solar_kw: float,
    batteries: Iterable[BatteryLineItem],
    include_solar_cost: bool = True,
    assumptions: FinanceAssumptions = DEFAULT_ASSUMPTIONS,
) -> SystemCost:
    """
    Price a system: batteries plus (optionally) PV, plus the overhead allowance.

    Args:
        country: Market used for catalog prices and PV cost per kW.
        solar_kw: PV size (kW); invalid values count as zero.
        batteries: Battery line items; inactive items cost nothing.
        include_solar_cost: Whether PV is bought as part of the system.
        assumptions: Economic constants.

    Returns:
        SystemCost with every component non-negative.
    """
    profile = get_country_profile(country)
    battery_cost = sum(
        item.model.price_for(country) * item.quantity
        for item in batteries
        if item.is_active
    )
    solar_kw = max(0.0, finite_or_zero(solar_kw))
    solar_cost = solar_kw * profile.solar_cost_per_kw if include_solar_cost else 0.0
    overhead = (battery_cost + solar_cost) * assumptions.hardware_overhead_fraction
    return SystemCost(solar=solar_cost, batteries=battery_cost, overhead=overhead)


def payback_years(
    monthly_savings: float,
    system_cost: float,
    assumptions: FinanceAssumptions = DEFAULT_ASSUMPTIONS,
) -> int | None:
    """
    First year in which inflated cumulative savings net of opex cover the cost.

    Args:
        monthly_savings: First-year monthly savings.
        system_cost: Upfront system cost.
        assumptions: Economic constants (inflation, opex, cap).

    Returns:
        Payback year (0 for a free system), or ``None`` when savings are not
        positive or the cap is reached first.

    Example:
        ```python
        payback_years(100.0, 5000.0)   # 5
        payback_years(-1.0, 5000.0)    # None
        ```
    """
    if monthly_savings <= 0:
        return None
    if system_cost <= 0:
        return 0

    yearly_opex = system_cost * assumptions.yearly_opex_fraction
    cumulative = 0.0
    for year in range(1, assumptions.payback_cap_years + 1):
        cumulative += monthly_savings * 12.0 * assumptions.escalation(year) - yearly_opex
        if cumulative >= system_cost:
            return year
    return None


@dataclass(frozen=True)
class FinancialSummary:
    """
    Monthly, yearly and 25-year financial outcome (local currency unless kWh).

    Attributes:
        currency: ISO currency of every amount.
        tariff_per_kwh: Residential tariff used.
        public_charging_per_kwh: Public charging price used.
        export_multiplier: Share of the tariff credited per exported kWh.
        bill_without_household: Household sub-bill without a system.
        bill_without_ev_home: Home EV charging sub-bill without a system.
        bill_without_ev_public: Public charging cost (same with or without).
        bill_without: Total monthly cost without a system.
        grid_usage_kwh: Monthly grid energy bought with the system.
        grid_usage_cost: Cost of that energy before export credit.
        export_kwh: Monthly exported energy.
        export_credit: Monthly export credit (0 when exports earn nothing).
        bill_with: Monthly home bill with the system, floored at 0.
        bill_with_household: Household share of ``bill_with``.
        bill_with_ev_home: Home EV share of ``bill_with``.
        total_cost_with: ``bill_with`` plus public charging.
        monthly_savings: ``bill_without - total_cost_with``.
        monthly_grid_needed_kwh: ``bill_with`` expressed in kWh at the tariff.
        ev_grid_home_kwh: Monthly home EV energy bought from the grid.
        ev_public_kwh: Monthly public charging energy.
        ev_charging_savings: Monthly benefit of charging at home.
        household_energy_kwh: Monthly household consumption.
        ev_home_energy_kwh: Monthly home EV charging.
        system_cost: Upfront cost breakdown.
        payback_years: Payback year, or ``None`` for never.
        bill_25y_with: 25-year home bills with the system.
        bill_25y_without: 25-year bills without the system.
        cost_25y_with: 25-year total cost with the system (upfront, bills,
            public charging and opex).
        cost_25y_without: 25-year total cost without the system.
        net_gain_25y: Upfront cost recovered by inflated savings minus opex.
        net_gain_25y_without: Minus the 25-year cost without a system.
        zero_bill_days: Estimated days per year with no bill.
        co2_avoided_kg: Yearly CO2 avoided (kg).
        grid_free_pct: Share of home load not bought from the grid (%).
        battery_charged_pct: Stored solar as share of capacity (%).
        ev_free_pct: Share of home EV charging from solar or battery (%).
    """

    currency: str
    tariff_per_kwh: float
    public_charging_per_kwh: float
    export_multiplier: float
    bill_without_household: float
    bill_without_ev_home: float
    bill_without_ev_public: float
    bill_without: float
    grid_usage_kwh: float
    grid_usage_cost: float
    export_kwh: float
    export_credit: float
    bill_with: float
    bill_with_household: float
    bill_with_ev_home: float
    total_cost_with: float
    monthly_savings: float
    monthly_grid_needed_kwh: float
    ev_grid_home_kwh: float
    ev_public_kwh: float
    ev_charging_savings: float
    household_energy_kwh: float
    ev_home_energy_kwh: float
    system_cost: SystemCost
    payback_years: int | None
    bill_25y_with: float
    bill_25y_without: float
    cost_25y_with: float
    cost_25y_without: float
    net_gain_25y: float
    net_gain_25y_without: float
    zero_bill_days: float
    co2_avoided_kg: float
    grid_free_pct: float
    battery_charged_pct: float
    ev_free_pct: float

    @property
    def total_system_cost(self) -> float:
        return self.system_cost.total

    @property
    def net_savings_25y(self) -> float:
        return self.cost_25y_without - self.cost_25y_with


def _zero_bill_days(
    has_credit: bool,
    bill_with: float,
    bill_without: float,
    home_load_kwh: float,
    grid_kwh: float,
    hourly: HourlySimulation,
    assumptions: FinanceAssumptions,
) -> float:
    days = assumptions.days_per_year
    if has_credit:
        if bill_with <= assumptions.zero_bill_threshold:
            return float(days)
        if bill_without <= 0:
            return 0.0
        return clamp(1.0 - bill_with / bill_without, 0.0, 1.0) * days

    if not hourly.has_grid_import() and bill_with <= assumptions.zero_bill_threshold:
        return float(days)
    if home_load_kwh <= 0:
        return 0.0
    return clamp((home_load_kwh - grid_kwh) / home_load_kwh, 0.0, 1.0) * days


def project_finances(
    country: Country,
    mode: NetMeteringMode,
    totals: DailyEnergyTotals,
    allocation: DailyAllocation,
    hourly: HourlySimulation,
    system_cost: SystemCost,
    assumptions: FinanceAssumptions = DEFAULT_ASSUMPTIONS,
) -> FinancialSummary:
    """
    Derive every financial figure for one simulated system.

    Args:
        country: Market (tariffs, credits, CO2 factor).
        mode: Active net-metering mode.
        totals: Aggregated daily totals.
        allocation: Daily allocation (drives the grid bill).
        hourly: Recorded hourly pass (drives the export credit).
        system_cost: Upfront cost of the system.
        assumptions: Economic constants.

    Returns:
        FinancialSummary. All amounts are finite.

    Notes:
        - The export credit is exactly zero when the mode's multiplier is
          zero, whatever the hourly surplus.
        - Household and home-EV sub-bills share the export credit in
          proportion to their grid cost.
    """
    profile: CountryProfile = get_country_profile(country)
    tariff = profile.tariff_per_kwh
    public_rate = profile.public_charging_per_kwh
    multiplier = profile.export_multiplier(mode)
    month = assumptions.days_per_month

    bill_without_household = totals.household_kwh * month * tariff
    bill_without_ev_home = totals.ev_home_kwh * month * tariff
    bill_without_ev_public = totals.ev_public_kwh * month * public_rate
    bill_without = bill_without_household + bill_without_ev_home + bill_without_ev_public

    grid_usage_kwh = allocation.grid_kwh * month
    grid_usage_cost = grid_usage_kwh * tariff

    export_kwh = hourly.total_export_kwh * month if multiplier > 0 else 0.0
    export_credit = export_kwh * tariff * multiplier

    bill_with = max(0.0, grid_usage_cost - export_credit)
    credit_ratio = (
        min(1.0, export_credit / grid_usage_cost)
        if export_credit > 0 and grid_usage_cost > 0
        else 0.0
    )
    ev_grid_home_kwh = allocation.ev_from_grid * month
    bill_with_household = allocation.household_grid_kwh * month * tariff * (1.0 - credit_ratio)
    bill_with_ev_home = ev_grid_home_kwh * tariff * (1.0 - credit_ratio)

    total_cost_with = bill_with + bill_without_ev_public
    monthly_savings = bill_without - total_cost_with
    monthly_grid_needed = bill_with / tariff if tariff > 0 else 0.0

    avoided_public = totals.ev_home_kwh * month * public_rate
    free_charging = allocation.ev_free * month * tariff
    ev_charging_savings = avoided_public - ev_grid_home_kwh * tariff + free_charging

    total_cost = system_cost.total
    payback = payback_years(monthly_savings, total_cost, assumptions)

    yearly_opex = total_cost * assumptions.yearly_opex_fraction
    bill_25y_with = 0.0
    bill_25y_without = 0.0
    cost_25y_with = total_cost
    cost_25y_without = 0.0
    net_gain = -total_cost
    net_gain_without = 0.0
    for year in range(1, assumptions.horizon_years + 1):
        factor = assumptions.escalation(year)
        yearly_with = bill_with * factor * 12.0
        yearly_without = bill_without * factor * 12.0
        yearly_public = bill_without_ev_public * factor * 12.0
        bill_25y_with += yearly_with
        bill_25y_without += yearly_without
        cost_25y_with += yearly_with + yearly_public + yearly_opex
        cost_25y_without += yearly_without
        net_gain += monthly_savings * factor * 12.0 - yearly_opex
        net_gain_without -= yearly_without

    home_load = totals.home_load_kwh
    grid_daily = allocation.grid_kwh
    self_supplied = max(0.0, home_load - grid_daily)
    grid_free_pct = clamp(self_supplied / home_load, 0.0, 1.0) * 100.0 if home_load > 0 else 0.0

    return FinancialSummary(
        currency=profile.currency,
        tariff_per_kwh=tariff,
        public_charging_per_kwh=public_rate,
        export_multiplier=multiplier,
        bill_without_household=bill_without_household,
        bill_without_ev_home=bill_without_ev_home,
        bill_without_ev_public=bill_without_ev_public,
        bill_without=bill_without,
        grid_usage_kwh=grid_usage_kwh,
        grid_usage_cost=grid_usage_cost,
        export_kwh=export_kwh,
        export_credit=export_credit,
        bill_with=bill_with,
        bill_with_household=bill_with_household,
        bill_with_ev_home=bill_with_ev_home,
        total_cost_with=total_cost_with,
        monthly_savings=monthly_savings,
        monthly_grid_needed_kwh=monthly_grid_needed,
        ev_grid_home_kwh=ev_grid_home_kwh,
        ev_public_kwh=totals.ev_public_kwh * month,
        ev_charging_savings=ev_charging_savings,
        household_energy_kwh=totals.household_kwh * month,
        ev_home_energy_kwh=totals.ev_home_kwh * month,
        system_cost=system_cost,
        payback_years=payback,
        bill_25y_with=bill_25y_with,
        bill_25y_without=bill_25y_without,
        cost_25y_with=cost_25y_with,
        cost_25y_without=cost_25y_without,
        net_gain_25y=net_gain,
        net_gain_25y_without=net_gain_without,
        zero_bill_days=_zero_bill_days(
            multiplier > 0,
            bill_with,
            bill_without,
            home_load,
            grid_daily,
            hourly,
            assumptions,
        ),
        co2_avoided_kg=self_supplied * assumptions.days_per_year * profile.co2_kg_per_kwh,
        grid_free_pct=grid_free_pct,
        battery_charged_pct=allocation.battery_charged_pct,
        ev_free_pct=allocation.ev_free_pct,
    )
