"""
Daily priority allocator.

Splits one day's totals into energy flows using a fixed greedy order:

1. daytime household load from solar;
2. surplus solar into the battery, up to its degraded capacity;
3. home EV charging from what solar is left (when the policy allows daytime
   charging; "Day only" buys the rest from the daytime grid);
4. remaining solar exported, or curtailed when exports earn no credit;
5. nighttime household load from the energy stored that day, then grid;
6. nighttime EV charging (when allowed) from the battery, then grid.

The result drives the monthly bill; the hourly simulator only refines the
export figure and the hour-by-hour picture.
"""

from __future__ import annotations

from dataclasses import dataclass

from .countries import ChargingTime
from .demand import DailyEnergyTotals
from .validation import clamp_percentage


@dataclass(frozen=True)
class DailyAllocation:
    """
    Daily energy flows (all kWh/day).

    Attributes:
        day_load_from_solar: Daytime household load met by solar.
        day_load_from_grid: Daytime household load bought from the grid.
        night_load_from_battery: Nighttime household load met by the battery.
        night_load_from_grid: Nighttime household load bought from the grid.
        battery_charged: Solar stored in the battery.
        ev_from_solar: Home EV charging supplied directly by solar.
        ev_from_battery: Home EV charging supplied by the battery at night.
        ev_from_grid_day: Home EV charging bought during the day.
        ev_from_grid_night: Home EV charging bought at night.
        surplus_solar: Solar left after loads, battery and EVs.
        exported: Part of the surplus sent to the grid for credit.
        curtailed: Part of the surplus that earns nothing.
        battery_charged_pct: Stored energy as share of capacity (%).
        ev_free_pct: Share of home EV charging from solar or battery (%).
    """

    day_load_from_solar: float
    day_load_from_grid: float
    night_load_from_battery: float
    night_load_from_grid: float
    battery_charged: float
    ev_from_solar: float
    ev_from_battery: float
    ev_from_grid_day: float
    ev_from_grid_night: float
    surplus_solar: float
    exported: float
    curtailed: float
    battery_charged_pct: float
    ev_free_pct: float

    @property
    def battery_discharged(self) -> float:
        return self.night_load_from_battery + self.ev_from_battery

    @property
    def day_grid_kwh(self) -> float:
        return self.day_load_from_grid + self.ev_from_grid_day

    @property
    def night_grid_kwh(self) -> float:
        return self.night_load_from_grid + self.ev_from_grid_night

    @property
    def grid_kwh(self) -> float:
        """Total daily grid draw (kWh/day)."""
        return self.day_grid_kwh + self.night_grid_kwh

    @property
    def household_grid_kwh(self) -> float:
        return self.day_load_from_grid + self.night_load_from_grid

    @property
    def ev_from_grid(self) -> float:
        return self.ev_from_grid_day + self.ev_from_grid_night

    @property
    def ev_free(self) -> float:
        return self.ev_from_solar + self.ev_from_battery


def allocate_daily(totals: DailyEnergyTotals, export_enabled: bool) -> DailyAllocation:
    """
    Apply the fixed-priority allocation to one day.

    Args:
        totals: Aggregated daily totals.
        export_enabled: Whether surplus solar earns export credit. When
            False the surplus is reported as curtailed instead of exported.

    Returns:
        DailyAllocation with every flow non-negative.

    Notes:
        The battery can only deliver at night what it stored that day; any
        carry-over from the previous day is the hourly simulator's concern.
    """
    solar = totals.solar_kwh
    capacity = totals.battery_capacity_kwh
    policy = totals.charging_time
    ev_home = totals.ev_home_kwh

    day_from_solar = min(totals.day_load_kwh, solar)
    day_from_grid = max(0.0, totals.day_load_kwh - solar)
    remaining = max(0.0, solar - totals.day_load_kwh)

    charged = min(capacity, remaining)
    remaining -= charged

    ev_solar = 0.0
    ev_grid_day = 0.0
    if policy.allows_day:
        ev_solar = min(ev_home, remaining)
        remaining -= ev_solar
        if policy is ChargingTime.DAY:
            ev_grid_day = max(0.0, ev_home - ev_solar)

    surplus = max(0.0, remaining)
    exported = surplus if export_enabled else 0.0
    curtailed = surplus - exported

    night_from_battery = min(charged, totals.night_load_kwh)
    night_from_grid = max(0.0, totals.night_load_kwh - night_from_battery)
    battery_left = max(0.0, charged - night_from_battery)

    ev_battery = 0.0
    ev_grid_night = 0.0
    if policy.allows_night:
        night_need = ev_home if policy is ChargingTime.NIGHT else ev_home - ev_solar
        if night_need > 0:
            if capacity > 0 and battery_left > 0:
                ev_battery = min(night_need, battery_left)
            ev_grid_night = max(0.0, night_need - ev_battery)

    battery_pct = clamp_percentage(charged / capacity * 100.0) if capacity > 0 else 0.0
    ev_free_pct = clamp_percentage((ev_solar + ev_battery) / ev_home * 100.0) if ev_home > 0 else 0.0

    return DailyAllocation(
        day_load_from_solar=day_from_solar,
        day_load_from_grid=day_from_grid,
        night_load_from_battery=night_from_battery,
        night_load_from_grid=night_from_grid,
        battery_charged=charged,
        ev_from_solar=ev_solar,
        ev_from_battery=ev_battery,
        ev_from_grid_day=ev_grid_day,
        ev_from_grid_night=ev_grid_night,
        surplus_solar=surplus,
        exported=exported,
        curtailed=curtailed,
        battery_charged_pct=battery_pct,
        ev_free_pct=ev_free_pct,
    )
