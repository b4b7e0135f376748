"""
Hour-by-hour simulation of one representative day.

The simulator replays the day twice:

* a warm-up that searches the steady-state battery level carried over from
  the previous day (an explicit fixed-point iteration on the end-of-day
  level), discarding hourly detail;
* a recorded pass that starts from that level and produces the 24
  :class:`HourlyRecord` rows used for export credit, charts and the
  off-grid check.

Both passes share :meth:`HourlySimulator._step`, so they apply exactly the
same per-hour priority.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from typing import List, Tuple

import numpy as np

from .battery import StorageBank
from .countries import CountryProfile
from .demand import DailyEnergyTotals
from .profiles import ev_curve, household_curve, solar_curve
from .validation import clamp_battery_level

logger = logging.getLogger(__name__)

WARMUP_SEED_FRACTION = 0.2
WARMUP_TOLERANCE_KWH = 1e-6
WARMUP_MAX_ITERATIONS = 50
BALANCE_TOLERANCE_KWH = 1e-9
GRID_IMPORT_THRESHOLD_KWH = 0.005


@dataclass(frozen=True)
class HourlyRecord:
    """
    Energy flows during one hour (kWh).

    Attributes:
        hour: Hour of day, 0-23.
        solar: PV generation.
        battery_charge: Energy stored this hour.
        battery_discharge: Energy delivered by the battery this hour.
        battery_level: Stored energy at the end of the hour.
        grid_supply: Energy bought from the grid.
        grid_export: Surplus sent to the grid for credit.
        curtailed: Surplus that earns no credit.
        household_load: Household consumption.
        ev_charging: Home EV charging.
        ev_from_solar: EV charging met by PV.
        ev_from_battery: EV charging met by the battery.
        ev_from_grid: EV charging bought from the grid.

    Notes:
        Per hour, ``solar + battery_discharge + grid_supply`` equals
        ``household_load + ev_charging + battery_charge + grid_export +
        curtailed``.
    """

    hour: int
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

    def balance_residual(self) -> float:
        """Supply minus demand for the hour; zero when energy is conserved."""
        supply = self.solar + self.battery_discharge + self.grid_supply
        demand = (
            self.household_load
            + self.ev_charging
            + self.battery_charge
            + self.grid_export
            + self.curtailed
        )
        return supply - demand

    def rounded(self, capacity_kwh: float, digits: int = 2) -> "HourlyRecord":
        """Copy with every flow rounded for presentation; level stays clamped."""
        values = {
            f.name: round(getattr(self, f.name), digits) + 0.0
            for f in fields(self)
            if f.name != "hour"
        }
        values["battery_level"] = clamp_battery_level(values["battery_level"], capacity_kwh)
        return replace(self, **values)

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class WarmupResult:
    """
    Outcome of the steady-state search.

    Attributes:
        start_level_kwh: Battery level the recorded pass starts from.
        iterations: Day replays performed.
        converged: Whether two consecutive end-of-day levels agreed within
            the tolerance.
    """

    start_level_kwh: float
    iterations: int
    converged: bool


@dataclass(frozen=True)
class HourlySimulation:
    """
    Recorded pass of the hourly simulator.

    Attributes:
        records: 24 rows rounded to 2 decimals (presentation).
        raw_records: The same rows unrounded (used for totals and checks).
        warmup: How the starting battery level was found.
        capacity_kwh: Battery capacity the day was simulated with.
    """

    records: Tuple[HourlyRecord, ...]
    raw_records: Tuple[HourlyRecord, ...]
    warmup: WarmupResult
    capacity_kwh: float

    @property
    def total_export_kwh(self) -> float:
        return float(sum(r.grid_export for r in self.raw_records))

    @property
    def total_curtailed_kwh(self) -> float:
        return float(sum(r.curtailed for r in self.raw_records))

    @property
    def total_grid_kwh(self) -> float:
        return float(sum(r.grid_supply for r in self.raw_records))

    def has_grid_import(self, threshold_kwh: float = GRID_IMPORT_THRESHOLD_KWH) -> bool:
        """True when any hour buys at least ``threshold_kwh`` from the grid."""
        return any(r.grid_supply >= threshold_kwh for r in self.raw_records)


class HourlySimulator:
    """
    Deterministic 24-hour energy dispatch.

    Per hour, in order: solar to household, solar to battery, solar to EV,
    leftover solar exported (or curtailed), battery to household, battery to
    EV, and the rest from the grid.

    Attributes:
        solar_kwh: Hourly PV generation (24 values).
        household_kwh: Hourly household load (24 values).
        ev_kwh: Hourly home EV charging (24 values).
        capacity_kwh: Pooled degraded battery capacity (kWh).
        export_enabled: Whether surplus is exported for credit.

    Example:
        ```python
        sim = HourlySimulator.from_totals(profile, totals, export_enabled=False)
        day = sim.run()
        day.warmup.converged          # True
        day.records[12].solar         # noon generation, rounded
        ```
    """

    def __init__(
        self,
        solar_kwh: np.ndarray,
        household_kwh: np.ndarray,
        ev_kwh: np.ndarray,
        capacity_kwh: float,
        export_enabled: bool,
    ) -> None:
        self.solar_kwh = np.asarray(solar_kwh, dtype=float)
        self.household_kwh = np.asarray(household_kwh, dtype=float)
        self.ev_kwh = np.asarray(ev_kwh, dtype=float)
        if not (self.solar_kwh.shape == self.household_kwh.shape == self.ev_kwh.shape == (24,)):
            raise ValueError("hourly curves must have exactly 24 values")
        self.capacity_kwh = max(0.0, float(capacity_kwh))
        self.export_enabled = export_enabled

    @classmethod
    def from_totals(
        cls,
        profile: CountryProfile,
        totals: DailyEnergyTotals,
        export_enabled: bool,
    ) -> "HourlySimulator":
        """Build the hourly curves from aggregated daily totals."""
        return cls(
            solar_kwh=solar_curve(profile, totals.solar_kwh),
            household_kwh=household_curve(totals.day_load_kwh, totals.night_load_kwh),
            ev_kwh=ev_curve(totals.vehicles),
            capacity_kwh=totals.battery_capacity_kwh,
            export_enabled=export_enabled,
        )

    def _step(self, bank: StorageBank, hour: int) -> HourlyRecord:
        solar = float(self.solar_kwh[hour])
        household = float(self.household_kwh[hour])
        ev = float(self.ev_kwh[hour])

        available = solar
        household_from_solar = min(household, available)
        household_remaining = household - household_from_solar
        available -= household_from_solar

        charged = bank.charge(available)
        available -= charged

        ev_from_solar = min(ev, available)
        available -= ev_from_solar

        surplus = max(0.0, available)
        exported = surplus if self.export_enabled else 0.0

        household_from_battery = bank.discharge(household_remaining)
        household_remaining -= household_from_battery

        ev_remaining = ev - ev_from_solar
        ev_from_battery = bank.discharge(ev_remaining)
        ev_remaining -= ev_from_battery

        return HourlyRecord(
            hour=hour,
            solar=solar,
            battery_charge=charged,
            battery_discharge=household_from_battery + ev_from_battery,
            battery_level=bank.level_kwh,
            grid_supply=household_remaining + ev_remaining,
            grid_export=exported,
            curtailed=surplus - exported,
            household_load=household,
            ev_charging=ev,
            ev_from_solar=ev_from_solar,
            ev_from_battery=ev_from_battery,
            ev_from_grid=ev_remaining,
        )

    def replay_day(self, start_level_kwh: float) -> float:
        """Simulate the day from ``start_level_kwh`` and return the end level."""
        bank = StorageBank(self.capacity_kwh, start_level_kwh)
        for hour in range(24):
            self._step(bank, hour)
        return bank.level_kwh

    def warm_up(
        self,
        max_iterations: int = WARMUP_MAX_ITERATIONS,
        tolerance_kwh: float = WARMUP_TOLERANCE_KWH,
    ) -> WarmupResult:
        """
        Find the steady-state starting level by fixed-point iteration.

        Starts from 20 % of capacity and feeds each end-of-day level back in
        as the next start until two consecutive levels differ by at most
        ``tolerance_kwh`` or ``max_iterations`` replays have run. With
        ``max_iterations=1`` this is a single preliminary replay.

        Args:
            max_iterations: Upper bound on day replays (at least 1).
            tolerance_kwh: Convergence tolerance on the end level (kWh).

        Returns:
            WarmupResult whose start level is the last end-of-day level.
        """
        max_iterations = max(1, int(max_iterations))
        level = clamp_battery_level(self.capacity_kwh * WARMUP_SEED_FRACTION, self.capacity_kwh)
        converged = False
        iterations = 0
        for iterations in range(1, max_iterations + 1):
            next_level = self.replay_day(level)
            delta = abs(next_level - level)
            level = next_level
            if delta <= tolerance_kwh:
                converged = True
                break

        if not converged and max_iterations > 1:
            logger.debug(
                "Battery warm-up stopped after %d iterations without converging (level %.4f kWh)",
                iterations,
                level,
            )
        return WarmupResult(start_level_kwh=level, iterations=iterations, converged=converged)

    def run(
        self,
        max_iterations: int = WARMUP_MAX_ITERATIONS,
        tolerance_kwh: float = WARMUP_TOLERANCE_KWH,
    ) -> HourlySimulation:
        """Warm up, then record the day starting from the steady-state level."""
        warmup = self.warm_up(max_iterations=max_iterations, tolerance_kwh=tolerance_kwh)
        bank = StorageBank(self.capacity_kwh, warmup.start_level_kwh)

        raw: List[HourlyRecord] = []
        for hour in range(24):
            record = self._step(bank, hour)
            residual = record.balance_residual()
            if abs(residual) > BALANCE_TOLERANCE_KWH:
                logger.warning(
                    "Energy balance off by %.6f kWh at hour %d", residual, hour
                )
            raw.append(record)

        rounded = tuple(record.rounded(self.capacity_kwh) for record in raw)
        return HourlySimulation(
            records=rounded,
            raw_records=tuple(raw),
            warmup=warmup,
            capacity_kwh=self.capacity_kwh,
        )
