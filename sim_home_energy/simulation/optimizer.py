"""
System sizing optimizer.

Searches (solar size, battery set) candidates and recommends one system per
objective. Every strategy runs on the same harness:

* generation: a strategy lists its :class:`CandidateSpace`;
* evaluation: :func:`evaluate_candidate` runs the full simulation, either
  inline or in a :class:`~concurrent.futures.ProcessPoolExecutor`;
* reduction: the strategy filters (``accepts``) and ranks (``better``)
  results in candidate order, so the parallel answer equals the serial one.

A :class:`CancellationToken` stops a long search early; the best system
found so far is still returned.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from itertools import product
from typing import Callable, Dict, Iterator, List, Sequence, Tuple

from .catalog import NO_BATTERY, BatteryLineItem, BatteryModel, describe_batteries
from .countries import ROOF_QUALITY_MULTIPLIERS, get_country_profile
from .demand import DailyEnergyTotals, SystemConfiguration, aggregate_demand
from .engine import SimulationResult, simulate
from .finance import DEFAULT_ASSUMPTIONS, FinanceAssumptions
from .hourly import GRID_IMPORT_THRESHOLD_KWH, WARMUP_MAX_ITERATIONS

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

SOLAR_STEP_KW = 2
ZERO_BILL_WINDOW_KW = 5
ZERO_BILL_MODELS = 3
ZERO_BILL_YIELD_ESTIMATE = 4.5
ZERO_BILL_LOAD_MARGIN = 1.2
OFF_GRID_SOLAR_MARGIN = 1.15
OFF_GRID_AUTONOMY = 1.5
OFF_GRID_PEAK_FACTOR = 1.5
OFF_GRID_PEAK_HOURS = 2
NIGHT_HOURS = 11
HOME_CHARGER_MAX_KW = 7.0
HOME_CHARGER_MIN_KW = 5.0


@dataclass(frozen=True)
class SearchLimits:
    """
    Bounds of the combinatorial search.

    Attributes:
        max_solar_kw: Largest PV size tried (kW).
        max_battery_units: Most units of one battery model in a candidate.
        solar_step_kw: Step between PV sizes (kW).
    """

    max_solar_kw: int = 30
    max_battery_units: int = 4
    solar_step_kw: int = SOLAR_STEP_KW


@dataclass(frozen=True)
class Candidate:
    """One system to evaluate: a PV size and a battery set."""

    solar_kw: float
    batteries: Tuple[BatteryLineItem, ...]

    def describe(self) -> str:
        return f"{self.solar_kw:g} kW PV | {describe_batteries(self.batteries)}"


@dataclass(frozen=True)
class CandidateSpace:
    """
    Cartesian product of PV sizes and battery sets, PV-size major.

    Iteration order is the tie-break order: when two candidates score the
    same, the one yielded first wins.
    """

    solar_sizes: Tuple[float, ...]
    battery_sets: Tuple[Tuple[BatteryLineItem, ...], ...]

    def __iter__(self) -> Iterator[Candidate]:
        for solar_kw, batteries in product(self.solar_sizes, self.battery_sets):
            yield Candidate(solar_kw=float(solar_kw), batteries=batteries)

    def __len__(self) -> int:
        return len(self.solar_sizes) * len(self.battery_sets)

    @classmethod
    def empty(cls) -> "CandidateSpace":
        return cls(solar_sizes=(), battery_sets=())

    @staticmethod
    def solar_range(start: int, stop: int, step: int = SOLAR_STEP_KW) -> Tuple[float, ...]:
        """PV sizes ``start, start+step, ...`` up to and including ``stop``."""
        if stop < start:
            return ()
        return tuple(float(kw) for kw in range(start, stop + 1, max(1, step)))

    @classmethod
    def exhaustive(
        cls,
        batteries: Sequence[BatteryModel],
        limits: SearchLimits,
    ) -> "CandidateSpace":
        """
        Full grid: every PV size with no battery, one unit of each model,
        then 2..max units of each model.
        """
        max_units = max(1, limits.max_battery_units)
        battery_sets: List[Tuple[BatteryLineItem, ...]] = [NO_BATTERY]
        battery_sets.extend((BatteryLineItem(model, 1),) for model in batteries)
        for model in batteries:
            battery_sets.extend(
                (BatteryLineItem(model, qty),) for qty in range(2, max_units + 1)
            )
        return cls(
            solar_sizes=cls.solar_range(0, int(limits.max_solar_kw), limits.solar_step_kw),
            battery_sets=tuple(battery_sets),
        )


def evaluate_candidate(
    base_configuration: SystemConfiguration,
    candidate: Candidate,
    warmup_max_iterations: int = WARMUP_MAX_ITERATIONS,
) -> SimulationResult:
    """
    Simulate ``candidate`` on top of the household in ``base_configuration``.

    Module-level so worker processes can import it. PV cost is always
    included: recommendations price the whole system.
    """
    configuration = base_configuration.with_system(
        candidate.solar_kw,
        candidate.batteries,
        include_solar_cost=True,
    )
    return simulate(configuration, warmup_max_iterations=warmup_max_iterations)


class CancellationToken:
    """
    Cooperative stop signal for a running search.

    Cancelled either explicitly (:meth:`cancel`, safe from another thread)
    or implicitly once ``time_limit_s`` seconds have elapsed since creation.
    """

    def __init__(self, time_limit_s: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = (
            time.monotonic() + time_limit_s if time_limit_s is not None else None
        )

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline


@dataclass(frozen=True)
class OptimalSystemCandidate:
    """
    A recommended system and the figures it was selected on.

    Attributes:
        strategy: Name of the objective that selected it.
        solar_kw: PV size (kW).
        batteries: Battery line items.
        payback_years: Payback year, or ``None`` for never.
        monthly_savings: First-year monthly savings.
        total_system_cost: Upfront cost including overhead.
        monthly_grid_needed_kwh: Monthly bill expressed in kWh.
        cost_25y_with: 25-year cost with the system.
        cost_25y_without: 25-year cost without a system.
        net_savings_25y: ``cost_25y_without - cost_25y_with``.
        result: The full simulation of the system.
    """

    strategy: str
    solar_kw: float
    batteries: Tuple[BatteryLineItem, ...]
    payback_years: int | None
    monthly_savings: float
    total_system_cost: float
    monthly_grid_needed_kwh: float
    cost_25y_with: float
    cost_25y_without: float
    net_savings_25y: float
    result: SimulationResult

    @classmethod
    def from_result(cls, strategy: str, result: SimulationResult) -> "OptimalSystemCandidate":
        finance = result.finance
        configuration = result.configuration
        return cls(
            strategy=strategy,
            solar_kw=configuration.solar_kw,
            batteries=configuration.batteries,
            payback_years=finance.payback_years,
            monthly_savings=finance.monthly_savings,
            total_system_cost=finance.total_system_cost,
            monthly_grid_needed_kwh=finance.monthly_grid_needed_kwh,
            cost_25y_with=finance.cost_25y_with,
            cost_25y_without=finance.cost_25y_without,
            net_savings_25y=finance.net_savings_25y,
            result=result,
        )

    def describe(self) -> str:
        return f"{self.solar_kw:g} kW PV | {describe_batteries(self.batteries)}"


class OptimizationStrategy(ABC):
    """
    Objective plugged into the shared search harness.

    Subclasses list the candidates to evaluate, filter the acceptable
    results and rank them; the harness does the rest.
    """

    name: str = ""

    @abstractmethod
    def candidates(
        self,
        base_configuration: SystemConfiguration,
        batteries: Sequence[BatteryModel],
        limits: SearchLimits,
    ) -> CandidateSpace:
        ...

    def accepts(self, result: SimulationResult) -> bool:
        return True

    @abstractmethod
    def better(self, result: SimulationResult, best: SimulationResult) -> bool:
        """True when ``result`` strictly beats ``best``."""

    def finalize(self, best: SimulationResult | None) -> OptimalSystemCandidate | None:
        if best is None:
            return None
        return OptimalSystemCandidate.from_result(self.name, best)


class MinPaybackStrategy(OptimizationStrategy):
    """Shortest payback among systems that actually save money."""

    name = "min-payback"

    def candidates(self, base_configuration, batteries, limits):
        return CandidateSpace.exhaustive(batteries, limits)

    def accepts(self, result: SimulationResult) -> bool:
        finance = result.finance
        return finance.payback_years is not None and finance.monthly_savings > 0

    def better(self, result, best):
        return result.finance.payback_years < best.finance.payback_years


class BestNetSavingsStrategy(OptimizationStrategy):
    """Largest 25-year saving (cost without minus cost with)."""

    name = "best-net-savings"

    def candidates(self, base_configuration, batteries, limits):
        if not batteries:
            return CandidateSpace.empty()
        return CandidateSpace.exhaustive(batteries, limits)

    def better(self, result, best):
        return result.finance.net_savings_25y > best.finance.net_savings_25y


def is_zero_bill(
    result: SimulationResult,
    assumptions: FinanceAssumptions = DEFAULT_ASSUMPTIONS,
) -> bool:
    """
    Whether a simulated system reaches a zero monthly bill.

    With export credit a zero net bill is enough. Without it, the system must
    also avoid buying grid energy in every hour.
    """
    finance = result.finance
    if finance.bill_with > assumptions.zero_bill_threshold:
        return False
    if finance.export_multiplier > 0:
        return True
    return not result.day.has_grid_import(GRID_IMPORT_THRESHOLD_KWH)


class ZeroBillStrategy(OptimizationStrategy):
    """
    Cheapest system with a zero monthly bill.

    Only a window of PV sizes around a load-based estimate is searched, with
    no battery or one or two units of the first three catalog models.
    """

    name = "zero-bill"

    def candidates(self, base_configuration, batteries, limits):
        if not batteries:
            return CandidateSpace.empty()

        totals = aggregate_demand(base_configuration)
        estimate = min(
            math.ceil(totals.household_kwh * ZERO_BILL_LOAD_MARGIN / ZERO_BILL_YIELD_ESTIMATE),
            int(limits.max_solar_kw),
        )
        solar_sizes = CandidateSpace.solar_range(
            max(0, estimate - ZERO_BILL_WINDOW_KW),
            min(int(limits.max_solar_kw), estimate + ZERO_BILL_WINDOW_KW),
            limits.solar_step_kw,
        )

        battery_sets: List[Tuple[BatteryLineItem, ...]] = [NO_BATTERY]
        for model in list(batteries)[:ZERO_BILL_MODELS]:
            battery_sets.append((BatteryLineItem(model, 1),))
            if limits.max_battery_units >= 2:
                battery_sets.append((BatteryLineItem(model, 2),))
        return CandidateSpace(solar_sizes=solar_sizes, battery_sets=tuple(battery_sets))

    def accepts(self, result):
        return is_zero_bill(result)

    def better(self, result, best):
        return result.finance.total_system_cost < best.finance.total_system_cost


@dataclass(frozen=True)
class OffGridSizing:
    """
    Analytic off-grid sizing before verification.

    Attributes:
        solar_kw: PV size covering the daily need with margin (kW).
        required_battery_kwh: Storage needed for the night plus peaks (kWh).
        batteries: Chosen battery set.
        peak_night_kw: Assumed nighttime peak draw (kW).
    """

    solar_kw: int
    required_battery_kwh: int
    batteries: Tuple[BatteryLineItem, ...]
    peak_night_kw: float


def size_off_grid(
    base_configuration: SystemConfiguration,
    totals: DailyEnergyTotals,
    batteries: Sequence[BatteryModel],
    max_battery_units: int,
) -> OffGridSizing | None:
    """
    Size PV and storage so the home could run without the grid.

    Args:
        base_configuration: Household configuration (country, roof).
        totals: Aggregated daily totals of the household.
        batteries: Battery catalog.
        max_battery_units: Most units of one model allowed.

    Returns:
        OffGridSizing, or ``None`` when the site yields no solar.

    Notes:
        - Each vehicle's home energy is split into day and night by its own
          charging window.
        - Storage covers the night load plus two hours of peak draw, with a
          1.5x autonomy margin.
        - The cheapest single model meeting the requirement wins; without
          one, the largest model is used at the highest allowed count.
    """
    profile = get_country_profile(base_configuration.country)
    solar_yield = profile.solar_yield_kwh_per_kw * ROOF_QUALITY_MULTIPLIERS[base_configuration.roof_quality]
    if solar_yield <= 0:
        return None

    night_ev = sum(v.night_energy_kwh for v in totals.vehicles)
    day_ev = sum(v.day_energy_kwh for v in totals.vehicles)
    day_need = totals.day_load_kwh + day_ev
    night_need = totals.night_load_kwh + night_ev

    solar_kw = math.ceil((day_need + night_need) * OFF_GRID_SOLAR_MARGIN / solar_yield)

    peak = totals.night_load_kwh / NIGHT_HOURS * OFF_GRID_PEAK_FACTOR
    if night_ev > 0:
        peak += min(HOME_CHARGER_MAX_KW, max(night_ev / NIGHT_HOURS, HOME_CHARGER_MIN_KW))
    buffered = night_need + OFF_GRID_PEAK_HOURS * peak
    required = max(math.ceil(buffered * OFF_GRID_AUTONOMY), math.ceil(buffered))

    usable_models = [m for m in batteries if m.degraded_capacity_kwh > 0]
    chosen: Tuple[BatteryLineItem, ...] = NO_BATTERY
    best_cost = math.inf
    units = max(1, max_battery_units)
    for model in usable_models:
        for qty in range(1, units + 1):
            if model.degraded_capacity_kwh * qty < required:
                continue
            cost = model.price_for(base_configuration.country) * qty
            if cost < best_cost:
                best_cost = cost
                chosen = (BatteryLineItem(model, qty),)

    if chosen is NO_BATTERY and usable_models:
        largest = usable_models[0]
        for model in usable_models[1:]:
            if model.usable_capacity_kwh > largest.usable_capacity_kwh:
                largest = model
        qty = math.ceil(required / largest.degraded_capacity_kwh)
        chosen = (BatteryLineItem(largest, min(qty, units)),)

    return OffGridSizing(
        solar_kw=solar_kw,
        required_battery_kwh=required,
        batteries=chosen,
        peak_night_kw=peak,
    )


class OffGridStrategy(OptimizationStrategy):
    """
    Smallest system that never buys from the grid.

    Sizes the system analytically, then verifies it with the full hourly
    simulation; a system that imports in any hour is rejected.
    """

    name = "off-grid"

    def candidates(self, base_configuration, batteries, limits):
        totals = aggregate_demand(base_configuration)
        sizing = size_off_grid(base_configuration, totals, batteries, limits.max_battery_units)
        if sizing is None:
            return CandidateSpace.empty()
        logger.debug(
            "Off-grid sizing: %d kW PV, %d kWh storage required, %s",
            sizing.solar_kw,
            sizing.required_battery_kwh,
            describe_batteries(sizing.batteries),
        )
        return CandidateSpace(
            solar_sizes=(float(sizing.solar_kw),),
            battery_sets=(sizing.batteries,),
        )

    def accepts(self, result):
        return not result.day.has_grid_import(GRID_IMPORT_THRESHOLD_KWH)

    def better(self, result, best):
        return result.finance.total_system_cost < best.finance.total_system_cost


STRATEGIES: Dict[str, type] = {
    MinPaybackStrategy.name: MinPaybackStrategy,
    BestNetSavingsStrategy.name: BestNetSavingsStrategy,
    ZeroBillStrategy.name: ZeroBillStrategy,
    OffGridStrategy.name: OffGridStrategy,
}


def get_strategy(name: str | OptimizationStrategy) -> OptimizationStrategy:
    if isinstance(name, OptimizationStrategy):
        return name
    try:
        return STRATEGIES[name]()
    except KeyError as exc:
        raise ValueError(
            f"Unknown strategy '{name}'. Available: {', '.join(STRATEGIES)}"
        ) from exc


class SystemOptimizer:
    """
    Runs strategies over the household in ``base_configuration``.

    Attributes:
        base_configuration: Household (loads, vehicles, country). Its PV and
            battery fields are replaced by each candidate's.
        batteries: Battery catalog to choose from.
        limits: Search bounds.
        max_workers: Worker processes; 1 evaluates inline.
        warmup_max_iterations: Battery warm-up cap per simulation.
        cancellation: Optional stop signal.
        progress_callback: Called with ``(done, total)`` after each candidate.

    Example:
        ```python
        optimizer = SystemOptimizer(household, catalog, max_workers=4)
        best = optimizer.run(MinPaybackStrategy())
        if best is not None:
            print(best.describe(), best.payback_years)
        ```
    """

    def __init__(
        self,
        base_configuration: SystemConfiguration,
        batteries: Sequence[BatteryModel],
        *,
        limits: SearchLimits | None = None,
        max_workers: int = 1,
        warmup_max_iterations: int = WARMUP_MAX_ITERATIONS,
        cancellation: CancellationToken | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self.base_configuration = base_configuration
        self.batteries = tuple(batteries)
        self.limits = limits or SearchLimits()
        self.max_workers = max(1, int(max_workers))
        self.warmup_max_iterations = warmup_max_iterations
        self.cancellation = cancellation or CancellationToken()
        self.progress_callback = progress_callback
        self.evaluated = 0
        self.candidate_count = 0

    def _evaluate_serial(self, candidates: List[Candidate]) -> Iterator[SimulationResult]:
        for candidate in candidates:
            if self.cancellation.cancelled:
                return
            yield evaluate_candidate(
                self.base_configuration,
                candidate,
                self.warmup_max_iterations,
            )

    def _evaluate_parallel(self, candidates: List[Candidate]) -> Iterator[SimulationResult]:
        with ProcessPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [
                pool.submit(
                    evaluate_candidate,
                    self.base_configuration,
                    candidate,
                    self.warmup_max_iterations,
                )
                for candidate in candidates
            ]
            try:
                for future in futures:
                    if self.cancellation.cancelled:
                        return
                    yield future.result()
            finally:
                for future in futures:
                    future.cancel()

    def _evaluate(self, candidates: List[Candidate]) -> Iterator[SimulationResult]:
        if self.max_workers > 1 and len(candidates) > 1:
            return self._evaluate_parallel(candidates)
        return self._evaluate_serial(candidates)

    @property
    def interrupted(self) -> bool:
        """Whether the last run stopped before evaluating every candidate."""
        return self.evaluated < self.candidate_count

    def run(self, strategy: str | OptimizationStrategy) -> OptimalSystemCandidate | None:
        """
        Search the strategy's candidates and return its best system.

        Args:
            strategy: Strategy instance or registered name.

        Returns:
            The recommended system, or ``None`` when no candidate qualifies.
        """
        strategy = get_strategy(strategy)
        candidates = list(
            strategy.candidates(self.base_configuration, self.batteries, self.limits)
        )
        total = len(candidates)
        self.candidate_count = total
        self.evaluated = 0
        start = time.monotonic()

        best: SimulationResult | None = None
        done = 0
        for result in self._evaluate(candidates):
            done += 1
            self.evaluated = done
            if strategy.accepts(result) and (best is None or strategy.better(result, best)):
                best = result
            if self.progress_callback is not None:
                self.progress_callback(done, total)

        if done < total:
            logger.warning(
                "%s search cancelled after %d/%d candidates; returning best so far",
                strategy.name,
                done,
                total,
            )

        recommendation = strategy.finalize(best)
        logger.info(
            "%s: %d candidates in %.2fs, %s",
            strategy.name,
            done,
            time.monotonic() - start,
            recommendation.describe() if recommendation else "no feasible system",
        )
        return recommendation


def optimize(
    strategy: str | OptimizationStrategy,
    base_configuration: SystemConfiguration,
    batteries: Sequence[BatteryModel],
    max_solar_kw: int = 30,
    max_battery_units: int = 4,
    *,
    max_workers: int = 1,
    warmup_max_iterations: int = WARMUP_MAX_ITERATIONS,
    cancellation: CancellationToken | None = None,
    progress_callback: ProgressCallback | None = None,
) -> OptimalSystemCandidate | None:
    """One-call entry point: build a :class:`SystemOptimizer` and run ``strategy``."""
    optimizer = SystemOptimizer(
        base_configuration,
        batteries,
        limits=SearchLimits(max_solar_kw=max_solar_kw, max_battery_units=max_battery_units),
        max_workers=max_workers,
        warmup_max_iterations=warmup_max_iterations,
        cancellation=cancellation,
        progress_callback=progress_callback,
    )
    return optimizer.run(strategy)


def find_min_payback_system(base_configuration, batteries, max_solar_kw=30, max_battery_units=4, **kwargs):
    return optimize(MinPaybackStrategy(), base_configuration, batteries, max_solar_kw, max_battery_units, **kwargs)


def find_best_net_savings_system(base_configuration, batteries, max_solar_kw=30, max_battery_units=4, **kwargs):
    return optimize(BestNetSavingsStrategy(), base_configuration, batteries, max_solar_kw, max_battery_units, **kwargs)


def find_zero_bill_system(base_configuration, batteries, max_solar_kw=30, max_battery_units=4, **kwargs):
    return optimize(ZeroBillStrategy(), base_configuration, batteries, max_solar_kw, max_battery_units, **kwargs)


def find_off_grid_system(base_configuration, batteries, max_solar_kw=30, max_battery_units=4, **kwargs):
    return optimize(OffGridStrategy(), base_configuration, batteries, max_solar_kw, max_battery_units, **kwargs)
