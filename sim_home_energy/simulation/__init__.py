"""
Core engine: demand aggregation, allocation, hourly dispatch, finance and
system optimization.
"""

from .allocator import DailyAllocation, allocate_daily
from .battery import StorageBank
from .catalog import (
    BatteryLineItem,
    BatteryModel,
    VehicleLineItem,
    VehicleModel,
)
from .countries import (
    COUNTRY_PROFILES,
    LOAD_PRESETS,
    ROOF_QUALITY_MULTIPLIERS,
    ChargingTime,
    Country,
    CountryProfile,
    NetMeteringMode,
    RoofQuality,
    get_country_profile,
)
from .demand import (
    DailyEnergyTotals,
    SystemConfiguration,
    VehicleDemand,
    aggregate_demand,
)
from .engine import SimulationResult, simulate
from .finance import FinanceAssumptions, FinancialSummary, SystemCost, project_finances
from .hourly import HourlyRecord, HourlySimulation, HourlySimulator, WarmupResult
from .optimizer import (
    STRATEGIES,
    BestNetSavingsStrategy,
    CancellationToken,
    CandidateSpace,
    MinPaybackStrategy,
    OffGridStrategy,
    OptimalSystemCandidate,
    OptimizationStrategy,
    SearchLimits,
    SystemOptimizer,
    ZeroBillStrategy,
    find_best_net_savings_system,
    find_min_payback_system,
    find_off_grid_system,
    find_zero_bill_system,
    optimize,
)
from .validation import InputIssue, InputIssueLog

__all__ = [
    "COUNTRY_PROFILES",
    "LOAD_PRESETS",
    "ROOF_QUALITY_MULTIPLIERS",
    "STRATEGIES",
    "BatteryLineItem",
    "BatteryModel",
    "BestNetSavingsStrategy",
    "CancellationToken",
    "CandidateSpace",
    "ChargingTime",
    "Country",
    "CountryProfile",
    "DailyAllocation",
    "DailyEnergyTotals",
    "FinanceAssumptions",
    "FinancialSummary",
    "HourlyRecord",
    "HourlySimulation",
    "HourlySimulator",
    "InputIssue",
    "InputIssueLog",
    "MinPaybackStrategy",
    "NetMeteringMode",
    "OffGridStrategy",
    "OptimalSystemCandidate",
    "OptimizationStrategy",
    "RoofQuality",
    "SearchLimits",
    "SimulationResult",
    "StorageBank",
    "SystemConfiguration",
    "SystemCost",
    "SystemOptimizer",
    "VehicleDemand",
    "VehicleLineItem",
    "VehicleModel",
    "WarmupResult",
    "ZeroBillStrategy",
    "aggregate_demand",
    "allocate_daily",
    "find_best_net_savings_system",
    "find_min_payback_system",
    "find_off_grid_system",
    "find_zero_bill_system",
    "get_country_profile",
    "optimize",
    "project_finances",
    "simulate",
]
