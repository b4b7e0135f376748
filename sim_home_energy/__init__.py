from .simulation.catalog import BatteryLineItem, BatteryModel, VehicleLineItem, VehicleModel
from .simulation.countries import ChargingTime, Country, NetMeteringMode, RoofQuality
from .simulation.demand import SystemConfiguration
from .simulation.engine import SimulationResult, simulate
from .simulation.optimizer import (
    OptimalSystemCandidate,
    SystemOptimizer,
    find_best_net_savings_system,
    find_min_payback_system,
    find_off_grid_system,
    find_zero_bill_system,
    optimize,
)
from .reporting import generate_report
from .result_builder import ResultBuilder
from .application import SimulationApplication

__all__ = [
    "BatteryLineItem",
    "BatteryModel",
    "VehicleLineItem",
    "VehicleModel",
    "ChargingTime",
    "Country",
    "NetMeteringMode",
    "RoofQuality",
    "SystemConfiguration",
    "SimulationResult",
    "simulate",
    "OptimalSystemCandidate",
    "SystemOptimizer",
    "find_best_net_savings_system",
    "find_min_payback_system",
    "find_off_grid_system",
    "find_zero_bill_system",
    "optimize",
    "generate_report",
    "ResultBuilder",
    "SimulationApplication",
]
