"""
Pydantic schemas for scenario files and JSON results.

- catalog: battery and EV catalog records
- configuration: system configuration, line items and scenario documents
- results: simulation and optimization responses
"""

from __future__ import annotations

from .catalog import BatterySchema, CatalogSchema, VehicleSchema
from .configuration import (
    BatteryItemSchema,
    ConfigurationSchema,
    OptimizationSettingsSchema,
    ScenarioDocument,
    VehicleItemSchema,
)
from .results import (
    HourlyRecordSchema,
    InputIssueSchema,
    OptimalSystemResponse,
    OptimizationResponse,
    SimulationResponse,
)

__all__ = [
    "BatteryItemSchema",
    "BatterySchema",
    "CatalogSchema",
    "ConfigurationSchema",
    "HourlyRecordSchema",
    "InputIssueSchema",
    "OptimalSystemResponse",
    "OptimizationResponse",
    "OptimizationSettingsSchema",
    "ScenarioDocument",
    "SimulationResponse",
    "VehicleItemSchema",
    "VehicleSchema",
]
