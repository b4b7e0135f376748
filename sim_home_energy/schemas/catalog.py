"""
Catalog record schemas.

Pydantic models for the battery and EV catalogs that scenarios reference by
name. Each schema converts to the immutable engine dataclass through
``to_domain()``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..simulation.catalog import BatteryModel, VehicleModel
from ..simulation.countries import Country
from .common import _coerce_to_dict


class BatterySchema(BaseModel):
    """
    Battery catalog entry.

    Attributes:
        name: Unique model name, used by line items to reference it.
        manufacturer: Brand.
        capacity_kwh: Nominal capacity in kWh.
        usable_capacity_kwh: Usable capacity in kWh. Defaults to
            ``capacity_kwh`` when omitted.
        round_trip_efficiency: Round-trip efficiency (0-1).
        warranty_cycles: Warranted cycles.
        warranty_years: Warranty length.
        continuous_power_kw: Continuous power rating.
        peak_power_kw: Peak power rating.
        prices: Local-currency price keyed by country code.
        v2h_support: Vehicle-to-home support.
        release_year: Model year.

    Example:
        ```python
        {
            "name": "Powerwall 3",
            "manufacturer": "Tesla",
            "capacity_kwh": 13.5,
            "prices": {"MY": 38000, "SG": 16000}
        }
        ```
    """

    model_config = ConfigDict(from_attributes=True)

    name: str = Field(..., min_length=1)
    manufacturer: str = ""
    capacity_kwh: float = Field(..., ge=0)
    usable_capacity_kwh: Optional[float] = Field(None, ge=0)
    round_trip_efficiency: float = Field(0.9, gt=0, le=1)
    warranty_cycles: Optional[int] = Field(None, ge=0)
    warranty_years: Optional[int] = Field(None, ge=0)
    continuous_power_kw: Optional[float] = Field(None, ge=0)
    peak_power_kw: Optional[float] = Field(None, ge=0)
    prices: Dict[Country, float] = Field(default_factory=dict)
    v2h_support: bool = False
    release_year: Optional[int] = None

    @model_validator(mode="before")
    @classmethod
    def default_usable_capacity(cls, values: Any) -> Any:
        values = _coerce_to_dict(values)
        if isinstance(values, dict) and values.get("usable_capacity_kwh") is None:
            values = {**values, "usable_capacity_kwh": values.get("capacity_kwh")}
        return values

    def to_domain(self) -> BatteryModel:
        return BatteryModel(
            name=self.name,
            manufacturer=self.manufacturer,
            capacity_kwh=self.capacity_kwh,
            usable_capacity_kwh=self.usable_capacity_kwh or 0.0,
            round_trip_efficiency=self.round_trip_efficiency,
            warranty_cycles=self.warranty_cycles,
            warranty_years=self.warranty_years,
            continuous_power_kw=self.continuous_power_kw,
            peak_power_kw=self.peak_power_kw,
            prices=dict(self.prices),
            v2h_support=self.v2h_support,
            release_year=self.release_year,
        )


class VehicleSchema(BaseModel):
    """EV catalog entry. At least one range figure or an efficiency is expected."""

    model_config = ConfigDict(from_attributes=True)

    name: str = Field(..., min_length=1)
    battery_capacity_kwh: float = Field(0.0, ge=0)
    range_wltp_km: Optional[float] = Field(None, ge=0)
    range_epa_km: Optional[float] = Field(None, ge=0)
    range_km: Optional[float] = Field(None, ge=0)
    efficiency_kwh_per_100km: Optional[float] = Field(None, ge=0)

    def to_domain(self) -> VehicleModel:
        return VehicleModel(
            name=self.name,
            battery_capacity_kwh=self.battery_capacity_kwh,
            range_wltp_km=self.range_wltp_km,
            range_epa_km=self.range_epa_km,
            range_km=self.range_km,
            efficiency_kwh_per_100km=self.efficiency_kwh_per_100km,
        )


class CatalogSchema(BaseModel):
    """Battery and vehicle catalogs of a scenario."""

    batteries: List[BatterySchema] = Field(default_factory=list)
    vehicles: List[VehicleSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_names(self) -> "CatalogSchema":
        for label, entries in (("battery", self.batteries), ("vehicle", self.vehicles)):
            names = [entry.name for entry in entries]
            duplicates = sorted({name for name in names if names.count(name) > 1})
            if duplicates:
                raise ValueError(f"Duplicate {label} names in catalog: {', '.join(duplicates)}")
        return self

    def battery_models(self) -> Dict[str, BatteryModel]:
        return {entry.name: entry.to_domain() for entry in self.batteries}

    def vehicle_models(self) -> Dict[str, VehicleModel]:
        return {entry.name: entry.to_domain() for entry in self.vehicles}
