"""
System configuration and scenario document schemas.

A scenario document bundles the household configuration with the catalogs
its line items reference and the optimizer search bounds:

```json
{
    "scenario_name": "KL terrace house",
    "configuration": {
        "country": "MY",
        "solar_kw": 10,
        "day_load": "Average",
        "night_load": 10,
        "batteries": [{"model": "Powerwall 3", "quantity": 1}],
        "vehicles": [{"model": "BYD Atto 3", "quantity": 1, "driving_km": 40}]
    },
    "catalog": {"batteries": [...], "vehicles": [...]},
    "optimization": {"max_solar_kw": 20, "max_battery_units": 3}
}
```

Unknown country, roof, charging window, metering mode or load preset
values fail validation. Line items naming a model missing from the catalog
raise ``ValueError`` on conversion.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..simulation.catalog import (
    BatteryLineItem,
    BatteryModel,
    VehicleLineItem,
    VehicleModel,
)
from ..simulation.countries import (
    LOAD_PRESETS,
    ChargingTime,
    Country,
    NetMeteringMode,
    RoofQuality,
)
from ..simulation.demand import DEFAULT_HOME_CHARGING_PCT, SystemConfiguration
from ..simulation.optimizer import SearchLimits
from .catalog import CatalogSchema


class BatteryItemSchema(BaseModel):
    """Battery line item referencing a catalog model by name."""

    model_config = ConfigDict(protected_namespaces=())

    model: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=0)

    def to_domain(self, models: Dict[str, BatteryModel]) -> BatteryLineItem:
        if self.model not in models:
            raise ValueError(f"Unknown battery model: {self.model!r}")
        return BatteryLineItem(model=models[self.model], quantity=self.quantity)


class VehicleItemSchema(BaseModel):
    """EV line item referencing a catalog model, with optional overrides."""

    model_config = ConfigDict(protected_namespaces=())

    model: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=0)
    driving_km: Optional[float] = Field(None, ge=0)
    home_charging_pct: Optional[float] = Field(None, ge=0, le=100)
    charging_time: Optional[ChargingTime] = None

    def to_domain(self, models: Dict[str, VehicleModel]) -> VehicleLineItem:
        if self.model not in models:
            raise ValueError(f"Unknown vehicle model: {self.model!r}")
        return VehicleLineItem(
            model=models[self.model],
            quantity=self.quantity,
            driving_km=self.driving_km,
            home_charging_pct=self.home_charging_pct,
            charging_time=self.charging_time,
        )


class ConfigurationSchema(BaseModel):
    """
    Household system configuration.

    Attributes:
        country: ISO code of the market (MY, SG, ID, TH, VN, PH).
        solar_kw: Installed PV size in kW.
        roof_quality: "Ideal", "Average" or "Shaded".
        include_solar_cost: Whether PV counts toward system cost.
        batteries: Battery line items.
        vehicles: EV line items.
        driving_km: Default daily distance per vehicle; country default if None.
        home_charging_pct: Default share of EV charging done at home (%).
        charging_time: "Day only", "Night only" or "Both".
        day_load: kWh/day or a preset name ("Low", "Average", "High").
        night_load: kWh/day or a preset name.
        net_metering: "full_export" or "net_billing"; country default if None.
    """

    country: Country
    solar_kw: float = Field(0.0, ge=0)
    roof_quality: RoofQuality = RoofQuality.IDEAL
    include_solar_cost: bool = True
    batteries: List[BatteryItemSchema] = Field(default_factory=list)
    vehicles: List[VehicleItemSchema] = Field(default_factory=list)
    driving_km: Optional[float] = Field(None, ge=0)
    home_charging_pct: float = Field(DEFAULT_HOME_CHARGING_PCT, ge=0, le=100)
    charging_time: ChargingTime = ChargingTime.NIGHT
    day_load: Optional[float | str] = None
    night_load: Optional[float | str] = None
    net_metering: Optional[NetMeteringMode] = None

    @field_validator("day_load", "night_load")
    @classmethod
    def check_load(cls, value):
        if isinstance(value, str) and value not in LOAD_PRESETS:
            raise ValueError(
                f"Unknown load preset {value!r}; expected one of {', '.join(LOAD_PRESETS)}"
            )
        if isinstance(value, float) and value < 0:
            raise ValueError("Load must be >= 0 kWh/day")
        return value

    def to_domain(self, catalog: CatalogSchema | None = None) -> SystemConfiguration:
        """
        Build the engine configuration, resolving line items against ``catalog``.

        Raises:
            ValueError: If a line item references a model not in the catalog.
        """
        catalog = catalog or CatalogSchema()
        battery_models = catalog.battery_models()
        vehicle_models = catalog.vehicle_models()
        return SystemConfiguration(
            country=self.country,
            solar_kw=self.solar_kw,
            roof_quality=self.roof_quality,
            include_solar_cost=self.include_solar_cost,
            batteries=tuple(item.to_domain(battery_models) for item in self.batteries),
            vehicles=tuple(item.to_domain(vehicle_models) for item in self.vehicles),
            driving_km=self.driving_km,
            home_charging_pct=self.home_charging_pct,
            charging_time=self.charging_time,
            day_load=self.day_load,
            night_load=self.night_load,
            net_metering=self.net_metering,
        )


class OptimizationSettingsSchema(BaseModel):
    """Search bounds for the optimizer strategies."""

    max_solar_kw: int = Field(30, ge=0)
    max_battery_units: int = Field(4, ge=1)

    def to_domain(self) -> SearchLimits:
        return SearchLimits(
            max_solar_kw=self.max_solar_kw,
            max_battery_units=self.max_battery_units,
        )


class ScenarioDocument(BaseModel):
    """Complete scenario file: configuration, catalogs and search bounds."""

    scenario_name: str = "scenario"
    configuration: ConfigurationSchema
    catalog: CatalogSchema = Field(default_factory=CatalogSchema)
    optimization: OptimizationSettingsSchema = Field(default_factory=OptimizationSettingsSchema)

    def build_configuration(self) -> SystemConfiguration:
        return self.configuration.to_domain(self.catalog)

    def battery_catalog(self) -> List[BatteryModel]:
        return list(self.catalog.battery_models().values())
