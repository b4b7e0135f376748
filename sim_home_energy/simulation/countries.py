"""
Country constant tables for the home energy engine.

Every country-dependent number the engine needs (solar yield, tariffs,
net-metering credit, sun hours, ...) lives in one immutable
:class:`CountryProfile` per :class:`Country`. The tables are read-only
mappings so nothing can mutate them while a simulation is running.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class Country(str, Enum):
    """Supported Southeast-Asian markets (ISO 3166-1 alpha-2 codes)."""

    MY = "MY"
    SG = "SG"
    ID = "ID"
    TH = "TH"
    VN = "VN"
    PH = "PH"


class NetMeteringMode(str, Enum):
    """Regulatory mode governing how exported solar is credited."""

    FULL_EXPORT = "full_export"
    NET_BILLING = "net_billing"


class RoofQuality(str, Enum):
    IDEAL = "Ideal"
    AVERAGE = "Average"
    SHADED = "Shaded"


class ChargingTime(str, Enum):
    """When a vehicle is plugged in at home."""

    DAY = "Day only"
    NIGHT = "Night only"
    BOTH = "Both"

    @property
    def allows_day(self) -> bool:
        return self in (ChargingTime.DAY, ChargingTime.BOTH)

    @property
    def allows_night(self) -> bool:
        return self in (ChargingTime.NIGHT, ChargingTime.BOTH)


@dataclass(frozen=True)
class LoadPreset:
    """Named household consumption level (kWh/day)."""

    day_kwh: float
    night_kwh: float


@dataclass(frozen=True)
class CountryProfile:
    """
    Immutable set of country-specific constants.

    Attributes:
        solar_yield_kwh_per_kw: Average daily yield of 1 kW installed (kWh/kW/day).
        solar_cost_per_kw: Installed solar cost per kW in local currency.
        default_driving_km: Typical daily driving distance (km/day).
        default_day_load_kwh: Typical daytime household load (kWh/day).
        default_night_load_kwh: Typical nighttime household load (kWh/day).
        default_net_metering: Net-metering scheme most households can access.
        export_multipliers: Share of the import tariff credited per exported kWh,
            keyed by net-metering mode. Zero means exports earn nothing.
        tariff_per_kwh: Residential electricity tariff (local currency/kWh).
        public_charging_per_kwh: Public fast-charging price (local currency/kWh).
        co2_kg_per_kwh: Grid carbon intensity (kg CO2/kWh).
        currency: ISO 4217 currency code.
        sunrise_hour: Average sunrise (decimal hours).
        sunset_hour: Average sunset (decimal hours).
        latitude_deg: Rough absolute latitude, used to narrow the solar curve.

    Notes:
        - Costs and tariffs are in local currency, never converted.
        - ``export_multiplier`` returns 0.0 for any mode without an entry.
    """

    solar_yield_kwh_per_kw: float
    solar_cost_per_kw: float
    default_driving_km: float
    default_day_load_kwh: float
    default_night_load_kwh: float
    default_net_metering: NetMeteringMode
    export_multipliers: Mapping[NetMeteringMode, float]
    tariff_per_kwh: float
    public_charging_per_kwh: float
    co2_kg_per_kwh: float
    currency: str
    sunrise_hour: float
    sunset_hour: float
    latitude_deg: float

    def export_multiplier(self, mode: NetMeteringMode) -> float:
        return float(self.export_multipliers.get(mode, 0.0))

    def has_export_credit(self, mode: NetMeteringMode) -> bool:
        return self.export_multiplier(mode) > 0.0

    @property
    def solar_noon(self) -> float:
        return (self.sunrise_hour + self.sunset_hour) / 2.0


def _multipliers(full_export: float, net_billing: float) -> Mapping[NetMeteringMode, float]:
    return MappingProxyType(
        {
            NetMeteringMode.FULL_EXPORT: full_export,
            NetMeteringMode.NET_BILLING: net_billing,
        }
    )


COUNTRY_PROFILES: Mapping[Country, CountryProfile] = MappingProxyType(
    {
        # No buyback programme.
        Country.MY: CountryProfile(
            solar_yield_kwh_per_kw=4.6,
            solar_cost_per_kw=3200.0,
            default_driving_km=45.0,
            default_day_load_kwh=8.0,
            default_night_load_kwh=10.0,
            default_net_metering=NetMeteringMode.FULL_EXPORT,
            export_multipliers=_multipliers(0.0, 0.0),
            tariff_per_kwh=0.474,
            public_charging_per_kwh=0.55,
            co2_kg_per_kwh=0.65,
            currency="MYR",
            sunrise_hour=7.0,
            sunset_hour=19.0,
            latitude_deg=4.0,
        ),
        Country.SG: CountryProfile(
            solar_yield_kwh_per_kw=4.2,
            solar_cost_per_kw=2500.0,
            default_driving_km=30.0,
            default_day_load_kwh=6.0,
            default_night_load_kwh=6.0,
            default_net_metering=NetMeteringMode.NET_BILLING,
            export_multipliers=_multipliers(0.8, 0.5),
            tariff_per_kwh=0.315,
            public_charging_per_kwh=0.32,
            co2_kg_per_kwh=0.45,
            currency="SGD",
            sunrise_hour=7.0,
            sunset_hour=19.0,
            latitude_deg=4.0,
        ),
        # Net metering abolished Feb 2024.
        Country.ID: CountryProfile(
            solar_yield_kwh_per_kw=4.8,
            solar_cost_per_kw=14_000_000.0,
            default_driving_km=50.0,
            default_day_load_kwh=7.0,
            default_night_load_kwh=9.0,
            default_net_metering=NetMeteringMode.NET_BILLING,
            export_multipliers=_multipliers(0.0, 0.0),
            tariff_per_kwh=1750.0,
            public_charging_per_kwh=0.40,
            co2_kg_per_kwh=0.70,
            currency="IDR",
            sunrise_hour=6.0,
            sunset_hour=18.0,
            latitude_deg=4.0,
        ),
        Country.TH: CountryProfile(
            solar_yield_kwh_per_kw=4.7,
            solar_cost_per_kw=32_000.0,
            default_driving_km=40.0,
            default_day_load_kwh=10.0,
            default_night_load_kwh=12.0,
            default_net_metering=NetMeteringMode.FULL_EXPORT,
            export_multipliers=_multipliers(0.8, 0.5),
            tariff_per_kwh=4.59,
            public_charging_per_kwh=0.45,
            co2_kg_per_kwh=0.55,
            currency="THB",
            sunrise_hour=6.5,
            sunset_hour=18.5,
            latitude_deg=15.0,
        ),
        Country.VN: CountryProfile(
            solar_yield_kwh_per_kw=4.5,
            solar_cost_per_kw=19_000_000.0,
            default_driving_km=35.0,
            default_day_load_kwh=7.0,
            default_night_load_kwh=8.0,
            default_net_metering=NetMeteringMode.FULL_EXPORT,
            export_multipliers=_multipliers(0.8, 0.5),
            tariff_per_kwh=2135.0,
            public_charging_per_kwh=0.35,
            co2_kg_per_kwh=0.60,
            currency="VND",
            sunrise_hour=6.0,
            sunset_hour=18.0,
            latitude_deg=16.0,
        ),
        Country.PH: CountryProfile(
            solar_yield_kwh_per_kw=4.6,
            solar_cost_per_kw=38_000.0,
            default_driving_km=45.0,
            default_day_load_kwh=9.0,
            default_night_load_kwh=11.0,
            default_net_metering=NetMeteringMode.NET_BILLING,
            export_multipliers=_multipliers(0.8, 0.5),
            tariff_per_kwh=12.30,
            public_charging_per_kwh=0.50,
            co2_kg_per_kwh=0.68,
            currency="PHP",
            sunrise_hour=6.0,
            sunset_hour=18.0,
            latitude_deg=4.0,
        ),
    }
)

LOAD_PRESETS: Mapping[str, LoadPreset] = MappingProxyType(
    {
        "Low": LoadPreset(day_kwh=4.0, night_kwh=6.0),
        "Average": LoadPreset(day_kwh=8.0, night_kwh=10.0),
        "High": LoadPreset(day_kwh=12.0, night_kwh=14.0),
    }
)

ROOF_QUALITY_MULTIPLIERS: Mapping[RoofQuality, float] = MappingProxyType(
    {
        RoofQuality.IDEAL: 1.0,
        RoofQuality.AVERAGE: 0.9,
        RoofQuality.SHADED: 0.75,
    }
)


def get_country_profile(country: Country | str) -> CountryProfile:
    """Return the constant table for ``country`` (enum member or code)."""
    return COUNTRY_PROFILES[Country(country)]
