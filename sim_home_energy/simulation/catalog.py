"""
Read-only catalog records consumed by the engine.

Battery and vehicle models come from an external catalog (database, JSON
export, ...). The engine treats them as immutable value objects and never
writes back. Line items pair a model with a quantity plus, for vehicles,
optional per-vehicle usage overrides.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from .countries import ChargingTime, Country
from .validation import is_finite_number

BATTERY_DEGRADATION_RATE = 0.015
BATTERY_DEGRADATION_YEARS = 5
DEGRADATION_FACTOR = 1.0 - BATTERY_DEGRADATION_RATE * BATTERY_DEGRADATION_YEARS


@dataclass(frozen=True)
class BatteryModel:
    """
    Home battery (BESS) catalog entry.

    Attributes:
        name: Commercial name of the model.
        manufacturer: Brand.
        capacity_kwh: Nominal capacity (kWh).
        usable_capacity_kwh: Usable capacity at beginning of life (kWh).
            This is the figure the engine sizes against.
        round_trip_efficiency: Round-trip efficiency as fraction (0-1).
            Informational; the daily model treats storage as lossless.
        warranty_cycles: Warranted full cycles.
        warranty_years: Warranty duration (years).
        continuous_power_kw: Continuous power rating (kW).
        peak_power_kw: Peak power rating (kW).
        prices: Local-currency price per country. Countries without an entry
            price the unit at zero.
        v2h_support: Whether the unit supports vehicle-to-home.
        release_year: Model year, if known.

    Example:
        ```python
        powerwall = BatteryModel(
            name="Powerwall 3",
            manufacturer="Tesla",
            capacity_kwh=13.5,
            usable_capacity_kwh=13.5,
            prices={Country.MY: 38000.0},
        )
        powerwall.degraded_capacity_kwh   # 12.4875
        powerwall.price_for(Country.SG)   # 0.0
        ```
    """

    name: str
    manufacturer: str = ""
    capacity_kwh: float = 0.0
    usable_capacity_kwh: float = 0.0
    round_trip_efficiency: float = 0.9
    warranty_cycles: int | None = None
    warranty_years: int | None = None
    continuous_power_kw: float | None = None
    peak_power_kw: float | None = None
    prices: Mapping[Country, float] = field(default_factory=dict, hash=False)
    v2h_support: bool = False
    release_year: int | None = None

    def __post_init__(self) -> None:
        normalized = {Country(code): price for code, price in dict(self.prices).items()}
        object.__setattr__(self, "prices", normalized)

    def price_for(self, country: Country | str) -> float:
        """Local-currency price in ``country``; 0 when unpriced or invalid."""
        price = self.prices.get(Country(country))
        if not is_finite_number(price) or price < 0:
            return 0.0
        return float(price)

    @property
    def degraded_capacity_kwh(self) -> float:
        """Usable capacity after the fixed 5-year linear fade (kWh)."""
        usable = self.usable_capacity_kwh
        if not is_finite_number(usable) or usable <= 0:
            return 0.0
        return float(usable) * DEGRADATION_FACTOR

    def describe(self) -> str:
        label = f"{self.manufacturer} {self.name}".strip()
        return f"{label} ({self.usable_capacity_kwh:g} kWh)"


@dataclass(frozen=True)
class VehicleModel:
    """
    Electric vehicle catalog entry.

    Attributes:
        name: Make and model.
        battery_capacity_kwh: Traction battery capacity (kWh).
        range_wltp_km: WLTP rated range (km), if published.
        range_epa_km: EPA rated range (km), if published.
        range_km: Legacy/unspecified range figure (km).
        efficiency_kwh_per_100km: Consumption (kWh/100 km).
    """

    name: str
    battery_capacity_kwh: float = 0.0
    range_wltp_km: float | None = None
    range_epa_km: float | None = None
    range_km: float | None = None
    efficiency_kwh_per_100km: float | None = None

    def effective_range_km(self) -> float | None:
        """
        Resolve the range the engine uses for kWh/km.

        Fallback chain: WLTP, then EPA, then the legacy range, then
        ``capacity / efficiency * 100``. Non-positive or non-finite figures
        are skipped.

        Returns:
            Range in km, or ``None`` when no usable figure exists.
        """
        for candidate in (self.range_wltp_km, self.range_epa_km, self.range_km):
            if is_finite_number(candidate) and candidate > 0:
                return float(candidate)

        capacity = self.battery_capacity_kwh
        efficiency = self.efficiency_kwh_per_100km
        if (
            is_finite_number(capacity)
            and capacity > 0
            and is_finite_number(efficiency)
            and efficiency > 0
        ):
            return float(capacity) / float(efficiency) * 100.0
        return None


@dataclass(frozen=True)
class BatteryLineItem:
    """A battery model and how many units are installed."""

    model: BatteryModel | None
    quantity: int = 0

    @property
    def is_active(self) -> bool:
        return self.model is not None and self.quantity > 0

    def describe(self) -> str:
        if not self.is_active:
            return "no battery"
        return f"{self.quantity} x {self.model.describe()}"


@dataclass(frozen=True)
class VehicleLineItem:
    """
    A vehicle model, its count and optional per-vehicle overrides.

    ``None`` overrides fall back to the configuration-wide defaults.
    """

    model: VehicleModel | None
    quantity: int = 0
    driving_km: float | None = None
    home_charging_pct: float | None = None
    charging_time: ChargingTime | None = None

    @property
    def is_active(self) -> bool:
        return self.model is not None and self.quantity > 0


NO_BATTERY = (BatteryLineItem(model=None, quantity=0),)


def describe_batteries(items) -> str:
    active = [item.describe() for item in items if item.is_active]
    return " + ".join(active) if active else "no battery"
