"""
Demand and generation aggregation.

Turns a :class:`SystemConfiguration` into the daily energy totals every
downstream stage works from: household day/night load, solar generation,
usable battery capacity and the EV fleet's home/public charging energy.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Sequence, Tuple

from .catalog import BatteryLineItem, VehicleLineItem
from .countries import (
    LOAD_PRESETS,
    ROOF_QUALITY_MULTIPLIERS,
    ChargingTime,
    Country,
    NetMeteringMode,
    RoofQuality,
    get_country_profile,
)
from .validation import (
    InputIssueLog,
    clamp_percentage,
    is_finite_number,
    sanitize_non_negative,
)

LoadInput = float | str | None

DEFAULT_HOME_CHARGING_PCT = 80.0


@dataclass(frozen=True)
class SystemConfiguration:
    """
    Complete description of one household system to simulate.

    The configuration is immutable; optimizers derive candidate systems
    with :func:`dataclasses.replace` (see :meth:`with_system`).

    Attributes:
        country: Market the household is in.
        solar_kw: Installed PV size (kW).
        roof_quality: Shading/orientation class scaling solar yield.
        include_solar_cost: Whether the PV price counts toward system cost
            (False for households that already own panels).
        batteries: Installed battery line items.
        vehicles: EV line items.
        driving_km: Default daily driving distance per vehicle (km/day).
            ``None`` uses the country default.
        home_charging_pct: Default share of EV energy charged at home (%).
        charging_time: Default home charging window.
        day_load: Daytime household load in kWh/day or a preset name
            (``"Low"``, ``"Average"``, ``"High"``). ``None`` uses the
            country default.
        night_load: Nighttime household load, same conventions.
        net_metering: Net-metering mode. ``None`` uses the country default.
    """

    country: Country
    solar_kw: float = 0.0
    roof_quality: RoofQuality = RoofQuality.IDEAL
    include_solar_cost: bool = True
    batteries: Tuple[BatteryLineItem, ...] = ()
    vehicles: Tuple[VehicleLineItem, ...] = ()
    driving_km: float | None = None
    home_charging_pct: float = DEFAULT_HOME_CHARGING_PCT
    charging_time: ChargingTime = ChargingTime.NIGHT
    day_load: LoadInput = None
    night_load: LoadInput = None
    net_metering: NetMeteringMode | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "country", Country(self.country))
        object.__setattr__(self, "roof_quality", RoofQuality(self.roof_quality))
        object.__setattr__(self, "charging_time", ChargingTime(self.charging_time))
        object.__setattr__(self, "batteries", tuple(self.batteries))
        object.__setattr__(self, "vehicles", tuple(self.vehicles))
        if self.net_metering is not None:
            object.__setattr__(self, "net_metering", NetMeteringMode(self.net_metering))

    @property
    def effective_net_metering(self) -> NetMeteringMode:
        if self.net_metering is not None:
            return self.net_metering
        return get_country_profile(self.country).default_net_metering

    @property
    def effective_driving_km(self) -> float:
        if self.driving_km is not None:
            return self.driving_km
        return get_country_profile(self.country).default_driving_km

    def with_system(
        self,
        solar_kw: float,
        batteries: Iterable[BatteryLineItem],
        include_solar_cost: bool = True,
    ) -> "SystemConfiguration":
        """Return a copy with a different solar size and battery set."""
        return replace(
            self,
            solar_kw=solar_kw,
            batteries=tuple(batteries),
            include_solar_cost=include_solar_cost,
        )


@dataclass(frozen=True)
class VehicleDemand:
    """
    Resolved daily demand of one vehicle line item.

    Attributes:
        label: Vehicle name (for reports).
        quantity: Number of vehicles on the line.
        energy_kwh: Daily traction energy of the whole line (kWh/day).
        home_charging_pct: Share charged at home after clamping (%).
        home_energy_kwh: Daily energy charged at home (kWh/day).
        charging_time: Home charging window for this line.
    """

    label: str
    quantity: int
    energy_kwh: float
    home_charging_pct: float
    home_energy_kwh: float
    charging_time: ChargingTime

    @property
    def night_energy_kwh(self) -> float:
        if self.charging_time is ChargingTime.NIGHT:
            return self.home_energy_kwh
        if self.charging_time is ChargingTime.BOTH:
            return self.home_energy_kwh * 0.5
        return 0.0

    @property
    def day_energy_kwh(self) -> float:
        return self.home_energy_kwh - self.night_energy_kwh


@dataclass(frozen=True)
class DailyEnergyTotals:
    """
    Daily totals produced by :func:`aggregate_demand`.

    Attributes:
        day_load_kwh: Daytime household load (kWh/day).
        night_load_kwh: Nighttime household load (kWh/day).
        solar_kwh: Daily PV generation after roof losses (kWh/day).
        battery_capacity_kwh: Summed degraded usable capacity (kWh).
        ev_total_kwh: Fleet traction energy (kWh/day).
        ev_home_kwh: Fleet energy charged at home (kWh/day).
        ev_public_kwh: Fleet energy bought from public chargers (kWh/day).
        home_charging_pct: Fleet-weighted home charging share (%).
        charging_time: Effective charging policy for the daily allocator.
        vehicles: Per-line demand, in configuration order.
    """

    day_load_kwh: float
    night_load_kwh: float
    solar_kwh: float
    battery_capacity_kwh: float
    ev_total_kwh: float
    ev_home_kwh: float
    ev_public_kwh: float
    home_charging_pct: float
    charging_time: ChargingTime
    vehicles: Tuple[VehicleDemand, ...] = field(default_factory=tuple)

    @property
    def household_kwh(self) -> float:
        return self.day_load_kwh + self.night_load_kwh

    @property
    def home_load_kwh(self) -> float:
        """Everything the home meter serves: household plus home EV charging."""
        return self.household_kwh + self.ev_home_kwh


def resolve_load(
    value: LoadInput,
    period: str,
    default: float,
    issues: InputIssueLog | None = None,
) -> float:
    """
    Resolve a day/night load input to kWh/day.

    Args:
        value: Number, preset name or ``None``.
        period: ``"day"`` or ``"night"``; selects the preset entry.
        default: Value used for ``None``.
        issues: Optional issue log.

    Returns:
        Load in kWh/day (never negative, never NaN).
    """
    field_name = f"{period}_load"
    if value is None:
        return default
    if isinstance(value, str):
        preset = LOAD_PRESETS.get(value)
        if preset is None:
            if issues is not None:
                issues.record("configuration", field_name, value, "unknown preset")
            return 0.0
        return preset.day_kwh if period == "day" else preset.night_kwh
    return sanitize_non_negative(value, issues, "configuration", field_name)


def effective_charging_time(
    vehicles: Sequence[VehicleLineItem],
    default: ChargingTime,
) -> ChargingTime:
    """
    Collapse per-vehicle charging windows into one fleet policy.

    One shared preference wins outright; mixed preferences fall back to
    ``Both`` when any vehicle asks for it, otherwise to ``default``.
    """
    preferences = {
        ChargingTime(item.charging_time or default)
        for item in vehicles
        if item.is_active
    }
    if len(preferences) == 1:
        return preferences.pop()
    if ChargingTime.BOTH in preferences:
        return ChargingTime.BOTH
    return default


def has_usable_capacity(item: BatteryLineItem) -> bool:
    """Whether an active line item contributes storage to the pool."""
    if not item.is_active:
        return False
    usable = item.model.usable_capacity_kwh
    return is_finite_number(usable) and usable > 0


def total_battery_capacity(
    batteries: Iterable[BatteryLineItem],
    issues: InputIssueLog | None = None,
) -> float:
    """Sum of degraded usable capacity over active line items (kWh)."""
    total = 0.0
    for idx, item in enumerate(batteries):
        if not item.is_active:
            continue
        if not has_usable_capacity(item):
            usable = item.model.usable_capacity_kwh
            if issues is not None:
                issues.record(
                    f"batteries[{idx}]",
                    "usable_capacity_kwh",
                    usable,
                    "non-positive or non-finite",
                    action="skipped line item",
                )
            continue
        total += item.model.degraded_capacity_kwh * item.quantity
    return total


def _vehicle_demand(
    idx: int,
    item: VehicleLineItem,
    configuration: SystemConfiguration,
    default_pct: float,
    issues: InputIssueLog | None,
) -> VehicleDemand | None:
    source = f"vehicles[{idx}]"
    model = item.model
    capacity = model.battery_capacity_kwh
    if not is_finite_number(capacity) or capacity <= 0:
        if issues is not None:
            issues.record(source, "battery_capacity_kwh", capacity, "non-positive or non-finite", "skipped line item")
        return None

    range_km = model.effective_range_km()
    if range_km is None:
        if issues is not None:
            issues.record(source, "range_km", None, "no usable range or efficiency", "skipped line item")
        return None

    distance = item.driving_km if item.driving_km is not None else configuration.effective_driving_km
    if not is_finite_number(distance) or distance < 0:
        if issues is not None:
            issues.record(source, "driving_km", distance, "negative or non-finite", "skipped line item")
        return None

    if item.home_charging_pct is None:
        pct = default_pct
    elif not is_finite_number(item.home_charging_pct):
        if issues is not None:
            issues.record(source, "home_charging_pct", item.home_charging_pct, "non-finite", "used default")
        pct = default_pct
    else:
        pct = clamp_percentage(item.home_charging_pct)

    energy = distance * capacity / range_km * item.quantity
    if not is_finite_number(energy):
        if issues is not None:
            issues.record(source, "energy_kwh", energy, "non-finite", "skipped line item")
        return None

    return VehicleDemand(
        label=model.name,
        quantity=item.quantity,
        energy_kwh=energy,
        home_charging_pct=pct,
        home_energy_kwh=energy * pct / 100.0,
        charging_time=ChargingTime(item.charging_time or configuration.charging_time),
    )


def aggregate_demand(
    configuration: SystemConfiguration,
    issues: InputIssueLog | None = None,
) -> DailyEnergyTotals:
    """
    Compute the daily totals for ``configuration``.

    Args:
        configuration: System to aggregate.
        issues: Log collecting every substituted value.

    Returns:
        DailyEnergyTotals with all values finite and non-negative.

    Notes:
        - Vehicle lines with no model or zero quantity are ignored silently;
          lines whose capacity, range or distance is unusable contribute
          nothing and are recorded as issues.
        - Per-line home energy uses the line's own home-charging share; the
          fleet share is the energy-weighted average of those shares.
    """
    profile = get_country_profile(configuration.country)

    day_load = resolve_load(configuration.day_load, "day", profile.default_day_load_kwh, issues)
    night_load = resolve_load(configuration.night_load, "night", profile.default_night_load_kwh, issues)

    solar_kw = sanitize_non_negative(configuration.solar_kw, issues, "configuration", "solar_kw")
    roof = ROOF_QUALITY_MULTIPLIERS[configuration.roof_quality]
    solar_kwh = profile.solar_yield_kwh_per_kw * solar_kw * roof

    capacity = total_battery_capacity(configuration.batteries, issues)

    if is_finite_number(configuration.home_charging_pct):
        default_pct = clamp_percentage(configuration.home_charging_pct)
    else:
        if issues is not None:
            issues.record(
                "configuration",
                "home_charging_pct",
                configuration.home_charging_pct,
                "non-finite",
            )
        default_pct = 0.0

    demands = []
    for idx, item in enumerate(configuration.vehicles):
        if not item.is_active:
            continue
        demand = _vehicle_demand(idx, item, configuration, default_pct, issues)
        if demand is not None:
            demands.append(demand)

    ev_total = sum(d.energy_kwh for d in demands)
    if ev_total > 0:
        weighted = sum(d.energy_kwh * d.home_charging_pct for d in demands)
        fleet_pct = clamp_percentage(weighted / ev_total)
    else:
        fleet_pct = default_pct

    ev_home = ev_total * fleet_pct / 100.0
    ev_public = max(0.0, ev_total - ev_home)

    return DailyEnergyTotals(
        day_load_kwh=day_load,
        night_load_kwh=night_load,
        solar_kwh=solar_kwh,
        battery_capacity_kwh=capacity,
        ev_total_kwh=ev_total,
        ev_home_kwh=ev_home,
        ev_public_kwh=ev_public,
        home_charging_pct=fleet_pct,
        charging_time=effective_charging_time(configuration.vehicles, configuration.charging_time),
        vehicles=tuple(demands),
    )
