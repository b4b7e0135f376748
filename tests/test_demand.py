from __future__ import annotations

import math

import pytest

from sim_home_energy.simulation import (
    BatteryLineItem,
    BatteryModel,
    ChargingTime,
    Country,
    InputIssueLog,
    RoofQuality,
    SystemConfiguration,
    VehicleLineItem,
    VehicleModel,
    aggregate_demand,
)
from sim_home_energy.simulation.demand import effective_charging_time, resolve_load


def test_loads_default_to_country_values() -> None:
    totals = aggregate_demand(SystemConfiguration(country=Country.TH))
    assert totals.day_load_kwh == pytest.approx(10.0)
    assert totals.night_load_kwh == pytest.approx(12.0)
    assert totals.solar_kwh == 0.0
    assert totals.ev_total_kwh == 0.0


def test_load_presets_and_unknown_preset() -> None:
    assert resolve_load("High", "day", 1.0) == pytest.approx(12.0)
    assert resolve_load("High", "night", 1.0) == pytest.approx(14.0)
    issues = InputIssueLog()
    assert resolve_load("Huge", "day", 1.0, issues) == 0.0
    assert issues.freeze()[0].reason == "unknown preset"


def test_solar_generation_applies_yield_and_roof(my_household) -> None:
    ideal = aggregate_demand(my_household.with_system(10.0, ()))
    assert ideal.solar_kwh == pytest.approx(46.0)

    shaded = SystemConfiguration(
        country=Country.MY,
        solar_kw=10.0,
        roof_quality=RoofQuality.SHADED,
    )
    assert aggregate_demand(shaded).solar_kwh == pytest.approx(46.0 * 0.75)


def test_battery_capacity_is_degraded_and_summed(home_battery, large_battery) -> None:
    configuration = SystemConfiguration(
        country=Country.MY,
        batteries=(
            BatteryLineItem(home_battery, 2),
            BatteryLineItem(large_battery, 1),
            BatteryLineItem(None, 3),
        ),
    )
    totals = aggregate_demand(configuration)
    assert totals.battery_capacity_kwh == pytest.approx((2 * 10.0 + 13.5) * 0.925)


def test_vehicle_energy_split_between_home_and_public(my_household_with_ev) -> None:
    totals = aggregate_demand(my_household_with_ev)
    # 40 km * 60 kWh / 400 km
    assert totals.ev_total_kwh == pytest.approx(6.0)
    assert totals.ev_home_kwh == pytest.approx(4.8)
    assert totals.ev_public_kwh == pytest.approx(1.2)
    assert totals.home_charging_pct == pytest.approx(80.0)
    assert totals.charging_time is ChargingTime.NIGHT
    assert totals.home_load_kwh == pytest.approx(18.0 + 4.8)


def test_each_vehicle_uses_its_own_home_share(compact_ev) -> None:
    configuration = SystemConfiguration(
        country=Country.MY,
        vehicles=(
            VehicleLineItem(compact_ev, 1, driving_km=40.0, home_charging_pct=100.0),
            VehicleLineItem(compact_ev, 1, driving_km=40.0, home_charging_pct=0.0),
        ),
    )
    totals = aggregate_demand(configuration)
    home = [vehicle.home_energy_kwh for vehicle in totals.vehicles]
    assert home == pytest.approx([6.0, 0.0])
    assert totals.home_charging_pct == pytest.approx(50.0)
    assert totals.ev_home_kwh == pytest.approx(6.0)


def test_vehicle_quantity_multiplies_energy(compact_ev) -> None:
    configuration = SystemConfiguration(
        country=Country.MY,
        driving_km=20.0,
        vehicles=(VehicleLineItem(compact_ev, 3),),
    )
    totals = aggregate_demand(configuration)
    assert totals.ev_total_kwh == pytest.approx(3 * 20.0 * 0.15)
    assert totals.ev_home_kwh == pytest.approx(totals.ev_total_kwh * 0.8)


def test_malformed_line_items_are_skipped_and_reported(compact_ev) -> None:
    no_range = VehicleModel(name="Mystery", battery_capacity_kwh=50.0)
    broken_battery = BatteryModel(name="Broken", usable_capacity_kwh=math.nan)
    configuration = SystemConfiguration(
        country=Country.MY,
        solar_kw=-3.0,
        day_load=math.inf,
        batteries=(BatteryLineItem(broken_battery, 1),),
        vehicles=(
            VehicleLineItem(no_range, 1),
            VehicleLineItem(compact_ev, 1, driving_km=-5.0),
            VehicleLineItem(compact_ev, 1, driving_km=10.0),
        ),
    )
    issues = InputIssueLog()
    totals = aggregate_demand(configuration, issues)

    assert totals.solar_kwh == 0.0
    assert totals.day_load_kwh == 0.0
    assert totals.battery_capacity_kwh == 0.0
    assert len(totals.vehicles) == 1
    assert totals.ev_total_kwh == pytest.approx(1.5)
    fields = {(issue.source, issue.field) for issue in issues.freeze()}
    assert ("configuration", "solar_kw") in fields
    assert ("configuration", "day_load") in fields
    assert ("batteries[0]", "usable_capacity_kwh") in fields
    assert ("vehicles[0]", "range_km") in fields
    assert ("vehicles[1]", "driving_km") in fields


def test_mixed_charging_preferences(compact_ev) -> None:
    night = VehicleLineItem(compact_ev, 1, charging_time=ChargingTime.NIGHT)
    day = VehicleLineItem(compact_ev, 1, charging_time=ChargingTime.DAY)
    both = VehicleLineItem(compact_ev, 1, charging_time=ChargingTime.BOTH)

    assert effective_charging_time([day], ChargingTime.NIGHT) is ChargingTime.DAY
    assert effective_charging_time([day, night], ChargingTime.NIGHT) is ChargingTime.NIGHT
    assert effective_charging_time([day, both], ChargingTime.NIGHT) is ChargingTime.BOTH
    assert effective_charging_time([], ChargingTime.DAY) is ChargingTime.DAY


def test_configuration_coerces_enum_values() -> None:
    configuration = SystemConfiguration(
        country="SG",
        roof_quality="Average",
        charging_time="Both",
        net_metering="full_export",
    )
    assert configuration.country is Country.SG
    assert configuration.roof_quality is RoofQuality.AVERAGE
    assert configuration.charging_time is ChargingTime.BOTH
    assert configuration.effective_driving_km == pytest.approx(30.0)
