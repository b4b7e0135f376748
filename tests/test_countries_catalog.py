from __future__ import annotations

import math

import pytest

from sim_home_energy.simulation import (
    COUNTRY_PROFILES,
    BatteryLineItem,
    BatteryModel,
    ChargingTime,
    Country,
    NetMeteringMode,
    VehicleModel,
    get_country_profile,
)
from sim_home_energy.simulation.catalog import DEGRADATION_FACTOR, describe_batteries


def test_every_country_has_a_profile() -> None:
    assert set(COUNTRY_PROFILES) == set(Country)
    assert get_country_profile("MY") is COUNTRY_PROFILES[Country.MY]


def test_country_tables_are_read_only() -> None:
    with pytest.raises(TypeError):
        COUNTRY_PROFILES[Country.MY] = COUNTRY_PROFILES[Country.SG]  # type: ignore[index]
    with pytest.raises(Exception):
        COUNTRY_PROFILES[Country.MY].tariff_per_kwh = 1.0  # type: ignore[misc]


def test_export_credit_depends_on_country_and_mode() -> None:
    malaysia = get_country_profile(Country.MY)
    singapore = get_country_profile(Country.SG)
    assert not malaysia.has_export_credit(NetMeteringMode.FULL_EXPORT)
    assert not get_country_profile(Country.ID).has_export_credit(NetMeteringMode.NET_BILLING)
    assert singapore.export_multiplier(NetMeteringMode.FULL_EXPORT) == pytest.approx(0.8)
    assert singapore.export_multiplier(NetMeteringMode.NET_BILLING) == pytest.approx(0.5)


def test_unknown_country_is_rejected() -> None:
    with pytest.raises(ValueError):
        get_country_profile("XX")


def test_charging_time_windows() -> None:
    assert ChargingTime.DAY.allows_day and not ChargingTime.DAY.allows_night
    assert ChargingTime.NIGHT.allows_night and not ChargingTime.NIGHT.allows_day
    assert ChargingTime.BOTH.allows_day and ChargingTime.BOTH.allows_night
    assert ChargingTime("Night only") is ChargingTime.NIGHT


def test_battery_degraded_capacity_and_price(home_battery: BatteryModel) -> None:
    assert DEGRADATION_FACTOR == pytest.approx(0.925)
    assert home_battery.degraded_capacity_kwh == pytest.approx(9.25)
    assert home_battery.price_for(Country.MY) == pytest.approx(18000.0)
    assert home_battery.price_for("SG") == pytest.approx(7500.0)


def test_battery_price_defaults_to_zero_when_missing_or_invalid() -> None:
    battery = BatteryModel(
        name="Odd",
        usable_capacity_kwh=5.0,
        prices={"MY": float("nan"), "SG": -100.0},
    )
    assert battery.price_for(Country.MY) == 0.0
    assert battery.price_for(Country.SG) == 0.0
    assert battery.price_for(Country.TH) == 0.0


def test_battery_with_invalid_capacity_has_no_degraded_capacity() -> None:
    assert BatteryModel(name="Empty", usable_capacity_kwh=0.0).degraded_capacity_kwh == 0.0
    assert BatteryModel(name="NaN", usable_capacity_kwh=math.nan).degraded_capacity_kwh == 0.0


@pytest.mark.parametrize(
    "kwargs, expected",
    [
        ({"range_wltp_km": 400.0, "range_epa_km": 350.0, "range_km": 300.0}, 400.0),
        ({"range_wltp_km": None, "range_epa_km": 350.0, "range_km": 300.0}, 350.0),
        ({"range_wltp_km": 0.0, "range_epa_km": None, "range_km": 300.0}, 300.0),
        ({"efficiency_kwh_per_100km": 15.0}, 400.0),
        ({}, None),
    ],
)
def test_vehicle_effective_range_fallback_chain(kwargs, expected) -> None:
    vehicle = VehicleModel(name="EV", battery_capacity_kwh=60.0, **kwargs)
    result = vehicle.effective_range_km()
    if expected is None:
        assert result is None
    else:
        assert result == pytest.approx(expected)


def test_line_items_and_descriptions(home_battery: BatteryModel) -> None:
    assert not BatteryLineItem(None, 2).is_active
    assert not BatteryLineItem(home_battery, 0).is_active
    item = BatteryLineItem(home_battery, 2)
    assert item.is_active
    assert describe_batteries([item]) == "2 x Generic Home Battery 10 (10 kWh)"
    assert describe_batteries([]) == "no battery"
