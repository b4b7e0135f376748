from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

os.environ.setdefault("MPLBACKEND", "Agg")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sim_home_energy.simulation import (  # noqa: E402
    BatteryLineItem,
    BatteryModel,
    ChargingTime,
    Country,
    SystemConfiguration,
    VehicleLineItem,
    VehicleModel,
)


@pytest.fixture()
def home_battery() -> BatteryModel:
    """10 kWh usable battery priced in every market."""
    return BatteryModel(
        name="Home Battery 10",
        manufacturer="Generic",
        capacity_kwh=10.24,
        usable_capacity_kwh=10.0,
        prices={
            Country.MY: 18000.0,
            Country.SG: 7500.0,
            Country.ID: 75_000_000.0,
            Country.TH: 160_000.0,
            Country.VN: 110_000_000.0,
            Country.PH: 250_000.0,
        },
    )


@pytest.fixture()
def large_battery() -> BatteryModel:
    return BatteryModel(
        name="Powerwall 3",
        manufacturer="Tesla",
        capacity_kwh=13.5,
        usable_capacity_kwh=13.5,
        prices={Country.MY: 38000.0, Country.SG: 16000.0},
    )


@pytest.fixture()
def battery_catalog(home_battery, large_battery) -> list[BatteryModel]:
    return [home_battery, large_battery]


@pytest.fixture()
def compact_ev() -> VehicleModel:
    """60 kWh / 400 km WLTP: 0.15 kWh per km."""
    return VehicleModel(name="Compact EV", battery_capacity_kwh=60.0, range_wltp_km=400.0)


@pytest.fixture()
def my_household() -> SystemConfiguration:
    """Malaysian household (8 kWh day, 10 kWh night) with no system installed."""
    return SystemConfiguration(country=Country.MY, day_load=8.0, night_load=10.0)


@pytest.fixture()
def my_solar_battery(my_household, home_battery) -> SystemConfiguration:
    """10 kW PV and one 10 kWh battery on the Malaysian household."""
    return my_household.with_system(10.0, (BatteryLineItem(home_battery, 1),))


@pytest.fixture()
def my_household_with_ev(my_household, compact_ev) -> SystemConfiguration:
    return SystemConfiguration(
        country=Country.MY,
        day_load=8.0,
        night_load=10.0,
        vehicles=(
            VehicleLineItem(
                compact_ev,
                quantity=1,
                driving_km=40.0,
                home_charging_pct=80.0,
                charging_time=ChargingTime.NIGHT,
            ),
        ),
    )


@pytest.fixture()
def scenario_data() -> dict:
    """Lightweight scenario document used by application and CLI tests."""
    return {
        "scenario_name": "test_household",
        "configuration": {
            "country": "MY",
            "solar_kw": 6,
            "day_load": 8,
            "night_load": 10,
            "batteries": [{"model": "Home Battery 10", "quantity": 1}],
            "vehicles": [],
        },
        "catalog": {
            "batteries": [
                {
                    "name": "Home Battery 10",
                    "capacity_kwh": 10.24,
                    "usable_capacity_kwh": 10.0,
                    "prices": {"MY": 18000},
                }
            ],
            "vehicles": [],
        },
        "optimization": {"max_solar_kw": 8, "max_battery_units": 2},
    }
