from __future__ import annotations

import math

import pytest

from sim_home_energy.simulation import BatteryLineItem, BatteryModel, Country, SystemConfiguration, simulate


def test_malaysian_solar_battery_scenario(my_solar_battery) -> None:
    """Day 8 kWh, night 10 kWh, 10 kW PV and one 10 kWh battery, no EV."""
    result = simulate(my_solar_battery)

    assert result.totals.solar_kwh == pytest.approx(46.0)
    assert result.allocation.battery_charged == pytest.approx(9.25)
    assert result.allocation.night_load_from_battery == pytest.approx(9.25)

    records = result.hourly
    assert len(records) == 24
    assert [record.hour for record in records] == list(range(24))
    assert sum(r.battery_charge for r in records[7:18]) > 0.0
    assert sum(r.battery_discharge for r in records[19:24]) > 0.0

    finance = result.finance
    assert finance.currency == "MYR"
    assert finance.bill_without == pytest.approx(18.0 * 30 * 0.474)
    assert finance.bill_with == pytest.approx(0.75 * 30 * 0.474)
    assert 0.0 < finance.bill_with < finance.bill_without
    assert finance.total_system_cost == pytest.approx((32000.0 + 18000.0) * 1.1)
    assert finance.payback_years is not None
    assert result.input_issues == ()


def test_summary_and_hourly_frame(my_solar_battery) -> None:
    result = simulate(my_solar_battery)
    summary = result.summary()
    assert summary["country"] == "MY"
    assert summary["currency"] == "MYR"
    assert summary["daily_solar_kwh"] == pytest.approx(46.0)
    assert summary["monthly_bill_with_system"] == pytest.approx(10.7)
    assert summary["input_issues"] == 0

    frame = result.hourly_frame()
    assert list(frame["hour"]) == list(range(24))
    assert frame["solar"].sum() == pytest.approx(46.0, abs=0.15)
    assert "battery_level" in frame.columns


def test_equilibrium_suggestion(my_solar_battery) -> None:
    text = simulate(my_solar_battery).equilibrium_suggestion()
    assert text.startswith("Recommended: 10 kW solar + 1 batteries")
    assert "96% grid-free" in text


def test_invalid_inputs_never_raise() -> None:
    configuration = SystemConfiguration(
        country=Country.VN,
        solar_kw=math.nan,
        day_load=-4.0,
        night_load="Unknown",
        home_charging_pct=math.inf,
    )
    result = simulate(configuration)
    assert result.totals.solar_kwh == 0.0
    assert result.totals.day_load_kwh == 0.0
    assert result.totals.night_load_kwh == 0.0
    assert len(result.input_issues) == 4
    for value in vars(result.finance).values():
        if isinstance(value, float):
            assert math.isfinite(value)



def test_suggestion_reports_the_system_as_simulated(home_battery) -> None:
    broken = BatteryModel(name="Broken", usable_capacity_kwh=math.nan)
    configuration = SystemConfiguration(
        country=Country.MY,
        day_load=8.0,
        night_load=10.0,
        solar_kw=math.nan,
        batteries=(BatteryLineItem(broken, 2), BatteryLineItem(home_battery, 0)),
    )
    result = simulate(configuration)
    assert result.solar_kw == 0.0
    assert result.battery_units == 0
    assert result.summary()["solar_kw"] == 0.0
    assert result.equilibrium_suggestion().startswith("Recommended: 0 kW solar + 0 batteries")


def test_battery_units_count_contributing_items(my_household, home_battery) -> None:
    broken = BatteryModel(name="Broken", usable_capacity_kwh=-1.0)
    configuration = my_household.with_system(
        4.0, (BatteryLineItem(home_battery, 2), BatteryLineItem(broken, 3))
    )
    result = simulate(configuration)
    assert result.battery_units == 2
    assert "4 kW solar + 2 batteries" in result.equilibrium_suggestion()

def test_every_country_simulates(home_battery) -> None:
    for country in Country:
        configuration = SystemConfiguration(
            country=country,
            solar_kw=6.0,
            batteries=(BatteryLineItem(home_battery, 1),),
        )
        result = simulate(configuration)
        assert result.finance.bill_with <= result.finance.bill_without
        assert result.finance.currency
