from __future__ import annotations

from dataclasses import replace

import pytest

from sim_home_energy.simulation import (
    BatteryLineItem,
    Country,
    FinanceAssumptions,
    NetMeteringMode,
    SystemConfiguration,
    simulate,
)
from sim_home_energy.simulation.finance import compute_system_cost, payback_years


def test_payback_counts_inflated_savings_net_of_opex() -> None:
    assert payback_years(100.0, 5000.0) == 5
    assert payback_years(0.0, 5000.0) is None
    assert payback_years(-10.0, 5000.0) is None
    assert payback_years(50.0, 0.0) == 0


def test_payback_gives_up_after_cap() -> None:
    assert payback_years(1.0, 1_000_000.0) is None
    short_cap = FinanceAssumptions(payback_cap_years=3)
    assert payback_years(100.0, 5000.0, short_cap) is None


def test_system_cost_includes_overhead(home_battery) -> None:
    cost = compute_system_cost(Country.MY, 10.0, (BatteryLineItem(home_battery, 2),))
    assert cost.solar == pytest.approx(32000.0)
    assert cost.batteries == pytest.approx(36000.0)
    assert cost.overhead == pytest.approx(6800.0)
    assert cost.total == pytest.approx(74800.0)


def test_owned_panels_are_not_priced(home_battery) -> None:
    cost = compute_system_cost(
        Country.MY,
        10.0,
        (BatteryLineItem(home_battery, 1),),
        include_solar_cost=False,
    )
    assert cost.solar == 0.0
    assert cost.total == pytest.approx(18000.0 * 1.1)


def test_no_system_baseline(my_household) -> None:
    finance = simulate(my_household).finance
    assert finance.bill_with == pytest.approx(finance.bill_without)
    assert finance.monthly_savings == pytest.approx(0.0)
    assert finance.total_system_cost == 0.0
    assert finance.payback_years is None
    assert finance.net_savings_25y == pytest.approx(0.0)
    assert finance.grid_free_pct == 0.0


def test_export_credit_is_zero_without_buyback(my_solar_battery) -> None:
    result = simulate(my_solar_battery)
    assert result.day.total_curtailed_kwh > 0.0
    assert result.finance.export_kwh == 0.0
    assert result.finance.export_credit == 0.0


def test_export_credit_uses_mode_multiplier() -> None:
    base = SystemConfiguration(country=Country.SG, solar_kw=10.0, day_load=6.0, night_load=6.0)
    full = simulate(replace(base, net_metering=NetMeteringMode.FULL_EXPORT))
    net = simulate(replace(base, net_metering=NetMeteringMode.NET_BILLING))

    assert full.finance.export_kwh == pytest.approx(net.finance.export_kwh)
    assert full.finance.export_kwh > 0.0
    tariff = full.finance.tariff_per_kwh
    assert full.finance.export_credit == pytest.approx(full.finance.export_kwh * tariff * 0.8)
    assert net.finance.export_credit == pytest.approx(net.finance.export_kwh * tariff * 0.5)


def test_bill_is_floored_at_zero() -> None:
    configuration = SystemConfiguration(country=Country.SG, solar_kw=30.0, day_load=2.0, night_load=2.0)
    finance = simulate(configuration).finance
    assert finance.export_credit > finance.grid_usage_cost
    assert finance.bill_with == 0.0
    assert finance.zero_bill_days == pytest.approx(365.0)


def test_public_charging_is_paid_with_and_without_system(my_household_with_ev) -> None:
    finance = simulate(my_household_with_ev).finance
    public = 1.2 * 30 * 0.55
    assert finance.bill_without_ev_public == pytest.approx(public)
    assert finance.total_cost_with == pytest.approx(finance.bill_with + public)
    assert finance.bill_without == pytest.approx(finance.total_cost_with)


def test_twenty_five_year_costs(my_solar_battery) -> None:
    finance = simulate(my_solar_battery).finance
    growth = sum(1.03 ** (year - 1) for year in range(1, 26))
    assert finance.cost_25y_without == pytest.approx(finance.bill_without * 12 * growth)
    opex = finance.total_system_cost * 0.005 * 25
    expected_with = finance.total_system_cost + finance.bill_with * 12 * growth + opex
    assert finance.cost_25y_with == pytest.approx(expected_with)
    assert finance.net_savings_25y == pytest.approx(finance.cost_25y_without - finance.cost_25y_with)


def test_co2_and_grid_free_share(my_solar_battery) -> None:
    finance = simulate(my_solar_battery).finance
    # 18 kWh home load, 0.75 kWh from the grid
    assert finance.grid_free_pct == pytest.approx(17.25 / 18.0 * 100.0)
    assert finance.co2_avoided_kg == pytest.approx(17.25 * 365 * 0.65)
