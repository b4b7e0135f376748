from __future__ import annotations

import math

import pytest

from sim_home_energy.simulation import InputIssueLog, StorageBank
from sim_home_energy.simulation.validation import (
    clamp,
    clamp_battery_level,
    clamp_percentage,
    is_finite_number,
    sanitize_non_negative,
)


def test_storage_bank_charge_and_discharge() -> None:
    bank = StorageBank(capacity_kwh=9.25, level_kwh=1.85)
    assert bank.charge(10.0) == pytest.approx(7.4)
    assert bank.level_kwh == pytest.approx(9.25)
    assert bank.charge(1.0) == 0.0

    assert bank.discharge(3.0) == pytest.approx(3.0)
    assert bank.level_kwh == pytest.approx(6.25)
    assert bank.discharge(100.0) == pytest.approx(6.25)
    assert bank.level_kwh == 0.0


def test_storage_bank_refuses_discharge_below_threshold() -> None:
    bank = StorageBank(capacity_kwh=5.0, level_kwh=0.0005)
    assert bank.discharge(1.0) == 0.0
    assert bank.level_kwh == pytest.approx(0.0005)


def test_storage_bank_starting_level_is_clamped() -> None:
    assert StorageBank(capacity_kwh=5.0, level_kwh=8.0).level_kwh == 5.0
    assert StorageBank(capacity_kwh=5.0, level_kwh=-1.0).level_kwh == 0.0
    bank = StorageBank(capacity_kwh=0.0, level_kwh=1.0)
    assert bank.charge(3.0) == 0.0
    assert bank.soc_fraction() == 0.0


def test_clamp_battery_level_normalizes_negative_zero_and_nan() -> None:
    assert math.copysign(1.0, clamp_battery_level(-0.0, 5.0)) == 1.0
    assert clamp_battery_level(math.nan, 5.0) == 0.0
    assert clamp_battery_level(7.0, 5.0) == 5.0
    assert clamp_battery_level(3.0, math.nan) == 0.0


def test_number_helpers() -> None:
    assert is_finite_number(1)
    assert not is_finite_number(True)
    assert not is_finite_number("3")
    assert not is_finite_number(math.inf)
    assert clamp(math.nan, 1.0, 2.0) == 1.0
    assert clamp_percentage(150.0) == 100.0
    assert clamp_percentage(None) == 0.0


def test_sanitize_records_each_substitution() -> None:
    issues = InputIssueLog()
    assert sanitize_non_negative(4.5, issues, "configuration", "solar_kw") == 4.5
    assert sanitize_non_negative(-1.0, issues, "configuration", "solar_kw") == 0.0
    assert sanitize_non_negative(math.nan, issues, "configuration", "day_load") == 0.0
    assert len(issues) == 2
    first, second = issues.freeze()
    assert first.reason == "negative"
    assert second.field == "day_load"
    assert "substituted 0" in second.describe()
