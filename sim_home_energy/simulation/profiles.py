"""
Hourly shape of solar generation, household load and EV charging.

Each function returns a length-24 numpy array (kWh per hour, index = hour
of day). The curves only distribute daily totals; they never add or remove
energy except where a charging ceiling clips an EV's hourly draw.
"""

from __future__ import annotations

from typing import Iterable

import numpy as np

from .countries import ChargingTime, CountryProfile
from .demand import VehicleDemand

HOURS: np.ndarray = np.arange(24)

BASE_SIGMA_HOURS = 3.2

DAY_WINDOW = (HOURS >= 6) & (HOURS < 18)
NIGHT_WINDOW = (HOURS >= 19) | (HOURS < 6)
DAY_WINDOW_HOURS = int(DAY_WINDOW.sum())
NIGHT_WINDOW_HOURS = int(NIGHT_WINDOW.sum())

# Daytime charging is assumed to happen at DC fast chargers.
DAY_CHARGING_CEILING_KW = 100.0
HOME_CHARGING_CEILING_KW = 7.0

HOUSEHOLD_MULTIPLIERS: np.ndarray = np.select(
    [
        (HOURS >= 7) & (HOURS <= 9),
        (HOURS >= 18) & (HOURS <= 20),
        (HOURS >= 22) | (HOURS < 6),
    ],
    [1.2, 1.3, 0.7],
    default=1.0,
)


def solar_curve(profile: CountryProfile, daily_kwh: float) -> np.ndarray:
    """
    Spread the daily PV yield over the day with a bell curve.

    The curve is a Gaussian centred on solar noon (midpoint of sunrise and
    sunset) with ``sigma = 3.2 - latitude / 20``, evaluated at whole hours
    inside ``[sunrise, sunset)`` and rescaled so the 24 values add up to
    ``daily_kwh``.

    Args:
        profile: Country constants (sun hours and latitude).
        daily_kwh: Daily generation to distribute (kWh).

    Returns:
        np.ndarray: 24 hourly generation values (kWh).

    Example:
        ```python
        curve = solar_curve(get_country_profile(Country.MY), 46.0)
        curve[:7].sum()   # 0.0, the sun rises at 07:00
        curve.sum()       # 46.0
        ```
    """
    if daily_kwh <= 0:
        return np.zeros(24)

    sigma = BASE_SIGMA_HOURS - abs(profile.latitude_deg) / 20.0
    daylight = (HOURS >= profile.sunrise_hour) & (HOURS < profile.sunset_hour)
    weights = np.where(
        daylight,
        np.exp(-(((HOURS - profile.solar_noon) / sigma) ** 2) / 2.0),
        0.0,
    )
    total_weight = weights.sum()
    if total_weight <= 0:
        return np.zeros(24)
    return daily_kwh * weights / total_weight


def household_curve(day_load_kwh: float, night_load_kwh: float) -> np.ndarray:
    """
    Hourly household consumption with morning and evening peaks.

    Hours 06-17 draw ``day_load / 12``, the others ``night_load / 12``;
    07-09 are scaled by 1.2, 18-20 by 1.3 and 22-05 by 0.7.
    """
    base = np.where(DAY_WINDOW, day_load_kwh / 12.0, night_load_kwh / 12.0)
    return base * HOUSEHOLD_MULTIPLIERS


def vehicle_charging_curve(home_energy_kwh: float, charging_time: ChargingTime) -> np.ndarray:
    """
    Hourly home charging of one vehicle line.

    "Day only" spreads the energy over 06-17 (ceiling 100 kW), "Night only"
    over 19-05 (ceiling 7 kW) and "Both" puts half in each window. Hour 18
    never charges.
    """
    curve = np.zeros(24)
    if home_energy_kwh <= 0:
        return curve

    charging_time = ChargingTime(charging_time)
    if charging_time is ChargingTime.BOTH:
        day_energy = night_energy = home_energy_kwh * 0.5
    elif charging_time is ChargingTime.DAY:
        day_energy, night_energy = home_energy_kwh, 0.0
    else:
        day_energy, night_energy = 0.0, home_energy_kwh

    if day_energy > 0:
        curve[DAY_WINDOW] = min(DAY_CHARGING_CEILING_KW, day_energy / DAY_WINDOW_HOURS)
    if night_energy > 0:
        curve[NIGHT_WINDOW] = min(HOME_CHARGING_CEILING_KW, night_energy / NIGHT_WINDOW_HOURS)
    return curve


def ev_curve(vehicles: Iterable[VehicleDemand]) -> np.ndarray:
    """Sum of :func:`vehicle_charging_curve` over all vehicle lines."""
    total = np.zeros(24)
    for vehicle in vehicles:
        total += vehicle_charging_curve(vehicle.home_energy_kwh, vehicle.charging_time)
    return total
