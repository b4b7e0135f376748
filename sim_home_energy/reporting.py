from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import List

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .simulation import SimulationResult
from .simulation.catalog import describe_batteries


def _slugify(value: str) -> str:
    return "".join(c if c.isalnum() or c in ("-", "_") else "_" for c in value.strip()).strip("_")


def _create_results_directory(scenario_name: str, base_dir: Path) -> Path:
    timestamp = datetime.now().strftime("%y%m%d_%H%M")
    slug = _slugify(scenario_name) or "scenario"
    output_dir = base_dir / f"{timestamp}_{slug}"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def _plot_hourly_flows(df_hourly: pd.DataFrame, save_path: Path) -> None:
    """
    Stacked bars of how each hour's demand is met, with PV generation overlaid.
    """
    hours = df_hourly["hour"].to_numpy()
    from_solar = (
        df_hourly["household_load"]
        + df_hourly["ev_charging"]
        - df_hourly["battery_discharge"]
        - df_hourly["grid_supply"]
    ).clip(lower=0.0)

    fig, ax = plt.subplots(figsize=(10, 5))
    ax.bar(hours, from_solar, color="#f2c12e", label="Load met by solar")
    ax.bar(
        hours,
        df_hourly["battery_discharge"],
        bottom=from_solar,
        color="#2ca02c",
        label="Battery discharge",
    )
    ax.bar(
        hours,
        df_hourly["grid_supply"],
        bottom=from_solar + df_hourly["battery_discharge"],
        color="#7f7f7f",
        label="Grid supply",
    )
    ax.plot(hours, df_hourly["solar"], color="#ff7f0e", marker="o", linewidth=1.5, label="PV generation")
    if df_hourly["grid_export"].sum() > 0:
        ax.plot(hours, -df_hourly["grid_export"], color="#1f77b4", linewidth=1.2, label="Grid export")
    ax.set_xticks(np.arange(0, 24, 2))
    ax.set_xlabel("Hour of day")
    ax.set_ylabel("Energy [kWh]")
    ax.set_title("Hourly energy flows")
    ax.grid(True, alpha=0.3)
    ax.legend(loc="upper left", fontsize=8)
    fig.tight_layout()
    fig.savefig(save_path, dpi=300)
    plt.close(fig)


def _plot_battery_level(df_hourly: pd.DataFrame, capacity_kwh: float, save_path: Path) -> None:
    fig, ax = plt.subplots(figsize=(10, 4))
    ax.fill_between(df_hourly["hour"], df_hourly["battery_level"], color="#2ca02c", alpha=0.3)
    ax.plot(df_hourly["hour"], df_hourly["battery_level"], color="#2ca02c", linewidth=2)
    if capacity_kwh > 0:
        ax.axhline(capacity_kwh, color="black", linestyle="--", linewidth=1, label="Usable capacity")
        ax.legend(loc="upper left", fontsize=8)
    ax.set_xticks(np.arange(0, 24, 2))
    ax.set_xlabel("Hour of day")
    ax.set_ylabel("Stored energy [kWh]")
    ax.set_title("Battery level")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(save_path, dpi=300)
    plt.close(fig)


def _format_payback(payback_years: int | None) -> str:
    if payback_years is None:
        return "Payback not reached within 50 years"
    if payback_years == 0:
        return "No upfront cost"
    return f"Payback in year {payback_years}"


def _write_text_report(output_path: Path, scenario_name: str, result: SimulationResult) -> None:
    configuration = result.configuration
    totals = result.totals
    finance = result.finance
    currency = finance.currency

    lines: List[str] = []
    lines.append(f"Scenario: {scenario_name}")
    lines.append(f"Country: {configuration.country.value} ({currency})")
    lines.append(f"Net metering: {configuration.effective_net_metering.value}")
    lines.append("")
    lines.append("== System ==")
    lines.append(f"Solar: {configuration.solar_kw:g} kW ({configuration.roof_quality.value} roof)")
    lines.append(f"Batteries: {describe_batteries(configuration.batteries)}")
    lines.append(f"Degraded storage: {totals.battery_capacity_kwh:.2f} kWh")
    lines.append(f"Upfront cost: {finance.total_system_cost:,.0f} {currency}")
    lines.append("")
    lines.append("== Daily energy ==")
    lines.append(f"Household load: {totals.day_load_kwh:.1f} kWh day / {totals.night_load_kwh:.1f} kWh night")
    lines.append(
        f"EV charging: {totals.ev_total_kwh:.1f} kWh "
        f"({totals.ev_home_kwh:.1f} home, {totals.ev_public_kwh:.1f} public)"
    )
    lines.append(f"Solar generation: {totals.solar_kwh:.1f} kWh")
    lines.append(f"Grid draw: {result.allocation.grid_kwh:.2f} kWh")
    lines.append(f"Exported: {result.day.total_export_kwh:.2f} kWh")
    lines.append(f"Curtailed: {result.day.total_curtailed_kwh:.2f} kWh")
    lines.append("")
    lines.append("== Monthly bill ==")
    lines.append(f"Without system: {finance.bill_without:,.1f} {currency}")
    lines.append(f"With system: {finance.bill_with:,.1f} {currency}")
    lines.append(f"Export credit: {finance.export_credit:,.1f} {currency}")
    lines.append(f"Monthly savings: {finance.monthly_savings:,.1f} {currency}")
    lines.append("")
    lines.append("== Long term ==")
    lines.append(_format_payback(finance.payback_years))
    lines.append(f"25-year cost without system: {finance.cost_25y_without:,.0f} {currency}")
    lines.append(f"25-year cost with system: {finance.cost_25y_with:,.0f} {currency}")
    lines.append(f"25-year net savings: {finance.net_savings_25y:,.0f} {currency}")
    lines.append(f"Zero-bill days per year: {finance.zero_bill_days:.0f}")
    lines.append(f"CO2 avoided: {finance.co2_avoided_kg:,.0f} kg/year")
    lines.append(f"Grid-free share: {finance.grid_free_pct:.1f}%")
    lines.append("")
    lines.append(result.equilibrium_suggestion())
    if result.input_issues:
        lines.append("")
        lines.append("== Substituted inputs ==")
        lines.extend(issue.describe() for issue in result.input_issues)
    output_path.write_text("\n".join(lines), encoding="utf-8")


def generate_report(
    scenario_name: str,
    result: SimulationResult,
    output_root: Path | str = "results",
) -> Path:
    """
    Generate full report: hourly CSV, plots and textual summary saved to disk.
    """
    output_dir = _create_results_directory(scenario_name, Path(output_root))

    df_hourly = result.hourly_frame()
    df_hourly.to_csv(output_dir / "hourly.csv", index=False)

    _plot_hourly_flows(df_hourly, output_dir / "hourly_flows.png")
    _plot_battery_level(df_hourly, result.totals.battery_capacity_kwh, output_dir / "battery_level.png")
    _write_text_report(output_dir / "summary.txt", scenario_name, result)

    return output_dir
