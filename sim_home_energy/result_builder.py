from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Dict, List

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .reporting import generate_report
from .simulation import OptimalSystemCandidate, SimulationResult
from .simulation.catalog import describe_batteries


def _slugify(value: str) -> str:
    """
    Convert arbitrary text to a filesystem-friendly slug.

    Args:
        value: Input string.

    Returns:
        Slugified string containing alphanumerics, dashes, and underscores.
    """
    return "".join(c if c.isalnum() or c in ("-", "_") else "_" for c in value.strip()).strip("_")


def _create_run_directory(scenario_name: str, output_root: Path) -> Path:
    """
    Create a timestamped directory to hold optimization outputs.
    """
    timestamp = datetime.now().strftime("%y%m%d_%H%M%S")
    slug = _slugify(scenario_name) or "optimization"
    run_dir = output_root / f"{timestamp}_{slug}_batch"
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def _short_label(value: str, max_len: int = 50) -> str:
    """Trim long labels for plots, appending ellipsis when truncated."""
    if len(value) <= max_len:
        return value
    return value[: max_len - 3] + "..."


def _found(recommendations: Dict[str, OptimalSystemCandidate | None]) -> Dict[str, OptimalSystemCandidate]:
    return {name: candidate for name, candidate in recommendations.items() if candidate is not None}


def _plot_cost_comparison(
    recommendations: Dict[str, OptimalSystemCandidate],
    save_path: Path,
) -> None:
    """
    Grouped bars of upfront cost and 25-year cost with/without the system.
    """
    labels = [_short_label(f"{name}\n{candidate.describe()}", 40) for name, candidate in recommendations.items()]
    upfront = [candidate.total_system_cost for candidate in recommendations.values()]
    cost_with = [candidate.cost_25y_with for candidate in recommendations.values()]
    cost_without = [candidate.cost_25y_without for candidate in recommendations.values()]
    x = np.arange(len(labels))
    width = 0.27

    fig, ax = plt.subplots(figsize=(max(8, 2.5 * len(labels)), 5))
    ax.bar(x - width, upfront, width, color="#1f77b4", label="Upfront cost")
    ax.bar(x, cost_with, width, color="#2ca02c", label="25-year cost with system")
    ax.bar(x + width, cost_without, width, color="#d62728", label="25-year cost without system")
    ax.set_xticks(x)
    ax.set_xticklabels(labels, fontsize=8)
    ax.set_ylabel("Local currency")
    ax.set_title("Recommended systems: cost comparison")
    ax.grid(True, axis="y", alpha=0.3)
    ax.legend(fontsize=8)
    fig.tight_layout()
    fig.savefig(save_path, dpi=300)
    plt.close(fig)


def _save_comparison_summary(
    recommendations: Dict[str, OptimalSystemCandidate | None],
    save_path: Path,
) -> None:
    rows = []
    for name, candidate in recommendations.items():
        if candidate is None:
            rows.append({"strategy": name, "feasible": False})
            continue
        finance = candidate.result.finance
        rows.append(
            {
                "strategy": name,
                "feasible": True,
                "solar_kw": candidate.solar_kw,
                "batteries": describe_batteries(candidate.batteries),
                "total_system_cost": candidate.total_system_cost,
                "payback_years": candidate.payback_years,
                "monthly_savings": candidate.monthly_savings,
                "bill_with": finance.bill_with,
                "bill_without": finance.bill_without,
                "monthly_grid_needed_kwh": candidate.monthly_grid_needed_kwh,
                "cost_25y_with": candidate.cost_25y_with,
                "cost_25y_without": candidate.cost_25y_without,
                "net_savings_25y": candidate.net_savings_25y,
                "grid_free_pct": finance.grid_free_pct,
            }
        )
    pd.DataFrame(rows).to_csv(save_path, index=False)


def _write_best_summary_txt(path: Path, candidate: OptimalSystemCandidate) -> None:
    """
    Write the human-readable summary for one recommended system.
    """
    finance = candidate.result.finance
    currency = finance.currency
    lines = []
    lines.append(f"Strategy: {candidate.strategy}")
    lines.append(f"System: {candidate.describe()}")
    lines.append("")
    lines.append(f"Upfront cost: {candidate.total_system_cost:,.0f} {currency}")
    if candidate.payback_years is None:
        lines.append("Payback: never")
    else:
        lines.append(f"Payback: year {candidate.payback_years}")
    lines.append(f"Monthly savings: {candidate.monthly_savings:,.1f} {currency}")
    lines.append(f"Monthly grid energy still needed: {candidate.monthly_grid_needed_kwh:,.1f} kWh")
    lines.append(f"25-year cost with system: {candidate.cost_25y_with:,.0f} {currency}")
    lines.append(f"25-year cost without system: {candidate.cost_25y_without:,.0f} {currency}")
    lines.append(f"25-year net savings: {candidate.net_savings_25y:,.0f} {currency}")
    path.write_text("\n".join(lines), encoding="utf-8")


class ResultBuilder:
    """
    Handle persistence of simulation and optimization deliverables.
    """

    def __init__(self, output_root: str | Path = "results") -> None:
        """
        Args:
            output_root: Base directory for generated assets.
        """
        self.output_root = Path(output_root)

    def build_simulation(self, scenario_name: str, result: SimulationResult) -> Path:
        """
        Save the report for a single simulated configuration.
        """
        return generate_report(
            scenario_name=scenario_name,
            result=result,
            output_root=self.output_root,
        )

    def build_optimization_bundle(
        self,
        scenario_name: str,
        recommendations: Dict[str, OptimalSystemCandidate | None],
    ) -> Path:
        """
        Persist the comparison table, cost chart and one report per system.

        Args:
            scenario_name: Base name for the run directory.
            recommendations: Strategy name to recommended system (or None).

        Raises:
            ValueError: If no strategy was run.
        """
        if not recommendations:
            raise ValueError("No recommendations available to build results.")

        run_dir = _create_run_directory(scenario_name, self.output_root)
        comparison_dir = run_dir / "comparison"
        comparison_dir.mkdir(parents=True, exist_ok=True)

        _save_comparison_summary(recommendations, comparison_dir / "summary.csv")
        found = _found(recommendations)
        if found:
            _plot_cost_comparison(found, comparison_dir / "cost_comparison.png")

        for name, candidate in found.items():
            self._persist_best_system(run_dir / _slugify(name), candidate)

        return run_dir

    def _persist_best_system(self, target_dir: Path, candidate: OptimalSystemCandidate) -> None:
        target_dir.mkdir(parents=True, exist_ok=True)
        _write_best_summary_txt(target_dir / "summary.txt", candidate)
        generate_report(
            scenario_name=candidate.describe(),
            result=candidate.result,
            output_root=target_dir / "detailed_report",
        )
