from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from sim_home_energy.reporting import generate_report
from sim_home_energy.result_builder import ResultBuilder, _short_label, _slugify
from sim_home_energy.simulation import OptimalSystemCandidate, simulate


def _make_candidate(configuration, strategy: str = "min-payback") -> OptimalSystemCandidate:
    """Wrap a real simulation as a recommendation."""
    return OptimalSystemCandidate.from_result(strategy, simulate(configuration))


def test_generate_report_writes_all_files(tmp_path, my_solar_battery):
    """Ensure the single-run report produces CSV, plots and the summary."""
    output_dir = generate_report("KL terrace / test", simulate(my_solar_battery), output_root=tmp_path)

    assert output_dir.parent == tmp_path
    assert output_dir.name.endswith("KL_terrace___test")
    for name in ("hourly.csv", "hourly_flows.png", "battery_level.png", "summary.txt"):
        assert (output_dir / name).exists(), name

    df = pd.read_csv(output_dir / "hourly.csv")
    assert list(df["hour"]) == list(range(24))
    text = (output_dir / "summary.txt").read_text(encoding="utf-8")
    assert "Country: MY (MYR)" in text
    assert "Recommended: 10 kW solar + 1 batteries" in text


def test_result_builder_build_simulation(tmp_path, monkeypatch, my_solar_battery):
    """Ensure build_simulation delegates to generate_report and returns its path."""
    builder = ResultBuilder(output_root=tmp_path)
    fake_dir = tmp_path / "report_dir"
    fake_dir.mkdir()

    def fake_generate_report(**kwargs):
        assert kwargs["output_root"] == tmp_path
        return fake_dir

    monkeypatch.setattr("sim_home_energy.result_builder.generate_report", fake_generate_report)
    assert builder.build_simulation("scenario-test", simulate(my_solar_battery)) == fake_dir


def test_result_builder_build_optimization_bundle(tmp_path, monkeypatch, my_solar_battery):
    """Ensure the bundle persists the comparison table and one folder per system."""
    builder = ResultBuilder(output_root=tmp_path)
    plotted = []
    monkeypatch.setattr(
        "sim_home_energy.result_builder._plot_cost_comparison",
        lambda found, path: plotted.append(list(found)),
    )

    def fake_generate_report(**kwargs):
        output_root = Path(kwargs["output_root"])
        output_root.mkdir(parents=True, exist_ok=True)
        return output_root

    monkeypatch.setattr("sim_home_energy.result_builder.generate_report", fake_generate_report)

    recommendations = {"min-payback": _make_candidate(my_solar_battery), "off-grid": None}
    run_dir = builder.build_optimization_bundle("batch test", recommendations)

    assert run_dir.exists()
    assert run_dir.name.endswith("_batch_test_batch")
    summary_path = run_dir / "comparison" / "summary.csv"
    assert summary_path.exists()
    df = pd.read_csv(summary_path)
    assert list(df["strategy"]) == ["min-payback", "off-grid"]
    assert list(df["feasible"]) == [True, False]
    assert plotted == [["min-payback"]]

    best_dir = run_dir / "min-payback"
    assert "Payback: year" in (best_dir / "summary.txt").read_text(encoding="utf-8")
    assert (best_dir / "detailed_report").is_dir()
    assert not (run_dir / "off-grid").exists()


def test_bundle_without_feasible_system_skips_chart(tmp_path, monkeypatch):
    monkeypatch.setattr(
        "sim_home_energy.result_builder._plot_cost_comparison",
        lambda *args, **kwargs: pytest.fail("nothing to plot"),
    )
    run_dir = ResultBuilder(tmp_path).build_optimization_bundle("none", {"zero-bill": None})
    assert (run_dir / "comparison" / "summary.csv").exists()


def test_bundle_requires_recommendations(tmp_path):
    with pytest.raises(ValueError):
        ResultBuilder(tmp_path).build_optimization_bundle("empty", {})


def test_labels():
    assert _slugify(" a/b c ") == "a_b_c"
    assert _short_label("x" * 60, 20) == "x" * 17 + "..."
    assert _short_label("short") == "short"
