from __future__ import annotations

import io
import json

import pytest

from sim_home_energy import cli


@pytest.fixture()
def scenario_file(tmp_path, scenario_data):
    path = tmp_path / "scenario.json"
    path.write_text(json.dumps(scenario_data), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    for name in ("SIM_HOME_MAX_WORKERS", "SIM_HOME_TIME_LIMIT_S", "SIM_HOME_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SIM_HOME_RESULTS_DIR", str(tmp_path / "results"))


def test_simulate_prints_json(capsys, scenario_file):
    cli.main(["simulate", "--no-save", "--scenario-file", str(scenario_file)])
    payload = json.loads(capsys.readouterr().out)
    assert payload["scenario"] == "test_household"
    assert len(payload["hourly"]) == 24


def test_simulate_saves_under_results_dir(capsys, scenario_file, tmp_path):
    cli.main(["simulate", "--scenario-file", str(scenario_file)])
    payload = json.loads(capsys.readouterr().out)
    assert payload["output_dir"].startswith(str(tmp_path / "results"))


def test_optimize_single_strategy(capsys, scenario_file):
    cli.main(
        [
            "optimize",
            "--strategy",
            "off-grid",
            "--no-progress",
            "--no-save",
            "--scenario-file",
            str(scenario_file),
        ]
    )
    payload = json.loads(capsys.readouterr().out)
    assert list(payload["recommendations"]) == ["off-grid"]
    assert payload["cancelled"] is False


def test_missing_scenario_file(tmp_path):
    with pytest.raises(SystemExit, match="File not found"):
        cli.main(["simulate", "--no-save", "--scenario-file", str(tmp_path / "absent.json")])


def test_invalid_json_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(SystemExit, match="Invalid JSON file"):
        cli.main(["simulate", "--no-save", "--scenario-file", str(path)])


def test_invalid_scenario(tmp_path, scenario_data):
    scenario_data["configuration"]["country"] = "AU"
    path = tmp_path / "bad.json"
    path.write_text(json.dumps(scenario_data), encoding="utf-8")
    with pytest.raises(SystemExit, match="Invalid scenario"):
        cli.main(["simulate", "--no-save", "--scenario-file", str(path)])


def test_invalid_settings(monkeypatch):
    monkeypatch.setenv("SIM_HOME_MAX_WORKERS", "zero")
    with pytest.raises(SystemExit, match="SIM_HOME_MAX_WORKERS"):
        cli.main(["simulate", "--no-save"])


def test_rejects_non_positive_time_limit(scenario_file):
    with pytest.raises(SystemExit):
        cli.main(["optimize", "--time-limit", "0", "--no-save", "--scenario-file", str(scenario_file)])


def test_no_command_prints_help(capsys):
    cli.main([])
    assert "usage:" in capsys.readouterr().out


def test_console_progress_rewrites_line():
    stream = io.StringIO()
    progress = cli.ConsoleProgress(stream)
    progress("min-payback", 1, 4)
    progress("min-payback", 4, 4)
    output = stream.getvalue()
    assert output.count("\r\x1b[2K") == 2
    assert "[" + "#" * 30 + "]" in output
    assert output.endswith("\n")


def test_format_duration():
    assert cli.ConsoleProgress._format_duration(5) == "05s"
    assert cli.ConsoleProgress._format_duration(125) == "02:05"
    assert cli.ConsoleProgress._format_duration(3725) == "01:02:05"
