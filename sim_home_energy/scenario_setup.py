from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Mapping

from .schemas import ScenarioDocument
from .simulation import BatteryModel, SearchLimits, SystemConfiguration

DEFAULT_SCENARIO_PATH = Path(__file__).resolve().parent / "scenarios" / "default_home.json"


def load_scenario_data(source: str | Path | Mapping[str, Any] | None = None) -> dict[str, Any]:
    """
    Load scenario data from JSON or return the provided mapping.

    Args:
        source: Path to a JSON file, mapping, or None for the bundled
            default (Kuala Lumpur terrace house).

    Returns:
        Dictionary containing the scenario document.
    """
    if source is None:
        return json.loads(DEFAULT_SCENARIO_PATH.read_text(encoding="utf-8"))
    if isinstance(source, (str, Path)):
        path = Path(source)
        return json.loads(path.read_text(encoding="utf-8"))
    return dict(source)


def parse_scenario(scenario_data: Mapping[str, Any] | str | Path | None = None) -> ScenarioDocument:
    """
    Validate a scenario document.

    Raises:
        pydantic.ValidationError: On unknown enum values, negative sizes or
            duplicate catalog names.
    """
    if isinstance(scenario_data, ScenarioDocument):
        return scenario_data
    return ScenarioDocument.model_validate(load_scenario_data(scenario_data))


def build_system_configuration(
    scenario_data: Mapping[str, Any] | str | Path | None = None,
) -> SystemConfiguration:
    """
    Build the engine configuration of a scenario.

    Raises:
        ValueError: If a line item references a model missing from the catalog.
    """
    return parse_scenario(scenario_data).build_configuration()


def build_battery_catalog(
    scenario_data: Mapping[str, Any] | str | Path | None = None,
) -> List[BatteryModel]:
    return parse_scenario(scenario_data).battery_catalog()


def build_search_limits(
    scenario_data: Mapping[str, Any] | str | Path | None = None,
    *,
    max_solar_kw: int | None = None,
    max_battery_units: int | None = None,
) -> SearchLimits:
    """
    Search bounds of a scenario, with optional overrides.

    Args:
        scenario_data: Scenario mapping, path or None for the default.
        max_solar_kw: Overrides ``optimization.max_solar_kw`` when given.
        max_battery_units: Overrides ``optimization.max_battery_units`` when given.
    """
    limits = parse_scenario(scenario_data).optimization.to_domain()
    return SearchLimits(
        max_solar_kw=limits.max_solar_kw if max_solar_kw is None else max_solar_kw,
        max_battery_units=(
            limits.max_battery_units if max_battery_units is None else max_battery_units
        ),
        solar_step_kw=limits.solar_step_kw,
    )
