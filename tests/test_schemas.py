from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from sim_home_energy.scenario_setup import (
    build_battery_catalog,
    build_search_limits,
    build_system_configuration,
    load_scenario_data,
    parse_scenario,
)
from sim_home_energy.schemas import (
    BatterySchema,
    CatalogSchema,
    ConfigurationSchema,
    OptimizationResponse,
    ScenarioDocument,
    SimulationResponse,
)
from sim_home_energy.simulation import ChargingTime, Country, RoofQuality, simulate


def test_bundled_scenario_parses() -> None:
    document = parse_scenario()
    assert document.scenario_name == "kl_terrace_house"

    configuration = build_system_configuration()
    assert configuration.country is Country.MY
    assert configuration.solar_kw == 10.0
    assert configuration.batteries[0].model.name == "Home Battery 10"
    assert configuration.vehicles[0].charging_time is ChargingTime.NIGHT

    catalog = build_battery_catalog()
    assert [model.name for model in catalog] == ["Home Battery 10", "Powerwall 3", "SigenStor 8"]
    assert catalog[0].price_for(Country.MY) == 18000.0
    assert catalog[1].price_for(Country.ID) == 0.0


def test_search_limits_overrides() -> None:
    limits = build_search_limits()
    assert (limits.max_solar_kw, limits.max_battery_units) == (20, 3)
    limits = build_search_limits(max_solar_kw=6)
    assert (limits.max_solar_kw, limits.max_battery_units) == (6, 3)


def test_load_scenario_from_file(tmp_path, scenario_data) -> None:
    path = tmp_path / "home.json"
    path.write_text(json.dumps(scenario_data), encoding="utf-8")
    assert load_scenario_data(path) == scenario_data
    assert load_scenario_data(str(path))["scenario_name"] == "test_household"


@pytest.mark.parametrize(
    "field, value",
    [
        ("country", "AU"),
        ("roof_quality", "Sunny"),
        ("charging_time", "Weekends"),
        ("net_metering", "feed_in"),
        ("day_load", "Huge"),
        ("night_load", -3.0),
        ("solar_kw", -1),
    ],
)
def test_invalid_configuration_values(field, value) -> None:
    payload = {"country": "MY", field: value}
    with pytest.raises(ValidationError):
        ConfigurationSchema.model_validate(payload)


def test_load_presets_and_enums_are_accepted() -> None:
    schema = ConfigurationSchema.model_validate(
        {"country": "TH", "roof_quality": "Shaded", "day_load": "High", "night_load": 9}
    )
    configuration = schema.to_domain()
    assert configuration.roof_quality is RoofQuality.SHADED
    assert configuration.day_load == "High"
    assert configuration.night_load == 9


def test_unknown_catalog_reference(scenario_data) -> None:
    scenario_data["configuration"]["batteries"] = [{"model": "Missing Battery"}]
    document = parse_scenario(scenario_data)
    with pytest.raises(ValueError, match="Unknown battery model"):
        document.build_configuration()


def test_unknown_vehicle_reference(scenario_data) -> None:
    scenario_data["configuration"]["vehicles"] = [{"model": "Flying Car"}]
    with pytest.raises(ValueError, match="Unknown vehicle model"):
        build_system_configuration(scenario_data)


def test_usable_capacity_defaults_to_nominal() -> None:
    schema = BatterySchema.model_validate({"name": "Plain", "capacity_kwh": 5.0, "prices": {"SG": 4000}})
    model = schema.to_domain()
    assert model.usable_capacity_kwh == 5.0
    assert model.price_for("SG") == 4000.0


def test_battery_schema_reads_domain_objects(home_battery) -> None:
    schema = BatterySchema.model_validate(home_battery)
    assert schema.usable_capacity_kwh == 10.0
    assert schema.prices[Country.MY] == 18000.0


def test_duplicate_catalog_names_are_rejected() -> None:
    entry = {"name": "Twin", "capacity_kwh": 5.0}
    with pytest.raises(ValidationError, match="Duplicate battery names"):
        CatalogSchema.model_validate({"batteries": [entry, entry]})


def test_optimization_bounds_are_validated(scenario_data) -> None:
    scenario_data["optimization"] = {"max_solar_kw": 10, "max_battery_units": 0}
    with pytest.raises(ValidationError):
        ScenarioDocument.model_validate(scenario_data)


def test_simulation_response(scenario_data) -> None:
    result = simulate(build_system_configuration(scenario_data))
    response = SimulationResponse.from_result(result, "test_household")
    payload = response.model_dump(mode="json")

    assert payload["scenario"] == "test_household"
    assert len(payload["hourly"]) == 24
    assert payload["hourly"][12]["hour"] == 12
    assert payload["summary"]["solar_kw"] == 6.0
    assert payload["recommendation"].startswith("Recommended:")
    assert payload["input_issues"] == []
    assert payload["output_dir"] is None


def test_country_default_loads_are_not_reported() -> None:
    schema = ConfigurationSchema.model_validate({"country": "PH", "solar_kw": 4})
    configuration = schema.to_domain()
    response = SimulationResponse.from_result(simulate(configuration), "defaults")
    assert response.input_issues == []


def test_optimization_response_keeps_infeasible_strategies() -> None:
    response = OptimizationResponse.from_candidates("empty", {"off-grid": None}, cancelled=True)
    payload = response.model_dump(mode="json")
    assert payload["recommendations"] == {"off-grid": None}
    assert payload["cancelled"] is True
