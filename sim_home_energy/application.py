from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping

from .config import EngineSettings, get_engine_settings
from .result_builder import ResultBuilder
from .scenario_setup import build_search_limits, load_scenario_data, parse_scenario
from .schemas import OptimizationResponse, SimulationResponse
from .simulation import (
    STRATEGIES,
    CancellationToken,
    OptimalSystemCandidate,
    SystemOptimizer,
    simulate,
)

logger = logging.getLogger(__name__)

ScenarioData = Mapping[str, Any] | str | Path | None
StrategyProgress = Callable[[str, int, int], None]

ALL_STRATEGIES = "all"


def resolve_strategies(strategy: str) -> List[str]:
    """
    Expand a strategy selector into registered strategy names.

    Raises:
        ValueError: If ``strategy`` is neither ``"all"`` nor a registered name.
    """
    if strategy == ALL_STRATEGIES:
        return list(STRATEGIES)
    if strategy not in STRATEGIES:
        raise ValueError(
            f"Unknown strategy {strategy!r}; expected one of {', '.join([*STRATEGIES, ALL_STRATEGIES])}"
        )
    return [strategy]


class SimulationApplication:
    """
    High-level orchestrator used by the CLI.
    """

    def __init__(
        self,
        *,
        save_outputs: bool = False,
        result_builder: ResultBuilder | None = None,
        settings: EngineSettings | None = None,
    ) -> None:
        """
        Args:
            save_outputs: When True, ResultBuilder saves plots/reports.
            result_builder: Optional ResultBuilder for CLI outputs.
            settings: Engine settings; read from the environment when omitted.
        """
        self.save_outputs = save_outputs
        self.result_builder = result_builder
        self.settings = settings or get_engine_settings()

    def run_simulation(self, *, scenario_data: ScenarioData = None) -> Dict[str, Any]:
        """
        Simulate the configuration of a scenario.

        Args:
            scenario_data: Optional mapping/path overriding the default scenario definition.

        Returns:
            JSON-ready dictionary with the summary, hourly rows and optional output path.
        """
        document = parse_scenario(load_scenario_data(scenario_data))
        configuration = document.build_configuration()
        result = simulate(
            configuration,
            warmup_max_iterations=self.settings.warmup_max_iterations,
        )

        output_dir = None
        if self.save_outputs and self.result_builder:
            output_dir = self.result_builder.build_simulation(document.scenario_name, result)

        response = SimulationResponse.from_result(
            result,
            scenario=document.scenario_name,
            output_dir=str(output_dir) if output_dir else None,
        )
        return response.model_dump(mode="json")

    def run_optimization(
        self,
        *,
        strategy: str = ALL_STRATEGIES,
        scenario_data: ScenarioData = None,
        max_workers: int | None = None,
        time_limit_s: float | None = None,
        progress_callback: StrategyProgress | None = None,
    ) -> Dict[str, Any]:
        """
        Search recommended systems for the household of a scenario.

        Args:
            strategy: Strategy name or ``"all"``.
            scenario_data: Optional mapping/path overriding the default scenario definition.
            max_workers: Worker processes (settings value when omitted).
            time_limit_s: Wall-clock budget per strategy (settings value when omitted).
            progress_callback: Called with ``(strategy, done, total)``.

        Returns:
            JSON-ready dictionary with one recommendation per strategy and the
            optional output path.
        """
        names = resolve_strategies(strategy)
        payload = load_scenario_data(scenario_data)
        document = parse_scenario(payload)
        base_configuration = document.build_configuration()
        batteries = document.battery_catalog()
        if "optimization" in payload:
            limits = build_search_limits(document)
        else:
            limits = build_search_limits(
                document,
                max_solar_kw=self.settings.max_solar_kw,
                max_battery_units=self.settings.max_battery_units,
            )
        workers = max_workers if max_workers is not None else self.settings.max_workers
        time_limit = time_limit_s if time_limit_s is not None else self.settings.time_limit_s

        recommendations: Dict[str, OptimalSystemCandidate | None] = {}
        cancelled = False
        for name in names:
            token = CancellationToken(time_limit)

            def on_progress(done: int, total: int, name: str = name) -> None:
                if progress_callback is not None:
                    progress_callback(name, done, total)

            optimizer = SystemOptimizer(
                base_configuration,
                batteries,
                limits=limits,
                max_workers=workers,
                warmup_max_iterations=self.settings.warmup_max_iterations,
                cancellation=token,
                progress_callback=on_progress,
            )
            recommendations[name] = optimizer.run(name)
            if optimizer.interrupted:
                cancelled = True

        output_dir = None
        if self.save_outputs and self.result_builder:
            output_dir = self.result_builder.build_optimization_bundle(
                document.scenario_name,
                recommendations,
            )

        response = OptimizationResponse.from_candidates(
            document.scenario_name,
            recommendations,
            cancelled=cancelled,
            output_dir=str(output_dir) if output_dir else None,
        )
        return response.model_dump(mode="json")
