from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Sequence, TextIO

from pydantic import ValidationError

from .application import ALL_STRATEGIES, SimulationApplication
from .config import get_engine_settings
from .result_builder import ResultBuilder
from .simulation import STRATEGIES


class ConsoleProgress:
    """
    Single-line progress bar for optimizer searches.

    Called with ``(strategy, done, total)``; the line is rewritten in place
    and terminated when a search completes.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stdout
        self._started: dict[str, float] = {}

    @staticmethod
    def _format_bar(frac: float, length: int = 30) -> str:
        frac = max(0.0, min(1.0, frac))
        filled = int(length * frac)
        return "#" * filled + "-" * (length - filled)

    @staticmethod
    def _format_duration(seconds: float) -> str:
        seconds = max(0.0, seconds)
        total_seconds = int(round(seconds))
        hours, remainder = divmod(total_seconds, 3600)
        minutes, secs = divmod(remainder, 60)
        if hours > 0:
            return f"{hours:02d}:{minutes:02d}:{secs:02d}"
        if minutes > 0:
            return f"{minutes:02d}:{secs:02d}"
        return f"{secs:02d}s"

    def _format_line(self, strategy: str, done: int, total: int, elapsed: float) -> str:
        frac = done / total if total > 0 else 1.0
        eta = elapsed / done * (total - done) if done > 0 else 0.0
        return (
            f"{strategy:<17} {done:5d}/{total:<5d} "
            f"[{self._format_bar(frac)}] {frac*100:6.2f}%  "
            f"elapsed: {self._format_duration(elapsed):>8}  ETA: {self._format_duration(eta):>8}"
        )

    def _render_progress(self, line: str, final: bool = False) -> None:
        self.stream.write("\r\x1b[2K" + line)
        if final:
            self.stream.write("\n")
        self.stream.flush()

    def __call__(self, strategy: str, done: int, total: int) -> None:
        started = self._started.setdefault(strategy, time.monotonic())
        line = self._format_line(strategy, done, total, time.monotonic() - started)
        self._render_progress(line, final=done >= total)


def build_argument_parser() -> argparse.ArgumentParser:
    """
    Build the CLI argument parser used by entry points.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(description="Home solar, battery and EV simulator CLI")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable DEBUG logging (overrides SIM_HOME_LOG_LEVEL)",
    )
    sub = parser.add_subparsers(dest="command")

    simulate = sub.add_parser("simulate", help="Simulate the configuration of a scenario")
    simulate.add_argument(
        "--no-save",
        action="store_true",
        help="Do not write reports to the results directory",
    )
    simulate.add_argument(
        "--scenario-file",
        type=str,
        default=None,
        help="Path to a JSON scenario file (default: bundled Malaysian household)",
    )

    optimize = sub.add_parser("optimize", help="Search recommended systems for a household")
    optimize.add_argument(
        "--strategy",
        choices=[*STRATEGIES, ALL_STRATEGIES],
        default=ALL_STRATEGIES,
        help="Objective to optimize (default: all)",
    )
    optimize.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Worker processes for candidate evaluation (default: SIM_HOME_MAX_WORKERS)",
    )
    optimize.add_argument(
        "--time-limit",
        type=float,
        default=None,
        help="Seconds allowed per strategy before returning the best so far",
    )
    optimize.add_argument(
        "--scenario-file",
        type=str,
        default=None,
        help="Path to a JSON scenario file (default: bundled Malaysian household)",
    )
    optimize.add_argument(
        "--no-save",
        action="store_true",
        help="Do not write reports to the results directory",
    )
    optimize.add_argument(
        "--no-progress",
        action="store_true",
        help="Do not render the progress bar",
    )

    return parser


def _load_json_file(path: str | Path) -> dict[str, Any]:
    file_path = Path(path)
    if not file_path.exists():
        raise SystemExit(f"File not found: {file_path}")
    try:
        return json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid JSON file ({file_path}): {exc}") from exc


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str, ensure_ascii=False))


def _configure_logging(level: str, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """
    CLI entry point for simulations and optimizer searches.

    Args:
        argv: Optional sequence of CLI args (defaults to sys.argv).
    """
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    try:
        settings = get_engine_settings()
    except ValueError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc
    _configure_logging(settings.log_level, args.verbose)

    save_outputs = not getattr(args, "no_save", False)
    app = SimulationApplication(
        save_outputs=save_outputs,
        result_builder=ResultBuilder(settings.results_dir) if save_outputs else None,
        settings=settings,
    )
    scenario_data = _load_json_file(args.scenario_file) if args.scenario_file else None

    try:
        if args.command == "simulate":
            summary = app.run_simulation(scenario_data=scenario_data)
            _print_json(summary)
            return

        if args.command == "optimize":
            if args.max_workers is not None and args.max_workers < 1:
                parser.error("--max-workers must be >= 1")
            if args.time_limit is not None and args.time_limit <= 0:
                parser.error("--time-limit must be > 0")
            summary = app.run_optimization(
                strategy=args.strategy,
                scenario_data=scenario_data,
                max_workers=args.max_workers,
                time_limit_s=args.time_limit,
                progress_callback=None if args.no_progress else ConsoleProgress(),
            )
            _print_json(summary)
            return
    except ValidationError as exc:
        raise SystemExit(f"Invalid scenario: {exc}") from exc
    except ValueError as exc:
        raise SystemExit(f"Invalid scenario: {exc}") from exc

    parser.error(f"Unknown command: {args.command}")


if __name__ == "__main__":
    main()
