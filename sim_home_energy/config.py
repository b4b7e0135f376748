from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, TypeVar

T = TypeVar("T")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _load_dotenv(path: str = ".env") -> Dict[str, str]:
    """
    Basic .env loader to populate os.environ without overriding existing values.
    Returns a mapping of parsed key/value pairs.
    """
    env_path = Path(path)
    if not env_path.exists():
        return {}

    parsed: Dict[str, str] = {}
    for line in env_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        os.environ.setdefault(key, value)
        parsed[key] = value
    return parsed


_load_dotenv()


@dataclass(frozen=True)
class EngineSettings:
    """
    Runtime knobs read from ``SIM_HOME_*`` environment variables.

    Attributes:
        max_workers: Worker processes for optimizer searches (1 = inline).
        max_solar_kw: Largest PV size searched (kW).
        max_battery_units: Most units of one battery model per candidate.
        time_limit_s: Wall-clock budget per search, or None for unlimited.
        warmup_max_iterations: Battery warm-up replay cap.
        results_dir: Root directory for saved reports.
        log_level: Logging level name.
    """

    max_workers: int = 1
    max_solar_kw: int = 30
    max_battery_units: int = 4
    time_limit_s: float | None = None
    warmup_max_iterations: int = 50
    results_dir: Path = Path("results")
    log_level: str = "INFO"


def _read(name: str, parse: Callable[[str], T], default: T) -> T:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return parse(raw.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from exc


def _positive_int(raw: str) -> int:
    value = int(raw)
    if value < 1:
        raise ValueError("must be >= 1")
    return value


def _non_negative_int(raw: str) -> int:
    value = int(raw)
    if value < 0:
        raise ValueError("must be >= 0")
    return value


def _positive_float(raw: str) -> float:
    value = float(raw)
    if not value > 0:
        raise ValueError("must be > 0")
    return value


def _log_level(raw: str) -> str:
    level = raw.upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"expected one of {', '.join(LOG_LEVELS)}")
    return level


def get_engine_settings() -> EngineSettings:
    """
    Build EngineSettings from the environment (after the .env file).

    Returns:
        EngineSettings with defaults for unset variables.

    Raises:
        ValueError: If a variable is set but malformed; the message names it.
    """
    return EngineSettings(
        max_workers=_read("SIM_HOME_MAX_WORKERS", _positive_int, 1),
        max_solar_kw=_read("SIM_HOME_MAX_SOLAR_KW", _non_negative_int, 30),
        max_battery_units=_read("SIM_HOME_MAX_BATTERY_UNITS", _positive_int, 4),
        time_limit_s=_read("SIM_HOME_TIME_LIMIT_S", _positive_float, None),
        warmup_max_iterations=_read("SIM_HOME_WARMUP_MAX_ITER", _positive_int, 50),
        results_dir=Path(os.getenv("SIM_HOME_RESULTS_DIR") or "results").expanduser(),
        log_level=_read("SIM_HOME_LOG_LEVEL", _log_level, "INFO"),
    )
