"""
Input sanitation helpers shared by every engine stage.

The engine never raises on bad numbers coming from the catalog or the
caller: a non-finite, negative or otherwise unusable value is replaced by a
neutral one (usually zero) so the simulation always returns. To keep this
from hiding caller bugs, each substitution is recorded as an
:class:`InputIssue` in an :class:`InputIssueLog` and logged at DEBUG level.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InputIssue:
    """
    Typed marker for a value that was substituted instead of used.

    Attributes:
        source: Where the value came from (e.g. ``"vehicles[1]"``).
        field: Name of the offending field (e.g. ``"range_km"``).
        value: The raw value that was rejected (kept as ``repr`` text so the
            issue stays hashable and serializable).
        reason: Short explanation (``"non-finite"``, ``"non-positive"``, ...).
        action: What the engine did instead (``"substituted 0"``,
            ``"skipped line item"``, ...).
    """

    source: str
    field: str
    value: str
    reason: str
    action: str = "substituted 0"

    def describe(self) -> str:
        return f"{self.source}.{self.field}={self.value}: {self.reason} ({self.action})"


@dataclass
class InputIssueLog:
    """Collects :class:`InputIssue` records produced during one simulation call."""

    issues: List[InputIssue] = field(default_factory=list)

    def record(
        self,
        source: str,
        field_name: str,
        value: Any,
        reason: str,
        action: str = "substituted 0",
    ) -> InputIssue:
        issue = InputIssue(
            source=source,
            field=field_name,
            value=repr(value),
            reason=reason,
            action=action,
        )
        self.issues.append(issue)
        logger.debug("Invalid input %s", issue.describe())
        return issue

    def __len__(self) -> int:
        return len(self.issues)

    def freeze(self) -> Tuple[InputIssue, ...]:
        return tuple(self.issues)


def is_finite_number(value: Any) -> bool:
    """True for real numbers that are neither NaN nor infinite (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def finite_or_zero(value: Any) -> float:
    """Return ``value`` as float, or 0.0 when it is missing, NaN or infinite."""
    return float(value) if is_finite_number(value) else 0.0


def sanitize_non_negative(
    value: Any,
    issues: InputIssueLog | None,
    source: str,
    field_name: str,
) -> float:
    """
    Coerce a caller-supplied quantity to a finite, non-negative float.

    Args:
        value: Raw value.
        issues: Log receiving an :class:`InputIssue` when the value is replaced.
        source: Issue source label.
        field_name: Issue field label.

    Returns:
        The value itself when usable, otherwise 0.0.
    """
    if not is_finite_number(value):
        if issues is not None:
            issues.record(source, field_name, value, "non-finite")
        return 0.0
    if value < 0:
        if issues is not None:
            issues.record(source, field_name, value, "negative")
        return 0.0
    return float(value)


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp ``value`` into ``[lower, upper]``; NaN collapses to ``lower``."""
    if not is_finite_number(value):
        return lower
    return max(lower, min(upper, value))


def clamp_percentage(value: Any) -> float:
    """Clamp a percentage into ``[0, 100]``."""
    return clamp(finite_or_zero(value), 0.0, 100.0)


def clamp_battery_level(level: float, capacity_kwh: float) -> float:
    """
    Canonical battery clamp used at every state-mutation site.

    Keeps the stored energy inside ``[0, capacity_kwh]`` and normalizes
    negative zero and NaN to ``0.0``.

    Args:
        level: Candidate stored energy (kWh).
        capacity_kwh: Usable (degraded) capacity of the bank (kWh).

    Returns:
        The clamped level. ``-0.0`` and NaN become ``0.0``.
    """
    capacity = max(0.0, finite_or_zero(capacity_kwh))
    clamped = clamp(level, 0.0, capacity)
    return clamped + 0.0
