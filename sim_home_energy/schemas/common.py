"""
Shared helpers for schema validation.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping


def _coerce_to_dict(data: Any) -> Dict[str, Any] | Any:
    """
    Coerce mapping-like input to a plain dict for ``mode="before"`` validators.

    Dataclass or attribute-style objects are returned unchanged so that
    ``from_attributes`` validation can handle them.

    Example:
        >>> _coerce_to_dict(None)
        {}
        >>> _coerce_to_dict({"name": "x"})
        {'name': 'x'}
    """
    if data is None:
        return {}
    if isinstance(data, dict):
        return data
    if isinstance(data, Mapping):
        return dict(data)
    return data
