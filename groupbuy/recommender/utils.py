"""Helpers shared by the scoring modules.

Stored documents are loosely shaped: fields can be missing, null or of the
wrong type. These accessors read them without raising so that scoring always
degrades to default values.
"""

import math
from typing import Any, Dict, Optional

# Default for any AI metric a group does not carry
DEFAULT_AI_METRIC = 50.0


def as_number(value: Any, default: float = 0.0) -> float:
    """Return ``value`` as a finite float, or ``default`` when it is not one."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if math.isnan(value) or math.isinf(value):
        return default
    return float(value)


def as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def nested(document: Any, *path: str) -> Optional[Any]:
    """Follow ``path`` through nested dictionaries, returning None on a miss.

    Example:
        >>> nested({"profile": {"address": {"city": "Pune"}}}, "profile", "address", "city")
        'Pune'
    """
    current = document
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def ai_metric(group: Dict[str, Any], name: str) -> float:
    """Read one of the group's AI metrics, defaulting to 50 when absent."""
    return as_number(nested(group, "aiMetrics", name), DEFAULT_AI_METRIC)


def purchase_history(user: Dict[str, Any]) -> list:
    history = nested(user, "aiProfile", "purchaseHistory")
    if not isinstance(history, list):
        return []
    return [entry for entry in history if isinstance(entry, dict)]
