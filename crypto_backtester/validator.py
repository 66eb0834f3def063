"""
Parameter & Config Validation
-----------------------------
Fail-fast checks shared by the configuration layer, the indicator engine and
the simulator.

- ``validate_keys`` rejects YAML keys that do not exist on the target dataclass,
  so a typo in a config file never silently falls back to a default.
- ``require_period`` / ``require_multiplier`` / ``require_fee_rate`` /
  ``require_balance`` guard numeric arguments and raise ``InvalidParameter``.
- ``normalize_kind`` maps user spellings of a strategy or indicator to its
  canonical name.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import fields, is_dataclass
from typing import Any, Dict, Set, Type, cast, get_type_hints

from .errors import InvalidParameter

KINDS = ("rsi", "macd", "bollinger")
_KIND_ALIASES = {"rsi": "rsi", "macd": "macd", "bollinger": "bollinger", "bb": "bollinger"}


def validate_keys(
    raw_config: Dict[str, Any], data_class: Type[Any], path: str = ""
) -> None:
    """
    Recursively checks that every key of ``raw_config`` is a field of
    ``data_class``.

    Raises:
        ValueError: naming the dotted section path and the offending keys.
    """
    allowed: Set[str] = {f.name for f in fields(data_class)}
    unknown = set(raw_config.keys()) - allowed

    if unknown:
        where = path or "root"
        raise ValueError(
            f"Config Error: Unknown keys detected at '{where}': {sorted(unknown)}. "
            f"Allowed keys: {sorted(allowed)}"
        )

    hints = get_type_hints(data_class)
    for f in fields(data_class):
        value = raw_config.get(f.name)
        sub_type = hints.get(f.name, f.type)
        if is_dataclass(sub_type) and isinstance(value, dict):
            sub_path = f"{path}.{f.name}" if path else f.name
            validate_keys(value, cast(Type[Any], sub_type), path=sub_path)


def require_period(name: str, value: Any) -> int:
    # bool is an int subclass; True is not a period
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidParameter(name, value, "must be an integer")
    if value < 1:
        raise InvalidParameter(name, value, "must be >= 1")
    return int(value)


def require_multiplier(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidParameter(name, value, "must be a number")
    if not math.isfinite(value) or value < 0:
        raise InvalidParameter(name, value, "must be finite and >= 0")
    return float(value)


def require_fee_rate(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidParameter("fee_rate", value, "must be a number")
    if not 0.0 <= value < 1.0:
        raise InvalidParameter("fee_rate", value, "must be in [0, 1)")
    return float(value)


def require_balance(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidParameter("initial_balance", value, "must be a number")
    if not math.isfinite(value) or value <= 0:
        raise InvalidParameter("initial_balance", value, "must be finite and > 0")
    return float(value)


def normalize_kind(value: Any, *, name: str = "kind") -> str:
    """Returns 'rsi', 'macd' or 'bollinger' for any accepted spelling."""
    key = str(value).strip().lower() if value is not None else ""
    try:
        return _KIND_ALIASES[key]
    except KeyError:
        raise InvalidParameter(name, value, f"expected one of {list(_KIND_ALIASES)}") from None
