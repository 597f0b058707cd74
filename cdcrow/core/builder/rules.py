from __future__ import annotations
import copy
from typing import Any, Dict, FrozenSet, Literal, Optional

from ..types import CAST_TYPES

CastType  = Literal["str", "int", "float", "bool"]
ErrorMode = Literal["null", "default", "raise", "warn"]

_CAST_TYPES: FrozenSet[str] = frozenset(CAST_TYPES)
_ERROR_MODES: FrozenSet[str] = frozenset({"null", "default", "raise", "warn"})
_TAIL_KEYS: FrozenSet[str] = frozenset({"default", "cast", "on_error"})


def _deepcopy_rule(obj: Any) -> Any:
    if isinstance(obj, (dict, list)):
        return copy.deepcopy(obj)
    return obj


class _RuleBuilder:
    """
    Fluent builder for computed column rules. A rule holds at most one operation
    plus the tail keys 'default', 'cast' and 'on_error'; a rule with tail keys
    only passes the source value through them.
    """
    __slots__ = ("_rule",)

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._rule: Dict[str, Any] = initial or {}

    def _merge(self, fragment: Dict[str, Any]) -> "_RuleBuilder":
        current = [k for k in self._rule if k not in _TAIL_KEYS]
        for key in fragment:
            if current and key not in current:
                raise ValueError(f"A rule holds one operation: '{current[0]}' is already set, cannot add '{key}'.")
        self._rule.update(fragment)
        return self

    def const(self, value: Any) -> "_RuleBuilder":
        return self._merge({"const": _deepcopy_rule(value)})

    def _date_part(self, part: str, fmt_in: Optional[str]) -> "_RuleBuilder":
        return self._merge({part: {"fmt_in": fmt_in} if fmt_in else {}})

    def year(self, fmt_in: Optional[str] = None) -> "_RuleBuilder": return self._date_part("year", fmt_in)
    def month(self, fmt_in: Optional[str] = None) -> "_RuleBuilder": return self._date_part("month", fmt_in)
    def day(self, fmt_in: Optional[str] = None) -> "_RuleBuilder": return self._date_part("day", fmt_in)
    def hour(self, fmt_in: Optional[str] = None) -> "_RuleBuilder": return self._date_part("hour", fmt_in)
    def minute(self, fmt_in: Optional[str] = None) -> "_RuleBuilder": return self._date_part("minute", fmt_in)
    def second(self, fmt_in: Optional[str] = None) -> "_RuleBuilder": return self._date_part("second", fmt_in)

    def date_format(self, fmt: str = "%Y-%m-%d", fmt_in: Optional[str] = None) -> "_RuleBuilder":
        spec: Dict[str, Any] = {"fmt": fmt}
        if fmt_in is not None:
            spec["fmt_in"] = fmt_in
        return self._merge({"date_format": spec})

    def substring(self, start: int, end: Optional[int] = None) -> "_RuleBuilder":
        if not isinstance(start, int) or start < 0:
            raise ValueError("substring(start=...) must be a non-negative integer.")
        spec: Dict[str, Any] = {"start": start}
        if end is not None:
            spec["end"] = int(end)
        return self._merge({"substring": spec})

    def truncate(self, width: int) -> "_RuleBuilder":
        if not isinstance(width, int) or width <= 0:
            raise ValueError("truncate(width=...) must be a positive integer.")
        return self._merge({"truncate": {"width": width}})

    def upper(self) -> "_RuleBuilder": return self._merge({"upper": {}})
    def lower(self) -> "_RuleBuilder": return self._merge({"lower": {}})
    def trim(self) -> "_RuleBuilder": return self._merge({"trim": {}})

    def udf(self, name: str, *args: Any) -> "_RuleBuilder":
        if not name or not isinstance(name, str):
            raise ValueError("udf(name=...) requires a non-empty string.")
        return self._merge({"udf": {"name": name, "args": [_deepcopy_rule(a) for a in args]}})

    def _tail(self, key: str, value: Any, allowed: Optional[FrozenSet[str]] = None) -> "_RuleBuilder":
        if allowed is not None and value not in allowed:
            raise ValueError(f"{key}() must be one of {sorted(allowed)}, got {value!r}.")
        self._rule[key] = _deepcopy_rule(value)
        return self

    def default(self, value: Any) -> "_RuleBuilder":
        return self._tail("default", value)

    def cast(self, to: CastType) -> "_RuleBuilder":
        return self._tail("cast", to, _CAST_TYPES)

    def on_error(self, mode: ErrorMode) -> "_RuleBuilder":
        return self._tail("on_error", mode, _ERROR_MODES)

    def build(self) -> Dict[str, Any]:
        return _deepcopy_rule(self._rule)


class Rule(_RuleBuilder):
    __slots__ = ()


class ComputedColumnBuilder(_RuleBuilder):
    __slots__ = ("_parent", "_name", "_field_reference", "_column_type")

    def __init__(self, parent: Any, name: str, field_reference: str) -> None:
        super().__init__()
        self._parent = parent
        self._name = name
        self._field_reference = field_reference
        self._column_type: Optional[str] = None

    def as_type(self, column_type: Any) -> "ComputedColumnBuilder":
        self._column_type = column_type
        return self

    def end(self) -> Any:
        self._parent._add_computed(self._name, self._field_reference, self.build(), self._column_type)
        return self._parent

    done = end
