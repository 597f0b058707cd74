from __future__ import annotations
import copy
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .exceptions import ConfigurationError
from .registry import OperationRegistry, get_registry
from .types import CAST_TYPES, DataType
from .udf import get_udf


_EXPRESSION = re.compile(r"^\s*([^=\s]+)\s*=\s*(\w+)\s*\((.*)\)\s*$")

# java.time pattern letter runs -> strftime directives
_JAVA_PATTERN = {
    "yyyy": "%Y", "yy": "%y", "MM": "%m", "dd": "%d",
    "HH": "%H", "mm": "%M", "ss": "%S",
}
# quoted literal | run of one pattern letter | other literal text
_JAVA_TOKEN = re.compile(r"'([^']*)'|([A-Za-z])\2*|[^A-Za-z']+")

_DATE_PARTS = {"year", "month", "day", "hour", "minute", "second"}
_STRING_FUNCS = {"upper", "lower", "trim"}


def java_pattern_to_strftime(pattern: str) -> str:
    """
    Translate a java.time style pattern such as `yyyy-MM-dd'T'HH:mm` to a
    strftime format. Patterns already written with `%` directives pass through.
    Raises ValueError for letter runs with no exact strftime equivalent
    (e.g. `SSS`, `MMM`).
    """
    if "%" in pattern:
        return pattern

    out: List[str] = []
    pos = 0
    while pos < len(pattern):
        m = _JAVA_TOKEN.match(pattern, pos)
        if not m:
            raise ValueError(f"unterminated quote in date pattern '{pattern}'")

        if m.group(1) is not None:
            out.append(m.group(1) or "'")  # '' is an escaped quote
        elif m.group(2):
            run = m.group(0)
            if run not in _JAVA_PATTERN:
                raise ValueError(f"date pattern '{pattern}' uses '{run}', which has no strftime equivalent")
            out.append(_JAVA_PATTERN[run])
        else:
            out.append(m.group(0))
        pos = m.end()

    return "".join(out)


@dataclass(frozen=True)
class ComputedColumn:
    """
    A derived output column: `rule` is applied to the value of `field_reference`
    and the result is written under `name`, declared as `column_type`.
    """
    name: str
    field_reference: str
    rule: Dict[str, Any] = field(hash=False)
    column_type: DataType = DataType.STRING

    def __post_init__(self) -> None:
        if not self.name or not isinstance(self.name, str):
            raise ConfigurationError("Computed column name must be a non-empty string.")
        if not self.field_reference or not isinstance(self.field_reference, str):
            raise ConfigurationError(f"Computed column '{self.name}' needs a non-empty field reference.")
        if not isinstance(self.rule, dict):
            raise ConfigurationError(f"Computed column '{self.name}' rule must be an object (dict).")
        # the column owns a private copy of its rule
        object.__setattr__(self, "rule", copy.deepcopy(self.rule))

    @classmethod
    def of(
        cls,
        name: str,
        field_reference: str,
        rule: Any,
        column_type: Optional[Union[DataType, str]] = None,
        *,
        registry: Optional[OperationRegistry] = None,
    ) -> "ComputedColumn":
        """Build a descriptor from a rule dict or Rule builder, deriving the column type when not given."""
        built = rule.build() if hasattr(rule, "build") else rule
        if not isinstance(built, dict):
            raise ConfigurationError(f"Computed column '{name}' rule must be an object (dict).")

        if column_type is None:
            column_type = cls.infer_type(built, registry or get_registry())

        try:
            declared = DataType.parse(column_type)
        except ValueError as e:
            raise ConfigurationError(f"Computed column '{name}': {e}") from e

        return cls(name=name, field_reference=field_reference, rule=built, column_type=declared)

    @staticmethod
    def infer_type(rule: Dict[str, Any], registry: OperationRegistry) -> DataType:
        if rule.get("cast") in CAST_TYPES:
            return CAST_TYPES[rule["cast"]]
        operation = registry.match(rule)
        return operation.output_type if operation else DataType.STRING

    @classmethod
    def parse(cls, expression: str, *, registry: Optional[OperationRegistry] = None) -> "ComputedColumn":
        """
        Parse `name=function(field[, args...])`, e.g. `part=date_format(created_at,yyyy-MM-dd)`.

        Functions: year, month, day, hour, minute, second, date_format, substring,
        truncate, upper, lower, trim, or the name of a registered UDF.
        """
        m = _EXPRESSION.match(expression or "")
        if not m:
            raise ConfigurationError(
                f"Invalid computed column expression '{expression}'. Expected 'name=function(field,args...)'."
            )
        name, func, raw_args = m.group(1), m.group(2), m.group(3)
        args: List[str] = [a.strip() for a in raw_args.split(",")] if raw_args.strip() else []
        if not args or not args[0]:
            raise ConfigurationError(f"Computed column '{name}': '{func}' needs a field reference.")
        field_reference, extra = args[0], args[1:]

        def expect(count: int, optional: int = 0) -> None:
            if not (count <= len(extra) <= count + optional):
                raise ConfigurationError(
                    f"Computed column '{name}': '{func}' takes {count}"
                    f"{f'-{count + optional}' if optional else ''} argument(s) after the field, got {len(extra)}."
                )

        def as_int(text: str) -> int:
            try:
                return int(text)
            except ValueError:
                raise ConfigurationError(f"Computed column '{name}': '{text}' is not an integer.") from None

        if func in _DATE_PARTS or func in _STRING_FUNCS:
            expect(0)
            rule: Dict[str, Any] = {func: {}}
        elif func == "date_format":
            expect(1)
            try:
                fmt = java_pattern_to_strftime(extra[0])
            except ValueError as e:
                raise ConfigurationError(f"Computed column '{name}': {e}") from None
            rule = {"date_format": {"fmt": fmt}}
        elif func == "substring":
            expect(1, optional=1)
            spec: Dict[str, Any] = {"start": as_int(extra[0])}
            if len(extra) == 2:
                spec["end"] = as_int(extra[1])
            rule = {"substring": spec}
        elif func == "truncate":
            expect(1)
            rule = {"truncate": {"width": as_int(extra[0])}}
        elif get_udf(func) is not None:
            rule = {"udf": {"name": func, "args": extra}}
        else:
            raise ConfigurationError(f"Computed column '{name}': unsupported function '{func}'.")

        return cls.of(name, field_reference, rule, registry=registry)
