from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from ..registry import register_operation
from ..types import DataType
from ..udf import get_udf
from ..utils import format_date, parse_datetime


def _spec(rule: Dict[str, Any], key: str) -> Dict[str, Any]:
    spec = rule.get(key)
    return spec if isinstance(spec, dict) else {}


def _op_const(rule: Dict[str, Any], value, apply_tail_ops):
    return apply_tail_ops(rule.get("const"), rule)
register_operation("const", _op_const)


def _date_part(part: str):
    def handler(rule: Dict[str, Any], value, apply_tail_ops):
        dt = parse_datetime(value, _spec(rule, part).get("fmt_in"))
        return apply_tail_ops(getattr(dt, part) if dt is not None else None, rule)
    handler.__name__ = f"_op_{part}"
    return handler

for _part in ("year", "month", "day", "hour", "minute", "second"):
    register_operation(_part, _date_part(_part), output_type=DataType.INT)


def _op_date_format(rule: Dict[str, Any], value, apply_tail_ops):
    spec = _spec(rule, "date_format")
    out_fmt = spec.get("fmt", "%Y-%m-%d")
    val = format_date(src=value, out_fmt=out_fmt, in_fmt=spec.get("fmt_in"))
    return apply_tail_ops(val, rule)
register_operation("date_format", _op_date_format)


def _op_substring(rule: Dict[str, Any], value, apply_tail_ops):
    spec = _spec(rule, "substring")
    if value is None:
        return apply_tail_ops(None, rule)
    start = int(spec.get("start", 0))
    end: Optional[int] = spec.get("end")
    if start < 0 or start > len(value):
        raise ValueError(f"substring start {start} out of range for value of length {len(value)}")
    val = value[start:] if end is None else value[start:int(end)]
    return apply_tail_ops(val, rule)
register_operation("substring", _op_substring)


def _op_truncate(rule: Dict[str, Any], value, apply_tail_ops):
    """
    Truncate to a width: integers and decimals are rounded down to a multiple
    of the width, other strings are cut to their first `width` characters.
    """
    width = int(_spec(rule, "truncate").get("width", 0))
    if width <= 0:
        raise ValueError("truncate width must be a positive integer")
    if value is None:
        return apply_tail_ops(None, rule)

    s = value.strip()
    try:
        num = int(s)
        return apply_tail_ops(str(num - num % width), rule)
    except ValueError:
        pass

    try:
        dec = Decimal(s)
    except InvalidOperation:
        return apply_tail_ops(value[:width], rule)

    if not dec.is_finite():
        return apply_tail_ops(value[:width], rule)
    # width applies to the unscaled value, as for integers
    exponent = dec.as_tuple().exponent
    scale = -exponent if isinstance(exponent, int) and exponent < 0 else 0
    unscaled = int(dec.scaleb(scale))
    truncated = Decimal(unscaled - unscaled % width).scaleb(-scale)
    return apply_tail_ops(str(truncated), rule)
register_operation("truncate", _op_truncate)


def _op_upper(rule: Dict[str, Any], value, apply_tail_ops):
    return apply_tail_ops(value.upper() if value is not None else None, rule)
register_operation("upper", _op_upper)

def _op_lower(rule: Dict[str, Any], value, apply_tail_ops):
    return apply_tail_ops(value.lower() if value is not None else None, rule)
register_operation("lower", _op_lower)

def _op_trim(rule: Dict[str, Any], value, apply_tail_ops):
    return apply_tail_ops(value.strip() if value is not None else None, rule)
register_operation("trim", _op_trim)


def _op_udf(rule: Dict[str, Any], value, apply_tail_ops):
    spec = rule["udf"]
    if isinstance(spec, str):
        spec = {"name": spec}
    name = spec.get("name")
    fn = get_udf(str(name)) if name else None
    if not fn:
        raise LookupError(f"Unknown UDF '{name}'")
    val = fn(value, *spec.get("args", []))
    return apply_tail_ops(val, rule)
register_operation("udf", _op_udf)
