from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Optional

import pandas as pd


def to_json_text(value: Any) -> Optional[str]:
    """
    Canonical string encoding of a JSON value for a row cell.

    Strings pass through, booleans and numbers use their JSON spelling,
    objects and arrays become compact JSON text. None stays None.
    """
    if value is None:
        return None

    if isinstance(value, str):
        return value

    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))

    if isinstance(value, (int, float)):
        return json.dumps(value)

    return str(value)


def _from_epoch_millis(value: float) -> datetime:
    return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)


def _unwrap_extended_date(value: Any) -> Any:
    # {"$date": ...} as written by MongoDB extended JSON
    if isinstance(value, dict) and "$date" in value:
        inner = value["$date"]
        if isinstance(inner, dict) and "$numberLong" in inner:
            inner = inner["$numberLong"]
        return inner
    return value


def parse_datetime(src: Any, in_fmt: Optional[str] = None) -> Optional[datetime]:
    """
    Parse a cell value into a datetime.

    Accepts ISO-8601 text, MongoDB extended JSON dates (`{"$date": ...}`,
    also as JSON text) and epoch milliseconds. Returns None when unparseable.
    """
    if src is None:
        return None

    if isinstance(src, datetime):
        return src

    if isinstance(src, str) and src.lstrip().startswith("{"):
        try:
            src = json.loads(src)
        except ValueError:
            return None

    src = _unwrap_extended_date(src)
    if isinstance(src, bool) or src is None:
        return None

    if isinstance(src, (int, float)):
        return _from_epoch_millis(float(src))

    s = str(src).strip()
    if not s:
        return None

    if in_fmt:
        try:
            return datetime.strptime(s, in_fmt)
        except ValueError:
            return None

    if s.lstrip("-").isdigit():
        return _from_epoch_millis(float(s))

    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        pass

    # pandas resolves words such as "now" or "today" against the wall clock
    if not any(ch.isdigit() for ch in s):
        return None

    ts = pd.to_datetime(s, utc=False, errors="coerce")
    if pd.isna(ts):
        return None

    return ts.to_pydatetime()


def format_date(src: Any, out_fmt: str, in_fmt: Optional[str] = None) -> Optional[str]:
    dt = parse_datetime(src, in_fmt)
    if dt is None:
        return None

    return dt.strftime(out_fmt)
