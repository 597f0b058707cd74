from typing import List, Dict, Any, Mapping, Optional

import pandas as pd

from ..types import DataType


class DataFrameBackend:
    def to_dataframe(self, rows: List[Dict[str, Optional[str]]], field_types: Mapping[str, DataType]) -> Any:
        raise NotImplementedError

    def concat(self, frames: List[Any]) -> Any:
        raise NotImplementedError


def _to_int(s: str, bits: int) -> Optional[int]:
    try:
        n = int(s)
    except ValueError:
        try:
            f = float(s)
        except ValueError:
            return None
        if not f.is_integer():
            return None
        n = int(f)
    limit = 1 << (bits - 1)
    return n if -limit <= n < limit else None


def _to_float(s: str) -> Optional[float]:
    try:
        return float(s)
    except ValueError:
        return None


def _to_bool(s: str) -> Optional[bool]:
    return {"true": True, "false": False}.get(s.strip().lower())


class PandasBackend(DataFrameBackend):
    """
    Renders extracted rows as a DataFrame: one column per registered field, in
    registration order, each cast from its string encoding to the nullable
    pandas dtype of its declared type. Cells that do not parse become <NA>.
    """
    def to_dataframe(self, rows: List[Dict[str, Optional[str]]], field_types: Mapping[str, DataType]) -> pd.DataFrame:
        columns = list(field_types)
        data = {
            col: self._coerce([row.get(col) for row in rows], column_type)
            for col, column_type in field_types.items()
        }
        return pd.DataFrame(data, columns=columns, index=pd.RangeIndex(len(rows)))

    def concat(self, frames: List[pd.DataFrame]) -> pd.DataFrame:
        if not frames:
            return pd.DataFrame()
        return pd.concat(frames, ignore_index=True)

    @staticmethod
    def _coerce(values: List[Optional[str]], column_type: DataType) -> Any:
        if column_type is DataType.INT:
            return pd.array([None if v is None else _to_int(v, 32) for v in values], dtype="Int32")

        if column_type is DataType.BIGINT:
            return pd.array([None if v is None else _to_int(v, 64) for v in values], dtype="Int64")

        if column_type is DataType.DOUBLE:
            return pd.array([None if v is None else _to_float(v) for v in values], dtype="Float64")

        if column_type is DataType.BOOLEAN:
            return pd.array([None if v is None else _to_bool(v) for v in values], dtype="boolean")

        if column_type is DataType.TIMESTAMP:
            return pd.to_datetime(pd.Series(values, dtype="object"), errors="coerce", utc=True, format="ISO8601")

        if column_type is DataType.DATE:
            return pd.to_datetime(pd.Series(values, dtype="object"), errors="coerce", format="ISO8601").dt.date

        return pd.array(values, dtype="string")
