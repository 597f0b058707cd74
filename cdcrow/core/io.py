from __future__ import annotations
from typing import Iterator, List, Optional
import logging

from .engine import RowExtractor
from .events import extract_records
from .exceptions import ConfigurationError, ExtractionError

_logger = logging.getLogger(__name__)

KIND_COLUMN = "_row_kind"


def iter_jsonl_events(in_path: str) -> Iterator[str]:
    with open(in_path, "r", encoding="utf-8") as fin:
        for line in fin:
            line = line.strip()
            if not line:
                continue

            yield line


def jsonl_to_dataframe(extractor: RowExtractor, in_path: str, *, skip_errors: bool = False, kind_column: Optional[str] = KIND_COLUMN):
    """
    Extract every change event of a JSONL file into one DataFrame. Columns
    follow the extractor's type registry as it stands after the last event, so
    rows produced before a column first appeared hold <NA> for it.
    """
    rows: List[dict] = []
    kinds: List[str] = []
    for index, event in enumerate(iter_jsonl_events(in_path), start=1):
        try:
            records = extract_records(event, extractor)
        except ExtractionError as e:
            if not skip_errors:
                raise
            _logger.warning("Skipping event %d of %s: %s", index, in_path, e)
            continue

        for record in records:
            rows.append(record.row)
            kinds.append(record.kind.value)

    df = extractor.to_dataframe(rows)
    if kind_column:
        if kind_column in df.columns:
            raise ConfigurationError(
                f"Row kind column '{kind_column}' clashes with an extracted column of the same name; "
                "pass a different kind_column."
            )
        df.insert(0, kind_column, kinds)
    return df


def jsonl_to_csv(extractor: RowExtractor, in_path: str, out_path: str, *, skip_errors: bool = False, include_header: bool = True) -> None:
    df = jsonl_to_dataframe(extractor, in_path, skip_errors=skip_errors)
    df.to_csv(out_path, header=include_header, index=False)


def jsonl_to_parquet(extractor: RowExtractor, in_path: str, out_path: str, *, skip_errors: bool = False, compression: Optional[str] = "snappy") -> None:
    try:
        import pyarrow  # noqa: F401
    except Exception as e:
        raise RuntimeError("pyarrow is required for Parquet output. Please 'pip install pyarrow'.") from e

    df = jsonl_to_dataframe(extractor, in_path, skip_errors=skip_errors)
    df.to_parquet(out_path, compression=compression, index=False)

