import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from cdcrow.core import (
    ComputedColumn,
    ExtractionError,
    RowExtractor,
    SourceOptions,
    SpecifiedExtraction,
    extract_records,
)
from cdcrow.core.engine import find_case_collisions

logger = logging.getLogger(__name__)


def is_source_valid(options: Mapping[str, Any], computed_columns: Optional[List[ComputedColumn]] = None) -> bool:
    try:
        RowExtractor(options, computed_columns)
        return True
    except ExtractionError as err:
        logger.error("Invalid source options: %s", err)
        return False


def validate_with_warnings(options: Mapping[str, Any], computed_columns: Optional[List[ComputedColumn]] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {"ok": False, "errors": [], "warnings": []}

    try:
        extractor = RowExtractor(options, computed_columns)
    except ExtractionError as e:
        out["errors"].append(str(e))
        return out

    if not isinstance(options, SourceOptions):
        unknown = SourceOptions.unknown_keys(options)
        if unknown:
            out["warnings"].append(f"Unknown options are ignored: {unknown}")

    strategy = extractor.strategy
    computed_names = [c.name for c in extractor.computed_columns]

    if isinstance(strategy, SpecifiedExtraction):
        for column in extractor.computed_columns:
            if column.field_reference not in strategy.names:
                out["warnings"].append(
                    f"Computed column '{column.name}' references '{column.field_reference}', "
                    f"which is not one of the field names {list(strategy.names)}; it will always see a missing value."
                )
            if column.name in strategy.names:
                out["warnings"].append(f"Computed column '{column.name}' replaces the extracted field of the same name.")
        static_names = list(strategy.names) + [n for n in computed_names if n not in strategy.names]
    else:
        if extractor.options.field_paths or extractor.options.field_names:
            out["warnings"].append("'field-paths' / 'field-names' are ignored in DYNAMIC mode.")
        static_names = computed_names

    if not extractor.case_sensitive:
        for folded, originals in find_case_collisions(static_names).items():
            out["errors"].append(
                f"Columns {originals} collide as '{folded}' when case-insensitive; every document would be rejected."
            )

    out["ok"] = len(out["errors"]) == 0
    return out


def dry_run(options: Mapping[str, Any], sample: Iterable[Any], computed_columns: Optional[List[ComputedColumn]] = None) -> Dict[str, Any]:
    try:
        extractor = RowExtractor(options, computed_columns)
    except ExtractionError as e:
        return {"ok": False, "stage": "configuration", "error": str(e)}

    rows: List[Dict[str, Any]] = []
    failures: List[Dict[str, Any]] = []
    for index, event in enumerate(sample):
        try:
            for record in extract_records(event, extractor):
                rows.append({"kind": record.kind.name, "table": f"{record.database}.{record.table}", "row": record.row})
        except ExtractionError as e:
            failures.append({"index": index, "error_type": type(e).__name__, "error": str(e)})

    return {
        "ok": not failures,
        "stage": "extraction",
        "rows": rows,
        "failures": failures,
        "field_types": {name: t.value for name, t in extractor.field_types.items()},
        "primary_keys": extractor.primary_keys,
    }
