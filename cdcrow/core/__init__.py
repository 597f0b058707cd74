from .exceptions import (
    ExtractionError,
    ConfigurationError,
    UnsupportedModeError,
    MalformedDocumentError,
    UnsupportedOperationError,
    DuplicateColumnError,
)
from .types import DataType
from .options import SourceOptions
from .context import FieldTypeRegistry, TypeUpdates
from .computed import ComputedColumn
from .engine import (
    RowExtractor,
    ExtractorConfig,
    SchemaAcquisitionMode,
    SpecifiedExtraction,
    DynamicExtraction,
    resolve_strategy,
    normalize_document,
    extract_specified,
    extract_dynamic,
    apply_computed_columns,
    convert_key_case,
    MISSING_VALUE,
)
from .events import MultiplexRecord, RowKind, extract_records, parse_event
from .backends.pandas import DataFrameBackend, PandasBackend
from .registry import Operation, OperationRegistry, register_operation, get_registry
from .udf import UdfRegistry, register_udf, get_udf
from .builder.rules import Rule
from .builder.source import SourceBuilder

__all__ = [
    "ExtractionError",
    "ConfigurationError",
    "UnsupportedModeError",
    "MalformedDocumentError",
    "UnsupportedOperationError",
    "DuplicateColumnError",
    "DataType",
    "SourceOptions",
    "FieldTypeRegistry",
    "TypeUpdates",
    "ComputedColumn",
    "RowExtractor",
    "ExtractorConfig",
    "SchemaAcquisitionMode",
    "SpecifiedExtraction",
    "DynamicExtraction",
    "resolve_strategy",
    "normalize_document",
    "extract_specified",
    "extract_dynamic",
    "apply_computed_columns",
    "convert_key_case",
    "MISSING_VALUE",
    "MultiplexRecord",
    "RowKind",
    "extract_records",
    "parse_event",
    "DataFrameBackend",
    "PandasBackend",
    "Operation",
    "OperationRegistry",
    "register_operation",
    "get_registry",
    "UdfRegistry",
    "register_udf",
    "get_udf",
    "Rule",
    "SourceBuilder",
]
