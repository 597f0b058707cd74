from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, Iterable, List, Mapping, Optional, Tuple, Union
import json
import logging

from .backends.pandas import DataFrameBackend, PandasBackend
from .computed import ComputedColumn
from .context import FieldTypeRegistry, TypeUpdates
from .exceptions import (
    ConfigurationError,
    DuplicateColumnError,
    MalformedDocumentError,
    UnsupportedModeError,
)
from .options import SourceOptions
from .path import PathResolver, PathSyntaxError
from .registry import OperationRegistry, get_registry
from .types import DataType, Row
from .utils import to_json_text


ErrorMode = str  # "null" | "default" | "raise" | "warn"

# value written for a configured path that resolves to nothing
MISSING_VALUE = "{}"

_logger = logging.getLogger(__name__)


@dataclass
class ExtractorConfig:
    default_on_error: ErrorMode = "null"
    id_field: str = "_id"
    backend: DataFrameBackend = field(default_factory=PandasBackend)

    logger: Optional[logging.Logger] = None
    metrics_increment: Optional[Callable[[str, int], None]] = None


class SchemaAcquisitionMode(Enum):
    SPECIFIED = "specified"
    DYNAMIC = "dynamic"

    @classmethod
    def parse(cls, value: Any) -> "SchemaAcquisitionMode":
        if isinstance(value, SchemaAcquisitionMode):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise UnsupportedModeError(
                f"Unsupported extraction mode: '{value}'. Expected one of {[m.name for m in cls]}."
            ) from None


@dataclass(frozen=True)
class SpecifiedExtraction:
    paths: Tuple[str, ...]
    names: Tuple[str, ...]
    mode: ClassVar[SchemaAcquisitionMode] = SchemaAcquisitionMode.SPECIFIED


@dataclass(frozen=True)
class DynamicExtraction:
    mode: ClassVar[SchemaAcquisitionMode] = SchemaAcquisitionMode.DYNAMIC


ExtractionStrategy = Union[SpecifiedExtraction, DynamicExtraction]


def parse_field_list(value: Optional[str], option: str) -> List[str]:
    if value is None or not value.strip():
        raise ConfigurationError(f"'{option}' is required in SPECIFIED mode.")

    items = [item.strip() for item in value.split(",")]
    if any(not item for item in items):
        raise ConfigurationError(f"'{option}' contains an empty entry: '{value}'.")
    return items


def resolve_strategy(options: SourceOptions) -> ExtractionStrategy:
    mode = SchemaAcquisitionMode.parse(options.mode)
    if mode is SchemaAcquisitionMode.DYNAMIC:
        return DynamicExtraction()

    paths = parse_field_list(options.field_paths, "field-paths")
    names = parse_field_list(options.field_names, "field-names")
    if len(paths) != len(names):
        raise ConfigurationError(
            f"'field-paths' has {len(paths)} entries but 'field-names' has {len(names)}; "
            "each path needs exactly one column name."
        )

    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigurationError(f"'field-names' repeats column name(s): {duplicates}.")

    for path in paths:
        if not path.startswith("$"):
            raise ConfigurationError(f"Path expression '{path}' must start with '$'.")
        try:
            PathResolver.validate(path)
        except PathSyntaxError as e:
            raise ConfigurationError(f"Invalid path expression '{path}': {e}") from e

    return SpecifiedExtraction(paths=tuple(paths), names=tuple(names))


def normalize_document(
    document: Union[str, bytes, Mapping[str, Any]],
    *,
    id_field: str = "_id",
    id_wrapper: str = "$oid",
) -> Dict[str, Any]:
    """
    Parse a change event document and replace its wrapped identifier
    (`{"_id": {"$oid": "..."}}`) with the plain value.
    """
    if isinstance(document, (str, bytes, bytearray)):
        try:
            doc = json.loads(document)
        except ValueError as e:
            raise MalformedDocumentError(f"Document is not valid JSON: {e}") from e
    elif isinstance(document, Mapping):
        doc = dict(document)
    else:
        raise MalformedDocumentError(f"Document must be JSON text or an object, got {type(document).__name__}.")

    if not isinstance(doc, dict):
        raise MalformedDocumentError("Document root must be a JSON object.")

    if id_field not in doc:
        raise MalformedDocumentError(f"Document has no '{id_field}' field.")

    wrapped = doc[id_field]
    if not isinstance(wrapped, dict) or wrapped.get(id_wrapper) is None:
        raise MalformedDocumentError(
            f"Field '{id_field}' must be an object wrapping a non-null '{id_wrapper}' value, got {to_json_text(wrapped)}."
        )

    doc[id_field] = wrapped[id_wrapper]
    return doc


def extract_specified(document: Dict[str, Any], strategy: SpecifiedExtraction, updates: TypeUpdates) -> Row:
    row: Row = {}
    for path, name in zip(strategy.paths, strategy.names):
        value = to_json_text(PathResolver.get(document, path))
        row[name] = MISSING_VALUE if value is None else value
        updates.register_default(name, DataType.STRING)
    return row


def extract_dynamic(document: Dict[str, Any], updates: TypeUpdates) -> Row:
    row: Row = {}
    for name, value in document.items():
        row[name] = to_json_text(value)
        updates.register_default(name, DataType.STRING)
    return row


def apply_computed_columns(
    parsed: Row,
    row: Row,
    updates: TypeUpdates,
    computed_columns: Iterable[ComputedColumn],
    evaluate: Callable[[ComputedColumn, Optional[str]], Any],
) -> None:
    """
    Evaluate computed columns against the pre-normalization field map. Results
    overwrite same-named cells and the declared type always overrides.
    """
    for column in computed_columns:
        value = evaluate(column, parsed.get(column.field_reference))
        row[column.name] = to_json_text(value)
        updates.register_override(column.name, column.column_type)


def find_case_collisions(names: Iterable[str]) -> Dict[str, List[str]]:
    groups: Dict[str, List[str]] = {}
    for name in names:
        groups.setdefault(name.lower(), []).append(name)
    return {folded: sorted(originals) for folded, originals in groups.items() if len(originals) > 1}


def convert_key_case(row: Row, case_sensitive: bool) -> Row:
    if case_sensitive:
        return row

    collisions = find_case_collisions(row.keys())
    if collisions:
        raise DuplicateColumnError(collisions)

    return {key.lower(): value for key, value in row.items()}


class RowExtractor:
    """
    Turns change event documents into flat rows of string-encoded values and
    maintains the column -> type registry shared by every document it sees.
    """
    def __init__(
        self,
        options: Optional[Union[SourceOptions, Mapping[str, Any]]] = None,
        computed_columns: Optional[Iterable[ComputedColumn]] = None,
        *,
        registry: Optional[OperationRegistry] = None,
        config: Optional[ExtractorConfig] = None,
        field_types: Optional[FieldTypeRegistry] = None,
    ) -> None:
        self._options: SourceOptions = SourceOptions.from_mapping(options)
        self._registry: OperationRegistry = registry or get_registry()
        self._config: ExtractorConfig = config or ExtractorConfig()
        self._logger: logging.Logger = self._config.logger or _logger

        self._strategy: ExtractionStrategy = resolve_strategy(self._options)
        self._computed: Tuple[ComputedColumn, ...] = self._resolve_computed(computed_columns)
        self._field_types: FieldTypeRegistry = field_types if field_types is not None else FieldTypeRegistry()

        self._validate_computed(self._computed)

    @property
    def mode(self) -> SchemaAcquisitionMode:
        return self._strategy.mode

    @property
    def strategy(self) -> ExtractionStrategy:
        return self._strategy

    @property
    def options(self) -> SourceOptions:
        return self._options

    @property
    def case_sensitive(self) -> bool:
        return self._options.case_sensitive

    @property
    def computed_columns(self) -> Tuple[ComputedColumn, ...]:
        return self._computed

    @property
    def primary_keys(self) -> List[str]:
        keys = list(self._options.primary_keys)
        return keys if self.case_sensitive else [k.lower() for k in keys]

    @property
    def field_types(self) -> Dict[str, DataType]:
        return self._field_types.snapshot()

    @property
    def type_registry(self) -> FieldTypeRegistry:
        return self._field_types

    def extract_row(self, document: Union[str, bytes, Mapping[str, Any]]) -> Row:
        doc = normalize_document(document, id_field=self._config.id_field, id_wrapper=self._options.id_wrapper)

        updates = TypeUpdates()
        if isinstance(self._strategy, SpecifiedExtraction):
            parsed = extract_specified(doc, self._strategy, updates)
        else:
            parsed = extract_dynamic(doc, updates)

        row: Row = dict(parsed)
        apply_computed_columns(parsed, row, updates, self._computed, self._evaluate)

        try:
            row = convert_key_case(row, self.case_sensitive)
        except DuplicateColumnError as e:
            self._increment("extractor.collisions", 1)
            self._logger.warning("Rejected document %s: %s", doc.get(self._config.id_field), e)
            raise

        if not self.case_sensitive:
            updates = updates.folded()

        added = self._field_types.commit(updates)
        if added:
            self._logger.debug("Registered new columns %s", added)

        self._increment("extractor.documents", 1)
        return row

    def extract_rows(self, documents: Iterable[Union[str, bytes, Mapping[str, Any]]]) -> List[Row]:
        return [self.extract_row(doc) for doc in documents]

    def to_dataframe(self, rows: Iterable[Row]):
        return self._config.backend.to_dataframe(list(rows), self.field_types)

    def _resolve_computed(self, computed_columns: Optional[Iterable[ComputedColumn]]) -> Tuple[ComputedColumn, ...]:
        resolved: List[ComputedColumn] = []
        for expression in self._options.computed_columns:
            resolved.append(ComputedColumn.parse(expression, registry=self._registry))

        for column in computed_columns or ():
            if not isinstance(column, ComputedColumn):
                raise ConfigurationError(f"Expected ComputedColumn, got {type(column).__name__}.")
            resolved.append(column)

        return tuple(resolved)

    def _validate_computed(self, columns: Tuple[ComputedColumn, ...]) -> None:
        names = [c.name for c in columns]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"Computed column name(s) defined more than once: {duplicates}.")

        for column in columns:
            operations = sorted(k for k in column.rule if k in self._registry.head_keys)
            if len(operations) > 1:
                raise ConfigurationError(
                    f"Computed column '{column.name}' combines several operations {operations}; a rule holds one."
                )
            if self._registry.match(column.rule) is None and not set(column.rule) <= {"default", "cast", "on_error"}:
                raise ConfigurationError(
                    f"Computed column '{column.name}' has no known operation: keys={sorted(column.rule)}."
                )

    def _evaluate(self, column: ComputedColumn, value: Optional[str]) -> Any:
        rule = column.rule
        operation = self._registry.match(rule)
        try:
            if operation is None:
                return self._apply_tail_ops(value, rule)

            return operation.handler(rule, value, self._apply_tail_ops)
        except Exception as exc:
            return self._handle_rule_error(rule, exc, col=column.name)

    @staticmethod
    def _apply_tail_ops(val: Any, rule: Dict[str, Any]) -> Any:
        if val is None and "default" in rule:
            val = rule["default"]

        if "cast" in rule and val is not None:
            t = rule["cast"]
            try:
                if t == "str":
                    val = to_json_text(val)

                elif t == "int":
                    val = int(float(val))

                elif t == "float":
                    val = float(val)

                elif t == "bool":
                    val = val.strip().lower() in {"true", "1", "yes"} if isinstance(val, str) else bool(val)

            except (ValueError, TypeError):
                val = None

        return val

    def _handle_rule_error(self, rule: Dict[str, Any], exc: Exception, *, col: Optional[str]) -> Any:
        mode: ErrorMode = rule.get("on_error") or self._config.default_on_error or "null"

        self._increment("extractor.rule_errors", 1)

        if mode == "raise":
            raise

        if mode == "warn":
            col_info = f" for column '{col}'" if col else ""
            self._logger.warning("Rule error%s: %s | rule=%s", col_info, repr(exc), rule)
            return None

        if mode == "default":
            return rule.get("default")

        return None

    def _increment(self, name: str, n: int) -> None:
        if self._config.metrics_increment:
            self._config.metrics_increment(name, n)
