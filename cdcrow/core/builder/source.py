from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple

from ..computed import ComputedColumn
from ..engine import ExtractorConfig, RowExtractor, SchemaAcquisitionMode
from ..options import SourceOptions
from .rules import ComputedColumnBuilder, Rule


class SourceBuilder:
    """
    Fluent alternative to a flat option map:

        extractor = (
            SourceBuilder()
            .field("order_id", "$.order.id")
            .field("total", "$.order.total")
            .computed("order_year", "created_at").year().end()
            .case_sensitive(False)
            .to_extractor()
        )

    Adding a field switches the source to SPECIFIED mode.
    """
    __slots__ = ("_mode", "_fields", "_case_sensitive", "_primary_keys", "_id_wrapper", "_computed")

    def __init__(self) -> None:
        self._mode: SchemaAcquisitionMode = SchemaAcquisitionMode.DYNAMIC
        self._fields: Dict[str, str] = {}
        self._case_sensitive: bool = True
        self._primary_keys: List[str] = ["_id"]
        self._id_wrapper: str = "$oid"
        self._computed: List[ComputedColumn] = []

    def dynamic(self) -> "SourceBuilder":
        self._mode = SchemaAcquisitionMode.DYNAMIC
        self._fields = {}
        return self

    def field(self, name: str, path: str) -> "SourceBuilder":
        if not name or not isinstance(name, str):
            raise ValueError("field(name=...) requires a non-empty string.")
        if not path or not isinstance(path, str):
            raise ValueError("field(path=...) requires a non-empty string.")
        if "," in name or "," in path:
            raise ValueError("field() names and paths cannot contain ','.")
        self._mode = SchemaAcquisitionMode.SPECIFIED
        self._fields[name] = path
        return self

    def case_sensitive(self, enabled: bool = True) -> "SourceBuilder":
        self._case_sensitive = bool(enabled)
        return self

    def primary_keys(self, *keys: str) -> "SourceBuilder":
        if not keys:
            raise ValueError("primary_keys() needs at least one key.")
        self._primary_keys = list(keys)
        return self

    def id_wrapper(self, key: str) -> "SourceBuilder":
        self._id_wrapper = key
        return self

    def computed(self, name: str, field_reference: str) -> ComputedColumnBuilder:
        if not name or not isinstance(name, str):
            raise ValueError("computed(name=...) requires a non-empty string.")
        return ComputedColumnBuilder(self, name, field_reference)

    def add_computed(self, name: str, field_reference: str, rule: Any, column_type: Optional[Any] = None) -> "SourceBuilder":
        if isinstance(rule, Rule):
            rule = rule.build()
        return self._add_computed(name, field_reference, rule, column_type)

    def _add_computed(self, name: str, field_reference: str, rule: Dict[str, Any], column_type: Optional[Any]) -> "SourceBuilder":
        self._computed = [c for c in self._computed if c.name != name]
        self._computed.append(ComputedColumn.of(name, field_reference, rule, column_type))
        return self

    def build(self) -> Tuple[SourceOptions, List[ComputedColumn]]:
        options: Dict[str, Any] = {
            "mode": self._mode.value,
            "case-sensitive": self._case_sensitive,
            "primary-keys": list(self._primary_keys),
            "id-wrapper": self._id_wrapper,
        }
        if self._mode is SchemaAcquisitionMode.SPECIFIED:
            options["field-paths"] = ",".join(self._fields.values())
            options["field-names"] = ",".join(self._fields.keys())
        return SourceOptions.from_mapping(options), list(self._computed)

    def to_extractor(self, *, config: Optional[ExtractorConfig] = None) -> RowExtractor:
        options, computed = self.build()
        return RowExtractor(options, computed, config=config)

    def from_options(self, options: Any, computed_columns: Optional[List[ComputedColumn]] = None) -> "SourceBuilder":
        opts = SourceOptions.from_mapping(options)
        extractor = RowExtractor(opts, computed_columns)
        self._mode = extractor.mode
        self._fields = {}
        if self._mode is SchemaAcquisitionMode.SPECIFIED:
            self._fields = dict(zip(extractor.strategy.names, extractor.strategy.paths))
        self._case_sensitive = opts.case_sensitive
        self._primary_keys = list(opts.primary_keys)
        self._id_wrapper = opts.id_wrapper
        self._computed = list(extractor.computed_columns)
        return self
