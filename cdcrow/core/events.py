from __future__ import annotations
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple, Union

from .engine import RowExtractor
from .exceptions import MalformedDocumentError, UnsupportedOperationError
from .types import DataType, Row


UPSERT_OPERATIONS = {"insert", "update", "replace"}
DELETE_OPERATIONS = {"delete"}


class RowKind(Enum):
    INSERT = "+I"
    DELETE = "-D"


@dataclass(frozen=True)
class MultiplexRecord:
    """One extracted row with the table it belongs to and the schema known when it was produced."""
    database: str
    table: str
    field_types: Dict[str, DataType] = field(hash=False)
    primary_keys: List[str] = field(hash=False)
    row: Row = field(hash=False)
    kind: RowKind = RowKind.INSERT


def parse_event(event: Union[str, bytes, Mapping[str, Any]]) -> Dict[str, Any]:
    """Decode a change event, unwrapping a Kafka Connect style `payload` envelope."""
    if isinstance(event, (str, bytes, bytearray)):
        try:
            event = json.loads(event)
        except ValueError as e:
            raise MalformedDocumentError(f"Change event is not valid JSON: {e}") from e

    if not isinstance(event, Mapping):
        raise MalformedDocumentError("Change event must be a JSON object.")

    payload = event.get("payload")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise MalformedDocumentError(f"Change event payload is not valid JSON: {e}") from e
    if isinstance(payload, Mapping):
        return dict(payload)

    return dict(event)


def _namespace(event: Dict[str, Any]) -> Tuple[str, str]:
    ns = event.get("ns")
    if isinstance(ns, str):
        try:
            ns = json.loads(ns)
        except ValueError as e:
            raise MalformedDocumentError(f"Change event namespace is not valid JSON: {e}") from e
    if not isinstance(ns, Mapping) or not ns.get("db") or not ns.get("coll"):
        raise MalformedDocumentError("Change event has no 'ns.db' / 'ns.coll' namespace.")
    return ns["db"], ns["coll"]


def extract_records(event: Union[str, bytes, Mapping[str, Any]], extractor: RowExtractor) -> List[MultiplexRecord]:
    """
    Turn one change event into records for the downstream sink.

    insert, update and replace events carry `fullDocument` and become upserts.
    delete events only carry `documentKey` and become deletes.
    """
    ev = parse_event(event)
    op = ev.get("operationType")
    database, table = _namespace(ev)

    if op in UPSERT_OPERATIONS:
        document = ev.get("fullDocument")
        if document is None:
            raise MalformedDocumentError(
                f"'{op}' event has no fullDocument; the change stream must look up full documents."
            )
        kind = RowKind.INSERT
    elif op in DELETE_OPERATIONS:
        document = ev.get("documentKey")
        if document is None:
            raise MalformedDocumentError("'delete' event has no documentKey.")
        kind = RowKind.DELETE
    else:
        raise UnsupportedOperationError(f"Unknown record operation: {op}")

    row = extractor.extract_row(document)
    return [
        MultiplexRecord(
            database=database,
            table=table,
            field_types=extractor.field_types,
            primary_keys=extractor.primary_keys,
            row=row,
            kind=kind,
        )
    ]
