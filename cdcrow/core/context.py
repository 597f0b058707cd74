from __future__ import annotations
import threading
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from .types import DataType


class TypeUpdates:
    """
    Type registrations collected while one document is extracted.

    Nothing reaches the shared registry until the row has been accepted, so a
    failed document leaves the registry untouched.
    """
    __slots__ = ("_ops",)

    def __init__(self) -> None:
        self._ops: List[Tuple[str, DataType, bool]] = []

    def register_default(self, name: str, column_type: DataType = DataType.STRING) -> None:
        self._ops.append((name, column_type, False))

    def register_override(self, name: str, column_type: DataType) -> None:
        self._ops.append((name, column_type, True))

    def folded(self) -> "TypeUpdates":
        out = TypeUpdates()
        out._ops = [(name.lower(), column_type, override) for name, column_type, override in self._ops]
        return out

    def __iter__(self) -> Iterator[Tuple[str, DataType, bool]]:
        return iter(self._ops)

    def __len__(self) -> int:
        return len(self._ops)


class FieldTypeRegistry:
    """
    Insertion-ordered column name -> DataType registry shared by every document
    one extractor processes.

    Ordinary columns are first-write-wins; computed columns always overwrite.
    The registry only grows. Mutations and snapshots are serialized by a lock so
    an extractor can be shared by concurrent workers.
    """
    __slots__ = ("_types", "_lock")

    def __init__(self, initial: Optional[Mapping[str, DataType]] = None) -> None:
        self._types: Dict[str, DataType] = dict(initial or {})
        self._lock = threading.Lock()

    def commit(self, updates: TypeUpdates) -> List[str]:
        """Apply one document's registrations atomically. Returns newly added column names."""
        added: List[str] = []
        with self._lock:
            for name, column_type, override in updates:
                if name not in self._types:
                    added.append(name)
                if override:
                    self._types[name] = column_type
                else:
                    self._types.setdefault(name, column_type)

        return added

    def snapshot(self) -> Dict[str, DataType]:
        with self._lock:
            return dict(self._types)

    def get(self, name: str) -> Optional[DataType]:
        with self._lock:
            return self._types.get(name)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._types

    def __len__(self) -> int:
        with self._lock:
            return len(self._types)
