from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set

from .types import DataType

# Operation handler signature:
# handler(rule: dict,
#         value: Optional[str],                                # source field value, None when absent
#         apply_tail_ops: Callable[[Any, Dict[str, Any]], Any]
# ) -> Any                                                     # result after tail ops

OperationHandler = Callable[[Dict[str, Any], Optional[str], Callable[[Any, Dict[str, Any]], Any]], Any]


@dataclass(frozen=True)
class Operation:
    head_key: str
    handler: OperationHandler
    output_type: DataType = DataType.STRING


class OperationRegistry:
    """
    Computed column operations keyed by the 'head key' that selects them in a
    rule (e.g. 'year', 'substring', custom ops). When a rule carries several
    head keys the earliest registered one wins, unless another was prepended.
    """
    def __init__(self) -> None:
        self._operations: Dict[str, Operation] = {}
        self._precedence: List[str] = []

    def register(
        self,
        head_key: str,
        handler: OperationHandler,
        *,
        output_type: DataType = DataType.STRING,
        prepend: bool = False,
    ) -> Operation:
        if not head_key or not isinstance(head_key, str):
            raise ValueError("head_key must be a non-empty string.")

        operation = Operation(head_key, handler, DataType.parse(output_type))
        self._operations[head_key] = operation
        self._precedence = [k for k in self._precedence if k != head_key]
        self._precedence.insert(0 if prepend else len(self._precedence), head_key)
        return operation

    def get_match_key(self, rule: Dict[str, Any]) -> Optional[str]:
        return next((k for k in self._precedence if k in rule), None)

    def match(self, rule: Dict[str, Any]) -> Optional[Operation]:
        key = self.get_match_key(rule)
        return self._operations[key] if key is not None else None

    def output_type(self, key: Optional[str]) -> DataType:
        operation = self._operations.get(key) if key is not None else None
        return operation.output_type if operation else DataType.STRING

    @property
    def head_keys(self) -> Set[str]:
        return set(self._operations)


_default_registry: Optional[OperationRegistry] = None


def get_registry() -> OperationRegistry:
    global _default_registry
    if _default_registry is None:
        _default_registry = OperationRegistry()
        from .ops import builtin  # noqa: F401  registers built-ins

    return _default_registry


def register_operation(
    head_key: str,
    handler: OperationHandler,
    *,
    output_type: DataType = DataType.STRING,
    prepend: bool = False,
) -> Operation:
    return get_registry().register(head_key, handler, output_type=output_type, prepend=prepend)
