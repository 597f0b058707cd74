from __future__ import annotations
from typing import Callable, Dict, List, Optional, Any

# A user-defined evaluation rule receives the source field value (None when the
# field is absent) followed by any literal arguments from the rule.
Udf = Callable[..., Any]


class UdfRegistry:
    _funcs: Dict[str, Udf] = {}

    @classmethod
    def register(cls, name: str, func: Udf) -> None:
        if not name or not callable(func):
            raise ValueError("UDF requires a non-empty name and a callable.")

        cls._funcs[name] = func

    @classmethod
    def unregister(cls, name: str) -> None:
        cls._funcs.pop(name, None)

    @classmethod
    def get(cls, name: str) -> Optional[Udf]:
        return cls._funcs.get(name)

    @classmethod
    def names(cls) -> List[str]:
        return sorted(cls._funcs)


def register_udf(name: str, func: Udf) -> None:
    UdfRegistry.register(name, func)


def get_udf(name: str) -> Optional[Udf]:
    return UdfRegistry.get(name)
