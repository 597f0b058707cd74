from __future__ import annotations
from typing import Dict, List


class ExtractionError(ValueError):
    """Base exception for all row extraction errors."""


class ConfigurationError(ExtractionError):
    """Raised when source options are invalid. Fatal, never retried."""


class UnsupportedModeError(ConfigurationError):
    """Raised when the schema acquisition mode is not one of SPECIFIED or DYNAMIC."""


class MalformedDocumentError(ExtractionError):
    """Raised when a change event document cannot be parsed or its identifier is not wrapped as expected."""


class UnsupportedOperationError(ExtractionError):
    """Raised for change event operation types that do not carry row data."""


class DuplicateColumnError(ExtractionError):
    """
    Raised when distinct column names of one row fold to the same name.

    `collisions` maps each folded name to the sorted original names that produced it.
    """

    def __init__(self, collisions: Dict[str, List[str]]) -> None:
        self.collisions = collisions
        details = "; ".join(
            f"{folded!r} <- {', '.join(repr(k) for k in originals)}"
            for folded, originals in collisions.items()
        )
        super().__init__(f"Duplicate columns after case-insensitive conversion: {details}")

    def __reduce__(self):
        return type(self), (self.collisions,)
