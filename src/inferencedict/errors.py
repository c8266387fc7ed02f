"""Exception and warning types raised by inferencedict."""

from __future__ import annotations

from typing import Any, Optional


class InferenceDictError(Exception):
    """Base exception for all inferencedict failures."""


class SchemaError(InferenceDictError):
    """Raised when the group layout of a container is misused."""


class DuplicateGroupError(SchemaError, ValueError):
    """Raised when a group name appears more than once."""

    def __init__(self, group: str) -> None:
        super().__init__(f"Group {group!r} is specified more than once.")
        self.group = group


class UnknownGroupError(SchemaError, KeyError):
    """Raised when a group is looked up that the container does not hold."""

    def __init__(self, group: Any, available: Optional[tuple] = None) -> None:
        message = f"Group {group!r} not found"
        if available is not None:
            message += f"; available groups are {list(available)}"
        super().__init__(message)
        self.group = group

    def __str__(self) -> str:
        return str(self.args[0])


class DimensionMismatchError(InferenceDictError, ValueError):
    """Raised when two datasets disagree on dimensions that must match."""


class ShapeMismatchError(InferenceDictError, ValueError):
    """Raised when arrays that are assembled together have different shapes."""


class OutOfRangeSelectionError(InferenceDictError, LookupError):
    """Raised when a requested coordinate does not exist on a dimension."""

    def __init__(self, dim: str, value: Any, group: Optional[str] = None) -> None:
        message = f"Coordinate {value!r} not found on dimension {dim!r}"
        if group is not None:
            message += f" of group {group!r}"
        super().__init__(message)
        self.dim = dim
        self.value = value
        self.group = group


class MissingDimensionError(InferenceDictError, KeyError):
    """Raised when a dataset is indexed on a dimension it does not have."""

    def __init__(self, dim: str, available: tuple) -> None:
        super().__init__(f"Dimension {dim!r} not found; dimensions are {list(available)}")
        self.dim = dim

    def __str__(self) -> str:
        return str(self.args[0])


class MissingDimensionWarning(UserWarning):
    """Emitted when a selection skips a group lacking a requested dimension."""
