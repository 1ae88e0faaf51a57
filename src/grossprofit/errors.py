from __future__ import annotations


class CalculationError(Exception):
    pass


class EmptyAggregateError(CalculationError, ValueError):
    """Raised when asked to aggregate zero store results."""

    def __init__(self, message: str = "cannot aggregate 0 store results") -> None:
        super().__init__(message)


class DataFormatError(CalculationError, ValueError):
    """Structurally invalid request data (wrong container types, bad day keys)."""
