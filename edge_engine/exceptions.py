"""
Error Taxonomy
==============
Input problems are raised before any expensive run starts. The simulation,
sweep and pruning engines assume validated inputs and never retry: every
computation is deterministic given its inputs and random source.

    EdgeEngineError (ValueError)
    ├── InputValidationError       empty pool / empty frequency rows
    ├── InsufficientDataError      fewer than 30 valid raw P&L entries
    └── DomainConstraintError      no usable risk unit
        ├── NoLossReferenceError   no losing trade present
        └── ZeroRiskUnitError      derived risk unit equals zero

Out-of-range Optimal-F settings are clamped, not raised; the clamp is
reported with ``ConfigClampWarning``.
"""

from typing import Optional


class EdgeEngineError(ValueError):
    """Base class for all engine input errors."""


class InputValidationError(EdgeEngineError):
    """Structurally unusable input (empty pool, bad matrix shape)."""


class InsufficientDataError(EdgeEngineError):
    """Too few valid trades to derive a distribution."""

    def __init__(self, valid_count: int, required: int):
        self.valid_count = valid_count
        self.required = required
        super().__init__(
            f"Insufficient data: found {valid_count} valid trades, "
            f"at least {required} are required."
        )


class DomainConstraintError(EdgeEngineError):
    """Input is well formed but a 1R risk unit cannot be derived from it."""

    def __init__(self, message: str, valid_count: Optional[int] = None):
        self.valid_count = valid_count
        super().__init__(message)


class NoLossReferenceError(DomainConstraintError):
    def __init__(self, valid_count: int):
        super().__init__(
            "No losing trades found; cannot derive the 1R risk unit.",
            valid_count,
        )


class ZeroRiskUnitError(DomainConstraintError):
    def __init__(self, valid_count: int):
        super().__init__("Derived 1R risk unit is zero.", valid_count)


class ConfigClampWarning(UserWarning):
    """Configuration fields were outside their allowed range and were clamped."""
