"""
Domain Errors

This module defines the error taxonomy of the reconciliation core. Every
error is local to a single entity / date / series computation, so batch
operations catch `DomainError` per entity and keep going.
"""

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for domain errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidSelectionError(DomainError):
    """Raised when a hierarchy path does not exist in the supplied snapshot."""


class InsufficientDataError(DomainError):
    """Raised when there is not enough source data to build a result."""


class MissingBaselineError(DomainError):
    """Raised when a period comparison cannot resolve its previous period."""

    def __init__(self, entity: str, period: str, details: Optional[Dict[str, Any]] = None):
        message = f"No baseline data for {entity} at {period}"
        super().__init__(message, details)


class NonEditableCellError(DomainError):
    """Raised when an edit targets a cell that does not accept fair-share edits."""


class RoundingInvariantViolation(DomainError):
    """Reconciled children do not add up to the edited aggregate.

    Signals a programming error; it should never reach a user.
    """


class AggregationInvariantViolation(DomainError):
    """The total row differs from the sum of its child group rows."""


class AnalysisCacheError(DomainError):
    """Raised when the analysis cache cannot be read or written."""
