"""Error kinds raised by the catalog core.

Every error carries a short ``message`` and optional ``details`` so the HTTP
layer can render the ``{message, details}`` envelope without inspecting the
exception type beyond choosing a status code.
"""
from dataclasses import dataclass
from typing import List, Optional


class CatalogError(Exception):
    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFound(CatalogError):
    """The requested product or review does not exist."""


@dataclass(frozen=True)
class Violation:
    kind: str
    field: str
    message: str

    def __str__(self):
        return f"{self.field}: {self.message}"


class ValidationError(CatalogError):
    """Input failed one or more domain constraints."""

    def __init__(self, message: str, violations: List[Violation]):
        super().__init__(message, "; ".join(str(v) for v in violations))
        self.violations = violations


class StoreError(CatalogError):
    """A persistence operation failed."""


class CacheError(CatalogError):
    """A cache operation failed at the infrastructure level."""


class AggregateUnavailable(CatalogError):
    """The average rating could not be produced as a valid number."""
