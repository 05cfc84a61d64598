"""Exceptions raised by the Superstore batch.

Hierarchy:
- SuperstoreError (base)
- IngestionError
- ReferentialIntegrityError
"""

from typing import Any, Dict, List, Optional


class SuperstoreError(Exception):
    """Base class for batch errors.

    Args:
        message: Human-readable description.
        details: Structured context logged alongside the message.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class IngestionError(SuperstoreError):
    """A source dataset could not be loaded.

    Raised when a file is missing or unreadable, when required columns are
    absent, or when the abort-batch load policy meets a rejected record.
    """

    def __init__(
        self,
        message: str,
        *,
        dataset: Optional[str] = None,
        rejected: Optional[List[Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        merged = dict(details or {})
        if dataset is not None:
            merged["dataset"] = dataset
        if rejected:
            merged["rejected_count"] = len(rejected)
        super().__init__(message, details=merged)
        self.dataset = dataset
        self.rejected = list(rejected or [])


class ReferentialIntegrityError(IngestionError):
    """Transactions reference customers or products that do not exist."""
