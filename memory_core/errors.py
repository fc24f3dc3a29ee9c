"""
Error taxonomy for the study store and session layer.

- ValidationError: malformed dataset payload or settings value
- FormatError: backup version mismatch or unparseable backup JSON
- NotFoundError: dataset or card id that does not exist
- PersistenceError: the underlying transaction failed to commit
"""

from __future__ import annotations


class MemoryAppError(Exception):
    """Base class for all memory-app errors."""


class ValidationError(MemoryAppError):
    """Raised when an import payload is missing required fields."""


class FormatError(MemoryAppError):
    """Raised when a backup cannot be restored (bad JSON or version)."""


class NotFoundError(MemoryAppError):
    """Raised when an operation references an unknown dataset or card."""


class PersistenceError(MemoryAppError):
    """Raised when a database transaction fails."""
