"""
Exception types for VibeCheck.

- VibeCheckError: Base exception for all service errors
- ValidationError: A submitted report is malformed (carries the field)
- DomainError: An unknown enum value reached the scoring code
- InsufficientBaseline: Not enough history to normalize a day (non-fatal)
- UpstreamUnavailable: The report store or analytics backend failed (retryable)
"""

from typing import Optional

__all__ = [
    "VibeCheckError",
    "ValidationError",
    "DomainError",
    "InsufficientBaseline",
    "UpstreamUnavailable",
]


class VibeCheckError(Exception):
    """Base exception for VibeCheck errors."""

    pass


class ValidationError(VibeCheckError):
    """Raised when a report submission fails validation.

    Attributes:
        field: Name of the offending payload field.
        message: Human readable cause.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class DomainError(VibeCheckError):
    """Raised when an unrecognized severity/repro value reaches weighting.

    Ingest validates enums first, so this signals a validation gap upstream
    and must be surfaced rather than defaulted.
    """

    pass


class InsufficientBaseline(VibeCheckError):
    """Raised when fewer than two baseline days exist for a target day."""

    def __init__(self, sample_size: int):
        self.sample_size = sample_size
        super().__init__(
            f"Baseline has {sample_size} day(s), at least 2 are required"
        )


class UpstreamUnavailable(VibeCheckError):
    """Raised when the backing store cannot be reached or answers with an error."""

    retryable = True

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)
