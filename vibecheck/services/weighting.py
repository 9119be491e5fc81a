"""
Row weighting for VibeCheck.

Each report contributes a weighted point: severity weight times
reproducibility weight.
"""

from typing import Union

from vibecheck.core.exceptions import DomainError
from vibecheck.models.report import Repro, Severity

SEVERITY_WEIGHTS = {
    Severity.MINOR: 0.5,
    Severity.NOTICEABLE: 1.0,
    Severity.MAJOR: 1.6,
    Severity.BLOCKING: 2.5,
}

REPRO_WEIGHTS = {
    Repro.ONCE: 0.3,
    Repro.SOMETIMES: 0.6,
    Repro.OFTEN: 0.9,
    Repro.ALWAYS: 1.0,
}

MIN_WEIGHT = SEVERITY_WEIGHTS[Severity.MINOR] * REPRO_WEIGHTS[Repro.ONCE]
MAX_WEIGHT = SEVERITY_WEIGHTS[Severity.BLOCKING] * REPRO_WEIGHTS[Repro.ALWAYS]


def severity_weight(severity: Union[Severity, str]) -> float:
    try:
        return SEVERITY_WEIGHTS[Severity(severity)]
    except (ValueError, TypeError):
        raise DomainError(f"Unknown severity: {severity!r}") from None


def repro_weight(repro: Union[Repro, str]) -> float:
    try:
        return REPRO_WEIGHTS[Repro(repro)]
    except (ValueError, TypeError):
        raise DomainError(f"Unknown repro: {repro!r}") from None


def weight(severity: Union[Severity, str], repro: Union[Repro, str]) -> float:
    """
    Weighted point for one report.

    Args:
        severity: Severity member or its string value.
        repro: Reproducibility member or its string value.

    Returns:
        Weight in [0.15, 2.5].

    Raises:
        DomainError: If either value is not a known member.
    """
    return severity_weight(severity) * repro_weight(repro)
