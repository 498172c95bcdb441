"""
Runner: populate/status/validate orchestration and CLI
"""

from .runner import (
    run_populate,
    collect_status,
    run_validate,
    PopulateResult,
    SymbolPopulateStats,
    RangeFailure,
    SymbolStatus,
    ValidationIssue,
    ValidationReport,
)

__all__ = [
    "run_populate",
    "collect_status",
    "run_validate",
    "PopulateResult",
    "SymbolPopulateStats",
    "RangeFailure",
    "SymbolStatus",
    "ValidationIssue",
    "ValidationReport",
]
