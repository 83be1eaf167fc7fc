"""
Core infrastructure for pyflip.

This module provides shared abstractions and utilities used by the
permutation inference procedures.

Key components:
    protocols: Backend protocol
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Timing
"""

from pyflip.core.protocols import Backend
from pyflip.core.result import Result
from pyflip.core.exceptions import (
    PyFlipError,
    ValidationError,
    DimensionError,
    StatisticEvaluationError,
    NumericalError,
    ConvergenceError,
)

__all__ = [
    # Protocols
    "Backend",
    # Result
    "Result",
    # Exceptions
    "PyFlipError",
    "ValidationError",
    "DimensionError",
    "StatisticEvaluationError",
    "NumericalError",
    "ConvergenceError",
]
