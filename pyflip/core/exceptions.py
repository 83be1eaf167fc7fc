"""
Exception hierarchy for pyflip.

All exceptions inherit from PyFlipError to allow catching any
library-specific error. Domain-specific exceptions should inherit from
the appropriate base class here.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""


class PyFlipError(Exception):
    """Base exception for all pyflip errors."""
    pass


class ValidationError(PyFlipError, ValueError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks: degenerate
    group sizes, non-positive number of permutations, unknown option
    strings. Also a ValueError, so generic ``except ValueError`` handlers
    still see it.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when array shapes don't match expected dimensions, or when a
    statistic returns vectors of different lengths across permutations.
    """
    pass


class StatisticEvaluationError(PyFlipError):
    """
    The user-supplied statistic failed on a permutation.

    A failing permutation is never skipped: dropping it would bias the
    p-value. The original exception is chained as ``__cause__``.

    Attributes:
        permutation_index: Row of the permutation matrix that failed
            (0 is the observed grouping)
        indices: First-group indices passed to the statistic, if known
    """

    def __init__(
        self,
        message: str,
        permutation_index: int,
        indices=None,
    ):
        super().__init__(message)
        self.permutation_index = permutation_index
        self.indices = indices

    def __reduce__(self):
        # Keep attributes when raised inside a worker process.
        return (
            self.__class__,
            (str(self), self.permutation_index, self.indices),
        )


class NumericalError(PyFlipError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class ConvergenceError(PyFlipError):
    """
    Iterative algorithm failed to converge.

    The estimators and interval builders report non-convergence through
    flags on their results; this exception is for callers that want to
    escalate such a flag (see ``ConfidenceIntervalSolution.raise_if_failed``).

    Attributes:
        iterations: Number of iterations (function evaluations) completed
        final_change: Final parameter or objective change
        reason: Why convergence failed (e.g., 'max_expansions', 'no_bracket')
        threshold: The convergence threshold that was not met
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        final_change: float | None = None,
        reason: str | None = None,
        threshold: float | None = None
    ):
        super().__init__(message)
        self.iterations = iterations
        self.final_change = final_change
        self.reason = reason
        self.threshold = threshold
