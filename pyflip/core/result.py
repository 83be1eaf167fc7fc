"""
Generic result container for all pyflip computations.

The Result class provides a standardized envelope that every procedure
(test, p-value trace, point estimate, interval) uses. This enables shared
tooling for timing, warnings and reproducibility while letting each
procedure define its own parameter structure.

Design decisions:
    - Generic over parameter payload P for type safety
    - info dict for flexible metadata (exhaustive, converged, evaluations)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True) for reproducibility
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for permutation inference.

    Type Parameters:
        P: The procedure-specific parameter payload type

    Attributes:
        params: Procedure-specific payload (p-value, estimate, bounds, ...)
        info: Structured metadata (n1, n2, exhaustive, converged, ...)
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the backend that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> # Direct method (no convergence notion)
        >>> Result(
        ...     params=TwoSampleParams(...),
        ...     info={'n1': 5, 'n2': 5, 'exhaustive': True},
        ...     timing={'total_seconds': 0.01},
        ...     backend_name='cpu_permutation'
        ... )

        >>> # Iterative method
        >>> Result(
        ...     params=EstimateParams(...),
        ...     info={'optimizer': 'bounded', 'converged': True},
        ...     timing={'total_seconds': 0.5, 'grid_scan': 0.3},
        ...     backend_name='cpu_point_estimate'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
