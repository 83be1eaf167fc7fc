"""
Core protocols for pyflip.

These define structural interfaces that procedure implementations must
satisfy. We use Protocol (structural typing) rather than ABC (nominal
typing) so a user can plug in their own engine without subclassing.
"""

from typing import Protocol, TypeVar, runtime_checkable

# Type variables for generic payloads
P = TypeVar('P')  # Parameter payload type
D = TypeVar('D')  # Design type


@runtime_checkable
class Backend(Protocol[D, P]):
    """
    Protocol for computational backends.

    Each backend knows how to take a frozen design and produce a parameter
    payload wrapped in a Result. Backends are stateless: all configuration
    is passed via the design. This makes them easy to test and swap.

    Type Parameters:
        D: The design type this backend accepts
        P: The parameter payload type this backend produces
    """

    @property
    def name(self) -> str:
        """
        Backend identifier.

        Convention: '{device}_{algorithm}'
        Examples: 'cpu_permutation'
        """
        ...

    def solve(self, design: D) -> 'Result[P]':
        """
        Execute the permutation computation.

        Args:
            design: Validated, frozen design

        Returns:
            Result envelope containing parameter payload and metadata

        Raises:
            StatisticEvaluationError: If the user statistic fails
            ValidationError: If design is invalid for this backend
        """
        ...
