"""
Solution wrappers for permutation inference results.

Each Solution wraps a Result[P] and provides convenient accessors and a
plain-text summary().
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from pyflip.core.exceptions import ConvergenceError
from pyflip.core.result import Result
from pyflip.permutation._common import (
    EstimateParams,
    IntervalParams,
    PValueTraceParams,
    TwoSampleParams,
)

if TYPE_CHECKING:
    from pyflip.permutation.design import TwoSampleDesign


class _ResultMixin:
    """Metadata accessors shared by every solution."""

    _result: Result

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings


@dataclass
class TwoSampleSolution(_ResultMixin):
    """
    User-facing two-sample permutation test results.

    For a scalar statistic ``observed_stat`` is a float and ``perm_stats``
    has shape (B,). For a vector statistic with K components they have
    shapes (K,) and (B, K), and the NPC fields are populated.
    """
    _result: Result[TwoSampleParams]
    _design: 'TwoSampleDesign'

    @property
    def _k(self) -> int:
        return self._result.params.observed_stat.shape[0]

    # --- Core fields ---

    @property
    def observed_stat(self) -> float | NDArray[np.floating[Any]]:
        """Statistic on the observed grouping."""
        obs = self._result.params.observed_stat
        return float(obs[0]) if self._k == 1 else obs

    @property
    def perm_stats(self) -> NDArray[np.floating[Any]]:
        """Permutation distribution; row 0 is the observed grouping."""
        stats = self._result.params.perm_stats
        return stats[:, 0] if self._k == 1 else stats

    @property
    def p_value(self) -> float:
        """Permutation p-value (combined across components for K > 1)."""
        return self._result.params.p_value

    @property
    def B(self) -> int:
        """Number of partitions used, observed grouping included."""
        return self._result.params.B

    @property
    def alternative(self) -> str | tuple[str, ...]:
        """Alternative hypothesis, one per component when they differ."""
        alts = self._result.params.alternative
        return alts[0] if len(set(alts)) == 1 else alts

    @property
    def exhaustive(self) -> bool:
        """True if every distinct partition was enumerated."""
        return self._result.params.exhaustive

    @property
    def n_partitions(self) -> int:
        """Number of distinct partitions, C(n1 + n2, n1)."""
        return self._result.params.n_partitions

    @property
    def partial_p_values(self) -> NDArray[np.floating[Any]] | None:
        """Per-component p-values of the observed grouping (K > 1 only)."""
        return self._result.params.partial_p_values

    @property
    def combined_stats(self) -> NDArray[np.floating[Any]] | None:
        """Combined NPC statistic per partition (K > 1 only)."""
        return self._result.params.combined_stats

    @property
    def seed(self) -> int | None:
        return self._design.seed

    # --- Display ---

    def summary(self) -> str:
        """Two-sample permutation test summary."""
        mode = "exhaustive" if self.exhaustive else "random"
        lines = [
            "\nTWO-SAMPLE PERMUTATION TEST",
            "",
            f"Group sizes: n1={self.info['n1']}, n2={self.info['n2']}",
            f"Number of permutations: {self.B} ({mode}, "
            f"{self.n_partitions} distinct)",
        ]
        if self._k == 1:
            lines.append(f"Observed statistic: {self.observed_stat:.6g}")
        else:
            lines.append(f"Combining function: {self.info['combine']}")
            for i, (obs, p) in enumerate(
                zip(self._result.params.observed_stat, self.partial_p_values)
            ):
                lines.append(f"  T{i + 1}: observed={obs:.6g}, partial p={p:.4g}")
        alt = self.alternative
        alt_str = alt if isinstance(alt, str) else ", ".join(alt)
        lines.append(f"p-value ({alt_str}): {self.p_value:.4g}")
        lines.append("")
        return "\n".join(lines)

    def __repr__(self) -> str:
        obs = self._result.params.observed_stat
        obs_str = f"{obs[0]:.4g}" if self._k == 1 else np.array2string(
            obs, precision=4)
        return (
            f"TwoSampleSolution(B={self.B}, "
            f"observed={obs_str}, "
            f"p_value={self.p_value:.4g})"
        )


@dataclass
class PValueTraceSolution(_ResultMixin):
    """P-value function evaluated on a grid of candidate parameters."""
    _result: Result[PValueTraceParams]

    @property
    def parameters(self) -> NDArray[np.floating[Any]]:
        """Candidates, shape (m,) for one parameter, (m, p) otherwise."""
        params = self._result.params.parameters
        return params[:, 0] if params.shape[1] == 1 else params

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        return self._result.params.p_values

    @property
    def estimate(self) -> float | NDArray[np.floating[Any]]:
        """Grid point with the largest p-value (first one on ties)."""
        est = self._result.params.estimate
        return float(est[0]) if est.shape[0] == 1 else est

    @property
    def max_p_value(self) -> float:
        return self._result.params.max_p_value

    def summary(self) -> str:
        lines = [
            "\nP-VALUE FUNCTION",
            "",
            f"{'parameter':>24s} {'p-value':>10s}",
        ]
        for theta, p in zip(self._result.params.parameters, self.p_values):
            label = ", ".join(f"{t:.5g}" for t in theta)
            lines.append(f"{label:>24s} {p:10.4g}")
        lines.append("")
        lines.append(f"Grid maximum at {self.estimate} (p = {self.max_p_value:.4g})")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"PValueTraceSolution(m={len(self.p_values)}, "
            f"max_p_value={self.max_p_value:.4g})"
        )


@dataclass
class PointEstimateSolution(_ResultMixin):
    """Point estimate maximizing the p-value function."""
    _result: Result[EstimateParams]

    @property
    def estimate(self) -> float | NDArray[np.floating[Any]]:
        est = self._result.params.estimate
        return float(est[0]) if est.shape[0] == 1 else est

    @property
    def p_value(self) -> float:
        """P-value function at the estimate (its maximum found)."""
        return self._result.params.p_value

    @property
    def converged(self) -> bool:
        return self._result.params.converged

    @property
    def at_boundary(self) -> bool:
        """True if the estimate lies on the edge of the search domain."""
        return self._result.params.at_boundary

    @property
    def n_evaluations(self) -> int:
        return self._result.params.n_evaluations

    def summary(self) -> str:
        lines = [
            "\nPOINT ESTIMATE (maximum of the p-value function)",
            "",
            f"Search domain: [{self._result.params.lower.tolist()}, "
            f"{self._result.params.upper.tolist()}]",
            f"Estimate: {self.estimate}",
            f"p-value at estimate: {self.p_value:.4g}",
            f"Converged: {self.converged}",
        ]
        if self.at_boundary:
            lines.append("Note: estimate lies on the search boundary")
        lines.append("")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"PointEstimateSolution(estimate={self.estimate}, "
            f"p_value={self.p_value:.4g}, converged={self.converged})"
        )


@dataclass
class ConfidenceIntervalSolution(_ResultMixin):
    """Confidence interval obtained by inverting the p-value function."""
    _result: Result[IntervalParams]

    @property
    def lower(self) -> float:
        return self._result.params.lower

    @property
    def upper(self) -> float:
        return self._result.params.upper

    @property
    def conf_int(self) -> NDArray[np.floating[Any]]:
        """Interval as an array of shape (2,)."""
        return np.array([self.lower, self.upper])

    @property
    def alpha(self) -> float:
        return self._result.params.alpha

    @property
    def conf_level(self) -> float:
        return 1.0 - self._result.params.alpha

    @property
    def point_estimate(self) -> float:
        return self._result.params.point_estimate

    @property
    def p_value_lower(self) -> float:
        """P-value function at the lower bound."""
        return self._result.params.p_value_lower

    @property
    def p_value_upper(self) -> float:
        """P-value function at the upper bound."""
        return self._result.params.p_value_upper

    @property
    def converged_lower(self) -> bool:
        return self._result.params.converged_lower

    @property
    def converged_upper(self) -> bool:
        return self._result.params.converged_upper

    @property
    def converged(self) -> bool:
        return self.converged_lower and self.converged_upper

    def raise_if_failed(self) -> None:
        """Escalate a non-converged side to a ConvergenceError."""
        if self.converged:
            return
        sides = [
            side for side, ok in (
                ("lower", self.converged_lower),
                ("upper", self.converged_upper),
            ) if not ok
        ]
        raise ConvergenceError(
            f"confidence bound search failed on the {' and '.join(sides)} "
            f"side(s); widen the search or increase B",
            iterations=self.info.get('n_evaluations', 0),
            reason=self.info.get('reason'),
            threshold=self.alpha,
        )

    def summary(self) -> str:
        pct = self.conf_level * 100
        lines = [
            "\nCONFIDENCE INTERVAL (inverted p-value function)",
            "",
            f"Point estimate: {self.point_estimate:.6g} "
            f"(p = {self._result.params.p_value_estimate:.4g})",
            f"{pct:g}% interval: [{self.lower:.6g}, {self.upper:.6g}]",
            f"p-value at bounds: {self.p_value_lower:.4g}, "
            f"{self.p_value_upper:.4g}",
        ]
        if not self.converged:
            lines.append("Warning: bound search did not converge")
        lines.append("")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"ConfidenceIntervalSolution(lower={self.lower:.4g}, "
            f"upper={self.upper:.4g}, conf_level={self.conf_level:g})"
        )
