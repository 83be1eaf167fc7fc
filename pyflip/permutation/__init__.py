"""
pyflip permutation inference.

Two-sample permutation tests with user-supplied statistics, non-parametric
combination of vector statistics, and the p-value function machinery
built on top: point estimates and confidence intervals.

Usage:
    from pyflip.permutation import (
        two_sample_test, two_sample_pf, two_sample_pe, two_sample_ci,
    )
    from pyflip.permutation.statistics import stat_mean

    # Test
    result = two_sample_test(x, y, stat_mean, B=9999, seed=42)

    # P-value function of a location shift
    shift = lambda y, delta: y + delta
    two_sample_pf([0.0, 0.5, 1.0], shift, x, y, stat_mean, seed=42)

    # Estimate and interval
    pe = two_sample_pe(shift, x, y, stat_mean, lower=-5, upper=5, seed=42)
    ci = two_sample_ci(pe.estimate, 0.05, shift, x, y, stat_mean, seed=42)
"""

from pyflip.permutation._common import EXHAUSTIVE
from pyflip.permutation.design import TwoSampleDesign
from pyflip.permutation.pvalue_function import PValueFunction
from pyflip.permutation.solvers import (
    two_sample_ci,
    two_sample_pe,
    two_sample_pf,
    two_sample_test,
)

__all__ = [
    "EXHAUSTIVE",
    "PValueFunction",
    "TwoSampleDesign",
    "two_sample_ci",
    "two_sample_pe",
    "two_sample_pf",
    "two_sample_test",
]
