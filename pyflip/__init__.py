"""
pyflip: permutation inference for Python.

Exact and Monte-Carlo permutation tests for two samples of arbitrary data
with user-supplied test statistics, and the p-value function machinery
(point estimates, confidence intervals) built on them.

Submodules:
    permutation: tests, p-value functions, estimates, intervals
    core: result envelope, exceptions, validation, timing
"""

__version__ = "0.1.0"

from pyflip import permutation
from pyflip.permutation import (
    EXHAUSTIVE,
    PValueFunction,
    two_sample_ci,
    two_sample_pe,
    two_sample_pf,
    two_sample_test,
)

__all__ = [
    "__version__",
    "permutation",
    "EXHAUSTIVE",
    "PValueFunction",
    "two_sample_ci",
    "two_sample_pe",
    "two_sample_pf",
    "two_sample_test",
]
