"""
Solver dispatch for two-sample permutation inference.

Public API:
    two_sample_test()  - permutation p-value for a fixed null
    two_sample_pf()    - p-value function at one or more candidate parameters
    two_sample_pe()    - point estimate maximizing the p-value function
    two_sample_ci()    - confidence interval inverting the p-value function
"""

from __future__ import annotations

from typing import Any, Callable, Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyflip.core.exceptions import ValidationError
from pyflip.core.validation import (
    check_array,
    check_bounds,
    check_positive_int,
    check_probability,
)
from pyflip.permutation._common import (
    DEFAULT_B,
    MAX_EXHAUSTIVE,
    AlternativeSpec,
    Combiner,
    PValueFormula,
    TwoTailRule,
)
from pyflip.permutation._estimate import estimate_point
from pyflip.permutation._interval import build_interval
from pyflip.permutation.backends.cpu import CPUTwoSampleBackend
from pyflip.permutation.design import TwoSampleDesign
from pyflip.permutation.pvalue_function import PValueFunction
from pyflip.permutation.solution import (
    ConfidenceIntervalSolution,
    PointEstimateSolution,
    TwoSampleSolution,
)


BackendChoice = Literal['cpu']


def _get_backend(backend: str = 'cpu'):
    """Select the backend for two-sample tests. Only 'cpu' exists."""
    if backend in ('cpu', 'auto'):
        return CPUTwoSampleBackend()
    raise ValidationError(
        f"Unknown backend: {backend!r}. Use 'cpu'."
    )


def two_sample_test(
    x,
    y=None,
    statistic: Callable | None = None,
    B: int | str = DEFAULT_B,
    *,
    alternative: AlternativeSpec = "two_tail",
    seed: int | None = None,
    combine: Combiner = "tippett",
    pvalue_formula: PValueFormula = "upper_bound",
    two_tail_rule: TwoTailRule = "double",
    replace: bool = True,
    max_exhaustive: int = MAX_EXHAUSTIVE,
    n_jobs: int | None = None,
    backend: BackendChoice = 'cpu',
) -> TwoSampleSolution:
    """
    Two-sample permutation test.

    The statistic is evaluated on the observed grouping and on B - 1
    other partitions of the pooled data (or all of them). The p-value is
    the fraction of the B partitions, observed grouping included, whose
    statistic is at least as extreme as the observed one.

    Parameters
    ----------
    x : sequence or TwoSampleDesign
        First sample. Any sequence of observations the statistic
        understands, or a pre-built TwoSampleDesign.
    y : sequence
        Second sample.
    statistic : callable
        ``statistic(pooled, group1_indices) -> float | (K,) array``.
        A vector output is combined by non-parametric combination.
    B : int or "exhaustive"
        Number of partitions including the observed one. If B is at
        least the number of distinct partitions, every partition is
        enumerated instead. Default 1000.
    alternative : str or sequence of str
        "two_tail" (default), "greater" or "less"; one per component
        for vector statistics.
    seed : int or None
        Random seed for the partition draws.
    combine : str or callable
        NPC combining function: "tippett" (default), "fisher",
        "stouffer", or fn((B, K) partial p-values) -> (B,).
    pvalue_formula : str
        "upper_bound" (default) or "exact" (Phipson-Smyth).
    two_tail_rule : str
        "double" (default): min(1, 2 * min(p_greater, p_less)).
        "absolute": compare |T| against |T_obs|.
    replace : bool
        Draw random partitions with replacement (default) or as distinct
        non-identity partitions.
    max_exhaustive : int
        Largest number of partitions that may be enumerated.
    n_jobs : int or None
        joblib workers for evaluating the statistic. None is serial.
    backend : str
        'cpu' (default).

    Returns
    -------
    TwoSampleSolution
    """
    if isinstance(x, TwoSampleDesign):
        design = x
    else:
        if y is None or statistic is None:
            raise ValidationError("y and statistic are required")
        design = TwoSampleDesign.for_two_sample_test(
            x, y, statistic, B,
            alternative=alternative,
            seed=seed,
            combine=combine,
            pvalue_formula=pvalue_formula,
            two_tail_rule=two_tail_rule,
            replace=replace,
            max_exhaustive=max_exhaustive,
            n_jobs=n_jobs,
        )

    be = _get_backend(backend)
    result = be.solve(design)
    return TwoSampleSolution(_result=result, _design=design)


def two_sample_pf(
    parameters: ArrayLike,
    null_specification: Callable,
    x,
    y,
    statistic: Callable,
    B: int | str = DEFAULT_B,
    *,
    seed: int | None = None,
    alternative: AlternativeSpec = "two_tail",
    n_params: int = 1,
    **test_options,
) -> float | NDArray[np.floating[Any]]:
    """
    P-value function evaluated at one or more candidate parameters.

    For each candidate, ``y`` is replaced by
    ``null_specification(y, candidate)`` and tested against ``x``. All
    candidates share one set of partitions.

    Parameters
    ----------
    parameters : float or array-like
        One candidate or a grid (see ``PValueFunction.as_points``).
    null_specification : callable
        ``fn(y, parameter) -> transformed y``.
    x, y, statistic, B, seed, alternative
        As in ``two_sample_test``.
    n_params : int
        Dimension of the parameter. Default 1.
    **test_options
        Other ``two_sample_test`` options.

    Returns
    -------
    float or ndarray
        A float for one candidate, an array for several.
    """
    pf = PValueFunction(
        null_specification, x, y, statistic, B,
        n_params=n_params,
        seed=seed,
        alternative=alternative,
        **test_options,
    )
    return pf(parameters)


def two_sample_pe(
    null_specification: Callable,
    x,
    y,
    statistic: Callable,
    B: int | str = DEFAULT_B,
    *,
    lower: ArrayLike,
    upper: ArrayLike,
    seed: int | None = None,
    alternative: AlternativeSpec = "two_tail",
    n_grid: int = 21,
    tol: float = 1e-6,
    max_iter: int = 200,
    **test_options,
) -> PointEstimateSolution:
    """
    Point estimate: the parameter maximizing the p-value function.

    Parameters
    ----------
    null_specification, x, y, statistic, B, seed, alternative
        As in ``two_sample_pf``.
    lower, upper : float or array-like
        Search domain. Scalars for one parameter, arrays of equal length
        for several.
    n_grid : int
        Grid points per axis for the initial scan. Default 21.
    tol : float
        Parameter tolerance relative to the domain width.
    max_iter : int
        Maximum optimizer iterations.

    Returns
    -------
    PointEstimateSolution
        ``converged`` and ``at_boundary`` flag a doubtful estimate; a flat
        or boundary maximum is not an error.
    """
    lower_arr = np.atleast_1d(check_array(lower, "lower")).astype(np.float64)
    upper_arr = np.atleast_1d(check_array(upper, "upper")).astype(np.float64)
    check_bounds(lower_arr, upper_arr)
    n_grid = check_positive_int(n_grid, "n_grid")
    if n_grid < 2:
        raise ValidationError(f"n_grid must be >= 2, got {n_grid}")

    pf = PValueFunction(
        null_specification, x, y, statistic, B,
        n_params=lower_arr.shape[0],
        seed=seed,
        alternative=alternative,
        **test_options,
    )
    result = estimate_point(
        pf, lower_arr, upper_arr,
        n_grid=n_grid, tol=tol, max_iter=max_iter,
    )
    return PointEstimateSolution(_result=result)


def two_sample_ci(
    point_estimate: float,
    alpha: float,
    null_specification: Callable,
    x,
    y,
    statistic: Callable,
    B: int | str = DEFAULT_B,
    *,
    alternative: AlternativeSpec = "two_tail",
    seed: int | None = None,
    step: float | None = None,
    max_expansions: int = 30,
    tol: float = 1e-6,
    max_iter: int = 100,
    **test_options,
) -> ConfidenceIntervalSolution:
    """
    Confidence interval: parameters whose p-value is at least alpha.

    Each side is searched outward from ``point_estimate`` until the
    p-value function drops below alpha, then the crossing is located by
    root-finding. One parameter only; the p-value function is assumed to
    cross alpha once on each side.

    Parameters
    ----------
    point_estimate : float
        Starting point inside the interval, typically from
        ``two_sample_pe``.
    alpha : float
        Significance level in (0, 1); the interval has level 1 - alpha.
    null_specification, x, y, statistic, B, alternative, seed
        As in ``two_sample_pf``.
    step : float or None
        Initial bracketing step. Default 0.1 * max(|point_estimate|, 1).
    max_expansions : int
        Maximum step doublings per side. Default 30.
    tol : float
        Root tolerance relative to ``step``.
    max_iter : int
        Maximum root-finder iterations per side.

    Returns
    -------
    ConfidenceIntervalSolution
        Sides that could not be bracketed carry NaN bounds and
        ``converged_lower`` / ``converged_upper`` set to False.
    """
    alpha = check_probability(alpha, "alpha")
    pe = check_array(point_estimate, "point_estimate")
    if pe.size != 1:
        raise ValidationError(
            f"point_estimate must be a scalar; confidence regions for "
            f"{pe.size} parameters are not supported"
        )
    pe = float(pe.reshape(-1)[0])
    if not np.isfinite(pe):
        raise ValidationError(f"point_estimate must be finite, got {pe}")
    if step is not None and not step > 0:
        raise ValidationError(f"step must be > 0, got {step}")
    max_expansions = check_positive_int(max_expansions, "max_expansions")

    pf = PValueFunction(
        null_specification, x, y, statistic, B,
        n_params=1,
        seed=seed,
        alternative=alternative,
        **test_options,
    )
    result = build_interval(
        pf, pe, alpha,
        step=step,
        max_expansions=max_expansions,
        tol=tol,
        max_iter=max_iter,
    )
    return ConfidenceIntervalSolution(_result=result)
