"""
Confidence intervals by inverting the p-value function.

The (1 - alpha) interval is the set of parameters whose p-value is at
least alpha. Starting from a point estimate, each side is searched
outward with a doubling step until the p-value drops below alpha, then
the crossing is located by Brent's method (``scipy.optimize.brentq``) on
``pf(t) - alpha`` inside that bracket.

The p-value function is assumed unimodal around the point estimate, i.e.
it crosses alpha once on each side. If it dips below alpha and comes back
up, the bound found is the first crossing; scan the function with
``PValueFunction.trace`` to detect such cases.
"""

from __future__ import annotations

import warnings

import numpy as np
from scipy.optimize import brentq

from pyflip.core.compute.timing import Timer
from pyflip.core.result import Result
from pyflip.permutation._common import IntervalParams
from pyflip.permutation.pvalue_function import PValueFunction


def _search_side(
    pf: PValueFunction,
    point_estimate: float,
    alpha: float,
    direction: int,
    step: float,
    max_expansions: int,
    tol: float,
    max_iter: int,
) -> tuple[float, bool, str]:
    """
    Locate the alpha crossing on one side of the point estimate.

    Returns:
        (bound, converged, reason); bound is NaN when no crossing was
        bracketed, otherwise pf(bound) >= alpha.
    """
    inner = point_estimate
    outer = None
    width = step
    for _ in range(max_expansions):
        candidate = point_estimate + direction * width
        if pf(candidate) < alpha:
            outer = candidate
            break
        inner = candidate
        width *= 2.0

    if outer is None:
        return float('nan'), False, 'max_expansions'

    xtol = tol * step
    a, b = min(inner, outer), max(inner, outer)
    root, info = brentq(
        lambda t: pf(t) - alpha,
        a, b,
        xtol=xtol,
        maxiter=max_iter,
        full_output=True,
        disp=False,
    )
    bound = float(root)

    # On a step-shaped p-value function the root can land just past the
    # jump; walk back toward ``inner`` (pf >= alpha) until the bound is
    # inside the interval.
    back = xtol
    while pf(bound) < alpha:
        candidate = float(root) - direction * back
        if direction * (candidate - inner) <= 0:
            bound = inner
            break
        bound = candidate
        back *= 2.0
    return bound, bool(info.converged), str(info.flag)


def build_interval(
    pf: PValueFunction,
    point_estimate: float,
    alpha: float,
    step: float | None = None,
    max_expansions: int = 30,
    tol: float = 1e-6,
    max_iter: int = 100,
) -> Result[IntervalParams]:
    """
    Invert a one-parameter p-value function around a point estimate.

    Args:
        pf: P-value function with ``n_params == 1``.
        point_estimate: Parameter value inside the interval.
        alpha: Significance level; the interval has level 1 - alpha.
        step: Initial bracketing step. Defaults to
            0.1 * max(|point_estimate|, 1).
        max_expansions: Maximum number of step doublings per side.
        tol: Root tolerance, relative to ``step``.
        max_iter: Maximum Brent iterations per side.

    Returns:
        Result[IntervalParams]. Sides that fail carry NaN bounds and a
        False convergence flag.
    """
    timer = Timer()
    timer.start()
    evals_before = pf.n_evaluations
    if step is None:
        step = 0.1 * max(abs(point_estimate), 1.0)

    warnings_list: list[str] = []
    p_estimate = pf(point_estimate)

    if p_estimate < alpha:
        msg = (
            f"p-value at the point estimate ({p_estimate:.4g}) is below "
            f"alpha={alpha}; the confidence interval is empty"
        )
        warnings.warn(msg, RuntimeWarning, stacklevel=3)
        warnings_list.append(msg)
        lower = upper = float('nan')
        ok_lower = ok_upper = False
        reasons = {'lower': 'empty', 'upper': 'empty'}
    else:
        with timer.section('lower_bound'):
            lower, ok_lower, reason_lower = _search_side(
                pf, point_estimate, alpha, -1, step, max_expansions, tol, max_iter,
            )
        with timer.section('upper_bound'):
            upper, ok_upper, reason_upper = _search_side(
                pf, point_estimate, alpha, +1, step, max_expansions, tol, max_iter,
            )
        reasons = {'lower': reason_lower, 'upper': reason_upper}
        for side, ok, reason in (
            ('lower', ok_lower, reason_lower),
            ('upper', ok_upper, reason_upper),
        ):
            if not ok:
                msg = f"{side} confidence bound not found ({reason})"
                warnings.warn(msg, RuntimeWarning, stacklevel=3)
                warnings_list.append(msg)

    p_lower = pf(lower) if np.isfinite(lower) else float('nan')
    p_upper = pf(upper) if np.isfinite(upper) else float('nan')
    timer.stop()

    n_evaluations = pf.n_evaluations - evals_before
    failed = [r for r in reasons.values() if r not in ('converged',)]
    params = IntervalParams(
        lower=lower,
        upper=upper,
        point_estimate=float(point_estimate),
        alpha=alpha,
        p_value_estimate=p_estimate,
        p_value_lower=p_lower,
        p_value_upper=p_upper,
        converged_lower=ok_lower,
        converged_upper=ok_upper,
    )
    return Result(
        params=params,
        info={
            'method': 'bracket+brentq',
            'step': step,
            'reasons': reasons,
            'reason': failed[0] if failed else None,
            'n_evaluations': n_evaluations,
        },
        timing=timer.result(),
        backend_name='cpu_confidence_interval',
        warnings=tuple(warnings_list),
    )
