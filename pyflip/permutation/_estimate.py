"""
Point estimation by maximizing the p-value function.

The estimate is the candidate parameter under which the two samples look
most exchangeable. A permutation p-value function is piecewise constant,
so a local optimizer started blindly can stall on a plateau. The search is
therefore two-stage:

1. Scan a coarse grid over the domain and keep the best grid point.
2. Refine inside the grid cells around it: bounded Brent
   (``minimize_scalar``) for one parameter, bounded Nelder-Mead
   (``minimize``) for several.

A flat function or a maximum on the edge of the domain is returned as is
and flagged ``at_boundary``; it is not an error.
"""

from __future__ import annotations

import itertools
import warnings

import numpy as np
from numpy.typing import NDArray
from scipy.optimize import minimize, minimize_scalar

from pyflip.core.compute.timing import Timer
from pyflip.core.result import Result
from pyflip.permutation._common import EstimateParams
from pyflip.permutation.pvalue_function import PValueFunction

# Cap on the number of grid points scanned in the multi-parameter case.
_MAX_GRID_POINTS = 2000


def _grid_axes(lower: NDArray, upper: NDArray, n_grid: int) -> list[NDArray]:
    p = lower.shape[0]
    per_axis = n_grid if p == 1 else max(3, min(n_grid, int(_MAX_GRID_POINTS ** (1.0 / p))))
    return [np.linspace(lo, hi, per_axis) for lo, hi in zip(lower, upper)]


def _on_boundary(point: NDArray, lower: NDArray, upper: NDArray, tol: float) -> bool:
    span = upper - lower
    return bool(np.any(
        (np.abs(point - lower) <= tol * span) | (np.abs(upper - point) <= tol * span)
    ))


def estimate_point(
    pf: PValueFunction,
    lower: NDArray,
    upper: NDArray,
    n_grid: int = 21,
    tol: float = 1e-6,
    max_iter: int = 200,
) -> Result[EstimateParams]:
    """
    Maximize a p-value function over a box.

    Args:
        pf: P-value function to maximize.
        lower: Lower bounds, shape (n_params,).
        upper: Upper bounds, shape (n_params,).
        n_grid: Grid points per axis for the initial scan.
        tol: Relative tolerance on the parameter (scaled by the domain width).
        max_iter: Maximum optimizer iterations.

    Returns:
        Result[EstimateParams].
    """
    timer = Timer()
    timer.start()
    p = lower.shape[0]
    evals_before = pf.n_evaluations

    with timer.section('grid_scan'):
        axes = _grid_axes(lower, upper, n_grid)
        grid = np.array(list(itertools.product(*axes)), dtype=np.float64)
        values = pf(grid)
        best_idx = int(np.argmax(values))
        best_point = grid[best_idx].copy()
        best_value = float(values[best_idx])

    flat = bool(np.all(values == values[0]))
    converged = True
    message = 'grid scan'

    with timer.section('refinement'):
        if not flat:
            # Refine within one grid cell on either side of the best point.
            steps = np.array([ax[1] - ax[0] for ax in axes])
            lo = np.maximum(best_point - steps, lower)
            hi = np.minimum(best_point + steps, upper)

            if p == 1:
                width = float(upper[0] - lower[0])
                res = minimize_scalar(
                    lambda t: -pf(t),
                    bounds=(float(lo[0]), float(hi[0])),
                    method='bounded',
                    options={'xatol': tol * width, 'maxiter': max_iter},
                )
                candidate = np.array([float(res.x)])
            else:
                # Step each vertex toward whichever side of the cell has room.
                vertices = [best_point]
                for j in range(p):
                    step = np.eye(p)[j] * steps[j] * 0.5
                    vertex = best_point + step
                    if vertex[j] > hi[j]:
                        vertex = best_point - step
                    vertices.append(vertex)
                simplex = np.clip(np.vstack(vertices), lo, hi)
                res = minimize(
                    lambda t: -pf(t),
                    best_point,
                    method='Nelder-Mead',
                    bounds=list(zip(lo, hi)),
                    options={
                        'xatol': tol * float(np.max(upper - lower)),
                        'fatol': 1e-12,
                        'maxiter': max_iter,
                        'initial_simplex': simplex,
                    },
                )
                candidate = np.asarray(res.x, dtype=np.float64)

            converged = bool(res.success)
            message = str(getattr(res, 'message', ''))
            candidate_value = float(-res.fun)
            if candidate_value > best_value:
                best_point, best_value = candidate, candidate_value

    at_boundary = flat or _on_boundary(best_point, lower, upper, tol)
    timer.stop()

    warnings_list: list[str] = []
    if not converged:
        msg = f"p-value maximization did not converge: {message}"
        warnings.warn(msg, RuntimeWarning, stacklevel=3)
        warnings_list.append(msg)
    if at_boundary:
        msg = (
            "p-value function is flat over the domain; estimate is the lower bound"
            if flat else
            "maximum of the p-value function lies on the search boundary"
        )
        warnings.warn(msg, RuntimeWarning, stacklevel=3)
        warnings_list.append(msg)

    n_evaluations = pf.n_evaluations - evals_before
    params = EstimateParams(
        estimate=best_point,
        p_value=best_value,
        converged=converged,
        at_boundary=at_boundary,
        n_evaluations=n_evaluations,
        lower=lower.copy(),
        upper=upper.copy(),
    )
    return Result(
        params=params,
        info={
            'optimizer': 'bounded' if p == 1 else 'Nelder-Mead',
            'converged': converged,
            'flat': flat,
            'n_grid_points': len(grid),
            'n_evaluations': n_evaluations,
        },
        timing=timer.result(),
        backend_name='cpu_point_estimate',
        warnings=tuple(warnings_list),
    )
