"""
Input validation utilities for pyflip.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages rather than silently correcting
or making assumptions about user intent.

Design principles:
    - No silent type coercion (except np.asarray on array-likes)
    - Clear, actionable error messages with actual values
    - Each function validates ONE thing
    - Parameter names included in all error messages
"""

import numbers

import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Any, Iterable

from pyflip.core.exceptions import ValidationError, DimensionError


def check_array(
    array: ArrayLike,
    name: str,
) -> NDArray[np.floating[Any]]:
    """
    Validate and convert input to a floating numpy array.

    Used for numeric inputs such as parameter candidates and search bounds.
    Sample data are never passed through here: samples are opaque.

    Args:
        array: Input to validate
        name: Parameter name for error messages

    Returns:
        numpy.ndarray with floating dtype

    Raises:
        ValidationError: If input cannot be converted to numeric array
    """
    try:
        result = np.asarray(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    if result.dtype == object:
        raise ValidationError(
            f"{name}: converted to object dtype, indicating mixed types or non-numeric data"
        )

    if not np.issubdtype(result.dtype, np.number):
        raise ValidationError(
            f"{name}: non-numeric dtype {result.dtype}, expected numeric data"
        )

    if not np.issubdtype(result.dtype, np.floating):
        result = result.astype(np.float64)

    return result


def check_finite(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array contains no NaN or Inf values.

    Raises:
        ValidationError: If array contains non-finite values
    """
    if not np.all(np.isfinite(array)):
        n_nan = int(np.sum(np.isnan(array)))
        n_inf = int(np.sum(np.isinf(array)))
        raise ValidationError(
            f"{name}: contains non-finite values ({n_nan} NaN, {n_inf} Inf)"
        )


def check_positive_int(value: Any, name: str) -> int:
    """
    Verify value is an integer >= 1.

    Booleans are rejected even though they are ints in Python.

    Returns:
        The value as a plain int

    Raises:
        ValidationError: If value is not a positive integer
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ValidationError(
            f"{name} must be a positive integer, got {value!r}"
        )
    if value < 1:
        raise ValidationError(f"{name} must be >= 1, got {value}")
    return int(value)


def check_choice(value: Any, choices: Iterable[str], name: str) -> str:
    """
    Verify value is one of the allowed option strings.

    Raises:
        ValidationError: If value is not among choices
    """
    choices = tuple(choices)
    if value not in choices:
        options = ", ".join(repr(c) for c in choices)
        raise ValidationError(
            f"{name} must be one of {options}, got {value!r}"
        )
    return value


def check_group_sizes(n1: int, n2: int) -> None:
    """
    Verify both groups are non-empty.

    A partition with an empty group has only one labelling, so there is
    nothing to permute.

    Raises:
        ValidationError: If either group is empty
    """
    if n1 < 1 or n2 < 1:
        raise ValidationError(
            f"x and y must each have at least 1 observation, "
            f"got n1={n1}, n2={n2}"
        )


def check_probability(value: Any, name: str) -> float:
    """
    Verify value lies strictly between 0 and 1.

    Raises:
        ValidationError: If value is outside (0, 1)
    """
    try:
        value = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name} must be a number, got {value!r}") from e
    if not 0.0 < value < 1.0:
        raise ValidationError(f"{name} must be in (0, 1), got {value}")
    return value


def check_bounds(
    lower: NDArray[np.floating[Any]],
    upper: NDArray[np.floating[Any]],
) -> None:
    """
    Verify lower and upper search bounds have matching shape and order.

    Raises:
        DimensionError: If shapes differ
        ValidationError: If any lower >= upper or a bound is not finite
    """
    if lower.shape != upper.shape:
        raise DimensionError(
            f"lower and upper must have the same shape, "
            f"got {lower.shape} and {upper.shape}"
        )
    check_finite(lower, "lower")
    check_finite(upper, "upper")
    if np.any(lower >= upper):
        raise ValidationError(
            f"lower must be strictly less than upper, "
            f"got lower={lower.tolist()}, upper={upper.tolist()}"
        )
