"""
Numerical tolerances used when comparing real numbers throughout the package.

Simulator inputs, hyperparameters and predictions are all compared up to the
global [`FLOAT_TOLERANCE`][boreholegp.core.numerics.FLOAT_TOLERANCE], which can be
changed at runtime with [`set_tolerance`][boreholegp.core.numerics.set_tolerance].
"""

import math
from collections.abc import Sequence
from numbers import Real
from typing import Optional, Union

import numpy as np

FLOAT_TOLERANCE = 1e-9
"""The default tolerance to use when testing for equality of real numbers."""


def equal_within_tolerance(
    x: Union[Real, Sequence[Real]],
    y: Union[Real, Sequence[Real]],
    rel_tol: Optional[Real] = None,
    abs_tol: Optional[Real] = None,
) -> bool:
    """Test equality of two real numbers, or two sequences of real numbers
    element-wise, up to a tolerance.

    Parameters
    ----------
    x, y :
        Real numbers or sequences of real numbers to test equality of.
    rel_tol :
        The maximum allowed relative difference. Defaults to the value of
        ``FLOAT_TOLERANCE`` at the time of the call.
    abs_tol :
        The minimum permitted absolute difference. Defaults to the value of
        ``FLOAT_TOLERANCE`` at the time of the call.

    Returns
    -------
    bool
        Whether the arguments are equal up to the relative and absolute tolerances.
        Sequences of different lengths are never equal.

    Raises
    ------
    TypeError
        If the arguments are not both real numbers or both sequences.
    """

    rel_tol = FLOAT_TOLERANCE if rel_tol is None else rel_tol
    abs_tol = FLOAT_TOLERANCE if abs_tol is None else abs_tol

    if _is_seq(x) and _is_seq(y):
        return len(x) == len(y) and all(
            equal_within_tolerance(a, b, rel_tol=rel_tol, abs_tol=abs_tol)
            for a, b in zip(x, y)
        )
    elif isinstance(x, Real) and isinstance(y, Real):
        return math.isclose(x, y, rel_tol=rel_tol, abs_tol=abs_tol)
    else:
        raise TypeError(
            f"Expected both arguments to be of type {Real} or sequences of {Real}, "
            f"but received {type(x)} and {type(y)} instead."
        )


def _is_seq(x) -> bool:
    return isinstance(x, (Sequence, np.ndarray))


def set_tolerance(tol: float) -> None:
    """Set the global ``FLOAT_TOLERANCE`` to a new non-negative value.

    Parameters
    ----------
    tol :
        The new tolerance.
    """

    if not isinstance(tol, float):
        raise TypeError(
            f"Expected 'tol' to be of type float, but received {type(tol)} instead."
        )

    if tol < 0:
        raise ValueError(f"Expected 'tol' to be non-negative but received {tol}.")

    global FLOAT_TOLERANCE
    FLOAT_TOLERANCE = tol
