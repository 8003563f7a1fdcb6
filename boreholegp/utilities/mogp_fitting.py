"""Maximum a posteriori fitting of mogp-emulator Gaussian processes with optional bounds
on the raw (log-scale) hyperparameters."""

import logging
from collections.abc import Sequence
from typing import Optional

import numpy as np
import scipy.optimize
from mogp_emulator import GaussianProcess

from boreholegp.core.exceptions import FitError

logger = logging.getLogger(__name__)

# Random starting points for the optimisation are drawn from this interval on the raw
# hyperparameter scale
START_RANGE = (-2.5, 2.5)


def fit_GP_MAP(
    gp: GaussianProcess,
    bounds: Optional[Sequence[tuple[Optional[float], Optional[float]]]] = None,
    n_tries: int = 15,
    theta0: Optional[np.ndarray] = None,
    seed: Optional[int] = None,
) -> GaussianProcess:
    """Fit a Gaussian process by minimising its negative log-posterior.

    The minimisation uses L-BFGS-B from several starting points, keeping the best
    finite result. The first start is `theta0` if given; the rest are drawn uniformly
    from ``START_RANGE`` and clipped into `bounds`.

    Parameters
    ----------
    gp :
        An mogp-emulator ``GaussianProcess`` holding the training data.
    bounds :
        Bounds on the raw hyperparameters, one ``(lower, upper)`` pair per parameter
        with ``None`` for no bound. Parameters beyond the bounds supplied (such as a
        fitted nugget) are left unbounded.
    n_tries :
        The number of optimisation starts.
    theta0 :
        An optional first starting point.
    seed :
        Seed for the generator of random starting points.

    Returns
    -------
    mogp_emulator.GaussianProcess
        `gp`, fitted at the best hyperparameters found.

    Raises
    ------
    FitError
        If none of the starts converged successfully to a finite log-posterior.
    """

    n_params = gp.n_params
    raw_bounds = _complete_bounds(bounds, n_params)
    lower = np.array([-np.inf if lo is None else lo for lo, _ in raw_bounds])
    upper = np.array([np.inf if hi is None else hi for _, hi in raw_bounds])

    rng = np.random.default_rng(seed)
    best = None
    for attempt in range(n_tries):
        if attempt == 0 and theta0 is not None:
            start = np.array(theta0, dtype=float)
        else:
            start = rng.uniform(*START_RANGE, size=n_params)

        start = np.clip(start, lower, upper)
        try:
            result = scipy.optimize.minimize(
                gp.logposterior,
                start,
                method="L-BFGS-B",
                jac=gp.logpost_deriv,
                bounds=raw_bounds,
            )
        except (np.linalg.LinAlgError, FloatingPointError) as e:
            logger.debug("Optimisation start %d failed: %s", attempt, e)
            continue

        if not result.success:
            logger.debug(
                "Optimisation start %d did not converge: %s", attempt, result.message
            )
            continue

        logger.debug(
            "Optimisation start %d finished with log-posterior %s", attempt, result.fun
        )
        if np.isfinite(result.fun) and (best is None or result.fun < best.fun):
            best = result

    if best is None:
        raise FitError(
            f"Hyperparameter estimation failed to converge in {n_tries} attempts: no "
            "optimisation converged to a finite log-posterior."
        )

    gp.fit(best.x)
    return gp


def _complete_bounds(
    bounds: Optional[Sequence[tuple[Optional[float], Optional[float]]]], n_params: int
) -> list[tuple[Optional[float], Optional[float]]]:
    bounds = list(bounds) if bounds is not None else []
    if len(bounds) > n_params:
        raise ValueError(
            f"Expected at most {n_params} pairs of bounds, but received {len(bounds)}."
        )

    return bounds + [(None, None)] * (n_params - len(bounds))
