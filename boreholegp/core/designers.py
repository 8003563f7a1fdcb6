"""
Experimental designs over simulator domains and leave-one-out (LOO) computations
for Gaussian process emulators.


Designers
---------------------------------------------------------------------------------------
[`UniformDesigner`][boreholegp.core.designers.UniformDesigner]
Independent uniform sampling of each coordinate from an injected random generator.

[`LatinHypercubeDesigner`][boreholegp.core.designers.LatinHypercubeDesigner]
Space-filling Latin hypercube designs from a seeded sampler.

[`oneshot_lhs`][boreholegp.core.designers.oneshot_lhs]
Space-filling Latin hypercube design.


Leave-one-out
---------------------------------------------------------------------------------------
[`compute_loo_gp`][boreholegp.core.designers.compute_loo_gp]
Refit a Gaussian process with one training datum left out.

[`compute_loo_prediction`][boreholegp.core.designers.compute_loo_prediction]
Predict the left-out output from a LOO Gaussian process.

[`compute_loo_predictions`][boreholegp.core.designers.compute_loo_predictions]
LOO predictions for every training datum, in training data order.
"""

import copy
import itertools
import logging
from typing import Optional

import numpy as np
from scipy.stats.qmc import LatinHypercube

from boreholegp.core.exceptions import InvalidArgumentError
from boreholegp.core.modelling import (
    AbstractGaussianProcess,
    GaussianProcessPrediction,
    Input,
    SimulatorDomain,
)
from boreholegp.utilities.validation import check_int

logger = logging.getLogger(__name__)


def _check_design_size(size: int) -> None:
    check_int(
        size,
        TypeError(f"Expected 'size' to be an integer but received {type(size)}."),
    )
    if size <= 0:
        raise InvalidArgumentError(
            f"Expected 'size' to be a positive integer but is equal to {size}."
        )


class UniformDesigner(object):
    """A designer producing simulator inputs by sampling each coordinate uniformly.

    Each coordinate is drawn independently from the continuous uniform distribution
    over its bounds in the domain, so the inputs created all belong to the domain. The
    random generator is supplied by the caller: a seeded generator gives reproducible
    designs.

    Parameters
    ----------
    domain : SimulatorDomain
        A domain for a simulator.
    rng : numpy.random.Generator
        The source of uniform random numbers.

    Examples
    --------
    >>> rng = np.random.default_rng(42)
    >>> designer = UniformDesigner(SimulatorDomain([(0, 1), (10, 20)]), rng)
    >>> len(designer.make_design_batch(5))
    5
    """

    def __init__(self, domain: SimulatorDomain, rng: np.random.Generator):
        if not isinstance(domain, SimulatorDomain):
            raise TypeError(
                f"Expected 'domain' to be of type SimulatorDomain, but received {type(domain)} "
                "instead."
            )

        if not isinstance(rng, np.random.Generator):
            raise TypeError(
                f"Expected 'rng' to be of type numpy.random.Generator, but received {type(rng)} "
                "instead."
            )

        self._domain = domain
        self._rng = rng

    @property
    def domain(self) -> SimulatorDomain:
        """(Read-only) The domain that inputs are drawn from."""

        return self._domain

    def make_design_batch(self, size: int) -> list[Input]:
        """Create a batch of new simulator inputs.

        Exactly ``size * domain.dim`` draws are taken from the random generator, input
        by input and, within each input, in coordinate order.

        Parameters
        ----------
        size : int
            The number of inputs to create.

        Returns
        -------
        list[Input]
            A batch of new simulator inputs.

        Raises
        ------
        InvalidArgumentError
            If `size` is not positive.
        """

        _check_design_size(size)

        # Rows are filled in C order, which fixes the order of draws
        unit_points = self._rng.uniform(size=(size, self._domain.dim))
        return [self._domain.scale(row) for row in unit_points]


class LatinHypercubeDesigner(object):
    """A designer producing space-filling Latin hypercube designs.

    Designs are computed on the unit hypercube with Scipy's ``LatinHypercube``
    sampler and then rescaled into the domain. Successive batches continue the
    sampler's random stream.

    Parameters
    ----------
    domain : SimulatorDomain
        A domain for a simulator.
    seed : int, optional
        (Default: None) Seed for the sampler, making the designs repeatable.
    """

    def __init__(self, domain: SimulatorDomain, seed: Optional[int] = None):
        if not isinstance(domain, SimulatorDomain):
            raise TypeError(
                f"Expected 'domain' to be of type SimulatorDomain, but received {type(domain)} "
                "instead."
            )

        self._domain = domain
        self._sampler = LatinHypercube(d=domain.dim, seed=seed)

    @property
    def domain(self) -> SimulatorDomain:
        """(Read-only) The domain that inputs are drawn from."""

        return self._domain

    def make_design_batch(self, size: int) -> list[Input]:
        """Create a Latin hypercube design of `size` simulator inputs.

        Raises
        ------
        InvalidArgumentError
            If `size` is not positive.
        """

        _check_design_size(size)
        return [self._domain.scale(row) for row in self._sampler.random(n=size)]


def oneshot_lhs(
    domain: SimulatorDomain, size: int, seed: Optional[int] = None
) -> list[Input]:
    """Create a Latin hypercube design of simulator inputs.

    This is a single batch from a new
    [`LatinHypercubeDesigner`][boreholegp.core.designers.LatinHypercubeDesigner].

    Parameters
    ----------
    domain : SimulatorDomain
        The domain to fill with inputs.
    size : int
        The number of inputs to create.
    seed : int, optional
        (Default: None) Seed for the sampler, making the design repeatable.

    Returns
    -------
    list[Input]
        The design, with every input belonging to `domain`.

    Raises
    ------
    InvalidArgumentError
        If `size` is not positive.
    """

    return LatinHypercubeDesigner(domain, seed=seed).make_design_batch(size)


def _check_distinct_training_inputs(gp: AbstractGaussianProcess) -> None:
    for dat1, dat2 in itertools.combinations(gp.training_data, 2):
        if dat1.input == dat2.input:
            raise ValueError(
                "Cannot compute leave one out error with 'gp' because simulator input "
                f"{dat1.input} is repeated in the training data."
            )


def compute_loo_gp(
    gp: AbstractGaussianProcess,
    leave_out_idx: int,
    loo_gp: Optional[AbstractGaussianProcess] = None,
) -> AbstractGaussianProcess:
    """Calculate a leave-one-out (LOO) Gaussian process.

    The returned Gaussian process (GP) is trained on all training data from `gp`
    except for the datum at `leave_out_idx`, using the fitted hyperparameters *of
    `gp`* rather than re-estimating them.

    By default a deep copy of `gp` is trained and returned. Alternatively `loo_gp` is
    trained in place and returned, which avoids repeated copying when computing many
    LOO GPs.

    Parameters
    ----------
    gp : AbstractGaussianProcess
        A Gaussian process to form the basis for the LOO GP.
    leave_out_idx : int
        The index into ``gp.training_data`` of the datum to leave out.
    loo_gp : AbstractGaussianProcess, optional
        (Default: None) A Gaussian process to train on the LOO data.

    Returns
    -------
    AbstractGaussianProcess
        A Gaussian process trained on all the training data of `gp` except the
        left-out datum.

    Raises
    ------
    ValueError
        If `gp` hasn't been trained on at least two data, has repeated training inputs,
        or `leave_out_idx` is out of range.
    """

    if not isinstance(gp, AbstractGaussianProcess):
        raise TypeError(
            f"Expected 'gp' to be of type AbstractGaussianProcess, but received {type(gp)} "
            "instead."
        )

    check_int(
        leave_out_idx,
        TypeError(
            f"Expected 'leave_out_idx' to be of type int, but received {type(leave_out_idx)} "
            "instead."
        ),
    )

    if not (loo_gp is None or isinstance(loo_gp, AbstractGaussianProcess)):
        raise TypeError(
            "Expected 'loo_gp' to be None or of type AbstractGaussianProcess, but "
            f"received {type(loo_gp)} instead."
        )

    if len(gp.training_data) < 2:
        raise ValueError(
            "Cannot compute leave one out error with 'gp' because it has not been trained "
            "on at least 2 data points."
        )

    if not 0 <= leave_out_idx < len(gp.training_data):
        raise ValueError(
            f"Leave out index {leave_out_idx} is not within the bounds of the training "
            "data for 'gp'."
        )

    _check_distinct_training_inputs(gp)
    remaining_data = (
        gp.training_data[:leave_out_idx] + gp.training_data[leave_out_idx + 1 :]
    )
    loo_gp_ = loo_gp if loo_gp is not None else copy.deepcopy(gp)
    loo_gp_.fit(remaining_data, hyperparameters=gp.fit_hyperparameters)
    return loo_gp_


def compute_loo_prediction(
    gp: AbstractGaussianProcess,
    leave_out_idx: int,
    loo_gp: Optional[AbstractGaussianProcess] = None,
) -> GaussianProcessPrediction:
    """Make a prediction from a leave-one-out (LOO) Gaussian process at the left out
    simulator input.

    See [`compute_loo_gp`][boreholegp.core.designers.compute_loo_gp] for how the LOO
    Gaussian process is obtained.

    Parameters
    ----------
    gp : AbstractGaussianProcess
        A Gaussian process to form the basis for the LOO GP.
    leave_out_idx : int
        The index into ``gp.training_data`` of the datum to leave out.
    loo_gp : AbstractGaussianProcess, optional
        (Default: None) A Gaussian process to train on the LOO data and then use for
        the prediction. If ``None`` then a deep copy of `gp` is used.

    Returns
    -------
    GaussianProcessPrediction
        The prediction of the LOO Gaussian process at the left out simulator input.
    """

    loo_input = gp.training_data[leave_out_idx].input
    return compute_loo_gp(gp, leave_out_idx, loo_gp=loo_gp).predict(loo_input)


def compute_loo_predictions(
    gp: AbstractGaussianProcess,
) -> tuple[GaussianProcessPrediction, ...]:
    """Make leave-one-out (LOO) predictions at every training input of a Gaussian
    process.

    The ``i``th prediction is made at ``gp.training_data[i].input`` by a Gaussian
    process trained on all the other data, with the fitted hyperparameters of `gp`. A
    single deep copy of `gp` is reused for all the LOO fits.

    Parameters
    ----------
    gp : AbstractGaussianProcess
        A Gaussian process trained on at least two data with distinct inputs.

    Returns
    -------
    tuple[GaussianProcessPrediction, ...]
        One prediction per training datum, in the order of ``gp.training_data``.

    Raises
    ------
    ValueError
        If `gp` hasn't been trained on at least two data or has repeated training
        inputs.
    """

    if not isinstance(gp, AbstractGaussianProcess):
        raise TypeError(
            f"Expected 'gp' to be of type AbstractGaussianProcess, but received {type(gp)} "
            "instead."
        )

    if len(gp.training_data) < 2:
        raise ValueError(
            "Cannot compute leave one out predictions with 'gp' because it has not been "
            "trained on at least 2 data points."
        )

    _check_distinct_training_inputs(gp)
    loo_gp = copy.deepcopy(gp)
    predictions = []
    for leave_out_idx in range(len(gp.training_data)):
        predictions.append(compute_loo_prediction(gp, leave_out_idx, loo_gp=loo_gp))
        logger.debug(
            "LOO prediction %d/%d: %s",
            leave_out_idx + 1,
            len(gp.training_data),
            predictions[-1],
        )

    return tuple(predictions)
