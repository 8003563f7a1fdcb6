"""
Provides the Gaussian process emulators used to build surrogates for simulators,
building upon the `mogp-emulator` package.


[MogpEmulator][boreholegp.core.emulators.MogpEmulator]
---------------------------------------------------------------------------------------
[`fit`][boreholegp.core.emulators.MogpEmulator.fit]
Fit emulator to the data, estimating hyperparameters by default.

[`predict`][boreholegp.core.emulators.MogpEmulator.predict]
Make prediction for simulator output given Input.


[MogpHyperparameters][boreholegp.core.emulators.MogpHyperparameters]
---------------------------------------------------------------------------------------
[`from_mogp_gp_params`][boreholegp.core.emulators.MogpHyperparameters.from_mogp_gp_params]
Create instance of `MogpHyperparameters`.

[`to_mogp_gp_params`][boreholegp.core.emulators.MogpHyperparameters.to_mogp_gp_params]
Convert to an instance of ``mogp_emulator.GPParams.GPParams``.
"""

from __future__ import annotations

import dataclasses
import itertools
import logging
import warnings
from collections.abc import Sequence
from numbers import Real
from typing import Any, Literal, Optional

import numpy as np
from mogp_emulator import GaussianProcess
from mogp_emulator.GPParams import GPParams

from boreholegp.core.modelling import (
    AbstractGaussianProcess,
    GaussianProcessHyperparameters,
    GaussianProcessPrediction,
    Input,
    OptionalFloatPairs,
    TrainingDatum,
)
from boreholegp.utilities.decorators import log_print
from boreholegp.utilities.mogp_fitting import fit_GP_MAP

logger = logging.getLogger(__name__)

# Start of the message mogp-emulator issues when a GaussianProcess is fitted with a
# GPParams object
MEAN_PARAMS_WARNING = "Setting mean parameters with a GPParams object is not supported"


class MogpEmulator(AbstractGaussianProcess):
    """
    An emulator wrapping a ``GaussianProcess`` object from the mogp-emulator
    package.

    Keyword arguments supplied to the `MogpEmulator` are passed onto the
    ``GaussianProcess`` initialiser to create the underlying ``GaussianProcess``
    object, except for ``inputs`` and ``targets``, which are ignored: the emulator is
    always constructed without training data. The supported kernels are
    'Matern52' (the default, as in the RobustGaSP package), 'SquaredExponential' and
    'ProductMat52', specified as strings.

    Parameters
    ----------
    n_tries : int, optional
        (Default: 15) The number of optimisation starts used when estimating
        hyperparameters.
    seed : int, optional
        (Default: None) Seed for the random optimisation starting points, making
        hyperparameter estimation reproducible.
    **kwargs : dict, optional
        Keyword arguments for creating a mogp-emulator ``GaussianProcess``.

    Attributes
    ----------
    gp : mogp_emulator.GaussianProcess
        (Read-only) The underlying mogp-emulator ``GaussianProcess`` object.
    training_data : tuple[TrainingDatum]
        (Read-only) The pairs of inputs and simulator outputs on which the emulator
        has been trained.
    fit_hyperparameters : MogpHyperparameters or None
        (Read-only) The hyperparameters of the fitted Gaussian process, or ``None`` if
        the model has not been fit to data.

    Raises
    ------
    ValueError
        If the kernel supplied is not one of the supported kernel functions.
    RuntimeError
        If the keyword arguments are not accepted by the initialiser of
        ``GaussianProcess``.
    """

    _kernels = ("Matern52", "SquaredExponential", "ProductMat52")

    def __init__(self, n_tries: int = 15, seed: Optional[int] = None, **kwargs):
        self._n_tries = n_tries
        self._seed = seed
        self._gp_kwargs = {
            k: v for (k, v) in kwargs.items() if k not in ("inputs", "targets")
        }
        self._gp_kwargs.setdefault("kernel", "Matern52")
        if self._gp_kwargs["kernel"] not in self._kernels:
            raise ValueError(
                f"Could not initialise MogpEmulator with kernel = {self._gp_kwargs['kernel']}: "
                "not a supported kernel function."
            )

        self._gp = self._make_gp(**self._gp_kwargs)

        # Add the default nugget type if not provided explicitly
        self._gp_kwargs.setdefault("nugget", self._gp.nugget_type)

        self._training_data = tuple()
        self._fit_hyperparameters = None

    @staticmethod
    @log_print(logger)
    def _make_gp(*args, **kwargs) -> GaussianProcess:
        """Create an mogp GaussianProcess, raising a RuntimeError if this fails."""

        try:
            return GaussianProcess(*(args or ([], [])), **kwargs)

        except Exception:
            raise RuntimeError(
                "Could not construct mogp-emulator GaussianProcess during "
                "initialisation of MogpEmulator"
            )

    @property
    def gp(self) -> GaussianProcess:
        """(Read-only) The underlying mogp GaussianProcess for this emulator."""

        return self._gp

    @property
    def training_data(self) -> tuple[TrainingDatum, ...]:
        """(Read-only) The data on which the emulator has been trained."""

        return self._training_data

    @property
    def fit_hyperparameters(self) -> Optional[MogpHyperparameters]:
        """(Read-only) The hyperparameters of the underlying fitted Gaussian
        process model, or ``None`` if the model has not been fitted to data."""

        return self._fit_hyperparameters

    @log_print(logger)
    def fit(
        self,
        training_data: Sequence[TrainingDatum],
        hyperparameters: Optional[MogpHyperparameters] = None,
        hyperparameter_bounds: Optional[Sequence[OptionalFloatPairs]] = None,
    ) -> None:
        """Fit the emulator to data.

        By default, hyperparameters are estimated by maximising the log-posterior,
        respecting any `hyperparameter_bounds` (a bound of ``None`` is unconstrained;
        upper bounds must be ``None`` or positive). Alternatively, hyperparameters can
        be supplied to use directly, in which case the bounds are ignored. If the
        nugget is not part of the supplied hyperparameters it is computed according to
        the 'nugget' argument used to construct the emulator.

        Parameters
        ----------
        training_data :
            The pairs of inputs and simulator outputs on which the emulator
            should be trained. Should be a finite collection of such pairs.
        hyperparameters :
            Hyperparameters to use directly in fitting the Gaussian process. If
            ``None`` then the hyperparameters will be estimated.
        hyperparameter_bounds :
            Bounds ``(lower_bound, upper_bound)`` on the correlation length scales
            followed by a final pair for the process variance.

        Raises
        ------
        ValueError
            If `training_data` contains duplicate inputs, or if `hyperparameters` has
            no nugget but the emulator was created with nugget fitting method 'fit'.
        FitError
            If hyperparameter estimation fails to converge.
        """

        training_data = self._parse_training_data(training_data)
        if not training_data:
            return None

        self._validate_training_data_unique(training_data)

        if not (
            hyperparameters is None or isinstance(hyperparameters, MogpHyperparameters)
        ):
            raise TypeError(
                "Expected 'hyperparameters' to be None or of type "
                f"{MogpHyperparameters.__name__}, but received {type(hyperparameters)} instead."
            )

        self._validate_hyperparameter_bounds(hyperparameter_bounds)

        inputs = np.array([np.array(datum.input, dtype=float) for datum in training_data])
        targets = np.array([datum.output for datum in training_data], dtype=float)
        if hyperparameters is None:
            self._fit_gp_with_estimation(inputs, targets, hyperparameter_bounds)
        elif self._gp_kwargs["nugget"] == "fit" and hyperparameters.nugget is None:
            raise ValueError(
                "The underlying MOGP GaussianProcess was created with 'nugget'='fit', "
                "but the nugget supplied during fitting is None, when it should instead "
                "be a float."
            )
        else:
            self._fit_gp_with_hyperparameters(inputs, targets, hyperparameters)

        self._fit_hyperparameters = MogpHyperparameters.from_mogp_gp_params(
            self._gp.theta
        )

        if len(training_data) < self._gp.n_params:
            warnings.warn(
                f"Fewer training points ({len(training_data)}) than hyperparameters "
                f"({self._gp.n_params}) being estimated. Estimates may be unreliable."
            )

        self._training_data = training_data
        return None

    @staticmethod
    def _parse_training_data(training_data: Any) -> tuple[TrainingDatum, ...]:
        """Check that a finite collection of training data has been provided and
        return it as a tuple."""

        if training_data is None:
            return tuple()

        try:
            _ = len(training_data)  # to catch infinite iterators
            if not all(isinstance(x, TrainingDatum) for x in training_data):
                raise TypeError

            return tuple(training_data)

        except TypeError:
            raise TypeError(
                "Expected 'training_data' to be of type finite collection of TrainingDatum, "
                f"but received {type(training_data)} instead."
            ) from None

    @staticmethod
    def _validate_training_data_unique(training_data: tuple[TrainingDatum, ...]):
        inputs = [datum.input for datum in training_data]
        for input1, input2 in itertools.combinations(inputs, 2):
            if input1 == input2:
                raise ValueError(
                    f"Points {input1} and {input2} in 'training_data' are not unique "
                    "within tolerance."
                )

    def _validate_hyperparameter_bounds(
        self, hyperparameter_bounds: Optional[Sequence[OptionalFloatPairs]]
    ) -> None:
        """Validate that each pair of bounds is ordered correctly."""

        if hyperparameter_bounds is None:
            return None

        for i, bound in enumerate(hyperparameter_bounds):
            try:
                self._validate_bound_pair(bound)
            except (TypeError, ValueError) as e:
                raise e.__class__(
                    f"Invalid bound {bound} at index {i} of 'hyperparameter_bounds': {e}"
                )

        return None

    @staticmethod
    def _validate_bound_pair(bounds: Sequence):
        try:
            if not len(bounds) == 2:
                raise ValueError(
                    "Expected 'bounds' to be a sequence of length 2, but "
                    f"got length {len(bounds)}."
                )
        except TypeError:
            raise TypeError(
                f"Expected 'bounds' to be of type sequence, but received {type(bounds)} instead."
            )

        if not all(bound is None or isinstance(bound, Real) for bound in bounds):
            raise TypeError(
                f"Expected each 'bound' in {bounds} to be None or of type {Real} "
                "but one or more elements were of an unexpected type."
            )

        lower, upper = bounds
        if lower is not None and upper is not None and upper < lower:
            raise ValueError(
                "Lower bound must be less than or equal to upper bound, but received "
                f"lower bound = {lower} and upper bound = {upper}."
            )

    def _fit_gp_with_estimation(
        self,
        inputs: np.ndarray,
        targets: np.ndarray,
        hyperparameter_bounds: Optional[Sequence[OptionalFloatPairs]] = None,
    ) -> None:
        bounds = (
            self._compute_raw_param_bounds(hyperparameter_bounds)
            if hyperparameter_bounds is not None
            else None
        )
        self._gp = fit_GP_MAP(
            self._make_gp(inputs, targets, **self._gp_kwargs),
            bounds=bounds,
            n_tries=self._n_tries,
            seed=self._seed,
        )
        logger.info(
            "Estimated hyperparameters from %d training points: %s",
            len(targets),
            MogpHyperparameters.from_mogp_gp_params(self._gp.theta),
        )
        return None

    def _fit_gp_with_hyperparameters(
        self,
        inputs: np.ndarray,
        targets: np.ndarray,
        hyperparameters: MogpHyperparameters,
    ) -> None:
        kwargs = dict(self._gp_kwargs)
        nugget_type = "fixed"
        _hyperparameters = hyperparameters

        # Fit using supplied nugget hyperparameter if available...
        if hyperparameters.nugget is not None:
            kwargs["nugget"] = hyperparameters.nugget

        # ... Otherwise use the nugget given at GP construction, if a real number...
        elif isinstance(kwargs["nugget"], Real):
            _hyperparameters = MogpHyperparameters(
                hyperparameters.corr_length_scales,
                hyperparameters.process_var,
                kwargs["nugget"],
            )

        # ... Otherwise use the nugget calculation method given at GP construction.
        else:
            nugget_type = kwargs["nugget"]

        self._gp = self._make_gp(inputs, targets, **kwargs)
        gp_params = _hyperparameters.to_mogp_gp_params(nugget_type=nugget_type)

        with warnings.catch_warnings():
            warnings.filterwarnings(
                "ignore", message=MEAN_PARAMS_WARNING, category=UserWarning
            )
            self._gp.fit(gp_params)

        return None

    @staticmethod
    def _compute_raw_param_bounds(
        bounds: Sequence[OptionalFloatPairs],
    ) -> tuple[OptionalFloatPairs, ...]:
        """Compute bounds on the raw (log-scale) mogp parameters from bounds on the
        correlation length scales and process variance.

        See <https://mogp-emulator.readthedocs.io/en/latest/implementation/GPParams.html>
        """

        for _, upper in bounds:
            if upper is not None and upper <= 0:
                raise ValueError("Upper bounds must be positive numbers")

        # The correlation transform is decreasing, so the bounds swap over
        raw_bounds = [
            (
                MogpHyperparameters.transform_corr(upper) if upper is not None else None,
                MogpHyperparameters.transform_corr(lower) if lower is not None else None,
            )
            for lower, upper in bounds[:-1]
        ]
        lower, upper = bounds[-1]
        raw_bounds.append(
            (
                MogpHyperparameters.transform_cov(lower) if lower is not None else None,
                MogpHyperparameters.transform_cov(upper) if upper is not None else None,
            )
        )
        return tuple(raw_bounds)

    def predict(self, x: Input) -> GaussianProcessPrediction:
        """Make a prediction of a simulator output for a given input.

        Raises
        ------
        RuntimeError
            If this emulator has not been trained on any data before making the
            prediction.
        ValueError
            If `x` has a different dimension to the training inputs.
        """

        if not isinstance(x, Input):
            raise TypeError(
                f"Expected 'x' to be of type Input, but received {type(x)} instead."
            )

        if len(self.training_data) == 0:
            raise RuntimeError(
                "Cannot make prediction because emulator has not been trained on any data."
            )

        if not len(x) == (expected_dim := len(self.training_data[0].input)):
            raise ValueError(
                f"Expected 'x' to be an Input with {expected_dim} coordinates, but "
                f"it has {len(x)} instead."
            )

        result = self.gp.predict(np.array(x, dtype=float))

        # Rounding can produce tiny negative variances at training inputs
        return GaussianProcessPrediction(
            estimate=float(result.mean[0]), variance=max(float(result.unc[0]), 0.0)
        )


@dataclasses.dataclass(frozen=True)
class MogpHyperparameters(GaussianProcessHyperparameters):
    """Hyperparameters for use in fitting Gaussian processes via `MogpEmulator`.

    A simplified interface to ``mogp_emulator.GPParams.GPParams``. The correlation
    length scales, process variance and nugget are on the linear scale rather than
    mogp's raw log scale.

    Parameters
    ----------
    corr_length_scales : sequence or Numpy array of Real
        The positive correlation length scale parameters, one per input coordinate.
    process_var: numbers.Real
        The process variance, which should be positive.
    nugget : numbers.Real, optional
        A nugget, which should be non-negative if provided.
    """

    @classmethod
    def from_mogp_gp_params(cls, params: GPParams) -> MogpHyperparameters:
        """Create an instance of MogpHyperparameters from an
        ``mogp_emulator.GPParams.GPParams`` object."""

        if not isinstance(params, GPParams):
            raise TypeError(
                "Expected 'params' to be of type mogp_emulator.GPParams.GPParams, but "
                f"received {type(params)} instead."
            )

        if params.corr is None and params.cov is None:
            raise ValueError(
                "Cannot create hyperparameters with correlation length scales and process "
                "variance equal to None in 'params'."
            )

        return cls(
            corr_length_scales=params.corr,
            process_var=params.cov,
            nugget=params.nugget,
        )

    def __eq__(self, other) -> bool:
        return isinstance(other, self.__class__) and super().__eq__(other)

    def __str__(self) -> str:
        scales = ", ".join(f"{x:.4g}" for x in self.corr_length_scales)
        nugget = "None" if self.nugget is None else f"{self.nugget:.4g}"
        return (
            f"corr_length_scales=({scales}), process_var={self.process_var:.4g}, "
            f"nugget={nugget}"
        )

    def to_mogp_gp_params(
        self, nugget_type: Literal["fixed", "fit", "adaptive", "pivot"] = "fixed"
    ) -> GPParams:
        """Convert this object to an instance of ``mogp_emulator.GPParams.GPParams``.

        For `nugget_type` 'fixed' or 'fit' the nugget must be defined and is copied
        over; for 'adaptive' or 'pivot' the nugget is left for mogp to compute.

        Raises
        ------
        ValueError
            If `nugget_type` is not one of the above, or is 'fixed' or 'fit' while
            this object's nugget is ``None``.
        """

        if not isinstance(nugget_type, str):
            raise TypeError(
                "Expected 'nugget_type' to be of type str, but received "
                f"{type(nugget_type)} instead."
            )

        nugget_types = ["fixed", "fit", "adaptive", "pivot"]
        if nugget_type not in nugget_types:
            nugget_types_str = ", ".join(f"'{nt}'" for nt in nugget_types)
            raise ValueError(
                f"'nugget_type' must be one of {{{nugget_types_str}}}, "
                f"but got '{nugget_type}'."
            )

        if nugget_type in ["fixed", "fit"] and self.nugget is None:
            raise ValueError(
                f"Cannot set nugget fitting method to 'nugget_type = {nugget_type}' "
                "when this object's nugget is None."
            )

        transformed_params = [self.transform_corr(x) for x in self.corr_length_scales] + [
            self.transform_cov(self.process_var)
        ]

        if nugget_type == "fixed":
            params = GPParams(n_corr=len(self.corr_length_scales), nugget=self.nugget)
        elif nugget_type == "fit":
            transformed_params.append(self.transform_nugget(self.nugget))
            params = GPParams(n_corr=len(self.corr_length_scales), nugget="fit")
        else:
            params = GPParams(n_corr=len(self.corr_length_scales), nugget=nugget_type)

        params.set_data(np.array(transformed_params, dtype=float))

        return params
