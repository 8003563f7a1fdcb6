"""
Leave-one-out (LOO) cross-validation of Gaussian process emulators.

The [`LeaveOneOutValidator`][boreholegp.core.validation.LeaveOneOutValidator] fits
an emulator to a dataset and compares each simulator output with the prediction of
the emulator refitted without that datum. The result is a
[`LooComparison`][boreholegp.core.validation.LooComparison], a table with one
[`LooRecord`][boreholegp.core.validation.LooRecord] per datum in dataset order,
together with summary diagnostics.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import math
from collections.abc import Sequence
from numbers import Real
from typing import Optional

import numpy as np
from scipy.stats import norm

from boreholegp.core.designers import compute_loo_predictions
from boreholegp.core.modelling import (
    AbstractGaussianProcess,
    GaussianProcessPrediction,
    Input,
    OptionalFloatPairs,
    SimulatorDomain,
    TrainingDatum,
)

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class LooRecord(object):
    """The leave-one-out prediction for a single datum.

    Parameters
    ----------
    index : int
        The position of the datum in the dataset.
    input : Input
        The simulator input of the datum.
    observed : numbers.Real
        The simulator output at `input`.
    prediction : GaussianProcessPrediction
        The prediction at `input` of the emulator fitted without this datum.
    """

    index: int
    input: Input
    observed: Real
    prediction: GaussianProcessPrediction

    @property
    def estimate(self) -> float:
        """The predicted simulator output."""
        return self.prediction.estimate

    @property
    def variance(self) -> float:
        """The predictive variance."""
        return self.prediction.variance

    @property
    def error(self) -> float:
        """The observed output minus the predicted output."""
        return self.observed - self.prediction.estimate

    @property
    def standardised_error(self) -> float:
        """The error divided by the predictive standard deviation. This is ``inf`` (or
        ``nan`` for a zero error) when the standard deviation is zero."""

        sd = self.prediction.standard_deviation
        if sd == 0:
            return math.nan if self.error == 0 else math.copysign(math.inf, self.error)

        return self.error / sd


@dataclasses.dataclass(frozen=True)
class LooComparison(object):
    """True versus leave-one-out predicted simulator outputs for a dataset.

    Parameters
    ----------
    records : tuple[LooRecord, ...]
        One record per datum, in dataset order.
    """

    records: tuple[LooRecord, ...]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    def __getitem__(self, item: int) -> LooRecord:
        return self.records[item]

    @property
    def observed(self) -> np.ndarray:
        return np.array([record.observed for record in self.records], dtype=float)

    @property
    def estimates(self) -> np.ndarray:
        return np.array([record.estimate for record in self.records], dtype=float)

    @property
    def variances(self) -> np.ndarray:
        return np.array([record.variance for record in self.records], dtype=float)

    def rmse(self) -> float:
        """The root mean squared LOO prediction error."""

        return float(np.sqrt(np.mean((self.observed - self.estimates) ** 2)))

    def max_abs_error(self) -> float:
        """The largest absolute LOO prediction error."""

        return float(np.max(np.abs(self.observed - self.estimates)))

    def coverage(self, level: float = 0.95) -> float:
        """The proportion of observed outputs lying in the central predictive interval
        of the given probability `level`.

        For a well-calibrated emulator this should be close to `level`.
        """

        if not 0 < level < 1:
            raise ValueError(f"Expected 'level' to be in (0, 1), but received {level}.")

        half_width = norm.ppf(0.5 + level / 2) * np.sqrt(self.variances)
        inside = np.abs(self.observed - self.estimates) <= half_width
        return float(np.mean(inside))

    def mean_nes_error(self) -> float:
        """The mean normalised expected squared error of the LOO predictions."""

        return float(
            np.mean([record.prediction.nes_error(record.observed) for record in self])
        )

    def summary(self, level: float = 0.95) -> dict[str, float]:
        """Diagnostic statistics of the comparison, keyed by name."""

        return {
            "samples": len(self),
            "rmse": self.rmse(),
            "max_abs_error": self.max_abs_error(),
            f"coverage_{round(level * 100)}": self.coverage(level),
            "mean_nes_error": self.mean_nes_error(),
        }


class LeaveOneOutValidator(object):
    """Validates a Gaussian process emulator on a dataset by leave-one-out
    cross-validation.

    The emulator is never modified: each fit is done on a deep copy. If a domain is
    supplied, inputs are rescaled from the domain into the unit hypercube before
    fitting, which puts the correlation length scales of all coordinates on a common
    footing. The records of the comparison always hold the original inputs.

    Parameters
    ----------
    emulator : AbstractGaussianProcess
        An (unfitted) emulator used as the template for the surrogate.
    domain : SimulatorDomain, optional
        (Default: None) The simulator domain used to rescale inputs.
    hyperparameter_bounds : sequence of tuple[Optional[float], Optional[float]], optional
        (Default: None) Bounds applied when estimating hyperparameters of the
        surrogate.

    Examples
    --------
    >>> validator = LeaveOneOutValidator(MogpEmulator(), domain=BOREHOLE_DOMAIN)
    >>> comparison = validator.compare(dataset)
    >>> len(comparison) == len(dataset)
    True
    """

    def __init__(
        self,
        emulator: AbstractGaussianProcess,
        domain: Optional[SimulatorDomain] = None,
        hyperparameter_bounds: Optional[Sequence[OptionalFloatPairs]] = None,
    ):
        if not isinstance(emulator, AbstractGaussianProcess):
            raise TypeError(
                "Expected 'emulator' to be of type AbstractGaussianProcess, but received "
                f"{type(emulator)} instead."
            )

        if not (domain is None or isinstance(domain, SimulatorDomain)):
            raise TypeError(
                "Expected 'domain' to be None or of type SimulatorDomain, but received "
                f"{type(domain)} instead."
            )

        self._emulator = emulator
        self._domain = domain
        self._hyperparameter_bounds = hyperparameter_bounds

    @property
    def domain(self) -> Optional[SimulatorDomain]:
        """(Read-only) The domain used to rescale inputs, or ``None``."""

        return self._domain

    def _prepare(self, training_data: Sequence[TrainingDatum]) -> list[TrainingDatum]:
        if self._domain is None:
            return list(training_data)

        outside = [datum.input for datum in training_data if datum.input not in self._domain]
        if outside:
            raise ValueError(
                f"Expected all training inputs to belong to 'domain', but {outside[0]} "
                "does not."
            )

        return [
            TrainingDatum(self._domain.to_unit(datum.input), datum.output)
            for datum in training_data
        ]

    def fit(self, training_data: Sequence[TrainingDatum]) -> AbstractGaussianProcess:
        """Fit a copy of the emulator to the training data, estimating
        hyperparameters.

        Returns
        -------
        AbstractGaussianProcess
            The fitted surrogate. Its training inputs are rescaled into the unit
            hypercube if this validator has a domain.

        Raises
        ------
        FitError
            If hyperparameter estimation fails to converge.
        """

        training_data = self._prepare(training_data)
        if len(training_data) < 2:
            raise ValueError(
                "Expected at least 2 training data for leave-one-out validation, but "
                f"received {len(training_data)}."
            )

        surrogate = copy.deepcopy(self._emulator)
        surrogate.fit(training_data, hyperparameter_bounds=self._hyperparameter_bounds)
        logger.info("Fitted surrogate to %d training data", len(training_data))
        return surrogate

    @staticmethod
    def leave_one_out_predict(
        surrogate: AbstractGaussianProcess,
    ) -> tuple[GaussianProcessPrediction, ...]:
        """LOO predictions at every training input of a fitted surrogate, in training
        data order."""

        return compute_loo_predictions(surrogate)

    def compare(self, training_data: Sequence[TrainingDatum]) -> LooComparison:
        """Fit a surrogate to the training data and compare each simulator output
        with its leave-one-out prediction.

        Parameters
        ----------
        training_data : sequence of TrainingDatum
            The dataset, with distinct simulator inputs.

        Returns
        -------
        LooComparison
            One record per datum, in the order of `training_data`.

        Raises
        ------
        FitError
            If fitting the surrogate fails to converge.
        """

        training_data = tuple(training_data)
        surrogate = self.fit(training_data)
        predictions = self.leave_one_out_predict(surrogate)
        records = tuple(
            LooRecord(i, datum.input, datum.output, prediction)
            for i, (datum, prediction) in enumerate(zip(training_data, predictions))
        )
        comparison = LooComparison(records)
        logger.info(
            "Leave-one-out RMSE %.4g over %d samples", comparison.rmse(), len(comparison)
        )
        return comparison
