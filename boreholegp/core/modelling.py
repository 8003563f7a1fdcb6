"""Basic objects for expressing emulation of simulators."""

from __future__ import annotations

import abc
import csv
import dataclasses
import functools
import math
import os
from collections.abc import Collection, Sequence
from numbers import Real
from typing import Any, Optional, Union

import numpy as np

import boreholegp.utilities.validation as validation
from boreholegp.core.numerics import equal_within_tolerance

OptionalFloatPairs = tuple[Optional[float], Optional[float]]
PathLike = Union[str, os.PathLike]


class Input(Sequence):
    """The input to a simulator or emulator.

    `Input` objects should be thought of as coordinate vectors. They implement the
    Sequence abstract base class from the ``collections.abc`` module, so that ``len``
    gives the number of coordinates and individual coordinates can be extracted by
    (0-based) index subscripting.

    Parameters
    ----------
    *args : tuple of numbers.Real
        The coordinates of the input. Each coordinate must define a finite
        number that is not a missing value (i.e. not None or NaN).

    Attributes
    ----------
    value : tuple of numbers.Real, numbers.Real or None
        Represents the point as a tuple of real numbers (dim > 1), a single real
        number (dim = 1) or None (dim = 0).

    Examples
    --------
    >>> x = Input(0.1, 20000, 1e5)
    >>> x.value
    (0.1, 20000, 100000.0)
    >>> len(x)
    3
    >>> x[1:]
    Input(20000, 100000.0)
    >>> Input(2.1).value
    2.1
    """

    def __init__(self, *args: Real):
        self._value = self._validate_args(args) if args else None
        self._dim = len(args)

    @classmethod
    def _validate_args(cls, args: tuple[Any, ...]) -> tuple[Real, ...]:
        """Check that all arguments define finite real numbers, returning the
        supplied tuple if so or raising an exception if not."""

        validation.check_entries_not_none(
            args, TypeError("Input coordinates must be real numbers, not None")
        )
        validation.check_entries_real(
            args, TypeError("Arguments must be instances of real numbers")
        )
        validation.check_entries_finite(
            args, ValueError("Cannot supply NaN or non-finite numbers as arguments")
        )

        return args

    def __str__(self) -> str:
        if self._value is None:
            return "()"

        elif self._dim == 1:
            return f"{self._value[0]}"

        return str(self._value)

    def __repr__(self) -> str:
        if self._value is None:
            return "Input()"

        elif self._dim == 1:
            return f"Input({repr(self._value[0])})"

        return f"Input{repr(self._value)}"

    def __eq__(self, other: Any) -> bool:
        """Returns ``True`` precisely when `other` is an `Input` with the same
        coordinates as this `Input`, up to the package float tolerance."""

        if not isinstance(other, type(self)):
            return False

        if self._value is None or other._value is None:
            return self._value is None and other._value is None

        return equal_within_tolerance(self._value, other._value)

    def __hash__(self) -> int:
        return hash(self._dim)

    def __len__(self) -> int:
        """Returns the number of coordinates in this input."""

        return self._dim

    def __getitem__(self, item: Union[int, slice]) -> Union[Input, Real]:
        """Gets the coordinate at the given index of this input, or returns a new
        `Input` built from the given slice of coordinate entries."""

        try:
            subseq = (self._value or ())[item]
            if isinstance(item, slice):
                return self.__class__(*subseq)

            return subseq

        except TypeError:
            raise TypeError(
                f"Subscript must be an 'int' or slice, but received {type(item)}."
            )

        except IndexError:
            raise IndexError(f"Input index {item} out of range.")

    @property
    def value(self) -> Union[tuple[Real, ...], Real, None]:
        """(Read-only) Gets the value of the input, as a tuple of real
        numbers (dim > 1), a single real number (dim = 1), or None (dim = 0)."""

        if self._value is None:
            return None

        if len(self._value) == 1:
            return self._value[0]

        return self._value


@dataclasses.dataclass(frozen=True)
class TrainingDatum(object):
    """A training point for an emulator.

    Emulators are trained on collections ``(x, f(x))`` where ``x`` is an input
    to a simulator and ``f(x)`` is the output of the simulator ``f`` at ``x``.
    This dataclass represents such pairs of inputs and simulator outputs.

    Parameters
    ----------
    input : Input
        An input to a simulator.
    output : numbers.Real
        The output of the simulator at the input. This must be a finite
        number that is not a missing value (i.e. not None or NaN).
    """

    input: Input
    output: Real

    def __post_init__(self):
        if not isinstance(self.input, Input):
            raise TypeError(
                f"Expected 'input' to be of type Input, but received {type(self.input)} "
                "instead."
            )

        validation.check_not_none(
            self.output, TypeError("Argument 'output' cannot be None")
        )
        validation.check_real(
            self.output, TypeError("Argument 'output' must define a real number")
        )
        validation.check_finite(
            self.output, ValueError("Argument 'output' cannot be NaN or non-finite")
        )

    @classmethod
    def read_from_csv(
        cls, path: PathLike, output_col: int = -1, header: bool = False
    ) -> tuple[TrainingDatum, ...]:
        """Read simulator inputs and outputs from a csv file.

        There is one datum per non-empty row. By default the last column holds the
        simulator outputs and the remaining columns, in order, the input coordinates.

        Parameters
        ----------
        path : str or os.PathLike
            The path to a csv file.
        output_col : int, optional
            (Default: -1) The (0-based) index of the column holding the simulator
            outputs. Negative values count backwards from the end of each row.
        header : bool, optional
            (Default: False) Whether the csv contains a header row to skip.

        Returns
        -------
        tuple[TrainingDatum, ...]
            The training data read from the csv file.

        Raises
        ------
        ValueError
            If a value can't be parsed as a finite float, or if `output_col` does
            not define a valid column index for some row.
        """

        training_data = []
        with open(path, mode="r", newline="") as csvfile:
            reader = enumerate(csv.reader(csvfile))
            if header:
                if next(reader, None) is None:
                    return tuple()

            for i, row in ((i, row) for i, row in reader if len(row) > 0):
                try:
                    parsed_row = list(map(float, row))
                except ValueError:
                    raise ValueError(
                        f"Could not read data from {path}: unable to parse row {i} "
                        "as floats."
                    ) from None

                try:
                    output = parsed_row.pop(output_col)
                except IndexError:
                    raise ValueError(
                        f"'output_col={output_col}' does not define a valid column index "
                        f"for csv data with {len(row)} columns in row {i}."
                    ) from None

                try:
                    training_data.append(cls(Input(*parsed_row), output))
                except ValueError:
                    raise ValueError(
                        f"Could not read data from {path}: infinite or NaN values found "
                        f"in row {i}."
                    ) from None

        return tuple(training_data)

    @staticmethod
    def write_to_csv(
        path: PathLike,
        training_data: Collection[TrainingDatum],
        header: Optional[Sequence[str]] = None,
    ) -> None:
        """Write training data to a csv file, one row per datum with the input
        coordinates followed by the simulator output.

        Parameters
        ----------
        path : str or os.PathLike
            The path of the csv file to write. An existing file is overwritten.
        training_data : collection of TrainingDatum
            The data to write.
        header : sequence of str, optional
            (Default: None) Column names to write as the first row.
        """

        with open(path, mode="w", newline="") as csvfile:
            writer = csv.writer(csvfile)
            if header is not None:
                writer.writerow(header)

            for datum in training_data:
                writer.writerow([*datum.input, datum.output])

    def __str__(self) -> str:
        return f"({str(self.input)}, {str(self.output)})"


@dataclasses.dataclass(frozen=True)
class Prediction:
    """Represents a predicted value together with the variance and standard
    deviation of the prediction.

    Two predictions are considered equal if their estimated values and variances agree
    to within the package float tolerance.

    Parameters
    ----------
    estimate : numbers.Real
        The estimated value of the prediction.
    variance : numbers.Real
        The variance of the prediction, which must be non-negative.

    Attributes
    ----------
    standard_deviation : numbers.Real
        (Read-only) The square root of the variance.
    """

    estimate: Real
    variance: Real
    standard_deviation: Real = dataclasses.field(default=None, init=False)

    def __post_init__(self):
        validation.check_real(
            self.estimate,
            TypeError(
                "Expected 'estimate' to define a real number, but received "
                f"{type(self.estimate)} instead."
            ),
        )
        validation.check_real(
            self.variance,
            TypeError(
                "Expected 'variance' to define a real number, but received "
                f"{type(self.variance)} instead."
            ),
        )

        if self.variance < 0:
            raise ValueError(
                f"'variance' must be a non-negative real number, but received {self.variance}."
            )

        object.__setattr__(self, "standard_deviation", math.sqrt(self.variance))

    def __eq__(self, other: Any) -> bool:
        """Checks equality with another object up to default tolerances."""

        if type(other) is not type(self):
            return False

        return equal_within_tolerance(
            self.estimate, other.estimate
        ) and equal_within_tolerance(self.variance, other.variance)


@dataclasses.dataclass(frozen=True, eq=False)
class GaussianProcessPrediction(Prediction):
    """The prediction of a Gaussian process emulator at a simulator input.

    The predictive distribution is normal, with mean `estimate` and variance
    `variance`, which allows the normalised expected squared error against an observed
    output to be calculated exactly.
    """

    def nes_error(self, observed_output: Real) -> float:
        """Calculate the normalised expected squared (NES) error.

        This is the expectation of the squared error divided by the standard deviation
        of the squared error:

        ```
        sq_error = (estimate - observed_output) ** 2
        expected_sq_error = variance + sq_error
        std_sq_error = sqrt(2 * variance**2 + 4 * variance * sq_error)
        nes_error = expected_sq_error / std_sq_error
        ```

        If the denominator is zero, the NES error is zero when the numerator is also
        zero and ``inf`` otherwise (using exact floating point comparisons).

        References
        ----------
        Mohammadi, H. et al. (2022) "Cross-Validation-based Adaptive Sampling for
        Gaussian process models". DOI: https://doi.org/10.1137/21M1404260
        """

        validation.check_real(
            observed_output,
            TypeError(
                f"Expected 'observed_output' to be of type {Real} but received type "
                f"{type(observed_output)}."
            ),
        )
        validation.check_finite(
            observed_output,
            ValueError(
                f"'observed_output' must be a finite real number, but received {observed_output}."
            ),
        )

        square_err = (self.estimate - observed_output) ** 2
        expected_sq_err = self.variance + square_err
        standard_deviation_sq_err = math.sqrt(
            2 * (self.variance**2) + 4 * self.variance * square_err
        )
        try:
            return float(expected_sq_err / standard_deviation_sq_err)
        except ZeroDivisionError:
            return 0 if expected_sq_err == 0 else float("inf")


class AbstractEmulator(abc.ABC):
    """Represents an abstract emulator for simulators.

    Classes that inherit from this abstract base class define emulators which
    can be trained with simulator outputs.
    """

    @property
    @abc.abstractmethod
    def training_data(self) -> tuple[TrainingDatum, ...]:
        """(Read-only) The data on which the emulator has been trained."""
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def fit_hyperparameters(self) -> Optional[AbstractHyperparameters]:
        """(Read-only) The hyperparameters of the fit for this emulator, or ``None`` if
        this emulator has not been fitted to data."""
        raise NotImplementedError

    @abc.abstractmethod
    def fit(
        self,
        training_data: Collection[TrainingDatum],
        hyperparameters: Optional[AbstractHyperparameters] = None,
        hyperparameter_bounds: Optional[Sequence[OptionalFloatPairs]] = None,
    ) -> None:
        """Fit the emulator to data.

        By default, hyperparameters should be estimated when fitting the emulator to
        data. Alternatively, a collection of hyperparameters may be supplied to
        use directly as the fitted values. If bounds are supplied for the hyperparameters,
        then estimation of the hyperparameters should respect these bounds.

        Parameters
        ----------
        training_data : collection of TrainingDatum
            The pairs of inputs and simulator outputs on which the emulator
            should be trained.
        hyperparameters : AbstractHyperparameters, optional
            (Default: None) Hyperparameters to use directly in fitting the emulator.
            If ``None`` then the hyperparameters should be estimated as part of
            fitting to data.
        hyperparameter_bounds : sequence of tuple[Optional[float], Optional[float]], optional
            (Default: None) A sequence of bounds ``(lower_bound, upper_bound)`` to
            apply to hyperparameters during estimation. All but the last pair bound
            the correlation length scales, in input coordinate order; the last pair
            bounds the process variance.

        Raises
        ------
        FitError
            If hyperparameter estimation fails to converge.
        """

        raise NotImplementedError

    @abc.abstractmethod
    def predict(self, x: Input) -> Prediction:
        """Make a prediction of a simulator output for a given input."""

        raise NotImplementedError


class AbstractGaussianProcess(AbstractEmulator, metaclass=abc.ABCMeta):
    """Represents an abstract Gaussian process emulator for simulators.

    Concrete subclasses return `GaussianProcessPrediction` objects from `predict` and
    use `GaussianProcessHyperparameters` for their fitted hyperparameters.
    """

    @property
    @abc.abstractmethod
    def fit_hyperparameters(self) -> Optional[GaussianProcessHyperparameters]:
        """(Read-only) The hyperparameters of the fit for this Gaussian process emulator,
        or ``None`` if this emulator has not been fitted to data."""
        raise NotImplementedError

    @abc.abstractmethod
    def predict(self, x: Input) -> GaussianProcessPrediction:
        raise NotImplementedError


class AbstractHyperparameters(abc.ABC):
    """A base class for hyperparameters used to train an emulator."""

    pass


def _validate_nonnegative_real_domain(arg_name: str):
    """A decorator to be applied to functions with a single real-valued argument called
    `arg_name`. The decorator adds validation that the argument is a real number >= 0."""

    def decorator(func):
        @functools.wraps(func)
        def wrapped(arg: Real):
            if not isinstance(arg, Real):
                raise TypeError(
                    f"Expected '{arg_name}' to be a real number, but received {type(arg)}."
                )

            if arg < 0:
                raise ValueError(f"'{arg_name}' cannot be < 0, but received {arg}.")

            return func(arg)

        return wrapped

    return decorator


@dataclasses.dataclass(frozen=True)
class GaussianProcessHyperparameters(AbstractHyperparameters):
    """Hyperparameters for use in fitting Gaussian processes.

    These are the correlation length scales, the process variance and, optionally, a
    nugget, all on a linear scale. Static methods convert them to the log scales used
    during hyperparameter estimation. Equality is tested hyperparameter-wise up to the
    package float tolerance.

    Parameters
    ----------
    corr_length_scales : sequence or Numpy array of numbers.Real
        The positive correlation length scale parameters, one per input coordinate.
    process_var : numbers.Real
        The process variance, which should be positive.
    nugget : numbers.Real, optional
        (Default: None) A nugget, which should be non-negative if provided.
    """

    corr_length_scales: Union[Sequence[Real], np.ndarray]
    process_var: Real
    nugget: Optional[Real] = None

    def __post_init__(self):
        if not isinstance(self.corr_length_scales, (Sequence, np.ndarray)):
            raise TypeError(
                "Expected 'corr_length_scales' to be a sequence or Numpy array, but "
                f"received {type(self.corr_length_scales)}."
            )

        nonpositive_corrs = [
            x for x in self.corr_length_scales if not isinstance(x, Real) or x <= 0
        ]
        if nonpositive_corrs:
            raise ValueError(
                "Expected 'corr_length_scales' to be a sequence or Numpy array of "
                f"positive real numbers, but found element {nonpositive_corrs[0]}."
            )

        validation.check_real(
            self.process_var,
            TypeError(
                "Expected 'process_var' to be a real number, but received "
                f"{type(self.process_var)}."
            ),
        )
        if self.process_var <= 0:
            raise ValueError(
                "Expected 'process_var' to be a positive real number, but received "
                f"{self.process_var}."
            )

        if self.nugget is not None:
            validation.check_real(
                self.nugget,
                TypeError(
                    f"Expected 'nugget' to be a real number, but received {type(self.nugget)}."
                ),
            )
            if self.nugget < 0:
                raise ValueError(
                    f"Expected 'nugget' to be non-negative, but received {self.nugget}."
                )

    def __eq__(self, other) -> bool:
        if not isinstance(other, self.__class__):
            return False

        if self.nugget is None or other.nugget is None:
            nuggets_equal = self.nugget is None and other.nugget is None
        else:
            nuggets_equal = equal_within_tolerance(self.nugget, other.nugget)

        return (
            nuggets_equal
            and equal_within_tolerance(self.corr_length_scales, other.corr_length_scales)
            and equal_within_tolerance(self.process_var, other.process_var)
        )

    @staticmethod
    @_validate_nonnegative_real_domain("corr_length_scales")
    def transform_corr(corr_length_scales: Real) -> float:
        """Transform a correlation length scale parameter to a negative log scale,
        ``corr_length_scale -> -2 * log(corr_length_scale)``."""

        if corr_length_scales == 0:
            return math.inf

        return -2 * math.log(corr_length_scales)

    @staticmethod
    @_validate_nonnegative_real_domain("process_var")
    def transform_cov(process_var: Real) -> float:
        """Transform a process variance to the (natural) log scale."""

        if process_var == 0:
            return -math.inf

        return math.log(process_var)

    @staticmethod
    @_validate_nonnegative_real_domain("nugget")
    def transform_nugget(nugget: Real) -> float:
        """Transform a nugget to the (natural) log scale."""

        if nugget == 0:
            return -math.inf

        return math.log(nugget)


class SimulatorDomain(object):
    """
    The domain of a simulator, as an n-dimensional rectangle.

    The domain is the set of inputs whose coordinates lie between fixed bounds (which
    may differ for each coordinate). Membership of an input is tested with ``in``.

    Parameters
    ----------
    bounds : Sequence[tuple[Real, Real]]
        Pairs ``(a_i, b_i)`` of lower and upper bounds, one per coordinate.

    Attributes
    ----------
    dim : int
        (Read-only) The number of coordinates of inputs from this domain.
    bounds : tuple[tuple[Real, Real], ...]
        (Read-only) The bounds defining this domain.

    Examples
    --------
    >>> domain = SimulatorDomain([(0.05, 0.15), (100, 50000)])
    >>> Input(0.1, 20000) in domain
    True
    >>> Input(0.1, 60000) in domain
    False
    """

    def __init__(self, bounds: Sequence[tuple[Real, Real]]):
        self._validate_bounds(bounds)
        self._bounds = tuple(bounds)
        self._dim = len(bounds)

    @staticmethod
    def _validate_bounds(bounds: Sequence[tuple[Real, Real]]) -> None:
        if bounds is None:
            raise TypeError("Bounds cannot be None. 'bounds' should be a sequence.")

        if not isinstance(bounds, Sequence):
            raise TypeError("Bounds should be a sequence.")

        if not bounds:
            raise ValueError("At least one pair of bounds must be provided.")

        for bound in bounds:
            if not isinstance(bound, tuple) or len(bound) != 2:
                raise ValueError("Each bound must be a tuple of two numbers.")

            low, high = bound
            if not (isinstance(low, Real) and isinstance(high, Real)):
                raise TypeError("Bounds must be real numbers.")

            if low > high and not equal_within_tolerance(low, high):
                raise ValueError("Lower bound cannot be greater than upper bound.")

    def __contains__(self, item: Any):
        """Returns ``True`` when `item` is an `Input` of the correct dimension and
        whose coordinates lie within the bounds defined by this domain."""

        return (
            isinstance(item, Input)
            and len(item) == self._dim
            and all(
                bound[0] <= item[i] <= bound[1] for i, bound in enumerate(self._bounds)
            )
        )

    @property
    def dim(self) -> int:
        """(Read-only) The dimension of this domain."""
        return self._dim

    @property
    def bounds(self) -> tuple[tuple[Real, Real], ...]:
        """(Read-only) The bounds defining this domain."""
        return self._bounds

    def _check_dim(self, coordinates: Sequence[Real], arg_name: str) -> None:
        if not len(coordinates) == self.dim:
            raise ValueError(
                f"Expected '{arg_name}' to be a sequence of length {self.dim} but "
                f"received sequence of length {len(coordinates)}."
            )

    def scale(self, coordinates: Sequence[Real]) -> Input:
        """Scale coordinates from the unit hypercube into coordinates for this domain.

        Coordinate ``x_i`` is mapped to ``a_i + x_i * (b_i - a_i)``, where ``a_i`` and
        ``b_i`` are the bounds of the ``i``th coordinate. Points outside the unit
        hypercube are transformed in the same way, and so will lie outside this domain.

        Examples
        --------
        >>> domain = SimulatorDomain([(0, 1), (-0.5, 0.5), (1, 11)])
        >>> domain.scale((0.5, 1, 0.7))
        Input(0.5, 0.5, 8.0)
        """

        self._check_dim(coordinates, "coordinates")
        return Input(
            *(a + float(x) * (b - a) for x, (a, b) in zip(coordinates, self._bounds))
        )

    def to_unit(self, x: Sequence[Real]) -> Input:
        """Map a point of this domain into the unit hypercube; the inverse of
        `scale`.

        Coordinates whose bounds coincide are mapped to ``0``.
        """

        self._check_dim(x, "x")
        return Input(
            *(
                (float(xi) - a) / (b - a) if b > a else 0.0
                for xi, (a, b) in zip(x, self._bounds)
            )
        )


class AbstractSimulator(abc.ABC):
    """Represents an abstract simulator.

    Classes that inherit from this abstract base class define simulators, which
    compute the outputs of (typically expensive) models at given inputs.
    """

    @abc.abstractmethod
    def compute(self, x: Input) -> Real:
        """Compute the value of this simulator at an input.

        Parameters
        ----------
        x : Input
            An input to evaluate the simulator at.

        Returns
        -------
        numbers.Real
            The output of the simulator at the input `x`.
        """

        raise NotImplementedError
