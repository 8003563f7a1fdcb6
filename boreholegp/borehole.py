"""
The borehole function: water flow through a borehole drilled between two aquifers.

The flow rate (in cubic metres per year) depends on eight physical parameters. It is a
standard test function for emulation and sensitivity analysis because it is cheap to
evaluate, nonlinear and has interacting inputs. See Harper, W. V. & Gupta, S. K. (1983)
"Sensitivity/uncertainty analysis of a borehole scenario comparing Latin hypercube
sampling and deterministic sensitivity approaches", and the Virtual Library of
Simulation Experiments: <https://www.sfu.ca/~ssurjano/borehole.html>.


Parameters
---------------------------------------------------------------------------------------
[`BoreholeParameters`][boreholegp.borehole.BoreholeParameters]
The eight named parameters, convertible to and from simulator inputs.

[`BOREHOLE_RANGES`][boreholegp.borehole.BOREHOLE_RANGES]
Ranges of the parameters, in field order.

[`BOREHOLE_DOMAIN`][boreholegp.borehole.BOREHOLE_DOMAIN]
The simulator domain defined by the ranges.


Simulation
---------------------------------------------------------------------------------------
[`flow_rate`][boreholegp.borehole.flow_rate]
Evaluate the flow rate for a set of parameters.

[`BoreholeSimulator`][boreholegp.borehole.BoreholeSimulator]
The flow rate as a simulator of `Input` objects.

[`generate_dataset`][boreholegp.borehole.generate_dataset]
Random parameters paired with their flow rates.
"""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Iterable
from numbers import Real

import numpy as np

import boreholegp.utilities.validation as validation
from boreholegp.core.designers import UniformDesigner
from boreholegp.core.exceptions import DomainError
from boreholegp.core.modelling import (
    AbstractSimulator,
    Input,
    SimulatorDomain,
    TrainingDatum,
)


@dataclasses.dataclass(frozen=True)
class ParameterRange:
    """The range of values of a borehole parameter."""

    name: str
    lower: float
    upper: float
    units: str
    description: str


BOREHOLE_RANGES = (
    ParameterRange("radius_borehole", 0.05, 0.15, "m", "radius of borehole"),
    ParameterRange("radius_influence", 100, 50000, "m", "radius of influence"),
    ParameterRange(
        "trans_upper", 63070, 115600, "m^2/yr", "transmissivity of upper aquifer"
    ),
    ParameterRange("pot_upper", 990, 1110, "m", "potentiometric head of upper aquifer"),
    ParameterRange(
        "trans_lower", 63.1, 116, "m^2/yr", "transmissivity of lower aquifer"
    ),
    ParameterRange("pot_lower", 700, 820, "m", "potentiometric head of lower aquifer"),
    ParameterRange("length_borehole", 1120, 1680, "m", "length of borehole"),
    ParameterRange(
        "cond_borehole", 9855, 12045, "m/yr", "hydraulic conductivity of borehole"
    ),
)
"""The ranges of the borehole parameters, in the field order of `BoreholeParameters`."""

BOREHOLE_DOMAIN = SimulatorDomain([(p.lower, p.upper) for p in BOREHOLE_RANGES])
"""The 8-dimensional simulator domain of the borehole function."""


@dataclasses.dataclass(frozen=True)
class BoreholeParameters:
    """The parameters of the borehole function.

    The order of the fields is the order of the coordinates of the corresponding
    simulator `Input` (see `to_input` and `from_input`).

    Parameters
    ----------
    radius_borehole : numbers.Real
        Radius of the borehole, ``rw`` (m).
    radius_influence : numbers.Real
        Radius of influence, ``r`` (m).
    trans_upper : numbers.Real
        Transmissivity of the upper aquifer, ``Tu`` (m^2/yr).
    pot_upper : numbers.Real
        Potentiometric head of the upper aquifer, ``Hu`` (m).
    trans_lower : numbers.Real
        Transmissivity of the lower aquifer, ``Tl`` (m^2/yr).
    pot_lower : numbers.Real
        Potentiometric head of the lower aquifer, ``Hl`` (m).
    length_borehole : numbers.Real
        Length of the borehole, ``L`` (m).
    cond_borehole : numbers.Real
        Hydraulic conductivity of the borehole, ``Kw`` (m/yr).

    Examples
    --------
    >>> params = BoreholeParameters(0.1, 20000, 100000, 1050, 90, 760, 1400, 11000)
    >>> params.in_range()
    True
    >>> BoreholeParameters.from_input(params.to_input()) == params
    True
    """

    radius_borehole: Real
    radius_influence: Real
    trans_upper: Real
    pot_upper: Real
    trans_lower: Real
    pot_lower: Real
    length_borehole: Real
    cond_borehole: Real

    def __post_init__(self):
        for field in dataclasses.fields(self):
            value = getattr(self, field.name)
            validation.check_real(
                value,
                TypeError(
                    f"Expected '{field.name}' to be a real number, but received "
                    f"{type(value)} instead."
                ),
            )
            validation.check_finite(
                value,
                ValueError(f"Expected '{field.name}' to be finite, but received {value}."),
            )

    @classmethod
    def names(cls) -> tuple[str, ...]:
        """The names of the parameters, in field order."""

        return tuple(field.name for field in dataclasses.fields(cls))

    @classmethod
    def from_input(cls, x: Input) -> BoreholeParameters:
        """Create parameters from an 8-dimensional simulator input, taking the
        coordinates in field order."""

        if not isinstance(x, Input):
            raise TypeError(
                f"Expected 'x' to be of type Input, but received {type(x)} instead."
            )

        if not len(x) == len(BOREHOLE_RANGES):
            raise ValueError(
                f"Expected 'x' to be an Input with {len(BOREHOLE_RANGES)} coordinates, "
                f"but it has {len(x)} instead."
            )

        return cls(*x)

    def to_input(self) -> Input:
        """The simulator input with coordinates in field order."""

        return Input(*dataclasses.astuple(self))

    def in_range(self) -> bool:
        """Whether every parameter lies within its range in `BOREHOLE_RANGES`
        (inclusive)."""

        return self.to_input() in BOREHOLE_DOMAIN


def flow_rate(params: BoreholeParameters) -> float:
    """Compute the water flow rate through a borehole, in cubic metres per year.

    The flow rate is

    ```
    2 * pi * Tu * (Hu - Hl) / (ln(r / rw) * (1 + 2 * L * Tu / (ln(r / rw) * rw**2 * Kw) + Tu / Tl))
    ```

    Parameters
    ----------
    params : BoreholeParameters
        The borehole parameters.

    Returns
    -------
    float
        The flow rate.

    Raises
    ------
    DomainError
        If the borehole radius is not positive, the radius of influence does not
        exceed the borehole radius or one of the denominators in the formula is zero.

    Examples
    --------
    >>> params = BoreholeParameters(0.1, 20000, 100000, 1050, 90, 760, 1400, 11000)
    >>> round(flow_rate(params), 1)
    71.2
    """

    if not isinstance(params, BoreholeParameters):
        raise TypeError(
            "Expected 'params' to be of type BoreholeParameters, but received "
            f"{type(params)} instead."
        )

    rw = float(params.radius_borehole)
    r = float(params.radius_influence)
    tu = float(params.trans_upper)
    tl = float(params.trans_lower)
    kw = float(params.cond_borehole)

    if rw <= 0:
        raise DomainError(f"Expected 'radius_borehole' to be positive, but received {rw}.")

    if r <= rw:
        raise DomainError(
            f"Expected 'radius_influence' ({r}) to be greater than 'radius_borehole' ({rw})."
        )

    ln_term = math.log(r / rw)
    conduction = ln_term * rw**2 * kw
    if conduction == 0:
        raise DomainError(
            "Cannot compute flow rate: 'cond_borehole' term of the denominator is zero."
        )

    if tl == 0:
        raise DomainError("Cannot compute flow rate: 'trans_lower' is zero.")

    numerator = 2 * math.pi * tu * (float(params.pot_upper) - float(params.pot_lower))
    denominator = ln_term * (
        1 + (2 * float(params.length_borehole) * tu) / conduction + tu / tl
    )
    if denominator == 0:
        raise DomainError("Cannot compute flow rate: denominator is zero.")

    return numerator / denominator


class BoreholeSimulator(AbstractSimulator):
    """The borehole flow rate as a simulator.

    Inputs are 8-dimensional, with coordinates in the field order of
    `BoreholeParameters`.
    """

    @property
    def domain(self) -> SimulatorDomain:
        """(Read-only) The domain of the simulator."""

        return BOREHOLE_DOMAIN

    def compute(self, x: Input) -> float:
        """Compute the flow rate at a simulator input.

        Raises
        ------
        DomainError
            If the input does not define a physically valid borehole.
        """

        return flow_rate(BoreholeParameters.from_input(x))


def generate_parameters(n: int, rng: np.random.Generator) -> list[BoreholeParameters]:
    """Draw parameters independently and uniformly from their ranges.

    Exactly ``8 * n`` uniform numbers are drawn from `rng`, parameter set by parameter
    set, in field order.

    Raises
    ------
    InvalidArgumentError
        If `n` is not positive.
    """

    designer = UniformDesigner(BOREHOLE_DOMAIN, rng)
    return [BoreholeParameters.from_input(x) for x in designer.make_design_batch(n)]


def evaluate_dataset(
    params: Iterable[BoreholeParameters],
) -> tuple[TrainingDatum, ...]:
    """Pair each set of parameters with its flow rate, preserving order."""

    return tuple(TrainingDatum(p.to_input(), flow_rate(p)) for p in params)


def evaluate_inputs(inputs: Iterable[Input]) -> tuple[TrainingDatum, ...]:
    """Pair each simulator input with the flow rate at the input, preserving order."""

    simulator = BoreholeSimulator()
    return tuple(TrainingDatum(x, simulator.compute(x)) for x in inputs)


def generate_dataset(n: int, rng: np.random.Generator) -> tuple[TrainingDatum, ...]:
    """Generate ``n`` uniformly random borehole parameter sets and their flow rates.

    The same seed for `rng` and the same `n` always give the same dataset.

    Raises
    ------
    InvalidArgumentError
        If `n` is not positive.
    """

    return evaluate_dataset(generate_parameters(n, rng))
