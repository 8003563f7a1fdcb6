"""Command line application: generate a borehole dataset, fit a Gaussian process
emulator and validate it by leave-one-out cross-validation."""

import argparse
import dataclasses
import logging
import pathlib
import sys
from collections.abc import Sequence
from importlib.metadata import PackageNotFoundError, version
from typing import Optional

import matplotlib

matplotlib.use("Agg")

import numpy as np  # noqa: E402

from boreholegp.app.plotting import save_comparison_plot  # noqa: E402
from boreholegp.app.table import (  # noqa: E402
    make_comparison_table,
    make_summary_table,
    write_comparison_csv,
)
from boreholegp.borehole import (  # noqa: E402
    BOREHOLE_DOMAIN,
    BoreholeParameters,
    evaluate_inputs,
    generate_dataset,
)
from boreholegp.core.designers import oneshot_lhs  # noqa: E402
from boreholegp.core.emulators import MogpEmulator  # noqa: E402
from boreholegp.core.exceptions import (  # noqa: E402
    DomainError,
    FitError,
    InvalidArgumentError,
)
from boreholegp.core.modelling import TrainingDatum  # noqa: E402
from boreholegp.core.validation import LeaveOneOutValidator, LooComparison  # noqa: E402

logger = logging.getLogger(__name__)

DESIGNS = ("uniform", "lhs")
KERNELS = ("Matern52", "SquaredExponential", "ProductMat52")


@dataclasses.dataclass(frozen=True)
class RunSettings:
    """Settings for a validation run.

    Parameters
    ----------
    n_samples : int
        The size of the dataset.
    seed : int, optional
        Seed for the random generator, making the run repeatable.
    design : str
        Either ``'uniform'`` (independent uniform sampling) or ``'lhs'`` (Latin
        hypercube).
    kernel : str
        Name of the mogp-emulator kernel of the Gaussian process.
    scale_inputs : bool
        Whether to rescale inputs into the unit hypercube before fitting.
    level : float
        Probability of the predictive intervals used for coverage.
    """

    n_samples: int = 50
    seed: Optional[int] = None
    design: str = "uniform"
    kernel: str = "Matern52"
    scale_inputs: bool = True
    level: float = 0.95

    def __post_init__(self):
        if self.design not in DESIGNS:
            raise ValueError(
                f"Expected 'design' to be one of {DESIGNS}, but received '{self.design}'."
            )

        if not 0 < self.level < 1:
            raise ValueError(
                f"Expected 'level' to be in (0, 1), but received {self.level}."
            )


def make_dataset(settings: RunSettings) -> tuple[TrainingDatum, ...]:
    """Generate the borehole dataset described by the settings."""

    if settings.design == "lhs":
        inputs = oneshot_lhs(BOREHOLE_DOMAIN, settings.n_samples, seed=settings.seed)
        return evaluate_inputs(inputs)

    return generate_dataset(settings.n_samples, np.random.default_rng(settings.seed))


def run_validation(
    settings: RunSettings,
) -> tuple[tuple[TrainingDatum, ...], LooComparison]:
    """Generate a dataset and compare it with leave-one-out emulator predictions.

    Returns
    -------
    tuple[tuple[TrainingDatum, ...], LooComparison]
        The dataset and the comparison, whose records are in dataset order.

    Raises
    ------
    InvalidArgumentError
        If the sample count is not positive.
    FitError
        If the emulator could not be fitted.
    """

    dataset = make_dataset(settings)
    logger.info(
        "Generated %d borehole samples (%s design)", len(dataset), settings.design
    )

    emulator = MogpEmulator(kernel=settings.kernel, seed=settings.seed)
    validator = LeaveOneOutValidator(
        emulator, domain=BOREHOLE_DOMAIN if settings.scale_inputs else None
    )
    return dataset, validator.compare(dataset)


def get_version() -> str:
    """Retrieve the version of borehole-gp currently installed."""

    try:
        return version("borehole-gp")
    except PackageNotFoundError:
        return "Package not found."


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="boreholegp",
        description=(
            "Fit a Gaussian process emulator to the borehole function and validate it "
            "by leave-one-out cross-validation."
        ),
    )
    parser.add_argument(
        "-n",
        "--samples",
        type=int,
        default=RunSettings.n_samples,
        help="number of borehole samples to generate (defaults to %(default)s)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="seed for the random generator, for repeatable runs",
    )
    parser.add_argument(
        "--design",
        choices=DESIGNS,
        default=RunSettings.design,
        help="sampling design for the dataset (defaults to '%(default)s')",
    )
    parser.add_argument(
        "--kernel",
        choices=KERNELS,
        default=RunSettings.kernel,
        help="covariance kernel of the emulator (defaults to '%(default)s')",
    )
    parser.add_argument(
        "--no-scale",
        action="store_true",
        help="fit the emulator on raw inputs instead of inputs rescaled to the unit cube",
    )
    parser.add_argument(
        "--csv",
        type=pathlib.Path,
        default=None,
        help="write the leave-one-out comparison to a CSV file",
    )
    parser.add_argument(
        "--plot",
        type=pathlib.Path,
        default=None,
        help="save a plot of observed against predicted flow rates",
    )
    parser.add_argument(
        "--dataset-csv",
        type=pathlib.Path,
        default=None,
        help="write the generated dataset to a CSV file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="show debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"borehole-gp {get_version()}",
        help="show the current installed version of borehole-gp and exit",
    )
    return parser


def write_outputs(
    args: argparse.Namespace,
    dataset: tuple[TrainingDatum, ...],
    comparison: LooComparison,
    level: float,
) -> None:
    names = BoreholeParameters.names()
    if args.dataset_csv is not None:
        TrainingDatum.write_to_csv(
            args.dataset_csv, dataset, header=names + ("flow_rate",)
        )
        logger.info("Wrote dataset to %s", args.dataset_csv)

    if args.csv is not None:
        write_comparison_csv(args.csv, comparison, input_names=names)
        logger.info("Wrote leave-one-out comparison to %s", args.csv)

    if args.plot is not None:
        save_comparison_plot(args.plot, comparison, level=level)
        logger.info("Saved plot to %s", args.plot)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """The entry point into the borehole-gp command line application."""

    try:
        args = make_parser().parse_args(argv)
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        try:
            settings = RunSettings(
                n_samples=args.samples,
                seed=args.seed,
                design=args.design,
                kernel=args.kernel,
                scale_inputs=not args.no_scale,
            )
            dataset, comparison = run_validation(settings)
            print(make_summary_table(comparison.summary(settings.level)))
            print()
            print(make_comparison_table(comparison))
            write_outputs(args, dataset, comparison, settings.level)
        except (InvalidArgumentError, DomainError, FitError, OSError) as e:
            logger.error("%s: %s", type(e).__name__, e)
            return 1

        return 0

    except KeyboardInterrupt:
        print()  # Use of print ensures next shell prompt starts on new line
        return 130


if __name__ == "__main__":
    sys.exit(main())
