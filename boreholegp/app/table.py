import csv
from collections import OrderedDict
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Optional

from boreholegp.core.modelling import PathLike
from boreholegp.core.validation import LooComparison


def make_table(
    data: OrderedDict[str, Sequence[Any]],
    formatters: Optional[Mapping[str, Callable[[Any], str]]] = None,
) -> str:
    """Lay out columns of data as a left-aligned plain text table, with the keys of
    `data` as column headings. Cells are formatted with the function for their column
    in `formatters`, or with ``str`` for columns without one."""

    formatters = formatters or {}
    formatted_data = OrderedDict(
        (k, tuple(map(formatters.get(k, str), v))) for k, v in data.items()
    )

    # Make all cells the same width column-wise
    columns = [[k] + list(v) for k, v in formatted_data.items()]
    max_cell_widths = [max(map(len, col)) for col in columns]
    tidied_columns = [
        [f"{cell:<{width}}" for cell in column]
        for width, column in zip(max_cell_widths, columns)
    ]

    rows = ["  ".join(row_cells).rstrip() for row_cells in zip(*tidied_columns)]
    return "\n".join(rows)


def format_float(x: float) -> str:
    return f"{x:.4g}"


def make_comparison_table(comparison: LooComparison) -> str:
    """A table of observed and leave-one-out predicted outputs, one row per datum."""

    data = OrderedDict(
        [
            ("INDEX", [record.index for record in comparison]),
            ("OBSERVED", [record.observed for record in comparison]),
            ("LOO_ESTIMATE", [record.estimate for record in comparison]),
            ("LOO_SD", [record.prediction.standard_deviation for record in comparison]),
            ("STD_ERROR", [record.standardised_error for record in comparison]),
        ]
    )
    formatters = {k: format_float for k in data if k != "INDEX"}
    return make_table(data, formatters=formatters)


def make_summary_table(summary: Mapping[str, float]) -> str:
    """A two-column table of diagnostic statistics."""

    data = OrderedDict(
        [
            ("STATISTIC", list(summary.keys())),
            ("VALUE", list(summary.values())),
        ]
    )
    return make_table(data, formatters={"VALUE": format_float})


def write_comparison_csv(
    path: PathLike,
    comparison: LooComparison,
    input_names: Optional[Sequence[str]] = None,
) -> None:
    """Write a leave-one-out comparison to a csv file with a header row.

    Each row holds the dataset index, the input coordinates, the observed output and
    the LOO predictive mean and variance. Input columns are headed by `input_names`,
    or ``x0, x1, ...`` if not supplied.
    """

    if input_names is None:
        dim = len(comparison[0].input) if len(comparison) else 0
        input_names = [f"x{i}" for i in range(dim)]

    header = (
        ["index"]
        + list(input_names)
        + ["observed", "loo_estimate", "loo_variance"]
    )
    with open(path, mode="w", newline="") as csvfile:
        writer = csv.writer(csvfile)
        writer.writerow(header)
        for record in comparison:
            writer.writerow(
                [record.index, *record.input, record.observed, record.estimate, record.variance]
            )
