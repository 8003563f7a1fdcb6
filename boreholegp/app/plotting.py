"""Plots of leave-one-out comparisons, drawn with matplotlib."""

from __future__ import annotations

from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from scipy.stats import norm

from boreholegp.core.modelling import PathLike
from boreholegp.core.validation import LooComparison


def plot_comparison(
    comparison: LooComparison,
    ax: Optional[Axes] = None,
    level: float = 0.95,
    quantity: str = "flow rate",
) -> Figure:
    """Scatter plot of observed simulator outputs against their leave-one-out
    estimates.

    Each point carries an error bar spanning the central predictive interval of
    probability `level`. Points on the diagonal line are predicted exactly.

    Parameters
    ----------
    comparison : LooComparison
        The comparison to plot.
    ax : matplotlib.axes.Axes, optional
        (Default: None) Axes to draw on. A new figure is created if not supplied.
    level : float, optional
        (Default: 0.95) Probability of the predictive intervals.
    quantity : str, optional
        (Default: 'flow rate') Name of the simulator output, for axis labels.

    Returns
    -------
    matplotlib.figure.Figure
        The figure containing the plot.
    """

    if not 0 < level < 1:
        raise ValueError(f"Expected 'level' to be in (0, 1), but received {level}.")

    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 6))
    else:
        fig = ax.figure

    observed = comparison.observed
    estimates = comparison.estimates
    half_width = norm.ppf(0.5 + level / 2) * np.sqrt(comparison.variances)

    ax.errorbar(
        observed,
        estimates,
        yerr=half_width,
        fmt="o",
        markersize=4,
        elinewidth=1,
        capsize=2,
        label=f"LOO estimate ({round(level * 100)}% interval)",
    )

    if len(comparison):
        lo = min(observed.min(), (estimates - half_width).min())
        hi = max(observed.max(), (estimates + half_width).max())
        ax.plot([lo, hi], [lo, hi], linestyle="--", color="grey", label="observed = estimate")

    ax.set_xlabel(f"Observed {quantity}")
    ax.set_ylabel(f"Leave-one-out {quantity}")
    ax.set_title(f"Leave-one-out validation (RMSE {comparison.rmse():.4g})")
    ax.legend()
    fig.tight_layout()
    return fig


def save_comparison_plot(
    path: PathLike, comparison: LooComparison, level: float = 0.95
) -> None:
    """Plot a comparison with [`plot_comparison`][boreholegp.app.plotting.plot_comparison]
    and save the figure to `path`. The format is inferred from the file extension."""

    fig = plot_comparison(comparison, level=level)
    try:
        fig.savefig(path)
    finally:
        plt.close(fig)
