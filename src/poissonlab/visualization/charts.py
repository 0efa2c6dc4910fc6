"""Charts for the compound Poisson explorer.

Figures:
    path       - one realized step path S(t) on [0, T]
    histogram  - density histogram of S(T) with the theoretical mean marked
"""
import io

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np

from poissonlab.analysis.sim_models import SamplePath
from poissonlab.analysis.simulation import format_value
from poissonlab.analysis.theory import terminal_density

PATH_COLOR = "darkgreen"
HIST_COLOR = "lightblue"
MEAN_COLOR = "red"
DENSITY_COLOR = "#16697a"

plt.rcParams.update({
    "figure.facecolor": "white", "axes.facecolor": "white",
    "axes.grid": True, "grid.alpha": 0.3, "grid.linestyle": "--",
    "axes.spines.top": False, "axes.spines.right": False,
    "savefig.facecolor": "white",
})


def plot_sample_path(path: SamplePath, lam: float, mu: float, figsize=(10, 5)):
    fig, ax = plt.subplots(figsize=figsize)
    ax.plot(path["times"], path["values"], color=PATH_COLOR, lw=1.2)
    ax.set_title(f"Simulated Path of S(t) | λ= {lam} , μ= {mu}")
    ax.set_xlabel("Time (t)")
    ax.set_ylabel("Compound Process Value (S(t))")
    if path["truncated"]:
        ax.text(0.01, 0.97, "arrival batch exhausted: path truncated",
                transform=ax.transAxes, fontsize=8, color=MEAN_COLOR, va="top")
    fig.tight_layout()
    return fig


def plot_terminal_histogram(
    values: np.ndarray,
    theoretical_mean: float,
    t_max: float,
    bins: int = 50,
    lam: float | None = None,
    mu: float | None = None,
    show_density: bool = False,
    figsize=(10, 5),
):
    """Density histogram of S(T).

    With ``show_density`` (and ``lam``/``mu`` given) the continuous part of
    the exact distribution is drawn on top.
    """
    fig, ax = plt.subplots(figsize=figsize)
    ax.hist(values, bins=bins, density=True, color=HIST_COLOR, edgecolor="white")
    ax.axvline(theoretical_mean, color=MEAN_COLOR, ls="--", lw=1.5)

    if show_density and lam is not None and mu is not None:
        upper = max(float(np.max(values)), theoretical_mean)
        x = np.linspace(upper / 500, upper, 500)
        ax.plot(x, terminal_density(x, lam, mu, t_max), color=DENSITY_COLOR, lw=2,
                label="Exact density (continuous part)")
        ax.legend(loc="upper right")

    fig.suptitle(f"Distribution of S(t) at T =  {t_max}", x=0.01, ha="left", fontsize=13)
    ax.set_title(f"Theoretical Mean (red line): {format_value(theoretical_mean)}",
                 loc="left", fontsize=10, color="gray")
    ax.set_xlabel("S(T)")
    ax.set_ylabel("Density")
    fig.tight_layout()
    return fig


def figure_to_png(fig, dpi: int = 100) -> bytes:
    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=dpi)
    plt.close(fig)
    return buf.getvalue()
