import logging
from typing import Any, Dict, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

logger = logging.getLogger("asa_optimizer")


def _axis_label(record: Dict[str, Any], dim: int) -> str:
    names = record.get("param_names") or []
    if dim < len(names) and names[dim]:
        return str(names[dim])
    return f"x{dim + 1}"


def plot_anneal_history(
    record: Dict[str, Any],
    ax=None,
    log_scale: bool = False,
    show: bool = True,
):
    """
    Plot objective values of an annealing run against acceptance order.

    Parameters
    ----------
    record :
        Mapping as returned by :meth:`runtime.anneal.AnnealEngine.record` or
        :func:`storage.anneal_io.load_record`.
    ax : matplotlib.axes.Axes, optional
        Axis to draw into. If omitted, a new figure and axis are created.
    log_scale : bool, optional
        Use a logarithmic objective axis. Only sensible for positive
        objectives; non-positive values are dropped by Matplotlib.
    show : bool, optional
        If ``True`` (default), call :func:`matplotlib.pyplot.show` after
        drawing. Set to ``False`` when using non-interactive backends or
        when the caller saves the figure.

    Returns
    -------
    matplotlib.axes.Axes
        The axis that was drawn into.
    """
    f_acc = np.asarray(record.get("f_param_hist_accepted", []), dtype=float)
    f_rej = np.asarray(record.get("f_param_hist_rejected", []), dtype=float)

    if ax is None:
        fig = plt.figure()
        ax = fig.add_subplot(111)

    if f_acc.size == 0 and f_rej.size == 0:
        logger.warning("Record has no history to plot.")
        return ax

    if f_acc.size:
        ax.plot(np.arange(f_acc.size), f_acc, color="tab:blue", lw=1.0, label="accepted")
        # Running best, in whichever direction the run optimised.
        downhill = bool(record.get("downhill", True))
        best = np.minimum.accumulate(f_acc) if downhill else np.maximum.accumulate(f_acc)
        ax.plot(np.arange(f_acc.size), best, color="tab:red", lw=1.5, label="best")

    if f_rej.size:
        # Rejected entries repeat the current point; spread them over the
        # accepted axis so both streams share one x range.
        span = max(f_acc.size - 1, 1)
        xs = np.linspace(0, span, f_rej.size)
        ax.scatter(xs, f_rej, s=4, color="0.6", alpha=0.5, label="rejected")

    if log_scale:
        ax.set_yscale("log")
    ax.set_xlabel("accepted step")
    ax.set_ylabel("objective")
    ax.set_title(f"Annealing history (f_best = {float(record.get('f_x_best', np.nan)):.4g})")
    ax.legend(loc="best")

    plt.tight_layout()
    if show:
        plt.show()
    return ax


def plot_parameter_scatter(
    record: Dict[str, Any],
    dims: Optional[Sequence[int]] = None,
    ax=None,
    cmap: str = "viridis",
    show: bool = True,
):
    """
    Scatter the accepted parameter vectors coloured by objective value.

    Two ``dims`` give a planar scatter, three a 3D one, a single one
    parameter vs objective. Without ``dims`` the first two parameters are
    used (the only one for a one-dimensional record). The best point is
    marked with a red star. Indices outside the record raise ``ValueError``.
    """
    points = np.asarray(record.get("param_hist_accepted", []), dtype=float)
    values = np.asarray(record.get("f_param_hist_accepted", []), dtype=float)
    x_best = np.asarray(record.get("x_best", []), dtype=float)

    if points.size == 0:
        logger.warning("Record has no accepted parameters to plot.")
        return ax
    points = points.reshape(values.size, -1)
    dim = points.shape[1]

    dims = [0, 1][:dim] if dims is None else [int(d) for d in dims]
    if not 1 <= len(dims) <= 3:
        raise ValueError("plot_parameter_scatter draws one to three dimensions")
    outside = [d for d in dims if not 0 <= d < dim]
    if outside:
        raise ValueError(f"dims {outside} outside a {dim}-parameter record")

    if len(dims) == 1:
        d = dims[0]
        if ax is None:
            ax = plt.figure().add_subplot(111)
        ax.scatter(points[:, d], values, c=values, cmap=cmap, s=8)
        ax.scatter([x_best[d]], [record.get("f_x_best")], marker="*", s=150, color="r")
        ax.set_xlabel(_axis_label(record, d))
        ax.set_ylabel("objective")
    elif len(dims) == 2:
        if ax is None:
            ax = plt.figure().add_subplot(111)
        sc = ax.scatter(points[:, dims[0]], points[:, dims[1]], c=values, cmap=cmap, s=8)
        ax.scatter([x_best[dims[0]]], [x_best[dims[1]]], marker="*", s=150, color="r")
        ax.figure.colorbar(sc, ax=ax, label="objective")
        ax.set_xlabel(_axis_label(record, dims[0]))
        ax.set_ylabel(_axis_label(record, dims[1]))
    else:
        if ax is None:
            ax = plt.figure().add_subplot(111, projection="3d")
        sc = ax.scatter(
            points[:, dims[0]], points[:, dims[1]], points[:, dims[2]], c=values, cmap=cmap, s=8
        )
        ax.scatter(
            [x_best[dims[0]]], [x_best[dims[1]]], [x_best[dims[2]]], marker="*", s=150, color="r"
        )
        ax.figure.colorbar(sc, ax=ax, label="objective")
        ax.set_xlabel(_axis_label(record, dims[0]))
        ax.set_ylabel(_axis_label(record, dims[1]))
        ax.set_zlabel(_axis_label(record, dims[2]))

    ax.set_title("Accepted parameters")
    plt.tight_layout()
    if show:
        plt.show()
    return ax


def update_live_vis(
    engine,
    *,
    state: Optional[Dict[str, Any]] = None,
    title: Optional[str] = None,
) -> Dict[str, Any]:
    """Update or create a live view of a running engine's accepted objectives."""
    if state is None:
        plt.ion()
        fig = plt.figure()
        ax = fig.add_subplot(111)
        (line,) = ax.plot([], [], color="tab:blue", lw=1.0)
        ax.set_xlabel("accepted step")
        ax.set_ylabel("objective")
        state = {"fig": fig, "ax": ax, "line": line, "n_drawn": -1}

    values = engine.f_param_hist_accepted
    if len(values) == state["n_drawn"]:
        return state

    state["line"].set_data(np.arange(len(values)), np.asarray(values, dtype=float))
    state["ax"].relim()
    state["ax"].autoscale_view()
    state["ax"].set_title(
        title or f"step {engine.steps}: f_best = {float(engine.f_x_best):.4g}"
    )
    state["n_drawn"] = len(values)
    state["fig"].canvas.draw_idle()
    plt.pause(0.001)
    return state
