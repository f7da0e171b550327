import argparse
import logging
import os
from typing import Optional, Sequence

import matplotlib.pyplot as plt

from runtime.logging_config import setup_logging
from storage.anneal_io import load_record
from visualization.plotting import plot_anneal_history, plot_parameter_scatter

logger = logging.getLogger("asa_optimizer")

_RECORD_SUFFIXES = (".json", ".yaml", ".yml", ".npz")


def create_parser() -> argparse.ArgumentParser:
    """
    Create an argument parser for the record plotting command-line interface.
    """
    parser = argparse.ArgumentParser(
        description="Plot a saved simulated annealing record."
    )
    parser.add_argument(
        "input",
        help="Path to a record written by main.py (.json, .yaml or .npz).",
    )
    parser.add_argument(
        "--kind",
        choices=["history", "scatter"],
        default="history",
        help="Objective history (default) or a scatter of accepted parameters.",
    )
    parser.add_argument(
        "--dims",
        type=int,
        nargs="+",
        default=None,
        help="Parameter indices for --kind scatter (one, two or three; default 0 1).",
    )
    parser.add_argument(
        "--log-scale",
        action="store_true",
        help="Logarithmic objective axis for --kind history.",
    )
    parser.add_argument(
        "--save",
        metavar="PATH",
        help="Save the rendered figure to PATH instead of only showing it.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Entry point for the record plotting CLI.

    Parameters
    ----------
    argv :
        Optional sequence of command-line arguments. When ``None``, the
        arguments are taken from ``sys.argv``.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(None)

    input_path = args.input
    if not input_path.lower().endswith(_RECORD_SUFFIXES):
        raise ValueError(f"Record must be one of {', '.join(_RECORD_SUFFIXES)}.")
    if not os.path.isfile(input_path):
        raise FileNotFoundError(f"Input file '{input_path}' not found!")

    record = load_record(input_path)

    show = args.save is None
    if args.kind == "scatter":
        plot_parameter_scatter(record, dims=args.dims, show=show)
    else:
        plot_anneal_history(record, log_scale=args.log_scale, show=show)

    if args.save:
        fig = plt.gcf()
        fig.savefig(args.save, bbox_inches="tight")
        logger.info("Saved visualization to %s", args.save)


if __name__ == "__main__":
    main()
