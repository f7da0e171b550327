import argparse
import logging
import os
import sys

import yaml

from core.exceptions import AnnealError
from runtime.driver import anneal
from runtime.logging_config import setup_logging
from runtime.objective_manager import ObjectiveModuleManager
from storage.anneal_io import load_data, parse_problem, save_record

logger = logging.getLogger("asa_optimizer")


def resolve_problem_path(path: str) -> str:
    """Return a valid problem file path, allowing a path without extension."""
    if os.path.isfile(path):
        return path
    for ext in (".yaml", ".yml", ".json"):
        alt = path + ext
        if os.path.isfile(alt):
            return alt
    raise FileNotFoundError(f"Cannot find file '{path}' (.yaml/.yml/.json)")


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Adaptive Simulated Annealing driver")
    parser.add_argument("-i", "--input", required=True, help="Problem YAML/JSON file")
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Record output file (.json, .yaml or .npz).",
    )
    parser.add_argument(
        "--compact-output-json",
        action="store_true",
        help="Write output JSON in compact (single-line) form.",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=None,
        help="Upper bound on engine steps; overrides the problem file.",
    )
    parser.add_argument(
        "--seed", type=int, default=None, help="Random seed; overrides the problem file."
    )
    parser.add_argument(
        "--ascend",
        action="store_true",
        help="Maximise the objective instead of minimising it.",
    )
    parser.add_argument(
        "--viz",
        action="store_true",
        help="Plot the objective history after the run.",
    )
    parser.add_argument(
        "--viz-save",
        default=None,
        help="Save the history plot to PATH instead of only showing it.",
    )
    parser.add_argument(
        "--live",
        type=int,
        default=0,
        metavar="N",
        help="Redraw a live history plot every N steps (0 disables).",
    )
    parser.add_argument("--log", default=None, help="Optional log file")
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Suppress console output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable verbose debug logging"
    )
    return parser


def main(argv=None):
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        args.input = resolve_problem_path(args.input)
    except FileNotFoundError as exc:
        print(exc, file=sys.stderr)
        return 1

    global logger
    logger = setup_logging(args.log, quiet=args.quiet, debug=args.debug)

    try:
        problem = parse_problem(load_data(args.input))
        manager = ObjectiveModuleManager([problem.objective])
        objective = manager.bind(problem.objective, problem.objective_options)
    except (AnnealError, ImportError, ValueError, yaml.YAMLError) as exc:
        logger.error("Invalid problem file %s: %s", args.input, exc)
        return 2
    if args.ascend:
        problem.anneal_parameters.set("downhill", False)
    max_steps = args.max_steps if args.max_steps is not None else problem.max_steps
    seed = args.seed if args.seed is not None else problem.seed

    callback = None
    if args.live > 0:
        from visualization.plotting import update_live_vis

        live_state = {}

        def callback(engine, i):
            if i % args.live == 0:
                live_state["vis"] = update_live_vis(engine, state=live_state.get("vis"))

    logger.info(
        "Annealing '%s' over %d parameters (%s)",
        problem.objective,
        len(problem.x0),
        "descending" if problem.anneal_parameters.downhill else "ascending",
    )
    try:
        result = anneal(
            objective,
            problem.x0,
            problem.bounds,
            problem.anneal_parameters,
            max_steps=max_steps,
            callback=callback,
            param_names=problem.param_names,
            seed=seed,
        )
    except (AnnealError, ValueError, ArithmeticError) as exc:
        # Objectives raise ValueError for names or math they cannot evaluate.
        logger.error("Annealing failed: %s", exc)
        return 2

    engine = result["engine"]
    best = ", ".join(
        f"{name}={value:.6g}" for name, value in zip(problem.param_names, result["x_best"])
    )
    logger.info(
        "Best objective %.6g at %s after %d steps, %d evaluations.",
        result["f_x_best"],
        best,
        result["steps"],
        result["evaluations"],
    )

    record = engine.record()
    if args.output:
        save_record(record, args.output, compact=args.compact_output_json)

    if args.viz or args.viz_save:
        import matplotlib.pyplot as plt

        from visualization.plotting import plot_anneal_history

        plot_anneal_history(record, show=args.viz_save is None)
        if args.viz_save:
            plt.gcf().savefig(args.viz_save, bbox_inches="tight")
            logger.info("Saved visualization to %s", args.viz_save)
    return 0


if __name__ == "__main__":
    sys.exit(main())
