# runtime/driver.py

import logging
from typing import Callable, Optional, Sequence

import numpy as np

from runtime.anneal import AnnealEngine, AnnealState

logger = logging.getLogger("asa_optimizer")


def drive(
    engine: AnnealEngine,
    objective: Callable[[np.ndarray], float],
    *,
    max_steps: Optional[int] = None,
    callback: Optional[Callable[[AnnealEngine, int], None]] = None,
):
    """Run the client side of the annealing protocol for ``engine``.

    ``objective`` is called with a copy of whichever point the engine asks
    for. The loop ends when the engine reaches ``READY_TO_STOP`` or after
    ``max_steps`` calls to :meth:`AnnealEngine.step`. Errors raised by the
    engine or the objective propagate unchanged.
    """
    if engine.state is AnnealState.NEED_TO_INIT:
        engine.init()

    evaluations = 0
    i = 0
    while not engine.done:
        if max_steps is not None and i >= max_steps:
            logger.info("Reached max_steps=%d before a stopping criterion.", max_steps)
            break
        if callback:
            callback(engine, i)

        if engine.state is AnnealState.NEED_TO_COMPUTE:
            engine.supply_candidate(objective(engine.x_cand.copy()))
            evaluations += 1
        elif engine.state is AnnealState.NEED_TO_COMPUTE_SET:
            engine.supply_reanneal(
                objective(engine.x.copy()), objective(engine.x_plusdelta.copy())
            )
            evaluations += 2

        engine.step()
        i += 1

    terminated_early = engine.done
    if terminated_early:
        logger.info(
            "Annealing finished in %d steps (%s); f_x_best=%.6g",
            engine.steps,
            engine.stop_reason,
            engine.f_x_best,
        )
    return {
        "x_best": engine.x_best.copy(),
        "f_x_best": float(engine.f_x_best),
        "steps": engine.steps,
        "evaluations": evaluations,
        "state": engine.state,
        "stop_reason": engine.stop_reason,
        "terminated_early": terminated_early,
        "engine": engine,
    }


def anneal(
    objective: Callable[[np.ndarray], float],
    x0: Sequence[float],
    bounds: Sequence[Sequence[float]],
    params=None,
    *,
    max_steps: Optional[int] = None,
    callback: Optional[Callable[[AnnealEngine, int], None]] = None,
    param_names: Optional[Sequence[str]] = None,
    seed: Optional[int] = None,
    observer=None,
):
    """Minimise (or maximise, with ``downhill=False``) ``objective`` over ``bounds``."""
    engine = AnnealEngine(
        x0,
        bounds,
        params,
        param_names=param_names,
        observer=observer,
        seed=seed,
    )
    return drive(engine, objective, max_steps=max_steps, callback=callback)
