# runtime/anneal.py
"""Adaptive Simulated Annealing driven step by step by client code.

Implements Ingber's very fast simulated re-annealing (Mathematical and
Computer Modelling 12, 967-973, 1989). The engine never evaluates the
objective itself: ``state`` tells the caller what to compute next, the caller
hands the value back and calls :meth:`AnnealEngine.step`.

Typical loop::

    engine = AnnealEngine(x0, bounds)
    engine.init()
    while engine.state is not AnnealState.READY_TO_STOP:
        if engine.state is AnnealState.NEED_TO_COMPUTE:
            engine.supply_candidate(f(engine.x_cand))
        elif engine.state is AnnealState.NEED_TO_COMPUTE_SET:
            engine.supply_reanneal(f(engine.x), f(engine.x_plusdelta))
        engine.step()
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

import numpy as np

from core.exceptions import (
    AnnealError,
    AnnealFatalError,
    InvalidArgumentError,
    InvalidStateError,
)
from parameters.anneal_parameters import AnnealParameters

logger = logging.getLogger("asa_optimizer")

EPS = float(np.finfo(float).eps)

# Minimum number of steps between two reanneals.
REANNEAL_MIN_SPACING = 10


class AnnealState(Enum):
    """What the client has to do next."""

    UNKNOWN = "unknown"
    NEED_TO_INIT = "need_to_init"
    NEED_TO_STEP = "need_to_step"
    NEED_TO_COMPUTE = "need_to_compute"
    NEED_TO_COMPUTE_SET = "need_to_compute_set"
    READY_TO_STOP = "ready_to_stop"


@dataclass(frozen=True)
class StepResult:
    """Outcome of :meth:`AnnealEngine.try_step`."""

    ok: bool
    state: AnnealState
    error: Optional[AnnealError] = None

    @classmethod
    def success(cls, state: AnnealState) -> "StepResult":
        return cls(True, state, None)

    @classmethod
    def failure(cls, state: AnnealState, error: AnnealError) -> "StepResult":
        return cls(False, state, error)


Observer = Callable[[str, "AnnealEngine"], None]


class AnnealEngine:
    """Client-driven Adaptive Simulated Annealing.

    Parameters
    ----------
    initial_params : Sequence[float]
        Starting point, length D.
    param_ranges : Sequence[tuple[float, float]]
        One ``(min, max)`` pair per dimension.
    params : AnnealParameters | dict | None
        Algorithm settings. They may still be changed through
        ``engine.params`` until :meth:`init` is called.
    param_names : Sequence[str] | None
        Optional names saved alongside the history.
    observer : callable | None
        ``observer(event, engine)`` called after each cooling update
        (``"cooling"``), completed reanneal (``"reanneal"``) and zero-tangent
        retry (``"reanneal_retry"``).
    seed : int | None
        Seed for the engine's own random generator.
    """

    def __init__(
        self,
        initial_params: Sequence[float],
        param_ranges: Sequence[Sequence[float]],
        params: AnnealParameters | dict | None = None,
        *,
        param_names: Sequence[str] | None = None,
        observer: Observer | None = None,
        seed: int | None = None,
    ) -> None:
        self.state = AnnealState.UNKNOWN

        x0 = np.array(initial_params, dtype=float).ravel()
        if x0.size == 0:
            raise InvalidArgumentError("initial_params must contain at least one value")
        self.D = int(x0.size)

        ranges = list(param_ranges)
        if len(ranges) != self.D:
            raise InvalidArgumentError(
                f"Got {len(ranges)} parameter ranges for {self.D} parameters"
            )
        try:
            bounds = np.array([[float(lo), float(hi)] for lo, hi in ranges], dtype=float)
        except (TypeError, ValueError) as exc:
            raise InvalidArgumentError(
                "Each parameter range must be a (min, max) pair of numbers"
            ) from exc
        if not np.all(np.isfinite(bounds)):
            raise InvalidArgumentError("Parameter ranges must be finite")
        bad = np.nonzero(bounds[:, 0] > bounds[:, 1])[0]
        if bad.size:
            raise InvalidArgumentError(
                f"Parameter range {int(bad[0])} has min > max: {bounds[bad[0]].tolist()}"
            )
        self.range_min = bounds[:, 0].copy()
        self.range_max = bounds[:, 1].copy()
        self.rdelta = self.range_max - self.range_min

        if not self.within_bounds(x0):
            logger.warning(
                "Initial parameters %s lie outside the parameter ranges.", x0.tolist()
            )

        if param_names is not None:
            param_names = [str(name) for name in param_names]
            if len(param_names) != self.D:
                raise InvalidArgumentError(
                    f"Got {len(param_names)} parameter names for {self.D} parameters"
                )
        self.param_names: list[str] = list(param_names or [])

        if isinstance(params, AnnealParameters):
            self.params = params.copy()
        else:
            self.params = AnnealParameters(params)
        self.params.validate()

        self.observer = observer
        self.rng = np.random.default_rng(seed)

        self.x = x0.copy()
        self.x_cand = x0.copy()
        self.x_best = x0.copy()
        self.x_plusdelta = x0.copy()
        self.f_x = 0.0
        self.f_x_cand = 0.0
        self.f_x_best = 0.0
        self.f_x_plusdelta = 0.0
        self.f_x_best_repeats = 0

        self._reset_counters()
        self.stop_reason: str | None = None
        self.state = AnnealState.NEED_TO_INIT

    # ------------------------------------------------------------------
    # Client protocol
    # ------------------------------------------------------------------
    def init(self) -> None:
        """Freeze the configuration and set up the temperature schedules."""
        self._require(AnnealState.NEED_TO_INIT, operation="init()")
        self.params.validate()
        p = self.params
        D = self.D

        self.downhill = bool(p.downhill)
        self.delta_param = float(p.delta_param)
        self.enable_reanneal = bool(p.enable_reanneal)
        self.exit_at_T_f = bool(p.exit_at_T_f)
        self.acc_gen_reanneal_ratio = float(p.acc_gen_reanneal_ratio)
        self.reanneal_after_steps = int(p.reanneal_after_steps)
        self.f_x_best_repeat_max = int(p.f_x_best_repeat_max)
        self.max_generate_attempts = int(p.max_generate_attempts)

        worst = math.inf if self.downhill else -math.inf
        self.f_x_best = worst
        self.f_x = worst
        self.f_x_cand = worst
        self.f_x_plusdelta = worst
        self.f_x_best_repeats = 0

        self._reset_counters()
        self.stop_reason = None

        self.T_0 = np.ones(D)
        self.T_k = np.ones(D)
        self.m = np.full(D, -math.log(float(p.temperature_ratio_scale)))
        self.n = np.full(D, math.log(float(p.temperature_anneal_scale)))
        self.c = self.m * np.exp(-self.n / D)
        self.T_f = self.T_0 * np.exp(-self.m)
        self.k_f = int(np.exp(self.n).mean())

        self.tangents = np.ones(D)
        self.c_cost = self.c * float(p.cost_parameter_scale_ratio)
        self.T_cost_0 = self.c_cost.copy()
        self.T_cost = self.c_cost.copy()

        logger.debug(
            "ASA init: D=%d, c=%.4g, T_f=%.4g, k_f=%d, c_cost=%.4g",
            D,
            self.c[0],
            self.T_f[0],
            self.k_f,
            self.c_cost[0],
        )
        self.state = AnnealState.NEED_TO_COMPUTE

    def supply_candidate(self, f_x_cand: float) -> None:
        """Hand back the objective value at ``x_cand``."""
        self._require(AnnealState.NEED_TO_COMPUTE, operation="supply_candidate()")
        self.f_x_cand = float(f_x_cand)
        self._candidate_ready = True

    def supply_reanneal(self, f_x: float, f_x_plusdelta: float) -> None:
        """Hand back the objective values at ``x`` and ``x_plusdelta``."""
        self._require(AnnealState.NEED_TO_COMPUTE_SET, operation="supply_reanneal()")
        self.f_x = float(f_x)
        self.f_x_plusdelta = float(f_x_plusdelta)
        self._reanneal_ready = True

    def step(self) -> AnnealState:
        """Advance the algorithm by one step and return the new state.

        Raises
        ------
        InvalidStateError
            If called before :meth:`init`, after the engine stopped, or
            before the objective value(s) the current state asks for were
            supplied.
        AnnealFatalError
            If reannealing produced non-finite tangents or a non-positive
            temperature, or no in-bounds candidate could be generated.
        """
        if self.state is AnnealState.READY_TO_STOP:
            raise InvalidStateError(
                "step() called after the engine stopped "
                f"({self.stop_reason})",
                state=self.state,
            )
        self._require(
            AnnealState.NEED_TO_COMPUTE,
            AnnealState.NEED_TO_COMPUTE_SET,
            AnnealState.NEED_TO_STEP,
            operation="step()",
        )
        if self.state is AnnealState.NEED_TO_COMPUTE and not self._candidate_ready:
            raise InvalidStateError(
                "step() needs the candidate objective; call supply_candidate() first",
                state=self.state,
            )
        if self.state is AnnealState.NEED_TO_COMPUTE_SET and not self._reanneal_ready:
            raise InvalidStateError(
                "step() needs the reanneal objectives; call supply_reanneal() first",
                state=self.state,
            )

        reason = self.stop_check()
        if reason is not None:
            self.stop_reason = reason
            self.state = AnnealState.READY_TO_STOP
            logger.info(
                "ASA stopping after %d steps (%s); f_x_best=%.6g",
                self.steps,
                reason,
                self.f_x_best,
            )
            return self.state

        if self.state is AnnealState.NEED_TO_COMPUTE_SET:
            self.complete_reanneal()
            self._reanneal_ready = False
            self.state = AnnealState.NEED_TO_STEP

        self.cooling_schedule()
        if self._candidate_ready:
            self.acceptance_check()
            self._candidate_ready = False
        self.generate_next()

        self.steps += 1
        self.k += 1
        self.k_r += 1

        if self.enable_reanneal and self.reanneal_test():
            self.state = AnnealState.NEED_TO_COMPUTE_SET
        else:
            self.state = AnnealState.NEED_TO_COMPUTE
        return self.state

    def try_step(self) -> StepResult:
        """Like :meth:`step` but report errors in the returned result."""
        try:
            state = self.step()
        except AnnealError as exc:
            return StepResult.failure(self.state, exc)
        return StepResult.success(state)

    @property
    def done(self) -> bool:
        return self.state is AnnealState.READY_TO_STOP

    def record(self) -> dict:
        """Everything worth keeping from the run, for external persistence."""
        return {
            "param_hist_accepted": np.array(self.param_hist_accepted, dtype=float).reshape(-1, self.D),
            "f_param_hist_accepted": np.array(self.f_param_hist_accepted, dtype=float),
            "param_hist_rejected": np.array(self.param_hist_rejected, dtype=float).reshape(-1, self.D),
            "f_param_hist_rejected": np.array(self.f_param_hist_rejected, dtype=float),
            "x_best": self.x_best.copy(),
            "f_x_best": float(self.f_x_best),
            "param_names": list(self.param_names),
            "range_min": self.range_min.copy(),
            "range_max": self.range_max.copy(),
            "downhill": bool(self.params.downhill),
            "steps": int(self.steps),
            "num_accepted": int(self.num_accepted),
            "stop_reason": self.stop_reason or "",
        }

    def within_bounds(self, x: np.ndarray) -> bool:
        return bool(np.all(x >= self.range_min) and np.all(x <= self.range_max))

    # ------------------------------------------------------------------
    # Algorithm
    # ------------------------------------------------------------------
    def cooling_schedule(self) -> None:
        """Recompute ``T_k`` from ``k`` and ``T_cost`` from ``num_accepted``."""
        inv_d = 1.0 / self.D
        self.T_k = self.T_0 * np.exp(-self.c * self.k**inv_d)
        self.T_cost = self.T_cost_0 * np.exp(-self.c_cost * self.num_accepted**inv_d)
        logger.debug(
            "T_i(k=%d[%d]) = %.6g [T_f=%.6g]; T_cost(n_acc=%d) = %.6g",
            self.k,
            self.k_f,
            self.T_k[0],
            self.T_f[0],
            self.num_accepted,
            self.T_cost[0],
        )
        self._notify("cooling")

    def acceptance_check(self) -> bool:
        """Metropolis test of ``x_cand`` against ``x``; returns acceptance."""
        f_cand = self.f_x_cand
        if self.downhill:
            improved = f_cand < self.f_x
            degradation = f_cand - self.f_x
        else:
            improved = f_cand > self.f_x
            degradation = self.f_x - f_cand

        if improved:
            self.num_improved += 1
            p = 1.0
        else:
            self.num_worse += 1
            if math.isnan(degradation):
                p = 0.0
            else:
                p = math.exp(-degradation / (EPS + float(self.T_cost.mean())))

        u = float(self.rng.random())
        accepted = p > u

        if accepted and not improved:
            self.num_worse_accepted += 1

        if accepted:
            self.x = self.x_cand.copy()
            self.f_x = f_cand
            self.param_hist_accepted.append(self.x.copy())
            self.f_param_hist_accepted.append(f_cand)
            if f_cand == self.f_x_best:
                self.f_x_best_repeats += 1
            if self._is_better(f_cand, self.f_x_best):
                self.x_best = self.x_cand.copy()
                self.f_x_best = f_cand
                self.f_x_best_repeats = 0
            self.num_accepted += 1
        else:
            self.param_hist_rejected.append(self.x.copy())
            self.f_param_hist_rejected.append(self.f_x)

        logger.debug(
            "Candidate is %s, p = %.4g, degradation = %.4g, accepted? %s "
            "k_cost(num_accepted)=%d",
            "better" if improved else "worse",
            p,
            degradation,
            "Y" if accepted else "N",
            self.num_accepted,
        )
        return accepted

    def generate_next(self) -> np.ndarray:
        """Draw a new ``x_cand`` from the ASA generating distribution.

        Out-of-bounds draws are discarded and the whole vector redrawn;
        clamping would distort the distribution near the walls.
        """
        free = self.rdelta > 0.0
        for _ in range(self.max_generate_attempts):
            u = self.rng.random(self.D)
            u2 = np.abs(2.0 * u - 1.0)
            sign = np.sign(u - 0.5)
            y = sign * self.T_k * (np.power(1.0 + 1.0 / self.T_k, u2) - 1.0)
            y = np.where(free, y, 0.0)
            x_new = self.x + y
            if self.within_bounds(x_new):
                self.x_cand = x_new
                return self.x_cand
        raise AnnealFatalError(
            f"No in-bounds candidate after {self.max_generate_attempts} draws",
            kind="generation_exhausted",
            values=self.x.copy(),
        )

    def generate_delta_parameter(self, x_start: np.ndarray) -> np.ndarray:
        """Return ``x_start * (1 +/- delta_param)``, staying inside the bounds.

        The ``+`` side is tried first; dimensions it pushes out of range use
        ``-`` instead. Fixed dimensions are not perturbed.
        """
        plusminus = np.ones(self.D)
        x_new = x_start * (1.0 + plusminus * self.delta_param)
        outside = (x_new > self.range_max) | (x_new < self.range_min)
        plusminus[outside] = -1.0
        plusminus[self.rdelta <= 0.0] = 0.0
        x_new = x_start * (1.0 + plusminus * self.delta_param)
        x_new = np.clip(x_new, self.range_min, self.range_max)
        stuck = (x_new == x_start) & (self.rdelta > 0.0)
        if np.any(stuck):
            # Zero displacement gives a zero tangent, so the next reanneal
            # only doubles delta_param.
            logger.debug(
                "Delta point does not move dimensions %s (x=%s, both sides clipped or x=0)",
                np.nonzero(stuck)[0].tolist(),
                x_start[stuck].tolist(),
            )
        return x_new

    def reanneal_test(self) -> bool:
        """Decide whether to reanneal; if so, request ``x`` and ``x_plusdelta``."""
        if self.steps - self.last_reanneal_steps < REANNEAL_MIN_SPACING:
            return False
        if (
            self.k_r < self.reanneal_after_steps
            and self.accepted_vs_generated() >= self.acc_gen_reanneal_ratio
        ):
            return False

        self.x = self.x_best.copy()
        self.f_x = self.f_x_best
        self.x_plusdelta = self.generate_delta_parameter(self.x)
        logger.debug("Reannealing at step %d (k_r=%d)", self.steps, self.k_r)
        return True

    def complete_reanneal(self) -> None:
        """Rescale ``T_k`` and ``k`` from the tangents at the best point."""
        self.last_reanneal_steps = self.steps
        free = self.rdelta > 0.0
        if not np.any(free):
            return

        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            self.tangents = (self.f_x_plusdelta - self.f_x) / (
                self.x_plusdelta - self.x + EPS
            )
        tangents = self.tangents[free]

        if not np.all(np.isfinite(tangents)):
            raise AnnealFatalError(
                "NaN or inf in tangents", kind="non_finite_tangent", values=self.tangents.copy()
            )

        if np.any(tangents == 0.0):
            # The perturbation did not move the objective; widen it and retry
            # on the next reanneal.
            logger.info(
                "Tangents had a zero, so double delta_param from %g to %g",
                self.delta_param,
                self.delta_param * 2.0,
            )
            self.delta_param *= 2.0
            self._notify("reanneal_retry")
            return

        abs_tangents = np.abs(self.tangents)
        max_tangent = float(np.abs(tangents).max())
        # A near-zero tangent (or a fixed dimension) keeps its temperature.
        abs_tangents[(abs_tangents < EPS) | ~free] = max_tangent

        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            T_re = np.abs(self.T_k * (max_tangent / abs_tangents))
        if not (np.all(np.isfinite(T_re)) and np.all(T_re > 0.0)):
            raise AnnealFatalError(
                "Can't update k based on new temperature, as it is <= 0 or not finite",
                kind="non_positive_temperature",
                values=T_re,
            )

        with np.errstate(over="ignore", invalid="ignore"):
            k_re_f = float(np.mean((np.log(self.T_0 / T_re) / self.c) ** self.D))
        k_re = int(k_re_f) if math.isfinite(k_re_f) else self.k
        k_re = max(k_re, 1)

        logger.info(
            "Reannealed. T_i(k): %.5g --> %.5g and k: %d --> %d",
            float(self.T_k.mean()),
            float(T_re.mean()),
            self.k,
            k_re,
        )
        self.k = k_re
        self.T_k = T_re
        self.reset_stats()
        self._notify("reanneal")

    def stop_check(self) -> str | None:
        """Return why the run should stop, or ``None`` to carry on."""
        if self.exit_at_T_f and bool(np.all(self.T_k < self.T_f)):
            return "T_k reached T_f"
        if self.T_k[0] <= EPS:
            return "T_k reached machine epsilon"
        if self.T_cost[0] <= EPS:
            return "T_cost reached machine epsilon"
        if self.f_x_best_repeats >= self.f_x_best_repeat_max:
            return f"f_x_best repeated {self.f_x_best_repeats} times"
        return None

    def accepted_vs_generated(self) -> float:
        generated = self.num_improved + self.num_worse
        if generated == 0:
            return 1.0
        return self.num_accepted / generated

    def reset_stats(self) -> None:
        """Zero the acceptance statistics; called when a reanneal completes."""
        self.num_improved = 0
        self.num_worse = 0
        self.num_worse_accepted = 0
        self.num_accepted = 0
        self.k_r = 0

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _is_better(self, a: float, b: float) -> bool:
        return a < b if self.downhill else a > b

    def _reset_counters(self) -> None:
        self.reset_stats()
        self.steps = 0
        self.last_reanneal_steps = 0
        self.k = 1
        self.k_f = 0
        self._candidate_ready = False
        self._reanneal_ready = False
        self.param_hist_accepted: list[np.ndarray] = []
        self.f_param_hist_accepted: list[float] = []
        self.param_hist_rejected: list[np.ndarray] = []
        self.f_param_hist_rejected: list[float] = []

    def _require(self, *allowed: AnnealState, operation: str) -> None:
        if self.state not in allowed:
            names = ", ".join(s.name for s in allowed)
            raise InvalidStateError(
                f"{operation} is not valid in state {self.state.name} (expected {names})",
                state=self.state,
                expected=allowed,
            )

    def _notify(self, event: str) -> None:
        if self.observer is not None:
            self.observer(event, self)

    def __repr__(self) -> str:
        return (
            f"AnnealEngine(D={self.D}, state={self.state.name}, steps={self.steps}, "
            f"f_x_best={self.f_x_best!r})"
        )


__all__ = ["AnnealEngine", "AnnealState", "StepResult", "EPS"]
