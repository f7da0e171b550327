import math
import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.exceptions import InvalidArgumentError, InvalidStateError
from parameters.anneal_parameters import AnnealParameters
from runtime.anneal import AnnealEngine, AnnealState, StepResult
from sample_problems import FixedUniform, make_engine, run_until, sphere


def test_construction_sets_need_to_init_and_copies_initial_point():
    x0 = np.array([1.0, 2.0])
    engine = AnnealEngine(x0, [(-5, 5), (-5, 5)])

    assert engine.state is AnnealState.NEED_TO_INIT
    assert engine.D == 2
    x0[0] = 99.0
    assert engine.x[0] == 1.0
    assert engine.x_best is not engine.x
    assert engine.x_cand is not engine.x


def test_dimension_mismatch_is_invalid_argument():
    with pytest.raises(InvalidArgumentError):
        AnnealEngine([1.0, 2.0], [(-1, 1)])


def test_min_greater_than_max_is_invalid_argument():
    with pytest.raises(InvalidArgumentError) as excinfo:
        AnnealEngine([0.0, 0.0], [(-1, 1), (2, 1)])
    assert "min > max" in str(excinfo.value)


def test_empty_initial_params_are_rejected():
    with pytest.raises(InvalidArgumentError):
        AnnealEngine([], [])


def test_malformed_range_and_param_names_are_rejected():
    with pytest.raises(InvalidArgumentError):
        AnnealEngine([0.0], [("a", "b")])
    with pytest.raises(InvalidArgumentError):
        AnnealEngine([0.0], [(-1, 1)], param_names=["a", "b"])


def test_initial_point_outside_bounds_only_warns(caplog):
    with caplog.at_level("WARNING", logger="asa_optimizer"):
        engine = AnnealEngine([3.0], [(-1, 1)])
    assert engine.state is AnnealState.NEED_TO_INIT
    assert "outside the parameter ranges" in caplog.text


def test_init_postconditions():
    engine = AnnealEngine([4.0, 4.0], [(-5, 5), (-5, 5)])
    engine.init()

    assert engine.state is AnnealState.NEED_TO_COMPUTE
    assert np.all(engine.T_k > 0)
    assert np.all(engine.T_cost > 0)
    m = -math.log(1e-5)
    n = math.log(100.0)
    assert engine.c == pytest.approx(np.full(2, m * math.exp(-n / 2)))
    assert engine.T_f == pytest.approx(np.full(2, math.exp(-m)))
    assert abs(engine.k_f - 100) <= 1
    assert engine.T_cost == pytest.approx(engine.c)
    assert engine.f_x_best == math.inf


def test_init_uses_parameters_changed_after_construction():
    engine = AnnealEngine([0.5], [(0, 1)])
    engine.params.downhill = False
    engine.params.cost_parameter_scale_ratio = 2.0
    engine.init()

    assert engine.downhill is False
    assert engine.f_x_best == -math.inf
    assert engine.c_cost == pytest.approx(2.0 * engine.c)


def test_init_twice_is_invalid_state():
    engine = make_engine()
    with pytest.raises(InvalidStateError):
        engine.init()


def test_step_before_init_is_invalid_state():
    engine = AnnealEngine([0.0], [(-1, 1)])
    with pytest.raises(InvalidStateError):
        engine.step()


def test_step_without_supplied_objective_is_invalid_state():
    engine = make_engine()
    with pytest.raises(InvalidStateError) as excinfo:
        engine.step()
    assert excinfo.value.state is AnnealState.NEED_TO_COMPUTE


def test_supplying_reanneal_values_in_compute_state_is_invalid():
    engine = make_engine()
    with pytest.raises(InvalidStateError) as excinfo:
        engine.supply_reanneal(1.0, 2.0)
    assert AnnealState.NEED_TO_COMPUTE_SET in excinfo.value.expected


def test_first_step_accepts_first_candidate_as_best():
    engine = make_engine()
    engine.supply_candidate(sphere(engine.x_cand))
    x_evaluated = engine.x_cand.copy()

    assert engine.step() is AnnealState.NEED_TO_COMPUTE
    assert engine.num_accepted == 1
    assert engine.f_x_best == pytest.approx(sphere(x_evaluated))
    assert np.array_equal(engine.x_best, x_evaluated)
    assert engine.steps == 1
    assert engine.k == 2


def test_improved_candidate_is_always_accepted():
    engine = make_engine()
    engine.rng = FixedUniform(np.nextafter(1.0, 0.0))
    engine.T_cost = np.full(engine.D, 1e-12)
    for i in range(20):
        engine.f_x = 10.0 - i
        engine.f_x_cand = 9.5 - i
        engine.x_cand = np.array([0.1 * i, 0.0])
        assert engine.acceptance_check() is True
    assert engine.num_improved == 20
    assert engine.num_worse_accepted == 0


def test_worse_candidate_rejected_when_cold_records_current_point():
    engine = make_engine()
    engine.rng = FixedUniform(0.5)
    engine.T_cost = np.full(engine.D, 1e-12)
    engine.x = np.array([1.0, 1.0])
    engine.f_x = 2.0
    engine.x_cand = np.array([2.0, 2.0])
    engine.f_x_cand = 8.0

    assert engine.acceptance_check() is False
    assert engine.num_worse == 1
    assert np.array_equal(engine.param_hist_rejected[-1], [1.0, 1.0])
    assert engine.f_param_hist_rejected[-1] == 2.0


def test_worse_candidate_accepted_when_hot():
    engine = make_engine()
    engine.rng = FixedUniform(0.1)
    engine.T_cost = np.full(engine.D, 100.0)
    engine.f_x = 1.0
    engine.f_x_best = 1.0
    engine.f_x_cand = 1.5

    assert engine.acceptance_check() is True
    assert engine.num_worse_accepted == 1
    # Accepting a worse point never moves the best.
    assert engine.f_x_best == 1.0


def test_accepted_candidate_does_not_alias_best():
    engine = make_engine()
    engine.supply_candidate(sphere(engine.x_cand))
    engine.step()
    best = engine.x_best.copy()
    engine.x[0] += 1.0
    engine.x_cand[1] += 1.0
    assert np.array_equal(engine.x_best, best)


def test_generated_candidates_respect_tight_bounds():
    bounds = [(-0.1, 0.1), (0.95, 1.05), (-0.2, 0.0)]
    engine = make_engine(x0=(0.0, 1.0, -0.1), bounds=bounds, seed=99)
    lo = np.array([b[0] for b in bounds])
    hi = np.array([b[1] for b in bounds])
    rng = np.random.default_rng(5)

    for _ in range(300):
        assert np.all(engine.x_cand >= lo) and np.all(engine.x_cand <= hi)
        if engine.state is AnnealState.NEED_TO_COMPUTE:
            engine.supply_candidate(float(rng.normal()))
        elif engine.state is AnnealState.NEED_TO_COMPUTE_SET:
            engine.supply_reanneal(float(rng.normal()), float(rng.normal()))
        if engine.step() is AnnealState.READY_TO_STOP:
            break
        for vec in (engine.x, engine.x_best, engine.x_cand):
            assert np.all(vec >= lo) and np.all(vec <= hi)


def test_fixed_dimension_with_equal_bounds_never_moves():
    engine = make_engine(x0=(0.3, 2.0), bounds=((-1.0, 1.0), (2.0, 2.0)))
    for _ in range(50):
        run_until(engine, AnnealState.NEED_TO_COMPUTE)
        assert engine.x_cand[1] == 2.0
        engine.supply_candidate(sphere(engine.x_cand))
        engine.step()


def test_best_objective_never_worsens():
    engine = make_engine(x0=(2.0, -3.0), seed=21)
    rng = np.random.default_rng(3)
    previous = engine.f_x_best
    while not engine.done and engine.steps < 600:
        if engine.state is AnnealState.NEED_TO_COMPUTE:
            noise = float(rng.uniform(0.0, 0.5))
            engine.supply_candidate(sphere(engine.x_cand) + noise)
        else:
            engine.supply_reanneal(sphere(engine.x), sphere(engine.x_plusdelta))
        engine.step()
        assert engine.f_x_best <= previous
        previous = engine.f_x_best
    accepted = np.array(engine.f_param_hist_accepted)
    assert engine.f_x_best <= accepted.min()


def test_ascending_tracks_the_maximum():
    engine = AnnealEngine([0.0], [(-1, 1)], {"downhill": False}, seed=4)
    engine.init()
    values = [1.0, 3.0, 2.0, 5.0]
    for value in values:
        engine.supply_candidate(value)
        engine.step()
    # 2.0 after 3.0 is a worse step when ascending; with T_cost ~ 0.09 its
    # acceptance probability is ~1e-5.
    assert engine.f_x_best == 5.0
    assert engine.num_improved == 3


def test_observer_sees_cooling_events():
    events = []
    engine = AnnealEngine(
        [1.0], [(-2, 2)], observer=lambda event, eng: events.append((event, eng.k))
    )
    engine.init()
    for _ in range(3):
        engine.supply_candidate(sphere(engine.x_cand))
        engine.step()
    assert [e for e, _ in events] == ["cooling"] * 3
    assert [k for _, k in events] == [1, 2, 3]


def test_try_step_reports_errors_instead_of_raising():
    engine = make_engine()
    result = engine.try_step()
    assert isinstance(result, StepResult)
    assert result.ok is False
    assert isinstance(result.error, InvalidStateError)

    engine.supply_candidate(1.0)
    result = engine.try_step()
    assert result.ok is True
    assert result.state is AnnealState.NEED_TO_COMPUTE
    assert result.error is None


def test_same_seed_gives_same_run():
    a = make_engine(seed=77)
    b = make_engine(seed=77)
    for _ in range(40):
        for engine in (a, b):
            run_until(engine, AnnealState.NEED_TO_COMPUTE)
            engine.supply_candidate(sphere(engine.x_cand))
            engine.step()
    assert np.array_equal(a.x_best, b.x_best)
    assert a.f_param_hist_accepted == b.f_param_hist_accepted


def test_record_contains_histories_and_best():
    engine = AnnealEngine([1.0, 1.0], [(-2, 2), (-2, 2)], param_names=["a", "b"], seed=2)
    engine.init()
    for _ in range(15):
        run_until(engine, AnnealState.NEED_TO_COMPUTE)
        engine.supply_candidate(sphere(engine.x_cand))
        engine.step()

    record = engine.record()
    n_acc = len(engine.f_param_hist_accepted)
    n_rej = len(engine.f_param_hist_rejected)
    assert record["param_hist_accepted"].shape == (n_acc, 2)
    assert record["param_hist_rejected"].shape == (n_rej, 2)
    assert record["f_param_hist_accepted"].shape == (n_acc,)
    assert record["param_names"] == ["a", "b"]
    assert record["f_x_best"] == engine.f_x_best
    assert record["downhill"] is True


def test_parameters_object_is_copied_into_engine():
    params = AnnealParameters({"delta_param": 0.05})
    engine = AnnealEngine([0.0], [(-1, 1)], params)
    params.delta_param = 0.5
    engine.init()
    assert engine.delta_param == 0.05
