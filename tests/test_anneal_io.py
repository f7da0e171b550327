import json
import os
import sys

import numpy as np
import pytest
import yaml

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.exceptions import InvalidArgumentError
from storage.anneal_io import (
    Problem,
    load_data,
    load_record,
    parse_problem,
    save_anneal,
    save_record,
)
from sample_problems import make_engine, run_until, sphere
from runtime.anneal import AnnealState


def _short_run():
    engine = make_engine(seed=5)
    for _ in range(20):
        run_until(engine, AnnealState.NEED_TO_COMPUTE)
        engine.supply_candidate(sphere(engine.x_cand))
        engine.step()
    return engine


def test_load_data_reads_yaml_and_json(tmp_path):
    content = {"parameters": [{"name": "x", "range": [0, 1]}]}
    yaml_path = tmp_path / "p.yaml"
    yaml_path.write_text(yaml.safe_dump(content))
    json_path = tmp_path / "p.json"
    json_path.write_text(json.dumps(content))

    assert load_data(yaml_path) == content
    assert load_data(json_path) == content


def test_load_data_rejects_unknown_suffix(tmp_path):
    path = tmp_path / "p.txt"
    path.write_text("parameters: []")
    with pytest.raises(ValueError):
        load_data(path)


def test_parse_problem_fills_defaults():
    problem = parse_problem(
        {
            "parameters": [
                {"name": "a", "range": [-2, 4]},
                {"min": 0, "max": 1, "initial": 0.25},
            ],
        }
    )
    assert isinstance(problem, Problem)
    assert problem.x0 == [1.0, 0.25]
    assert problem.bounds == [(-2.0, 4.0), (0.0, 1.0)]
    assert problem.param_names == ["a", "x2"]
    assert problem.objective == "sphere"
    assert problem.objective_options == {"param_names": ["a", "x2"]}
    assert problem.max_steps is None and problem.seed is None
    assert problem.anneal_parameters.downhill is True


def test_parse_problem_objective_mapping_defaults_to_expression():
    problem = parse_problem(
        {
            "parameters": [{"name": "x", "range": [0, 1]}],
            "objective": {"expression": "x**2", "expr_params": {"k": 2}},
            "anneal_parameters": {"downhill": False},
            "max_steps": "100",
            "seed": 3,
        }
    )
    assert problem.objective == "expression"
    assert problem.objective_options["expression"] == "x**2"
    assert problem.anneal_parameters.downhill is False
    assert problem.max_steps == 100
    assert problem.seed == 3


@pytest.mark.parametrize(
    "data",
    [
        [],
        {"parameters": []},
        {"parameters": ["x"]},
        {"parameters": [{"name": "x"}]},
        {"parameters": [{"range": ["low", "high"]}]},
        {"parameters": [{"range": [0, 1]}], "objective": 3},
        {"parameters": [{"range": [0, 1]}], "anneal_parameters": {"bogus": 1}},
    ],
)
def test_parse_problem_rejects_malformed_descriptions(data):
    with pytest.raises(InvalidArgumentError):
        parse_problem(data)


@pytest.mark.parametrize("suffix", [".json", ".yaml", ".npz"])
def test_saved_record_loads_back(tmp_path, suffix):
    engine = _short_run()
    record = engine.record()
    path = tmp_path / "out" / f"record{suffix}"

    save_record(record, path)
    loaded = load_record(path)

    assert np.allclose(loaded["x_best"], record["x_best"])
    assert loaded["f_x_best"] == pytest.approx(record["f_x_best"])
    assert loaded["param_hist_accepted"].shape == record["param_hist_accepted"].shape
    assert np.allclose(loaded["f_param_hist_rejected"], record["f_param_hist_rejected"])
    assert loaded["steps"] == record["steps"]
    assert bool(loaded["downhill"]) is True


def test_compact_json_is_single_line(tmp_path):
    path = tmp_path / "record.json"
    save_record(_short_run().record(), path, compact=True)
    assert len(path.read_text().splitlines()) == 1


def test_infinite_best_survives_json(tmp_path):
    engine = make_engine()
    path = tmp_path / "fresh.json"
    save_anneal(engine, path)
    loaded = load_record(path)
    assert loaded["f_x_best"] == float("inf")
    assert loaded["param_hist_accepted"].shape == (0, 2)


def test_save_record_rejects_unknown_suffix(tmp_path):
    with pytest.raises(ValueError):
        save_record(_short_run().record(), tmp_path / "record.csv")


def test_save_anneal_logs_path(tmp_path, caplog):
    path = tmp_path / "record.yaml"
    with caplog.at_level("INFO", logger="asa_optimizer"):
        save_anneal(_short_run(), path)
    assert path.exists()
    assert str(path) in caplog.text


@pytest.mark.parametrize("suffix", [".json", ".yaml"])
def test_non_finite_history_entries_are_written_as_strings(tmp_path, suffix):
    engine = make_engine()
    # A NaN objective is never accepted, so the rejected history records the
    # starting f_x of +inf.
    engine.supply_candidate(float("nan"))
    engine.step()
    assert engine.f_param_hist_rejected == [float("inf")]

    path = tmp_path / f"record{suffix}"
    save_anneal(engine, path)
    text = path.read_text()
    assert "Infinity" not in text
    if suffix == ".json":
        json.loads(text, parse_constant=lambda token: pytest.fail(f"non-standard {token}"))

    loaded = load_record(path)
    assert loaded["f_param_hist_rejected"].tolist() == [float("inf")]
    assert loaded["f_x_best"] == float("inf")
