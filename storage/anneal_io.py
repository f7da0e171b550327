# storage/anneal_io.py
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import yaml

from core.exceptions import InvalidArgumentError
from parameters.anneal_parameters import AnnealParameters

logger = logging.getLogger("asa_optimizer")

_ARRAY_KEYS = (
    "param_hist_accepted",
    "f_param_hist_accepted",
    "param_hist_rejected",
    "f_param_hist_rejected",
    "x_best",
    "range_min",
    "range_max",
)


@dataclass
class Problem:
    """A parsed run description: where to start, where to search, what to minimise."""

    x0: List[float]
    bounds: List[Tuple[float, float]]
    param_names: List[str]
    objective: str
    objective_options: Dict[str, Any] = field(default_factory=dict)
    anneal_parameters: AnnealParameters = field(default_factory=AnnealParameters)
    max_steps: Optional[int] = None
    seed: Optional[int] = None


def _suffix(path) -> str:
    return Path(str(path)).suffix.lower()


def load_data(filename):
    """Load a problem description from a JSON or YAML file.

    Expected format:
    {
        "parameters": [
            {"name": "a", "initial": 4.0, "range": [-5, 5]},
            ...
        ],
        "objective": "sphere"  or  {"name": "expression", "expression": "x1**2"},
        "anneal_parameters": {"downhill": true, ...},
        "max_steps": 5000,
        "seed": 1
    }"""
    filename_str = str(filename)
    with open(filename_str, "r") as f:
        if filename_str.endswith((".yaml", ".yml")):
            data = yaml.safe_load(f)
        elif filename_str.endswith(".json"):
            data = json.load(f)
        else:
            logger.error(f"Unsupported file format for: {filename_str}")
            raise ValueError(f"Unsupported file format for: {filename_str}")

    return data


def parse_problem(data: dict) -> Problem:
    if not isinstance(data, dict):
        raise InvalidArgumentError("Problem description must be a mapping")

    entries = data.get("parameters")
    if not entries:
        raise InvalidArgumentError("Problem description needs a non-empty 'parameters' list")

    x0: List[float] = []
    bounds: List[Tuple[float, float]] = []
    names: List[str] = []
    for idx, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise InvalidArgumentError(f"parameters[{idx}] must be a mapping")
        rng = entry.get("range")
        if rng is None and "min" in entry and "max" in entry:
            rng = (entry["min"], entry["max"])
        if rng is None or len(rng) != 2:
            raise InvalidArgumentError(
                f"parameters[{idx}] needs 'range: [min, max]' or 'min'/'max'"
            )
        try:
            lo, hi = float(rng[0]), float(rng[1])
            initial = float(entry.get("initial", 0.5 * (lo + hi)))
        except (TypeError, ValueError) as exc:
            raise InvalidArgumentError(f"parameters[{idx}] has non-numeric values") from exc
        x0.append(initial)
        bounds.append((lo, hi))
        names.append(str(entry.get("name", f"x{idx + 1}")))

    objective = data.get("objective", "sphere")
    if isinstance(objective, str):
        objective_name, objective_options = objective, {}
    elif isinstance(objective, dict):
        objective_options = dict(objective)
        objective_name = str(objective_options.pop("name", "expression"))
    else:
        raise InvalidArgumentError("'objective' must be a module name or a mapping")
    objective_options.setdefault("param_names", names)

    anneal_parameters = AnnealParameters.from_mapping(data.get("anneal_parameters"))

    max_steps = data.get("max_steps")
    seed = data.get("seed")
    return Problem(
        x0=x0,
        bounds=bounds,
        param_names=names,
        objective=objective_name,
        objective_options=objective_options,
        anneal_parameters=anneal_parameters,
        max_steps=int(max_steps) if max_steps is not None else None,
        seed=int(seed) if seed is not None else None,
    )


def _plain_value(value):
    if isinstance(value, np.ndarray):
        return [_plain_value(v) for v in value.tolist()]
    if isinstance(value, (list, tuple)):
        return [_plain_value(v) for v in value]
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and not np.isfinite(value):
        # JSON has no literal for inf/nan; load_record parses the string back.
        return str(value)
    return value


def _to_plain(record: Dict[str, Any]) -> Dict[str, Any]:
    return {key: _plain_value(value) for key, value in record.items()}


def save_record(
    record: Dict[str, Any],
    path: str = "outputs/anneal_record.json",
    *,
    compact: bool = False,
):
    """Write an engine record as JSON, YAML or a NumPy ``.npz`` archive."""
    suffix = _suffix(path)
    Path(str(path)).parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".npz":
        arrays = {key: np.asarray(record[key], dtype=float) for key in _ARRAY_KEYS if key in record}
        scalars = {
            key: np.asarray(value)
            for key, value in record.items()
            if key not in _ARRAY_KEYS and key != "param_names"
        }
        names = np.asarray(record.get("param_names") or [], dtype=str)
        np.savez(str(path), param_names=names, **arrays, **scalars)
    elif suffix in (".yaml", ".yml"):
        with open(path, "w") as f:
            yaml.safe_dump(_to_plain(record), f, sort_keys=False)
    elif suffix == ".json":
        with open(path, "w") as f:
            if compact:
                json.dump(
                    _to_plain(record), f, separators=(",", ":"), ensure_ascii=False, allow_nan=False
                )
            else:
                json.dump(_to_plain(record), f, indent=4, ensure_ascii=False, allow_nan=False)
    else:
        raise ValueError(f"Unsupported record format for: {path}")
    logger.info("Saved annealing record to %s", path)


def save_anneal(engine, path: str, *, compact: bool = False):
    """Persist ``engine.record()``; the engine itself never touches the disk."""
    save_record(engine.record(), path, compact=compact)


def _floats(value):
    if isinstance(value, (list, tuple)):
        return [_floats(v) for v in value]
    return float(value)


def load_record(path) -> Dict[str, Any]:
    """Read a record written by :func:`save_record` back into arrays and scalars."""
    suffix = _suffix(path)
    if suffix == ".npz":
        with np.load(str(path), allow_pickle=False) as archive:
            raw = {key: archive[key] for key in archive.files}
        record: Dict[str, Any] = {}
        for key, value in raw.items():
            if key == "param_names":
                record[key] = [str(v) for v in value.tolist()]
            elif key in _ARRAY_KEYS:
                record[key] = value
            else:
                record[key] = value.item()
    else:
        data = load_data(path)
        record = dict(data)
        for key in _ARRAY_KEYS:
            if key in record:
                record[key] = np.asarray(_floats(record[key]), dtype=float)
        if isinstance(record.get("f_x_best"), str):
            record["f_x_best"] = float(record["f_x_best"])

    dim = len(record.get("x_best", []))
    for key in ("param_hist_accepted", "param_hist_rejected"):
        if key in record and dim:
            record[key] = np.asarray(record[key], dtype=float).reshape(-1, dim)
    return record
