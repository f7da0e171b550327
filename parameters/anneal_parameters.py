# anneal_parameters.py

from core.exceptions import InvalidArgumentError

_BOOL_KEYS = ("downhill", "enable_reanneal", "exit_at_T_f")
_INT_KEYS = ("f_x_best_repeat_max", "reanneal_after_steps", "max_generate_attempts")
_FLOAT_KEYS = (
    "temperature_ratio_scale",
    "temperature_anneal_scale",
    "cost_parameter_scale_ratio",
    "acc_gen_reanneal_ratio",
    "delta_param",
)


class AnnealParameters:
    def __init__(self, initial_params=None):
        """
        all parameters are defined with underscore, _, instead of spaces
        """
        self._params = {
            # Descend to the minimum of the objective. False ascends to the
            # maximum instead.
            "downhill": True,
            # Ingber's Temperature_Ratio_Scale, m = -log(ratio).
            "temperature_ratio_scale": 1e-5,
            # Ingber's Temperature_Anneal_Scale, n = log(scale).
            "temperature_anneal_scale": 100.0,
            # Ingber's Cost_Parameter_Scale_Ratio, c_cost = c * ratio.
            "cost_parameter_scale_ratio": 1.0,
            # Reanneal when accepted:generated drops below this.
            "acc_gen_reanneal_ratio": 1e-6,
            # Relative perturbation used to estimate tangents, x*(1 +/- delta).
            "delta_param": 0.01,
            # Stop after this many acceptances that reproduce the best value.
            "f_x_best_repeat_max": 10,
            "enable_reanneal": True,
            # Force a reanneal after this many steps even if the
            # accepted:generated ratio still looks healthy.
            "reanneal_after_steps": 100,
            # Stop once every T_i(k) has dropped below the expected T_f.
            "exit_at_T_f": False,
            # Out-of-bounds draws tolerated before generation gives up.
            "max_generate_attempts": 100000,
        }
        if initial_params:
            self.update(initial_params)

    @classmethod
    def from_mapping(cls, data):
        """Build parameters from a parsed YAML/JSON mapping.

        YAML leaves values such as ``1e-5`` as strings, so numeric keys are
        coerced here before validation.
        """
        params = cls()
        for key, value in dict(data or {}).items():
            if key not in params:
                raise InvalidArgumentError(f"Unknown anneal parameter {key!r}")
            params.set(key, _coerce(key, value))
        params.validate()
        return params

    def __getattr__(self, name):
        params = self.__dict__.get("_params")
        if params is not None and name in params:
            return params[name]
        raise AttributeError(
            f"{type(self).__name__!s} object has no attribute {name!r}"
        )

    def __setattr__(self, name, value):
        if name == "_params":
            object.__setattr__(self, name, value)
            return
        params = self.__dict__.get("_params")
        if params is not None and name in params:
            params[name] = value
            return
        object.__setattr__(self, name, value)

    def get(self, key, default=None):
        """Retrieve a parameter value, or return a default if not found."""
        return self._params.get(key, default)

    def set(self, key, value):
        """Set or update a parameter."""
        self._params[key] = value

    def update(self, params):
        """Update multiple parameters at once."""
        self._params.update(params)

    def copy(self):
        return AnnealParameters(dict(self._params))

    def validate(self):
        """Check every parameter, raising ``InvalidArgumentError`` on the first bad one.

        Values set directly (plain dicts, attribute assignment) are coerced
        the same way as :meth:`from_mapping` does, so ``"false"`` is a bool.
        """
        known = set(_BOOL_KEYS) | set(_INT_KEYS) | set(_FLOAT_KEYS)
        unknown = sorted(set(self._params) - known)
        if unknown:
            raise InvalidArgumentError(f"Unknown anneal parameters: {unknown}")
        for key, value in list(self._params.items()):
            self._params[key] = _coerce(key, value)

        ratio = float(self.temperature_ratio_scale)
        if not 0.0 < ratio < 1.0:
            raise InvalidArgumentError(
                f"temperature_ratio_scale must lie in (0, 1); got {ratio!r}"
            )
        if float(self.temperature_anneal_scale) <= 1.0:
            raise InvalidArgumentError(
                "temperature_anneal_scale must be greater than 1; "
                f"got {self.temperature_anneal_scale!r}"
            )
        for key in ("cost_parameter_scale_ratio", "delta_param"):
            if float(self._params[key]) <= 0.0:
                raise InvalidArgumentError(f"{key} must be positive; got {self._params[key]!r}")
        if float(self.acc_gen_reanneal_ratio) < 0.0:
            raise InvalidArgumentError("acc_gen_reanneal_ratio must not be negative")
        for key in _INT_KEYS:
            if int(self._params[key]) < 0:
                raise InvalidArgumentError(f"{key} must not be negative; got {self._params[key]!r}")
        if int(self.max_generate_attempts) == 0:
            raise InvalidArgumentError("max_generate_attempts must be at least 1")
        return self

    def __contains__(self, key):
        """Check if a parameter exists."""
        return key in self._params

    def __repr__(self):
        return f"AnnealParameters({self._params})"

    def to_dict(self):
        """Convert the parameters to a dictionary for serialization."""
        return self._params


def _coerce(key, value):
    try:
        if key in _BOOL_KEYS:
            if isinstance(value, str):
                lowered = value.strip().lower()
                if lowered in {"1", "true", "yes", "on"}:
                    return True
                if lowered in {"0", "false", "no", "off"}:
                    return False
                raise ValueError(value)
            return bool(value)
        if key in _INT_KEYS:
            return int(float(value)) if isinstance(value, str) else int(value)
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(
            f"anneal parameter {key!r} has an invalid value {value!r}"
        ) from exc
