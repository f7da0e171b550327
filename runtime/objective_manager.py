# runtime/objective_manager.py

import importlib
import logging
from collections import Counter

logger = logging.getLogger("asa_optimizer")


class ObjectiveModuleManager:
    """Load objective modules from ``modules.objectives`` by name."""

    def __init__(self, module_names):
        self.modules = {}
        counted = Counter(module_names)
        for name, count in counted.items():
            if count > 1:
                logger.warning(f"Objective module '{name}' specified {count} times; using only one instance.")

            try:
                module = importlib.import_module(f"modules.objectives.{name}")
            except ImportError as e:
                logger.error(f"Could not load objective module '{name}': {e}")
                raise
            if not callable(getattr(module, "compute_objective", None)):
                raise ImportError(
                    f"Objective module '{name}' does not define compute_objective(x, params)"
                )
            self.modules[name] = module
            logger.info(f"Loaded objective module: {name}")

    def get_module(self, mod):
        """
        Retrieve a loaded objective module by name.
        """
        if mod in self.modules.keys():
            return self.modules[mod]
        raise KeyError(f"Objective module '{mod}' not found.")

    def bind(self, mod, params=None):
        """Return ``f(x)`` for module ``mod`` with ``params`` baked in."""
        module = self.get_module(mod)
        options = dict(params or {})
        prepare = getattr(module, "prepare", None)
        if prepare is not None:
            options = prepare(options)

        def objective(x):
            return float(module.compute_objective(x, options))

        objective.__name__ = f"{mod}_objective"
        return objective
