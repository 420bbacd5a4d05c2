"""Tunable CCD solver parameters, loadable from ``assets/config``."""

import json
import logging
from dataclasses import dataclass, fields
from typing import Any

from ikgrab.constants import (
    CONFIG_DIR,
    IK_DAMPING_FACTOR,
    IK_MAX_ANGLE_CHANGE,
    IK_MAX_ITERATIONS,
    IK_ORIENTATION_JOINT_COUNT,
    IK_ORIENTATION_STEP,
    IK_ORIENTATION_WEIGHT,
    IK_SMOOTHING_FACTOR,
    IK_TOLERANCE,
    SOLVER_CONFIG_NAME,
)

logger = logging.getLogger(__name__)


def load_config(name: str) -> Any:
    """Parsed JSON of ``assets/config/<name>``."""
    with open(CONFIG_DIR / name) as f:
        return json.load(f)


@dataclass
class SolverConfig:
    """CCD parameters.

    The orientation fields are empirically tuned rather than derived; they
    are exposed here so they can be adjusted per robot.
    """
    tolerance: float = IK_TOLERANCE
    max_iterations: int = IK_MAX_ITERATIONS
    damping_factor: float = IK_DAMPING_FACTOR
    max_angle_change_per_iteration: float = IK_MAX_ANGLE_CHANGE
    smoothing_factor: float = IK_SMOOTHING_FACTOR
    orientation_weight: float = IK_ORIENTATION_WEIGHT
    orientation_step: float = IK_ORIENTATION_STEP
    orientation_joint_count: int = IK_ORIENTATION_JOINT_COUNT

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SolverConfig":
        """Build from a mapping, ignoring unknown keys."""
        config = cls()
        for f in fields(cls):
            if f.name in data:
                caster = int if f.type in (int, "int") else float
                setattr(config, f.name, caster(data[f.name]))
        return config

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def load(cls, name: str = SOLVER_CONFIG_NAME) -> "SolverConfig":
        """Load from config.  Falls back to defaults on failure."""
        try:
            data = load_config(name)
            return cls.from_dict(data.get("solver", {}))
        except (FileNotFoundError, ValueError, TypeError, AttributeError) as e:
            logger.warning("IK solver config %s unusable, using defaults: %s", name, e)
            return cls()
