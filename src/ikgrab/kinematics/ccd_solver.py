"""Damped, smoothed Cyclic Coordinate Descent solver for one joint chain.

Each ``solve()`` call runs a bounded number of sweeps from the effector end
of the chain toward the root.  Every joint step is:

1. rotate-to-align angle between joint→tip and joint→target,
2. scaled by the damping factor and clamped per iteration,
3. clamped to the joint limit,
4. blended from the joint's previously solved angle by the smoothing
   factor (the blend state survives across calls, which is what keeps
   frame-to-frame motion free of snapping),
5. clamped to the limit again and applied only if non-negligible.

After each sweep an optional orientation pass nudges the last joints of the
chain back toward the effector's forward direction at creation time.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from ikgrab.constants import (
    IK_ALIGNED_EPSILON,
    IK_MIN_DISTANCE,
    IK_NEGLIGIBLE_CHANGE,
    IK_ORIENTATION_DRIFT_DOT,
    IK_STAGNATION_CHANGE,
)
from ikgrab.core.math_utils import Vec3, angle_between, clamp, sign
from ikgrab.core.scene_graph import SceneNode
from ikgrab.kinematics.chain import ChainEntry
from ikgrab.kinematics.joint import ArticulatedJoint
from ikgrab.kinematics.solver_config import SolverConfig

logger = logging.getLogger(__name__)


@dataclass
class SolveResult:
    """Outcome of one ``solve()`` call."""
    iterations: int = 0
    distance: float = 0.0
    total_change: float = 0.0
    converged: bool = False


def _clamp_to_limit(joint: ArticulatedJoint, value: float) -> float:
    # Any joint type, continuous included
    if joint.limit is None:
        return value
    return joint.limit.clamp(value)


class CCDSolver:
    """Drives ``effector``'s tip toward ``target`` by rotating ``chain``.

    Parameters
    ----------
    chain : list[ChainEntry]
        Root-first rotatable joints.  May be empty (``solve`` is a no-op).
    target : SceneNode
        Node whose world position is the goal; moved by the caller.
    effector : ArticulatedJoint
        The joint whose tip is tracked.
    end_point : Vec3, optional
        Effector-local tip offset (its reach point).  Without it the
        effector's own origin is tracked.
    config : SolverConfig, optional
        Iteration parameters; defaults when omitted.
    on_joint_updated : callable, optional
        Called with each joint whose angle the solver changed.
    """

    def __init__(
        self,
        chain: list[ChainEntry],
        target: SceneNode,
        effector: ArticulatedJoint,
        end_point: Optional[Vec3] = None,
        config: Optional[SolverConfig] = None,
        on_joint_updated: Optional[Callable[[ArticulatedJoint], None]] = None,
    ) -> None:
        self.chain = chain
        self.target = target
        self.effector = effector
        self.end_point = None if end_point is None else np.asarray(end_point, dtype=np.float64).copy()
        self.config = config if config is not None else SolverConfig()
        self.on_joint_updated = on_joint_updated

        self.initial_orientation: Vec3 = self.effector.get_world_direction()

        # Last solved angle per joint, used for smoothing across calls
        self.previous_angles: dict[ArticulatedJoint, float] = {
            entry.joint: entry.joint.angle for entry in self.chain
        }

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_effector_end_point(self) -> Vec3:
        """World position of the tracked tip."""
        if self.end_point is not None:
            return self.effector.local_to_world(self.end_point)
        return self.effector.get_world_position()

    def get_target_position(self) -> Vec3:
        return self.target.get_world_position()

    def distance_to_target(self) -> float:
        return float(np.linalg.norm(self.get_effector_end_point() - self.get_target_position()))

    def capture_orientation(self) -> None:
        """Re-capture the effector forward direction to preserve."""
        self.initial_orientation = self.effector.get_world_direction()

    # ------------------------------------------------------------------
    # Solving
    # ------------------------------------------------------------------

    def solve(self) -> SolveResult:
        """Advance joint angles toward the target.  Bounded by ``max_iterations``."""
        result = SolveResult()
        if not self.chain:
            return result

        target_pos = self.get_target_position()

        result.distance = float(np.linalg.norm(self.get_effector_end_point() - target_pos))
        if result.distance < self.config.tolerance:
            result.converged = True
            return result

        for iteration in range(self.config.max_iterations):
            sweep_change = 0.0

            for entry in reversed(self.chain):
                sweep_change += self._step_joint(entry.joint, target_pos)

            if self.config.orientation_weight > 0:
                self._correct_orientation()

            result.iterations = iteration + 1
            result.total_change += sweep_change
            result.distance = float(np.linalg.norm(self.get_effector_end_point() - target_pos))

            if result.distance < self.config.tolerance:
                result.converged = True
                break
            if sweep_change < IK_STAGNATION_CHANGE:
                break

        logger.debug(
            "CCD solve: %d iterations, distance %.4f, change %.4f",
            result.iterations, result.distance, result.total_change,
        )
        return result

    def _step_joint(self, joint: ArticulatedJoint, target_pos: Vec3) -> float:
        """Rotate one joint toward alignment.  Returns the applied change."""
        if not joint.joint_type.is_rotational:
            return 0.0

        tip = self.get_effector_end_point()
        joint_pos = joint.get_world_position()

        if np.linalg.norm(tip - joint_pos) < IK_MIN_DISTANCE:
            return 0.0

        to_tip = tip - joint_pos
        to_target = target_pos - joint_pos
        tip_len = np.linalg.norm(to_tip)
        target_len = np.linalg.norm(to_target)
        if tip_len < IK_MIN_DISTANCE or target_len < IK_MIN_DISTANCE:
            return 0.0
        to_tip = to_tip / tip_len
        to_target = to_target / target_len

        angle = angle_between(to_tip, to_target)
        if angle < IK_ALIGNED_EPSILON:
            return 0.0

        axis = joint.get_world_axis()
        direction = sign(float(np.dot(np.cross(to_tip, to_target), axis)))

        cfg = self.config
        delta = direction * angle * cfg.damping_factor
        delta = clamp(delta, -cfg.max_angle_change_per_iteration, cfg.max_angle_change_per_iteration)

        target_angle = _clamp_to_limit(joint, joint.angle + delta)

        previous = self.previous_angles.get(joint, joint.angle)
        new_angle = previous + (target_angle - previous) * cfg.smoothing_factor
        new_angle = _clamp_to_limit(joint, new_angle)

        change = abs(new_angle - joint.angle)
        if change <= IK_NEGLIGIBLE_CHANGE:
            return 0.0
        if not joint.set_angle(new_angle):
            return 0.0

        self.previous_angles[joint] = joint.angle
        self._notify(joint)
        return change

    def _correct_orientation(self) -> None:
        """Nudge the trailing joints to counter twist of the effector."""
        current = self.effector.get_world_direction()
        if float(np.dot(current, self.initial_orientation)) >= IK_ORIENTATION_DRIFT_DOT:
            return

        count = self.config.orientation_joint_count
        cross = np.cross(current, self.initial_orientation)
        for entry in self.chain[-count:]:
            joint = entry.joint
            if not joint.joint_type.is_rotational:
                continue

            direction = sign(float(np.dot(cross, joint.get_world_axis())))
            correction = direction * self.config.orientation_step * self.config.orientation_weight
            new_angle = _clamp_to_limit(joint, joint.angle + correction)

            if joint.set_angle(new_angle):
                self.previous_angles[joint] = joint.angle
                self._notify(joint)

    def _notify(self, joint: ArticulatedJoint) -> None:
        if self.on_joint_updated is not None:
            self.on_joint_updated(joint)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Drop all references; the solver must not be used afterwards."""
        self.chain = []
        self.previous_angles.clear()
        self.on_joint_updated = None
