"""Scripted IK target animation.

Moves the IK target between random points of a workspace box with eased
transitions, solving once per frame.  Stops as soon as the user starts a
manipulation of their own.
"""

import logging
import random
import time
from typing import Optional, Sequence

from ikgrab.constants import (
    ANIM_TRANSITION_DURATION,
    ANIM_WORKSPACE_MAX,
    ANIM_WORKSPACE_MIN,
    MAX_DELTA_TIME,
    SOLVER_CONFIG_NAME,
)
from ikgrab.core.events import EventBus, EventType
from ikgrab.core.math_utils import Vec3, lerp_vec3, vec3
from ikgrab.core.scene_graph import SceneNode
from ikgrab.interaction.ik_controls import IKControls
from ikgrab.kinematics.joint_graph import is_movable_joint
from ikgrab.kinematics.solver_config import load_config

logger = logging.getLogger(__name__)


def ease_in_out_quad(t: float) -> float:
    if t < 0.5:
        return 2 * t * t
    return 1 - (-2 * t + 2) ** 2 / 2


def pick_effector(robot: Optional[SceneNode]) -> Optional[SceneNode]:
    """Second-to-last movable joint by name (the last one if only one)."""
    if robot is None:
        return None
    joints: list[SceneNode] = []
    robot.traverse(lambda n: joints.append(n) if is_movable_joint(n) else None)
    if not joints:
        return None
    joints.sort(key=lambda j: j.name)
    return joints[-2] if len(joints) >= 2 else joints[-1]


class TargetAnimator:
    """Feeds random eased targets to an :class:`IKControls` solver."""

    def __init__(
        self,
        controls: IKControls,
        event_bus: Optional[EventBus] = None,
        workspace_min: Sequence[float] = ANIM_WORKSPACE_MIN,
        workspace_max: Sequence[float] = ANIM_WORKSPACE_MAX,
        transition_duration: float = ANIM_TRANSITION_DURATION,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.controls = controls
        self.event_bus = event_bus if event_bus is not None else controls.event_bus
        self.workspace_min = vec3(*workspace_min)
        self.workspace_max = vec3(*workspace_max)
        self.transition_duration = transition_duration
        self._rng = rng if rng is not None else random.Random()

        self.active = False
        self._current: Vec3 = vec3()
        self._next: Vec3 = vec3()
        self._progress = 1.0
        self._elapsed = 0.0
        self._last_tick: Optional[float] = None

        self.event_bus.subscribe(EventType.MANIPULATE_START, self._on_manipulate_start)

    @classmethod
    def from_config(
        cls,
        controls: IKControls,
        name: str = SOLVER_CONFIG_NAME,
        rng: Optional[random.Random] = None,
    ) -> "TargetAnimator":
        """Build with the ``animation`` section of a config file.

        Missing or malformed config falls back to the built-in workspace.
        """
        kwargs = {}
        try:
            data = load_config(name).get("animation", {})
            if "workspace_min" in data:
                kwargs["workspace_min"] = [float(v) for v in data["workspace_min"]]
            if "workspace_max" in data:
                kwargs["workspace_max"] = [float(v) for v in data["workspace_max"]]
            if "transition_duration" in data:
                kwargs["transition_duration"] = float(data["transition_duration"])
        except (FileNotFoundError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Animation config %s unusable, using defaults: %s", name, e)
            kwargs = {}
        return cls(controls, rng=rng, **kwargs)

    def random_target(self) -> Vec3:
        lo, hi = self.workspace_min, self.workspace_max
        return vec3(*(self._rng.uniform(lo[i], hi[i]) for i in range(3)))

    def start(self, joint: Optional[SceneNode] = None) -> bool:
        """Select an effector, build its solver and begin animating."""
        if not self.controls.enabled:
            self.controls.set_enabled(True)

        if joint is None:
            joint = pick_effector(self.controls.robot)
        if joint is None:
            logger.warning("Target animation: no movable joint to drive")
            return False

        if self.controls.select_effector(joint) is None:
            self.controls.clear_selection()
            return False

        if self.controls.current_target_visual is not None:
            self.controls.current_target_visual.visible = False

        self._current = self.random_target()
        self._next = self.random_target()
        self._progress = 0.0
        self._elapsed = 0.0
        self._last_tick = time.perf_counter()
        self.active = True
        logger.info("Target animation started on joint: %s", joint.name)
        return True

    def update(self, dt: float) -> Optional[Vec3]:
        """Advance by ``dt`` seconds.  Returns the target that was applied."""
        if not self.active or self.controls.is_dragging:
            return None

        if self._progress >= 1.0:
            self._current = self._next
            self._next = self.random_target()
            self._progress = 0.0
            self._elapsed = 0.0

        self._elapsed += dt
        self._progress = min(1.0, self._elapsed / self.transition_duration)

        position = lerp_vec3(self._current, self._next, ease_in_out_quad(self._progress))
        if not self.controls.drive_target(position):
            return None
        return position

    def tick(self) -> Optional[Vec3]:
        """Advance by the wall-clock time since the previous tick.

        Gaps longer than ``MAX_DELTA_TIME`` are clamped to it.
        """
        now = time.perf_counter()
        dt = 0.0 if self._last_tick is None else min(now - self._last_tick, MAX_DELTA_TIME)
        self._last_tick = now
        return self.update(dt)

    def stop(self) -> None:
        """Stop animating and release the animation's solver."""
        if not self.active:
            return
        self.active = False
        self._last_tick = None
        self.controls.dispose_current_solver()
        self.controls.clear_selection()
        logger.info("Target animation stopped")

    def _on_manipulate_start(self, **_data) -> None:
        # The user's drag owns the solver now; just stop feeding targets.
        if self.active:
            self.active = False
            logger.info("Target animation interrupted by manipulation")

    def dispose(self) -> None:
        self.event_bus.unsubscribe(EventType.MANIPULATE_START, self._on_manipulate_start)
        self.active = False
