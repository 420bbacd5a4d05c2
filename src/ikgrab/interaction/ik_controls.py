"""Pointer-driven IK manipulation of an articulated robot.

Grabbing any movable joint creates a CCD solver for the chain between that
joint and the robot root; dragging moves the solver's target so the grabbed
surface point follows the pointer.  At most one solver is live at a time.

States: idle → hovering → dragging → idle.  Hovering only publishes
events; a solver is created on pointer-down.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ikgrab.constants import TARGET_MARKER_COLOR, TARGET_MARKER_OPACITY, TARGET_MARKER_RADIUS
from ikgrab.core.events import EventBus, EventType
from ikgrab.core.math_utils import Vec3, vec3
from ikgrab.core.mesh import Material, MeshInstance
from ikgrab.core.procedural_geometry import make_sphere
from ikgrab.core.scene_graph import Scene, SceneNode
from ikgrab.kinematics.ccd_solver import CCDSolver
from ikgrab.kinematics.chain import build_chain
from ikgrab.kinematics.joint_graph import (
    compute_reach_point,
    find_joint_for_node,
    has_movable_descendant,
    list_movable_joints,
)
from ikgrab.kinematics.solver_config import SolverConfig
from ikgrab.rendering.camera import Camera, Ray

logger = logging.getLogger(__name__)


@dataclass
class PointerHit:
    """Nearest ray-surface intersection, as reported by the external picker."""
    node: SceneNode
    point: Vec3
    distance: float = 0.0


class IKControls:
    """Binds pointer events to a single CCD solver.

    Parameters
    ----------
    robot : SceneNode or None
        Root of the articulated tree.
    scene : Scene
        Scene that receives the target node and its marker.
    camera : Camera
        Viewing camera; drag depth is measured from its position.
    event_bus : EventBus, optional
        Receives angle/manipulation/hover notifications.
    config : SolverConfig, optional
        Parameters for every solver created here.
    """

    def __init__(
        self,
        robot: Optional[SceneNode],
        scene: Scene,
        camera: Camera,
        event_bus: Optional[EventBus] = None,
        config: Optional[SolverConfig] = None,
    ) -> None:
        self.robot = robot
        self.scene = scene
        self.camera = camera
        self.event_bus = event_bus if event_bus is not None else EventBus()
        self.config = config if config is not None else SolverConfig()
        self._enabled = False

        self.is_dragging = False
        self.hovered: Optional[SceneNode] = None
        self.hit_distance = -1.0
        self.selected_effector: Optional[SceneNode] = None
        self.selected_effector_original_angle: Optional[float] = None
        self.should_lock_selected_joint = False
        self.initial_grab_point: Vec3 = vec3()
        self.grab_offset: Vec3 = vec3()

        # The single live solver and the scene objects it owns
        self.current_solver: Optional[CCDSolver] = None
        self.current_target: Optional[SceneNode] = None
        self.current_target_visual: Optional[SceneNode] = None

        self.movable_joints: list[SceneNode] = []
        self._setup_ik()

    def _setup_ik(self) -> None:
        self.movable_joints = list_movable_joints(self.robot) if self.robot is not None else []

    # ------------------------------------------------------------------
    # Mode / robot
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self.set_enabled(value)

    def set_enabled(self, enabled: bool) -> None:
        """Toggle IK mode.  Disabling drops the selection and the solver."""
        self._enabled = bool(enabled)

        if self.current_target_visual is not None:
            self.current_target_visual.visible = self._enabled and self.is_dragging

        if not self._enabled:
            self.is_dragging = False
            self.clear_selection()
            self._set_hovered(None)
            self.dispose_current_solver()

        logger.info("IK mode %s", "enabled" if self._enabled else "disabled")
        self.event_bus.publish(EventType.IK_MODE_TOGGLED, enabled=self._enabled)

    def update_robot(self, robot: Optional[SceneNode]) -> None:
        """Switch to a different articulated tree."""
        self.robot = robot
        self.dispose_current_solver()
        self.is_dragging = False
        self.clear_selection()
        self.hovered = None
        self._setup_ik()
        logger.info("IK robot changed: %d movable joints", len(self.movable_joints))
        self.event_bus.publish(EventType.ROBOT_CHANGED, robot=robot)

    def clear_selection(self) -> None:
        self.selected_effector = None
        self.selected_effector_original_angle = None
        self.should_lock_selected_joint = False

    # ------------------------------------------------------------------
    # Solver lifecycle
    # ------------------------------------------------------------------

    def create_solver_for_joint(self, joint: SceneNode) -> Optional[CCDSolver]:
        """Replace the live solver with one driving ``joint``.

        Returns None when no rotatable joint lies between ``joint`` and the
        root; that selection simply cannot be IK-driven.
        """
        self.dispose_current_solver()

        end_point = compute_reach_point(joint)

        # A joint with movable children rotates with the chain; a true end
        # effector is left out and held at its angle while dragged.
        has_children = has_movable_descendant(joint)
        self.should_lock_selected_joint = not has_children

        chain = build_chain(joint, include_start=has_children)
        if not chain:
            logger.warning("No IK chain could be built for joint: %s", joint.name)
            return None

        world_end_point = joint.local_to_world(end_point)

        target = SceneNode("ik_target")
        self.scene.add(target)
        _move_node(target, world_end_point)

        visual = SceneNode("ik_target_visual")
        visual.mesh = MeshInstance(
            name="ik_target_visual",
            geometry=make_sphere(TARGET_MARKER_RADIUS),
            material=Material.from_hex(TARGET_MARKER_COLOR, opacity=TARGET_MARKER_OPACITY),
        )
        visual.visible = self._enabled
        self.scene.add(visual)
        _move_node(visual, world_end_point)

        solver = CCDSolver(
            chain, target, joint,
            end_point=end_point,
            config=self.config,
            on_joint_updated=self._on_joint_updated,
        )

        self.current_solver = solver
        self.current_target = target
        self.current_target_visual = visual

        logger.info("Created IK solver for joint: %s with %d joints in chain",
                    joint.name, len(chain))
        self.event_bus.publish(EventType.SOLVER_CREATED, joint=joint.name, chain_length=len(chain))
        return solver

    def dispose_current_solver(self) -> None:
        """Tear down the live solver and remove its target and marker."""
        if self.current_target is not None:
            if self.current_target.parent is not None:
                self.current_target.parent.remove(self.current_target)
            self.current_target = None

        if self.current_target_visual is not None:
            if self.current_target_visual.parent is not None:
                self.current_target_visual.parent.remove(self.current_target_visual)
            self.current_target_visual.mesh = None
            self.current_target_visual = None

        if self.current_solver is not None:
            self.current_solver.dispose()
            self.current_solver = None
            logger.debug("Disposed IK solver")
            self.event_bus.publish(EventType.SOLVER_DISPOSED)

    def select_effector(self, joint: SceneNode) -> Optional[CCDSolver]:
        """Make ``joint`` the active effector and build its solver."""
        self.selected_effector = joint
        self.selected_effector_original_angle = joint.angle
        return self.create_solver_for_joint(joint)

    def _on_joint_updated(self, joint: SceneNode) -> None:
        self.event_bus.publish(EventType.JOINT_ANGLE_CHANGED, joint=joint.name)

    # ------------------------------------------------------------------
    # Pointer events
    # ------------------------------------------------------------------

    def update_hover(self, hit: Optional[PointerHit]) -> Optional[SceneNode]:
        """Track the joint under the pointer.  No-op while dragging."""
        if not self._enabled or self.is_dragging:
            return self.hovered

        joint = None
        if hit is not None:
            self.hit_distance = hit.distance
            joint = find_joint_for_node(hit.node, self.movable_joints)
            self.initial_grab_point = np.asarray(hit.point, dtype=np.float64).copy()

        self._set_hovered(joint)
        return self.hovered

    def _set_hovered(self, joint: Optional[SceneNode]) -> None:
        if joint is self.hovered:
            return
        if self.hovered is not None:
            self.event_bus.publish(EventType.JOINT_UNHOVER, joint=self.hovered.name)
        self.hovered = joint
        if joint is not None:
            self.event_bus.publish(EventType.JOINT_HOVER, joint=joint.name)

    def on_pointer_down(self, ray: Ray, hit: Optional[PointerHit]) -> bool:
        """Start a drag on the joint under the pointer.  Returns True if consumed."""
        if not self._enabled:
            return False

        self.update_hover(hit)
        if self.hovered is None:
            return False

        joint = self.hovered
        self.is_dragging = True
        solver = self.select_effector(joint)

        if solver is not None and self.current_target is not None:
            solver.capture_orientation()

            # Keep the grabbed surface point, not the nominal tip, under the pointer
            tip = solver.get_effector_end_point()
            self.grab_offset = self.initial_grab_point - tip
            _move_node(self.current_target, tip)

            if self.current_target_visual is not None:
                _move_node(self.current_target_visual, self.initial_grab_point)
                self.current_target_visual.visible = True

        logger.debug("Started dragging joint: %s locked: %s angle: %.4f",
                     joint.name, self.should_lock_selected_joint,
                     self.selected_effector_original_angle)
        self.event_bus.publish(EventType.MANIPULATE_START, joint=joint.name)
        return True

    def on_pointer_move(self, ray: Ray, hit: Optional[PointerHit] = None) -> bool:
        """Drag update, or hover tracking when not dragging."""
        if not self._enabled:
            return False

        if self.is_dragging and self.selected_effector is not None:
            if self.current_target is not None and self.current_solver is not None:
                # Same depth from the camera as the original grab
                depth = float(np.linalg.norm(self.camera.position - self.initial_grab_point))
                new_grab_point = ray.at(depth)
                _move_node(self.current_target, new_grab_point - self.grab_offset)

                if self.current_target_visual is not None:
                    _move_node(self.current_target_visual, new_grab_point)

                self.current_solver.solve()
                self._relock_selected_joint()
                self.event_bus.publish(EventType.REDRAW_REQUESTED)
            return True

        self.update_hover(hit)
        return False

    def on_pointer_up(self, ray: Optional[Ray] = None, hit: Optional[PointerHit] = None) -> bool:
        """End the drag.  The solver stays alive until replaced or disabled."""
        if not self._enabled:
            return False

        was_dragging = self.is_dragging
        joint = self.selected_effector

        self.is_dragging = False
        self.clear_selection()
        self.update_hover(hit)

        if self.current_target_visual is not None:
            self.current_target_visual.visible = False

        if was_dragging and joint is not None:
            self.event_bus.publish(EventType.MANIPULATE_END, joint=joint.name)
        return was_dragging

    # ------------------------------------------------------------------
    # External drivers
    # ------------------------------------------------------------------

    def drive_target(self, position: Vec3) -> bool:
        """Move the target from a scripted driver and solve once.

        Ignored while the user is dragging or when no solver is live.
        """
        if self.is_dragging or self.current_solver is None or self.current_target is None:
            return False

        if self.current_target_visual is not None:
            self.current_target_visual.visible = False

        _move_node(self.current_target, position)
        self.current_solver.solve()
        self._relock_selected_joint()
        self.event_bus.publish(EventType.REDRAW_REQUESTED)
        return True

    def update_effector_positions(self) -> None:
        """Snap the target back onto the effector tip (e.g. after a view change)."""
        if self.current_target is None or self.selected_effector is None:
            return
        if self.current_solver is not None:
            tip = self.current_solver.get_effector_end_point()
        else:
            tip = self.selected_effector.get_world_position()
        _move_node(self.current_target, tip)

    def _relock_selected_joint(self) -> None:
        if (self.should_lock_selected_joint
                and self.selected_effector is not None
                and self.selected_effector_original_angle is not None):
            if self.selected_effector.set_angle(self.selected_effector_original_angle):
                self.event_bus.publish(EventType.JOINT_ANGLE_CHANGED,
                                       joint=self.selected_effector.name)

    def dispose(self) -> None:
        self.dispose_current_solver()
        self.is_dragging = False
        self.clear_selection()
        self.hovered = None
        self.movable_joints = []


def _move_node(node: SceneNode, position: Vec3) -> None:
    node.set_position(float(position[0]), float(position[1]), float(position[2]))
    node.update_world_matrix(update_parents=True)
