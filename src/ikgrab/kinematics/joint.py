"""URDF-style joint and link nodes of the articulated tree.

A joint node sits between its parent link and its child link.  Its local
transform is the static joint origin followed by the joint motion: a
rotation about ``axis`` for revolute/continuous joints, a translation along
``axis`` for prismatic joints.  Fixed joints never move.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import numpy as np

from ikgrab.constants import DEFAULT_JOINT_AXIS
from ikgrab.core.math_utils import (
    Quat, Vec3,
    normalize, quat_from_axis_angle, quat_identity, quat_multiply,
    quat_rotate_vec3, transform_direction, vec3,
)
from ikgrab.core.scene_graph import SceneNode


class JointType(Enum):
    REVOLUTE = "revolute"
    CONTINUOUS = "continuous"
    PRISMATIC = "prismatic"
    FIXED = "fixed"

    @classmethod
    def from_str(cls, value: str) -> "JointType":
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"Unknown joint type: {value!r}") from None

    @property
    def is_rotational(self) -> bool:
        return self in (JointType.REVOLUTE, JointType.CONTINUOUS)

    @property
    def is_movable(self) -> bool:
        return self is not JointType.FIXED


@dataclass
class JointLimit:
    """Lower/upper joint bounds.  An empty range means unbounded."""
    lower: float = 0.0
    upper: float = 0.0

    @property
    def is_bounded(self) -> bool:
        return self.upper - self.lower > 0

    def clamp(self, value: float) -> float:
        if not self.is_bounded:
            return value
        return max(self.lower, min(self.upper, value))


class ArticulatedJoint(Protocol):
    """What the chain builder and solver need from a joint.

    Any tree whose joints offer these members can be driven; ``URDFJoint``
    is the in-package implementation.
    """

    name: str
    parent: object
    joint_type: JointType
    angle: float
    limit: JointLimit | None

    def set_angle(self, value: float) -> bool: ...

    def get_world_axis(self) -> Vec3: ...

    def get_world_position(self) -> Vec3: ...

    def get_world_direction(self) -> Vec3: ...

    def local_to_world(self, p: Vec3) -> Vec3: ...


class URDFLink(SceneNode):
    """A rigid body; visual geometry hangs below it as mesh nodes."""

    is_joint = False


class URDFJoint(SceneNode):
    """A single-DOF joint node.

    Parameters
    ----------
    name : str
        Joint name (unique within a robot).
    joint_type : JointType
        Kind of motion.
    axis : Vec3, optional
        Joint-local motion axis, normalized.  Defaults to +Z.
    limit : JointLimit, optional
        Motion bounds; ``None`` or an empty range means unbounded.
    """

    is_joint = True

    def __init__(
        self,
        name: str,
        joint_type: JointType = JointType.FIXED,
        axis: Vec3 | None = None,
        limit: JointLimit | None = None,
    ) -> None:
        super().__init__(name)
        self.joint_type = joint_type
        axis = vec3(*DEFAULT_JOINT_AXIS) if axis is None else np.asarray(axis, dtype=np.float64)
        if np.linalg.norm(axis) < 1e-10:
            axis = vec3(*DEFAULT_JOINT_AXIS)
        self.axis: Vec3 = normalize(axis)
        self.limit = limit
        self.angle: float = 0.0

        # Static origin transform (joint frame relative to parent link)
        self.origin_position: Vec3 = vec3()
        self.origin_quaternion: Quat = quat_identity()

    def set_origin(self, position: Vec3, quaternion: Quat) -> None:
        self.origin_position = np.asarray(position, dtype=np.float64).copy()
        self.origin_quaternion = np.asarray(quaternion, dtype=np.float64).copy()
        self._apply_value()

    def get_world_axis(self) -> Vec3:
        """Joint axis expressed in world space."""
        return normalize(transform_direction(self.world_matrix, self.axis))

    def set_angle(self, value: float) -> bool:
        """Set the joint value.  Returns True if the joint moved.

        Revolute and prismatic values are clamped to a bounded limit;
        continuous joints are never clamped; fixed joints never move.
        """
        if self.joint_type is JointType.FIXED:
            return False

        value = float(value)
        if self.limit is not None and self.joint_type is not JointType.CONTINUOUS:
            value = self.limit.clamp(value)

        if value == self.angle:
            return False

        self.angle = value
        self._apply_value()
        return True

    def _apply_value(self) -> None:
        position, q = self.origin_position, self.origin_quaternion
        if self.joint_type.is_rotational:
            q = quat_multiply(q, quat_from_axis_angle(self.axis, self.angle))
        elif self.joint_type is JointType.PRISMATIC:
            position = position + quat_rotate_vec3(q, self.axis * self.angle)
        self.set_transform(position, q)
        self.update_world_matrix(update_parents=True)
