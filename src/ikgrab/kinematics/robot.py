"""Articulated robot tree: links joined by URDF-style joints.

Loading robot descriptions from disk is handled elsewhere; this module only
offers the programmatic building blocks plus a procedural serial arm used by
demos and diagnostics.
"""

import logging
from typing import Sequence

from ikgrab.core.math_utils import quat_from_euler, vec3
from ikgrab.core.mesh import BufferGeometry, Material, MeshInstance
from ikgrab.core.procedural_geometry import make_box
from ikgrab.core.scene_graph import SceneNode
from ikgrab.kinematics.joint import JointLimit, JointType, URDFJoint, URDFLink

logger = logging.getLogger(__name__)

LINK_COLOR = 0x8C8C96
LINK_THICKNESS = 0.02


class URDFRobot(SceneNode):
    """Root of an articulated tree.

    The robot node itself is a link-less container; the first link added
    without a parent joint becomes the base link.
    """

    def __init__(self, name: str = "robot"):
        super().__init__(name)
        self.links: dict[str, URDFLink] = {}
        self.joints: dict[str, URDFJoint] = {}

    def add_link(self, name: str, parent_joint: str | None = None) -> URDFLink:
        if name in self.links:
            raise ValueError(f"Duplicate link name: {name!r}")
        link = URDFLink(name)
        if parent_joint is None:
            self.add(link)
        else:
            try:
                self.joints[parent_joint].add(link)
            except KeyError:
                raise ValueError(f"Unknown parent joint: {parent_joint!r}") from None
        self.links[name] = link
        link.update_world_matrix(update_parents=True)
        return link

    def add_joint(
        self,
        name: str,
        joint_type: JointType | str,
        parent_link: str,
        xyz: Sequence[float] = (0.0, 0.0, 0.0),
        rpy: Sequence[float] = (0.0, 0.0, 0.0),
        axis: Sequence[float] | None = None,
        limit: JointLimit | None = None,
    ) -> URDFJoint:
        if name in self.joints:
            raise ValueError(f"Duplicate joint name: {name!r}")
        if parent_link not in self.links:
            raise ValueError(f"Unknown parent link: {parent_link!r}")
        if isinstance(joint_type, str):
            joint_type = JointType.from_str(joint_type)

        joint = URDFJoint(
            name,
            joint_type=joint_type,
            axis=None if axis is None else vec3(*axis),
            limit=limit,
        )
        self.links[parent_link].add(joint)
        self.joints[name] = joint
        joint.set_origin(vec3(*xyz), quat_from_euler(*rpy))
        return joint

    def add_visual(
        self,
        link: str,
        geometry: BufferGeometry,
        xyz: Sequence[float] = (0.0, 0.0, 0.0),
        material: Material | None = None,
    ) -> SceneNode:
        """Attach a mesh node below ``link`` at offset ``xyz``."""
        node = SceneNode(f"{link}_visual")
        node.mesh = MeshInstance(
            name=node.name,
            geometry=geometry,
            material=material if material is not None else Material.from_hex(LINK_COLOR),
        )
        node.set_position(*xyz)
        self.links[link].add(node)
        node.update_world_matrix(update_parents=True)
        return node

    def set_joint_value(self, name: str, value: float) -> bool:
        """Set a joint by name.  Raises KeyError for unknown joints."""
        return self.joints[name].set_angle(value)

    def get_joint_values(self) -> dict[str, float]:
        return {name: joint.angle for name, joint in self.joints.items()}


def build_serial_arm(
    link_lengths: Sequence[float],
    joint_type: JointType = JointType.REVOLUTE,
    axis: Sequence[float] = (0.0, 0.0, 1.0),
    limits: Sequence[JointLimit | None] | None = None,
    name: str = "arm",
    with_visuals: bool = True,
) -> URDFRobot:
    """Build a chain ``base_link -> joint_1 -> link_1 -> joint_2 -> ...``.

    Joint ``i + 1`` sits ``link_lengths[i]`` along +X of joint ``i``.  Each
    link of non-zero length gets a thin box visual spanning it, so the
    reach point of the last joint is the middle of the last link.
    """
    robot = URDFRobot(name)
    robot.add_link("base_link")
    parent_link = "base_link"
    offset = 0.0
    for i, length in enumerate(link_lengths, start=1):
        limit = limits[i - 1] if limits is not None else None
        robot.add_joint(
            f"joint_{i}", joint_type, parent_link,
            xyz=(offset, 0.0, 0.0), axis=axis, limit=limit,
        )
        parent_link = f"link_{i}"
        robot.add_link(parent_link, parent_joint=f"joint_{i}")
        if with_visuals and length > 0:
            robot.add_visual(
                parent_link,
                make_box(length, LINK_THICKNESS, LINK_THICKNESS),
                xyz=(length / 2, 0.0, 0.0),
            )
        offset = float(length)

    logger.debug("Built serial arm %r with %d joints", name, len(link_lengths))
    return robot
