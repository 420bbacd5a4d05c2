"""Read-only queries over the articulated tree.

The tree is owned by the viewer; nothing here mutates it.
"""

import numpy as np

from ikgrab.constants import REACH_POINT_FALLBACK
from ikgrab.core.math_utils import Vec3, vec3
from ikgrab.core.scene_graph import SceneNode


def is_movable_joint(node: SceneNode) -> bool:
    """True for revolute, continuous and prismatic joint nodes."""
    return getattr(node, "is_joint", False) and node.joint_type.is_movable


def list_movable_joints(root: SceneNode) -> list[SceneNode]:
    """All movable joints below (and including) ``root``, depth-first."""
    joints: list[SceneNode] = []

    def _collect(node: SceneNode) -> None:
        if is_movable_joint(node):
            joints.append(node)

    root.traverse(_collect)
    return joints


def has_movable_descendant(joint: SceneNode) -> bool:
    """True if any joint strictly below ``joint`` is movable."""
    for child in joint.children:
        if is_movable_joint(child) or has_movable_descendant(child):
            return True
    return False


def compute_reach_point(joint: SceneNode) -> Vec3:
    """Joint-local offset of the farthest piece of geometry in the subtree.

    Each mesh contributes the world-space centre of its bounding box; the
    centre farthest from the joint's world origin wins.  With no geometry
    below the joint, a small offset along local +Z is returned so the tip
    never coincides with the joint origin.
    """
    joint.update_world_matrix(update_parents=True)
    joint_world = joint.get_world_position()

    best: Vec3 | None = None
    max_distance = 0.0

    def _visit(node: SceneNode) -> None:
        nonlocal best, max_distance
        if node.mesh is None:
            return
        center = node.mesh.geometry.get_bounding_box_center()
        if center is None:
            return
        world_center = node.local_to_world(center)
        distance = float(np.linalg.norm(world_center - joint_world))
        if distance > max_distance:
            max_distance = distance
            best = world_center

    joint.traverse(_visit)

    if best is None:
        return vec3(*REACH_POINT_FALLBACK)
    return joint.world_to_local(best)


def find_joint_for_node(node: SceneNode | None, movable_joints: list[SceneNode]) -> SceneNode | None:
    """Resolve a ray-hit node to the joint that moves it.

    Walks up from ``node`` to the first non-fixed joint; that joint is
    returned only if it is one of ``movable_joints``.
    """
    current = node
    while current is not None:
        if is_movable_joint(current):
            return current if current in movable_joints else None
        current = current.parent
    return None
