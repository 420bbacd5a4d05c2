"""Kinematic chain extraction from a joint back to the tree root."""

from dataclasses import dataclass

from ikgrab.core.scene_graph import SceneNode


@dataclass
class ChainEntry:
    """One rotatable joint of an IK chain and its angle when the chain was built."""
    joint: SceneNode
    original_angle: float


def _is_rotatable(node: SceneNode) -> bool:
    return getattr(node, "is_joint", False) and node.joint_type.is_rotational


def build_chain(start_joint: SceneNode, include_start: bool = False) -> list[ChainEntry]:
    """Collect the rotatable joints between ``start_joint`` and the root.

    Entries are ordered root first.  Fixed and prismatic joints are never
    included.  The walk stops before the first node without a parent (the
    scene root).  An empty list means the joint cannot be IK-driven.
    """
    chain: list[ChainEntry] = []
    current = start_joint if include_start else start_joint.parent

    while current is not None and current.parent is not None:
        if _is_rotatable(current):
            chain.insert(0, ChainEntry(joint=current, original_angle=current.angle))
        current = current.parent

    return chain
