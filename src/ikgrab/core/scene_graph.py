"""Scene graph holding the robot tree, the IK target and its marker.

Each node has a rigid local pose (position + [x,y,z,w] quaternion).
``world_matrix = parent.world_matrix @ local_matrix``.
"""

from typing import Optional

from ikgrab.core.math_utils import (
    Mat4, Quat, Vec3,
    mat4_from_pose, mat4_identity, mat4_inverse, normalize, quat_identity,
    transform_point, vec3,
)
from ikgrab.core.mesh import MeshInstance


class SceneNode:
    """A posed node with children and an optional mesh."""

    def __init__(self, name: str = ""):
        self.name = name
        self.parent: Optional["SceneNode"] = None
        self.children: list["SceneNode"] = []

        self.position: Vec3 = vec3()
        self.quaternion: Quat = quat_identity()
        self.local_matrix: Mat4 = mat4_identity()
        self.world_matrix: Mat4 = mat4_identity()

        self.visible: bool = True
        self.mesh: Optional[MeshInstance] = None

        self._matrix_dirty: bool = True

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    def add(self, child: "SceneNode") -> "SceneNode":
        """Attach ``child``, detaching it from any previous parent."""
        if child.parent is not None:
            child.parent.remove(child)
        child.parent = self
        self.children.append(child)
        child._matrix_dirty = True
        return self

    def remove(self, child: "SceneNode") -> "SceneNode":
        if child in self.children:
            self.children.remove(child)
            child.parent = None
        return self

    def set_position(self, x: float, y: float, z: float) -> "SceneNode":
        self.position = vec3(x, y, z)
        self._matrix_dirty = True
        return self

    def set_transform(self, position: Vec3, quaternion: Quat) -> "SceneNode":
        """Replace the local pose.  World matrices refresh on the next update."""
        self.position = position.copy()
        self.quaternion = quaternion.copy()
        self._matrix_dirty = True
        return self

    def _refresh(self, force: bool = False) -> None:
        if self._matrix_dirty or force:
            self.local_matrix = mat4_from_pose(self.position, self.quaternion)
            self._matrix_dirty = False
        if self.parent is None:
            self.world_matrix = self.local_matrix.copy()
        else:
            self.world_matrix = self.parent.world_matrix @ self.local_matrix

    def update_world_matrix(self, force: bool = False, update_parents: bool = False) -> None:
        """Refresh world matrices of this node and its whole subtree.

        With ``update_parents`` the ancestors are refreshed first (root
        down), so a joint moved mid-solve sees its parents' current pose.
        """
        if update_parents:
            ancestors = []
            node = self.parent
            while node is not None:
                ancestors.append(node)
                node = node.parent
            for node in reversed(ancestors):
                node._refresh()

        self._refresh(force)
        for child in self.children:
            child.update_world_matrix(force=force)

    def traverse(self, callback) -> None:
        """Visit this node and all descendants depth-first."""
        callback(self)
        for child in self.children:
            child.traverse(callback)

    def find(self, name: str) -> Optional["SceneNode"]:
        """First node named ``name`` in this subtree, depth-first."""
        if self.name == name:
            return self
        for child in self.children:
            found = child.find(name)
            if found is not None:
                return found
        return None

    def get_world_position(self) -> Vec3:
        return self.world_matrix[:3, 3].copy()

    def get_world_direction(self) -> Vec3:
        """World-space direction of the node's local +Z axis (normalized)."""
        return normalize(self.world_matrix[:3, 2].copy())

    def local_to_world(self, p: Vec3) -> Vec3:
        return transform_point(self.world_matrix, p)

    def world_to_local(self, p: Vec3) -> Vec3:
        return transform_point(mat4_inverse(self.world_matrix), p)


class Scene(SceneNode):
    """Root scene node."""

    def __init__(self):
        super().__init__(name="scene")

    def update(self) -> None:
        self.update_world_matrix()
