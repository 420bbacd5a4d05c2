"""Mesh data attached to scene nodes: link visuals and the IK target marker.

The IK core only reads geometry to find reach points; colour and opacity
are carried for whatever viewer draws the scene.
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np
from numpy.typing import NDArray


def hex_to_rgb(value: int) -> tuple[float, float, float]:
    """``0xRRGGBB`` to an ``(r, g, b)`` tuple in [0, 1]."""
    return tuple(((value >> shift) & 0xFF) / 255.0 for shift in (16, 8, 0))


@dataclass
class Material:
    color: tuple[float, float, float] = (0.8, 0.8, 0.8)
    opacity: float = 1.0

    @property
    def transparent(self) -> bool:
        return self.opacity < 1.0

    @classmethod
    def from_hex(cls, value: int, opacity: float = 1.0) -> "Material":
        return cls(color=hex_to_rgb(value), opacity=opacity)


@dataclass
class BufferGeometry:
    """Vertex arrays of a mesh.

    positions: flat float32 array, x,y,z per vertex
    normals: flat float32 array, same layout
    indices: triangle indices (uint32), optional
    """
    positions: NDArray[np.float32]
    normals: NDArray[np.float32]
    indices: Optional[NDArray[np.uint32]] = None
    vertex_count: int = 0

    def __post_init__(self):
        if self.vertex_count == 0:
            self.vertex_count = len(self.positions) // 3

    @property
    def has_indices(self) -> bool:
        return self.indices is not None and len(self.indices) > 0

    def get_bounding_box(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Return (min, max) corners of the axis-aligned bounding box."""
        pos = self.positions.reshape(-1, 3)[:self.vertex_count].astype(np.float64)
        return pos.min(axis=0), pos.max(axis=0)

    def get_bounding_box_center(self) -> NDArray[np.float64] | None:
        """Centre of the bounding box, or None for empty geometry."""
        if self.vertex_count == 0:
            return None
        lo, hi = self.get_bounding_box()
        return (lo + hi) * 0.5


@dataclass
class MeshInstance:
    name: str
    geometry: BufferGeometry
    material: Material = field(default_factory=Material)
    visible: bool = True
