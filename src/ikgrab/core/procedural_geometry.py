"""Procedural mesh builders for link visuals and the IK target marker.

All functions return :class:`BufferGeometry` with positions + normals.
"""

import math

import numpy as np

from ikgrab.core.mesh import BufferGeometry


def make_box(width: float, height: float, depth: float) -> BufferGeometry:
    """Create a box with unique normals per face (24 verts, 12 tris).

    Centered at origin. Dimensions along X, Y, Z respectively.
    """
    hw, hh, hd = width / 2, height / 2, depth / 2

    positions = []
    normals = []
    indices = []

    # Order: +X, -X, +Y, -Y, +Z, -Z
    faces = [
        ([1, 0, 0],  [(hw, -hh, -hd), (hw, hh, -hd), (hw, hh, hd), (hw, -hh, hd)]),
        ([-1, 0, 0], [(-hw, -hh, hd), (-hw, hh, hd), (-hw, hh, -hd), (-hw, -hh, -hd)]),
        ([0, 1, 0],  [(-hw, hh, -hd), (-hw, hh, hd), (hw, hh, hd), (hw, hh, -hd)]),
        ([0, -1, 0], [(-hw, -hh, hd), (-hw, -hh, -hd), (hw, -hh, -hd), (hw, -hh, hd)]),
        ([0, 0, 1],  [(-hw, -hh, hd), (hw, -hh, hd), (hw, hh, hd), (-hw, hh, hd)]),
        ([0, 0, -1], [(hw, -hh, -hd), (-hw, -hh, -hd), (-hw, hh, -hd), (hw, hh, -hd)]),
    ]

    for normal, corners in faces:
        base = len(positions)
        for c in corners:
            positions.append(c)
            normals.append(normal)
        indices.extend([base, base + 1, base + 2, base, base + 2, base + 3])

    pos = np.array(positions, dtype=np.float32).ravel()
    nrm = np.array(normals, dtype=np.float32).ravel()
    idx = np.array(indices, dtype=np.uint32)

    return BufferGeometry(positions=pos, normals=nrm, indices=idx)


def make_sphere(radius: float, width_segments: int = 12, height_segments: int = 8) -> BufferGeometry:
    """Create a UV sphere centered at origin."""
    verts = []
    norms = []
    idxs = []

    for iy in range(height_segments + 1):
        v = iy / height_segments
        theta = v * math.pi
        for ix in range(width_segments + 1):
            u = ix / width_segments
            phi = u * 2 * math.pi
            nx = -math.cos(phi) * math.sin(theta)
            ny = math.cos(theta)
            nz = math.sin(phi) * math.sin(theta)
            verts.append((nx * radius, ny * radius, nz * radius))
            norms.append((nx, ny, nz))

    cols = width_segments + 1
    for iy in range(height_segments):
        for ix in range(width_segments):
            a = iy * cols + ix
            b = a + 1
            c = a + cols
            d = c + 1
            if iy != 0:
                idxs.extend([a, c, b])
            if iy != height_segments - 1:
                idxs.extend([b, c, d])

    pos = np.array(verts, dtype=np.float32).ravel()
    nrm = np.array(norms, dtype=np.float32).ravel()
    idx = np.array(idxs, dtype=np.uint32)

    return BufferGeometry(positions=pos, normals=nrm, indices=idx)
