"""Tests for mesh containers, materials and procedural builders."""

import numpy as np

from ikgrab.core.mesh import BufferGeometry, Material, hex_to_rgb
from ikgrab.core.procedural_geometry import make_box, make_sphere


def test_box_vertex_count():
    box = make_box(1.0, 2.0, 3.0)
    assert box.vertex_count == 24
    assert len(box.indices) == 36


def test_box_bounding_box():
    lo, hi = make_box(1.0, 2.0, 3.0).get_bounding_box()
    np.testing.assert_array_almost_equal(lo, [-0.5, -1.0, -1.5])
    np.testing.assert_array_almost_equal(hi, [0.5, 1.0, 1.5])


def test_sphere_centered():
    center = make_sphere(0.01).get_bounding_box_center()
    np.testing.assert_array_almost_equal(center, [0, 0, 0], decimal=6)


def test_empty_geometry_has_no_center():
    geom = BufferGeometry(
        positions=np.zeros(0, dtype=np.float32),
        normals=np.zeros(0, dtype=np.float32),
    )
    assert geom.get_bounding_box_center() is None
    assert not geom.has_indices


def test_hex_to_rgb():
    assert hex_to_rgb(0x00FF00) == (0.0, 1.0, 0.0)
    assert hex_to_rgb(0xFF0000) == (1.0, 0.0, 0.0)


def test_material_transparency_follows_opacity():
    marker = Material.from_hex(0x00FF00, opacity=0.8)
    assert marker.color == (0.0, 1.0, 0.0)
    assert marker.transparent
    assert not Material.from_hex(0x8C8C96).transparent
