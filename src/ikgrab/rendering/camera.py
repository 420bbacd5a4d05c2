"""Perspective camera used to turn pointer positions into world rays."""

from dataclasses import dataclass

import numpy as np

from ikgrab.core.math_utils import Mat4, Vec3, mat4_identity, mat4_inverse, normalize, vec3


@dataclass
class Ray:
    """A half-line ``origin + t * direction`` with unit ``direction``."""
    origin: Vec3
    direction: Vec3

    def at(self, distance: float) -> Vec3:
        return self.origin + self.direction * distance


def _view_matrix(eye: Vec3, target: Vec3, up: Vec3) -> Mat4:
    forward = normalize(target - eye)
    right = normalize(np.cross(forward, up))
    if not right.any():
        # Looking straight along ``up``
        alt_up = vec3(0.0, 0.0, -1.0) if abs(forward[1]) > 0.9 else vec3(0.0, 1.0, 0.0)
        right = normalize(np.cross(forward, alt_up))
    true_up = np.cross(right, forward)

    m = mat4_identity()
    m[:3, :3] = np.stack([right, true_up, -forward])
    m[:3, 3] = -(m[:3, :3] @ eye)
    return m


def _projection_matrix(fov_deg: float, aspect: float, near: float, far: float) -> Mat4:
    f = 1.0 / np.tan(np.deg2rad(fov_deg) / 2.0)
    m = np.zeros((4, 4), dtype=np.float64)
    m[0, 0] = f / aspect
    m[1, 1] = f
    m[2, 2] = (far + near) / (near - far)
    m[2, 3] = 2.0 * far * near / (near - far)
    m[3, 2] = -1.0
    return m


class Camera:
    """A perspective camera.

    Parameters
    ----------
    fov : float
        Vertical field-of-view in degrees.
    near, far : float
        Clipping plane distances.
    """

    def __init__(self, fov: float = 50.0, near: float = 0.01, far: float = 100.0) -> None:
        self.fov = fov
        self.near = near
        self.far = far
        self.aspect: float = 1.0

        self.position: Vec3 = vec3(-0.4, 0.4, 0.4)
        self.target: Vec3 = vec3(0.0, 0.0, 0.0)
        self.up: Vec3 = vec3(0.0, 1.0, 0.0)

    def set_aspect(self, width: int, height: int) -> None:
        if height > 0:
            self.aspect = width / height

    def look_at(self, eye: Vec3, target: Vec3, up: Vec3 | None = None) -> None:
        self.position = eye.copy()
        self.target = target.copy()
        if up is not None:
            self.up = up.copy()

    def get_view_matrix(self) -> Mat4:
        return _view_matrix(self.position, self.target, self.up)

    def get_projection_matrix(self) -> Mat4:
        return _projection_matrix(self.fov, self.aspect, self.near, self.far)

    def ray_from_ndc(self, ndc_x: float, ndc_y: float) -> Ray:
        """Ray from the camera through a point in normalized device coords.

        ``ndc_x``/``ndc_y`` are in [-1, 1] with +Y up, matching the
        pointer convention of the viewport adapter.
        """
        inv_vp = mat4_inverse(self.get_projection_matrix() @ self.get_view_matrix())
        p = inv_vp @ np.array([ndc_x, ndc_y, 0.5, 1.0], dtype=np.float64)
        return Ray(origin=self.position.copy(), direction=normalize(p[:3] / p[3] - self.position))
