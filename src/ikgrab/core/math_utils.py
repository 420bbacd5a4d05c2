"""NumPy vector, quaternion and rigid-transform helpers.

Vectors are plain float64 arrays; quaternions are [x, y, z, w] arrays.
Matrices are 4x4 arrays applied to column vectors (``m @ v``).
"""

import math

import numpy as np
from numpy.typing import NDArray

# Type aliases
Vec3 = NDArray[np.float64]
Mat4 = NDArray[np.float64]
Quat = NDArray[np.float64]  # [x, y, z, w]


def vec3(x: float = 0.0, y: float = 0.0, z: float = 0.0) -> Vec3:
    return np.array([x, y, z], dtype=np.float64)


def normalize(v: Vec3) -> Vec3:
    n = np.linalg.norm(v)
    if n < 1e-10:
        return np.zeros_like(v)
    return v / n


def lerp_vec3(a: Vec3, b: Vec3, t: float) -> Vec3:
    return a + (b - a) * t


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def sign(value: float) -> float:
    """Return -1.0, 0.0 or 1.0."""
    if value > 0:
        return 1.0
    if value < 0:
        return -1.0
    return 0.0


def angle_between(a: Vec3, b: Vec3) -> float:
    """Unsigned angle (radians) between two unit vectors."""
    return math.acos(clamp(float(np.dot(a, b)), -1.0, 1.0))


# Quaternions

def quat_identity() -> Quat:
    return np.array([0.0, 0.0, 0.0, 1.0], dtype=np.float64)


def quat_from_axis_angle(axis: Vec3, angle: float) -> Quat:
    """Rotation of ``angle`` radians about ``axis`` (normalized here)."""
    xyz = normalize(np.asarray(axis, dtype=np.float64)) * math.sin(angle / 2)
    return np.append(xyz, math.cos(angle / 2))


def quat_multiply(a: Quat, b: Quat) -> Quat:
    """Hamilton product ``a * b``: rotate by ``b``, then by ``a``."""
    av, aw = a[:3], a[3]
    bv, bw = b[:3], b[3]
    xyz = aw * bv + bw * av + np.cross(av, bv)
    return np.append(xyz, aw * bw - np.dot(av, bv))


def quat_from_euler(roll: float, pitch: float, yaw: float) -> Quat:
    """Fixed-axis roll/pitch/yaw, as in a URDF ``rpy`` attribute.

    Roll about X is applied first, then pitch about Y, then yaw about Z,
    all about the parent frame's axes.
    """
    qx = quat_from_axis_angle(vec3(1, 0, 0), roll)
    qy = quat_from_axis_angle(vec3(0, 1, 0), pitch)
    qz = quat_from_axis_angle(vec3(0, 0, 1), yaw)
    return quat_multiply(qz, quat_multiply(qy, qx))


def quat_rotate_vec3(q: Quat, v: Vec3) -> Vec3:
    qv, w = q[:3], q[3]
    t = 2.0 * np.cross(qv, v)
    return v + w * t + np.cross(qv, t)


def rotation_matrix(q: Quat) -> NDArray[np.float64]:
    """3x3 rotation matrix of a unit quaternion."""
    v, w = q[:3], q[3]
    skew = np.array([
        [0.0, -v[2], v[1]],
        [v[2], 0.0, -v[0]],
        [-v[1], v[0], 0.0],
    ])
    return (w * w - np.dot(v, v)) * np.eye(3) + 2.0 * np.outer(v, v) + 2.0 * w * skew


# Rigid transforms

def mat4_identity() -> Mat4:
    return np.eye(4, dtype=np.float64)


def mat4_from_pose(position: Vec3, quaternion: Quat) -> Mat4:
    """Rigid transform: rotate by ``quaternion``, then translate."""
    m = np.eye(4, dtype=np.float64)
    m[:3, :3] = rotation_matrix(quaternion)
    m[:3, 3] = position
    return m


def mat4_inverse(m: Mat4) -> Mat4:
    return np.linalg.inv(m)


def transform_point(m: Mat4, p: Vec3) -> Vec3:
    return m[:3, :3] @ np.asarray(p, dtype=np.float64) + m[:3, 3]


def transform_direction(m: Mat4, d: Vec3) -> Vec3:
    """Rotate (and scale) ``d`` by ``m``, ignoring translation."""
    return m[:3, :3] @ d
