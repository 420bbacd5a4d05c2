"""Rendering-side helpers the IK core depends on (camera and pointer rays)."""

from ikgrab.rendering.camera import Camera, Ray

__all__ = [
    "Camera",
    "Ray",
]
