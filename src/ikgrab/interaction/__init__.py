"""Pointer and scripted-driver interaction with the IK solver.

The Qt adapter lives in :mod:`ikgrab.interaction.qt_pointer` and is imported
on its own so the core stays usable without a Qt installation.
"""

from ikgrab.interaction.ik_controls import IKControls, PointerHit
from ikgrab.interaction.target_driver import TargetAnimator, pick_effector

__all__ = [
    "IKControls",
    "PointerHit",
    "TargetAnimator",
    "pick_effector",
]
