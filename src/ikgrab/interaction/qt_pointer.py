"""Qt mouse-event adapter for :class:`IKControls`.

Converts ``QMouseEvent`` positions to camera rays, asks an external picker
for the nearest hit, and forwards the result to the controls.  The widget
owning the adapter calls the three ``mouse_*`` methods from its own
``mousePressEvent``/``mouseMoveEvent``/``mouseReleaseEvent``.
"""

from typing import Callable, Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QMouseEvent

from ikgrab.interaction.ik_controls import IKControls, PointerHit
from ikgrab.rendering.camera import Camera, Ray

# Mouse button constants
BUTTON_LEFT = 1
BUTTON_MIDDLE = 2
BUTTON_RIGHT = 3

Picker = Callable[[Ray], Optional[PointerHit]]


def qt_button_to_int(qt_button) -> int | None:
    """Map Qt mouse button to a button constant."""
    if qt_button == Qt.MouseButton.LeftButton:
        return BUTTON_LEFT
    if qt_button == Qt.MouseButton.MiddleButton:
        return BUTTON_MIDDLE
    if qt_button == Qt.MouseButton.RightButton:
        return BUTTON_RIGHT
    return None


def screen_to_ndc(x: float, y: float, width: int, height: int) -> tuple[float, float]:
    """Widget pixel coords (origin top-left) to NDC in [-1, 1], +Y up."""
    width = max(width, 1)
    height = max(height, 1)
    return (x / width) * 2 - 1, -(y / height) * 2 + 1


class QtPointerAdapter:
    """Routes viewport mouse events into IK manipulation.

    Parameters
    ----------
    controls : IKControls
        The controller to drive.
    camera : Camera
        Camera used to build pointer rays.
    pick : callable
        ``pick(ray) -> PointerHit | None``; ray-surface intersection is the
        renderer's job.
    """

    def __init__(self, controls: IKControls, camera: Camera, pick: Picker) -> None:
        self.controls = controls
        self.camera = camera
        self.pick = pick

    def _ray(self, event: QMouseEvent, width: int, height: int) -> Ray:
        pos = event.position()
        return self.camera.ray_from_ndc(*screen_to_ndc(pos.x(), pos.y(), width, height))

    def mouse_press(self, event: QMouseEvent, width: int, height: int) -> bool:
        """Left button starts a drag.  Returns True if consumed."""
        if qt_button_to_int(event.button()) != BUTTON_LEFT:
            return False
        ray = self._ray(event, width, height)
        return self.controls.on_pointer_down(ray, self.pick(ray))

    def mouse_move(self, event: QMouseEvent, width: int, height: int) -> bool:
        ray = self._ray(event, width, height)
        # Picking is only needed for hover; a drag follows the ray alone.
        hit = None if self.controls.is_dragging else self.pick(ray)
        return self.controls.on_pointer_move(ray, hit)

    def mouse_release(self, event: QMouseEvent, width: int, height: int) -> bool:
        ray = self._ray(event, width, height)
        return self.controls.on_pointer_up(ray, self.pick(ray))
