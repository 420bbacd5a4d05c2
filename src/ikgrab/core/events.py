"""EventBus for decoupled publish/subscribe communication."""

from enum import Enum, auto
from typing import Any, Callable
from collections import defaultdict


class EventType(Enum):
    # Joint state
    JOINT_ANGLE_CHANGED = auto()  # data: joint (str)

    # Manipulation lifecycle
    MANIPULATE_START = auto()     # data: joint (str)
    MANIPULATE_END = auto()       # data: joint (str)

    # Hover
    JOINT_HOVER = auto()          # data: joint (str)
    JOINT_UNHOVER = auto()        # data: joint (str)

    # Viewer
    REDRAW_REQUESTED = auto()
    IK_MODE_TOGGLED = auto()      # data: enabled (bool)
    ROBOT_CHANGED = auto()        # data: robot (SceneNode | None)

    # Solver lifecycle
    SOLVER_CREATED = auto()       # data: joint (str), chain_length (int)
    SOLVER_DISPOSED = auto()


class EventBus:
    """Simple publish/subscribe event system."""

    def __init__(self):
        self._handlers: dict[EventType, list[Callable]] = defaultdict(list)

    def subscribe(self, event_type: EventType, handler: Callable) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: EventType, handler: Callable) -> None:
        handlers = self._handlers[event_type]
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event_type: EventType, **data: Any) -> None:
        # Copy so handlers may unsubscribe themselves while being called
        for handler in list(self._handlers[event_type]):
            handler(**data)

    def clear(self) -> None:
        self._handlers.clear()
