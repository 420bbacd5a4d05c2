"""Headless IK drag diagnostic: drives a procedural serial arm through a
scripted pointer drag (or the random target animator) and reports
per-frame tip-to-target distance and joint-limit compliance.

Usage::

    python tools/ik_drag_diagnostic.py --mode drag --frames 120
    python tools/ik_drag_diagnostic.py --mode animate --limit 1.2 --seed 3

or from Python::

    from tools.ik_drag_diagnostic import run_drag_diagnostic, format_report
    print(format_report(run_drag_diagnostic()))
"""

from __future__ import annotations

import argparse
import logging
import math
import random
import sys
from dataclasses import dataclass, field

sys.path.insert(0, "src")

import numpy as np

from ikgrab.core.events import EventBus, EventType
from ikgrab.core.math_utils import normalize, vec3
from ikgrab.core.scene_graph import Scene, SceneNode
from ikgrab.interaction.ik_controls import IKControls, PointerHit
from ikgrab.interaction.target_driver import TargetAnimator
from ikgrab.kinematics.joint import JointLimit
from ikgrab.kinematics.joint_graph import compute_reach_point
from ikgrab.kinematics.robot import URDFRobot, build_serial_arm
from ikgrab.kinematics.solver_config import SolverConfig
from ikgrab.rendering.camera import Camera, Ray

logger = logging.getLogger(__name__)

DEFAULT_LENGTHS = (0.2, 0.2, 0.1)
DRAG_RADIUS = 0.1
ANIM_DT = 1.0 / 60.0


# ── Results ───────────────────────────────────────────────────────────

@dataclass
class FrameResult:
    """Solver state after one frame."""
    frame: int
    target: np.ndarray
    distance: float  # tip to target


@dataclass
class DiagnosticResults:
    mode: str
    joint_name: str = ""
    frames: list[FrameResult] = field(default_factory=list)
    angle_updates: int = 0
    limit_violations: list[str] = field(default_factory=list)

    @property
    def final_distance(self) -> float:
        return self.frames[-1].distance if self.frames else float("nan")

    @property
    def max_distance(self) -> float:
        return max((f.distance for f in self.frames), default=float("nan"))

    def frames_within(self, tolerance: float) -> int:
        return sum(1 for f in self.frames if f.distance < tolerance)


# ── Setup ─────────────────────────────────────────────────────────────

def build_scene(
    lengths=DEFAULT_LENGTHS,
    limit: float | None = None,
    config: SolverConfig | None = None,
) -> tuple[Scene, URDFRobot, Camera, IKControls]:
    """Serial arm in a scene, a camera looking down on it, enabled controls."""
    limits = None
    if limit is not None:
        limits = [JointLimit(-limit, limit) for _ in lengths]

    scene = Scene()
    robot = build_serial_arm(list(lengths), limits=limits)
    scene.add(robot)
    scene.update()

    reach = sum(lengths)
    camera = Camera()
    camera.look_at(vec3(reach / 2, 0.0, 2 * reach), vec3(reach / 2, 0.0, 0.0), vec3(0.0, 1.0, 0.0))

    controls = IKControls(robot, scene, camera, event_bus=EventBus(), config=config)
    controls.set_enabled(True)
    return scene, robot, camera, controls


def _track_limits(controls: IKControls, robot: URDFRobot, results: DiagnosticResults) -> None:
    def _on_angle(joint: str) -> None:
        results.angle_updates += 1
        j = robot.joints[joint]
        if j.limit is not None and j.limit.is_bounded:
            if not (j.limit.lower - 1e-9 <= j.angle <= j.limit.upper + 1e-9):
                results.limit_violations.append(f"{joint}={j.angle:.4f}")

    controls.event_bus.subscribe(EventType.JOINT_ANGLE_CHANGED, _on_angle)


def _first_visual(joint: SceneNode) -> SceneNode | None:
    found: list[SceneNode] = []
    joint.traverse(lambda n: found.append(n) if n.mesh is not None else None)
    return found[0] if found else None


def _ray_to(camera: Camera, point) -> Ray:
    return Ray(origin=camera.position.copy(), direction=normalize(point - camera.position))


# ── Runs ──────────────────────────────────────────────────────────────

def run_drag_diagnostic(
    lengths=DEFAULT_LENGTHS,
    joint_name: str | None = None,
    frames: int = 120,
    radius: float = DRAG_RADIUS,
    limit: float | None = None,
) -> DiagnosticResults:
    """Grab a joint at its reach point and drag it once around a circle."""
    _, robot, camera, controls = build_scene(lengths, limit)
    if joint_name is None:
        joint_name = f"joint_{len(lengths)}"
    joint = robot.joints[joint_name]

    results = DiagnosticResults(mode="drag", joint_name=joint_name)
    _track_limits(controls, robot, results)

    grab = joint.local_to_world(compute_reach_point(joint))
    node = _first_visual(joint)
    if node is None:
        logger.warning("Joint %s has no geometry to grab", joint_name)
        return results

    if not controls.on_pointer_down(_ray_to(camera, grab), PointerHit(node=node, point=grab)):
        logger.warning("Pointer-down on %s was not consumed", joint_name)
        return results
    solver = controls.current_solver
    if solver is None:
        logger.warning("No IK chain for %s", joint_name)
        controls.on_pointer_up()
        return results

    for i in range(1, frames + 1):
        phase = 2 * math.pi * i / frames
        point = grab + vec3(radius * (math.cos(phase) - 1), radius * math.sin(phase), 0.0)
        controls.on_pointer_move(_ray_to(camera, point))
        results.frames.append(FrameResult(
            frame=i,
            target=solver.get_target_position(),
            distance=solver.distance_to_target(),
        ))

    controls.on_pointer_up()
    logger.info("Drag of %s: final distance %.4f", joint_name, results.final_distance)
    return results


def run_animation_diagnostic(
    lengths=DEFAULT_LENGTHS,
    frames: int = 240,
    dt: float | None = ANIM_DT,
    limit: float | None = None,
    seed: int | None = None,
) -> DiagnosticResults:
    """Run the random target animator for ``frames`` frames.

    A fixed ``dt`` makes runs reproducible; ``dt=None`` uses wall-clock
    frame times.
    """
    _, robot, _, controls = build_scene(lengths, limit)
    animator = TargetAnimator.from_config(controls, rng=random.Random(seed))

    results = DiagnosticResults(mode="animate")
    _track_limits(controls, robot, results)

    if not animator.start():
        return results
    results.joint_name = controls.selected_effector.name
    solver = controls.current_solver

    for i in range(1, frames + 1):
        target = animator.update(dt) if dt is not None else animator.tick()
        if target is None:
            break
        results.frames.append(FrameResult(
            frame=i, target=target, distance=solver.distance_to_target(),
        ))

    animator.stop()
    animator.dispose()
    logger.info("Animation on %s: final distance %.4f", results.joint_name, results.final_distance)
    return results


# ── Report ────────────────────────────────────────────────────────────

def format_report(results: DiagnosticResults, tolerance: float | None = None) -> str:
    """Format results as a human-readable report."""
    if tolerance is None:
        tolerance = SolverConfig().tolerance

    lines = ["=" * 60, f"IK {results.mode.upper()} DIAGNOSTIC: {results.joint_name}", "=" * 60, ""]
    if not results.frames:
        lines.append("  no frames recorded")
        return "\n".join(lines)

    step = max(1, len(results.frames) // 10)
    for f in results.frames[::step]:
        flag = "" if f.distance < tolerance else " *"
        t = f.target
        lines.append(
            f"  frame {f.frame:4d}  target=({t[0]:+.3f}, {t[1]:+.3f}, {t[2]:+.3f})"
            f"  distance={f.distance:.4f}{flag}"
        )
    lines.append("")

    within = results.frames_within(tolerance)
    lines.append(f"  frames within tolerance: {within}/{len(results.frames)}")
    lines.append(f"  max distance:   {results.max_distance:.4f}")
    lines.append(f"  final distance: {results.final_distance:.4f}")
    lines.append(f"  angle updates:  {results.angle_updates}")
    status = "PASS" if not results.limit_violations else "FAIL"
    lines.append(f"  joint limits:   {len(results.limit_violations)} violations  [{status}]")
    for v in results.limit_violations[:5]:
        lines.append(f"    {v}")
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Headless IK drag diagnostic")
    parser.add_argument("--mode", choices=("drag", "animate"), default="drag")
    parser.add_argument("--frames", type=int, default=120)
    parser.add_argument("--lengths", type=float, nargs="+", default=list(DEFAULT_LENGTHS),
                        help="Link lengths of the serial arm")
    parser.add_argument("--joint", type=str, help="Joint to grab (drag mode)")
    parser.add_argument("--limit", type=float, help="Symmetric joint limit in radians")
    parser.add_argument("--seed", type=int, help="Random seed (animate mode)")
    parser.add_argument("--realtime", action="store_true",
                        help="Use wall-clock frame times (animate mode)")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    if args.mode == "drag":
        results = run_drag_diagnostic(args.lengths, args.joint, args.frames, limit=args.limit)
    else:
        results = run_animation_diagnostic(
            args.lengths, args.frames,
            dt=None if args.realtime else ANIM_DT,
            limit=args.limit, seed=args.seed,
        )
    print(format_report(results))
    return 1 if results.limit_violations else 0


if __name__ == "__main__":
    sys.exit(main())
