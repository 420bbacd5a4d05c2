"""Tests for the damped/smoothed CCD solver.

Most tests use a planar two-link arm (unit links, Z-axis joints) whose
tracked tip is the origin of a third, zero-length joint.
"""

import math

import numpy as np
import pytest

from ikgrab.constants import IK_STAGNATION_CHANGE
from ikgrab.core.math_utils import vec3
from ikgrab.core.scene_graph import SceneNode
from ikgrab.kinematics.ccd_solver import CCDSolver
from ikgrab.kinematics.chain import build_chain
from ikgrab.kinematics.joint import JointLimit, JointType
from ikgrab.kinematics.robot import build_serial_arm
from ikgrab.kinematics.solver_config import SolverConfig


def _make_arm(limits=None, axis=(0.0, 0.0, 1.0)):
    return build_serial_arm([1.0, 1.0, 0.0], axis=axis, limits=limits, with_visuals=False)


def _make_target(position):
    target = SceneNode("target")
    target.set_position(*position)
    target.update_world_matrix()
    return target


def _make_solver(robot, target_pos, config=None, updated=None):
    effector = robot.joints["joint_3"]
    chain = build_chain(effector)
    callback = updated.append if updated is not None else None
    return CCDSolver(
        chain, _make_target(target_pos), effector,
        config=config, on_joint_updated=callback,
    )


def _on_reach_circle(angle, radius=2.0):
    """Point at ``radius`` from the base in direction ``angle``; 2.0 is full reach."""
    return (radius * math.cos(angle), radius * math.sin(angle), 0.0)


def _angles(robot):
    return robot.get_joint_values()


def test_empty_chain_is_noop():
    robot = _make_arm()
    first = robot.joints["joint_1"]
    solver = CCDSolver(build_chain(first), _make_target((0, 1, 0)), first)
    result = solver.solve()
    assert result.iterations == 0
    assert not result.converged
    assert first.angle == 0.0


def test_full_reach_target_near_straight_arm_converges_within_fifteen_calls():
    robot = _make_arm()
    solver = _make_solver(robot, _on_reach_circle(0.1))

    for _ in range(15):
        result = solver.solve()
        if result.converged:
            break

    assert solver.distance_to_target() < solver.config.tolerance
    assert result.converged


@pytest.mark.parametrize("angle", [0.5, 1.0, math.pi / 2])
def test_full_reach_target_far_from_start_stalls_short_of_tolerance(angle):
    # Radial error near full extension barely registers at either joint
    robot = _make_arm()
    solver = _make_solver(robot, _on_reach_circle(angle))

    results = [solver.solve() for _ in range(1000)]

    assert not any(r.converged for r in results)
    assert solver.config.tolerance < solver.distance_to_target() < 0.03
    assert results[-1].total_change < IK_STAGNATION_CHANGE


@pytest.mark.parametrize("angle", [0.5, 1.0, math.pi / 2])
def test_bent_elbow_target_converges(angle):
    robot = _make_arm()
    solver = _make_solver(robot, _on_reach_circle(angle, radius=1.5))

    for _ in range(80):
        if solver.solve().converged:
            break

    assert solver.distance_to_target() < solver.config.tolerance


def test_solve_near_convergence_is_idempotent():
    robot = _make_arm()
    solver = _make_solver(robot, _on_reach_circle(-0.1))
    for _ in range(15):
        if solver.solve().converged:
            break
    assert solver.distance_to_target() < solver.config.tolerance

    updated = []
    solver.on_joint_updated = updated.append
    before = _angles(robot)
    result = solver.solve()
    assert result.converged
    assert result.iterations == 0
    assert _angles(robot) == before
    assert updated == []


def test_target_at_tip_touches_nothing():
    robot = _make_arm()
    updated = []
    solver = _make_solver(robot, (2.0, 0.0, 0.0), updated=updated)
    solver.solve()
    assert updated == []
    assert _angles(robot) == {"joint_1": 0.0, "joint_2": 0.0, "joint_3": 0.0}


def test_single_iteration_is_damped_clamped_and_smoothed():
    robot = _make_arm()
    solver = _make_solver(robot, (0.0, 2.0, 0.0), config=SolverConfig(max_iterations=1))
    solver.solve()
    # Elbow sees a ~2 rad error: 0.5 damping -> capped at 0.15 -> 30% blend
    assert robot.joints["joint_2"].angle == pytest.approx(0.045)
    assert 0.0 < robot.joints["joint_1"].angle <= 0.045 + 1e-12


def test_rotation_direction_follows_target_side():
    robot = _make_arm()
    solver = _make_solver(robot, (1.0, -1.0, 0.0), config=SolverConfig(max_iterations=1))
    solver.solve()
    assert robot.joints["joint_2"].angle < 0.0


def test_previous_angles_persist_across_calls():
    robot = _make_arm()
    robot.set_joint_value("joint_2", 0.1)
    solver = _make_solver(robot, (0.0, 2.0, 0.0))
    joint_2 = robot.joints["joint_2"]
    assert solver.previous_angles[joint_2] == 0.1

    solver.solve()
    for joint, angle in solver.previous_angles.items():
        assert angle == joint.angle


def test_limits_respected_at_every_notification():
    limit = JointLimit(-0.3, 0.3)
    robot = _make_arm(limits=[limit, limit, None])
    seen = []

    def _check(joint):
        seen.append(joint.name)
        assert limit.lower <= joint.angle <= limit.upper

    solver = _make_solver(robot, (-1.0, 1.0, 0.0))
    solver.on_joint_updated = _check
    for _ in range(40):
        solver.solve()

    assert seen
    for name in ("joint_1", "joint_2"):
        assert limit.lower <= robot.joints[name].angle <= limit.upper


def test_limits_hold_for_continuous_joints():
    limit = JointLimit(-0.01, 0.01)
    robot = build_serial_arm(
        [1.0, 1.0, 0.0], joint_type=JointType.CONTINUOUS,
        limits=[limit, limit, None], with_visuals=False,
    )
    updated = []
    solver = _make_solver(robot, (0.0, 2.0, 0.0), updated=updated)
    for _ in range(5):
        solver.solve()

    assert updated
    for name in ("joint_1", "joint_2"):
        assert limit.lower <= robot.joints[name].angle <= limit.upper
    assert robot.joints["joint_1"].angle > 0.0


def test_beyond_reach_target_stabilises_pointing_at_it():
    robot = _make_arm()
    solver = _make_solver(robot, (0.0, 5.0, 0.0))

    result = None
    for _ in range(200):
        result = solver.solve()

    assert result.total_change < 1e-3
    tip = solver.get_effector_end_point()
    direction = tip / np.linalg.norm(tip)
    assert float(np.dot(direction, [0.0, 1.0, 0.0])) > 0.99
    assert abs(np.linalg.norm(tip) - 2.0) < 0.01


def test_degenerate_target_on_joint_is_skipped():
    robot = _make_arm()
    updated = []
    solver = _make_solver(robot, (1.0, 0.0, 0.0), updated=updated)
    result = solver.solve()
    assert updated == []
    assert result.iterations == 1
    assert not result.converged


def test_end_point_offsets_tip():
    robot = _make_arm()
    effector = robot.joints["joint_3"]
    solver = CCDSolver(
        build_chain(effector), _make_target((0, 0, 0)), effector,
        end_point=vec3(0.5, 0, 0),
    )
    np.testing.assert_array_almost_equal(solver.get_effector_end_point(), [2.5, 0, 0])
    robot.set_joint_value("joint_1", math.pi / 2)
    np.testing.assert_array_almost_equal(solver.get_effector_end_point(), [0, 2.5, 0])


def test_orientation_pass_nudges_last_joints_back():
    robot = _make_arm(axis=(1.0, 0.0, 0.0))
    updated = []
    solver = _make_solver(robot, (2.0, 0.0, 0.0), updated=updated)
    np.testing.assert_array_almost_equal(solver.initial_orientation, [0, 0, 1])

    # Twist the effector about X away from its captured forward direction
    robot.set_joint_value("joint_2", 0.5)
    solver._correct_orientation()

    step = solver.config.orientation_step * solver.config.orientation_weight
    assert robot.joints["joint_2"].angle == pytest.approx(0.5 - step)
    assert robot.joints["joint_1"].angle == pytest.approx(-step)
    assert [j.name for j in updated] == ["joint_1", "joint_2"]
    assert solver.previous_angles[robot.joints["joint_2"]] == robot.joints["joint_2"].angle


def test_orientation_pass_ignores_small_drift():
    robot = _make_arm(axis=(1.0, 0.0, 0.0))
    updated = []
    solver = _make_solver(robot, (2.0, 0.0, 0.0), updated=updated)
    robot.set_joint_value("joint_2", 0.1)
    solver._correct_orientation()
    assert updated == []
    assert robot.joints["joint_2"].angle == 0.1


def test_orientation_pass_notifies_only_moved_joints():
    robot = _make_arm(limits=[None, JointLimit(0.5, 0.6), None], axis=(1.0, 0.0, 0.0))
    robot.set_joint_value("joint_2", 0.5)
    updated = []
    solver = _make_solver(robot, (2.0, 0.0, 0.0), updated=updated)
    solver.capture_orientation()
    robot.joints["joint_1"].set_angle(0.3)

    solver._correct_orientation()
    # joint_2 is pinned at its lower limit
    assert robot.joints["joint_2"].angle == 0.5
    assert [j.name for j in updated] == ["joint_1"]


def test_capture_orientation():
    robot = _make_arm(axis=(1.0, 0.0, 0.0))
    solver = _make_solver(robot, (2.0, 0.0, 0.0))
    robot.set_joint_value("joint_1", math.pi / 2)
    solver.capture_orientation()
    np.testing.assert_array_almost_equal(solver.initial_orientation, [0, -1, 0])


def test_dispose():
    robot = _make_arm()
    updated = []
    solver = _make_solver(robot, (0.0, 2.0, 0.0), updated=updated)
    solver.dispose()
    assert solver.chain == []
    assert solver.previous_angles == {}
    assert solver.on_joint_updated is None
    assert solver.solve().iterations == 0
