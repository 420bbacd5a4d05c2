"""Tests for solver configuration loading."""

import json

from ikgrab.constants import IK_MAX_ITERATIONS, IK_TOLERANCE
from ikgrab.kinematics import solver_config
from ikgrab.kinematics.solver_config import SolverConfig


def test_defaults():
    config = SolverConfig()
    assert config.tolerance == IK_TOLERANCE
    assert config.max_iterations == IK_MAX_ITERATIONS
    assert config.damping_factor == 0.5
    assert config.max_angle_change_per_iteration == 0.15
    assert config.smoothing_factor == 0.3
    assert config.orientation_weight == 0.3


def test_from_dict_ignores_unknown_keys():
    config = SolverConfig.from_dict({"tolerance": "0.02", "max_iterations": 7.0, "bogus": 1})
    assert config.tolerance == 0.02
    assert config.max_iterations == 7
    assert isinstance(config.max_iterations, int)
    assert not hasattr(config, "bogus")


def test_to_dict_roundtrip():
    config = SolverConfig(damping_factor=0.8, orientation_joint_count=3)
    assert SolverConfig.from_dict(config.to_dict()) == config


def test_shipped_config_matches_defaults():
    assert SolverConfig.load() == SolverConfig()


def test_load_from_custom_file(tmp_path, monkeypatch):
    path = tmp_path / "custom.json"
    path.write_text(json.dumps({"solver": {"smoothing_factor": 0.9}}))
    monkeypatch.setattr(solver_config, "load_config", lambda name: json.loads(path.read_text()))
    assert SolverConfig.load("custom.json").smoothing_factor == 0.9


def test_load_missing_file_falls_back(caplog):
    config = SolverConfig.load("does_not_exist.json")
    assert config == SolverConfig()
    assert "using defaults" in caplog.text


def test_load_malformed_section_falls_back(monkeypatch):
    monkeypatch.setattr(solver_config, "load_config", lambda name: {"solver": {"tolerance": "abc"}})
    assert SolverConfig.load() == SolverConfig()
