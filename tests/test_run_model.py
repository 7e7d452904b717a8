"""Tests for scripts/run_model.py — command-line entry point."""

import importlib.util
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "run_model.py"


@pytest.fixture(scope='module')
def run_model():
    spec = importlib.util.spec_from_file_location("run_model", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def small_config(tmp_path):
    path = tmp_path / "small.yaml"
    path.write_text(
        "simulation:\n  n_ticks: 5\n"
        "population:\n  n_agents: 60\n"
        "pathogen:\n  prevalence: 0.1\n"
    )
    return path


def test_runs_and_prints_summary(run_model, small_config, capsys):
    assert run_model.main([str(small_config), "--show-events"]) == 0
    out = capsys.readouterr().out
    assert "Infection Events:" in out
    assert "Location-wise distribution of states:" in out


def test_overrides(run_model, small_config, capsys):
    assert run_model.main([str(small_config), "--seed", "3", "--ticks", "2",
                           "--sampler", "uniform"]) == 0
    out = capsys.readouterr().out
    assert "Ticks: 2" in out
    assert "Seed: 3" in out


def test_invalid_config_fails(run_model, tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("population:\n  n_agents: 10\n  mean_degree: 3\n")
    assert run_model.main([str(path)]) == 1


def test_missing_file_fails(run_model, tmp_path):
    assert run_model.main([str(tmp_path / "nope.yaml")]) == 1


def test_plot_dir(run_model, small_config, tmp_path, capsys):
    out_dir = tmp_path / "figs"
    assert run_model.main([str(small_config), "--plot-dir", str(out_dir)]) == 0
    assert (out_dir / "state_trajectory.png").exists()
    assert (out_dir / "infections_by_location.png").exists()


def test_scenario_without_base_config(run_model, small_config):
    assert run_model.main(["--scenario", str(small_config)]) == 2


def test_missing_scenario_fails(run_model, small_config, tmp_path):
    assert run_model.main([str(small_config), "--scenario",
                           str(tmp_path / "missing.yaml")]) == 1


def test_quoted_probability_fails(run_model, tmp_path):
    path = tmp_path / "quoted.yaml"
    path.write_text('transmission:\n  prob_community: "0.5"\n')
    assert run_model.main([str(path)]) == 1
