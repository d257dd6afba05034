# tests/test_config.py
import numpy as np
import pytest

from issim_core import (
    ExecutionStrategy, ExtractionMethod, SweepConfigError, SweepSettings,
    build_frequency_grid, load_sweep_config, parse_sweep_config,
)


class TestFrequencyGrid:

    def test_decade_grid_from_high_to_low(self):
        grid = build_frequency_grid(1e6, 1.0, 7)
        np.testing.assert_allclose(grid, [1e6, 1e5, 1e4, 1e3, 1e2, 1e1, 1.0], rtol=1e-12)
        assert grid[0] == 1e6
        assert grid[-1] == 1.0

    def test_grid_is_log_spaced_and_decreasing(self):
        grid = build_frequency_grid(2e5, 3e-2, 23)
        ratios = grid[1:] / grid[:-1]
        np.testing.assert_allclose(ratios, ratios[0], rtol=1e-10)
        assert np.all(np.diff(grid) < 0)

    def test_grid_is_read_only(self):
        grid = build_frequency_grid(1e3, 1.0, 4)
        with pytest.raises(ValueError):
            grid[0] = 5.0

    def test_single_point_grid(self):
        grid = build_frequency_grid(50.0, 50.0, 1)
        np.testing.assert_array_equal(grid, [50.0])

    @pytest.mark.parametrize("start, end, points", [
        (1.0, 1e6, 7),         # increasing
        (1e3, 1e3, 3),         # flat
        (0.0, 1.0, 3),         # non-positive
        (1e3, -1.0, 3),
        (float("inf"), 1.0, 3),
        (1e3, 1.0, 0),
        (1e3, 1.0, 2.5),
    ])
    def test_invalid_grids(self, start, end, points):
        with pytest.raises(SweepConfigError):
            build_frequency_grid(start, end, points)


def test_settings_defaults():
    settings = SweepSettings(start_freq_hz=1e6, end_freq_hz=1.0, num_points=7, delta_v=1e-3)
    assert settings.periods == 20
    assert settings.tpoints_per_period == 40
    assert settings.tpoints == 801
    assert settings.rel_tol == 1e-6
    assert settings.method is ExtractionMethod.DEMODULATION
    assert settings.execution.strategy is ExecutionStrategy.SERIAL
    assert settings.frequency_grid().shape == (7,)


VALID_YAML = """
sweep:
  start: 1 MHz
  stop: 1 Hz
  num_points: 7
oscillation:
  amplitude: 2 mV
  periods: 10
frozen_ions: true
demodulation: false
execution:
  strategy: threads
  max_workers: 2
"""


def test_parse_yaml_with_units():
    settings = load_sweep_config(VALID_YAML)

    assert settings.start_freq_hz == pytest.approx(1e6)
    assert settings.end_freq_hz == pytest.approx(1.0)
    assert settings.num_points == 7
    assert settings.delta_v == pytest.approx(2e-3)
    assert settings.periods == 10
    assert settings.tpoints_per_period == 40
    assert settings.frozen_ions is True
    assert settings.method is ExtractionMethod.FIT
    assert settings.do_graphics is False
    assert settings.execution.strategy is ExecutionStrategy.THREADS
    assert settings.execution.max_workers == 2


def test_load_from_file(tmp_path):
    path = tmp_path / "sweep.yaml"
    path.write_text(VALID_YAML, encoding="utf-8")
    assert load_sweep_config(path) == load_sweep_config(VALID_YAML)


def test_missing_file_is_reported(tmp_path):
    with pytest.raises(SweepConfigError, match="Cannot read"):
        load_sweep_config(tmp_path / "absent.yaml")


def test_bare_numbers_are_si():
    raw = {"sweep": {"start": 1e4, "stop": 10, "num_points": 4}, "oscillation": {"amplitude": 0.001}}
    settings = parse_sweep_config(raw)
    assert settings.start_freq_hz == 1e4
    assert settings.end_freq_hz == 10.0
    assert settings.delta_v == 0.001
    assert settings.method is ExtractionMethod.DEMODULATION


@pytest.mark.parametrize("raw, match", [
    ({}, "missing or empty"),
    ({"sweep": {"start": "1 MHz", "stop": "1 Hz"}, "oscillation": {"amplitude": "1 mV"}}, "schema"),
    ({"sweep": {"start": "1 MHz", "stop": "1 Hz", "num_points": 3}, "oscillation": {"amplitude": "1 Hz"}}, "parse"),
    ({"sweep": {"start": "1 V", "stop": "1 Hz", "num_points": 3}, "oscillation": {"amplitude": "1 mV"}}, "parse"),
    ({"sweep": {"start": "1 Hz", "stop": "1 MHz", "num_points": 3}, "oscillation": {"amplitude": "1 mV"}}, "above end"),
    ({"sweep": {"start": "1 MHz", "stop": "1 Hz", "num_points": 3}, "oscillation": {"amplitude": "1 mV"},
      "execution": {"strategy": "gpu"}}, "schema"),
])
def test_invalid_configurations(raw, match):
    with pytest.raises(SweepConfigError, match=match):
        parse_sweep_config(raw)


def test_invalid_yaml():
    with pytest.raises(SweepConfigError, match="not valid YAML"):
        load_sweep_config("sweep: [unclosed\n")


def test_invalid_execution_config():
    from issim_core import ExecutionConfig
    with pytest.raises(SweepConfigError):
        ExecutionConfig(max_workers=0)


@pytest.mark.parametrize("rel_tol", [0, 0.0, -1e-6])
def test_non_positive_tolerance_fails_at_load_time(rel_tol):
    raw = {
        "sweep": {"start": "1 MHz", "stop": "1 Hz", "num_points": 3},
        "oscillation": {"amplitude": "1 mV", "rel_tol": rel_tol},
    }
    with pytest.raises(SweepConfigError, match="rel_tol"):
        parse_sweep_config(raw)
