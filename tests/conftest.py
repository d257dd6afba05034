# tests/conftest.py
import math
import threading
from dataclasses import replace

import pytest

from issim_core import (
    ChannelTriples, DeviceParameters, DeviceSolution, DeviceToolkit, HarmonicTriple, IlluminationCondition,
    SweepSettings,
)


def make_triples(phase: float, amplitude: float = 1e-3, bias: float = 0.0) -> ChannelTriples:
    """Same (bias, amplitude, phase) for every channel; only the total phase drives the gate."""
    triple = HarmonicTriple(bias=bias, amplitude=amplitude, phase=phase)
    return ChannelTriples(total=triple, ionic=triple, recombination=triple, accumulation=triple)


def steady_solution(light_intensity: float = 0.0, open_circuit: bool = False, **params) -> DeviceSolution:
    return DeviceSolution(
        params=DeviceParameters(light_intensity=light_intensity, open_circuit=open_circuit, **params),
        state={"tag": "steady"},
    )


class CountingSimulator:
    """Records every call; returns an 'oscillating' solution without a trace."""
    def __init__(self, fail_at_hz=None):
        self.fail_at_hz = fail_at_hz
        self.calls = []
        self._lock = threading.Lock()

    def simulate(self, solution, amplitude_v, frequency_hz, periods, tpoints_per_period, rel_tol):
        with self._lock:
            self.calls.append((solution, frequency_hz, rel_tol))
        if self.fail_at_hz is not None and math.isclose(frequency_hz, self.fail_at_hz):
            raise RuntimeError("transient solver diverged")
        return DeviceSolution(
            params=replace(solution.params, tmax=periods / frequency_hz),
            state=solution.state,
            frequency_hz=frequency_hz,
        )


class ScriptedAnalyzer:
    """Returns the scripted total phases in order, repeating the last one."""
    def __init__(self, phases, amplitude=1e-3):
        self.phases = list(phases)
        self.amplitude = amplitude
        self.calls = []

    def extract(self, solution, minimal_mode, method):
        index = min(len(self.calls), len(self.phases) - 1)
        self.calls.append((solution, minimal_mode, method))
        return make_triples(self.phases[index], self.amplitude)


class SmoothAnalyzer:
    """Deterministic, well-behaved response depending only on the cell."""
    def extract(self, solution, minimal_mode, method):
        phase = 0.2 + 0.05 * math.log10(solution.frequency_hz)
        amplitude = 1e-3 * (1.0 + solution.params.light_intensity)
        return make_triples(phase, amplitude, bias=-0.02 * solution.params.light_intensity)


class LinearBias:
    def __init__(self, volts_per_sun: float = 0.5):
        self.volts_per_sun = volts_per_sun
        self.seen = []

    def bias(self, solution):
        self.seen.append(solution)
        return self.volts_per_sun * solution.params.light_intensity


class RecordingAsymmetrizer:
    def __init__(self):
        self.halved = []

    def halve(self, solution):
        self.halved.append(solution)
        return solution.with_params(open_circuit=False)


@pytest.fixture
def simulator():
    return CountingSimulator()


@pytest.fixture
def asymmetrizer():
    return RecordingAsymmetrizer()


@pytest.fixture
def bias_extractor():
    return LinearBias()


@pytest.fixture
def toolkit(simulator, bias_extractor, asymmetrizer):
    return DeviceToolkit(
        simulator=simulator,
        analyzer=SmoothAnalyzer(),
        bias_extractor=bias_extractor,
        asymmetrizer=asymmetrizer,
    )


@pytest.fixture
def settings():
    return SweepSettings(start_freq_hz=1e6, end_freq_hz=1.0, num_points=7, delta_v=1e-3)


@pytest.fixture
def conditions():
    return [
        IlluminationCondition(steady_solution(intensity), light_intensity=intensity, label=f"{intensity} sun")
        for intensity in (0.0, 0.1, 1.0, 1.0)
    ]
