# src/issim_core/analysis/harmonics.py
"""
Reference `HarmonicAnalyzer`: extracts (bias, amplitude, phase) of every current
channel from an oscillating solution's trace.

Two extraction methods are offered:

- Demodulation: the signal is multiplied by reference sine and cosine waves at the
  perturbation frequency and integrated over whole periods (trapezoidal rule). It
  is cheap, but a slow drift of the signal leaks into the phase.
- Fit: nonlinear least squares of `bias + amplitude * sin(wt + phase)` with
  `scipy.optimize.curve_fit`, seeded from demodulation. It is slower but more robust
  against a poorly resolved trace.

Phases are measured relative to the applied voltage, so a capacitive current has a
positive phase, and amplitudes are normalised to be non-negative.
"""
import logging
import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np
from scipy.integrate import trapezoid
from scipy.optimize import curve_fit

from ..collaborators import ExtractionMethod
from ..data_structures import Channel, ChannelTriples, DeviceSolution, HarmonicTriple

logger = logging.getLogger(__name__)


def wrap_phase(phase: float) -> float:
    """Wraps an angle into [-pi, pi)."""
    return (phase + math.pi) % (2 * math.pi) - math.pi


def demodulate(time_s: np.ndarray, signal: np.ndarray, frequency_hz: float) -> HarmonicTriple:
    """
    Demodulates `signal` at `frequency_hz`. `time_s` must span a whole number of
    periods for the result to be exact.
    """
    duration = time_s[-1] - time_s[0]
    if duration <= 0:
        raise ValueError("Demodulation needs a trace spanning a positive duration.")
    omega = 2 * np.pi * frequency_hz
    bias = trapezoid(signal, time_s) / duration
    centred = signal - bias
    in_phase = 2.0 / duration * trapezoid(centred * np.sin(omega * time_s), time_s)
    quadrature = 2.0 / duration * trapezoid(centred * np.cos(omega * time_s), time_s)
    return HarmonicTriple(
        bias=float(bias),
        amplitude=float(math.hypot(in_phase, quadrature)),
        phase=float(math.atan2(quadrature, in_phase)),
    )


def _sine(t, bias, amplitude, phase, omega):
    return bias + amplitude * np.sin(omega * t + phase)


def fit_sine(time_s: np.ndarray, signal: np.ndarray, frequency_hz: float) -> HarmonicTriple:
    """
    Fits `bias + amplitude * sin(2 pi f t + phase)` to `signal`. The signal is
    normalised before fitting so that tiny current densities stay well conditioned.
    """
    seed = demodulate(time_s, signal, frequency_hz)
    offset = float(np.mean(signal))
    scale = float(np.max(np.abs(signal - offset)))
    if scale == 0.0:
        return HarmonicTriple(bias=offset, amplitude=0.0, phase=0.0)

    omega = 2 * np.pi * frequency_hz
    normalised = (signal - offset) / scale
    p0 = [(seed.bias - offset) / scale, max(seed.amplitude / scale, 1e-3), seed.phase]
    popt, _ = curve_fit(
        lambda t, b, a, p: _sine(t, b, a, p, omega), time_s, normalised, p0=p0, maxfev=10000
    )
    bias, amplitude, phase = popt
    if amplitude < 0:
        amplitude, phase = -amplitude, phase + math.pi
    return HarmonicTriple(
        bias=float(offset + bias * scale),
        amplitude=float(amplitude * scale),
        phase=float(wrap_phase(phase)),
    )


@dataclass(frozen=True)
class TraceHarmonicAnalyzer:
    """
    Harmonic analyzer working on `DeviceSolution.trace`.

    Attributes:
        settle_fraction: Fraction of the simulated periods discarded as the
                         initial transient before extraction. At least one whole
                         period is always analysed.
    """
    settle_fraction: float = 0.5

    def extract(self, solution: DeviceSolution, minimal_mode: bool, method: ExtractionMethod) -> ChannelTriples:
        trace = solution.trace
        frequency_hz = solution.frequency_hz
        if trace is None or frequency_hz is None:
            raise ValueError("Harmonic extraction requires an oscillating solution with a current trace and frequency.")

        time_s, window = self._analysis_window(trace.time_s, frequency_hz)
        extract = demodulate if method is ExtractionMethod.DEMODULATION else fit_sine

        reference = extract(time_s, trace.voltage_v[window], frequency_hz)
        triples = {}
        for channel in Channel:
            raw = extract(time_s, trace.channel(channel)[window], frequency_hz)
            triples[channel.value] = HarmonicTriple(
                bias=raw.bias, amplitude=raw.amplitude, phase=wrap_phase(raw.phase - reference.phase)
            )
            if not minimal_mode:
                residual = self._residual(time_s, trace.channel(channel)[window], raw, frequency_hz)
                logger.debug(
                    f"{frequency_hz:.4e} Hz [{channel}] ({method}): bias {raw.bias:.4e}, amplitude {raw.amplitude:.4e}, "
                    f"phase {math.degrees(triples[channel.value].phase):.3f} deg, rms residual {residual:.3e}"
                )
        return ChannelTriples(**triples)

    def _analysis_window(self, time_s: np.ndarray, frequency_hz: float) -> Tuple[np.ndarray, np.ndarray]:
        """Selects the trailing whole periods after the settling part of the trace."""
        total_periods = int(round((time_s[-1] - time_s[0]) * frequency_hz))
        kept_periods = max(1, int(math.floor(total_periods * (1.0 - self.settle_fraction))))
        t_start = time_s[-1] - kept_periods / frequency_hz
        # Tolerate the rounding of the sample times at the window edge.
        window = time_s >= t_start - 1e-9 / frequency_hz
        return time_s[window], window

    @staticmethod
    def _residual(time_s, signal, triple: HarmonicTriple, frequency_hz: float) -> float:
        model = _sine(time_s, triple.bias, triple.amplitude, triple.phase, 2 * np.pi * frequency_hz)
        return float(np.sqrt(np.mean((signal - model) ** 2)))
