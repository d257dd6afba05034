# src/issim_core/data_structures.py
"""
Fixed-schema records describing device solutions, illumination conditions and
extracted harmonics.

All records are frozen dataclasses: a solution handed to the sweep is never
modified in place. Derived working copies (halved, ion-frozen, figures off) are
produced with `dataclasses.replace`, so each illumination row owns its own copy.
"""
import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterator, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)


class Channel(Enum):
    """The four current-decomposition quantities tracked through a sweep."""
    TOTAL = "total"
    IONIC = "ionic"
    RECOMBINATION = "recombination"
    ACCUMULATION = "accumulation"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class DeviceParameters:
    """
    The subset of device parameters the sweep reads or rewrites.

    Attributes:
        light_intensity: Background light intensity in suns (0 = dark).
        open_circuit: True when the solution is the symmetric open-circuit
                      representation that must be halved before perturbation.
        ion_mobility: Mobility of the ionic defects [cm^2 V^-1 s^-1].
        tmax: Duration of the last simulated transient [s].
        figures_on: Whether the simulator may produce figures for this solution.
    """
    light_intensity: float = 0.0
    open_circuit: bool = False
    ion_mobility: float = 1e-10
    tmax: float = 1e-12
    figures_on: bool = False


@dataclass(frozen=True)
class CurrentTrace:
    """
    Time series produced by a transient simulation under an oscillating voltage.
    All current arrays are area-normalised [A cm^-2] and share `time_s`.
    """
    time_s: np.ndarray
    voltage_v: np.ndarray
    total: np.ndarray
    ionic: np.ndarray
    recombination: np.ndarray
    accumulation: np.ndarray

    def channel(self, channel: Channel) -> np.ndarray:
        return getattr(self, channel.value)


@dataclass(frozen=True)
class DeviceSolution:
    """
    A device solution as exchanged with the device simulator.

    `state` is an opaque payload owned by the simulator. Oscillating solutions
    additionally carry the `trace` and the `frequency_hz` they were produced at;
    steady-state solutions leave both as None.
    """
    params: DeviceParameters
    state: Any = None
    trace: Optional[CurrentTrace] = None
    frequency_hz: Optional[float] = None

    @property
    def is_oscillating(self) -> bool:
        return self.trace is not None

    def with_params(self, **changes) -> "DeviceSolution":
        """Returns a copy whose parameters have `changes` applied."""
        return replace(self, params=replace(self.params, **changes))


@dataclass(frozen=True)
class IlluminationCondition:
    """
    A steady-state device solution under a given background light intensity, used
    as the starting point of one row of the impedance sweep.
    """
    solution: DeviceSolution
    light_intensity: float
    open_circuit: bool = False
    label: str = ""

    def __post_init__(self):
        if not isinstance(self.solution, DeviceSolution):
            raise TypeError(
                f"IlluminationCondition.solution must be a DeviceSolution, got '{type(self.solution).__name__}'."
            )
        if not (math.isfinite(self.light_intensity) and self.light_intensity >= 0):
            raise ValueError(f"Light intensity must be finite and non-negative, got {self.light_intensity}.")

    @classmethod
    def from_solution(cls, solution: DeviceSolution, label: str = "") -> "IlluminationCondition":
        """Builds a condition reading intensity and open-circuit flag from the solution's parameters."""
        return cls(
            solution=solution,
            light_intensity=float(solution.params.light_intensity),
            open_circuit=bool(solution.params.open_circuit),
            label=label,
        )


@dataclass(frozen=True)
class HarmonicTriple:
    """(bias, amplitude, phase) of a quasi-sinusoidal signal; phase in radians."""
    bias: float
    amplitude: float
    phase: float

    @property
    def phase_deg(self) -> float:
        return math.degrees(self.phase)


@dataclass(frozen=True)
class ChannelTriples:
    """One `HarmonicTriple` per current channel, as returned by a harmonic analyzer."""
    total: HarmonicTriple
    ionic: HarmonicTriple
    recombination: HarmonicTriple
    accumulation: HarmonicTriple

    def __getitem__(self, channel: Channel) -> HarmonicTriple:
        return getattr(self, channel.value)

    def items(self) -> Iterator[Tuple[Channel, HarmonicTriple]]:
        for channel in Channel:
            yield channel, self[channel]
