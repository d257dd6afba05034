# src/issim_core/collaborators.py
"""
Interfaces of the external collaborators consumed by the impedance sweep.

The sweep core never integrates the drift-diffusion system or demodulates a
current trace itself; it drives implementations of the protocols below. Any object
with matching methods satisfies them. `issim_core.devices.lumped` and
`issim_core.analysis.harmonics` ship reference implementations.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from .data_structures import ChannelTriples, DeviceSolution

if TYPE_CHECKING:
    from .simulation.results import SweepResult

logger = logging.getLogger(__name__)


class ExtractionMethod(Enum):
    """How (bias, amplitude, phase) is extracted from a current trace."""
    DEMODULATION = "demodulation"
    FIT = "fit"

    @property
    def opposite(self) -> "ExtractionMethod":
        return ExtractionMethod.FIT if self is ExtractionMethod.DEMODULATION else ExtractionMethod.DEMODULATION

    @classmethod
    def from_flag(cls, demodulation: bool) -> "ExtractionMethod":
        return cls.DEMODULATION if demodulation else cls.FIT

    def __str__(self):
        return self.value


@runtime_checkable
class DeviceSimulator(Protocol):
    """Integrates the device under an oscillating applied voltage."""
    def simulate(
        self,
        solution: DeviceSolution,
        amplitude_v: float,
        frequency_hz: float,
        periods: int,
        tpoints_per_period: int,
        rel_tol: float,
    ) -> DeviceSolution:
        """
        Returns the oscillating solution, carrying the current trace. `solution`
        may itself be an oscillating solution, in which case its final state is the
        starting point.
        """
        ...


@runtime_checkable
class HarmonicAnalyzer(Protocol):
    """Extracts per-channel harmonic triples from an oscillating solution."""
    def extract(self, solution: DeviceSolution, minimal_mode: bool, method: ExtractionMethod) -> ChannelTriples:
        ...


@runtime_checkable
class BiasExtractor(Protocol):
    """Reads the DC voltage (quasi-Fermi level splitting) of a steady-state solution."""
    def bias(self, solution: DeviceSolution) -> float:
        ...


@runtime_checkable
class Asymmetrizer(Protocol):
    """Turns a symmetric open-circuit solution into its asymmetric half-device equivalent."""
    def halve(self, solution: DeviceSolution) -> DeviceSolution:
        ...


@runtime_checkable
class ResultPlotter(Protocol):
    """Reporting entry point; only called when graphics are enabled for the sweep."""
    def __call__(self, result: "SweepResult") -> None:
        ...


@dataclass(frozen=True)
class DeviceToolkit:
    """The complete set of collaborators a sweep needs, injected as one object."""
    simulator: DeviceSimulator
    analyzer: HarmonicAnalyzer
    bias_extractor: BiasExtractor
    asymmetrizer: Asymmetrizer
    plotter: Optional[ResultPlotter] = None

    def __post_init__(self):
        for role, proto in (
            ("simulator", DeviceSimulator),
            ("analyzer", HarmonicAnalyzer),
            ("bias_extractor", BiasExtractor),
            ("asymmetrizer", Asymmetrizer),
        ):
            if not isinstance(getattr(self, role), proto):
                raise TypeError(
                    f"DeviceToolkit.{role} of type '{type(getattr(self, role)).__name__}' "
                    f"does not implement the {proto.__name__} protocol."
                )
        if self.plotter is not None and not callable(self.plotter):
            raise TypeError("DeviceToolkit.plotter must be callable.")
