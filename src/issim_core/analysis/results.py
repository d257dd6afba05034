# src/issim_core/analysis/results.py
"""
Formal, frozen data contracts for the per-channel matrices of an impedance sweep.

Every matrix is indexed (illumination_index, frequency_index) and all matrices of
one sweep share the same shape.
"""
from dataclasses import dataclass
from typing import Dict

import numpy as np

from ..units import AREAL_CAPACITANCE_UNIT, AREAL_IMPEDANCE_UNIT, Quantity


@dataclass(frozen=True)
class ChannelHarmonics:
    """Raw (bias, amplitude, phase) matrices of one current channel."""
    bias: np.ndarray
    amplitude: np.ndarray
    phase: np.ndarray

    def __post_init__(self):
        if not (self.bias.shape == self.amplitude.shape == self.phase.shape):
            raise ValueError(
                f"Harmonic matrices must share one shape, got bias {self.bias.shape}, "
                f"amplitude {self.amplitude.shape}, phase {self.phase.shape}."
            )

    @property
    def shape(self):
        return self.phase.shape


@dataclass(frozen=True)
class ChannelImpedance:
    """
    Impedance and apparent capacitance derived from one channel's harmonics.

    Cells whose current amplitude is zero have no defined impedance: they are set
    to NaN in every matrix and flagged in `zero_amplitude_mask`.
    """
    impedance_abs: np.ndarray
    impedance_re: np.ndarray
    impedance_im: np.ndarray
    capacitance: np.ndarray
    zero_amplitude_mask: np.ndarray

    @property
    def has_flagged_cells(self) -> bool:
        return bool(np.any(self.zero_amplitude_mask))

    @property
    def complex_impedance(self) -> np.ndarray:
        return self.impedance_re + 1j * self.impedance_im

    def with_units(self) -> Dict[str, Quantity]:
        """Returns the matrices as pint quantities (ohm cm^2, F cm^-2)."""
        return {
            "impedance_abs": Quantity(self.impedance_abs, AREAL_IMPEDANCE_UNIT),
            "impedance_re": Quantity(self.impedance_re, AREAL_IMPEDANCE_UNIT),
            "impedance_im": Quantity(self.impedance_im, AREAL_IMPEDANCE_UNIT),
            "capacitance": Quantity(self.capacitance, AREAL_CAPACITANCE_UNIT),
        }
