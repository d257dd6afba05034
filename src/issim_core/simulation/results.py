# src/issim_core/simulation/results.py
"""
Result containers of the impedance sweep.

`ResultMatrices` is the mutable, preallocated scratch space filled cell by cell
during a sweep. `SweepResult` is the frozen, user-facing record built from it once
every cell has been written.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

from ..analysis.results import ChannelHarmonics, ChannelImpedance
from ..data_structures import Channel
from ..errors import FrameworkLogicError
from .gate import EscalationRecord, GateOutcome

logger = logging.getLogger(__name__)


class ResultMatrices:
    """
    Preallocated (n_illuminations x n_frequencies) matrices for every channel x
    {bias, amplitude, phase}, plus `tmax` and the per-cell escalation count.

    Each cell is owned by exactly one task and written exactly once; writes to
    distinct cells never overlap, so no locking is needed.
    """
    QUANTITIES = ("bias", "amplitude", "phase")

    def __init__(self, num_illuminations: int, num_frequencies: int):
        self.shape: Tuple[int, int] = (num_illuminations, num_frequencies)
        self._data: Dict[Tuple[Channel, str], np.ndarray] = {
            (channel, quantity): np.full(self.shape, np.nan, dtype=float)
            for channel in Channel for quantity in self.QUANTITIES
        }
        self.tmax = np.full(self.shape, np.nan, dtype=float)
        self.escalation_counts = np.zeros(self.shape, dtype=int)
        self.escalations: Dict[Tuple[int, int], Tuple[EscalationRecord, ...]] = {}
        self._written = np.zeros(self.shape, dtype=bool)

    def write(self, row: int, column: int, outcome: GateOutcome):
        if self._written[row, column]:
            raise FrameworkLogicError(
                f"Result cell ({row}, {column}) was written twice. This indicates a bug in the sweep task mapping."
            )
        for channel, triple in outcome.triples.items():
            self._data[(channel, "bias")][row, column] = triple.bias
            self._data[(channel, "amplitude")][row, column] = triple.amplitude
            self._data[(channel, "phase")][row, column] = triple.phase
        self.tmax[row, column] = outcome.tmax
        self.escalation_counts[row, column] = len(outcome.escalations)
        if outcome.escalations:
            self.escalations[(row, column)] = outcome.escalations
        self._written[row, column] = True

    @property
    def is_complete(self) -> bool:
        return bool(self._written.all())

    def assert_complete(self):
        if not self.is_complete:
            missing = [tuple(int(i) for i in idx) for idx in np.argwhere(~self._written)]
            raise FrameworkLogicError(f"Sweep finished with unfilled result cells: {missing[:10]}")

    def harmonics(self, channel: Channel) -> ChannelHarmonics:
        return ChannelHarmonics(
            bias=self._data[(channel, "bias")].copy(),
            amplitude=self._data[(channel, "amplitude")].copy(),
            phase=self._data[(channel, "phase")].copy(),
        )

    def ordered_escalations(self) -> Tuple[EscalationRecord, ...]:
        """All escalation records, ordered by (row, column) regardless of completion order."""
        return tuple(record for key in sorted(self.escalations) for record in self.escalations[key])


@dataclass(frozen=True)
class ChannelResult:
    """Raw harmonics and derived impedance of one current channel."""
    harmonics: ChannelHarmonics
    impedance: ChannelImpedance


@dataclass(frozen=True)
class SweepResult:
    """
    The user-facing record of one impedance spectroscopy sweep.

    Attributes:
        solution_name: Name of the swept solution(s), for reporting.
        light_intensities: Intensity of every illumination row [suns], shape (n_ill,).
        dc_voltages: DC bias of every row [V], shape (n_ill,).
        delta_v: Applied voltage oscillation amplitude [V].
        periods: Oscillation periods simulated per cell.
        tpoints: Time points per simulation (1 + samples_per_period * periods).
        frequencies: Frequency of every cell [Hz], shape (n_ill, n_freq).
        tmax: Simulated duration of every cell [s], shape (n_ill, n_freq).
        sun_index: 0-based rows whose intensity is exactly 1 sun.
        total, ionic, recombination, accumulation: Per-channel results.
        escalation_counts: Escalation stages fired per cell, shape (n_ill, n_freq).
        escalations: Every escalation record, ordered by cell.
    """
    solution_name: str
    light_intensities: np.ndarray
    dc_voltages: np.ndarray
    delta_v: float
    periods: int
    tpoints: int
    frequencies: np.ndarray
    tmax: np.ndarray
    sun_index: np.ndarray
    total: ChannelResult
    ionic: ChannelResult
    recombination: ChannelResult
    accumulation: ChannelResult
    escalation_counts: np.ndarray
    escalations: Tuple[EscalationRecord, ...]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.frequencies.shape

    @property
    def frequency_array(self) -> np.ndarray:
        """The 1-D frequency grid shared by every row."""
        return self.frequencies[0]

    def channel(self, channel: Channel) -> ChannelResult:
        return getattr(self, channel.value)
