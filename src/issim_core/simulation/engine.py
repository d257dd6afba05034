# src/issim_core/simulation/engine.py
"""
Defines the `SweepEngine`, the illumination sweep controller.

The engine holds no state of its own beyond the immutable `SweepContext`. For
each illumination condition it prepares a private working copy of the steady
state, then hands the row to the `FrequencySweepExecutor`. Once every cell is
filled it derives impedance and capacitance and packages the `SweepResult`.
"""
import logging
from typing import Tuple

import numpy as np

from ..analysis.impedance import derive_channel_impedance
from ..constants import REFERENCE_LIGHT_INTENSITY
from ..data_structures import Channel, DeviceSolution, IlluminationCondition
from .context import SweepContext
from .executor import FrequencySweepExecutor
from .gate import HarmonicExtractionGate
from .results import ChannelResult, ResultMatrices, SweepResult

logger = logging.getLogger(__name__)


def find_sun_index(light_intensities: np.ndarray) -> np.ndarray:
    """0-based positions whose intensity equals the 1-sun reference exactly."""
    return np.flatnonzero(np.asarray(light_intensities, dtype=float) == REFERENCE_LIGHT_INTENSITY)


class SweepEngine:
    """
    Orchestrates the illumination x frequency sweep described by a `SweepContext`.
    """
    def __init__(self, context: SweepContext):
        self.context = context
        self.settings = context.settings
        self.toolkit = context.toolkit
        self.gate = HarmonicExtractionGate(
            self.toolkit.simulator,
            self.toolkit.analyzer,
            amplitude_v=self.settings.delta_v,
            periods=self.settings.periods,
            tpoints_per_period=self.settings.tpoints_per_period,
            rel_tol=self.settings.rel_tol,
            method=self.settings.method,
        )
        logger.debug(f"SweepEngine initialized for '{context.solution_name}' with grid shape {context.shape}.")

    def prepare_condition(self, condition: IlluminationCondition) -> Tuple[DeviceSolution, float]:
        """
        Builds the working copy of a condition's steady state and reads its DC bias.

        The copy is halved when the solution is the symmetric open-circuit one, has
        its figures switched off and, when requested, its ion mobility zeroed. The
        caller's solution is never modified.
        """
        if condition.open_circuit:
            working = self.toolkit.asymmetrizer.halve(condition.solution)
        else:
            working = condition.solution
        working = working.with_params(figures_on=False)

        dc_voltage = float(self.toolkit.bias_extractor.bias(working))

        if self.settings.frozen_ions:
            working = working.with_params(ion_mobility=0.0)
        return working, dc_voltage

    def execute(self) -> SweepResult:
        """Runs every illumination row, then derives the impedance matrices."""
        conditions = self.context.conditions
        frequencies = self.context.frequencies_hz
        n_ill, n_freq = self.context.shape

        light_intensities = np.zeros(n_ill, dtype=float)
        dc_voltages = np.zeros(n_ill, dtype=float)
        matrices = ResultMatrices(n_ill, n_freq)

        logger.info(
            f"Doing the IS on {n_ill} illumination condition(s) x {n_freq} frequencies "
            f"({frequencies[0]:.3g} Hz -> {frequencies[-1]:.3g} Hz), deltaV = {self.settings.delta_v:g} V, "
            f"method '{self.settings.method}', ions {'frozen' if self.settings.frozen_ions else 'mobile'}."
        )

        with FrequencySweepExecutor(self.gate, self.settings.execution) as executor:
            for row, condition in enumerate(conditions):
                light_intensities[row] = condition.light_intensity
                working, dc_voltage = self.prepare_condition(condition)
                dc_voltages[row] = dc_voltage
                logger.info(f"Illumination #{row}: Int {condition.light_intensity:g} suns, Vdc {dc_voltage:.4g} V.")
                executor.run_row(row, working, frequencies, condition.light_intensity, dc_voltage, matrices)

        matrices.assert_complete()
        return self._package(matrices, light_intensities, dc_voltages)

    def _package(self, matrices: ResultMatrices, light_intensities: np.ndarray, dc_voltages: np.ndarray) -> SweepResult:
        n_ill, _ = self.context.shape
        frequency_matrix = np.tile(np.asarray(self.context.frequencies_hz, dtype=float), (n_ill, 1))

        channels = {}
        for channel in Channel:
            harmonics = matrices.harmonics(channel)
            channels[channel.value] = ChannelResult(
                harmonics=harmonics,
                impedance=derive_channel_impedance(harmonics, frequency_matrix, self.settings.delta_v, channel),
            )

        sun_index = find_sun_index(light_intensities)
        if sun_index.size == 0:
            logger.debug("No illumination at exactly 1 sun in this sweep.")

        escalations = matrices.ordered_escalations()
        logger.info(
            f"IS sweep finished: {int(np.count_nonzero(matrices.escalation_counts))} of "
            f"{matrices.escalation_counts.size} cell(s) needed escalation ({len(escalations)} stage(s) fired)."
        )
        return SweepResult(
            solution_name=self.context.solution_name,
            light_intensities=light_intensities,
            dc_voltages=dc_voltages,
            delta_v=self.settings.delta_v,
            periods=self.settings.periods,
            tpoints=self.settings.tpoints,
            frequencies=frequency_matrix,
            tmax=matrices.tmax.copy(),
            sun_index=sun_index,
            escalation_counts=matrices.escalation_counts.copy(),
            escalations=escalations,
            **channels,
        )
