# src/issim_core/analysis/impedance.py
"""
Derivation of impedance and apparent capacitance from harmonic matrices.

Pure functions: no hidden state, identical inputs give identical outputs.
"""
import logging
from typing import Dict, Mapping

import numpy as np

from ..data_structures import Channel
from .results import ChannelHarmonics, ChannelImpedance

logger = logging.getLogger(__name__)


def derive_channel_impedance(
    harmonics: ChannelHarmonics,
    frequencies_hz: np.ndarray,
    delta_v: float,
    channel: Channel = Channel.TOTAL,
) -> ChannelImpedance:
    """
    Converts one channel's harmonics into impedance and capacitance matrices.

    |Z| is the ratio of the voltage and current oscillation magnitudes. The
    impedance phase is minus the current phase, and the capacitance is the
    imaginary part of the admittance divided by the angular frequency:

        impedance_re = |Z| cos(-phase),  impedance_im = |Z| sin(-phase)
        capacitance  = sin(phase) / (2 pi f |Z|)

    Args:
        harmonics: Bias/amplitude/phase matrices, shape (n_illuminations, n_frequencies).
        frequencies_hz: Frequency matrix of the same shape, or a 1-D grid that
                        broadcasts along the frequency axis.
        delta_v: Applied voltage oscillation amplitude [V].
        channel: Only used to label diagnostics.

    Returns:
        A `ChannelImpedance`; zero-amplitude cells are NaN and flagged.
    """
    amplitude = np.asarray(harmonics.amplitude, dtype=float)
    phase = np.asarray(harmonics.phase, dtype=float)
    freq = np.broadcast_to(np.asarray(frequencies_hz, dtype=float), phase.shape)

    zero_mask = amplitude == 0
    if np.any(zero_mask):
        logger.warning(
            f"Channel '{channel}': {int(zero_mask.sum())} cell(s) with zero current amplitude; "
            "impedance and capacitance are undefined there and set to NaN."
        )

    with np.errstate(divide="ignore", invalid="ignore"):
        impedance_abs = np.where(zero_mask, np.nan, abs(delta_v) / np.abs(amplitude))
        impedance_re = impedance_abs * np.cos(-phase)
        impedance_im = impedance_abs * np.sin(-phase)
        pulsatance = 2 * np.pi * freq
        capacitance = np.sin(phase) / (pulsatance * impedance_abs)

    return ChannelImpedance(
        impedance_abs=impedance_abs,
        impedance_re=impedance_re,
        impedance_im=impedance_im,
        capacitance=capacitance,
        zero_amplitude_mask=zero_mask,
    )


def derive_impedance(
    harmonics: Mapping[Channel, ChannelHarmonics],
    frequencies_hz: np.ndarray,
    delta_v: float,
) -> Dict[Channel, ChannelImpedance]:
    """Applies `derive_channel_impedance` independently to every channel given."""
    return {
        channel: derive_channel_impedance(channel_harmonics, frequencies_hz, delta_v, channel)
        for channel, channel_harmonics in harmonics.items()
    }
