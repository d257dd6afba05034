"""
Public interface of the analysis package: impedance derivation, the reference
harmonic analyzer and the per-channel result contracts.
"""
from .results import ChannelHarmonics, ChannelImpedance
from .impedance import derive_channel_impedance, derive_impedance
from .harmonics import TraceHarmonicAnalyzer, demodulate, fit_sine, wrap_phase

__all__ = [
    # Formal Result Contracts
    "ChannelHarmonics",
    "ChannelImpedance",
    # Derivation
    "derive_channel_impedance",
    "derive_impedance",
    # Reference Harmonic Analyzer
    "TraceHarmonicAnalyzer",
    "demodulate",
    "fit_sine",
    "wrap_phase",
]
