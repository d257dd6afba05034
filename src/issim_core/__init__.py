# src/issim_core/__init__.py
import logging
from .log_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)
logger.info("ISSim Core package initialized.")

from .units import ureg, pint, Quantity, AREAL_IMPEDANCE_UNIT, AREAL_CAPACITANCE_UNIT
from .data_structures import (
    Channel, ChannelTriples, CurrentTrace, DeviceParameters, DeviceSolution, HarmonicTriple, IlluminationCondition,
)
from .collaborators import (
    Asymmetrizer, BiasExtractor, DeviceSimulator, DeviceToolkit, ExtractionMethod, HarmonicAnalyzer, ResultPlotter,
)
from .simulation import (
    ExecutionConfig, ExecutionStrategy, SweepSettings, build_frequency_grid, parse_sweep_config, load_sweep_config,
    HarmonicExtractionGate, EscalationStage, EscalationRecord, SweepResult, run_sweep, run_simulation,
    SweepInputError, FrequencyPointFailure,
)
from .analysis import ChannelHarmonics, ChannelImpedance, derive_channel_impedance, derive_impedance, TraceHarmonicAnalyzer
from .devices import LumpedDevice
from .errors import ISSimError, SweepConfigError, SweepRunError, FrameworkLogicError

__all__ = [
    # Units
    "ureg", "pint", "Quantity",
    # Reporting units
    "AREAL_IMPEDANCE_UNIT", "AREAL_CAPACITANCE_UNIT",
    # Data Structures
    "Channel", "ChannelTriples", "CurrentTrace", "DeviceParameters", "DeviceSolution", "HarmonicTriple",
    "IlluminationCondition",
    # Collaborator Protocols
    "Asymmetrizer", "BiasExtractor", "DeviceSimulator", "DeviceToolkit", "ExtractionMethod", "HarmonicAnalyzer",
    "ResultPlotter",
    # Configuration
    "ExecutionConfig", "ExecutionStrategy", "SweepSettings", "build_frequency_grid", "parse_sweep_config",
    "load_sweep_config",
    # Simulation
    "HarmonicExtractionGate", "EscalationStage", "EscalationRecord", "SweepResult", "run_sweep", "run_simulation",
    # Analysis
    "ChannelHarmonics", "ChannelImpedance", "derive_channel_impedance", "derive_impedance", "TraceHarmonicAnalyzer",
    # Reference Device
    "LumpedDevice",
    # Errors
    "ISSimError", "SweepConfigError", "SweepRunError", "FrameworkLogicError", "SweepInputError", "FrequencyPointFailure",
]
