# src/issim_core/simulation/__init__.py
from .exceptions import SweepInputError, FrequencyPointFailure
from .config import (
    ExecutionConfig,
    ExecutionStrategy,
    SweepSettings,
    build_frequency_grid,
    parse_sweep_config,
    load_sweep_config,
)
from .gate import (
    ESCALATION_CASCADE,
    EscalationRecord,
    EscalationStage,
    GateOutcome,
    HarmonicExtractionGate,
    build_escalation_cascade,
)
from .results import ChannelResult, ResultMatrices, SweepResult
from .executor import FrequencySweepExecutor
from .engine import SweepEngine, find_sun_index
from .execution import run_sweep, run_simulation

__all__ = [
    # Exceptions
    "SweepInputError",
    "FrequencyPointFailure",
    # Configuration
    "ExecutionConfig",
    "ExecutionStrategy",
    "SweepSettings",
    "build_frequency_grid",
    "parse_sweep_config",
    "load_sweep_config",
    # Extraction Gate
    "ESCALATION_CASCADE",
    "EscalationRecord",
    "EscalationStage",
    "GateOutcome",
    "HarmonicExtractionGate",
    "build_escalation_cascade",
    # Results
    "ChannelResult",
    "ResultMatrices",
    "SweepResult",
    # Core Classes
    "FrequencySweepExecutor",
    "SweepEngine",
    "find_sun_index",
    "run_sweep",
    "run_simulation",
]
