# src/issim_core/simulation/config.py
"""
Sweep configuration: frequency grid construction, settings record and the YAML /
dictionary front-end.

A sweep configuration document looks like:

    sweep:
      start: 1 MHz
      stop: 10 mHz
      num_points: 23
    oscillation:
      amplitude: 2 mV
      periods: 20
      tpoints_per_period: 40
      rel_tol: 1.0e-6
    frozen_ions: false
    demodulation: true
    do_graphics: false
    execution: { strategy: threads, max_workers: 4 }

Quantities accept pint unit strings; bare numbers are taken as SI (Hz, V).
"""
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import cerberus
import numpy as np
import pint
import yaml

from ..collaborators import ExtractionMethod
from ..constants import DEFAULT_PERIODS, DEFAULT_REL_TOL, DEFAULT_TPOINTS_PER_PERIOD
from ..errors import SweepConfigError
from ..units import to_magnitude

logger = logging.getLogger(__name__)


class ExecutionStrategy(Enum):
    """How the independent frequency points of one illumination row are evaluated."""
    SERIAL = "serial"
    THREADS = "threads"
    PROCESSES = "processes"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class ExecutionConfig:
    """
    Execution strategy for the frequency points, chosen once at sweep start.
    `max_workers=None` lets `concurrent.futures` pick its default pool size.
    """
    strategy: ExecutionStrategy = ExecutionStrategy.SERIAL
    max_workers: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.strategy, ExecutionStrategy):
            raise SweepConfigError(f"Unknown execution strategy {self.strategy!r}.")
        if self.max_workers is not None and self.max_workers < 1:
            raise SweepConfigError(f"max_workers must be >= 1, got {self.max_workers}.")


@dataclass(frozen=True)
class SweepSettings:
    """
    Everything that parameterises one impedance sweep apart from the device itself.

    Attributes:
        start_freq_hz: Highest frequency of the sweep (first column).
        end_freq_hz: Lowest frequency of the sweep (last column).
        num_points: Number of log-spaced frequency points, inclusive of both ends.
        delta_v: Amplitude of the applied voltage oscillation [V].
        frozen_ions: Zero the ion mobility of each working copy before the sweep.
        method: Preferred harmonic extraction method.
        do_graphics: Hand the final result to the plotting collaborator.
        periods: Oscillation periods simulated per frequency point.
        tpoints_per_period: Samples per period.
        rel_tol: Initial relative tolerance of the transient simulator.
        execution: Execution strategy for the frequency points.
    """
    start_freq_hz: float
    end_freq_hz: float
    num_points: int
    delta_v: float
    frozen_ions: bool = False
    method: ExtractionMethod = ExtractionMethod.DEMODULATION
    do_graphics: bool = False
    periods: int = DEFAULT_PERIODS
    tpoints_per_period: int = DEFAULT_TPOINTS_PER_PERIOD
    rel_tol: float = DEFAULT_REL_TOL
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)

    @property
    def tpoints(self) -> int:
        """Total time points of one oscillating simulation."""
        return 1 + self.tpoints_per_period * self.periods

    def frequency_grid(self) -> np.ndarray:
        return build_frequency_grid(self.start_freq_hz, self.end_freq_hz, self.num_points)


def build_frequency_grid(start_freq_hz: float, end_freq_hz: float, num_points: int) -> np.ndarray:
    """
    Builds the read-only, log-spaced frequency grid running from the high
    `start_freq_hz` down to the low `end_freq_hz`, both included.

    Raises:
        SweepConfigError: For non-positive or non-finite bounds, fewer than one
                          point, or bounds that are not strictly decreasing.
    """
    if isinstance(num_points, bool) or int(num_points) != num_points or num_points < 1:
        raise SweepConfigError(f"Number of frequency points must be a positive integer, got {num_points!r}.")
    num_points = int(num_points)
    for name, value in (("start", start_freq_hz), ("end", end_freq_hz)):
        if not math.isfinite(value) or value <= 0:
            raise SweepConfigError(f"Log sweep {name} frequency must be finite and > 0 Hz, got {value}.")
    if num_points > 1 and not start_freq_hz > end_freq_hz:
        raise SweepConfigError(
            f"Start frequency ({start_freq_hz} Hz) must be above end frequency ({end_freq_hz} Hz); "
            "the sweep runs from high to low frequency."
        )

    grid = np.geomspace(start_freq_hz, end_freq_hz, num_points, dtype=float)
    # geomspace can miss the end points by one ulp.
    grid[0] = start_freq_hz
    grid[-1] = end_freq_hz if num_points > 1 else start_freq_hz
    grid.setflags(write=False)
    return grid


# --- Dictionary / YAML front-end ---

_quantity_rule = {"type": ["string", "number"], "required": True}


def _check_positive(field, value, error):
    if not value > 0:
        error(field, "must be greater than 0")


_schema = {
    "sweep": {
        "type": "dict", "required": True, "schema": {
            "start": _quantity_rule,
            "stop": _quantity_rule,
            "num_points": {"type": "integer", "required": True, "min": 1},
        },
    },
    "oscillation": {
        "type": "dict", "required": True, "schema": {
            "amplitude": _quantity_rule,
            "periods": {"type": "integer", "required": False, "min": 1, "default": DEFAULT_PERIODS},
            "tpoints_per_period": {"type": "integer", "required": False, "min": 1, "default": DEFAULT_TPOINTS_PER_PERIOD},
            "rel_tol": {"type": "number", "required": False, "check_with": _check_positive, "default": DEFAULT_REL_TOL},
        },
    },
    "frozen_ions": {"type": "boolean", "required": False, "default": False},
    "demodulation": {"type": "boolean", "required": False, "default": True},
    "do_graphics": {"type": "boolean", "required": False, "default": False},
    "execution": {
        "type": "dict", "required": False, "default": {}, "schema": {
            "strategy": {"type": "string", "required": False, "allowed": [s.value for s in ExecutionStrategy], "default": "serial"},
            "max_workers": {"type": "integer", "required": False, "nullable": True, "min": 1, "default": None},
        },
    },
}


def parse_sweep_config(raw_config: Dict[str, Any]) -> SweepSettings:
    """
    Validates a raw configuration dictionary against the sweep schema and converts
    it into `SweepSettings`.

    Raises:
        SweepConfigError: On schema violations, unit errors or inconsistent bounds.
    """
    if not raw_config:
        raise SweepConfigError("Sweep configuration is missing or empty.")
    if not isinstance(raw_config, dict):
        raise SweepConfigError(f"Sweep configuration must be a mapping, got '{type(raw_config).__name__}'.")

    validator = cerberus.Validator(_schema)
    if not validator.validate(raw_config):
        raise SweepConfigError(f"Sweep configuration failed schema validation: {validator.errors}")
    config = validator.document

    try:
        sweep = config["sweep"]
        oscillation = config["oscillation"]
        start_hz = to_magnitude(sweep["start"], "Hz")
        stop_hz = to_magnitude(sweep["stop"], "Hz")
        delta_v = to_magnitude(oscillation["amplitude"], "V")
        execution = ExecutionConfig(
            strategy=ExecutionStrategy(config["execution"].get("strategy", "serial")),
            max_workers=config["execution"].get("max_workers"),
        )
        # Validate bounds eagerly so a bad file fails at load time.
        build_frequency_grid(start_hz, stop_hz, sweep["num_points"])
        settings = SweepSettings(
            start_freq_hz=start_hz,
            end_freq_hz=stop_hz,
            num_points=sweep["num_points"],
            delta_v=delta_v,
            frozen_ions=config["frozen_ions"],
            method=ExtractionMethod.from_flag(config["demodulation"]),
            do_graphics=config["do_graphics"],
            periods=oscillation["periods"],
            tpoints_per_period=oscillation["tpoints_per_period"],
            rel_tol=float(oscillation["rel_tol"]),
            execution=execution,
        )
    except SweepConfigError:
        raise
    except (KeyError, ValueError, TypeError, pint.DimensionalityError, pint.UndefinedUnitError) as e:
        raise SweepConfigError(f"Failed to parse sweep configuration: {e}") from e

    logger.debug(f"Parsed sweep settings: {settings}")
    return settings


def load_sweep_config(source: Union[str, Path]) -> SweepSettings:
    """
    Loads sweep settings from a YAML file path or from a YAML document string.
    """
    if isinstance(source, Path) or (isinstance(source, str) and "\n" not in source and source.endswith((".yaml", ".yml"))):
        path = Path(source)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise SweepConfigError(f"Cannot read sweep configuration file '{path}': {e}") from e
        logger.info(f"Loading sweep configuration from '{path}'.")
    else:
        text = source

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SweepConfigError(f"Sweep configuration is not valid YAML: {e}") from e
    return parse_sweep_config(raw)
