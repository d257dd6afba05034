# src/issim_core/simulation/execution.py
"""
Public API functions for running impedance spectroscopy sweeps.

This module is a thin facade over `SweepContext` / `SweepEngine`:

1.  **Normalise inputs:** a bare `IlluminationCondition` or `DeviceSolution` is
    accepted in place of a sequence and behaves like a length-1 sequence.
2.  **Fail early:** malformed conditions, frequency bounds or oscillation settings
    raise before the first simulation is started.
3.  **Report:** every diagnosable failure (bad input, failing collaborator) is
    converted into a single user-facing `SweepRunError` carrying the formatted
    report, with the original exception chained.
4.  **Plot on request:** the result is handed to the toolkit's plotter only when
    graphics are enabled in the settings.
"""
import logging
import math
from dataclasses import replace
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from ..collaborators import DeviceToolkit
from ..data_structures import DeviceSolution, IlluminationCondition
from ..errors import DiagnosableError, SweepConfigError, SweepRunError, format_diagnostic_report
from .config import SweepSettings
from .context import SweepContext
from .engine import SweepEngine
from .exceptions import SweepInputError
from .results import SweepResult

logger = logging.getLogger(__name__)

ConditionInput = Union[IlluminationCondition, DeviceSolution]
ConditionsInput = Union[ConditionInput, Sequence[ConditionInput]]


def normalize_conditions(conditions: ConditionsInput) -> Tuple[IlluminationCondition, ...]:
    """
    Turns the caller's conditions into a tuple of `IlluminationCondition`s.

    Raises:
        SweepInputError: For an empty sequence or an element of the wrong type.
    """
    if isinstance(conditions, (IlluminationCondition, DeviceSolution)):
        conditions = [conditions]
    if isinstance(conditions, (str, bytes)) or not isinstance(conditions, Sequence):
        raise SweepInputError(
            details=f"Illumination conditions must be a condition or a sequence of conditions, got '{type(conditions).__name__}'.",
        )
    if len(conditions) == 0:
        raise SweepInputError(details="At least one illumination condition is required.")

    normalized = []
    for idx, item in enumerate(conditions):
        if isinstance(item, IlluminationCondition):
            normalized.append(item)
        elif isinstance(item, DeviceSolution):
            try:
                normalized.append(IlluminationCondition.from_solution(item))
            except (TypeError, ValueError) as e:
                raise SweepInputError(details=f"Illumination condition #{idx} is invalid: {e}", user_input=item.params) from e
        else:
            raise SweepInputError(
                details=f"Illumination condition #{idx} has unsupported type '{type(item).__name__}'.",
            )
    return tuple(normalized)


def validate_settings(settings: SweepSettings) -> np.ndarray:
    """
    Checks the oscillation settings and builds the frequency grid.

    Returns:
        The read-only frequency grid.

    Raises:
        SweepInputError: For a zero or non-finite amplitude, non-positive period or
                         sample counts, a non-positive tolerance or bad bounds.
    """
    if not isinstance(settings, SweepSettings):
        raise SweepInputError(details=f"Expected SweepSettings, got '{type(settings).__name__}'.")
    if not math.isfinite(settings.delta_v) or settings.delta_v == 0:
        raise SweepInputError(details=f"Voltage oscillation amplitude must be finite and non-zero, got {settings.delta_v}.")
    if settings.periods < 1:
        raise SweepInputError(details=f"At least one oscillation period is required, got {settings.periods}.")
    if settings.tpoints_per_period < 1:
        raise SweepInputError(details=f"At least one sample per period is required, got {settings.tpoints_per_period}.")
    if not (math.isfinite(settings.rel_tol) and settings.rel_tol > 0):
        raise SweepInputError(details=f"Simulator tolerance must be positive, got {settings.rel_tol}.")
    try:
        return settings.frequency_grid()
    except SweepConfigError as e:
        raise SweepInputError(
            details=str(e),
            user_input=f"start={settings.start_freq_hz}, end={settings.end_freq_hz}, points={settings.num_points}",
        ) from e


def run_sweep(
    conditions: ConditionsInput,
    toolkit: DeviceToolkit,
    settings: SweepSettings,
    solution_name: Optional[str] = None,
) -> SweepResult:
    """
    The primary public API: impedance spectroscopy over illumination x frequency.

    Args:
        conditions: One illumination condition (or steady-state solution) or a
                    sequence of them, one result row each.
        toolkit: Device simulator, harmonic analyzer, bias extractor, asymmetrizer
                 and optional plotter.
        settings: Frequency bounds, oscillation amplitude, ion freezing, extraction
                  method, graphics flag and execution strategy.
        solution_name: Name stored in the result; defaults to the first
                       condition's label.

    Returns:
        The `SweepResult` with every matrix of shape (n_conditions, n_frequencies).

    Raises:
        SweepRunError: A user-friendly, diagnosable error if the sweep fails at any
                       stage. The original exception is chained.
    """
    try:
        normalized = normalize_conditions(conditions)
        frequencies = validate_settings(settings)
        name = solution_name if solution_name is not None else normalized[0].label

        context = SweepContext(
            conditions=normalized,
            frequencies_hz=frequencies,
            settings=settings,
            toolkit=toolkit,
            solution_name=name,
        )
        logger.info(f"--- Starting IS sweep for '{name or '<unnamed>'}' ---")
        result = SweepEngine(context).execute()

    except DiagnosableError as e:
        logger.error(f"A diagnosable error occurred during the IS sweep: {e}")
        raise SweepRunError(e.get_diagnostic_report()) from e

    except Exception as e:
        logger.critical(f"An unexpected internal error occurred during the IS sweep: {e}", exc_info=True)
        report = format_diagnostic_report(
            error_type=f"An Unexpected Sweep Error Occurred ({type(e).__name__})",
            details=f"The sweep encountered an unexpected internal error: {e}",
            suggestion="This may be a bug. Review the traceback and consider filing a bug report.",
            context={}
        )
        raise SweepRunError(report) from e

    if settings.do_graphics and toolkit.plotter is not None:
        toolkit.plotter(result)
    elif settings.do_graphics:
        logger.warning("Graphics requested but the toolkit has no plotter; skipping.")
    return result


def run_simulation(
    condition: ConditionInput,
    toolkit: DeviceToolkit,
    frequency_hz: float,
    settings: SweepSettings,
) -> SweepResult:
    """
    A convenience wrapper around `run_sweep` for a single illumination condition at
    a single frequency point. The frequency bounds of `settings` are replaced by
    `frequency_hz`; everything else is kept.

    Returns:
        A `SweepResult` whose matrices have shape (1, 1).
    """
    single = replace(settings, start_freq_hz=frequency_hz, end_freq_hz=frequency_hz, num_points=1)
    return run_sweep(condition, toolkit, single)
