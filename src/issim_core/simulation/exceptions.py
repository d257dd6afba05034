# src/issim_core/simulation/exceptions.py
"""
Diagnosable exceptions specific to the impedance sweep.

Implausible phases are not errors: the extraction gate handles them and only logs.
The classes here cover the two hard failure modes: input that must be rejected
before any simulation starts, and a collaborator failing at one sweep cell.
"""
from dataclasses import dataclass
from typing import Any, Optional

from ..errors import DiagnosableError, format_diagnostic_report


@dataclass()
class SweepInputError(DiagnosableError):
    """
    Raised when the sweep inputs are malformed. Detected before the first
    simulation; no partial sweep is attempted.
    """
    details: str
    user_input: Optional[Any] = None

    def __str__(self):
        return f"Invalid sweep input: {self.details}"

    def get_diagnostic_report(self) -> str:
        """Generates the diagnostic report for malformed sweep input."""
        return format_diagnostic_report(
            error_type="Invalid Sweep Input",
            details=self.details,
            suggestion=(
                "Check the illumination conditions, the frequency bounds (positive, start above end) "
                "and the oscillation settings (non-zero amplitude, positive periods, samples and tolerance)."
            ),
            context={'user_input': self.user_input} if self.user_input is not None else {}
        )


@dataclass()
class FrequencyPointFailure(DiagnosableError):
    """
    Wraps an exception raised by the device simulator or harmonic analyzer with the
    (illumination, frequency) cell in which it occurred.
    """
    illumination_index: int
    light_intensity: float
    frequency_hz: float
    original_error: BaseException

    def __str__(self):
        return (
            f"Sweep cell (illumination #{self.illumination_index}, {self.frequency_hz:.4e} Hz) failed: "
            f"{type(self.original_error).__name__}: {self.original_error}"
        )

    def get_diagnostic_report(self) -> str:
        """Generates a report prepending the cell context to the root cause."""
        if isinstance(self.original_error, DiagnosableError):
            root_cause = self.original_error.get_diagnostic_report()
        else:
            root_cause = f"{type(self.original_error).__name__}: {self.original_error}"
        return format_diagnostic_report(
            error_type="Device Simulation Failure at Sweep Cell",
            details=(
                f"The device simulator or harmonic analyzer raised while evaluating "
                f"illumination #{self.illumination_index} at {self.frequency_hz:.4e} Hz.\n\n"
                f"--- Details of the Root Cause ---\n{root_cause}"
            ),
            suggestion="Address the root cause above. Re-running only the failing cell with the single-frequency API can help isolate it.",
            context={
                'illumination': f"#{self.illumination_index} ({self.light_intensity:g} suns)",
                'frequency': f"{self.frequency_hz:.4e} Hz",
            }
        )
