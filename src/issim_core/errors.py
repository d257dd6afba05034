# src/issim_core/errors.py
import logging
from abc import abstractmethod
from typing import Any, Dict, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

# --- User-Facing Exception Hierarchy ---

class ISSimError(Exception):
    """Base class for all custom, user-facing errors in ISSim Core."""
    pass

class SweepConfigError(ISSimError, ValueError):
    """
    Raised when a sweep configuration (YAML document, raw dictionary or explicit
    arguments) cannot be turned into valid `SweepSettings`.
    """
    pass

class SweepRunError(ISSimError):
    """
    Raised when an impedance sweep fails for any reason, from input validation to a
    failing device simulator. The message is a pre-formatted, user-friendly
    diagnostic report; the original exception is chained as `__cause__`.
    """
    pass

class FrameworkLogicError(ISSimError):
    """
    Raised when an internal invariant of the sweep machinery is violated (e.g. a
    result cell written twice). A failure of this kind is a bug, not a user error.
    """
    pass


# --- Diagnostic Protocol & Base Exception ---

@runtime_checkable
class Diagnosable(Protocol):
    """
    A protocol for exceptions that can generate their own rich diagnostic report.
    """
    def get_diagnostic_report(self) -> str:
        """Generates a complete, user-friendly, multi-line report string."""
        ...

class DiagnosableError(Exception, Diagnosable):
    """
    Common concrete base class for all internal exceptions that are diagnosable.

    It is a regular `Exception`, so it can be used in `except` clauses, and it
    satisfies the `Diagnosable` protocol: every subclass must provide
    `get_diagnostic_report`.
    """
    @abstractmethod
    def get_diagnostic_report(self) -> str:
        """
        Abstract method to generate the diagnostic report.
        Subclasses MUST implement this.
        """
        raise NotImplementedError


# --- Stateless Formatting Utility ---

def format_diagnostic_report(
    error_type: str,
    details: str,
    suggestion: str,
    context: Dict[str, Any]
) -> str:
    """
    A stateless helper to format the final multi-line report string, ensuring a
    consistent look and feel for all user-facing diagnostics.

    Args:
        error_type: The high-level category of the error (e.g., "Invalid Sweep Input").
        details: A detailed, potentially multi-line description of the problem.
        suggestion: Actionable advice for the user to resolve the issue.
        context: A dictionary of contextual information (illumination, frequency,
                 source file, user input).

    Returns:
        A formatted, user-friendly diagnostic report string ready for display.
    """
    lines = [
        "\n",
        "================ ISSim Core: Actionable Diagnostic Report ================",
        f"Error Type:     {error_type}",
    ]
    if (illumination := context.get('illumination')) is not None:
        lines.append(f"Illumination:   {illumination}")
    if frequency := context.get('frequency'):
        lines.append(f"Frequency:      {frequency}")
    if source_file := context.get('source_file'):
        lines.append(f"Source File:    {source_file}")
    if user_input := context.get('user_input'):
        lines.append(f"User Input:     '{user_input}'")

    lines.append("\nDetails:")
    for line in details.splitlines():
        lines.append(f"  {line}")

    if suggestion:
        lines.append("\nSuggestion:")
        for line in suggestion.splitlines():
            lines.append(f"  {line}")

    lines.append("==========================================================================")
    return "\n".join(lines)
