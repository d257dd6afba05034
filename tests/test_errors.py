# tests/test_errors.py
import logging

from issim_core import FrequencyPointFailure, SweepInputError
from issim_core.errors import Diagnosable, DiagnosableError, format_diagnostic_report
from issim_core.log_config import setup_logging


def test_report_layout():
    report = format_diagnostic_report(
        error_type="Invalid Sweep Input",
        details="line one\nline two",
        suggestion="Fix it.",
        context={"illumination": "#1 (0.5 suns)", "frequency": "1.0000e+03 Hz", "user_input": "x"},
    )
    lines = report.splitlines()
    assert "ISSim Core: Actionable Diagnostic Report" in report
    assert "Error Type:     Invalid Sweep Input" in lines
    assert "Illumination:   #1 (0.5 suns)" in lines
    assert "Frequency:      1.0000e+03 Hz" in lines
    assert "User Input:     'x'" in lines
    assert "  line two" in lines
    assert "  Fix it." in lines


def test_sweep_errors_are_diagnosable():
    error = SweepInputError(details="bad bounds", user_input="start=1")
    assert isinstance(error, DiagnosableError)
    assert isinstance(error, Diagnosable)
    assert str(error) == "Invalid sweep input: bad bounds"
    assert "start=1" in error.get_diagnostic_report()


def test_cell_failure_nests_diagnosable_root_cause():
    root = SweepInputError(details="inner problem")
    failure = FrequencyPointFailure(2, 1.0, 10.0, root)
    report = failure.get_diagnostic_report()

    assert "illumination #2" in str(failure)
    assert "Frequency:      1.0000e+01 Hz" in report
    assert "Invalid Sweep Input" in report
    assert "inner problem" in report


def test_log_file_mirroring(tmp_path):
    log_file = tmp_path / "logs" / "sweep.log"
    try:
        setup_logging(logging.DEBUG, log_file=log_file)
        logging.getLogger("issim_core.test").debug("cell (#0, 1e3 Hz) settled")
        for handler in logging.getLogger().handlers:
            handler.flush()
        text = log_file.read_text(encoding="utf-8")
    finally:
        setup_logging()
    assert "cell (#0, 1e3 Hz) settled" in text
    assert "[DEBUG]" in text
