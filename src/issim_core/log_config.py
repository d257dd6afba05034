# --- src/issim_core/log_config.py ---
import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] [%(name)s] %(message)s"


def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[Path] = None):
    """
    Configures root logging to stdout and, optionally, mirrors every record to
    `log_file` so that the per-cell escalation lines of a long sweep survive the
    console session.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    log_formatter = logging.Formatter(LOG_FORMAT)
    root_logger = logging.getLogger()

    # Re-running setup must not stack handlers.
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_formatter)
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(log_formatter)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(level)
    logging.info("Logging configured.%s", f" Mirroring to '{log_file}'." if log_file else "")
