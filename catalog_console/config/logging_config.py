# catalog_console/config/logging_config.py

"""Per-run log files for the catalog console.

Every launch writes ``logs/run_YYYYmmdd_HHMMSS.log``.  Commit phases,
remote calls and buffer mutations are recorded there at ``LOG_LEVEL``;
the terminal only ever sees warnings and errors, and sees nothing at all
while the TUI owns the screen.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from catalog_console.config.settings import Settings

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
)
_CONSOLE_FORMAT = "%(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _log_path() -> Path:
    logs_dir: Path = Settings.LOGS_DIR
    logs_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return logs_dir / f"run_{stamp}.log"


def setup_logging(console: bool = True) -> Path:
    """Attach the run's handlers to the ``catalog_console`` logger.

    Args:
        console: also echo WARNING+ records to stderr.  The TUI passes
            ``False`` so log lines never draw over the interface.

    Returns:
        Path of this run's log file.  Calling again once handlers are
        attached changes nothing.
    """
    log_file = _log_path()
    project_logger = logging.getLogger("catalog_console")
    project_logger.setLevel(logging.DEBUG)
    if project_logger.handlers:
        return log_file

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(
        logging.getLevelName(Settings.LOG_LEVEL.upper())
    )
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, _DATE_FORMAT))
    project_logger.addHandler(file_handler)

    if console:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(logging.WARNING)
        stderr_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        project_logger.addHandler(stderr_handler)

    project_logger.info(
        "Logging to %s (file level %s)", log_file, Settings.LOG_LEVEL
    )
    return log_file
