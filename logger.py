"""Logging for the calculator.

One library logger (``arty``) with a console handler. File logging can be
switched on for debugging, and ``install_excepthook`` records unhandled
exceptions of the desktop app to a crash log.

Raw coordinates must never reach these handlers: modules log weapon, charge,
input mode, range, azimuth and elevation only.
"""
import logging
import sys
import traceback
from typing import Optional

from config import LOG_LEVEL, CRASH_LOG_FILE

__all__ = ('logger',
           'enable_file_logging',
           'disable_file_logging',
           'install_excepthook',
)

formatter = logging.Formatter("%(levelname)s:%(name)s:%(message)s")
console_handler = logging.StreamHandler()
console_handler.setFormatter(formatter)
console_handler.setLevel(logging.DEBUG)

logger: logging.Logger = logging.getLogger('arty')
logger.addHandler(console_handler)
logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

file_handler: Optional[logging.FileHandler] = None


def enable_file_logging(filename: str = "arty_debug.log") -> None:
    """Log everything from DEBUG up to ``filename``, replacing any previous file handler."""
    global file_handler
    if file_handler is not None:
        disable_file_logging()

    file_handler = logging.FileHandler(filename)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter("%(asctime)s:%(levelname)s:%(message)s"))
    logger.addHandler(file_handler)


def disable_file_logging() -> None:
    """Remove and close the file handler. Safe to call when none is active."""
    global file_handler
    if file_handler is not None:
        logger.removeHandler(file_handler)
        file_handler.close()
        file_handler = None


def install_excepthook(crash_file: str = CRASH_LOG_FILE) -> None:
    """Append unhandled tracebacks to ``crash_file`` and exit with status 1."""

    def excepthook(exctype, value, tb):
        msg = "".join(traceback.format_exception(exctype, value, tb))
        try:
            with open(crash_file, "a", encoding="utf-8") as f:
                f.write(msg + "\n")
        except OSError as e:
            logger.error(f"Could not write crash log {crash_file}: {e}")
        logger.critical("UNHANDLED EXCEPTION\n" + msg)
        sys.exit(1)

    sys.excepthook = excepthook
