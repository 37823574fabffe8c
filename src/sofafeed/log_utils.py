import logging
import os
from typing import Optional

from rich.logging import RichHandler

from sofafeed.constants import (
    DEBUG_LOG_FORMAT,
    INFO_LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_LEVEL_ENV_VAR,
    LOGGER_NAME,
)

logger = logging.getLogger(LOGGER_NAME)


def _resolve_level(level_name: str) -> Optional[int]:
    """
    Translate a case-insensitive level name such as "debug" into a logging level.

    Returns:
        Optional[int]: The numeric level, or None when the name is not a logging level.
    """
    level = getattr(logging, level_name.upper(), None)
    return level if isinstance(level, int) else None


def set_log_level(level_name: str) -> None:
    """
    Set the log level for the sofafeed logger and reconfigure all attached handlers.

    If `level_name` is not a valid logging level name (e.g., "DEBUG", "INFO"), the function
    logs a warning and leaves the current configuration unchanged.

    RichHandler instances always get a message-only formatter since Rich renders time and
    level itself. Any other handler a caller attached gets INFO_LOG_FORMAT for INFO and
    above, and DEBUG_LOG_FORMAT (which adds the logger name) below INFO.

    Parameters:
        level_name (str): Case-insensitive name of the desired logging level.
    """
    level = _resolve_level(level_name)
    if level is None:
        logger.warning(f"Invalid log level name: {level_name}. Using current level.")
        return

    logger.setLevel(level)

    for handler in logger.handlers:
        handler.setLevel(level)

        if isinstance(handler, RichHandler):
            formatter = logging.Formatter("%(message)s")
        elif level >= logging.INFO:
            formatter = logging.Formatter(INFO_LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        else:
            formatter = logging.Formatter(DEBUG_LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

        handler.setFormatter(formatter)

    logger.log(level, f"Log level set to {logging.getLevelName(level)}")


def _initialize_logger() -> None:
    """
    Initialize the sofafeed logger with a console RichHandler and an initial log level.

    This removes any existing handlers, disables propagation to the root logger, and
    attaches a RichHandler configured for console output. The initial level is read from
    the environment variable named by LOG_LEVEL_ENV_VAR (defaults to "INFO" if unset or
    invalid) and applied to both the logger and the console handler.
    """
    logger.propagate = False

    # Drop handlers left over from earlier imports (interactive sessions, test reloads)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        rich_tracebacks=True,
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
        log_time_format=LOG_DATE_FORMAT,
    )
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    default_log_level = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO").upper()
    initial_level = _resolve_level(default_log_level)
    if initial_level is None:
        logger.warning(
            f"Invalid {LOG_LEVEL_ENV_VAR}={default_log_level}; defaulting to INFO."
        )
        initial_level = logging.INFO

    logger.setLevel(initial_level)
    console_handler.setLevel(initial_level)


# Initialize the logger when the module is imported
_initialize_logger()
