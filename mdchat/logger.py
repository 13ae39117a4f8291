import sys
import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configures the root logger for the application.

    Console output goes to stderr so generated Markdown on stdout can be
    piped or redirected cleanly.
    """
    # Get root logger
    logger = logging.getLogger()

    # Prevent duplicate handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    # Set the verbosity; a log file always records INFO
    console_level = logging.INFO if verbose else logging.WARNING
    logger.setLevel(logging.INFO if log_file is not None else console_level)

    # Console handler
    formatter = logging.Formatter(LOG_FORMAT)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler.setLevel(console_level)
    logger.addHandler(handler)

    # File handler
    if log_file is not None:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logfile_path(logger_instance: Optional[logging.Logger] = None) -> Optional[str]:
    """
    Retrieves the filename of the first FileHandler attached to the given logger.
    """
    if logger_instance is None:
        logger_instance = logging.getLogger()

    for handler in logger_instance.handlers:
        if isinstance(handler, logging.FileHandler):
            return handler.baseFilename
    return None
