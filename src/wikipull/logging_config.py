import logging
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "wikipull"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure the ``wikipull`` logger for one run.

    Console records go to stdout at ``level``. When a log file is given it
    receives every record down to DEBUG, so a failed batch can be diagnosed
    afterwards without rerunning it verbosely. Calling again replaces the
    handlers installed by the previous call.

    Args:
        level: Console level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file that receives the full debug log

    Returns:
        The configured logger
    """
    console_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger(LOGGER_NAME)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG if log_file is not None else console_level)
    # Handlers above already print everything; the root logger would duplicate it
    logger.propagate = False

    return logger
