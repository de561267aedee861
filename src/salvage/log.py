"""File logging for the salvage logger hierarchy."""
import logging
import os
from datetime import datetime

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def configure_logging(log_dir: str = "logs/", level: str | int = "INFO") -> str:
    """Send ``salvage.*`` log records to a timestamped file.

    Creates log_dir if needed and attaches a file handler to the "salvage"
    logger. Propagation is disabled so nothing reaches the console. Handlers
    from an earlier call are replaced.

    Args:
        log_dir: Directory for the log file.
        level: Level name or number for the salvage logger.

    Returns:
        Path of the log file.

    Raises:
        ValueError: If level is not a known level name.
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved

    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, f"{datetime.now().strftime('%Y%m%d%H%M%S')}-{os.getpid()}.log")

    logger = logging.getLogger("salvage")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    file_handler = logging.FileHandler(log_path)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)
    logger.setLevel(level)
    logger.propagate = False

    logger.debug(f"Log file: {log_path}")
    return log_path
