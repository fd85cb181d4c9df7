import sys
from pathlib import Path

from loguru import logger

LOG_FILE_NAME = "pbr-switch.log"


def setup_logging(log_level: str = "INFO", log_dir: Path | None = None) -> Path | None:
    """
    Route loguru output to stderr and, when a directory is given, a rotating file.

    Returns the log file path, or None when only stderr is configured.
    """
    logger.remove()

    logger.add(
        sys.stderr,
        format=(
            "<green>{time:HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}:{function}</cyan> | "
            "{message}"
        ),
        level=log_level.upper(),
        colorize=True,
    )

    if log_dir is None:
        logger.debug(f"Logging to stderr at {log_level} level")
        return None

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    logger.add(
        log_file,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} | {message}",
        level=log_level.upper(),
        rotation="10 MB",
        retention="7 days",
        compression="zip",
        colorize=False,
    )

    logger.info(f"Logging initialized at {log_level} level ({log_file})")
    return log_file
