from .defaults import DEFAULT_LOGS_DIR, DEFAULT_STORAGE_PATH
from typing import Optional, Union
from pathlib import Path
from loguru import logger
import sys

__all__ = ["logger", "setup_logging"]


def setup_logging(level: str = "INFO", storage_path: Optional[Union[str, Path]] = None, log_to_file: bool = True):
    """Console sink at `level`, plus a daily rotated DEBUG file sink under `<storage_path>/logs`."""

    logger.remove()

    # Console output (INFO and above by default)
    logger.add(sys.stderr, level=level)

    if not log_to_file:
        return logger

    logs_dir = Path(storage_path or DEFAULT_STORAGE_PATH) / DEFAULT_LOGS_DIR
    logs_dir.mkdir(exist_ok=True, parents=True)

    # File output (DEBUG and above, rotated daily, kept for 5 days)
    logger.add(
        logs_dir / "repotide_{time:YYYY-MM-DD}.log",
        level="DEBUG",
        rotation="00:00",
        retention="5 days",
        enqueue=True,
        backtrace=True,
        diagnose=False,
        compression="zip",
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"
    )
    return logger
