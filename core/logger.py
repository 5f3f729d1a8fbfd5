"""
Logging setup and management for the chaos tool.
"""

import os
import logging
import datetime
import glob
from pathlib import Path

LOG_PREFIX = 'chaos-'


def setup_logging(log_folder, max_log_files: int = 5, verbose: bool = False) -> Path:
    """
    Set up logging configuration.

    Args:
        log_folder: Directory to store log files
        max_log_files: Maximum number of log files to keep
        verbose: Log at DEBUG level instead of INFO

    Returns:
        Path to the current log file
    """
    logs_folder = Path(log_folder)
    os.makedirs(logs_folder, exist_ok=True)

    # Generate unique log file name
    current_time = datetime.datetime.now().strftime("%Y%m%d-%H%M%S")
    log_file = logs_folder / f'{LOG_PREFIX}{current_time}.log'

    # Clean up old log files (the new one is created below)
    cleanup_old_logs(logs_folder, max_log_files - 1)

    # Configure logging
    log_formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")
    log_handler = logging.FileHandler(log_file, encoding='utf-8')
    log_handler.setFormatter(log_formatter)

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # One file handler per process, even when commands run repeatedly in-process
    for handler in list(logger.handlers):
        if getattr(handler, '_chaos_log', False):
            logger.removeHandler(handler)
            handler.close()

    log_handler._chaos_log = True
    logger.addHandler(log_handler)

    return log_file


def cleanup_old_logs(logs_folder: Path, max_files: int):
    """
    Remove old log files, keeping only the most recent ones.

    Args:
        logs_folder: Directory containing log files
        max_files: Maximum number of log files to keep
    """
    existing_logs = sorted(glob.glob(str(logs_folder / f'{LOG_PREFIX}*.log')))
    while len(existing_logs) > max(max_files, 0):
        try:
            os.remove(existing_logs.pop(0))
        except OSError as e:
            logging.warning(f"Could not remove old log file: {e}")
