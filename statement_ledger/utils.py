"""
Utility functions for the statement ledger.

This module contains helpers used by the command line entry point that are
not part of statement processing itself.
"""

import os
import pathlib
import logging

logger = logging.getLogger(__name__)

def setup_logging(debug=False, log_level='info'):
    """Configure logging for the application.

    Args:
        debug (bool): Force DEBUG level
        log_level (str): Level name used when debug is False

    Returns:
        str: Path of the log file (from LOG_FILE, default 'debug.log')
    """
    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    log_file = os.getenv('LOG_FILE', 'debug.log')

    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    # Set up logging to file and console
    logging.basicConfig(
        level=level,
        format=format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )

    return log_file

def ensure_directory(dir_type):
    """Ensure a working directory exists under DATA_DIR (default: cwd).

    Args:
        dir_type (str): Type of directory ('output', 'logs', 'data')

    Returns:
        pathlib.Path: Path to the directory

    Raises:
        ValueError: If dir_type is invalid
    """
    valid_dir_types = ['output', 'logs', 'data']
    if dir_type not in valid_dir_types:
        raise ValueError(f"Invalid directory type: {dir_type}. Expected one of: {valid_dir_types}")

    base_dir = os.getenv('DATA_DIR', os.getcwd())
    dir_path = pathlib.Path(base_dir) / dir_type
    dir_path.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Using {dir_type} directory {dir_path}")
    return dir_path
