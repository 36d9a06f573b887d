# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Utility functions for the bucketfs adapter.

This module provides logging setup and timing/tracing helpers. Components
never log through a module-level logger; they receive one in their
constructor and pass children down.
"""

import logging
import os
import sys
import time

ROOT_LOGGER_NAME = 'bucketfs'

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s] - %(message)s'

def trace_enabled():
    """Whether BUCKETFS_TRACE_OPS requests a trace of every operation."""
    return os.environ.get('BUCKETFS_TRACE_OPS', '').lower() in ('true', '1', 'yes')

def default_logger(name):
    """
    Logger used when a component is built without one.

    Args:
        name (str): Component name, appended to the package logger name

    Returns:
        logging.Logger: Child of the package logger
    """
    return logging.getLogger(ROOT_LOGGER_NAME).getChild(name)

def setup_logging(level='ERROR', stderr=False):
    """
    Configure the package logger.

    Mirrors the gateway's debug flags: records go to stderr only when
    requested, and are dropped otherwise.

    Args:
        level (str): Level name such as DEBUG, INFO or ERROR
        stderr (bool): Emit records to stderr

    Returns:
        logging.Logger: The configured package logger

    Raises:
        ValueError: If the level name is unknown
    """
    numeric = logging.getLevelName(str(level).upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    if stderr:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    else:
        handler = logging.NullHandler()
    logger.addHandler(handler)
    logger.setLevel(numeric)
    logger.propagate = False
    return logger

def time_function(logger, func_name, start_time):
    """
    Helper function for timing operations.

    Calculates and logs the elapsed time for a function call.

    Args:
        logger (logging.Logger): Where the timing is logged
        func_name (str): Name of the function being timed
        start_time (float): Start time from time.time()

    Returns:
        float: Elapsed time in seconds
    """
    elapsed = time.time() - start_time
    logger.debug(f"{func_name} completed in {elapsed:.4f} seconds")
    return elapsed

def trace_op(logger, operation, path, **details):
    """
    Trace a file operation for debugging purposes.

    Logs detailed information about file operations when the
    BUCKETFS_TRACE_OPS environment variable is set.

    Args:
        logger (logging.Logger): Where the trace is logged
        operation (str): The file operation being performed
        path (str): The path of the file being operated on
        **details: Additional details to log
    """
    if trace_enabled():
        detail_str = ', '.join(f"{k}={v}" for k, v in details.items())
        logger.debug(f"TRACE: {operation} on {path} {detail_str}")
