# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Mount utilities for the bucketfs FUSE filesystem.

This module provides functions for unmounting, signal handling and the
option set passed to FUSE.
"""

import os
import signal
import subprocess
import sys
import time

from bucketfs.fs.utils import default_logger, time_function

# Short attribute caching: other clients may add or delete objects at any time
ATTR_TIMEOUT = 1.0

def is_mounted(mountpoint):
    """
    Check whether a path is an active mount point.

    Args:
        mountpoint (str): Path to check

    Returns:
        bool: True if something is mounted there
    """
    cp = subprocess.run(["mountpoint", "-q", mountpoint.rstrip('/') or '/'], check=False)
    return cp.returncode == 0

def unmount(mountpoint, logger=None):
    """
    Unmount the filesystem using fusermount (Linux).

    Args:
        mountpoint (str): Path where the filesystem is mounted
        logger (logging.Logger, optional): Where progress is logged

    Returns:
        bool: True if the mount point is no longer mounted
    """
    logger = logger or default_logger('mount')
    logger.info(f"Unmounting filesystem at {mountpoint}")
    start_time = time.time()

    # Normalize mountpoint (remove trailing slash)
    mountpoint = mountpoint.rstrip('/')
    try:
        if not is_mounted(mountpoint):
            logger.warning(f"{mountpoint} is not mounted, nothing to unmount.")
            return True

        subprocess.run(["fusermount", "-u", mountpoint], check=True)
        logger.info(f"Unmounted {mountpoint} gracefully.")
        return True
    except (OSError, subprocess.CalledProcessError) as e:
        logger.error(f"Error during unmounting {mountpoint}: {e}")
        return False
    finally:
        time_function(logger, "unmount", start_time)

def setup_signal_handlers(mountpoint, unmount_func, logger=None):
    """
    Set up signal handlers for graceful unmounting.

    Handles SIGINT and SIGTERM so that the filesystem is unmounted when the
    process is terminated.

    Args:
        mountpoint (str): Path where the filesystem is mounted
        unmount_func (callable): Function to call for unmounting
        logger (logging.Logger, optional): Where the signal is logged

    Returns:
        callable: The signal handler function
    """
    logger = logger or default_logger('mount')

    def signal_handler(sig, frame):
        logger.info(f"Signal {sig} received, unmounting...")
        unmount_func(mountpoint)
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    return signal_handler

def get_mount_options(foreground=True, allow_other=False, read_only=False):
    """
    Get standard mount options for FUSE.

    Objects are write-once, so the kernel is asked to hand O_TRUNC to open
    instead of issuing a separate truncate, and attributes are cached only
    briefly.

    Args:
        foreground (bool, optional): Run in foreground. Defaults to True.
        allow_other (bool, optional): Allow other users to access the mount.
            Requires 'user_allow_other' in /etc/fuse.conf. Defaults to False.
        read_only (bool, optional): Mount read-only. Defaults to False.

    Returns:
        dict: Dictionary of mount options
    """
    options = {
        'foreground': foreground,
        'fsname': 'bucketfs',
        'default_permissions': True,
        'big_writes': True,
        'atomic_o_trunc': True,
        'entry_timeout': ATTR_TIMEOUT,
        'attr_timeout': ATTR_TIMEOUT,
        'negative_timeout': 0,
    }
    if read_only:
        options['ro'] = True
    else:
        options['rw'] = True

    # Only add allow_other if explicitly requested
    if allow_other:
        options['allow_other'] = True

    return options

def prepare_mountpoint(mountpoint, logger=None):
    """
    Make sure the mount point is an existing, unmounted directory.

    Args:
        mountpoint (str): Local path where the filesystem should be mounted
        logger (logging.Logger, optional): Where progress is logged

    Raises:
        NotADirectoryError: If the path exists but is not a directory
        RuntimeError: If a previous mount cannot be removed
    """
    logger = logger or default_logger('mount')
    if os.path.exists(mountpoint):
        if not os.path.isdir(mountpoint):
            raise NotADirectoryError(f"{mountpoint} exists but is not a directory")
    else:
        logger.info(f"Mountpoint {mountpoint} does not exist, creating it...")
        os.makedirs(mountpoint, mode=0o755)

    try:
        mounted = is_mounted(mountpoint)
    except OSError as e:
        # mountpoint(1) missing; let FUSE report a busy mount point itself
        logger.warning(f"Could not check if {mountpoint} is mounted: {e}")
        return
    if mounted:
        logger.warning(f"Mountpoint {mountpoint} is already mounted, unmounting first")
        if not unmount(mountpoint, logger=logger):
            raise RuntimeError(f"Failed to unmount {mountpoint}; try: fusermount -u {mountpoint}")
