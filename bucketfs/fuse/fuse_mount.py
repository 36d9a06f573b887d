# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
FUSE implementation for bucketfs.

This module turns kernel file operations into dispatcher requests. Buckets
are the directories under the mount root and objects the files inside them.
Every operation goes through the Dispatcher, so the read-only gate, the depth
limit and error translation apply exactly as for any other protocol.

Usage:
    # Mount the configured store
    python -m bucketfs.fuse /mnt/buckets --config bucketfs.yaml

    # Buckets are directories, objects are files
    mkdir /mnt/buckets/photos
    cp cat.jpg /mnt/buckets/photos/
    ls /mnt/buckets/photos
"""

import argparse
import errno
import itertools
import os
import sys
import time
from threading import Lock
from typing import Dict, Union

from fuse import FUSE, FuseOSError, Operations

from bucketfs import __version__
from bucketfs.client.exceptions import ConfigurationError
from bucketfs.config import Settings, build_backend, build_dispatcher
from bucketfs.fs.dispatcher import Dispatcher
from bucketfs.fs.entries import DirEntry
from bucketfs.fs.errors import FsError
from bucketfs.fs.requests import Method, Request
from bucketfs.fs.streams import ObjectReader, ObjectWriter
from bucketfs.fs.utils import default_logger, setup_logging, time_function, trace_op
from .mount_utils import get_mount_options, prepare_mountpoint, setup_signal_handlers, unmount

Handle = Union[ObjectReader, ObjectWriter]

BLOCK_SIZE = 4096
NAME_MAX = 255


class BucketFS(Operations):
    """
    FUSE operations backed by a Dispatcher.

    Open files are tracked by handle: reads go through an ObjectReader, and
    files opened for writing through an ObjectWriter that uploads the object
    on release.

    Attributes:
        dispatcher (Dispatcher): Request dispatcher
        logger (logging.Logger): Operation logger
    """

    def __init__(self, dispatcher: Dispatcher, logger=None):
        self.dispatcher = dispatcher
        self.logger = logger or default_logger('fuse')
        self._handles: Dict[int, Handle] = {}
        self._writers: Dict[str, int] = {}
        self._fh = itertools.count(1)
        self._lock = Lock()
        self._uid = os.getuid()
        self._gid = os.getgid()

    def __call__(self, op, *args):
        """
        Run one operation, converting errors to errno codes.

        Filesystem errors carry their own errno. Anything unexpected is
        logged and reported as EIO.
        """
        if not hasattr(self, op):
            raise FuseOSError(errno.ENOSYS)
        trace_op(self.logger, op, args[0] if args else None)
        start_time = time.time()
        try:
            return getattr(self, op)(*args)
        except FuseOSError:
            raise
        except FsError as e:
            self.logger.debug(f"{op} failed: {e}")
            raise FuseOSError(e.errno) from e
        except Exception as e:
            self.logger.error(f"{op} failed unexpectedly: {e}", exc_info=True)
            raise FuseOSError(errno.EIO) from e
        finally:
            time_function(self.logger, op, start_time)

    def _request(self, method: Method, path: str, target: str = None):
        return self.dispatcher.handle(Request.parse(method, path, target))

    def _register(self, handle: Handle) -> int:
        with self._lock:
            fh = next(self._fh)
            self._handles[fh] = handle
            if isinstance(handle, ObjectWriter):
                self._writers[handle.path] = fh
        return fh

    def _handle(self, fh) -> Handle:
        handle = self._handles.get(fh)
        if handle is None:
            raise FuseOSError(errno.EBADF)
        return handle

    def _open_writer(self, path: str):
        """The writer currently staging content for path, if any."""
        with self._lock:
            fh = self._writers.get(path)
            return self._handles.get(fh) if fh is not None else None

    def _attributes(self, entry: DirEntry) -> dict:
        mtime = entry.mod_time.timestamp()
        return {
            'st_mode': entry.mode,
            'st_nlink': 2 if entry.is_dir else 1,
            'st_size': entry.size,
            'st_uid': self._uid,
            'st_gid': self._gid,
            'st_atime': mtime,
            'st_mtime': mtime,
            'st_ctime': mtime,
            'st_blksize': BLOCK_SIZE,
            'st_blocks': (entry.size + 511) // 512,
        }

    def getattr(self, path, fh=None):
        """
        Get file attributes.

        A file that is still being written reports its staged size, so the
        kernel sees the file between create and release.

        Args:
            path (str): Path to the file or directory
            fh (int, optional): File handle

        Returns:
            dict: File attributes
        """
        writer = self._handles.get(fh) if fh else None
        if not isinstance(writer, ObjectWriter):
            writer = self._open_writer(path)
        if writer is not None and not writer.closed:
            attrs = self._attributes(writer.entry)
            attrs['st_size'] = writer.size()
            return attrs

        listing = self._request(Method.STAT, path)
        return self._attributes(next(iter(listing)))

    def readdir(self, path, fh):
        """
        List the buckets under the root or the objects in a bucket.

        Returns:
            list: '.', '..' and one name per entry, duplicates already folded
        """
        listing = self._request(Method.LIST, path)
        return ['.', '..'] + [entry.name for entry in listing]

    def open(self, path, flags):
        """
        Open a file for reading, or for writing a new object.

        Objects cannot be updated in place, so opening for write is only
        accepted with O_TRUNC. Releasing such a handle on an existing name
        creates a second object under the same name; reads keep resolving
        the first one.

        Args:
            path (str): Path to the file
            flags (int): Open flags

        Returns:
            int: File handle
        """
        if flags & os.O_ACCMODE == os.O_RDONLY:
            return self._register(self._request(Method.GET, path))

        writer = self._request(Method.OPEN, path)
        if not flags & os.O_TRUNC:
            writer.abort()
            self.logger.warning(f"open: {path} opened for update without O_TRUNC")
            raise FuseOSError(errno.ENOTSUP)
        return self._register(writer)

    def create(self, path, mode, fi=None):
        """
        Create a new file.

        Nothing reaches the backend until the file is released.

        Returns:
            int: File handle
        """
        return self._register(self._request(Method.PUT, path))

    def read(self, path, size, offset, fh):
        handle = self._handle(fh)
        if isinstance(handle, ObjectWriter):
            return handle.read_at(size, offset)
        return handle.read_at(size, offset).data

    def write(self, path, data, offset, fh):
        handle = self._handle(fh)
        if not isinstance(handle, ObjectWriter):
            raise FuseOSError(errno.EBADF)
        return handle.write_at(data, offset)

    def truncate(self, path, length, fh=None):
        """
        Truncate a file that is being written.

        A stored object can only be truncated to zero. That is accepted so
        that an O_TRUNC open can follow, but the stored object is left as it
        is; the upload on release creates a second object under the same name.
        """
        writer = self._handles.get(fh) if fh else None
        if not isinstance(writer, ObjectWriter):
            writer = self._open_writer(path)
        if writer is not None:
            writer.truncate(length)
            return 0

        self._request(Method.STAT, path)
        if length != 0:
            raise FuseOSError(errno.ENOTSUP)
        self._request(Method.SETSTAT, path)
        return 0

    def flush(self, path, fh):
        return 0

    def release(self, path, fh):
        """
        Release the file handle; a writer uploads its object here.

        Returns:
            int: 0 on success
        """
        with self._lock:
            handle = self._handles.pop(fh, None)
            if isinstance(handle, ObjectWriter) and self._writers.get(handle.path) == fh:
                del self._writers[handle.path]
        if isinstance(handle, ObjectWriter):
            entry = handle.close()
            self.logger.info(f"release: committed {path} as {entry.object_id}")
        return 0

    def mkdir(self, path, mode):
        self._request(Method.MKDIR, path)
        return 0

    def rmdir(self, path):
        self._request(Method.RMDIR, path)
        return 0

    def unlink(self, path):
        self._request(Method.REMOVE, path)
        return 0

    def readlink(self, path):
        self._request(Method.READLINK, path)

    def rename(self, old, new):
        self._request(Method.RENAME, old, new)

    def link(self, target, source):
        self._request(Method.LINK, target, source)

    def symlink(self, target, source):
        self._request(Method.SYMLINK, target, source)

    def chmod(self, path, mode):
        self._request(Method.SETSTAT, path)
        return 0

    def chown(self, path, uid, gid):
        self._request(Method.SETSTAT, path)
        return 0

    def utimens(self, path, times=None):
        self._request(Method.SETSTAT, path)
        return 0

    def statfs(self, path):
        return {
            'f_bsize': BLOCK_SIZE,
            'f_frsize': BLOCK_SIZE,
            'f_namemax': NAME_MAX,
        }

    def destroy(self, path):
        """Discard writers that were never released."""
        with self._lock:
            pending = [h for h in self._handles.values() if isinstance(h, ObjectWriter)]
            self._handles.clear()
            self._writers.clear()
        for writer in pending:
            self.logger.warning(f"destroy: discarding unreleased write to {writer.path}")
            writer.abort()


def mount(dispatcher: Dispatcher, mountpoint: str, foreground: bool = True,
          allow_other: bool = False, logger=None):
    """
    Mount the store at the specified mountpoint.

    Args:
        dispatcher (Dispatcher): Dispatcher serving the filesystem
        mountpoint (str): Local path where the filesystem should be mounted
        foreground (bool, optional): Run in foreground. Defaults to True.
        allow_other (bool, optional): Allow other users to access the mount.
            Requires 'user_allow_other' in /etc/fuse.conf. Defaults to False.
        logger (logging.Logger, optional): Parent logger
    """
    logger = logger or default_logger('mount')
    logger.info(f"Mounting at {mountpoint} (read_only={dispatcher.read_only})")
    start_time = time.time()

    prepare_mountpoint(mountpoint, logger=logger)
    options = get_mount_options(foreground, allow_other, read_only=dispatcher.read_only)
    setup_signal_handlers(mountpoint, lambda mp: unmount(mp, logger=logger), logger=logger)

    try:
        logger.info(f"Starting FUSE mount with options: {options}")
        FUSE(BucketFS(dispatcher, logger=logger.getChild('ops')), mountpoint, nothreads=False, **options)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, unmounting...")
        unmount(mountpoint, logger=logger)
    except RuntimeError as e:
        logger.error(f"Error during mount: {e}")
        unmount(mountpoint, logger=logger)
        raise
    finally:
        time_function(logger, "mount", start_time)


def build_parser():
    parser = argparse.ArgumentParser(prog='bucketfs-mount',
                                     description='Mount an object store as a two-level filesystem')
    parser.add_argument('mountpoint', help='The directory to mount the store on')
    parser.add_argument('--config', help='Path to a YAML configuration file')
    parser.add_argument('-R', '--read-only', action='store_true', default=None,
                        help='Reject every operation that would modify the store')
    parser.add_argument('-e', '--debug-stderr', action='store_true', default=None,
                        help='Write log records to stderr')
    parser.add_argument('-l', '--debug-level',
                        help='Log level (DEBUG, INFO, WARNING, ERROR)')
    parser.add_argument('--allow-other', action='store_true',
                        help='Allow other users to access the mount (requires user_allow_other in /etc/fuse.conf)')
    parser.add_argument('--trace', action='store_true',
                        help='Enable detailed tracing of file operations for debugging')
    parser.add_argument('-v', '--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def load_settings(args) -> Settings:
    """Settings from the config file and environment, with command line flags on top."""
    settings = Settings.load(args.config)
    if args.read_only is not None:
        settings.read_only = args.read_only
    if args.debug_stderr is not None:
        settings.debug_stderr = args.debug_stderr
    if args.debug_level:
        settings.debug_level = args.debug_level
    settings.validate()
    return settings


def main(argv=None):
    """
    CLI entry point for mounting the store.

    Usage:
        python -m bucketfs.fuse <mountpoint> [--config FILE] [-R] [-e] [-l LEVEL]

    Returns:
        int: Process exit code
    """
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args)
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    # Set trace environment variable if requested
    if args.trace:
        os.environ['BUCKETFS_TRACE_OPS'] = 'true'

    logger = setup_logging(settings.debug_level, settings.debug_stderr)
    logger.info(f"Starting bucketfs {__version__} with arguments: {sys.argv}")

    try:
        backend = build_backend(settings, logger)
    except ConfigurationError as e:
        logger.error(f"Cannot create backend: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 2

    dispatcher = build_dispatcher(settings, backend, logger)
    try:
        mount(dispatcher, args.mountpoint, allow_other=args.allow_other, logger=logger.getChild('mount'))
    except (OSError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        backend.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
