"""
Filesystem error taxonomy.

Every error carries the operation and path it concerns, a stable code, and
the errno a protocol layer should report.
"""
import errno
from contextlib import contextmanager

from bucketfs.client import exceptions as storage


class FsError(Exception):
    """Base exception for filesystem adapter errors."""
    code = "ERR_FS"
    errno = errno.EIO

    def __init__(self, message: str, path: str = None, operation: str = None):
        self.message = message
        self.path = path
        self.operation = operation
        super().__init__(message)

    def __str__(self):
        context = " ".join(part for part in (self.operation, self.path) if part)
        if context:
            return f"{self.code}: {context}: {self.message}"
        return f"{self.code}: {self.message}"

class NotFoundError(FsError):
    """Name or identifier resolves to nothing."""
    code = "ERR_NOT_FOUND"
    errno = errno.ENOENT

class PermissionDeniedError(FsError):
    """Mutating operation attempted in read-only mode."""
    code = "ERR_PERMISSION"
    errno = errno.EACCES

class UnsupportedOperationError(FsError):
    """Operation has no mapping onto the object store."""
    code = "ERR_UNSUPPORTED"
    errno = errno.ENOTSUP

class InvalidArgumentError(FsError):
    """Malformed request argument."""
    code = "ERR_INVALID"
    errno = errno.EINVAL

class TypeMismatchError(FsError):
    """File operation on a directory."""
    code = "ERR_TYPE"
    errno = errno.EISDIR

class NotDirectoryError(TypeMismatchError):
    """Directory operation on a file."""
    errno = errno.ENOTDIR

class BackendError(FsError):
    """Storage backend failure, chained to the original error."""
    code = "ERR_BACKEND"
    errno = errno.EIO


@contextmanager
def translate_errors(operation: str, path: str):
    """
    Re-raise storage errors as filesystem errors with request context.

    A storage NotFoundError becomes NotFoundError; any other StorageError
    becomes BackendError. FsError passes through, gaining the operation and
    path if it was raised without them.
    """
    try:
        yield
    except FsError as e:
        if e.operation is None:
            e.operation = operation
        if e.path is None:
            e.path = path
        raise
    except storage.NotFoundError as e:
        raise NotFoundError(e.message, path=path, operation=operation) from e
    except storage.StorageError as e:
        raise BackendError(str(e), path=path, operation=operation) from e
