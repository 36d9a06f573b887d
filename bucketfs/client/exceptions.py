"""
Storage-side error taxonomy.

Every backend reports failures as a StorageError subclass carrying a short
machine-readable code (ERR_NOT_FOUND, ERR_OBJECT_HEAD, ...). The filesystem
layer only distinguishes NotFoundError from everything else; the codes are
for logs and for callers that talk to a backend directly.
"""

from typing import Optional


def _scoped_code(scope: str, operation: Optional[str]) -> str:
    # ERR_<SCOPE> or ERR_<SCOPE>_<OPERATION>
    if not operation:
        return f"ERR_{scope}"
    return f"ERR_{scope}_{operation.upper()}"


class StorageError(Exception):
    """
    Base class for failures reported by a storage backend.

    Attributes:
        code (str): Machine-readable error code
        message (str): Human-readable description
    """

    def __init__(self, message: str, code: str = "ERR_UNKNOWN"):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


class NotFoundError(StorageError):
    """The container or object does not exist, or is not visible to the owner."""

    def __init__(self, message: str):
        super().__init__(message, code="ERR_NOT_FOUND")


class AuthenticationError(StorageError):
    """The backend rejected the owner's credentials."""

    def __init__(self, message: str):
        super().__init__(message, code="ERR_AUTH")


class ContainerError(StorageError):
    """
    A container call failed.

    The operation (LIST, GET, PUT, DELETE, AUTH, CREATE) is folded into the
    code, e.g. ERR_CONTAINER_DELETE.
    """

    def __init__(self, message: str, operation: Optional[str] = None):
        self.operation = operation
        super().__init__(message, code=_scoped_code("CONTAINER", operation))


class ObjectError(StorageError):
    """An object call (HEAD, RANGE, PUT, DELETE, SEARCH) failed."""

    def __init__(self, message: str, operation: Optional[str] = None):
        self.operation = operation
        super().__init__(message, code=_scoped_code("OBJECT", operation))


class CancelledError(StorageError):
    """The request context was cancelled before the call finished."""

    def __init__(self, message: str = "Request cancelled"):
        super().__init__(message, code="ERR_CANCELED")


class DeadlineExceededError(StorageError):
    """The request context deadline passed."""

    def __init__(self, message: str = "Request timed out"):
        super().__init__(message, code="ERR_TIMEOUT")


class ConfigurationError(StorageError):
    """Invalid mount settings or an unusable backend factory."""

    def __init__(self, message: str):
        super().__init__(message, code="ERR_CONFIG")
