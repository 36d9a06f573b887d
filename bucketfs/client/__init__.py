"""
Storage backend client layer.

The filesystem adapter consumes storage exclusively through `Backend`.
"""
from .backend import Backend
from .context import Context
from .exceptions import StorageError, NotFoundError
from .ids import ContainerID, ObjectID
from .memory import MemoryBackend
from .retry import RetryingBackend

__all__ = [
    "Backend",
    "Context",
    "ContainerID",
    "MemoryBackend",
    "NotFoundError",
    "ObjectID",
    "RetryingBackend",
    "StorageError",
]
