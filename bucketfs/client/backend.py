"""
Backend Client contract.

The filesystem adapter talks to object storage only through this interface.
Implementations own connection pooling, retries and consistency; every call
blocks and takes the request Context first.
"""
from abc import ABC, abstractmethod
from typing import Iterable, List

from .context import Context
from .ids import ContainerID, ObjectID
from .types import ContainerHeader, ContainerInfo, ObjectHeader, SearchFilters

# Default upper bound for one payload chunk sent to the backend.
DEFAULT_MAX_CHUNK_SIZE = 4 * 1024 * 1024  # 4MB


class Backend(ABC):
    """
    Abstract storage backend.

    Attributes:
        owner_id (str): Identity owning containers and objects created through
            this backend.
        max_chunk_size (int): Largest payload chunk accepted by put_object.
    """

    @property
    @abstractmethod
    def owner_id(self) -> str:
        ...

    @property
    def max_chunk_size(self) -> int:
        return DEFAULT_MAX_CHUNK_SIZE

    @abstractmethod
    def head_object(self, ctx: Context, container_id: ContainerID, object_id: ObjectID) -> ObjectHeader:
        """
        Fetch object metadata.

        Raises:
            NotFoundError: If the object does not exist.
        """

    @abstractmethod
    def get_object_range(self, ctx: Context, container_id: ContainerID, object_id: ObjectID,
                         offset: int, length: int) -> bytes:
        """Fetch `length` payload bytes starting at `offset`."""

    @abstractmethod
    def put_object(self, ctx: Context, header: ObjectHeader, payload: Iterable[bytes]) -> ObjectID:
        """
        Store a new object.

        Args:
            ctx (Context): Request context
            header (ObjectHeader): Container, owner and attributes of the object
            payload (Iterable[bytes]): Payload chunks, each at most max_chunk_size

        Returns:
            ObjectID: Identifier assigned by the backend
        """

    @abstractmethod
    def delete_object(self, ctx: Context, container_id: ContainerID, object_id: ObjectID) -> None:
        ...

    @abstractmethod
    def search_objects(self, ctx: Context, container_id: ContainerID, filters: SearchFilters) -> List[ObjectID]:
        ...

    @abstractmethod
    def get_container(self, ctx: Context, container_id: ContainerID) -> ContainerInfo:
        """
        Fetch container metadata.

        Raises:
            NotFoundError: If the container does not exist.
        """

    @abstractmethod
    def list_containers(self, ctx: Context, owner: str) -> List[ContainerID]:
        ...

    @abstractmethod
    def put_container(self, ctx: Context, header: ContainerHeader) -> ContainerID:
        ...

    @abstractmethod
    def delete_container(self, ctx: Context, container_id: ContainerID) -> None:
        ...

    def close(self) -> None:
        """Release connections held by the backend."""
