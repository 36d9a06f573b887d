"""
In-memory storage backend.

Implements the full Backend contract against process-local dictionaries.
Used by the test-suite and by the `memory` backend setting for local
development mounts. Enumeration order is insertion order.
"""
import logging
from dataclasses import replace
from threading import RLock
from typing import Dict, Iterable, List

from .backend import Backend, DEFAULT_MAX_CHUNK_SIZE
from .context import Context
from .exceptions import NotFoundError, ObjectError
from .ids import ContainerID, ObjectID
from .types import (
    CONTAINER_ATTRIBUTE_NAME,
    ContainerHeader,
    ContainerInfo,
    ObjectHeader,
    SearchFilters,
)


class _StoredObject:
    __slots__ = ("header", "payload")

    def __init__(self, header: ObjectHeader, payload: bytes):
        self.header = header
        self.payload = payload


class MemoryBackend(Backend):
    """
    Dictionary-backed storage.

    Attributes:
        containers (dict): ContainerID -> ContainerInfo
        objects (dict): ContainerID -> {ObjectID -> stored object}
        lock (threading.RLock): Guards both maps
    """

    def __init__(self, owner_id: str = "bucketfs", max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
                 logger: logging.Logger = None):
        self._owner_id = owner_id
        self._max_chunk_size = max_chunk_size
        self.logger = logger or logging.getLogger("bucketfs.client.memory")
        self.containers: Dict[ContainerID, ContainerInfo] = {}
        self.objects: Dict[ContainerID, Dict[ObjectID, _StoredObject]] = {}
        self.lock = RLock()

    @property
    def owner_id(self) -> str:
        return self._owner_id

    @property
    def max_chunk_size(self) -> int:
        return self._max_chunk_size

    def _container_objects(self, container_id: ContainerID) -> Dict[ObjectID, _StoredObject]:
        if container_id not in self.containers:
            raise NotFoundError(f"container {container_id} not found")
        return self.objects[container_id]

    def _stored(self, container_id: ContainerID, object_id: ObjectID) -> _StoredObject:
        stored = self._container_objects(container_id).get(object_id)
        if stored is None:
            raise NotFoundError(f"object {container_id}/{object_id} not found")
        return stored

    def head_object(self, ctx: Context, container_id: ContainerID, object_id: ObjectID) -> ObjectHeader:
        ctx.check()
        with self.lock:
            header = self._stored(container_id, object_id).header
            return replace(header, attributes=dict(header.attributes))

    def get_object_range(self, ctx: Context, container_id: ContainerID, object_id: ObjectID,
                         offset: int, length: int) -> bytes:
        ctx.check()
        with self.lock:
            payload = self._stored(container_id, object_id).payload
        if offset < 0 or length < 0 or offset + length > len(payload):
            raise ObjectError(
                f"range [{offset}, {offset + length}) out of bounds for payload of {len(payload)} bytes",
                operation="RANGE")
        return payload[offset:offset + length]

    def put_object(self, ctx: Context, header: ObjectHeader, payload: Iterable[bytes]) -> ObjectID:
        ctx.check()
        parts = []
        for chunk in payload:
            ctx.check()
            if len(chunk) > self._max_chunk_size:
                raise ObjectError(
                    f"chunk of {len(chunk)} bytes exceeds limit {self._max_chunk_size}", operation="PUT")
            parts.append(bytes(chunk))
        data = b"".join(parts)

        with self.lock:
            container = self._container_objects(header.container_id)
            object_id = ObjectID.random()
            stored_header = replace(header, object_id=object_id, payload_size=len(data),
                                    attributes=dict(header.attributes))
            container[object_id] = _StoredObject(stored_header, data)
        self.logger.debug(f"Stored object {header.container_id}/{object_id} ({len(data)} bytes, {len(parts)} chunks)")
        return object_id

    def delete_object(self, ctx: Context, container_id: ContainerID, object_id: ObjectID) -> None:
        ctx.check()
        with self.lock:
            self._stored(container_id, object_id)
            del self.objects[container_id][object_id]

    def search_objects(self, ctx: Context, container_id: ContainerID, filters: SearchFilters) -> List[ObjectID]:
        ctx.check()
        with self.lock:
            return [oid for oid, stored in self._container_objects(container_id).items()
                    if filters.matches(stored.header)]

    def get_container(self, ctx: Context, container_id: ContainerID) -> ContainerInfo:
        ctx.check()
        with self.lock:
            info = self.containers.get(container_id)
            if info is None:
                raise NotFoundError(f"container {container_id} not found")
            return replace(info, attributes=dict(info.attributes))

    def list_containers(self, ctx: Context, owner: str) -> List[ContainerID]:
        ctx.check()
        with self.lock:
            return [cid for cid, info in self.containers.items() if info.owner == owner]

    def put_container(self, ctx: Context, header: ContainerHeader) -> ContainerID:
        ctx.check()
        attributes = dict(header.attributes)
        attributes[CONTAINER_ATTRIBUTE_NAME] = header.name
        with self.lock:
            container_id = ContainerID.random()
            self.containers[container_id] = ContainerInfo(
                container_id=container_id,
                owner=header.owner,
                attributes=attributes,
                policy=header.policy,
                basic_acl=header.basic_acl,
            )
            self.objects[container_id] = {}
        self.logger.debug(f"Created container {container_id} ({header.name})")
        return container_id

    def delete_container(self, ctx: Context, container_id: ContainerID) -> None:
        ctx.check()
        with self.lock:
            if container_id not in self.containers:
                raise NotFoundError(f"container {container_id} not found")
            del self.containers[container_id]
            del self.objects[container_id]
