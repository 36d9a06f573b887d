import os

import pytest

from bucketfs.client.context import Context
from bucketfs.client.memory import MemoryBackend
from bucketfs.client.types import ATTRIBUTE_FILE_NAME, ContainerHeader, ObjectHeader
from bucketfs.fs.dispatcher import Dispatcher
from bucketfs.fs.requests import Request

BACKEND_METHODS = (
    "head_object",
    "get_object_range",
    "put_object",
    "delete_object",
    "search_objects",
    "get_container",
    "list_containers",
    "put_container",
    "delete_container",
)


class CountingBackend(MemoryBackend):
    """MemoryBackend that records the name of every backend call."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.calls = []

    def reset_calls(self):
        self.calls.clear()


def _counted(name):
    def method(self, *args, **kwargs):
        self.calls.append(name)
        return getattr(MemoryBackend, name)(self, *args, **kwargs)
    method.__name__ = name
    return method


for _name in BACKEND_METHODS:
    setattr(CountingBackend, _name, _counted(_name))


def pytest_configure(config):
    """Configure test environment."""
    # Tracing would only add noise to captured logs
    os.environ.pop("BUCKETFS_TRACE_OPS", None)


@pytest.fixture
def ctx():
    return Context.background()


@pytest.fixture
def backend():
    """Counting in-memory backend with a small chunk size."""
    return CountingBackend(owner_id="tester", max_chunk_size=16)


@pytest.fixture
def make_bucket(backend, ctx):
    """Create a bucket directly in the backend and return its ContainerID."""
    def _make(name):
        header = ContainerHeader(owner=backend.owner_id, name=name, policy="REP 1")
        return backend.put_container(ctx, header)
    return _make


@pytest.fixture
def put_raw(backend, ctx):
    """Store an object directly in the backend, bypassing the writer."""
    def _put(container_id, name, data=b"", **attributes):
        attrs = {ATTRIBUTE_FILE_NAME: name} if name is not None else {}
        attrs.update(attributes)
        header = ObjectHeader(container_id=container_id, owner=backend.owner_id, attributes=attrs)
        chunks = [data[i:i + backend.max_chunk_size] for i in range(0, len(data), backend.max_chunk_size)]
        return backend.put_object(ctx, header, chunks)
    return _put


@pytest.fixture
def seeded(make_bucket, put_raw, backend):
    """Bucket b1 holding hello.txt; backend call log cleared."""
    container_id = make_bucket("b1")
    object_id = put_raw(container_id, "hello.txt", b"hello, world")
    backend.reset_calls()
    return container_id, object_id


@pytest.fixture
def dispatcher(backend):
    return Dispatcher(backend, read_only=False, request_timeout=5.0)


@pytest.fixture
def ro_dispatcher(backend):
    return Dispatcher(backend, read_only=True, request_timeout=5.0)


@pytest.fixture
def write_file(dispatcher):
    """Write content through the dispatcher and return the committed entry."""
    def _write(path, data):
        writer = dispatcher.handle(Request.parse("Put", path))
        writer.write_at(data, 0)
        return writer.close()
    return _write
