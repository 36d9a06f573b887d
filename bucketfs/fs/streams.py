# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Random-access streams over write-once objects.

ObjectReader serves each read with exactly one ranged fetch and keeps no
cursor. ObjectWriter stages writes locally and uploads the whole object on
close; until then nothing exists in the backend.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Iterator, NamedTuple, Optional

from bucketfs.client.backend import Backend
from bucketfs.client.context import Context
from bucketfs.client.types import ATTRIBUTE_FILE_NAME, ATTRIBUTE_TIMESTAMP, ObjectHeader
from .buffer import DEFAULT_SPOOL_MAX_SIZE, StagingBuffer
from .entries import BucketEntry, ObjectEntry
from .errors import InvalidArgumentError, translate_errors
from .utils import default_logger, time_function

DEFAULT_READ_CHUNK_SIZE = 1024 * 1024  # 1MB


class ReadResult(NamedTuple):
    """Bytes returned by a read and whether the end of the object was reached."""
    data: bytes
    eof: bool


class ObjectReader:
    """
    Ranged reader bound to one object.

    Attributes:
        entry (ObjectEntry): The object being read
        backend (Backend): Storage backend
        ctx (Context): Default request context for reads
    """

    def __init__(self, entry: ObjectEntry, backend: Backend, ctx: Context = None,
                 logger: logging.Logger = None):
        self.entry = entry
        self.backend = backend
        self.ctx = ctx or Context.background()
        self.logger = logger or default_logger('reader')

    @property
    def path(self) -> str:
        return f"/{self.entry.bucket.name}/{self.entry.name}"

    def read_at(self, length: int, offset: int, ctx: Context = None) -> ReadResult:
        """
        Read up to `length` bytes starting at `offset`.

        Args:
            length (int): Size of the caller's buffer
            offset (int): Position of the first byte
            ctx (Context, optional): Overrides the reader's context for this call

        Returns:
            ReadResult: The data and whether the end of the object was reached.
                A short result always comes with eof set.

        Raises:
            InvalidArgumentError: If offset or length is negative.
            BackendError: If the range fetch fails.
        """
        if offset < 0:
            raise InvalidArgumentError(f"negative offset {offset}", path=self.path, operation="read")
        if length < 0:
            raise InvalidArgumentError(f"negative length {length}", path=self.path, operation="read")

        size = self.entry.size
        if offset >= size:
            return ReadResult(b"", True)
        if length == 0:
            return ReadResult(b"", False)

        clamped = min(length, size - offset)
        start_time = time.time()
        with translate_errors("read", self.path):
            data = self.backend.get_object_range(ctx or self.ctx, self.entry.bucket.container_id,
                                                 self.entry.object_id, offset, clamped)
        time_function(self.logger, "get_object_range", start_time)

        eof = len(data) < length or offset + len(data) >= size
        self.logger.debug(f"Read {len(data)} bytes of {self.path} at offset {offset} (eof={eof})")
        return ReadResult(data, eof)

    def iter_chunks(self, chunk_size: int = DEFAULT_READ_CHUNK_SIZE) -> Iterator[bytes]:
        """Iterate ranged reads from the start until end of object."""
        offset = 0
        while True:
            data, eof = self.read_at(chunk_size, offset)
            if data:
                yield data
            offset += len(data)
            if eof:
                break

    def read_all(self, chunk_size: int = DEFAULT_READ_CHUNK_SIZE) -> bytes:
        return b"".join(self.iter_chunks(chunk_size))


class ObjectWriter:
    """
    Staging writer that creates one object on close.

    Attributes:
        entry (ObjectEntry): The object being created; receives its identifier
            and size once the upload commits
        backend (Backend): Storage backend
        ctx (Context): Request context used for the upload
    """

    def __init__(self, bucket: BucketEntry, name: str, backend: Backend, ctx: Context = None,
                 logger: logging.Logger = None, spool_max_size: int = DEFAULT_SPOOL_MAX_SIZE):
        self.entry = ObjectEntry(bucket=bucket, name=name)
        self.backend = backend
        self.ctx = ctx or Context.background()
        self.logger = logger or default_logger('writer')
        self._buffer: Optional[StagingBuffer] = StagingBuffer(spool_max_size, logger=self.logger)
        self._committed = False

    @property
    def path(self) -> str:
        return f"/{self.entry.bucket.name}/{self.entry.name}"

    @property
    def closed(self) -> bool:
        return self._buffer is None

    def _staging(self, operation: str) -> StagingBuffer:
        if self._buffer is None:
            raise InvalidArgumentError("writer is closed", path=self.path, operation=operation)
        return self._buffer

    def write_at(self, data: bytes, offset: int) -> int:
        """
        Stage `data` at `offset`.

        Returns:
            int: Number of bytes written

        Raises:
            InvalidArgumentError: If offset is negative or the writer is closed.
        """
        if offset < 0:
            raise InvalidArgumentError(f"negative offset {offset}", path=self.path, operation="write")
        return self._staging("write").write_at(data, offset)

    def read_at(self, length: int, offset: int) -> bytes:
        """Read back staged bytes that have not been uploaded yet."""
        if offset < 0:
            raise InvalidArgumentError(f"negative offset {offset}", path=self.path, operation="read")
        return self._staging("read").read_at(length, offset)

    def truncate(self, length: int) -> None:
        if length < 0:
            raise InvalidArgumentError(f"negative length {length}", path=self.path, operation="truncate")
        self._staging("truncate").truncate(length)

    def size(self) -> int:
        if self._buffer is None:
            return self.entry.size
        return self._buffer.size()

    def _header(self) -> ObjectHeader:
        created = datetime.now(timezone.utc)
        attributes = {
            ATTRIBUTE_FILE_NAME: self.entry.name,
            ATTRIBUTE_TIMESTAMP: str(int(created.timestamp())),
        }
        self.entry.created = created
        return ObjectHeader(
            container_id=self.entry.bucket.container_id,
            owner=self.backend.owner_id,
            attributes=attributes,
        )

    def close(self) -> ObjectEntry:
        """
        Upload the staged content as a new object.

        The staging buffer is released whether or not the upload succeeds.
        Closing again returns the committed entry without a second upload.

        Returns:
            ObjectEntry: The created object, with identifier and size set

        Raises:
            BackendError: If the upload fails.
        """
        if self._buffer is None:
            if not self._committed:
                raise InvalidArgumentError("writer was aborted or failed", path=self.path, operation="close")
            return self.entry

        buffer = self._buffer
        start_time = time.time()
        try:
            size = buffer.size()
            header = self._header()
            with translate_errors("close", self.path):
                object_id = self.backend.put_object(
                    self.ctx, header, buffer.iter_chunks(self.backend.max_chunk_size))
            self.entry.object_id = object_id
            self.entry.payload_size = size
            self._committed = True
            self.logger.info(f"Uploaded {size} bytes to {self.path} as {object_id}")
            return self.entry
        finally:
            buffer.close()
            self._buffer = None
            time_function(self.logger, "close", start_time)

    def abort(self) -> None:
        """Release the staging buffer without uploading."""
        if self._buffer is not None:
            self._buffer.close()
            self._buffer = None
            self.logger.debug(f"Discarded staged content for {self.path}")
