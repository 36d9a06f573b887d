# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Staging buffer for object uploads.

Objects are write-once, so everything written to a file is staged locally and
uploaded in one piece when the file is closed. The staging area is a
SpooledTemporaryFile: it stays in memory up to a configured size and spills
to disk beyond it, while keeping true random access.
"""

import logging
import tempfile
from typing import Iterator

from .utils import default_logger

# --- Spool Size ---
# Spool to disk after 64MB in RAM for staging buffers
DEFAULT_SPOOL_MAX_SIZE = 64 * 1024 * 1024  # 64MB


class StagingBuffer:
    """
    Random-access byte store backed by a SpooledTemporaryFile.

    Writes may arrive in any order and may be repeated at the same offset.
    Writing past the current end leaves a zero-filled gap.

    Attributes:
        spooled_file (tempfile.SpooledTemporaryFile): Stores the staged content.
    """

    def __init__(self, spool_max_size: int = DEFAULT_SPOOL_MAX_SIZE, logger: logging.Logger = None):
        self.logger = logger or default_logger('buffer')
        self.spooled_file = tempfile.SpooledTemporaryFile(
            max_size=spool_max_size,
            mode='w+b'
        )

    @property
    def closed(self) -> bool:
        return self.spooled_file is None or self.spooled_file.closed

    def _file(self):
        if self.closed:
            raise ValueError("staging buffer is closed")
        return self.spooled_file

    def write_at(self, data: bytes, offset: int) -> int:
        """
        Write data at an absolute offset.

        Args:
            data (bytes): Bytes to store
            offset (int): Position of the first byte

        Returns:
            int: Number of bytes written
        """
        spooled_file = self._file()
        current_size = self.size()
        if offset > current_size:
            # Explicit zero fill keeps gaps defined whether in memory or on disk
            spooled_file.seek(current_size)
            spooled_file.write(b"\0" * (offset - current_size))
        spooled_file.seek(offset)
        bytes_written = spooled_file.write(data)
        if bytes_written != len(data):
            self.logger.error(f"Partial write occurred! Expected {len(data)}, wrote {bytes_written}")
        return bytes_written

    def read_at(self, size: int, offset: int) -> bytes:
        """
        Read staged bytes, respecting the current end.

        Returns:
            bytes: The requested data. Returns b"" if offset is beyond the end.
        """
        spooled_file = self._file()
        current_size = self.size()
        if offset >= current_size:
            return b""
        spooled_file.seek(offset)
        return spooled_file.read(min(size, current_size - offset))

    def truncate(self, length: int) -> None:
        """
        Shrink or zero-extend the staged content to `length` bytes.
        """
        spooled_file = self._file()
        current_size = self.size()
        if length > current_size:
            spooled_file.seek(current_size)
            spooled_file.write(b"\0" * (length - current_size))
        else:
            spooled_file.truncate(length)
        self.logger.debug(f"Truncated staging buffer to {length} bytes")

    def size(self) -> int:
        """
        Gets the current size of the staged data.
        Works for both in-memory and on-disk SpooledTemporaryFile.

        Returns:
            int: The size of the buffer in bytes.
        """
        spooled_file = self._file()
        original_pos = spooled_file.tell()
        spooled_file.seek(0, 2)  # os.SEEK_END
        size = spooled_file.tell()
        spooled_file.seek(original_pos)
        return size

    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]:
        """
        Yield the staged content from the start in chunks of at most `chunk_size`.
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        spooled_file = self._file()
        spooled_file.seek(0)
        while True:
            chunk = spooled_file.read(chunk_size)
            if not chunk:
                break
            yield chunk

    def close(self) -> None:
        """
        Explicitly closes the SpooledTemporaryFile to release resources.
        """
        if self.spooled_file is not None and not self.spooled_file.closed:
            self.spooled_file.close()
            self.logger.debug("Closed staging buffer")
        self.spooled_file = None
