# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Directory entries for buckets and objects.

Buckets are presented as directories and objects as files. Both satisfy the
DirEntry capability: name, size, mod_time, is_dir, mode and sys.
"""

import stat
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from bucketfs.client.ids import ContainerID, ObjectID
from bucketfs.client.types import (
    ATTRIBUTE_FILE_NAME,
    ATTRIBUTE_FILE_PATH,
    ATTRIBUTE_TIMESTAMP,
    CONTAINER_ATTRIBUTE_NAME,
    CONTAINER_ATTRIBUTE_TIMESTAMP,
    ContainerInfo,
    ObjectHeader,
)

ROOT_NAME = '/'

DIR_MODE = stat.S_IFDIR | 0o777
FILE_MODE = stat.S_IFREG | 0o777


def _now():
    return datetime.now(timezone.utc)

def parse_timestamp(attributes: Dict[str, str], key: str) -> datetime:
    """
    Creation time from a decimal Unix-seconds attribute.

    A value that is present, parseable and non-zero is used; anything else
    falls back to the current time.

    Args:
        attributes (dict): Attribute map of a container or object
        key (str): Attribute holding the timestamp

    Returns:
        datetime: Timezone-aware creation time
    """
    raw = attributes.get(key)
    if raw:
        try:
            seconds = int(raw)
        except ValueError:
            seconds = 0
        if seconds > 0:
            try:
                return datetime.fromtimestamp(seconds, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                pass
    return _now()


class DirEntry:
    """Conventional file metadata shared by bucket and object entries."""

    name: str
    created: datetime

    @property
    def size(self) -> int:
        raise NotImplementedError

    @property
    def is_dir(self) -> bool:
        raise NotImplementedError

    @property
    def mode(self) -> int:
        return DIR_MODE if self.is_dir else FILE_MODE

    @property
    def mod_time(self) -> datetime:
        return self.created

    @property
    def sys(self):
        return None


@dataclass(frozen=True)
class BucketEntry(DirEntry):
    """
    A container presented as a directory.

    Attributes:
        container_id (ContainerID): Backend identifier, None for the root entry
        name (str): Display name
        created (datetime): Creation time
    """
    container_id: Optional[ContainerID]
    name: str
    created: datetime = field(default_factory=_now)

    @property
    def size(self) -> int:
        return 0

    @property
    def is_dir(self) -> bool:
        return True

    @classmethod
    def root(cls) -> "BucketEntry":
        """The synthetic filesystem root."""
        return cls(container_id=None, name=ROOT_NAME)

    @classmethod
    def from_container(cls, info: ContainerInfo) -> "BucketEntry":
        return cls(
            container_id=info.container_id,
            name=info.attributes.get(CONTAINER_ATTRIBUTE_NAME) or str(info.container_id),
            created=parse_timestamp(info.attributes, CONTAINER_ATTRIBUTE_TIMESTAMP),
        )


@dataclass
class ObjectEntry(DirEntry):
    """
    An object presented as a file.

    Attributes:
        bucket (BucketEntry): Owning bucket
        name (str): Display name
        object_id (ObjectID): Backend identifier, None until an upload commits
        file_path (str): Logical FilePath attribute, informational only
        payload_size (int): Payload size in bytes
        created (datetime): Creation time
    """
    bucket: BucketEntry
    name: str
    object_id: Optional[ObjectID] = None
    file_path: Optional[str] = None
    payload_size: int = 0
    created: datetime = field(default_factory=_now)

    @property
    def size(self) -> int:
        return self.payload_size

    @property
    def is_dir(self) -> bool:
        return False

    @classmethod
    def from_header(cls, bucket: BucketEntry, object_id: ObjectID, header: ObjectHeader) -> "ObjectEntry":
        return cls(
            bucket=bucket,
            name=header.attributes.get(ATTRIBUTE_FILE_NAME) or str(object_id),
            object_id=object_id,
            file_path=header.attributes.get(ATTRIBUTE_FILE_PATH),
            payload_size=header.payload_size,
            created=parse_timestamp(header.attributes, ATTRIBUTE_TIMESTAMP),
        )
