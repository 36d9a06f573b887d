# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Path resolution.

Paths have at most two levels, `/<bucket>/<object>`. Each segment is either a
base58 identifier, looked up directly, or a display name, found by listing
buckets or searching objects by their FileName attribute.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from bucketfs.client.backend import Backend
from bucketfs.client.context import Context
from bucketfs.client.ids import ContainerID, ObjectID
from bucketfs.client.types import ATTRIBUTE_FILE_NAME, SearchFilters
from .entries import BucketEntry, ObjectEntry
from .errors import InvalidArgumentError, NotFoundError, UnsupportedOperationError
from .listing import ListingEngine
from .utils import default_logger

DELIMITER = '/'
MAX_DEPTH = 2


@dataclass(frozen=True)
class FsPath:
    """
    A parsed filesystem path.

    Attributes:
        raw (str): Path as received
        bucket (str): First segment, None for the root
        object (str): Second segment, None for root and bucket paths
    """
    raw: str
    bucket: Optional[str] = None
    object: Optional[str] = None

    @classmethod
    def parse(cls, path: str) -> "FsPath":
        """
        Split a path into bucket and object segments.

        One leading delimiter is stripped and empty segments are ignored.

        Raises:
            InvalidArgumentError: If the path contains a NUL byte.
            UnsupportedOperationError: If the path has more than two segments.
        """
        if '\0' in path:
            raise InvalidArgumentError("path contains NUL byte", path=path)
        trimmed = path[1:] if path.startswith(DELIMITER) else path
        segments = [s for s in trimmed.split(DELIMITER) if s]
        if len(segments) > MAX_DEPTH:
            raise UnsupportedOperationError("only one level of nesting is supported", path=path)
        if not segments:
            return cls(raw=path)
        if len(segments) == 1:
            return cls(raw=path, bucket=segments[0])
        return cls(raw=path, bucket=segments[0], object=segments[1])

    @property
    def is_root(self) -> bool:
        return self.bucket is None

    @property
    def is_bucket(self) -> bool:
        return self.bucket is not None and self.object is None

    @property
    def is_object(self) -> bool:
        return self.object is not None

    @property
    def depth(self) -> int:
        return sum(1 for s in (self.bucket, self.object) if s is not None)


class PathResolver:
    """
    Resolves path segments to bucket and object entries.

    Attributes:
        backend (Backend): Storage backend
        listing (ListingEngine): Used for name lookups of buckets
        logger (logging.Logger): Logger for resolution activity
    """

    def __init__(self, backend: Backend, listing: ListingEngine, logger: logging.Logger = None):
        self.backend = backend
        self.listing = listing
        self.logger = logger or default_logger('resolver')

    def get_bucket(self, ctx: Context, container_id: ContainerID) -> BucketEntry:
        return BucketEntry.from_container(self.backend.get_container(ctx, container_id))

    def get_object(self, ctx: Context, bucket: BucketEntry, object_id: ObjectID) -> ObjectEntry:
        header = self.backend.head_object(ctx, bucket.container_id, object_id)
        return ObjectEntry.from_header(bucket, object_id, header)

    def resolve_bucket(self, ctx: Context, segment: str) -> BucketEntry:
        """
        Resolve a bucket by identifier or display name.

        Args:
            ctx (Context): Request context
            segment (str): Identifier text or display name

        Returns:
            BucketEntry: The bucket

        Raises:
            NotFoundError: If no bucket has that display name.
        """
        try:
            container_id = ContainerID.parse(segment)
        except ValueError:
            container_id = None
        if container_id is not None:
            self.logger.debug(f"Resolving bucket {segment} by identifier")
            return self.get_bucket(ctx, container_id)

        self.logger.debug(f"Resolving bucket {segment} by name")
        for bucket in self.listing.list_buckets(ctx):
            if bucket.name == segment:
                return bucket
        raise NotFoundError(f"bucket {segment} not found", path=DELIMITER + segment)

    def find_object_by_name(self, ctx: Context, bucket: BucketEntry, name: str) -> ObjectEntry:
        """
        Find a root-level object by its FileName attribute.

        The first search hit wins when several objects share the name.

        Raises:
            NotFoundError: If no object has that name.
        """
        filters = SearchFilters().add_root_filter().add_filter(ATTRIBUTE_FILE_NAME, name)
        object_ids = self.backend.search_objects(ctx, bucket.container_id, filters)
        if not object_ids:
            raise NotFoundError(f"object {name} not found in bucket {bucket.name}",
                                path=DELIMITER.join(('', bucket.name, name)))
        if len(object_ids) > 1:
            self.logger.debug(f"{len(object_ids)} objects named {name} in bucket {bucket.name}, using the first")
        return self.get_object(ctx, bucket, object_ids[0])

    def resolve_object(self, ctx: Context, bucket: BucketEntry, segment: str) -> ObjectEntry:
        """
        Resolve an object by identifier, falling back to its display name.

        Args:
            ctx (Context): Request context
            bucket (BucketEntry): Owning bucket
            segment (str): Identifier text or display name

        Returns:
            ObjectEntry: The object
        """
        try:
            object_id = ObjectID.parse(segment)
        except ValueError:
            object_id = None
        if object_id is not None:
            return self.get_object(ctx, bucket, object_id)
        return self.find_object_by_name(ctx, bucket, segment)

    def stat(self, ctx: Context, path: FsPath) -> Union[BucketEntry, ObjectEntry]:
        """
        Resolve a path to a single entry.

        Args:
            ctx (Context): Request context
            path (FsPath): Parsed path

        Returns:
            The root entry, a BucketEntry or an ObjectEntry
        """
        if path.is_root:
            return BucketEntry.root()
        bucket = self.resolve_bucket(ctx, path.bucket)
        if path.is_object:
            return self.resolve_object(ctx, bucket, path.object)
        return bucket
