# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Directory listings.

Buckets are listed from the owner's containers, objects from a root-filtered
search of one container. Each identifier costs one metadata fetch, and the
first failing fetch aborts the listing. Entries sharing a display name are
collapsed to the first one enumerated; the backend does not promise
enumeration in creation order.
"""

import logging
import time
from typing import Iterable, Iterator, List, Sequence, Tuple, TypeVar

from bucketfs.client.backend import Backend
from bucketfs.client.context import Context
from bucketfs.client.types import SearchFilters
from .entries import BucketEntry, DirEntry, ObjectEntry
from .utils import default_logger, time_function

E = TypeVar('E', bound=DirEntry)


def first_by_name(entries: Iterable[E]) -> List[E]:
    """
    Keep the first entry for every display name, preserving order.

    Args:
        entries (Iterable[DirEntry]): Entries in enumeration order

    Returns:
        list: Entries with unique names
    """
    seen = {}
    for entry in entries:
        seen.setdefault(entry.name, entry)
    return list(seen.values())


class Listing:
    """
    Paged view over a fixed list of entries.

    Attributes:
        entries (list): The listed entries
    """

    def __init__(self, entries: Sequence[DirEntry]):
        self.entries = list(entries)

    def list_at(self, count: int, offset: int) -> Tuple[List[DirEntry], bool]:
        """
        Return up to `count` entries starting at `offset`.

        Args:
            count (int): Page size
            offset (int): Index of the first entry

        Returns:
            tuple: (entries, eof) where eof is True once the page reaches the end
        """
        if offset >= len(self.entries):
            return [], True
        page = self.entries[offset:offset + count]
        return page, offset + len(page) >= len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __len__(self):
        return len(self.entries)


class ListingEngine:
    """
    Enumerates buckets and root-level objects.

    Attributes:
        backend (Backend): Storage backend
        logger (logging.Logger): Logger for listing activity
    """

    def __init__(self, backend: Backend, logger: logging.Logger = None):
        self.backend = backend
        self.logger = logger or default_logger('listing')

    def _buckets(self, ctx: Context) -> Iterator[BucketEntry]:
        for container_id in self.backend.list_containers(ctx, self.backend.owner_id):
            yield BucketEntry.from_container(self.backend.get_container(ctx, container_id))

    def _objects(self, ctx: Context, bucket: BucketEntry) -> Iterator[ObjectEntry]:
        filters = SearchFilters().add_root_filter()
        for object_id in self.backend.search_objects(ctx, bucket.container_id, filters):
            header = self.backend.head_object(ctx, bucket.container_id, object_id)
            yield ObjectEntry.from_header(bucket, object_id, header)

    def list_buckets(self, ctx: Context) -> List[BucketEntry]:
        """
        List every bucket owned by the backend identity.

        Args:
            ctx (Context): Request context

        Returns:
            list: Bucket entries, unique by display name
        """
        start_time = time.time()
        buckets = first_by_name(self._buckets(ctx))
        self.logger.debug(f"Listed {len(buckets)} buckets")
        time_function(self.logger, "list_buckets", start_time)
        return buckets

    def list_objects(self, ctx: Context, bucket: BucketEntry) -> List[ObjectEntry]:
        """
        List every root-level object of a bucket.

        Args:
            ctx (Context): Request context
            bucket (BucketEntry): Bucket to list

        Returns:
            list: Object entries, unique by display name
        """
        start_time = time.time()
        objects = first_by_name(self._objects(ctx, bucket))
        self.logger.debug(f"Listed {len(objects)} objects in bucket {bucket.name}")
        time_function(self.logger, "list_objects", start_time)
        return objects
