# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Request dispatcher for the bucketfs adapter.

This module maps each filesystem method onto bucket and object operations:
listings and stats go through the resolver and listing engine, reads and
writes hand back stream adapters, and directory commands create or delete
containers and objects.

Usage:
    backend = MemoryBackend()
    dispatcher = Dispatcher(backend, read_only=False)

    dispatcher.handle(Request.parse("Mkdir", "/photos"))
    writer = dispatcher.handle(Request.parse("Put", "/photos/cat.jpg"))
    writer.write_at(b"...", 0)
    writer.close()
"""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Dict, FrozenSet, Optional, Union

from bucketfs.client.backend import Backend
from bucketfs.client.context import Context
from bucketfs.client.types import (
    CONTAINER_ATTRIBUTE_NAME,
    CONTAINER_ATTRIBUTE_TIMESTAMP,
    PRIVATE_BASIC_ACL,
    ContainerHeader,
)
from .buffer import DEFAULT_SPOOL_MAX_SIZE
from .errors import (
    NotDirectoryError,
    PermissionDeniedError,
    TypeMismatchError,
    UnsupportedOperationError,
    translate_errors,
)
from .listing import Listing, ListingEngine
from .requests import CMD_METHODS, LIST_METHODS, READ_METHODS, WRITE_METHODS, Method, Request
from .resolver import PathResolver
from .streams import ObjectReader, ObjectWriter
from .utils import default_logger, time_function, trace_op

DEFAULT_CONTAINER_POLICY = "REP 1"
DEFAULT_REQUEST_TIMEOUT = 15.0

Result = Union[Listing, ObjectReader, ObjectWriter, None]


class Dispatcher:
    """
    Maps filesystem requests onto the storage backend.

    Attributes:
        backend (Backend): Storage backend
        read_only (bool): Reject every mutating request
        container_policy (str): Placement policy for buckets created by Mkdir
        request_timeout (float): Deadline for the metadata calls of one request
        resolver (PathResolver): Path to entry resolution
        listing (ListingEngine): Directory listings
    """

    def __init__(self, backend: Backend, read_only: bool = False,
                 container_policy: str = DEFAULT_CONTAINER_POLICY,
                 request_timeout: Optional[float] = DEFAULT_REQUEST_TIMEOUT,
                 spool_max_size: int = DEFAULT_SPOOL_MAX_SIZE,
                 logger: logging.Logger = None):
        self.backend = backend
        self.read_only = read_only
        self.container_policy = container_policy
        self.request_timeout = request_timeout
        self.spool_max_size = spool_max_size
        self.logger = logger or default_logger('dispatcher')
        self.listing = ListingEngine(backend, logger=self.logger.getChild('listing'))
        self.resolver = PathResolver(backend, self.listing, logger=self.logger.getChild('resolver'))
        self._handlers: Dict[Method, Callable[[Request, Context, Context], Result]] = {
            Method.LIST: self._list,
            Method.STAT: self._stat,
            Method.READLINK: self._unsupported,
            Method.GET: self._get,
            Method.PUT: self._put,
            Method.OPEN: self._put,
            Method.MKDIR: self._mkdir,
            Method.REMOVE: self._remove,
            Method.RMDIR: self._remove,
            Method.SETSTAT: self._setstat,
            Method.RENAME: self._unsupported,
            Method.LINK: self._unsupported,
            Method.SYMLINK: self._unsupported,
        }

    def handle(self, request: Request, ctx: Context = None) -> Result:
        """
        Perform one request.

        Args:
            request (Request): Validated request
            ctx (Context, optional): Request context from the transport layer

        Returns:
            Listing for List and Stat, ObjectReader for Get, ObjectWriter for
            Put and Open, None for directory commands

        Raises:
            FsError: Any failure, with the path and operation attached
        """
        method = request.method.value
        trace_op(self.logger, method, request.path.raw)
        start_time = time.time()

        if request.mutating and self.read_only:
            self.logger.warning(f"{method} {request.path.raw} rejected: read-only mode")
            raise PermissionDeniedError("read-only mode", path=request.path.raw, operation=method)

        parent = ctx or Context.background()
        call_ctx = parent.child(self.request_timeout)
        try:
            with translate_errors(method, request.path.raw):
                return self._handlers[request.method](request, parent, call_ctx)
        finally:
            time_function(self.logger, method, start_time)

    def _family(self, request: Request, ctx: Optional[Context], methods: FrozenSet[Method]) -> Result:
        if request.method not in methods:
            raise UnsupportedOperationError(f"method {request.method.value} not handled here",
                                            path=request.path.raw, operation=request.method.value)
        return self.handle(request, ctx)

    def file_list(self, request: Request, ctx: Context = None) -> Listing:
        """Methods: List, Stat, Readlink."""
        return self._family(request, ctx, LIST_METHODS)

    def file_read(self, request: Request, ctx: Context = None) -> ObjectReader:
        """Methods: Get."""
        return self._family(request, ctx, READ_METHODS)

    def file_write(self, request: Request, ctx: Context = None) -> ObjectWriter:
        """Methods: Put, Open."""
        return self._family(request, ctx, WRITE_METHODS)

    def file_cmd(self, request: Request, ctx: Context = None) -> None:
        """Methods: Setstat, Rename, Rmdir, Mkdir, Link, Symlink, Remove."""
        self._family(request, ctx, CMD_METHODS)

    def _list(self, request: Request, parent: Context, ctx: Context) -> Listing:
        path = request.path
        if path.is_root:
            return Listing(self.listing.list_buckets(ctx))
        if path.is_object:
            raise NotDirectoryError("not a directory", path=path.raw, operation=request.method.value)
        bucket = self.resolver.resolve_bucket(ctx, path.bucket)
        return Listing(self.listing.list_objects(ctx, bucket))

    def _stat(self, request: Request, parent: Context, ctx: Context) -> Listing:
        return Listing([self.resolver.stat(ctx, request.path)])

    def _get(self, request: Request, parent: Context, ctx: Context) -> ObjectReader:
        entry = self.resolver.stat(ctx, request.path)
        if entry.is_dir:
            raise TypeMismatchError("is a directory", path=request.path.raw, operation=request.method.value)
        return ObjectReader(entry, self.backend, ctx=parent, logger=self.logger.getChild('reader'))

    def _put(self, request: Request, parent: Context, ctx: Context) -> ObjectWriter:
        path = request.path
        if not path.is_object:
            raise TypeMismatchError("is a directory", path=path.raw, operation=request.method.value)
        bucket = self.resolver.resolve_bucket(ctx, path.bucket)
        self.logger.debug(f"Opening writer for {path.object} in bucket {bucket.name}")
        return ObjectWriter(bucket, path.object, self.backend, ctx=parent,
                            logger=self.logger.getChild('writer'), spool_max_size=self.spool_max_size)

    def _mkdir(self, request: Request, parent: Context, ctx: Context) -> None:
        path = request.path
        if path.is_root:
            raise UnsupportedOperationError("cannot create the root directory",
                                            path=path.raw, operation=request.method.value)
        if path.is_object:
            raise UnsupportedOperationError("only first-level directories supported",
                                            path=path.raw, operation=request.method.value)
        created = str(int(datetime.now(timezone.utc).timestamp()))
        header = ContainerHeader(
            owner=self.backend.owner_id,
            name=path.bucket,
            policy=self.container_policy,
            basic_acl=PRIVATE_BASIC_ACL,
            attributes={
                CONTAINER_ATTRIBUTE_NAME: path.bucket,
                CONTAINER_ATTRIBUTE_TIMESTAMP: created,
            },
        )
        container_id = self.backend.put_container(ctx, header)
        self.logger.info(f"Created bucket {path.bucket} as {container_id}")

    def _remove(self, request: Request, parent: Context, ctx: Context) -> None:
        path = request.path
        if path.is_root:
            raise UnsupportedOperationError("cannot remove the root directory",
                                            path=path.raw, operation=request.method.value)
        bucket = self.resolver.resolve_bucket(ctx, path.bucket)
        if path.is_object:
            entry = self.resolver.find_object_by_name(ctx, bucket, path.object)
            self.backend.delete_object(ctx, bucket.container_id, entry.object_id)
            self.logger.info(f"Deleted object {entry.object_id} ({path.object}) from bucket {bucket.name}")
            return
        self.backend.delete_container(ctx, bucket.container_id)
        self.logger.info(f"Deleted bucket {bucket.name} ({bucket.container_id})")

    def _setstat(self, request: Request, parent: Context, ctx: Context) -> None:
        self.logger.debug(f"Setstat on {request.path.raw} ignored")

    def _unsupported(self, request: Request, parent: Context, ctx: Context) -> None:
        raise UnsupportedOperationError("operation not supported",
                                        path=request.path.raw, operation=request.method.value)
