"""
Virtual filesystem adapter over the storage backend.
"""
from .dispatcher import Dispatcher
from .entries import BucketEntry, DirEntry, ObjectEntry
from .errors import FsError
from .listing import Listing
from .requests import Method, Request
from .streams import ObjectReader, ObjectWriter

__all__ = [
    "BucketEntry",
    "DirEntry",
    "Dispatcher",
    "FsError",
    "Listing",
    "Method",
    "ObjectEntry",
    "ObjectReader",
    "ObjectWriter",
    "Request",
]
