"""
Validated filesystem requests.

The protocol layer turns its decoded messages into a Request before they
reach the dispatcher. Unknown methods, malformed paths and paths deeper than
two levels are rejected here.
"""
import enum
from dataclasses import dataclass
from typing import Optional, Union

from .errors import InvalidArgumentError, UnsupportedOperationError
from .resolver import FsPath


class Method(enum.Enum):
    LIST = "List"
    STAT = "Stat"
    READLINK = "Readlink"
    GET = "Get"
    PUT = "Put"
    OPEN = "Open"
    MKDIR = "Mkdir"
    REMOVE = "Remove"
    RMDIR = "Rmdir"
    SETSTAT = "Setstat"
    RENAME = "Rename"
    LINK = "Link"
    SYMLINK = "Symlink"


LIST_METHODS = frozenset({Method.LIST, Method.STAT, Method.READLINK})
READ_METHODS = frozenset({Method.GET})
WRITE_METHODS = frozenset({Method.PUT, Method.OPEN})
CMD_METHODS = frozenset({
    Method.MKDIR, Method.REMOVE, Method.RMDIR, Method.SETSTAT,
    Method.RENAME, Method.LINK, Method.SYMLINK,
})
MUTATING_METHODS = WRITE_METHODS | CMD_METHODS
TARGET_METHODS = frozenset({Method.RENAME, Method.LINK, Method.SYMLINK})


@dataclass(frozen=True)
class Request:
    """
    A single filesystem request.

    Attributes:
        method (Method): Operation to perform
        path (FsPath): Parsed target path
        target (FsPath): Second path for Rename, Link and Symlink
    """
    method: Method
    path: FsPath
    target: Optional[FsPath] = None

    @classmethod
    def parse(cls, method: Union[str, Method], path: str, target: Optional[str] = None) -> "Request":
        """
        Validate a decoded protocol request.

        Args:
            method: Method name as sent by the protocol ("List", "Put", ...)
            path (str): Slash-delimited target path
            target (str, optional): Destination path for Rename/Link/Symlink

        Raises:
            UnsupportedOperationError: Unknown method or path deeper than two levels.
            InvalidArgumentError: Missing target or malformed path.
        """
        if not isinstance(method, Method):
            try:
                method = Method(method)
            except ValueError:
                raise UnsupportedOperationError(f"unknown method {method!r}", path=path) from None

        parsed_target = None
        if method in TARGET_METHODS:
            if not target:
                raise InvalidArgumentError("target path required", path=path, operation=method.value)
            parsed_target = FsPath.parse(target)
        return cls(method=method, path=FsPath.parse(path), target=parsed_target)

    @property
    def mutating(self) -> bool:
        return self.method in MUTATING_METHODS
