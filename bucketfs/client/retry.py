# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Retry Module.

This module provides a retry decorator with exponential backoff for backend
operations, and RetryingBackend, which applies it to every call of a wrapped
gRPC-based backend. Transient gRPC failures are retried; everything else is
converted to the storage error taxonomy and raised immediately.

Functions:
    retry: Decorator for retrying functions with exponential backoff.
    _convert_grpc_error: Helper function to convert gRPC errors to storage exceptions.
"""
import logging
from functools import wraps
from typing import Type, Callable, Any, Iterable, List, Tuple
import grpc

from .backend import Backend
from .context import Context
from .exceptions import (
    AuthenticationError,
    CancelledError,
    ContainerError,
    DeadlineExceededError,
    NotFoundError,
    ObjectError,
    StorageError,
)
from .ids import ContainerID, ObjectID
from .types import ContainerHeader, ContainerInfo, ObjectHeader, SearchFilters

RETRYABLE_STATUS_CODES = {
    grpc.StatusCode.UNAVAILABLE,
    grpc.StatusCode.RESOURCE_EXHAUSTED,
    grpc.StatusCode.DEADLINE_EXCEEDED,
}

OBJECT_OPERATIONS = {
    "head_object": "HEAD",
    "get_object_range": "RANGE",
    "put_object": "PUT",
    "delete_object": "DELETE",
    "search_objects": "SEARCH",
}

CONTAINER_OPERATIONS = {
    "get_container": "GET",
    "list_containers": "LIST",
    "put_container": "PUT",
    "delete_container": "DELETE",
}

def _status_code(e: grpc.RpcError) -> grpc.StatusCode:
    if hasattr(e, 'code') and callable(e.code):
        return e.code()
    return grpc.StatusCode.UNKNOWN

def _convert_grpc_error(e: grpc.RpcError, func_name: str = "") -> StorageError:
    """
    Convert gRPC errors to storage errors.

    The status code decides first; the error details refine container and
    object failures.

    Args:
        e (grpc.RpcError): The gRPC error to convert.
        func_name (str, optional): Backend method that failed. Defaults to "".

    Returns:
        StorageError: The converted error.
    """
    error_msg = str(e.details() if hasattr(e, 'details') and callable(e.details) else str(e))
    error_code = _status_code(e)

    if error_code == grpc.StatusCode.NOT_FOUND or "not found" in error_msg.lower():
        return NotFoundError(error_msg or "not found")
    if error_code == grpc.StatusCode.UNAUTHENTICATED:
        return AuthenticationError(error_msg or "Authentication failed")
    if error_code == grpc.StatusCode.DEADLINE_EXCEEDED:
        return DeadlineExceededError()
    if error_code == grpc.StatusCode.CANCELLED:
        return CancelledError()
    if error_code == grpc.StatusCode.RESOURCE_EXHAUSTED:
        return StorageError("Rate limit exceeded", code="ERR_RATE_LIMIT")
    if error_code == grpc.StatusCode.UNAVAILABLE:
        return StorageError("Service unavailable", code="ERR_UNAVAILABLE")

    if func_name in CONTAINER_OPERATIONS:
        operation = CONTAINER_OPERATIONS[func_name]
        if error_code == grpc.StatusCode.PERMISSION_DENIED:
            return ContainerError("Access denied to container", operation="AUTH")
        if "already exists" in error_msg.lower():
            return ContainerError("Container already exists", operation="CREATE")
        return ContainerError(error_msg, operation=operation)

    if func_name in OBJECT_OPERATIONS:
        operation = OBJECT_OPERATIONS[func_name]
        if error_code == grpc.StatusCode.PERMISSION_DENIED:
            return ObjectError("Access denied to object", operation=operation)
        if "too large" in error_msg.lower():
            return ObjectError("Object size exceeds limits", operation=operation)
        return ObjectError(error_msg, operation=operation)

    if error_code == grpc.StatusCode.INTERNAL:
        return StorageError("Internal server error", code="ERR_INTERNAL")
    return StorageError(error_msg)

def _find_context(args: tuple, kwargs: dict) -> Context:
    ctx = kwargs.get("ctx")
    if ctx is None:
        ctx = next((a for a in args if isinstance(a, Context)), None)
    return ctx if ctx is not None else Context.background()

def retry(
    max_attempts: int = 5,
    initial_backoff: float = 0.1,
    max_backoff: float = 5.0,
    backoff_multiplier: float = 2.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (grpc.RpcError,),
    logger: logging.Logger = None,
) -> Callable:
    """
    Decorator for retrying a backend call with exponential backoff.

    The request Context found among the call arguments is checked before each
    attempt, and backoff sleeps wake up as soon as it is cancelled.

    Args:
        max_attempts (int): Maximum number of attempts. Defaults to 5.
        initial_backoff (float): Initial backoff time in seconds. Defaults to 0.1.
        max_backoff (float): Maximum backoff time in seconds. Defaults to 5.0.
        backoff_multiplier (float): Multiplier for exponential backoff. Defaults to 2.0.
        retryable_exceptions (Tuple[Type[Exception], ...]): Exceptions that trigger a retry.
            Defaults to (grpc.RpcError,).
        logger (logging.Logger, optional): Where retry decisions are logged.

    Returns:
        Callable: A decorator that wraps the function.
    """
    log = logger or logging.getLogger("bucketfs.client.retry")

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            """
            Executes the function with retry logic and exponential backoff.

            Raises:
                StorageError: If the call fails with a non-retryable error or
                    all attempts are exhausted.
            """
            ctx = _find_context(args, kwargs)
            last_exception = None
            backoff = initial_backoff

            for attempt in range(max_attempts):
                ctx.check()
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    last_exception = e

                    if isinstance(e, grpc.RpcError):
                        status_code = _status_code(e)
                        if status_code not in RETRYABLE_STATUS_CODES:
                            log.debug(f"Non-retryable gRPC error ({status_code}) during {func.__name__}")
                            raise _convert_grpc_error(e, func.__name__) from e
                        log.warning(f"Retryable gRPC error ({status_code}) during {func.__name__}. "
                                    f"Attempt {attempt + 1}/{max_attempts}. Retrying after {backoff:.2f}s...")
                    else:
                        log.warning(f"Retryable exception {type(e).__name__} during {func.__name__}. "
                                    f"Attempt {attempt + 1}/{max_attempts}. Retrying after {backoff:.2f}s...")

                    if attempt < max_attempts - 1:
                        ctx.wait(backoff)
                        backoff = min(backoff * backoff_multiplier, max_backoff)

            # If we get here, we've exhausted all retries
            if isinstance(last_exception, grpc.RpcError):
                raise _convert_grpc_error(last_exception, func.__name__) from last_exception

            raise StorageError(
                f"Operation failed after {max_attempts} attempts: {str(last_exception)}"
            ) from last_exception

        return wrapper
    return decorator

class RetryingBackend(Backend):
    """
    Backend wrapper applying the retry policy to every call.

    Object uploads and container creation are not idempotent and are
    attempted once; their gRPC errors are still converted.

    Attributes:
        inner (Backend): The wrapped backend
    """

    def __init__(self, inner: Backend, logger: logging.Logger = None, **policy):
        self.inner = inner
        self._retry = retry(logger=logger, **policy)

    @property
    def owner_id(self) -> str:
        return self.inner.owner_id

    @property
    def max_chunk_size(self) -> int:
        return self.inner.max_chunk_size

    def head_object(self, ctx: Context, container_id: ContainerID, object_id: ObjectID) -> ObjectHeader:
        return self._retry(self.inner.head_object)(ctx, container_id, object_id)

    def get_object_range(self, ctx: Context, container_id: ContainerID, object_id: ObjectID,
                         offset: int, length: int) -> bytes:
        return self._retry(self.inner.get_object_range)(ctx, container_id, object_id, offset, length)

    def put_object(self, ctx: Context, header: ObjectHeader, payload: Iterable[bytes]) -> ObjectID:
        # The payload is a one-shot stream, so uploads are attempted once.
        try:
            return self.inner.put_object(ctx, header, payload)
        except grpc.RpcError as e:
            raise _convert_grpc_error(e, "put_object") from e

    def delete_object(self, ctx: Context, container_id: ContainerID, object_id: ObjectID) -> None:
        return self._retry(self.inner.delete_object)(ctx, container_id, object_id)

    def search_objects(self, ctx: Context, container_id: ContainerID, filters: SearchFilters) -> List[ObjectID]:
        return self._retry(self.inner.search_objects)(ctx, container_id, filters)

    def get_container(self, ctx: Context, container_id: ContainerID) -> ContainerInfo:
        return self._retry(self.inner.get_container)(ctx, container_id)

    def list_containers(self, ctx: Context, owner: str) -> List[ContainerID]:
        return self._retry(self.inner.list_containers)(ctx, owner)

    def put_container(self, ctx: Context, header: ContainerHeader) -> ContainerID:
        # A lost reply after a committed create would leave a second bucket
        # with the same name, so creation is attempted once.
        try:
            return self.inner.put_container(ctx, header)
        except grpc.RpcError as e:
            raise _convert_grpc_error(e, "put_container") from e

    def delete_container(self, ctx: Context, container_id: ContainerID) -> None:
        return self._retry(self.inner.delete_container)(ctx, container_id)

    def close(self) -> None:
        self.inner.close()
