"""
Request context for backend calls.

A Context carries a cancellation flag and an optional deadline. The transport
layer creates one per request and cancels it when the client goes away; every
backend call receives it and aborts promptly once it is done.
"""
import threading
import time
from typing import Optional

from .exceptions import CancelledError, DeadlineExceededError


class Context:
    """
    Cancellation and deadline carrier.

    Attributes:
        deadline (float): time.monotonic() value after which calls fail, or None
    """

    def __init__(self, timeout: Optional[float] = None, _event: threading.Event = None,
                 _deadline: Optional[float] = None):
        self._event = _event if _event is not None else threading.Event()
        self.deadline = _deadline
        if timeout is not None:
            limit = time.monotonic() + timeout
            self.deadline = limit if self.deadline is None else min(self.deadline, limit)

    @classmethod
    def background(cls) -> "Context":
        """A context that is never cancelled and has no deadline."""
        return cls()

    def child(self, timeout: Optional[float] = None) -> "Context":
        """
        Derive a context sharing this one's cancellation.

        Args:
            timeout (float, optional): Seconds from now; the tighter of this and
                the parent deadline applies.
        """
        return Context(timeout=timeout, _event=self._event, _deadline=self.deadline)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, None if there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self) -> None:
        """
        Raise if the context is done.

        Raises:
            CancelledError: If cancel() was called.
            DeadlineExceededError: If the deadline passed.
        """
        if self._event.is_set():
            raise CancelledError()
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise DeadlineExceededError()

    def wait(self, seconds: float) -> None:
        """
        Sleep up to `seconds`, waking early on cancellation or deadline.

        Raises:
            CancelledError: If cancelled while waiting.
            DeadlineExceededError: If the deadline passes while waiting.
        """
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._event.wait(remaining)
        else:
            self._event.wait(seconds)
        self.check()
