import time

import pytest

from bucketfs.client.context import Context
from bucketfs.client.exceptions import CancelledError, DeadlineExceededError


def test_background_never_expires():
    ctx = Context.background()
    assert ctx.remaining() is None
    ctx.check()


def test_cancel_propagates_to_children():
    parent = Context.background()
    child = parent.child(10)
    parent.cancel()
    assert child.cancelled
    with pytest.raises(CancelledError):
        child.check()


def test_child_keeps_tighter_deadline():
    parent = Context(timeout=0.5)
    child = parent.child(60)
    assert child.remaining() <= 0.5


def test_deadline_exceeded():
    ctx = Context(timeout=0.01)
    time.sleep(0.02)
    with pytest.raises(DeadlineExceededError):
        ctx.check()


def test_wait_wakes_on_cancel():
    ctx = Context.background()
    ctx.cancel()
    start = time.monotonic()
    with pytest.raises(CancelledError):
        ctx.wait(5)
    assert time.monotonic() - start < 1
