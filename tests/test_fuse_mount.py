import errno
import os
import stat

import pytest

try:
    import fuse  # noqa: F401  (fusepy loads libfuse at import time)
except (ImportError, OSError):
    pytest.skip("fusepy or libfuse not available", allow_module_level=True)

from fuse import FuseOSError

from bucketfs.fuse.fuse_mount import BucketFS, build_parser, load_settings


@pytest.fixture
def fs(dispatcher):
    return BucketFS(dispatcher)


@pytest.fixture
def ro_fs(ro_dispatcher):
    return BucketFS(ro_dispatcher)


def _errno(call, *args):
    with pytest.raises(FuseOSError) as exc_info:
        call(*args)
    return exc_info.value.errno


def test_getattr_root(fs):
    attrs = fs("getattr", "/")
    assert stat.S_ISDIR(attrs["st_mode"])
    assert attrs["st_nlink"] == 2


def test_getattr_object(fs, seeded):
    attrs = fs("getattr", "/b1/hello.txt")
    assert stat.S_ISREG(attrs["st_mode"])
    assert attrs["st_size"] == len(b"hello, world")


def test_getattr_missing(fs, seeded):
    assert _errno(fs, "getattr", "/b1/missing.txt") == errno.ENOENT


def test_readdir(fs, seeded):
    assert fs("readdir", "/", None) == [".", "..", "b1"]
    assert fs("readdir", "/b1", None) == [".", "..", "hello.txt"]


def test_create_write_release(fs, seeded):
    fh = fs("create", "/b1/new.txt", 0o644)
    assert fs("write", "/b1/new.txt", b"abc", 0, fh) == 3
    # Visible with its staged size before release
    assert fs("getattr", "/b1/new.txt")["st_size"] == 3
    assert fs("read", "/b1/new.txt", 10, 0, fh) == b"abc"
    fs("release", "/b1/new.txt", fh)

    fh = fs("open", "/b1/new.txt", os.O_RDONLY)
    assert fs("read", "/b1/new.txt", 10, 1, fh) == b"bc"
    fs("release", "/b1/new.txt", fh)


def test_open_for_update_requires_trunc(fs, backend, seeded):
    assert _errno(fs, "open", "/b1/hello.txt", os.O_WRONLY) == errno.ENOTSUP
    fh = fs("open", "/b1/hello.txt", os.O_WRONLY | os.O_TRUNC)
    fs("truncate", "/b1/hello.txt", 2, fh)
    fs("release", "/b1/hello.txt", fh)
    assert backend.calls.count("put_object") == 1


def test_truncate_stored_object(fs, seeded):
    assert fs("truncate", "/b1/hello.txt", 0) == 0
    assert _errno(fs, "truncate", "/b1/hello.txt", 3) == errno.ENOTSUP


def test_trunc_open_adds_object_under_same_name(fs, backend, seeded):
    fh = fs("open", "/b1/hello.txt", os.O_WRONLY | os.O_TRUNC)
    fs("write", "/b1/hello.txt", b"second", 0, fh)
    fs("release", "/b1/hello.txt", fh)
    assert backend.calls.count("delete_object") == 0

    assert fs("readdir", "/b1", None) == [".", "..", "hello.txt"]
    fh = fs("open", "/b1/hello.txt", os.O_RDONLY)
    assert fs("read", "/b1/hello.txt", 64, 0, fh) == b"hello, world"
    fs("release", "/b1/hello.txt", fh)


def test_write_to_reader_is_ebadf(fs, seeded):
    fh = fs("open", "/b1/hello.txt", os.O_RDONLY)
    assert _errno(fs, "write", "/b1/hello.txt", b"x", 0, fh) == errno.EBADF
    assert _errno(fs, "read", "/b1/hello.txt", 1, 0, 999) == errno.EBADF


def test_directory_commands(fs, seeded):
    fs("mkdir", "/photos", 0o755)
    assert "photos" in fs("readdir", "/", None)
    fs("rmdir", "/photos")
    fs("unlink", "/b1/hello.txt")
    assert fs("readdir", "/b1", None) == [".", ".."]


def test_errno_mapping(fs, seeded):
    assert _errno(fs, "mkdir", "/b1/sub", 0o755) == errno.ENOTSUP
    assert _errno(fs, "rename", "/b1/hello.txt", "/b1/other.txt") == errno.ENOTSUP
    assert _errno(fs, "symlink", "/b1/link", "hello.txt") == errno.ENOTSUP
    assert _errno(fs, "readdir", "/b1/hello.txt", None) == errno.ENOTDIR
    assert _errno(fs, "open", "/b1", os.O_RDONLY) == errno.EISDIR
    assert _errno(fs, "getattr", "/a/b/c") == errno.ENOTSUP
    assert fs("chmod", "/b1/hello.txt", 0o600) == 0


def test_read_only_mount(ro_fs, backend, seeded):
    assert _errno(ro_fs, "create", "/b1/new.txt", 0o644) == errno.EACCES
    assert _errno(ro_fs, "mkdir", "/x", 0o755) == errno.EACCES
    assert _errno(ro_fs, "unlink", "/b1/hello.txt") == errno.EACCES
    assert _errno(ro_fs, "chmod", "/b1/hello.txt", 0o600) == errno.EACCES
    assert backend.calls == []


def test_unexpected_error_is_eio(dispatcher, monkeypatch):
    fs = BucketFS(dispatcher)

    def explode(request, ctx=None):
        raise RuntimeError("boom")
    monkeypatch.setattr(dispatcher, "handle", explode)
    assert _errno(fs, "readdir", "/", None) == errno.EIO


def test_destroy_discards_pending_writers(fs, backend, seeded):
    fh = fs("create", "/b1/pending.txt", 0o644)
    fs("write", "/b1/pending.txt", b"abc", 0, fh)
    fs("destroy", "/")
    assert "put_object" not in backend.calls


def test_cli_flags_override_settings(monkeypatch):
    monkeypatch.delenv("BUCKETFS_READ_ONLY", raising=False)
    args = build_parser().parse_args(["/mnt/x", "-R", "-e", "-l", "debug"])
    settings = load_settings(args)
    assert settings.read_only is True
    assert settings.debug_stderr is True
    assert settings.debug_level == "debug"

    args = build_parser().parse_args(["/mnt/x"])
    assert load_settings(args).read_only is False
