import pytest

from bucketfs.fs import errors
from bucketfs.fs.listing import ListingEngine
from bucketfs.fs.resolver import FsPath, PathResolver


@pytest.fixture
def resolver(backend):
    return PathResolver(backend, ListingEngine(backend))


@pytest.mark.parametrize("path,bucket,obj", [
    ("/", None, None),
    ("", None, None),
    ("/b1", "b1", None),
    ("b1", "b1", None),
    ("/b1/", "b1", None),
    ("/b1/report.txt", "b1", "report.txt"),
    ("//b1//report.txt", "b1", "report.txt"),
])
def test_parse_segments(path, bucket, obj):
    parsed = FsPath.parse(path)
    assert parsed.bucket == bucket
    assert parsed.object == obj
    assert parsed.raw == path


def test_parse_depth_limit():
    with pytest.raises(errors.UnsupportedOperationError):
        FsPath.parse("/b1/dir/file.txt")


def test_parse_rejects_nul():
    with pytest.raises(errors.InvalidArgumentError):
        FsPath.parse("/b1/a\0b")


def test_path_kinds():
    assert FsPath.parse("/").is_root
    assert FsPath.parse("/b1").is_bucket
    assert FsPath.parse("/b1/x").is_object
    assert FsPath.parse("/b1/x").depth == 2


def test_resolve_bucket_by_name_and_id(resolver, ctx, seeded):
    container_id, _ = seeded
    assert resolver.resolve_bucket(ctx, "b1").container_id == container_id
    assert resolver.resolve_bucket(ctx, str(container_id)).name == "b1"


def test_resolve_missing_bucket(resolver, ctx, seeded):
    with pytest.raises(errors.NotFoundError):
        resolver.resolve_bucket(ctx, "nope")


def test_resolve_object_by_name_and_id(resolver, ctx, seeded):
    _, object_id = seeded
    bucket = resolver.resolve_bucket(ctx, "b1")
    by_name = resolver.resolve_object(ctx, bucket, "hello.txt")
    assert by_name.object_id == object_id
    by_id = resolver.resolve_object(ctx, bucket, str(object_id))
    assert by_id.name == "hello.txt"


def test_find_object_by_name_missing(resolver, ctx, seeded):
    bucket = resolver.resolve_bucket(ctx, "b1")
    with pytest.raises(errors.NotFoundError):
        resolver.find_object_by_name(ctx, bucket, "missing.txt")


def test_stat_root_makes_no_backend_call(resolver, ctx, backend):
    entry = resolver.stat(ctx, FsPath.parse("/"))
    assert entry.name == "/"
    assert backend.calls == []
