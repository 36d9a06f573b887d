import pytest

from bucketfs.client.context import Context
from bucketfs.client.exceptions import ContainerError, ObjectError
from bucketfs.client.types import SearchFilters
from bucketfs.fs import errors
from bucketfs.fs.listing import Listing
from bucketfs.fs.requests import Method, Request
from bucketfs.fs.streams import ObjectReader, ObjectWriter


def _names(listing):
    return [entry.name for entry in listing]


def test_request_parse_unknown_method():
    with pytest.raises(errors.UnsupportedOperationError):
        Request.parse("Chmod", "/b1")


def test_request_parse_requires_target():
    with pytest.raises(errors.InvalidArgumentError):
        Request.parse("Rename", "/b1/a")
    request = Request.parse(Method.RENAME, "/b1/a", "/b1/b")
    assert request.target.object == "b"


def test_report_scenario(dispatcher, make_bucket):
    make_bucket("b1")
    content = b"quarterly numbers: 42\n\x00"
    assert len(content) == 23

    writer = dispatcher.handle(Request.parse("Put", "/b1/report.txt"))
    assert isinstance(writer, ObjectWriter)
    writer.write_at(content, 0)
    writer.close()

    reader = dispatcher.handle(Request.parse("Get", "/b1/report.txt"))
    assert isinstance(reader, ObjectReader)
    assert reader.read_all() == content

    stat = dispatcher.handle(Request.parse("Stat", "/b1/report.txt"))
    entry, = stat
    assert entry.size == 23
    assert entry.is_dir is False


def test_empty_bucket_scenario(dispatcher, make_bucket):
    make_bucket("b1")
    listing = dispatcher.handle(Request.parse("List", "/b1"))
    assert isinstance(listing, Listing)
    assert list(listing) == []

    bucket, = dispatcher.handle(Request.parse("Stat", "/b1"))
    assert bucket.name == "b1"
    assert bucket.is_dir

    root, = dispatcher.handle(Request.parse("Stat", "/"))
    assert root.name == "/"
    assert root.is_dir


def test_list_root(dispatcher, make_bucket):
    make_bucket("b1")
    make_bucket("b2")
    assert _names(dispatcher.handle(Request.parse("List", "/"))) == ["b1", "b2"]


def test_list_deduplicates_first_seen(dispatcher, seeded, put_raw):
    container_id, first = seeded
    put_raw(container_id, "hello.txt", b"newer and longer")
    listing = dispatcher.handle(Request.parse("List", "/b1"))
    assert _names(listing) == ["hello.txt"]
    assert next(iter(listing)).object_id == first


def test_list_object_is_not_a_directory(dispatcher, seeded):
    with pytest.raises(errors.NotDirectoryError):
        dispatcher.handle(Request.parse("List", "/b1/hello.txt"))


def test_list_missing_bucket(dispatcher, seeded):
    with pytest.raises(errors.NotFoundError) as exc_info:
        dispatcher.handle(Request.parse("List", "/missing"))
    assert exc_info.value.operation == "List"


def test_stat_by_object_id(dispatcher, seeded):
    _, object_id = seeded
    entry, = dispatcher.handle(Request.parse("Stat", f"/b1/{object_id}"))
    assert entry.name == "hello.txt"


def test_relative_and_doubled_slash_paths(dispatcher, seeded):
    bucket, = dispatcher.handle(Request.parse("Stat", "b1"))
    assert bucket.name == "b1"
    entry, = dispatcher.handle(Request.parse("Stat", "//b1//hello.txt"))
    assert entry.name == "hello.txt"
    with pytest.raises(errors.InvalidArgumentError):
        Request.parse("Stat", "b1\0")


@pytest.mark.parametrize("method", [m.value for m in Method])
def test_depth_limit_for_every_method(dispatcher, backend, method):
    with pytest.raises(errors.UnsupportedOperationError):
        dispatcher.handle(Request.parse(method, "/b1/dir/file", "/b1/other"))
    assert backend.calls == []


@pytest.mark.parametrize("method", ["Put", "Open", "Mkdir", "Remove", "Rmdir"])
def test_read_only_gate(ro_dispatcher, backend, seeded, method):
    path = "/b1" if method in ("Mkdir", "Rmdir") else "/b1/hello.txt"
    with pytest.raises(errors.PermissionDeniedError):
        ro_dispatcher.handle(Request.parse(method, path))
    assert backend.calls == []


def test_read_only_allows_reads(ro_dispatcher, seeded):
    reader = ro_dispatcher.handle(Request.parse("Get", "/b1/hello.txt"))
    assert reader.read_all() == b"hello, world"


def test_get_directory_is_type_mismatch(dispatcher, seeded):
    with pytest.raises(errors.TypeMismatchError):
        dispatcher.handle(Request.parse("Get", "/b1"))


def test_put_on_bucket_is_type_mismatch(dispatcher, seeded):
    with pytest.raises(errors.TypeMismatchError):
        dispatcher.handle(Request.parse("Put", "/b1"))


def test_put_into_missing_bucket(dispatcher, seeded):
    with pytest.raises(errors.NotFoundError):
        dispatcher.handle(Request.parse("Put", "/nope/file.txt"))


def test_mkdir_and_rmdir(dispatcher, backend, ctx):
    dispatcher.handle(Request.parse("Mkdir", "/photos"))
    info = backend.get_container(ctx, backend.list_containers(ctx, backend.owner_id)[0])
    assert info.attributes["Name"] == "photos"
    assert int(info.attributes["Timestamp"]) > 0
    assert info.policy == "REP 1"

    dispatcher.handle(Request.parse("Rmdir", "/photos"))
    assert _names(dispatcher.handle(Request.parse("List", "/"))) == []


def test_mkdir_rejections(dispatcher, seeded):
    with pytest.raises(errors.UnsupportedOperationError):
        dispatcher.handle(Request.parse("Mkdir", "/"))
    with pytest.raises(errors.UnsupportedOperationError, match="only first-level directories"):
        dispatcher.handle(Request.parse("Mkdir", "/b1/sub"))


def test_remove_object(dispatcher, seeded):
    dispatcher.handle(Request.parse("Remove", "/b1/hello.txt"))
    assert list(dispatcher.handle(Request.parse("List", "/b1"))) == []
    with pytest.raises(errors.NotFoundError):
        dispatcher.handle(Request.parse("Remove", "/b1/hello.txt"))


def test_remove_root_unsupported(dispatcher):
    with pytest.raises(errors.UnsupportedOperationError):
        dispatcher.handle(Request.parse("Remove", "/"))


def test_unsupported_methods(dispatcher, backend, seeded):
    for method in ["Readlink", "Rename", "Link", "Symlink"]:
        with pytest.raises(errors.UnsupportedOperationError):
            dispatcher.handle(Request.parse(method, "/b1/hello.txt", "/b1/other.txt"))
    assert backend.calls == []


def test_setstat_is_noop(dispatcher, backend, seeded):
    assert dispatcher.handle(Request.parse("Setstat", "/b1/hello.txt")) is None
    assert backend.calls == []


def test_family_methods(dispatcher, seeded):
    assert isinstance(dispatcher.file_list(Request.parse("List", "/")), Listing)
    assert isinstance(dispatcher.file_read(Request.parse("Get", "/b1/hello.txt")), ObjectReader)
    writer = dispatcher.file_write(Request.parse("Open", "/b1/new.txt"))
    writer.abort()
    dispatcher.file_cmd(Request.parse("Setstat", "/b1"))
    with pytest.raises(errors.UnsupportedOperationError):
        dispatcher.file_read(Request.parse("List", "/"))


def test_backend_failure_is_wrapped(dispatcher, backend, seeded, monkeypatch):
    def broken(ctx, owner):
        raise ContainerError("connection reset", operation="LIST")
    monkeypatch.setattr(backend, "list_containers", broken)

    with pytest.raises(errors.BackendError) as exc_info:
        dispatcher.handle(Request.parse("List", "/"))
    assert isinstance(exc_info.value.__cause__, ContainerError)
    assert exc_info.value.path == "/"


def test_cancelled_context(dispatcher, seeded):
    ctx = Context.background()
    ctx.cancel()
    with pytest.raises(errors.BackendError):
        dispatcher.handle(Request.parse("List", "/"), ctx)


def _fail_on_second_call(monkeypatch, backend, name, error):
    original = getattr(backend, name)
    calls = []

    def flaky(*args, **kwargs):
        calls.append(name)
        if len(calls) == 2:
            raise error
        return original(*args, **kwargs)
    monkeypatch.setattr(backend, name, flaky)
    return calls


def test_object_listing_aborts_on_metadata_failure(dispatcher, backend, make_bucket, put_raw, monkeypatch):
    container_id = make_bucket("b1")
    for name in ("a.txt", "b.txt", "c.txt"):
        put_raw(container_id, name, b"data")
    calls = _fail_on_second_call(monkeypatch, backend, "head_object",
                                 ObjectError("connection reset", operation="HEAD"))

    listing = None
    with pytest.raises(errors.BackendError) as exc_info:
        listing = dispatcher.handle(Request.parse("List", "/b1"))
    assert listing is None
    assert isinstance(exc_info.value.__cause__, ObjectError)
    assert len(calls) == 2


def test_bucket_listing_aborts_on_metadata_failure(dispatcher, backend, make_bucket, monkeypatch):
    for name in ("b1", "b2", "b3"):
        make_bucket(name)
    calls = _fail_on_second_call(monkeypatch, backend, "get_container",
                                 ContainerError("connection reset", operation="GET"))

    listing = None
    with pytest.raises(errors.BackendError) as exc_info:
        listing = dispatcher.handle(Request.parse("List", "/"))
    assert listing is None
    assert isinstance(exc_info.value.__cause__, ContainerError)
    assert len(calls) == 2


def test_put_existing_name_adds_second_object(dispatcher, backend, ctx, seeded, write_file):
    container_id, first = seeded
    write_file("/b1/hello.txt", b"second upload")

    stored = backend.search_objects(ctx, container_id, SearchFilters())
    assert len(stored) == 2
    assert first in stored
    reader = dispatcher.handle(Request.parse("Get", "/b1/hello.txt"))
    assert reader.read_all() == b"hello, world"
