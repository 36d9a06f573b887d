from bucketfs.client.ids import ContainerID
from bucketfs.client.types import ContainerHeader
from bucketfs.fs.entries import BucketEntry, ObjectEntry
from bucketfs.fs.listing import Listing, ListingEngine, first_by_name


def _entries(*names):
    bucket = BucketEntry(container_id=ContainerID.random(), name="b1")
    return [ObjectEntry(bucket=bucket, name=name, payload_size=i) for i, name in enumerate(names)]


def test_first_by_name_keeps_first_seen():
    entries = _entries("a", "b", "a", "c", "b")
    unique = first_by_name(entries)
    assert [e.name for e in unique] == ["a", "b", "c"]
    assert unique[0] is entries[0]
    assert unique[1] is entries[1]


def test_first_by_name_is_idempotent():
    once = first_by_name(_entries("x", "x", "y"))
    assert first_by_name(once) == once


def test_list_at_pages():
    listing = Listing(_entries("a", "b", "c"))
    page, eof = listing.list_at(2, 0)
    assert [e.name for e in page] == ["a", "b"]
    assert not eof
    page, eof = listing.list_at(2, 2)
    assert [e.name for e in page] == ["c"]
    assert eof
    assert listing.list_at(2, 3) == ([], True)


def test_empty_listing():
    assert Listing([]).list_at(10, 0) == ([], True)
    assert len(Listing([])) == 0


def test_list_buckets_only_own(backend, ctx, make_bucket):
    make_bucket("one")
    make_bucket("two")
    make_bucket("one")
    backend.put_container(ctx, ContainerHeader(owner="someone-else", name="foreign", policy="REP 1"))
    engine = ListingEngine(backend)
    assert [b.name for b in engine.list_buckets(ctx)] == ["one", "two"]


def test_list_objects_dedups_in_enumeration_order(backend, ctx, make_bucket, put_raw):
    cid = make_bucket("b1")
    first = put_raw(cid, "dup.txt", b"first")
    put_raw(cid, "other.txt", b"x")
    put_raw(cid, "dup.txt", b"second")
    engine = ListingEngine(backend)
    bucket = BucketEntry(container_id=cid, name="b1")
    objects = engine.list_objects(ctx, bucket)
    assert [o.name for o in objects] == ["dup.txt", "other.txt"]
    assert objects[0].object_id == first
    assert objects[0].size == 5
