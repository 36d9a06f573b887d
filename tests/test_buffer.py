import pytest

from bucketfs.fs.buffer import StagingBuffer


@pytest.fixture
def buffer():
    buf = StagingBuffer(spool_max_size=8)
    yield buf
    buf.close()


def test_out_of_order_writes(buffer):
    buffer.write_at(b"world", 6)
    buffer.write_at(b"hello ", 0)
    assert buffer.size() == 11
    assert buffer.read_at(100, 0) == b"hello world"


def test_gap_is_zero_filled(buffer):
    buffer.write_at(b"x", 4)
    assert buffer.read_at(10, 0) == b"\0\0\0\0x"


def test_rewrite_overwrites(buffer):
    buffer.write_at(b"aaaa", 0)
    buffer.write_at(b"bb", 1)
    assert buffer.read_at(4, 0) == b"abba"


def test_spills_past_spool_size(buffer):
    data = bytes(range(64))
    buffer.write_at(data, 0)
    assert buffer.read_at(64, 0) == data
    assert buffer.read_at(10, 64) == b""


def test_truncate(buffer):
    buffer.write_at(b"abcdef", 0)
    buffer.truncate(3)
    assert buffer.read_at(10, 0) == b"abc"
    buffer.truncate(5)
    assert buffer.read_at(10, 0) == b"abc\0\0"


def test_iter_chunks(buffer):
    buffer.write_at(b"0123456789", 0)
    assert list(buffer.iter_chunks(4)) == [b"0123", b"4567", b"89"]
    with pytest.raises(ValueError):
        list(buffer.iter_chunks(0))


def test_closed_buffer_rejects_use():
    buf = StagingBuffer()
    buf.close()
    assert buf.closed
    with pytest.raises(ValueError):
        buf.write_at(b"x", 0)
    buf.close()
