import socket

import pytest

from reactornet.buffer import Buffer


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


def test_initial_layout():
    buf = Buffer()
    assert buf.readable_bytes() == 0
    assert buf.writable_bytes() == Buffer.K_INITIAL_SIZE
    assert buf.prependable_bytes() == Buffer.K_CHEAP_PREPEND


def test_append_and_retrieve_partial():
    buf = Buffer()
    buf.append(b"hello world")
    assert buf.peek() == b"hello world"
    assert buf.retrieve_as_bytes(5) == b"hello"
    assert buf.peek() == b" world"
    assert buf.prependable_bytes() == Buffer.K_CHEAP_PREPEND + 5


def test_retrieve_all_resets_indices():
    buf = Buffer()
    buf.append(b"abc")
    assert buf.retrieve_all_as_bytes() == b"abc"
    assert buf.readable_bytes() == 0
    assert buf.prependable_bytes() == Buffer.K_CHEAP_PREPEND


def test_retrieve_more_than_readable_resets():
    buf = Buffer()
    buf.append(b"abc")
    buf.retrieve(100)
    assert len(buf) == 0
    assert buf.prependable_bytes() == Buffer.K_CHEAP_PREPEND


def test_retrieve_as_bytes_too_long():
    buf = Buffer()
    buf.append(b"ab")
    with pytest.raises(ValueError):
        buf.retrieve_as_bytes(3)


def test_growth_beyond_initial_size():
    buf = Buffer()
    data = bytes(range(256)) * 10
    buf.append(data)
    assert buf.peek() == data
    assert buf.writable_bytes() == 0


def test_compaction_reuses_prepend_space():
    buf = Buffer()
    first = b"a" * 1000
    second = b"b" * 500
    buf.append(first)
    buf.retrieve(900)
    buf.append(second)
    assert buf.prependable_bytes() == Buffer.K_CHEAP_PREPEND
    assert buf.peek() == first[900:] + second
    assert buf.readable_bytes() + buf.writable_bytes() + buf.prependable_bytes() == (
        Buffer.K_CHEAP_PREPEND + Buffer.K_INITIAL_SIZE
    )


def test_ensure_writable_bytes():
    buf = Buffer(4)
    buf.ensure_writable_bytes(100)
    assert buf.writable_bytes() >= 100


def test_read_fd_small(pair):
    a, b = pair
    b.sendall(b"hello")
    buf = Buffer()
    assert buf.read_fd(a) == 5
    assert buf.retrieve_all_as_bytes() == b"hello"


def test_read_fd_overflow_into_extra(pair):
    a, b = pair
    data = bytes(range(250)) * 12
    b.sendall(data)
    buf = Buffer(16)
    n = buf.read_fd(a)
    assert n == len(data)
    assert buf.peek() == data


def test_read_fd_eof(pair):
    a, b = pair
    b.shutdown(socket.SHUT_WR)
    buf = Buffer()
    assert buf.read_fd(a) == 0
    assert buf.readable_bytes() == 0


def test_read_fd_nonblocking_empty_raises(pair):
    a, _ = pair
    a.setblocking(False)
    with pytest.raises(BlockingIOError):
        Buffer().read_fd(a)


def test_write_fd_keeps_data(pair):
    a, b = pair
    buf = Buffer()
    buf.append(b"abc")
    assert buf.write_fd(a.fileno()) == 3
    assert b.recv(16) == b"abc"
    assert buf.peek() == b"abc"