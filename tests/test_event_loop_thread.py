import threading

import pytest

from reactornet import current_thread
from reactornet.event_loop import EventLoop
from reactornet.event_loop_thread import EventLoopThread


def test_start_loop_returns_loop_running_on_other_thread():
    elt = EventLoopThread(name="worker")
    loop = elt.start_loop()
    try:
        seen = []
        done = threading.Event()

        def record():
            seen.append(current_thread.tid())
            done.set()

        loop.run_in_loop(record)
        assert done.wait(5)
        assert isinstance(loop, EventLoop)
        assert loop.is_in_loop_thread() is False
        assert seen[0] != current_thread.tid()
    finally:
        elt.close()


def test_callback_receives_the_loop_before_looping():
    received = []
    elt = EventLoopThread(received.append)
    loop = elt.start_loop()
    try:
        assert received == [loop]
        assert elt.loop is loop
    finally:
        elt.close()


def test_close_stops_the_loop():
    elt = EventLoopThread()
    elt.start_loop()
    elt.close()
    assert elt.loop is None


def test_name_is_kept():
    elt = EventLoopThread(name="worker")
    assert elt.name == "worker"


def test_default_name_is_generated():
    elt = EventLoopThread()
    assert elt.name.startswith("Thread")


def test_failing_callback_raises_on_start():
    def boom(loop):
        raise ValueError("bad init")

    elt = EventLoopThread(boom)
    with pytest.raises(RuntimeError):
        elt.start_loop()
    elt.close()
    assert elt.loop is None


def test_context_manager_closes():
    with EventLoopThread() as elt:
        loop = elt.start_loop()
        assert elt.loop is loop
    assert elt.loop is None