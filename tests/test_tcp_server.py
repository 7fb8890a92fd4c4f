import socket
import threading
import time

import pytest

from reactornet.event_loop_thread import EventLoopThread
from reactornet.inet_address import InetAddress
from reactornet.tcp_server import ServerOption, TcpServer


@pytest.fixture
def base_loop():
    thread = EventLoopThread(name="base")
    loop = thread.start_loop()
    yield loop
    thread.close()


def run_in(loop, fn):
    done = threading.Event()

    def task():
        try:
            fn()
        finally:
            done.set()

    loop.run_in_loop(task)
    assert done.wait(5)


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def connect(server):
    return socket.create_connection(server.listen_address.sockaddr(), timeout=5)


def echo_callback(conn, buf, when):
    conn.send(buf.retrieve_all_as_bytes())


def test_none_loop_rejected():
    with pytest.raises(ValueError):
        TcpServer(None, InetAddress(0), "srv")


def test_name_and_ip_port_before_start(base_loop):
    server = TcpServer(base_loop, InetAddress(0), "srv")
    try:
        assert server.name == "srv"
        assert server.ip_port == "127.0.0.1:0"
        assert server.started is False
        assert server.listen_address.ip == "127.0.0.1"
        assert server.listen_address.port > 0
    finally:
        server.close()


def test_echo_and_connection_lifecycle(base_loop):
    server = TcpServer(base_loop, InetAddress(0), "srv")
    events = []
    server.connection_callback = lambda conn: events.append((conn.name, conn.connected()))
    server.message_callback = echo_callback
    server.start()
    run_in(base_loop, lambda: None)
    try:
        with connect(server) as client:
            client.sendall(b"ping")
            received = b""
            while len(received) < 4:
                chunk = client.recv(64)
                assert chunk
                received += chunk
            assert received == b"ping"
            assert wait_for(lambda: len(server.connections) == 1)
        assert wait_for(lambda: len(events) == 2)
        assert events[0] == ("srv-127.0.0.1:0#1", True)
        assert events[1] == ("srv-127.0.0.1:0#1", False)
        assert wait_for(lambda: server.connections == {})
    finally:
        run_in(base_loop, server.close)


def test_connection_ids_increase(base_loop):
    server = TcpServer(base_loop, InetAddress(0), "srv")
    names = []
    server.connection_callback = lambda conn: conn.connected() and names.append(conn.name)
    server.start()
    run_in(base_loop, lambda: None)
    try:
        first = connect(server)
        assert wait_for(lambda: len(names) == 1)
        second = connect(server)
        assert wait_for(lambda: len(names) == 2)
        assert [name.rsplit("#", 1)[1] for name in names] == ["1", "2"]
        assert set(server.connections) == set(names)
        first.close()
        second.close()
        assert wait_for(lambda: server.connections == {})
    finally:
        run_in(base_loop, server.close)


def test_thread_init_callback_with_no_threads_gets_base_loop(base_loop):
    server = TcpServer(base_loop, InetAddress(0), "srv")
    seen = []
    server.thread_init_callback = seen.append
    server.start()
    try:
        assert seen == [base_loop]
        assert server.thread_pool.get_all_loops() == [base_loop]
    finally:
        run_in(base_loop, server.close)


def test_start_twice_starts_pool_once(base_loop):
    server = TcpServer(base_loop, InetAddress(0), "srv")
    server.set_thread_num(2)
    server.start()
    server.start()
    try:
        assert server.started is True
        assert len(server.thread_pool.get_all_loops()) == 2
    finally:
        run_in(base_loop, server.close)


def test_connections_spread_over_sub_loops(base_loop):
    server = TcpServer(base_loop, InetAddress(0), "srv")
    server.set_thread_num(2)
    loops = []
    server.connection_callback = lambda conn: conn.connected() and loops.append(conn.loop)
    server.message_callback = echo_callback
    server.start()
    run_in(base_loop, lambda: None)
    try:
        clients = [connect(server), connect(server)]
        assert wait_for(lambda: len(loops) == 2)
        assert loops[0] is not loops[1]
        assert all(loop is not base_loop for loop in loops)
        assert set(map(id, loops)) == set(map(id, server.thread_pool.get_all_loops()))
        for client in clients:
            client.close()
        assert wait_for(lambda: server.connections == {})
    finally:
        run_in(base_loop, server.close)


def test_reuse_port_option_serves(base_loop):
    server = TcpServer(base_loop, InetAddress(0), "srv", ServerOption.REUSE_PORT)
    server.message_callback = echo_callback
    server.start()
    run_in(base_loop, lambda: None)
    try:
        with connect(server) as client:
            client.sendall(b"abc")
            received = b""
            while len(received) < 3:
                chunk = client.recv(64)
                assert chunk
                received += chunk
            assert received == b"abc"
    finally:
        run_in(base_loop, server.close)