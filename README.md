# reactornet

A small TCP server library built on the reactor pattern, with one event loop
per thread. A base loop listens for connections. It hands each new
connection to a worker loop, chosen round-robin from a thread pool. Each
loop watches its sockets through the platform's `selectors` implementation.
The package has no dependencies beyond the standard library.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `reactornet.timestamp`: `Timestamp` is a time in whole seconds since the epoch. `Timestamp.now()` gives the current time, and `to_string()` formats it as `YYYY/MM/DD HH:MM:SS` in local time.
- `reactornet.logger`: `Logger.instance()` returns a shared logger. It writes lines of the form `[LEVEL]time : message` to its `stream`, which is stdout unless set. Four printf-style helpers go with it:
  - `log_info` and `log_error` write at their level.
  - `log_fatal` writes the message and then raises `SystemExit(-1)`.
  - `log_debug` writes only when `Logger.instance().debug_enabled` is true.
- `reactornet.current_thread`: `tid()` returns the OS id of the calling thread and caches it per thread.
- `reactornet.inet_address`: `InetAddress(port, ip)` is a frozen IPv4 address. It raises `ValueError` for an invalid IP or port. It provides `to_ip()`, `to_port()`, `to_ip_port()` and `sockaddr()`, and `from_sockaddr()` builds one from a `(host, port)` tuple.
- `reactornet.buffer`: `Buffer` is a growable byte buffer laid out as prependable, readable and writable regions.
  - `append()` adds data.
  - `peek()` returns the readable data without removing it.
  - `retrieve()` and `retrieve_as_bytes()` remove it.
  - `read_fd()` reads from a socket or descriptor and returns 0 at end of stream.
  - `write_fd()` writes the readable bytes and leaves them in the buffer.
- `reactornet.tcp_socket`: `create_nonblocking()` makes a new socket and `TcpSocket` wraps one for binding, listening, accepting and setting socket options.
- `reactornet.channel`: `Channel` pairs a descriptor with the events it is interested in (`enable_reading()`, `enable_writing()`, `disable_all()`, and so on) and with the read, write and close callbacks. The callbacks run when the poller reports activity.
- `reactornet.poller`: `Poller` is the interface and `SelectorPoller` is the implementation. Set the `MuDUO_USE_POLL` environment variable to make it use `poll(2)` where the platform has it.
- `reactornet.event_loop`: `EventLoop` polls and dispatches until `quit()` is called.
  - Other threads give it work with `run_in_loop()` or `queue_in_loop()`, and these wake the loop when needed.
  - Only one loop can exist per thread.
  - It is a context manager, and `close()` releases its descriptors.
- `reactornet.threads`: `Thread` is a named thread. `start()` returns once the thread's id is known.
- `reactornet.event_loop_thread`: `EventLoopThread.start_loop()` starts a thread running its own loop and returns that loop.
- `reactornet.event_loop_thread_pool`: `EventLoopThreadPool` starts `set_thread_num()` worker loops, and `get_next_loop()` hands them out in turn. With no threads it always returns the base loop.
- `reactornet.acceptor`: `Acceptor` owns the listening socket and passes each accepted socket to `new_connection_callback`.
- `reactornet.tcp_connection`: `TcpConnection` is one connection.
  - `send()` accepts bytes or UTF-8 text. Output that cannot be written at once is buffered, and `set_high_water_mark_callback()` reports when that buffer grows past a mark.
  - `shutdown()` closes the write side once pending output has been sent.
  - `connected()` and `state` report its status.
- `reactornet.tcp_server`: `TcpServer` ties the pieces together. `ServerOption.REUSE_PORT` sets `SO_REUSEPORT` on the listening socket.

## Writing a server

```python
from reactornet.event_loop import EventLoop
from reactornet.inet_address import InetAddress
from reactornet.tcp_server import TcpServer

loop = EventLoop()
server = TcpServer(loop, InetAddress(8000, "127.0.0.1"), "demo")

def on_connection(conn):
    print("up" if conn.connected() else "down", conn.peer_address.to_ip_port())

def on_message(conn, buf, when):
    conn.send(buf.retrieve_all_as_bytes())

server.connection_callback = on_connection
server.message_callback = on_message
server.set_thread_num(3)
server.start()
loop.loop()
```

Set callbacks before calling `start()`. Once the server has started, call `server.close()` on the base loop's thread. It destroys the open connections, stops listening and stops the worker loops.

## Echo server

`reactornet.echo_server.EchoServer` sends back whatever a client writes and then closes the write side of that connection. It uses three worker loops. To run it:

```
reactornet-echo
```

Options:

| Option | Default |
| --- | --- |
| `--ip` | `127.0.0.1` |
| `--port` | `8000` |
| `--name` | `EchoServer-01` |

The server runs until it is interrupted with Ctrl-C.

## What it does not do

- The package is server-side only. It has no client or connector for making outgoing connections.
- It supports IPv4 addresses only.
- It has no timers or scheduled callbacks.
- Timestamps have whole-second resolution.