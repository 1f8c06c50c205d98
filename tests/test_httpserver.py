import queue
import socket
import urllib.request
from datetime import timedelta

import pytest

from prassign.httpserver import Server, ServerClosed


def echo_app(environ, start_response):
    body = f"{environ['REQUEST_METHOD']} {environ['PATH_INFO']}".encode()
    start_response("200 OK", [("Content-Type", "text/plain"), ("Content-Length", str(len(body)))])
    return [body]


def free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_default_address():
    server = Server(echo_app)
    assert server.addr == ":8080"


def test_port_option_sets_address():
    server = Server(echo_app, port="9090")
    assert server.addr == ":9090"


def test_serves_requests_and_reports_shutdown():
    port = free_port()
    server = Server(echo_app, port=str(port))
    server.start()
    try:
        with urllib.request.urlopen(f"http://127.0.0.1:{port}/health", timeout=5) as response:
            assert response.status == 200
            assert response.read() == b"GET /health"
    finally:
        server.shutdown()

    reason = server.notify().get(timeout=5)
    assert isinstance(reason, ServerClosed)
    assert server.shutdown() is None


def test_bad_port_is_reported_on_notify():
    server = Server(echo_app, port="notaport")
    assert server.addr == ":notaport"
    server.start()
    reason = server.notify().get(timeout=5)
    assert type(reason) is ValueError
    assert str(reason) != ""


def test_idle_connection_is_closed_after_read_timeout():
    port = free_port()
    server = Server(echo_app, port=str(port), read_timeout=timedelta(milliseconds=200))
    server.start()
    try:
        with socket.create_connection(("127.0.0.1", port), timeout=3) as sock:
            assert sock.recv(1024) == b""
    finally:
        server.shutdown()


def test_shutdown_before_start_leaves_notify_empty():
    server = Server(echo_app)
    server.shutdown()
    assert server.addr == ":8080"
    with pytest.raises(queue.Empty):
        server.notify().get(timeout=0.1)