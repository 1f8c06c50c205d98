"""A threaded WSGI HTTP server that runs in the background."""

from __future__ import annotations

import logging
import queue
import socket
import threading
from datetime import timedelta
from socketserver import TCPServer, ThreadingMixIn
from typing import Any, Callable
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

log = logging.getLogger(__name__)

DEFAULT_READ_TIMEOUT = timedelta(seconds=5)
DEFAULT_WRITE_TIMEOUT = timedelta(seconds=5)
DEFAULT_PORT = "8080"
DEFAULT_SHUTDOWN_TIMEOUT = timedelta(seconds=3)


class ServerClosed(Exception):
    """Put on the notify queue when the server stops after a shutdown."""

    def __init__(self) -> None:
        super().__init__("http: Server closed")


def _seconds(value: timedelta | float) -> float:
    return value.total_seconds() if isinstance(value, timedelta) else float(value)


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True
    allow_reuse_address = True

    def server_bind(self) -> None:
        # Skip the reverse DNS lookup the stock server does on bind.
        TCPServer.server_bind(self)
        host, port = self.server_address[:2]
        self.server_name = host or "localhost"
        self.server_port = port
        self.setup_environ()

    def handle_error(self, request: Any, client_address: Any) -> None:
        log.debug("connection from %s failed", client_address, exc_info=True)


class Server:
    """Serves a WSGI application on a port until shut down."""

    def __init__(
        self,
        handler: Callable[..., Any],
        port: str = DEFAULT_PORT,
        read_timeout: timedelta | float = DEFAULT_READ_TIMEOUT,
        write_timeout: timedelta | float = DEFAULT_WRITE_TIMEOUT,
        shutdown_timeout: timedelta | float = DEFAULT_SHUTDOWN_TIMEOUT,
    ) -> None:
        self.handler = handler
        self.port = str(port)
        self.addr = f":{self.port}"
        self.read_timeout = _seconds(read_timeout)
        self.write_timeout = _seconds(write_timeout)
        self.shutdown_timeout = _seconds(shutdown_timeout)
        self._notify: queue.Queue[BaseException] = queue.Queue()
        self._httpd: _ThreadingWSGIServer | None = None

    def _handler_class(self) -> type[WSGIRequestHandler]:
        read_timeout = self.read_timeout
        write_timeout = self.write_timeout

        class _Handler(WSGIRequestHandler):
            timeout = read_timeout

            def get_environ(self) -> dict[str, Any]:
                environ = super().get_environ()
                # The request head has been read; the rest is the response.
                self.connection.settimeout(write_timeout)
                return environ

            def log_message(self, format: str, *args: Any) -> None:
                log.debug("%s - %s", self.address_string(), format % args)

        return _Handler

    def start(self) -> None:
        """Bind the port and serve in a background thread.

        A failure to bind, or the end of serving, is reported on ``notify()``.
        """
        try:
            httpd = make_server(
                "",
                int(self.port),
                self.handler,
                server_class=_ThreadingWSGIServer,
                handler_class=self._handler_class(),
            )
        except (OSError, ValueError, OverflowError) as err:
            self._notify.put(err)
            return

        self._httpd = httpd

        def serve() -> None:
            try:
                httpd.serve_forever()
            except Exception as err:
                self._notify.put(err)
            else:
                self._notify.put(ServerClosed())

        threading.Thread(target=serve, name="http-server", daemon=True).start()

    def notify(self) -> queue.Queue[BaseException]:
        """Return the queue that receives the reason the server stopped."""
        return self._notify

    def shutdown(self) -> None:
        """Stop serving, waiting at most the shutdown timeout."""
        httpd = self._httpd
        if httpd is None:
            return

        done = threading.Event()

        def stop() -> None:
            httpd.shutdown()
            done.set()

        threading.Thread(target=stop, daemon=True).start()
        if not done.wait(self.shutdown_timeout):
            raise TimeoutError("http server shutdown: context deadline exceeded")

        httpd.server_close()
        self._httpd = None


__all__ = ["Server", "ServerClosed", "socket"] if False else ["Server", "ServerClosed"]