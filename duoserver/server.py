"""
Listener loop for DuoServer
===========================

Owns the bound port and the accept loop. The loop runs on its own thread so
the operator console can share the process; a failing request is logged and
the loop keeps accepting.
"""

import http.server
import socket
import socketserver
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta

from loguru import logger

from duoserver.core.config import ServerConfig
from duoserver.handler import StaticFileHandler


def find_free_port() -> int:
    """Ask the OS for an unused port by binding a throwaway loopback socket."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
        probe.bind(("127.0.0.1", 0))
        return probe.getsockname()[1]


def get_host_ip() -> str:
    """Best-effort LAN address of this machine."""
    try:
        addresses = socket.gethostbyname_ex(socket.gethostname())[2]
    except OSError:
        return "127.0.0.1"
    return addresses[-1] if addresses else "127.0.0.1"


@dataclass
class ServerState:
    listening: bool = False
    started_at: datetime = field(default_factory=datetime.now)
    started_monotonic: float = field(default_factory=time.monotonic)


class StaticHTTPServer(http.server.HTTPServer):
    """HTTPServer that carries the config and survives per-request failures."""

    allow_reuse_address = True

    def __init__(self, config: ServerConfig, handler_class=StaticFileHandler):
        self.config = config
        super().__init__((config.host, config.port), handler_class)

    def server_bind(self):
        # Skip HTTPServer.server_bind, whose getfqdn() lookup can stall on 0.0.0.0
        socketserver.TCPServer.server_bind(self)
        host, port = self.server_address[:2]
        self.server_name = host
        self.server_port = port

    def handle_error(self, request, client_address):
        logger.exception(f"Listener error while serving {client_address[0]}:{client_address[1]}")


class ThreadingStaticHTTPServer(socketserver.ThreadingMixIn, StaticHTTPServer):
    daemon_threads = True


class StaticFileServer:
    """
    One static file server instance.

    The port is fixed at construction: a configured port of 0 is replaced by
    a free port immediately, so ``port`` is known before ``start()``.
    """

    def __init__(self, config: ServerConfig):
        if config.port == 0:
            config = replace(config, port=find_free_port())
        self.config = config
        self.state = ServerState()
        self._httpd: StaticHTTPServer | None = None
        self._thread: threading.Thread | None = None
        self._stopped = threading.Event()
        self._lock = threading.Lock()

    @property
    def port(self) -> int:
        return self.config.port

    @property
    def address(self) -> str:
        return f"{get_host_ip()}:{self.port}"

    @property
    def url(self) -> str:
        return f"http://{self.address}/"

    @property
    def listening(self) -> bool:
        return self.state.listening

    def uptime(self) -> timedelta:
        return timedelta(seconds=time.monotonic() - self.state.started_monotonic)

    def start(self):
        """Bind the listening socket and start the accept loop thread."""
        with self._lock:
            if self._httpd is not None:
                raise RuntimeError("Server already started")

            server_class = ThreadingStaticHTTPServer if self.config.concurrent else StaticHTTPServer
            self._httpd = server_class(self.config)
            self.state.listening = True

            self._thread = threading.Thread(target=self._listen, name="duoserver-listener", daemon=True)
            self._thread.start()

        logger.info("Server thread started successfully")

    def _listen(self):
        mode = "concurrent" if self.config.concurrent else "sequential"
        logger.info(f"Listener started on {self.config.host}:{self.port} ({mode}), "
                    f"server initialized at {self.state.started_at:%Y-%m-%d %H:%M:%S}")
        try:
            self._httpd.serve_forever(poll_interval=0.25)
        except Exception:
            logger.exception("Listener loop failed")
        finally:
            self.state.listening = False

    def stop(self):
        """Stop accepting, close the socket and release waiters. Safe to call twice."""
        with self._lock:
            if self._stopped.is_set():
                return
            httpd, thread = self._httpd, self._thread

            if httpd is not None:
                if thread is not None and thread.is_alive() and thread is not threading.current_thread():
                    httpd.shutdown()
                httpd.server_close()
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout=5)

            self.state.listening = False
            self._stopped.set()

        logger.info("Server stopped")

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the server is stopped. Returns False on timeout."""
        return self._stopped.wait(timeout)

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
