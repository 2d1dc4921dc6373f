"""
Request handler for DuoServer
=============================

Maps a request path onto a file below the configured root directory and
streams it back. Each accepted request gets its own handler instance, so no
per-request state is shared between connections.
"""

import http.server
import os
from http import HTTPStatus
from pathlib import Path
from typing import Iterable
from urllib.parse import unquote

from loguru import logger

from duoserver import __version__
from duoserver.core.config import ServerConfig
from duoserver.core.mime_types import mime_table


def target_path(request_target: str) -> str:
    """Path part of a request target, without query or fragment."""
    # urlsplit() would read a leading "//" as a network location
    return request_target.split("?", 1)[0].split("#", 1)[0]


def find_index_file(root: Path, names: Iterable[str]) -> str | None:
    """Return the first index name that is a regular file directly under root."""
    for name in names:
        if (root / name).is_file():
            return name
    return None


def resolve_request_path(request_path: str, config: ServerConfig) -> Path | None:
    """
    Resolve a request URL path to a regular file under the root directory.

    Args:
        request_path: Path component of the request target (query allowed)
        config: Server configuration holding the root and index list

    Returns:
        Absolute path of the file to serve, or None if nothing should be served
    """
    relative = unquote(target_path(request_path))
    if relative.startswith("/"):
        relative = relative[1:]

    root = config.root_directory
    if not relative:
        relative = find_index_file(root, config.index_file_names) or ""

    try:
        root_resolved = root.resolve()
        candidate = (root / relative).resolve()
        # Reject anything that escapes the root after canonicalization
        if not candidate.is_relative_to(root_resolved):
            logger.warning(f"Rejected path outside root: {request_path}")
            return None
        if not candidate.is_file():
            return None
    except (OSError, ValueError) as e:
        logger.debug(f"Unresolvable request path {request_path!r}: {e}")
        return None

    return candidate


class StaticFileHandler(http.server.BaseHTTPRequestHandler):
    """Serve files from ``self.server.config.root_directory``."""

    protocol_version = "HTTP/1.1"
    server_version = f"DuoServer/{__version__}"

    @property
    def config(self) -> ServerConfig:
        return self.server.config

    def serve(self, include_body: bool = True):
        request_path = target_path(self.path)
        logger.info(f"Requested: {request_path}")
        self.discard_request_body()

        file_path = resolve_request_path(request_path, self.config)
        if file_path is None:
            self.send_empty(HTTPStatus.NOT_FOUND)
            logger.warning(f"Path not found: {request_path}")
            return

        self.send_file(file_path, include_body)

    def do_HEAD(self):
        self.serve(include_body=False)

    # Every other method is treated as a request to read a file
    do_GET = serve
    do_POST = serve
    do_PUT = serve
    do_DELETE = serve
    do_PATCH = serve
    do_OPTIONS = serve

    def discard_request_body(self):
        # Request bodies are ignored but must be consumed to keep the connection usable
        encoding = self.headers.get("Transfer-Encoding", "").strip().lower()
        if encoding == "chunked":
            self.discard_chunked_body()
            return
        if encoding and encoding != "identity":
            self.close_connection = True
            return
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = 0
            self.close_connection = True
        if length > 0:
            self.rfile.read(length)

    def discard_chunked_body(self):
        try:
            while True:
                size = int(self.rfile.readline(65537).split(b";", 1)[0].strip(), 16)
                if size < 0:
                    raise ValueError(f"negative chunk size {size}")
                if size == 0:
                    break
                self.rfile.read(size + 2)  # chunk data and its CRLF
            # Trailer section ends with an empty line
            while self.rfile.readline(65537) not in (b"\r\n", b"\n", b""):
                pass
        except ValueError:
            logger.warning("Malformed chunked request body; closing connection")
            self.close_connection = True

    def open_file(self, file_path: Path):
        return open(file_path, "rb")

    def send_response(self, code, message=None):
        super().send_response(code, message)
        # In sequential mode a held keep-alive connection would block the single accept loop
        if self.close_connection or not self.config.concurrent:
            self.send_header("Connection", "close")

    def send_empty(self, status: HTTPStatus):
        self.send_response(status)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def send_file(self, file_path: Path, include_body: bool = True):
        try:
            source = self.open_file(file_path)
        except OSError as e:
            logger.error(f"Internal server error opening {file_path}: {e}")
            self.send_empty(HTTPStatus.INTERNAL_SERVER_ERROR)
            return

        with source:
            try:
                stat = os.fstat(source.fileno())
            except OSError as e:
                logger.error(f"Internal server error reading {file_path}: {e}")
                self.send_empty(HTTPStatus.INTERNAL_SERVER_ERROR)
                return

            self.send_response(HTTPStatus.OK)
            self.send_header("Content-Type", mime_table.lookup(file_path))
            self.send_header("Content-Length", str(stat.st_size))
            self.send_header("Last-Modified", self.date_time_string(stat.st_mtime))
            self.end_headers()
            if not include_body:
                return

            try:
                sent = self.copy_body(source, stat.st_size)
            except ConnectionError as e:
                self.close_connection = True
                logger.warning(f"Client {self.client_address[0]} disconnected during {file_path.name}: {e}")
                return
            except OSError:
                # Headers are already out; dropping the connection is the only way to signal failure
                self.close_connection = True
                logger.exception(f"Internal server error streaming {file_path}")
                return

        if sent != stat.st_size:
            self.close_connection = True
            logger.error(f"File {file_path} shrank while streaming ({sent} of {stat.st_size} bytes)")
            return

        self.wfile.flush()
        logger.info(f"Request served: {file_path.name} ({sent} bytes)")

    def copy_body(self, source, length: int) -> int:
        """Stream at most ``length`` bytes of the open file in fixed-size chunks."""
        sent = 0
        chunk_size = self.config.chunk_size
        while sent < length:
            chunk = source.read(min(chunk_size, length - sent))
            if not chunk:
                break
            self.wfile.write(chunk)
            sent += len(chunk)
        return sent

    def log_message(self, format, *args):
        logger.debug(f"{self.address_string()} - {format % args}")

    def log_error(self, format, *args):
        logger.warning(f"{self.address_string()} - {format % args}")
