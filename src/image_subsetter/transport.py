"""
Request transports.

A transport hands the server loop one request at a time and finalizes it
once the response has been written. Two transports are provided:

- ``CGITransport``: single-shot, reads the CGI environment and writes the
  response (CGI header block + body) to stdout. ``accept`` returns a request
  once, then ``None``.
- ``HTTPTransport``: persistent, sequential HTTP listener built on
  ``http.server``. Each ``accept`` blocks for the next connection, parses one
  request and returns it; ``finish`` sends the buffered response and closes
  the connection.
"""

import io
import logging
import os
import socketserver
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import BinaryIO, Protocol
from urllib.parse import parse_qsl

from .constants import HTTP_STATUS_REASONS

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class ResponseSink(Protocol):
    """Byte sink a response is written through."""

    headers_sent: bool

    def start_response(self, status: int, headers: list[tuple[str, str]]) -> None: ...

    def write(self, data: bytes) -> None: ...


def _content_length(value: str | None) -> int:
    try:
        return max(0, int(value or 0))
    except ValueError:
        return 0


def parse_params(query_string: str, body: bytes = b"", content_type: str = "") -> dict[str, list[str]]:
    """Parse query string parameters, followed by url-encoded form body parameters."""
    params: dict[str, list[str]] = {}
    pairs = parse_qsl(query_string, keep_blank_values=True)
    if body and content_type.split(";")[0].strip().lower() == FORM_CONTENT_TYPE:
        pairs += parse_qsl(body.decode("latin-1"), keep_blank_values=True)
    for name, value in pairs:
        params.setdefault(name, []).append(value)
    return params


@dataclass
class Request:
    """Request-scoped view: environment, parsed parameters, and the response sink."""

    environ: dict[str, str]
    params: dict[str, list[str]]
    sink: ResponseSink
    persistent: bool = False

    @property
    def query_string(self) -> str:
        return self.environ.get("QUERY_STRING", "")

    def get(self, name: str) -> str:
        """First value of a parameter, or "" when absent."""
        values = self.params.get(name)
        return values[0] if values else ""

    def form_items(self) -> list[tuple[str, str]]:
        return [(name, value) for name, values in self.params.items() for value in values]


# ---------------------------------------------------------------------------
# CGI
# ---------------------------------------------------------------------------


class CGISink:
    """Writes a CGI response (Status/Content-type header block, then body) to a stream."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self.headers_sent = False

    def start_response(self, status: int, headers: list[tuple[str, str]]) -> None:
        reason = HTTP_STATUS_REASONS.get(status, "")
        lines = [f"Status: {status} {reason}"]
        lines += [f"{name}: {value}" for name, value in headers]
        self._stream.write(("\r\n".join(lines) + "\r\n\r\n").encode("latin-1"))
        self.headers_sent = True

    def write(self, data: bytes) -> None:
        self._stream.write(data)

    def flush(self) -> None:
        self._stream.flush()


class CGITransport:
    """Single-shot transport: one request from the process environment."""

    persistent = False

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        stdin: BinaryIO | None = None,
        stdout: BinaryIO | None = None,
    ) -> None:
        self._environ = dict(os.environ if environ is None else environ)
        self._stdin = stdin if stdin is not None else sys.stdin.buffer
        self._stdout = stdout if stdout is not None else sys.stdout.buffer
        self._accepted = False

    def accept(self) -> Request | None:
        if self._accepted:
            return None
        self._accepted = True

        body = b""
        if self._environ.get("REQUEST_METHOD", "GET").upper() == "POST":
            length = _content_length(self._environ.get("CONTENT_LENGTH"))
            body = self._stdin.read(length) if length > 0 else b""

        params = parse_params(
            self._environ.get("QUERY_STRING", ""), body, self._environ.get("CONTENT_TYPE", "")
        )
        return Request(
            environ=self._environ,
            params=params,
            sink=CGISink(self._stdout),
            persistent=False,
        )

    def finish(self, request: Request) -> None:
        try:
            request.sink.flush()  # type: ignore[attr-defined]
        except OSError as e:
            logger.warning(f"Failed to flush CGI response: {e}")

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


class BufferedSink:
    """Collects status, headers, and body until the transport sends them."""

    def __init__(self) -> None:
        self.status: int | None = None
        self.headers: list[tuple[str, str]] = []
        self.headers_sent = False
        self._body = io.BytesIO()

    def start_response(self, status: int, headers: list[tuple[str, str]]) -> None:
        self.status = status
        self.headers = list(headers)
        self.headers_sent = True

    def write(self, data: bytes) -> None:
        self._body.write(data)

    def getvalue(self) -> bytes:
        return self._body.getvalue()


class _DeferredRequestHandler(BaseHTTPRequestHandler):
    """Parses the request line and headers only; the transport answers later."""

    parsed = False

    def handle(self) -> None:
        self.raw_requestline = self.rfile.readline(65537)
        if not self.raw_requestline:
            return
        if len(self.raw_requestline) > 65536:
            self.send_error(414)
            return
        self.parsed = self.parse_request()

    def finish(self) -> None:
        # Deferred to HTTPTransport.finish()
        pass

    def log_message(self, format: str, *args: object) -> None:
        logger.info(f"{self.address_string()} - {format % args}")


class HTTPTransport:
    """Persistent sequential HTTP transport, one request per connection."""

    persistent = True

    def __init__(self, host: str, port: int) -> None:
        self._server = HTTPServer((host, port), _DeferredRequestHandler)
        self._handlers: dict[int, _DeferredRequestHandler] = {}

    @property
    def server_address(self) -> tuple[str, int]:
        host, port = self._server.server_address[:2]
        return str(host), int(port)

    def accept(self) -> Request | None:
        """Block for the next parsed request. Broken connections are dropped, not raised."""
        while True:
            try:
                connection, client_address = self._server.get_request()
            except OSError as e:
                if self._server.socket.fileno() == -1:
                    raise
                logger.warning(f"Failed to accept connection: {e}")
                continue

            handler: _DeferredRequestHandler | None = None
            try:
                handler = _DeferredRequestHandler(connection, client_address, self._server)
                if not handler.parsed:
                    self._close(handler)
                    continue
                request = self._make_request(handler)
            except OSError as e:
                logger.warning(f"Dropped connection from {client_address}: {e}")
                if handler is not None:
                    self._close(handler)
                else:
                    self._server.shutdown_request(connection)
                continue

            self._handlers[id(request)] = handler
            return request

    def finish(self, request: Request) -> None:
        handler = self._handlers.pop(id(request))
        sink: BufferedSink = request.sink  # type: ignore[assignment]

        # Raw responses carry no headers of their own
        status = sink.status or 200
        body = sink.getvalue()
        try:
            handler.send_response(status, HTTP_STATUS_REASONS.get(status))
            for name, value in sink.headers:
                handler.send_header(name, value)
            handler.send_header("Content-Length", str(len(body)))
            handler.send_header("Connection", "close")
            handler.end_headers()
            handler.wfile.write(body)
        except OSError as e:
            logger.warning(f"Failed to send response to {handler.client_address}: {e}")
        finally:
            self._close(handler)

    def close(self) -> None:
        self._server.server_close()

    def _make_request(self, handler: _DeferredRequestHandler) -> Request:
        path, _, query_string = handler.path.partition("?")
        host, port = self.server_address
        environ = {
            "REQUEST_METHOD": handler.command,
            "QUERY_STRING": query_string,
            "PATH_INFO": path,
            "SERVER_PROTOCOL": handler.request_version,
            "SERVER_NAME": host,
            "SERVER_PORT": str(port),
            "REMOTE_ADDR": handler.client_address[0],
            "CONTENT_TYPE": handler.headers.get("Content-Type", ""),
            "CONTENT_LENGTH": handler.headers.get("Content-Length", ""),
        }
        for name, value in handler.headers.items():
            key = "HTTP_" + name.upper().replace("-", "_")
            if key not in ("HTTP_CONTENT_TYPE", "HTTP_CONTENT_LENGTH"):
                environ[key] = value

        body = b""
        if handler.command == "POST":
            length = _content_length(environ["CONTENT_LENGTH"])
            body = handler.rfile.read(length) if length > 0 else b""

        return Request(
            environ=environ,
            params=parse_params(query_string, body, environ["CONTENT_TYPE"]),
            sink=BufferedSink(),
            persistent=True,
        )

    def _close(self, handler: _DeferredRequestHandler) -> None:
        try:
            socketserver.StreamRequestHandler.finish(handler)
        except OSError:
            pass
        self._server.shutdown_request(handler.request)


Transport = CGITransport | HTTPTransport
