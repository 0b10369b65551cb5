"""Tests for image_subsetter.transport."""

import http.client
import io
import socket
import struct
import threading
from unittest.mock import patch

import pytest

from image_subsetter.transport import (
    BufferedSink,
    CGISink,
    CGITransport,
    HTTPTransport,
    Request,
    parse_params,
)


class TestParseParams:
    def test_query_string(self):
        assert parse_params("size=10,10&bbox=1,2,3,4") == {
            "size": ["10,10"],
            "bbox": ["1,2,3,4"],
        }

    def test_blank_values_kept(self):
        assert parse_params("RAW&dbg=") == {"RAW": [""], "dbg": [""]}

    def test_percent_decoding(self):
        assert parse_params("bbox=1%2C2%2C3%2C4") == {"bbox": ["1,2,3,4"]}

    def test_form_body_after_query(self):
        params = parse_params(
            "ID=a", b"ID=b&size=5,5", "application/x-www-form-urlencoded; charset=utf-8"
        )
        assert params == {"ID": ["a", "b"], "size": ["5,5"]}

    def test_non_form_body_ignored(self):
        assert parse_params("", b"ID=b", "application/octet-stream") == {}


class TestRequest:
    def test_get_first_value(self):
        request = Request(environ={}, params={"ID": ["a", "b"]}, sink=BufferedSink())
        assert request.get("ID") == "a"

    def test_get_absent(self):
        request = Request(environ={}, params={}, sink=BufferedSink())
        assert request.get("ID") == ""

    def test_query_string(self):
        request = Request(environ={"QUERY_STRING": "a=1"}, params={}, sink=BufferedSink())
        assert request.query_string == "a=1"

    def test_form_items(self):
        request = Request(environ={}, params={"a": ["1", "2"], "b": ["3"]}, sink=BufferedSink())
        assert request.form_items() == [("a", "1"), ("a", "2"), ("b", "3")]


class TestCGISink:
    def test_header_block(self):
        stream = io.BytesIO()
        sink = CGISink(stream)
        sink.start_response(200, [("Content-type", "image/jpeg")])
        sink.write(b"body")
        assert stream.getvalue() == b"Status: 200 OK\r\nContent-type: image/jpeg\r\n\r\nbody"
        assert sink.headers_sent


class TestCGITransport:
    def test_single_request(self):
        transport = CGITransport(
            environ={"QUERY_STRING": "size=1,1"}, stdin=io.BytesIO(), stdout=io.BytesIO()
        )
        request = transport.accept()
        assert request.get("size") == "1,1"
        assert request.persistent is False
        assert transport.accept() is None

    def test_post_body(self):
        body = b"ID=scene&size=4,4"
        transport = CGITransport(
            environ={
                "QUERY_STRING": "",
                "REQUEST_METHOD": "POST",
                "CONTENT_TYPE": "application/x-www-form-urlencoded",
                "CONTENT_LENGTH": str(len(body)),
            },
            stdin=io.BytesIO(body),
            stdout=io.BytesIO(),
        )
        request = transport.accept()
        assert request.get("ID") == "scene"
        assert request.get("size") == "4,4"

    def test_bad_content_length(self):
        transport = CGITransport(
            environ={"REQUEST_METHOD": "POST", "CONTENT_LENGTH": "lots"},
            stdin=io.BytesIO(b"ID=x"),
            stdout=io.BytesIO(),
        )
        assert transport.accept().params == {}

    def test_finish_flushes(self):
        stdout = io.BytesIO()
        transport = CGITransport(environ={}, stdin=io.BytesIO(), stdout=stdout)
        request = transport.accept()
        request.sink.write(b"x")
        transport.finish(request)
        transport.close()
        assert stdout.getvalue() == b"x"


class TestBufferedSink:
    def test_collects_response(self):
        sink = BufferedSink()
        sink.start_response(404, [("Content-type", "text/html")])
        sink.write(b"a")
        sink.write(b"b")
        assert sink.status == 404
        assert sink.headers == [("Content-type", "text/html")]
        assert sink.getvalue() == b"ab"


@pytest.fixture
def http_transport():
    transport = HTTPTransport("127.0.0.1", 0)
    yield transport
    transport.close()


def _fetch(address, path, result, method="GET", body=None, headers=None):
    conn = http.client.HTTPConnection(*address, timeout=10)
    conn.request(method, path, body=body, headers=headers or {})
    response = conn.getresponse()
    result["status"] = response.status
    result["headers"] = dict(response.getheaders())
    result["body"] = response.read()
    conn.close()


def _fetch_or_error(address, path, result):
    try:
        _fetch(address, path, result)
    except (OSError, http.client.HTTPException) as e:
        result["error"] = e


def _reset_mid_request(address):
    """Send a partial request line, then abort the connection with RST."""
    sock = socket.create_connection(address, timeout=10)
    sock.sendall(b"GET /?size=1,1")
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
    sock.close()


class TestHTTPTransport:
    def test_round_trip(self, http_transport):
        result = {}
        client = threading.Thread(
            target=_fetch, args=(http_transport.server_address, "/img?size=2,2&ID=a", result)
        )
        client.start()

        request = http_transport.accept()
        assert request.persistent is True
        assert request.query_string == "size=2,2&ID=a"
        assert request.get("ID") == "a"
        assert request.environ["REQUEST_METHOD"] == "GET"
        assert request.environ["PATH_INFO"] == "/img"

        request.sink.start_response(200, [("Content-type", "image/jpeg")])
        request.sink.write(b"jpeg")
        http_transport.finish(request)
        client.join(timeout=10)

        assert result["status"] == 200
        assert result["headers"]["Content-type"] == "image/jpeg"
        assert result["headers"]["Content-Length"] == "4"
        assert result["body"] == b"jpeg"

    def test_raw_response_defaults_to_200(self, http_transport):
        result = {}
        client = threading.Thread(
            target=_fetch, args=(http_transport.server_address, "/?RAW", result)
        )
        client.start()

        request = http_transport.accept()
        request.sink.write(b"raw")
        http_transport.finish(request)
        client.join(timeout=10)

        assert result["status"] == 200
        assert result["body"] == b"raw"

    def test_post_form(self, http_transport):
        result = {}
        client = threading.Thread(
            target=_fetch,
            args=(http_transport.server_address, "/?ID=a", result),
            kwargs={
                "method": "POST",
                "body": b"size=3,3",
                "headers": {"Content-Type": "application/x-www-form-urlencoded"},
            },
        )
        client.start()

        request = http_transport.accept()
        assert request.get("size") == "3,3"
        request.sink.start_response(400, [("Content-type", "text/html")])
        http_transport.finish(request)
        client.join(timeout=10)

        assert result["status"] == 400

    def test_reset_client_is_skipped(self, http_transport):
        address = http_transport.server_address
        _reset_mid_request(address)

        result = {}
        client = threading.Thread(target=_fetch, args=(address, "/?size=1,1&ID=b", result))
        client.start()

        request = http_transport.accept()
        assert request.get("ID") == "b"
        request.sink.start_response(200, [("Content-type", "image/jpeg")])
        request.sink.write(b"ok")
        http_transport.finish(request)
        client.join(timeout=10)

        assert result["status"] == 200
        assert result["body"] == b"ok"

    def test_accept_error_is_skipped(self, http_transport):
        get_request = http_transport._server.get_request
        calls = []

        def flaky_get_request():
            calls.append(1)
            if len(calls) == 1:
                raise OSError("Too many open files")
            return get_request()

        result = {}
        client = threading.Thread(
            target=_fetch, args=(http_transport.server_address, "/?ID=c", result)
        )
        client.start()

        with patch.object(http_transport._server, "get_request", side_effect=flaky_get_request):
            request = http_transport.accept()
        assert request.get("ID") == "c"
        http_transport.finish(request)
        client.join(timeout=10)

        assert len(calls) == 2
        assert result["status"] == 200

    def test_body_read_error_is_skipped(self, http_transport):
        make_request = http_transport._make_request
        calls = []

        def flaky_make_request(handler):
            calls.append(1)
            if len(calls) == 1:
                raise ConnectionResetError(104, "Connection reset by peer")
            return make_request(handler)

        address = http_transport.server_address
        dropped = {}
        first = threading.Thread(target=_fetch_or_error, args=(address, "/?ID=d", dropped))
        first.start()
        first.join(timeout=0.5)

        result = {}
        second = threading.Thread(target=_fetch, args=(address, "/?ID=e", result))
        second.start()

        with patch.object(http_transport, "_make_request", side_effect=flaky_make_request):
            request = http_transport.accept()
        assert request.get("ID") == "e"
        http_transport.finish(request)
        first.join(timeout=10)
        second.join(timeout=10)

        assert len(calls) == 2
        assert result["status"] == 200
        assert "error" in dropped
