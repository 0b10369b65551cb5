"""Tests for the server.py entry point."""

import io
import logging
from unittest.mock import MagicMock, patch

import pytest

from image_subsetter import server
from image_subsetter.constants import TransportMode
from image_subsetter.transport import CGITransport


@pytest.fixture
def dynamic_config(tmp_path, geotiff_path):
    (tmp_path / "srv.config").write_text(f"DPrefix={tmp_path}/\nDSuffix=.tif\n")
    return str(tmp_path / "srv")


class TestDetectMode:
    def test_gateway_interface(self, monkeypatch):
        monkeypatch.setenv("GATEWAY_INTERFACE", "CGI/1.1")
        assert server._detect_mode() == TransportMode.CGI

    def test_query_string_present(self, monkeypatch):
        monkeypatch.delenv("GATEWAY_INTERFACE", raising=False)
        monkeypatch.setenv("QUERY_STRING", "")
        assert server._detect_mode() == TransportMode.CGI

    def test_http_otherwise(self, monkeypatch):
        monkeypatch.delenv("GATEWAY_INTERFACE", raising=False)
        monkeypatch.delenv("QUERY_STRING", raising=False)
        assert server._detect_mode() == TransportMode.HTTP


class TestSetupLogging:
    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("SUBSETTER_LOG_LEVEL", "debug")
        with patch("logging.basicConfig") as mock_config:
            server._setup_logging()
        assert mock_config.call_args.kwargs["level"] == logging.DEBUG

    def test_unknown_level_defaults_to_info(self, monkeypatch):
        monkeypatch.setenv("SUBSETTER_LOG_LEVEL", "chatty")
        with patch("logging.basicConfig") as mock_config:
            server._setup_logging()
        assert mock_config.call_args.kwargs["level"] == logging.INFO


class TestMain:
    def test_missing_configuration(self, tmp_path, monkeypatch):
        monkeypatch.setattr("sys.argv", ["image-subsetter", "cgi", "--config", str(tmp_path / "x")])
        assert server.main() == 1

    def test_cgi_request(self, dynamic_config, monkeypatch):
        stdout = io.BytesIO()
        transport = CGITransport(
            environ={"QUERY_STRING": "ID=tile&size=12,12&RAW"}, stdin=io.BytesIO(), stdout=stdout
        )
        monkeypatch.setattr("sys.argv", ["image-subsetter", "cgi", "--config", dynamic_config])

        with patch("image_subsetter.transport.CGITransport", return_value=transport):
            assert server.main() == 0

        assert stdout.getvalue().startswith(b"\xff\xd8")

    def test_http_bind_failure(self, dynamic_config, monkeypatch):
        monkeypatch.setattr(
            "sys.argv", ["image-subsetter", "http", "--config", dynamic_config, "--port", "1"]
        )
        with patch("image_subsetter.transport.HTTPTransport", side_effect=OSError("in use")):
            assert server.main() == 1

    def test_http_mode_uses_host_and_port(self, dynamic_config, monkeypatch):
        monkeypatch.setattr(
            "sys.argv",
            ["image-subsetter", "http", "--config", dynamic_config, "--host", "0.0.0.0", "--port", "9000"],
        )
        mock_transport = MagicMock()
        mock_transport.accept.return_value = None
        with patch(
            "image_subsetter.transport.HTTPTransport", return_value=mock_transport
        ) as mock_cls:
            assert server.main() == 0
        mock_cls.assert_called_once_with("0.0.0.0", 9000)
        mock_transport.close.assert_called_once()

    def test_keyboard_interrupt(self, dynamic_config, monkeypatch):
        monkeypatch.setattr("sys.argv", ["image-subsetter", "http", "--config", dynamic_config])
        with patch("image_subsetter.transport.HTTPTransport", return_value=MagicMock()):
            with patch(
                "image_subsetter.server_loop.ServerLoop.run", side_effect=KeyboardInterrupt
            ):
                assert server.main() == 0

    def test_config_from_environment(self, dynamic_config, monkeypatch):
        monkeypatch.setenv("SUBSETTER_CONFIG", dynamic_config)
        monkeypatch.setattr("sys.argv", ["image-subsetter", "cgi"])
        transport = MagicMock()
        transport.accept.return_value = None
        with patch("image_subsetter.transport.CGITransport", return_value=transport):
            assert server.main() == 0
