#!/usr/bin/env python3
"""
Tests for process exit behaviour of the HTTP server.

The subprocess tests start a real uvicorn server in a child process,
signal it once startup completed and check the exit status.
"""

import os
import signal
import subprocess
import sys
import textwrap
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from mcp_kubernetes.main import create_app, serve_http
from mcp_kubernetes.modules.protocol import ProtocolServer

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

SERVER_SCRIPT = textwrap.dedent(
    """
    import sys

    from mcp_kubernetes.logging_config import configure_logging
    from mcp_kubernetes.main import create_app, serve_http
    from mcp_kubernetes.modules.protocol import ProtocolServer


    class FailingServer(ProtocolServer):
        async def close(self):
            raise RuntimeError("close failed")


    configure_logging("INFO")
    server_class = FailingServer if sys.argv[1] == "fail" else ProtocolServer
    app = create_app(server_class("test-server", "Server under test", "0.1.0"))
    serve_http(app, "127.0.0.1", 0, 2.0)
    """
)


class FailingServer(ProtocolServer):
    async def close(self):
        raise RuntimeError("close failed")


def start_server(mode: str) -> subprocess.Popen:
    """Start the child and block until uvicorn reports startup."""
    env = dict(os.environ)
    env["PYTHONPATH"] = ROOT + os.pathsep + env.get("PYTHONPATH", "")
    process = subprocess.Popen(
        [sys.executable, "-u", "-c", SERVER_SCRIPT, mode],
        cwd=ROOT,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
    )

    seen = []
    for line in process.stdout:
        seen.append(line)
        if "Application startup complete" in line:
            return process

    process.wait(timeout=10)
    raise AssertionError(f"server did not start:\n{''.join(seen)}")


def stop_server(process: subprocess.Popen, sig: int) -> str:
    process.send_signal(sig)
    output, _ = process.communicate(timeout=20)
    return output


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals required")
class TestProcessExit:
    """Test exit status after a signal."""

    @pytest.mark.parametrize("sig", [signal.SIGINT, signal.SIGTERM])
    def test_clean_stop_exits_zero(self, sig):
        process = start_server("ok")

        output = stop_server(process, sig)

        assert process.returncode == 0, output
        assert "Server stopped" in output
        assert "KeyboardInterrupt" not in output

    @pytest.mark.parametrize("sig", [signal.SIGINT, signal.SIGTERM])
    def test_failed_stop_exits_one(self, sig):
        process = start_server("fail")

        output = stop_server(process, sig)

        assert process.returncode == 1, output
        assert "protocol server close failed" in output


class TestShutdownErrors:
    """Test how shutdown problems are recorded and reported."""

    def test_close_failure_recorded(self):
        app = create_app(FailingServer("t", "t", "1"))

        with TestClient(app):
            pass

        assert app.state.shutdown_errors == ["protocol server close failed: close failed"]

    def test_clean_close_records_nothing(self):
        app = create_app(ProtocolServer("t", "t", "1"))

        with TestClient(app):
            pass

        assert app.state.shutdown_errors == []

    def test_serve_http_returns_after_clean_stop(self):
        app = create_app(ProtocolServer("t", "t", "1"))

        with patch("mcp_kubernetes.main.uvicorn.Server") as server_class:
            server_class.return_value = MagicMock(started=True)
            serve_http(app, "127.0.0.1", 0, 1.0)

        server_class.return_value.run.assert_called_once()

    def test_serve_http_exits_on_shutdown_error(self):
        app = create_app(ProtocolServer("t", "t", "1"))
        server = MagicMock(started=True)
        server.run.side_effect = lambda: app.state.shutdown_errors.append("graceful shutdown timed out")

        with patch("mcp_kubernetes.main.uvicorn.Server", return_value=server):
            with pytest.raises(SystemExit) as exc_info:
                serve_http(app, "127.0.0.1", 0, 1.0)

        assert exc_info.value.code == 1

    def test_serve_http_exits_when_not_started(self):
        app = create_app(ProtocolServer("t", "t", "1"))

        with patch("mcp_kubernetes.main.uvicorn.Server", return_value=MagicMock(started=False)):
            with pytest.raises(SystemExit) as exc_info:
                serve_http(app, "127.0.0.1", 0, 1.0)

        assert exc_info.value.code == 1

    def test_signal_handlers_restored(self):
        app = create_app(ProtocolServer("t", "t", "1"))
        before = signal.getsignal(signal.SIGTERM)

        with patch("mcp_kubernetes.main.uvicorn.Server", return_value=MagicMock(started=True)):
            serve_http(app, "127.0.0.1", 0, 1.0)

        assert signal.getsignal(signal.SIGTERM) is before
