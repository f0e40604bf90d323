"""
Pytest configuration and fixtures for health checker tests.
"""

import io
import json
import os
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
import requests
from hypothesis import settings, Verbosity

from ollama_checker.config import CheckerConfig, ProbeConfig, PoolSettings

# Configure Hypothesis for faster test runs
settings.register_profile("fast", max_examples=5, deadline=5000, verbosity=Verbosity.quiet)
settings.register_profile("thorough", max_examples=100, deadline=30000, verbosity=Verbosity.normal)

settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "fast"))


# Canned /api/tags handlers keyed by the first path segment
TAGS_FIXTURES = {
    "good": (200, {"models": [
        {"name": "llama3:8b", "digest": "sha256:aa11", "size": 4661224676},
        {"name": "qwen2:7b", "digest": "sha256:bb22", "size": 4431388192},
    ]}),
    "empty": (200, {"models": []}),
    "nameless": (200, {"models": [{"name": "", "digest": "sha256:cc33"}]}),
    "broken": (200, "not json {"),
    "down": (503, "service unavailable"),
}

# Served one byte at a time by the "slow" route
SLOW_BODY = json.dumps({"models": [{"name": "drip:1b"}]}).encode("utf-8")
SLOW_BYTE_INTERVAL = 0.25


def make_response(status_code=200, body=b"", headers=None, reason="OK"):
    """Build a real requests.Response around an in-memory body."""
    if isinstance(body, (dict, list)):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode("utf-8")

    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response.headers.update(headers or {"Content-Type": "application/json"})
    response.raw = io.BytesIO(body)
    return response


class TagsHandler(BaseHTTPRequestHandler):
    """Serves ``/<fixture>/api/tags`` from TAGS_FIXTURES."""

    def do_GET(self):
        parts = self.path.strip("/").split("/")
        if parts == ["slow", "api", "tags"]:
            self._send_slowly()
            return

        fixture = TAGS_FIXTURES.get(parts[0]) if parts[1:] == ["api", "tags"] else None
        if fixture is None:
            self.send_error(404)
            return

        status, payload = fixture
        body = payload if isinstance(payload, str) else json.dumps(payload)
        data = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _send_slowly(self):
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(SLOW_BODY)))
        self.end_headers()
        try:
            for i in range(len(SLOW_BODY)):
                self.wfile.write(SLOW_BODY[i:i + 1])
                self.wfile.flush()
                time.sleep(SLOW_BYTE_INTERVAL)
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, format, *args):
        pass


@pytest.fixture(scope="session")
def tags_server():
    """Local HTTP server; yields its base URL (``http://127.0.0.1:<port>``)."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), TagsHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


@pytest.fixture
def unused_url():
    """Base URL of a port nothing listens on."""
    import socket
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}"


@pytest.fixture
def test_config(tmp_path):
    """Provide a fast checker configuration."""
    return CheckerConfig(
        probe=ProbeConfig(request_timeout=2.0, max_retries=1, retry_backoff=0.01),
        pool=PoolSettings(queue_poll_interval=0.05, shutdown_grace=5.0),
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def restore_root_logger():
    """Undo setup_logging(): drop the handlers it installed and restore the level."""
    import logging
    root = logging.getLogger()
    original, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in original:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


@pytest.fixture
def response_factory():
    """Factory for canned requests.Response objects."""
    return make_response


@pytest.fixture
def clean_env(monkeypatch):
    """Keep CHECKER_* variables from the developer's shell out of a test."""
    for name in list(os.environ):
        if name.startswith("CHECKER_"):
            monkeypatch.delenv(name, raising=False)
    return monkeypatch


def pytest_configure(config):
    """Configure pytest with custom settings."""
    # Configure logging for tests
    import logging
    logging.getLogger("ollama_checker").setLevel(logging.WARNING)
    logging.getLogger("business").setLevel(logging.WARNING)
    logging.getLogger("hypothesis").setLevel(logging.WARNING)


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers."""
    for item in items:
        # Mark property-based tests
        if any(marker.name == "given" for marker in item.iter_markers()) or "properties" in item.fspath.basename:
            item.add_marker(pytest.mark.property)

        if "integration" in item.fspath.basename:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)
