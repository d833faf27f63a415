import json
from http.server import BaseHTTPRequestHandler, HTTPServer
from threading import Thread

import pytest

from osaurus_sdk.config import ConnectionSettings, DiscoverySettings, SDKSettings

OSAURUS_ENVIRONMENT = (
    "OSAURUS_BASE_URL",
    "OSAURUS_API_KEY",
    "OSAURUS_TIMEOUT",
    "OSAURUS_BUNDLE_IDENTIFIER",
    "OSAURUS_SHARED_CONFIGURATION_DIR",
)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    for name in OSAURUS_ENVIRONMENT:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def shared_dir(tmp_path):
    root = tmp_path / "SharedConfiguration"
    root.mkdir()
    return root


@pytest.fixture
def write_instance(shared_dir):
    """Write `<shared_dir>/<name>/configuration.json` from a running descriptor."""

    def _write(name: str, drop: tuple[str, ...] = (), **fields):
        descriptor = {
            "instanceId": name,
            "updatedAt": "2026-01-01T00:00:00Z",
            "health": "running",
            "address": "127.0.0.1",
            "port": 1337,
        }
        descriptor.update(fields)
        for key in drop:
            descriptor.pop(key, None)

        directory = shared_dir / name
        directory.mkdir()
        (directory / "configuration.json").write_text(json.dumps(descriptor))
        return directory

    return _write


@pytest.fixture
def make_config(shared_dir):
    def _make(**connection):
        return SDKSettings(
            connection=ConnectionSettings(**connection),
            discovery=DiscoverySettings(shared_configuration_dir=shared_dir),
        ).get_locked()

    return _make


class MockOsaurusHandler(BaseHTTPRequestHandler):
    """Serve canned responses keyed by path and record every request."""

    def _respond(self):
        content_length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(content_length) if content_length else b""
        self.server.received.append({"method": self.command, "path": self.path, "headers": self.headers, "body": body})

        status, payload = self.server.responses.get(self.path, (404, {"error": "not found"}))
        data = payload if isinstance(payload, bytes) else json.dumps(payload).encode()

        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    do_GET = _respond
    do_POST = _respond

    def log_message(self, format, *args):
        pass


@pytest.fixture
def mock_server():
    try:
        server = HTTPServer(("127.0.0.1", 0), MockOsaurusHandler)
    except PermissionError as exc:
        pytest.skip(f"Local HTTP server unavailable in this environment: {exc}")
    server.responses = {}
    server.received = []
    server.url = f"http://127.0.0.1:{server.server_address[1]}"
    thread = Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
    thread.join(timeout=1)
