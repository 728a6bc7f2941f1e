"""Shared fixtures for edgeserver_upload tests."""
import io
import logging

import httpx
import pytest
from rich.console import Console

from edgeserver_upload.cli_progress import DeployOutput
from edgeserver_upload.models import DeploymentConfig
from edgeserver_upload.services.api_client import UploadClient


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logging.disable(logging.NOTSET)


@pytest.fixture
def console():
    return Console(file=io.StringIO(), force_terminal=False, color_system=None, width=120)


@pytest.fixture
def output(console):
    return DeployOutput(console)


@pytest.fixture
def config():
    return DeploymentConfig(server="https://x.test", app_id="42", token="abc", directory="dist")


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Working directory with a dist/ holding one 10-byte file."""
    monkeypatch.chdir(tmp_path)
    dist = tmp_path / "dist"
    dist.mkdir()
    (dist / "index.html").write_bytes(b"0123456789")
    return tmp_path


class RecordingServer:
    """httpx.MockTransport handler that records requests."""

    def __init__(self, status_code: int = 200, body: bytes = b"ok"):
        self.status_code = status_code
        self.body = body
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, content=self.body)

    def client_factory(self, server, timeout):
        return UploadClient(server, timeout=timeout, transport=httpx.MockTransport(self))


@pytest.fixture
def server():
    return RecordingServer()


@pytest.fixture
def printed(console):
    """Return everything written to the test console so far."""
    return lambda: console.file.getvalue()


@pytest.fixture
def make_server():
    """Build a RecordingServer answering with a given status."""
    return RecordingServer
