"""Tests for UploadClient.

HTTP is served by httpx.MockTransport or a patched AsyncClient.
No real network calls are made.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from edgeserver_upload.errors import ArchiveError, UploadConnectionError
from edgeserver_upload.models import UploadStatus
from edgeserver_upload.services.api_client import UploadClient


@pytest.fixture
def archive(tmp_path):
    path = tmp_path / "edgeserver_dist.zip"
    path.write_bytes(b"PK\x05\x06" + b"\x00" * 18)
    return path


def _client(handler, server="https://x.test", timeout=None):
    return UploadClient(server, timeout=timeout, transport=httpx.MockTransport(handler))


class TestUploadClient:
    @pytest.mark.asyncio
    async def test_success_request_shape(self, archive, config):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text="deployed")

        async with _client(handler) as client:
            outcome = await client.upload(archive, config)

        assert outcome.success is True
        assert len(seen) == 1
        request = seen[0]
        assert request.method == "PUT"
        assert str(request.url) == "https://x.test/deployments/push?site=42"
        assert request.headers["Authorization"] == "Bearer abc"
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        assert b'name="data"' in request.content
        assert archive.read_bytes() in request.content

    @pytest.mark.asyncio
    async def test_unauthorized(self, archive, config):
        async with _client(lambda request: httpx.Response(403)) as client:
            outcome = await client.upload(archive, config)

        assert outcome.status == UploadStatus.UNAUTHORIZED
        assert outcome.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_status(self, archive, config):
        async with _client(lambda request: httpx.Response(502, text="bad gateway")) as client:
            outcome = await client.upload(archive, config)

        assert outcome.status == UploadStatus.UNKNOWN_FAILURE
        assert outcome.message == "Unknown error with status code 502"

    @pytest.mark.asyncio
    async def test_single_attempt_on_failure(self, archive, config):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        async with _client(handler) as client:
            await client.upload(archive, config)

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_connection_error(self, archive, config):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(UploadConnectionError, match="connection refused"):
                await client.upload(archive, config)

    @pytest.mark.asyncio
    async def test_server_trailing_slash(self, archive, config):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200)

        async with _client(handler, server="https://x.test/") as client:
            await client.upload(archive, config)

        assert str(seen[0].url) == "https://x.test/deployments/push?site=42"

    @pytest.mark.asyncio
    async def test_missing_archive(self, tmp_path, config):
        async with _client(lambda request: httpx.Response(200)) as client:
            with pytest.raises(ArchiveError):
                await client.upload(tmp_path / "missing.zip", config)

    @pytest.mark.asyncio
    async def test_requires_context(self, archive, config):
        client = UploadClient("https://x.test")
        with pytest.raises(RuntimeError, match="not initialized"):
            await client.upload(archive, config)

    @pytest.mark.asyncio
    async def test_no_timeout_by_default_and_body_drained(self, archive, config):
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.aread = AsyncMock(return_value=b"ok")

        with patch("edgeserver_upload.services.api_client.httpx.AsyncClient") as mock_client_cls:
            mock_client = AsyncMock()
            mock_client.put.return_value = mock_response
            mock_client_cls.return_value = mock_client

            async with UploadClient("https://x.test") as client:
                outcome = await client.upload(archive, config)

        assert outcome.success is True
        assert mock_client_cls.call_args[1]["timeout"] is None
        call_kwargs = mock_client.put.call_args[1]
        assert call_kwargs["params"] == {"site": "42"}
        assert call_kwargs["headers"] == {"Authorization": "Bearer abc"}
        assert "data" in call_kwargs["files"]
        mock_response.aread.assert_awaited_once()
        mock_client.aclose.assert_awaited_once()
