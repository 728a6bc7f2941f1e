"""HTTP adapter for the deployment push endpoint."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import httpx

from ..errors import ArchiveError, UploadConnectionError
from ..models import DeploymentConfig, UploadOutcome

logger = logging.getLogger(__name__)

PUSH_ENDPOINT = "/deployments/push"
ARCHIVE_FIELD = "data"
ARCHIVE_CONTENT_TYPE = "application/zip"


class UploadClient:
    """
    HTTP client adapter for the deployment upload.

    Exactly one request per upload; no retries. The timeout defaults to
    None (wait indefinitely) unless the caller passes one.

    Usage:
        async with UploadClient(config.server) as client:
            outcome = await client.upload(Path("edgeserver_dist.zip"), config)
    """

    def __init__(
        self,
        server: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = server.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def upload(self, archive_path: Path, config: DeploymentConfig) -> UploadOutcome:
        """
        PUT the archive as multipart field `data` and classify the response.

        Args:
            archive_path: Finalized zip file
            config: Validated deployment configuration

        Returns:
            UploadOutcome for the response status

        Raises:
            UploadConnectionError: no response was received
        """
        if not self._client:
            raise RuntimeError("UploadClient not initialized. Use 'async with' context.")

        archive_path = Path(archive_path)
        headers = {"Authorization": f"Bearer {config.token}"}
        params = {"site": config.app_id}

        logger.info(
            "Uploading %s to %s%s?site=%s",
            archive_path.name,
            self._base_url,
            PUSH_ENDPOINT,
            config.app_id,
        )

        try:
            with open(archive_path, "rb") as fh:
                files = {ARCHIVE_FIELD: (archive_path.name, fh, ARCHIVE_CONTENT_TYPE)}
                response = await self._client.put(
                    PUSH_ENDPOINT,
                    params=params,
                    headers=headers,
                    files=files,
                )
                # Drain the body so the connection is released.
                await response.aread()
        except httpx.RequestError as exc:
            raise UploadConnectionError(
                f"upload to {self._base_url} failed: {exc}"
            ) from exc
        except OSError as exc:
            raise ArchiveError(f"cannot read archive {archive_path}: {exc}", archive_path) from exc

        outcome = UploadOutcome.classify(response.status_code)
        logger.info("Upload finished with status %s (%s)", response.status_code, outcome.status.value)
        return outcome
