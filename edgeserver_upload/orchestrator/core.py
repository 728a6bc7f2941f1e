"""Core orchestrator - runs scan, archive and upload in order."""
import logging
from pathlib import Path
from typing import Callable, Optional

from ..cli_progress import DeployOutput
from ..errors import DeployError, TransportError, UnauthorizedError, UnknownUploadError
from ..models import (
    ArchiveProgress,
    ArchiveResult,
    DeploymentConfig,
    DirectoryInventory,
    UploadOutcome,
    UploadStatus,
)
from ..protocols import IArchiveBuilder, IDirectoryScanner, IUploadClient
from ..services.api_client import UploadClient
from ..services.archiver import ArchiveBuilder
from ..services.scanner import DirectoryScanner
from ..utils.events import PROGRESS, STATE, EventEmitter
from .models import NEXT_STATE, DeploymentResult, PipelineState

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_PATH = Path("edgeserver_dist.zip")

ClientFactory = Callable[[str, Optional[float]], IUploadClient]


def _default_client_factory(server: str, timeout: Optional[float]) -> IUploadClient:
    return UploadClient(server, timeout=timeout)


class DeploymentPipeline:
    """
    Packages a build directory and uploads it, once.

    IDLE -> SCANNING -> ARCHIVING -> UPLOADING -> DONE, with FAILED reachable
    from every non-terminal state. A failure skips every later stage.

    Usage:
        pipeline = DeploymentPipeline(config, output)
        pipeline.on_state(lambda state: print(state.value))
        result = await pipeline.run()
        raise SystemExit(result.exit_code)
    """

    def __init__(
        self,
        config: DeploymentConfig,
        output: Optional[DeployOutput] = None,
        scanner: Optional[IDirectoryScanner] = None,
        archiver: Optional[IArchiveBuilder] = None,
        client_factory: Optional[ClientFactory] = None,
        archive_path: Path = DEFAULT_ARCHIVE_PATH,
        timeout: Optional[float] = None,
    ):
        self._config = config
        self._output = output or DeployOutput()
        self._scanner = scanner or DirectoryScanner()
        self._archiver = archiver or ArchiveBuilder()
        self._client_factory = client_factory or _default_client_factory
        self._archive_path = Path(archive_path)
        self._timeout = timeout
        self._events = EventEmitter()
        self._state = PipelineState.IDLE
        self._result: Optional[DeploymentResult] = None

    def on_state(self, callback: Callable[[PipelineState], None]):
        """Called on every state change. Receives the new PipelineState."""
        self._events.on(STATE, callback)

    def on_progress(self, callback: Callable[[ArchiveProgress], None]):
        """Called for each archive progress event. Receives ArchiveProgress."""
        self._events.on(PROGRESS, callback)

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def result(self) -> Optional[DeploymentResult]:
        return self._result

    @property
    def source_directory(self) -> Path:
        return Path(self._config.directory)

    @property
    def archive_path(self) -> Path:
        return self._archive_path

    async def run(self) -> DeploymentResult:
        """Run every stage; returns the terminal DeploymentResult."""
        if self._state != PipelineState.IDLE:
            raise RuntimeError(f"Cannot run pipeline in state: {self._state}")

        result = DeploymentResult(state=PipelineState.IDLE)
        try:
            await self._advance(PipelineState.SCANNING)
            result.inventory = await self._scan()

            await self._advance(PipelineState.ARCHIVING)
            result.archive = await self._archive(result.inventory)

            await self._advance(PipelineState.UPLOADING)
            result.outcome = await self._upload(result.archive)
            if not result.outcome.success:
                raise self._outcome_error(result.outcome)

            await self._advance(PipelineState.DONE)
        except DeployError as exc:
            result.failed_stage = self._state
            result.error = exc
            logger.error("Deployment failed during %s: %s", self._state.value, exc)
            if not isinstance(exc, (UnauthorizedError, UnknownUploadError)):
                self._output.error(str(exc))
            await self._fail()
        except Exception:
            logger.error("Unexpected error during %s", self._state.value, exc_info=True)
            await self._fail()
            raise

        result.state = self._state
        self._result = result
        self._output.finished(result.success)
        return result

    async def _advance(self, target: PipelineState) -> None:
        expected = NEXT_STATE.get(self._state)
        if target != expected:
            raise RuntimeError(f"Invalid transition {self._state.value} -> {target.value}")
        await self._set_state(target)

    async def _fail(self) -> None:
        if self._state.is_terminal:
            return
        await self._set_state(PipelineState.FAILED)

    async def _set_state(self, state: PipelineState) -> None:
        logger.debug("Pipeline state %s -> %s", self._state.value, state.value)
        self._state = state
        await self._events.emit(STATE, state)

    async def _scan(self) -> DirectoryInventory:
        self._output.section("Deploying")
        self._output.stage(f"Scanning {self._config.directory}")
        inventory = await self._scanner.scan_async(
            self.source_directory,
            exclude=(self._archive_path.resolve(),),
        )
        logger.info(
            "Found %d files (%d bytes) in %s",
            inventory.file_count,
            inventory.total_size_bytes,
            self.source_directory,
        )
        return inventory

    async def _archive(self, inventory: DirectoryInventory) -> ArchiveResult:
        self._output.archive_started(inventory.total_size_bytes, inventory.file_count)
        result = await self._archiver.build(
            self.source_directory,
            self._archive_path,
            inventory.total_size_bytes,
            on_progress=self._on_archive_progress,
        )
        self._output.archive_finished(result)
        return result

    async def _on_archive_progress(self, progress: ArchiveProgress) -> None:
        self._output.archive_progress(progress)
        await self._events.emit(PROGRESS, progress)

    async def _upload(self, archive: ArchiveResult) -> UploadOutcome:
        self._output.stage(f"Uploading to {self._config.server}")
        async with self._client_factory(self._config.server, self._timeout) as client:
            outcome = await client.upload(archive.path, self._config)
        self._output.outcome(outcome)
        return outcome

    @staticmethod
    def _outcome_error(outcome: UploadOutcome) -> TransportError:
        if outcome.status == UploadStatus.UNAUTHORIZED:
            return UnauthorizedError(outcome.message, outcome.status_code)
        return UnknownUploadError(outcome.message, outcome.status_code)
