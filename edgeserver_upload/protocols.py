"""
Protocols (Interfaces) for the pipeline stages.

The orchestrator depends on these, so tests can substitute any stage.
"""
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Protocol, Union, runtime_checkable

from .models import ArchiveResult, DeploymentConfig, DirectoryInventory, UploadOutcome


@runtime_checkable
class IDirectoryScanner(Protocol):
    """Interface for directory inventory."""

    async def scan_async(
        self,
        root: Union[str, Path],
        exclude: Iterable[Union[str, Path]] = (),
    ) -> DirectoryInventory:
        """Scan a directory tree."""
        ...


@runtime_checkable
class IArchiveBuilder(Protocol):
    """Interface for archive creation."""

    async def build(
        self,
        source_directory: Union[str, Path],
        destination_path: Union[str, Path],
        total_bytes: int,
        on_progress: Optional[Callable[..., Any]] = None,
    ) -> ArchiveResult:
        """Create a finalized archive."""
        ...


@runtime_checkable
class IUploadClient(Protocol):
    """Interface for the deployment upload; used as an async context manager."""

    async def __aenter__(self) -> "IUploadClient":
        ...

    async def __aexit__(self, *args) -> Any:
        ...

    async def upload(self, archive_path: Path, config: DeploymentConfig) -> UploadOutcome:
        """Upload the archive once."""
        ...
