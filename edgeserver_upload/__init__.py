"""
edgeserver_upload - package a build directory and deploy it to edgeserver.

Usage:
    from edgeserver_upload import DeploymentPipeline, load_config

    config = load_config()
    result = await DeploymentPipeline(config).run()
    raise SystemExit(result.exit_code)

Stages:
    DirectoryScanner  -> DirectoryInventory
    ArchiveBuilder    -> ArchiveResult (edgeserver_dist.zip)
    UploadClient      -> UploadOutcome
"""
__version__ = "1.0.0"

from .config import load_config, validate_config
from .errors import (
    AccessError,
    ArchiveError,
    ConfigurationError,
    DeployError,
    FilesystemError,
    NotFoundError,
    TransportError,
    UnauthorizedError,
    UnknownUploadError,
    UploadConnectionError,
)
from .models import (
    ArchiveJob,
    ArchiveProgress,
    ArchiveResult,
    DeploymentConfig,
    DirectoryInventory,
    InventoryEntry,
    UploadOutcome,
    UploadStatus,
)
from .orchestrator import DeploymentPipeline, DeploymentResult, PipelineState
from .services import ArchiveBuilder, DirectoryScanner, UploadClient

__all__ = [
    # Main
    "DeploymentPipeline",
    "DeploymentResult",
    "PipelineState",
    "load_config",
    "validate_config",
    # Models
    "ArchiveJob",
    "ArchiveProgress",
    "ArchiveResult",
    "DeploymentConfig",
    "DirectoryInventory",
    "InventoryEntry",
    "UploadOutcome",
    "UploadStatus",
    # Services
    "ArchiveBuilder",
    "DirectoryScanner",
    "UploadClient",
    # Errors
    "AccessError",
    "ArchiveError",
    "ConfigurationError",
    "DeployError",
    "FilesystemError",
    "NotFoundError",
    "TransportError",
    "UnauthorizedError",
    "UnknownUploadError",
    "UploadConnectionError",
]
