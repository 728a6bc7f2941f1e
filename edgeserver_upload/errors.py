"""
Error hierarchy for the deployment pipeline.

Every stage raises its own subclass of DeployError; the orchestrator
catches DeployError, moves to FAILED and maps it to exit code 1.
"""
from pathlib import Path
from typing import Optional, Union


class DeployError(RuntimeError):
    """Base class for all expected pipeline failures."""


class ConfigurationError(DeployError):
    """A required configuration field is missing or malformed."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class FilesystemError(DeployError):
    """Source directory missing, unreadable, or changed while archiving."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class NotFoundError(FilesystemError):
    """The path does not exist (or is not a directory)."""


class AccessError(FilesystemError):
    """An entry could not be read."""


class ArchiveError(DeployError):
    """The archive file could not be created or written."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class TransportError(DeployError):
    """The upload did not succeed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UnauthorizedError(TransportError):
    """Server answered 403."""


class UnknownUploadError(TransportError):
    """Server answered with a status other than 200 or 403."""


class UploadConnectionError(TransportError):
    """The request never produced a response."""
