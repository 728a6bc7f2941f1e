"""
Models for the deployment pipeline.

Immutable dataclasses for values that cross stage boundaries; ArchiveJob
is the one mutable record, advanced chunk by chunk while archiving.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

from .errors import ArchiveError


@dataclass(frozen=True)
class InventoryEntry:
    """One file or directory found by the scanner."""
    relative_path: str
    size_bytes: int = 0
    is_directory: bool = False


@dataclass(frozen=True)
class DirectoryInventory:
    """Immutable result of a directory scan."""
    total_size_bytes: int
    entries: Tuple[InventoryEntry, ...] = ()

    @property
    def files(self) -> Tuple[InventoryEntry, ...]:
        return tuple(e for e in self.entries if not e.is_directory)

    @property
    def directories(self) -> Tuple[InventoryEntry, ...]:
        return tuple(e for e in self.entries if e.is_directory)

    @property
    def file_count(self) -> int:
        return len(self.files)


def progress_percent(processed: int, total: int) -> int:
    """Percentage of processed bytes, rounded up and clamped to 0..100."""
    if total <= 0:
        return 100
    percent = -(-processed * 100 // total)
    return max(0, min(percent, 100))


@dataclass
class ArchiveJob:
    """State of one archive run."""
    source_directory: Path
    destination_path: Path
    total_bytes: int
    processed_bytes: int = 0
    files_written: int = 0
    finalized: bool = False

    def advance(self, count: int) -> int:
        """Record `count` more bytes committed to the archive."""
        if self.finalized:
            raise ArchiveError(
                "archive already finalized; no further writes permitted",
                self.destination_path,
            )
        if count < 0:
            raise ValueError(f"byte count must be non-negative, got {count}")
        self.processed_bytes += count
        return self.processed_bytes

    def finalize(self) -> None:
        self.finalized = True

    @property
    def percent(self) -> int:
        return progress_percent(self.processed_bytes, self.total_bytes)


@dataclass(frozen=True)
class ArchiveProgress:
    """Progress event emitted after each committed chunk."""
    processed_bytes: int
    total_bytes: int
    percent: int

    @classmethod
    def from_job(cls, job: ArchiveJob) -> "ArchiveProgress":
        return cls(
            processed_bytes=job.processed_bytes,
            total_bytes=job.total_bytes,
            percent=job.percent,
        )


@dataclass(frozen=True)
class ArchiveResult:
    """Finalized, closed archive on disk."""
    path: Path
    size_bytes: int
    file_count: int
    processed_bytes: int
    blake3_hash: Optional[str] = None


@dataclass(frozen=True)
class DeploymentConfig:
    """Validated deployment configuration."""
    server: str
    app_id: str
    token: str = field(repr=False)
    directory: str

    @property
    def masked_token(self) -> str:
        return "*" * 4 + f" [{len(self.token)}]"


class UploadStatus(Enum):
    """Classification of the upload response."""
    SUCCESS = "success"
    UNAUTHORIZED = "unauthorized"
    UNKNOWN_FAILURE = "unknown_failure"


@dataclass(frozen=True)
class UploadOutcome:
    """Immutable result of the upload request."""
    status: UploadStatus
    status_code: int

    @property
    def success(self) -> bool:
        return self.status == UploadStatus.SUCCESS

    @property
    def message(self) -> str:
        if self.status == UploadStatus.SUCCESS:
            return "Successfully Deployed"
        if self.status == UploadStatus.UNAUTHORIZED:
            return "Unauthorized... check token validity"
        return f"Unknown error with status code {self.status_code}"

    @classmethod
    def ok(cls) -> "UploadOutcome":
        return cls(status=UploadStatus.SUCCESS, status_code=200)

    @classmethod
    def unauthorized(cls) -> "UploadOutcome":
        return cls(status=UploadStatus.UNAUTHORIZED, status_code=403)

    @classmethod
    def unknown(cls, status_code: int) -> "UploadOutcome":
        return cls(status=UploadStatus.UNKNOWN_FAILURE, status_code=status_code)

    @classmethod
    def classify(cls, status_code: int) -> "UploadOutcome":
        if status_code == 200:
            return cls.ok()
        if status_code == 403:
            return cls.unauthorized()
        return cls.unknown(status_code)
