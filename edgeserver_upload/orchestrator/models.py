"""Orchestrator data models."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..errors import DeployError
from ..models import ArchiveResult, DirectoryInventory, UploadOutcome


class PipelineState(Enum):
    """State of the deploy pipeline."""
    IDLE = "idle"
    SCANNING = "scanning"
    ARCHIVING = "archiving"
    UPLOADING = "uploading"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.DONE, PipelineState.FAILED)


# Linear order; FAILED is reachable from any non-terminal state.
NEXT_STATE = {
    PipelineState.IDLE: PipelineState.SCANNING,
    PipelineState.SCANNING: PipelineState.ARCHIVING,
    PipelineState.ARCHIVING: PipelineState.UPLOADING,
    PipelineState.UPLOADING: PipelineState.DONE,
}


@dataclass
class DeploymentResult:
    """Result of one pipeline run."""
    state: PipelineState
    inventory: Optional[DirectoryInventory] = None
    archive: Optional[ArchiveResult] = None
    outcome: Optional[UploadOutcome] = None
    error: Optional[DeployError] = None
    failed_stage: Optional[PipelineState] = None

    @property
    def success(self) -> bool:
        return self.state == PipelineState.DONE

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1
