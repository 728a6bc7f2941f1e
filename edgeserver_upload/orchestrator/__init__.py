"""Orchestrator package - sequences scan, archive and upload."""
from .core import DEFAULT_ARCHIVE_PATH, DeploymentPipeline
from .models import DeploymentResult, PipelineState

__all__ = ["DEFAULT_ARCHIVE_PATH", "DeploymentPipeline", "DeploymentResult", "PipelineState"]
