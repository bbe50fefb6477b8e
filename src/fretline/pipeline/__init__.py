"""Pipeline module for fretline."""

from fretline.pipeline.base import PipelineStage
from fretline.pipeline.orchestrator import Pipeline, create_capture_pipeline

__all__ = ["Pipeline", "PipelineStage", "create_capture_pipeline"]
