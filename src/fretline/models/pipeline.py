"""Pipeline processing models for fretline.

These models track state as an audio file moves through the capture pipeline.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np

from fretline.models.tuning import Tuning

if TYPE_CHECKING:
    from fretline.timeline.recording import Recording


@dataclass
class CaptureContext:
    """Mutable state passed through pipeline stages."""

    # Input
    source_path: Path
    name: str
    tuning: Tuning

    # Directory the recording is saved into
    output_dir: Path = field(default_factory=lambda: Path("recordings"))

    # Loaded audio (mono, float32, at settings.sample_rate)
    audio: np.ndarray | None = None
    sample_rate: int | None = None
    duration: float | None = None

    # Transcription
    recording: "Recording | None" = None

    # Final output
    saved_path: Path | None = None


@dataclass
class StageResult:
    """Result of a pipeline stage execution."""

    success: bool
    stage_name: str
    duration_seconds: float
    error_message: str | None = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class ProcessingResult:
    """Final result of the complete pipeline execution."""

    success: bool
    output_path: Path | None = None
    stages_completed: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    total_duration: float = 0.0
