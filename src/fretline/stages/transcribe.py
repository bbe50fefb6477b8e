"""Transcribe stage - captures the loaded audio into a recording."""

import logging

from fretline.config import Settings, get_settings
from fretline.engine.base import InferenceEngine
from fretline.models.pipeline import CaptureContext, StageResult
from fretline.pipeline.base import PipelineStage
from fretline.session import Session
from fretline.timeline.recording import Recording

logger = logging.getLogger(__name__)


class TranscribeStage(PipelineStage):
    """Stage 2: Transcribe.

    Creates the Recording and captures the whole file as one section,
    feeding it to a Session in blocks of ``capture_block_size`` samples the
    way a live input would arrive. The session's capture worker runs every
    complete window through the inference engine and tracks the notes.
    """

    def __init__(self, settings: Settings | None, engine: InferenceEngine) -> None:
        self.settings = settings or get_settings()
        self.engine = engine

    @property
    def name(self) -> str:
        return "transcribe"

    def execute(self, context: CaptureContext) -> StageResult:
        """Run the loaded audio through a capture session."""
        warnings: list[str] = []

        if context.audio is None:
            return StageResult(
                success=False,
                stage_name=self.name,
                duration_seconds=0,
                error_message="No audio loaded",
            )

        recording = Recording(tuning=context.tuning, name=context.name, settings=self.settings)
        session = Session(recording, self.engine)

        session.record()
        block = self.settings.capture_block_size
        for start in range(0, len(context.audio), block):
            session.feed(context.audio[start : start + block])
        session.pause_recording()

        context.recording = recording

        section = recording.sections[-1]
        if not section.time_steps:
            warnings.append("No complete frame was captured")
        logger.info(
            "Transcribed %r: %d time steps, %d notes, %d clusters",
            recording.name,
            len(section.time_steps),
            len(recording.note_layout()),
            len(section.clusters),
        )

        return StageResult(
            success=True,
            stage_name=self.name,
            duration_seconds=0,
            warnings=warnings,
        )
