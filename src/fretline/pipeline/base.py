"""Base class for the stages of the capture pipeline."""

import logging
import time
from abc import ABC, abstractmethod

from fretline.models.pipeline import CaptureContext, StageResult

logger = logging.getLogger(__name__)


class PipelineStage(ABC):
    """One step from an audio file towards a saved recording.

    Stages share a single CaptureContext: the loader fills in the audio, the
    transcriber the Recording and the saver the output path. A stage that
    cannot do its part reports it through a failed StageResult, and the
    pipeline stops there.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Stage name shown in progress output and error messages."""
        ...

    @abstractmethod
    def execute(self, context: CaptureContext) -> StageResult:
        """Do this stage's part of the capture.

        Args:
            context: Capture context filled in by the earlier stages.

        Returns:
            StageResult with success and any warnings for the user.
        """
        ...

    def run(self, context: CaptureContext) -> StageResult:
        """Execute the stage and record how long it took.

        An exception from execute(), e.g. a capture worker failure surfacing
        from the transcriber, is logged with its traceback and becomes a
        failed StageResult so the CLI can report it.
        """
        started = time.perf_counter()
        try:
            result = self.execute(context)
        except Exception as e:
            logger.exception("Stage %s raised", self.name)
            result = StageResult(
                success=False,
                stage_name=self.name,
                duration_seconds=0,
                error_message=f"Unexpected error: {e}",
            )
        result.duration_seconds = time.perf_counter() - started
        return result
