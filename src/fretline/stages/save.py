"""Save stage - writes the recording into the output directory."""

from fretline.models.pipeline import CaptureContext, StageResult
from fretline.pipeline.base import PipelineStage
from fretline.storage.recording_file import save


class SaveStage(PipelineStage):
    """Stage 3: Save.

    Writes ``<name><extension>`` into the output directory, creating it if
    needed.
    """

    @property
    def name(self) -> str:
        return "save"

    def execute(self, context: CaptureContext) -> StageResult:
        if context.recording is None:
            return StageResult(
                success=False,
                stage_name=self.name,
                duration_seconds=0,
                error_message="No recording to save",
            )

        try:
            context.saved_path = save(context.recording, context.output_dir)
        except OSError as e:
            return StageResult(
                success=False,
                stage_name=self.name,
                duration_seconds=0,
                error_message=f"Failed to write recording: {e}",
            )

        return StageResult(
            success=True,
            stage_name=self.name,
            duration_seconds=0,
            warnings=[f"Wrote {context.saved_path}"],
        )
