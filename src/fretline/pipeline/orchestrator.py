"""Pipeline orchestrator for fretline."""

import time

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from fretline.config import Settings
from fretline.engine.base import InferenceEngine
from fretline.models.pipeline import CaptureContext, ProcessingResult
from fretline.pipeline.base import PipelineStage

console = Console()


class Pipeline:
    """Runs capture stages in order, stopping at the first failure."""

    def __init__(self, stages: list[PipelineStage], settings: Settings) -> None:
        """Initialize the pipeline.

        Args:
            stages: Ordered list of stages to execute.
            settings: Application settings.
        """
        self.stages = stages
        self.settings = settings

    def run(self, context: CaptureContext) -> ProcessingResult:
        """Run every stage on the context.

        Args:
            context: Capture context naming the source file and recording.

        Returns:
            ProcessingResult with success status and details.
        """
        start_time = time.time()
        result = ProcessingResult(success=True)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        ) as progress:
            for stage in self.stages:
                task = progress.add_task(f"[cyan]{stage.name}[/cyan]...", total=None)

                stage_result = stage.run(context)

                progress.remove_task(task)

                if stage_result.success:
                    result.stages_completed.append(stage.name)
                    result.warnings.extend(stage_result.warnings)
                    console.print(
                        f"  [green]{stage.name}[/green] "
                        f"({stage_result.duration_seconds:.1f}s)"
                    )
                else:
                    result.success = False
                    result.errors.append(f"{stage.name}: {stage_result.error_message}")
                    console.print(
                        f"  [red]{stage.name}[/red] failed: "
                        f"{stage_result.error_message}"
                    )
                    break

        if result.success:
            result.output_path = context.saved_path

        result.total_duration = time.time() - start_time
        return result


def create_capture_pipeline(
    settings: Settings, engine: InferenceEngine | None = None
) -> Pipeline:
    """Create the load -> transcribe -> save pipeline.

    Args:
        settings: Application settings.
        engine: Inference engine (default: a SpectralEngine for the settings).

    Returns:
        Configured Pipeline instance.
    """
    from fretline.engine.spectral import SpectralEngine
    from fretline.stages import LoadAudioStage, SaveStage, TranscribeStage

    stages: list[PipelineStage] = [
        LoadAudioStage(settings),
        TranscribeStage(settings, engine or SpectralEngine(settings)),
        SaveStage(),
    ]

    return Pipeline(stages, settings)
