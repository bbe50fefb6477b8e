"""Load audio stage - reads an audio file into mono samples."""

import librosa
import numpy as np
import soundfile as sf

from fretline.config import Settings, get_settings
from fretline.models.pipeline import CaptureContext, StageResult
from fretline.pipeline.base import PipelineStage


class LoadAudioStage(PipelineStage):
    """Stage 1: Load Audio.

    - Validates the audio file exists and is a supported format
    - Reads it with soundfile and mixes all channels down to mono
    - Resamples to the configured sample rate with librosa
    """

    SUPPORTED_EXTENSIONS = {".wav", ".flac", ".ogg", ".aiff", ".aif", ".mp3"}

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    @property
    def name(self) -> str:
        return "load_audio"

    def execute(self, context: CaptureContext) -> StageResult:
        """Execute the load stage."""
        warnings: list[str] = []

        # Validate file exists
        if not context.source_path.exists():
            return StageResult(
                success=False,
                stage_name=self.name,
                duration_seconds=0,
                error_message=f"File not found: {context.source_path}",
            )

        # Validate extension
        ext = context.source_path.suffix.lower()
        if ext not in self.SUPPORTED_EXTENSIONS:
            return StageResult(
                success=False,
                stage_name=self.name,
                duration_seconds=0,
                error_message=f"Unsupported format: {ext}. Supported: {', '.join(sorted(self.SUPPORTED_EXTENSIONS))}",
            )

        try:
            audio, sample_rate = sf.read(context.source_path, dtype="float32", always_2d=True)
        except Exception as e:
            return StageResult(
                success=False,
                stage_name=self.name,
                duration_seconds=0,
                error_message=f"Could not read audio: {e}",
            )

        mono = audio.mean(axis=1)
        if audio.shape[1] > 1:
            warnings.append(f"Mixed {audio.shape[1]} channels down to mono")

        target_rate = self.settings.sample_rate
        if sample_rate != target_rate:
            mono = librosa.resample(mono, orig_sr=sample_rate, target_sr=target_rate)
            warnings.append(f"Resampled from {sample_rate} Hz to {target_rate} Hz")

        context.audio = np.ascontiguousarray(mono, dtype=np.float32)
        context.sample_rate = target_rate
        context.duration = len(context.audio) / target_rate

        return StageResult(
            success=True,
            stage_name=self.name,
            duration_seconds=0,
            warnings=warnings,
        )
