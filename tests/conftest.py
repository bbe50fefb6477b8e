"""Pytest fixtures for fretline tests."""

from collections.abc import Callable, Iterable
from pathlib import Path

import numpy as np
import pytest

from fretline.config import Settings
from fretline.engine.base import InferenceEngine
from fretline.models.frames import StepOutput
from fretline.models.tuning import DEFAULT_TUNINGS
from fretline.timeline.recording import Recording

Script = Callable[[int], Iterable[int]]


def default_script(call: int) -> set[int]:
    """E2 held throughout, A2 struck on every third step starting at step 1."""
    return {40, 45} if call % 3 == 1 else {40}


class ScriptedEngine(InferenceEngine):
    """Engine that reports pitches from a script instead of analysing audio.

    ``script(i)`` gives the pitches active on the i-th frame since the last
    prime() call.
    """

    def __init__(self, settings: Settings, script: Script = default_script) -> None:
        super().__init__(settings.frame_size)
        self.settings = settings
        self.script = script
        self.primed: list[np.ndarray] = []
        self.inferred: list[np.ndarray] = []
        self.calls = 0

    def _prime(self, frame: np.ndarray) -> None:
        self.primed.append(frame.copy())
        self.calls = 0

    def _infer(self, frame: np.ndarray) -> StepOutput:
        predictions = np.zeros(self.settings.pitch_range, dtype=np.float32)
        for pitch in self.script(self.calls):
            predictions[pitch - self.settings.base_pitch] = 0.9
        self.calls += 1
        self.inferred.append(frame.copy())
        return StepOutput(
            predictions=predictions,
            spectrum=np.full(self.settings.mel_bins, frame.mean(), dtype=np.float32),
            reconstruction=frame[::-1],
            power=float(np.abs(frame).max()),
        )


def stream(settings: Settings, count: int, offset: float = 0.0) -> np.ndarray:
    """A ramp signal long enough for ``count`` windows."""
    length = settings.frame_padding + count * settings.samples_per_step
    return np.arange(length, dtype=np.float32) + offset


def frames(settings: Settings, count: int, offset: float = 0.0) -> list[np.ndarray]:
    """Cut ``count`` consecutive overlapping windows out of a ramp signal."""
    signal = stream(settings, count, offset)
    step = settings.samples_per_step
    return [signal[i * step : i * step + settings.frame_size] for i in range(count)]


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with a tiny frame geometry: 16-sample windows every 4 samples."""
    return Settings(
        recordings_dir=tmp_path / "recordings",
        sample_rate=16,
        frame_size=16,
        samples_per_step=4,
        mel_bins=8,
        min_section_length=2,
    )


@pytest.fixture
def engine(settings: Settings) -> ScriptedEngine:
    return ScriptedEngine(settings)


@pytest.fixture
def guitar():
    return DEFAULT_TUNINGS[0]


@pytest.fixture
def build_recording(settings: Settings, engine: ScriptedEngine, guitar):
    """Factory building a recording with one gathered section per length."""

    def build(*section_lengths: int, name: str = "Riff") -> Recording:
        recording = Recording(tuning=guitar, name=name, settings=settings)
        for index, length in enumerate(section_lengths):
            recording.start_section()
            for frame in frames(settings, length, offset=100.0 * index):
                recording.append_frame(frame, engine)
            recording.end_section()
        return recording

    return build
