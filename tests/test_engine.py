"""Tests for the inference engines."""

import numpy as np
import pytest

from fretline.config import Settings
from fretline.engine.spectral import SpectralEngine
from fretline.errors import FrameSizeError


@pytest.fixture
def spectral_settings(tmp_path) -> Settings:
    return Settings(
        recordings_dir=tmp_path,
        sample_rate=22050,
        frame_size=2048,
        samples_per_step=512,
        mel_bins=32,
    )


@pytest.fixture
def spectral(spectral_settings) -> SpectralEngine:
    return SpectralEngine(spectral_settings)


def tone(settings: Settings, frequency: float, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(settings.frame_size) / settings.sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


class TestSpectralEngine:
    """Tests for SpectralEngine."""

    def test_output_shapes(self, spectral, spectral_settings):
        """Outputs have one value per pitch, mel band and sample."""
        frame = tone(spectral_settings, 220.0)
        spectral.prime(frame)

        output = spectral.infer(frame)

        assert output.predictions.shape == (spectral_settings.pitch_range,)
        assert output.spectrum.shape == (spectral_settings.mel_bins,)
        assert output.reconstruction.shape == (spectral_settings.frame_size,)
        assert output.power > 0

    def test_detects_pitch_of_tone(self, spectral, spectral_settings):
        """A pure A3 peaks at MIDI pitch 57."""
        frame = tone(spectral_settings, 220.0)
        spectral.prime(frame)

        output = spectral.infer(frame)

        strongest = int(np.argmax(output.predictions)) + spectral_settings.base_pitch
        assert strongest == 57
        assert output.predictions.max() == pytest.approx(1.0)

    def test_silence(self, spectral, spectral_settings):
        """Silent frames predict nothing and keep a finite spectrum."""
        silence = np.zeros(spectral_settings.frame_size, dtype=np.float32)
        spectral.prime(silence)

        output = spectral.infer(silence)

        assert not output.predictions.any()
        assert np.isfinite(output.spectrum).all()
        assert output.power == 0.0

    def test_smoothing_carries_over(self, spectral, spectral_settings):
        """Without priming, a silent frame still carries the previous tone."""
        loud = tone(spectral_settings, 220.0)
        silence = np.zeros(spectral_settings.frame_size, dtype=np.float32)
        spectral.prime(loud)
        spectral.infer(loud)

        output = spectral.infer(silence)

        assert output.predictions.max() == pytest.approx(0.5)

    def test_prime_resets_state(self, spectral, spectral_settings):
        """Priming drops whatever the previous section left behind."""
        loud = tone(spectral_settings, 220.0)
        silence = np.zeros(spectral_settings.frame_size, dtype=np.float32)
        spectral.prime(loud)
        spectral.infer(loud)

        spectral.prime(silence)
        output = spectral.infer(silence)

        assert not output.predictions.any()

    def test_frame_size_checked(self, spectral):
        """Frames of the wrong size are rejected."""
        with pytest.raises(FrameSizeError):
            spectral.infer(np.zeros(100, dtype=np.float32))
        with pytest.raises(FrameSizeError):
            spectral.prime(np.zeros(4096, dtype=np.float32))

    @pytest.mark.slow
    def test_drives_a_recording(self, spectral_settings, spectral):
        """A held tone recorded through the engine becomes a single note."""
        from fretline.models.tuning import DEFAULT_TUNINGS
        from fretline.timeline.recording import Recording

        duration = spectral_settings.frame_size + 15 * spectral_settings.samples_per_step
        t = np.arange(duration) / spectral_settings.sample_rate
        signal = (0.5 * np.sin(2 * np.pi * 220.0 * t)).astype(np.float32)
        recording = Recording(tuning=DEFAULT_TUNINGS[0], name="Tone", settings=spectral_settings)

        recording.start_section()
        recording.add_samples(signal)
        processed = recording.process_pending(spectral)
        recording.end_section()

        assert processed == 16
        notes = [note for _, note in recording.note_layout() if note.pitch == 57]
        assert len(notes) == 1
        assert notes[0].duration == 16
