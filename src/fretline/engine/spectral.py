"""Spectral inference engine - pitch salience from a windowed FFT."""

import librosa
import numpy as np

from fretline.config import Settings, get_settings
from fretline.engine.base import InferenceEngine
from fretline.models.frames import StepOutput


class SpectralEngine(InferenceEngine):
    """Inference engine built on the magnitude spectrum of each frame.

    For every tracked pitch the engine averages the FFT magnitude over the
    bins within half a semitone of its fundamental. The strongest pitch of a
    frame is scaled to 1.0, and the result is blended with the previous
    frame's predictions so that short dropouts do not split notes:

        predictions = smoothing * previous + (1 - smoothing) * salience

    prime() resets the blend to the salience of the section's first frame.

    The spectrum output is the natural log of the mel power spectrum and the
    reconstruction is the frame resynthesised from its magnitudes alone
    (zero phase), centred in the window.
    """

    # Floor added before taking the log of the mel spectrum
    LOG_FLOOR = 1e-7

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        super().__init__(settings.frame_size)
        self.settings = settings

        self._window = np.hanning(settings.frame_size).astype(np.float32)
        self._mel_basis = librosa.filters.mel(
            sr=settings.sample_rate,
            n_fft=settings.frame_size,
            n_mels=settings.mel_bins,
        )
        self._pitch_basis = self._build_pitch_basis()
        self._state = np.zeros(settings.pitch_range, dtype=np.float32)

    def _build_pitch_basis(self) -> np.ndarray:
        """Averaging weights (pitches x FFT bins) around each fundamental.

        Low pitches whose semitone band is narrower than one FFT bin use the
        nearest bin instead.
        """
        settings = self.settings
        frequencies = librosa.fft_frequencies(sr=settings.sample_rate, n_fft=settings.frame_size)
        pitches = np.arange(settings.base_pitch, settings.base_pitch + settings.pitch_range)
        lower = librosa.midi_to_hz(pitches - 0.5)
        upper = librosa.midi_to_hz(pitches + 0.5)

        basis = (
            (frequencies[None, :] >= lower[:, None]) & (frequencies[None, :] < upper[:, None])
        ).astype(np.float32)

        empty = np.flatnonzero(basis.sum(axis=1) == 0)
        if empty.size:
            centres = librosa.midi_to_hz(pitches[empty])
            nearest = np.abs(frequencies[None, :] - centres[:, None]).argmin(axis=1)
            basis[empty, nearest] = 1.0

        return basis / basis.sum(axis=1, keepdims=True)

    def _salience(self, frame: np.ndarray, magnitude: np.ndarray) -> np.ndarray:
        rms = float(np.sqrt(np.mean(frame**2)))
        salience = self._pitch_basis @ magnitude
        peak = float(salience.max(initial=0.0))
        if rms < self.settings.silence_threshold or peak <= 0.0:
            return np.zeros(self.settings.pitch_range, dtype=np.float32)
        return (salience / peak).astype(np.float32)

    def _magnitude(self, frame: np.ndarray) -> np.ndarray:
        return np.abs(np.fft.rfft(frame * self._window))

    def _prime(self, frame: np.ndarray) -> None:
        self._state = self._salience(frame, self._magnitude(frame))

    def _infer(self, frame: np.ndarray) -> StepOutput:
        settings = self.settings
        magnitude = self._magnitude(frame)

        salience = self._salience(frame, magnitude)
        self._state = (
            settings.smoothing * self._state + (1.0 - settings.smoothing) * salience
        ).astype(np.float32)

        spectrum = np.log(self._mel_basis @ magnitude**2 + self.LOG_FLOOR)

        reconstruction = np.fft.irfft(magnitude, n=settings.frame_size)
        reconstruction = np.roll(reconstruction, settings.frame_size // 2)
        power = float(np.sqrt(np.mean(reconstruction**2)))

        return StepOutput(
            predictions=self._state.copy(),
            spectrum=spectrum,
            reconstruction=reconstruction,
            power=power,
        )
