"""Configuration management for fretline."""

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FRETLINE_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Storage
    recordings_dir: Path = Field(
        default=Path("recordings"),
        description="Directory that holds saved recordings",
    )
    file_extension: str = Field(
        default=".rec",
        description="File extension of saved recordings",
    )

    # Audio
    sample_rate: int = Field(
        default=44100,
        description="Sample rate of captured audio",
    )
    capture_block_size: int = Field(
        default=4096,
        description="Number of samples handed to the capture worker at a time",
    )

    # Inference geometry
    frame_size: int = Field(
        default=4096,
        description="Number of samples in one inference window",
    )
    samples_per_step: int = Field(
        default=1024,
        description="Number of new samples between consecutive windows",
    )
    base_pitch: int = Field(
        default=24,
        description="MIDI pitch of the first prediction (C1)",
    )
    pitch_range: int = Field(
        default=36,
        description="Number of pitches the engine predicts",
    )
    mel_bins: int = Field(
        default=124,
        description="Number of bands in the spectrum output",
    )
    confidence_cutoff: float = Field(
        default=0.5,
        description="Predictions below this confidence are discarded",
    )

    # Editing
    min_section_length: int = Field(
        default=10,
        description="Cuts may not leave a section shorter than this many time steps",
    )
    default_tuning: str = Field(
        default="Standard Guitar",
        description="Tuning used for new recordings",
    )

    # Spectral engine
    smoothing: float = Field(
        default=0.5,
        description="Weight of the previous frame when blending predictions (0 disables)",
    )
    silence_threshold: float = Field(
        default=1e-3,
        description="Frames quieter than this RMS produce no predictions",
    )

    @model_validator(mode="after")
    def _check_geometry(self) -> "Settings":
        if not 0 < self.samples_per_step <= self.frame_size:
            raise ValueError("samples_per_step must be between 1 and frame_size")
        return self

    @property
    def frame_padding(self) -> int:
        """Samples of a window that overlap the following windows."""
        return self.frame_size - self.samples_per_step


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def configure(**overrides: object) -> Settings:
    """Configure settings with overrides. Useful for testing."""
    global _settings
    _settings = Settings(**overrides)  # type: ignore[arg-type]
    return _settings
