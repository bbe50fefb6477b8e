"""Pitch inference engines."""

from fretline.engine.base import InferenceEngine
from fretline.engine.spectral import SpectralEngine

__all__ = ["InferenceEngine", "SpectralEngine"]
