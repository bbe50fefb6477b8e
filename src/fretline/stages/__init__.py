"""Capture pipeline stages for fretline."""

from fretline.stages.load_audio import LoadAudioStage
from fretline.stages.save import SaveStage
from fretline.stages.transcribe import TranscribeStage

__all__ = [
    "LoadAudioStage",
    "SaveStage",
    "TranscribeStage",
]
