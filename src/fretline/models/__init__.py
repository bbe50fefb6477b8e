"""Data models for fretline."""

from fretline.models.frames import Note, NoteCluster, PitchFrame, StepOutput, TimeStep
from fretline.models.pipeline import CaptureContext, ProcessingResult, StageResult
from fretline.models.tuning import DEFAULT_TUNINGS, Tuning, find_tuning, parse_pitch, pitch_name

__all__ = [
    "DEFAULT_TUNINGS",
    "CaptureContext",
    "Note",
    "NoteCluster",
    "PitchFrame",
    "ProcessingResult",
    "StageResult",
    "StepOutput",
    "TimeStep",
    "Tuning",
    "find_tuning",
    "parse_pitch",
    "pitch_name",
]
