"""The recording timeline: sections, structural edits and note tracking."""

from fretline.timeline.recording import Recording, RecordingMetaData
from fretline.timeline.section import Section
from fretline.timeline.tracker import NoteTracker, active_pitches, track_notes

__all__ = [
    "NoteTracker",
    "Recording",
    "RecordingMetaData",
    "Section",
    "active_pitches",
    "track_notes",
]
