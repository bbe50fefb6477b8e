"""Aggregation of per-frame pitch detections into held notes."""

from collections.abc import Iterable, Sequence

import numpy as np

from fretline.models.frames import Note


def active_pitches(predictions: Sequence[float], cutoff: float, base_pitch: int) -> list[int]:
    """Return the absolute pitches whose confidence reaches ``cutoff``."""
    indices = np.flatnonzero(np.asarray(predictions) >= cutoff)
    return [int(index) + base_pitch for index in indices]


def track_notes(pitches: Iterable[int], previous: Sequence[Note], frame: int) -> list[Note]:
    """Link the pitches active at ``frame`` with the notes held at ``frame - 1``.

    A pitch that was already held extends the same Note object; any other
    pitch starts a new Note. Notes from ``previous`` whose pitch is no longer
    active are closed.

    Args:
        pitches: Pitches active in this frame.
        previous: Notes of the previous frame (empty for the first frame).
        frame: Index of this frame within its section.

    Returns:
        The notes active in this frame, in the order of ``pitches``.
    """
    held = {note.pitch: note for note in previous}
    notes = []
    for pitch in pitches:
        note = held.pop(pitch, None)
        if note is None:
            note = Note(pitch=pitch, start_frame=frame)
        else:
            note.extend()
        notes.append(note)

    for note in held.values():
        note.close()

    return notes


class NoteTracker:
    """Tracks the notes held across the frames of one section."""

    def __init__(self, held: Iterable[Note] = ()) -> None:
        self._held: list[Note] = list(held)

    @property
    def held(self) -> list[Note]:
        return list(self._held)

    def advance(self, frame: int, pitches: Iterable[int]) -> list[Note]:
        """Move to ``frame`` with the given active pitches."""
        self._held = track_notes(pitches, self._held, frame)
        return list(self._held)

    def close_all(self) -> None:
        """Close every held note; used when the section stops gathering."""
        for note in self._held:
            note.close()
        self._held = []
