"""Instrument tunings and note names."""

import numbers
import re
from dataclasses import dataclass

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

_PITCH_PATTERN = re.compile(r"([A-Ga-g])([#b]?)(-?\d+)")

DEFAULT_CAPO = 0
DEFAULT_MAX_FRET = 20


def pitch_name(pitch: int) -> str:
    """Get note name (e.g., 'C4', 'A#3') of a MIDI pitch."""
    octave = (pitch // 12) - 1
    return f"{NOTE_NAMES[pitch % 12]}{octave}"


def parse_pitch(name: str) -> int | None:
    """Parse a note name such as 'E2', 'f#3' or 'Bb1' into a MIDI pitch.

    Returns None when the name is not recognised.
    """
    match = _PITCH_PATTERN.fullmatch(name.strip())
    if match is None:
        return None
    letter, accidental, octave = match.groups()
    pitch = NOTE_NAMES.index(letter.upper()) + (int(octave) + 1) * 12
    if accidental == "#":
        pitch += 1
    elif accidental == "b":
        pitch -= 1
    return pitch


@dataclass(frozen=True)
class Tuning:
    """The open-string pitches of a fretted instrument.

    Strings are ordered highest first, the order they are drawn in tablature.
    The capo also acts as the lowest usable fret.
    """

    name: str
    strings: tuple[int, ...]
    capo: int = DEFAULT_CAPO
    max_fret: int = DEFAULT_MAX_FRET

    def __post_init__(self) -> None:
        object.__setattr__(self, "strings", tuple(int(s) for s in self.strings))

    @classmethod
    def from_names(
        cls,
        name: str,
        *string_names: str,
        capo: int = DEFAULT_CAPO,
        max_fret: int = DEFAULT_MAX_FRET,
    ) -> "Tuning":
        """Build a tuning from note names listed lowest string first.

        Names that cannot be parsed are ignored.
        """
        pitches = [parse_pitch(string_name) for string_name in string_names]
        strings = [pitch for pitch in pitches if pitch is not None]
        return cls(name, tuple(reversed(strings)), capo, max_fret)

    def __getitem__(self, index: int) -> int:
        return self.strings[index]

    def __len__(self) -> int:
        return len(self.strings)

    def __contains__(self, pitch: object) -> bool:
        # every string is checked, sparse tunings can skip pitches between strings
        if not isinstance(pitch, numbers.Integral):
            return False
        return any(0 <= pitch - string <= self.max_fret for string in self.strings)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "strings": list(self.strings),
            "capo": self.capo,
            "maxFret": self.max_fret,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Tuning":
        return cls(
            name=data["name"],
            strings=tuple(data["strings"]),
            capo=data.get("capo", DEFAULT_CAPO),
            max_fret=data.get("maxFret", DEFAULT_MAX_FRET),
        )


DEFAULT_TUNINGS: list[Tuning] = [
    Tuning.from_names("Standard Guitar", "E2", "A2", "D3", "G3", "B3", "E4"),
    Tuning.from_names("Standard Bass", "E1", "A1", "D2", "G2"),
]


def find_tuning(name: str) -> Tuning | None:
    """Look up one of the built-in tunings by name (case-insensitive)."""
    for tuning in DEFAULT_TUNINGS:
        if tuning.name.lower() == name.lower():
            return tuning
    return None
