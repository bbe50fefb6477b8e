"""Frame-level data models.

These models hold what the inference engine produces for each window of
samples and the notes that are tracked across consecutive windows.
"""

from dataclasses import dataclass, field

import numpy as np


def _frozen_array(values: object) -> np.ndarray:
    """Copy values into a read-only float32 array."""
    array = np.array(values, dtype=np.float32)
    array.flags.writeable = False
    return array


@dataclass(frozen=True, eq=False)
class StepOutput:
    """The outputs of the inference engine for one frame."""

    predictions: np.ndarray  # confidence per pitch, index 0 is the base pitch
    spectrum: np.ndarray  # log magnitude per mel band
    reconstruction: np.ndarray  # de-phased waveform, same length as the frame
    power: float  # RMS of the reconstruction

    def __post_init__(self) -> None:
        object.__setattr__(self, "predictions", _frozen_array(self.predictions))
        object.__setattr__(self, "spectrum", _frozen_array(self.spectrum))
        object.__setattr__(self, "reconstruction", _frozen_array(self.reconstruction))
        object.__setattr__(self, "power", float(self.power))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StepOutput):
            return NotImplemented
        return (
            self.power == other.power
            and np.array_equal(self.predictions, other.predictions)
            and np.array_equal(self.spectrum, other.spectrum)
            and np.array_equal(self.reconstruction, other.reconstruction)
        )


@dataclass(frozen=True, eq=False)
class PitchFrame:
    """One inference result together with the samples it was computed from."""

    samples: np.ndarray
    predictions: np.ndarray
    spectrum: np.ndarray
    reconstruction: np.ndarray
    power: float

    def __post_init__(self) -> None:
        for name in ("samples", "predictions", "spectrum", "reconstruction"):
            object.__setattr__(self, name, _frozen_array(getattr(self, name)))
        object.__setattr__(self, "power", float(self.power))

    @classmethod
    def from_output(cls, samples: np.ndarray, output: StepOutput) -> "PitchFrame":
        return cls(
            samples=samples,
            predictions=output.predictions,
            spectrum=output.spectrum,
            reconstruction=output.reconstruction,
            power=output.power,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PitchFrame):
            return NotImplemented
        return (
            self.power == other.power
            and np.array_equal(self.samples, other.samples)
            and np.array_equal(self.predictions, other.predictions)
            and np.array_equal(self.spectrum, other.spectrum)
            and np.array_equal(self.reconstruction, other.reconstruction)
        )


@dataclass
class Note:
    """A pitch held over consecutive time steps of one section."""

    pitch: int  # MIDI note number
    start_frame: int  # time step (relative to the producing section) of the onset
    duration: int = 1  # number of consecutive time steps
    closed: bool = field(default=False, compare=False)

    @property
    def end_frame(self) -> int:
        return self.start_frame + self.duration

    def extend(self) -> None:
        """Hold the note for one more time step."""
        if self.closed:
            raise RuntimeError(
                f"Cannot extend closed note {self.pitch} starting at {self.start_frame}"
            )
        self.duration += 1

    def close(self) -> None:
        self.closed = True


@dataclass(eq=False)
class TimeStep:
    """The analysis of one inference window within a section."""

    frame: int  # index of the window within the section that produced it
    predictions: np.ndarray
    spectrum: np.ndarray
    reconstruction: np.ndarray
    power: float
    notes: list[Note] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.predictions = _frozen_array(self.predictions)
        self.spectrum = _frozen_array(self.spectrum)
        self.reconstruction = _frozen_array(self.reconstruction)
        self.power = float(self.power)

    @property
    def pitches(self) -> list[int]:
        return [note.pitch for note in self.notes]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TimeStep):
            return NotImplemented
        return (
            self.frame == other.frame
            and self.power == other.power
            and self.notes == other.notes
            and np.array_equal(self.predictions, other.predictions)
            and np.array_equal(self.spectrum, other.spectrum)
            and np.array_equal(self.reconstruction, other.reconstruction)
        )


@dataclass
class NoteCluster:
    """Notes that begin on the same time step of a section."""

    rel_time_step_start: int  # relative to the owning section
    notes: list[Note] = field(default_factory=list)
    heading: str | None = None
    bold_heading: bool = False

    def rebased(self, offset: int) -> "NoteCluster":
        """Copy of this cluster with its start moved back by ``offset`` steps."""
        return NoteCluster(
            rel_time_step_start=self.rel_time_step_start - offset,
            notes=list(self.notes),
            heading=self.heading,
            bold_heading=self.bold_heading,
        )
