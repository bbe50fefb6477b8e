"""Sections - contiguous runs of samples, time steps and note clusters."""

import logging
from array import array
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from fretline.engine.base import InferenceEngine
from fretline.errors import FrameSizeError
from fretline.models.frames import NoteCluster, PitchFrame, TimeStep
from fretline.timeline.tracker import NoteTracker, active_pitches

if TYPE_CHECKING:
    from fretline.timeline.recording import Recording

logger = logging.getLogger(__name__)


def sample_buffer(values: object = ()) -> array:
    """Create a float32 sample buffer holding ``values``."""
    buffer = array("f")
    buffer.frombytes(np.asarray(values, dtype=np.float32).tobytes())
    return buffer


@dataclass
class Section:
    """One contiguous capture (or a part of one after a cut).

    The three start offsets place the section in the owning recording's flat
    sample, time step and cluster sequences. They are maintained by the
    recording; the end offsets are derived from the section's contents.

    The sample buffer is a continuous stream: window ``i`` covers samples
    ``i * samples_per_step`` to ``i * samples_per_step + frame_size``.
    """

    recording: "Recording" = field(repr=False, compare=False)
    sample_start: int = 0
    time_step_start: int = 0
    cluster_start: int = 0
    samples: array = field(default_factory=sample_buffer, repr=False)
    time_steps: list[TimeStep] = field(default_factory=list, repr=False)
    clusters: list[NoteCluster] = field(default_factory=list, repr=False)
    is_gathered: bool = False
    _tracker: NoteTracker = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.samples, array):
            self.samples = sample_buffer(self.samples)
        held = self.time_steps[-1].notes if self.time_steps else []
        self._tracker = NoteTracker(note for note in held if not note.closed)

    @property
    def sample_end(self) -> int:
        return self.sample_start + len(self.samples)

    @property
    def time_step_end(self) -> int:
        return self.time_step_start + len(self.time_steps)

    @property
    def cluster_end(self) -> int:
        return self.cluster_start + len(self.clusters)

    @property
    def pending_frames(self) -> int:
        """Number of complete windows in the buffer not yet processed."""
        settings = self.recording.settings
        with self.recording.lock:
            available = len(self.samples)
        if available < settings.frame_size:
            return 0
        complete = (available - settings.frame_size) // settings.samples_per_step + 1
        return max(0, complete - len(self.time_steps))

    def add_samples(self, samples: object) -> None:
        """Append captured audio to the sample buffer."""
        self._check_gathering()
        chunk = np.asarray(samples, dtype=np.float32).ravel()
        with self.recording.lock:
            self.samples.frombytes(chunk.tobytes())

    def frame_at(self, step: int) -> np.ndarray | None:
        """Copy out the window of relative time step ``step``.

        Returns None while the buffer does not yet hold the whole window.
        """
        settings = self.recording.settings
        start = step * settings.samples_per_step
        end = start + settings.frame_size
        with self.recording.lock:
            if step < 0 or end > len(self.samples):
                return None
            window = self.samples[start:end]
        return np.frombuffer(window, dtype=np.float32)

    def append_frame(self, raw_samples: object, engine: InferenceEngine) -> TimeStep:
        """Analyse one window and append it to this section.

        The part of the window that extends past the end of the sample buffer
        is appended to it: the whole window for the first time step, the last
        ``samples_per_step`` samples for every later one.

        Raises:
            FrameSizeError: The window is not ``frame_size`` samples long.
            ValueError: The window does not continue the sample buffer.
        """
        self._check_gathering()
        settings = self.recording.settings
        frame = np.asarray(raw_samples, dtype=np.float32).ravel()
        if frame.size != settings.frame_size:
            raise FrameSizeError(settings.frame_size, frame.size)

        start = len(self.time_steps) * settings.samples_per_step
        with self.recording.lock:
            overlap = len(self.samples) - start
            if not 0 <= overlap <= settings.frame_size:
                raise ValueError(
                    f"A window starting at sample {start} does not continue "
                    f"a buffer of {len(self.samples)} samples"
                )
            self.samples.frombytes(frame[overlap:].tobytes())

        return self._ingest(frame, engine)

    def process_pending(self, engine: InferenceEngine) -> int:
        """Analyse every complete window in the buffer. Returns how many."""
        processed = 0
        while True:
            frame = self.frame_at(len(self.time_steps))
            if frame is None:
                return processed
            self._ingest(frame, engine)
            processed += 1

    def _ingest(self, frame: np.ndarray, engine: InferenceEngine) -> TimeStep:
        settings = self.recording.settings
        index = len(self.time_steps)
        if index == 0:
            engine.prime(frame)

        pitch_frame = PitchFrame.from_output(frame, engine.infer(frame))
        pitches = active_pitches(
            pitch_frame.predictions, settings.confidence_cutoff, settings.base_pitch
        )
        notes = self._tracker.advance(index, pitches)

        step = TimeStep(
            frame=index,
            predictions=pitch_frame.predictions,
            spectrum=pitch_frame.spectrum,
            reconstruction=pitch_frame.reconstruction,
            power=pitch_frame.power,
            notes=notes,
        )
        self.time_steps.append(step)

        onsets = [note for note in notes if note.start_frame == index]
        if onsets:
            self.clusters.append(NoteCluster(rel_time_step_start=index, notes=onsets))
        return step

    def finish(self) -> None:
        """Stop gathering: no more samples will be appended."""
        self._tracker.close_all()
        self.is_gathered = True

    def split(self, step: int) -> tuple["Section", "Section"]:
        """Split into two gathered sections at relative time step ``step``.

        The left part keeps the windows before ``step`` together with the
        samples they cover; the right part takes the rest. Clusters starting
        after ``step`` move to the right part and are re-based onto it.
        """
        settings = self.recording.settings
        sample_cut = step * settings.samples_per_step + settings.frame_padding
        cluster_cut = next(
            (i for i, cluster in enumerate(self.clusters) if cluster.rel_time_step_start > step),
            len(self.clusters),
        )

        left = Section(
            self.recording,
            self.sample_start,
            self.time_step_start,
            self.cluster_start,
            samples=self.samples[:sample_cut],
            time_steps=self.time_steps[:step],
            clusters=self.clusters[:cluster_cut],
            is_gathered=True,
        )
        right = Section(
            self.recording,
            left.sample_end,
            left.time_step_end,
            left.cluster_end,
            samples=self.samples[sample_cut:],
            time_steps=self.time_steps[step:],
            clusters=[cluster.rebased(step) for cluster in self.clusters[cluster_cut:]],
            is_gathered=True,
        )
        return left, right

    def set_heading(self, cluster_index: int, heading: str | None, bold: bool = False) -> None:
        """Label one of this section's clusters."""
        cluster = self.clusters[cluster_index]
        cluster.heading = heading
        cluster.bold_heading = bold

    def _check_gathering(self) -> None:
        if self.is_gathered:
            raise RuntimeError("Section has finished gathering samples")
