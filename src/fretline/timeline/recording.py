"""Recordings - ordered sequences of sections forming one timeline."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone

import numpy as np

from fretline.config import Settings, get_settings
from fretline.engine.base import InferenceEngine
from fretline.errors import ActiveSectionError
from fretline.models.frames import Note, TimeStep
from fretline.models.tuning import Tuning
from fretline.timeline.section import Section

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RecordingMetaData:
    """The part of a recording needed to list it without loading it."""

    name: str
    length: float  # seconds
    created_at: datetime
    last_edited_at: datetime


@dataclass
class Recording:
    """An editable timeline of sections.

    Sections are contiguous: each section's start offsets equal the end
    offsets of the one before it, and the first section starts at zero. Every
    structural edit restores this by renumbering all sections from the left.

    Only the last section may still be gathering samples. Structural edits
    refuse to touch it, and ``lock`` guards its sample buffer between the
    capture path and readers.
    """

    tuning: Tuning
    name: str
    created_at: datetime = field(default_factory=_now)
    sections: list[Section] = field(default_factory=list, repr=False)
    settings: Settings = field(default_factory=get_settings, repr=False, compare=False)
    lock: threading.RLock = field(
        default_factory=threading.RLock, init=False, repr=False, compare=False
    )

    # ---------- Derived lengths ----------

    @property
    def sample_length(self) -> int:
        return self.sections[-1].sample_end if self.sections else 0

    @property
    def time_step_length(self) -> int:
        return self.sections[-1].time_step_end if self.sections else 0

    @property
    def cluster_length(self) -> int:
        return self.sections[-1].cluster_end if self.sections else 0

    @property
    def length(self) -> float:
        """Duration in seconds."""
        return self.sample_length / self.settings.sample_rate

    @property
    def active_section(self) -> Section | None:
        """The section still gathering samples, if any."""
        last = self.last_section()
        return last if last is not None and not last.is_gathered else None

    def last_section(self) -> Section | None:
        return self.sections[-1] if self.sections else None

    def metadata(self, last_edited_at: datetime | None = None) -> RecordingMetaData:
        return RecordingMetaData(
            name=self.name,
            length=self.length,
            created_at=self.created_at,
            last_edited_at=last_edited_at or _now(),
        )

    # ---------- Capture ----------

    def start_section(self) -> Section:
        """Append an empty section that continues from the last one."""
        with self.lock:
            if self.active_section is not None:
                raise ActiveSectionError("The last section is still gathering samples")
            last = self.last_section()
            if last is None:
                section = Section(self, 0, 0, 0)
            else:
                section = Section(self, last.sample_end, last.time_step_end, last.cluster_end)
            self.sections.append(section)
        logger.debug("Started section %d of %r", len(self.sections) - 1, self.name)
        return section

    def end_section(self) -> None:
        """Mark the last section as gathered."""
        last = self.last_section()
        if last is None:
            raise RuntimeError("No section has been started")
        with self.lock:
            last.finish()
        logger.debug(
            "Ended section %d of %r with %d time steps",
            len(self.sections) - 1,
            self.name,
            len(last.time_steps),
        )

    def add_samples(self, samples: object) -> None:
        self._require_active().add_samples(samples)

    def append_frame(self, raw_samples: object, engine: InferenceEngine) -> TimeStep:
        return self._require_active().append_frame(raw_samples, engine)

    def process_pending(self, engine: InferenceEngine) -> int:
        return self._require_active().process_pending(engine)

    def _require_active(self) -> Section:
        section = self.active_section
        if section is None:
            raise RuntimeError("No section is gathering samples; call start_section() first")
        return section

    # ---------- Lookup ----------

    def section_at(self, time_step: int) -> int | None:
        """Index of the section containing ``time_step``, or None past the end."""
        if time_step < 0:
            return None
        for index, section in enumerate(self.sections):
            if time_step < section.time_step_end:
                return index
        return None

    def time_step_at(self, time_step: int) -> TimeStep | None:
        index = self.section_at(time_step)
        if index is None:
            return None
        section = self.sections[index]
        return section.time_steps[time_step - section.time_step_start]

    def note_layout(self) -> list[tuple[int, Note]]:
        """Every distinct note paired with the absolute time step it starts on."""
        layout = []
        for section in self.sections:
            seen: set[int] = set()
            for offset, step in enumerate(section.time_steps):
                for note in step.notes:
                    if id(note) not in seen:
                        seen.add(id(note))
                        layout.append((section.time_step_start + offset, note))
        return layout

    def samples(self) -> np.ndarray:
        """All samples of the recording in timeline order."""
        with self.lock:
            parts = [np.frombuffer(section.samples, dtype=np.float32) for section in self.sections]
        if not parts:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(parts)

    # ---------- Structural edits ----------

    def cut(self, time_step: int) -> bool:
        """Split the section at ``time_step`` into two sections.

        Nothing happens when no section contains ``time_step`` or when either
        part would be shorter than ``min_section_length`` time steps.

        Returns:
            True if the recording was changed.
        """
        index = self.section_at(time_step)
        if index is None:
            logger.debug("No section at time step %d, nothing to cut", time_step)
            return False
        self._require_gathered(index)

        section = self.sections[index]
        left, right = section.split(time_step - section.time_step_start)
        minimum = self.settings.min_section_length
        if len(left.time_steps) < minimum or len(right.time_steps) < minimum:
            logger.debug(
                "Cut at %d rejected: parts of %d and %d time steps (minimum %d)",
                time_step,
                len(left.time_steps),
                len(right.time_steps),
                minimum,
            )
            return False

        with self.lock:
            self.sections[index : index + 1] = [left, right]
            self._renumber()
        logger.info("Cut section %d of %r at time step %d", index, self.name, time_step)
        return True

    def swap_sections(self, a: int, b: int) -> None:
        """Exchange the positions of two sections."""
        self._require_gathered(a, b)
        with self.lock:
            self.sections[a], self.sections[b] = self.sections[b], self.sections[a]
            self._renumber()

    def re_insert_section(self, from_index: int, to_index: int) -> None:
        """Move the section at ``from_index`` so that it lands before ``to_index``.

        ``to_index`` is a position in the list before the move; it is
        corrected for the removal when it lies after ``from_index``.
        """
        corrected = to_index - 1 if to_index > from_index else to_index
        self._require_gathered(from_index, min(corrected, len(self.sections) - 1))
        with self.lock:
            section = self.sections.pop(from_index)
            self.sections.insert(corrected, section)
            self._renumber()

    def remove_section(self, index: int) -> None:
        self._require_gathered(index)
        with self.lock:
            del self.sections[index]
            self._renumber()

    def _require_gathered(self, *indices: int) -> None:
        for index in indices:
            if not self.sections[index].is_gathered:
                raise ActiveSectionError(
                    f"Section {index} of {self.name!r} is still gathering samples"
                )

    def _renumber(self) -> None:
        sample = time_step = cluster = 0
        for section in self.sections:
            section.sample_start = sample
            section.time_step_start = time_step
            section.cluster_start = cluster
            sample = section.sample_end
            time_step = section.time_step_end
            cluster = section.cluster_end
