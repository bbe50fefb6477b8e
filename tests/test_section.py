"""Tests for Section capture and splitting."""

import numpy as np
import pytest

from conftest import frames, stream
from fretline.errors import FrameSizeError
from fretline.timeline.recording import Recording


@pytest.fixture
def recording(settings, guitar) -> Recording:
    return Recording(tuning=guitar, name="Take", settings=settings)


class TestAppendFrame:
    """Tests for Section.append_frame."""

    def test_sample_buffer_grows_by_step(self, recording, engine, settings):
        """The first window adds frame_size samples, later ones samples_per_step."""
        section = recording.start_section()
        windows = frames(settings, 3)

        section.append_frame(windows[0], engine)
        assert len(section.samples) == 16
        section.append_frame(windows[1], engine)
        section.append_frame(windows[2], engine)

        assert len(section.samples) == settings.frame_padding + 3 * settings.samples_per_step
        assert np.array_equal(np.frombuffer(section.samples, dtype=np.float32), stream(settings, 3))

    def test_time_steps_keep_their_frame_index(self, recording, engine, settings):
        """Each time step records the window index it came from."""
        section = recording.start_section()
        for window in frames(settings, 4):
            section.append_frame(window, engine)

        assert [step.frame for step in section.time_steps] == [0, 1, 2, 3]

    def test_primes_once_per_section(self, recording, engine, settings):
        """The engine is primed with the first window of each section only."""
        windows = frames(settings, 3)
        recording.start_section()
        for window in windows:
            recording.append_frame(window, engine)
        recording.end_section()

        assert len(engine.primed) == 1
        assert np.array_equal(engine.primed[0], windows[0])

        recording.start_section()
        recording.append_frame(windows[0], engine)

        assert len(engine.primed) == 2

    def test_wrong_frame_size(self, recording, engine):
        """A window of the wrong size is rejected before reaching the engine."""
        section = recording.start_section()

        with pytest.raises(FrameSizeError) as excinfo:
            section.append_frame(np.zeros(15), engine)

        assert excinfo.value.expected == 16
        assert excinfo.value.actual == 15
        assert engine.primed == []
        assert engine.inferred == []
        assert len(section.samples) == 0
        assert section.time_steps == []

    def test_window_must_continue_buffer(self, recording, engine):
        """A window that skips past buffered samples is rejected."""
        section = recording.start_section()
        section.add_samples(np.zeros(40))

        with pytest.raises(ValueError):
            section.append_frame(np.zeros(16), engine)

    def test_gathered_section_is_closed(self, recording, engine, settings):
        """No samples can be appended after the section is finished."""
        section = recording.start_section()
        section.append_frame(frames(settings, 1)[0], engine)
        recording.end_section()

        with pytest.raises(RuntimeError):
            section.append_frame(frames(settings, 2)[1], engine)
        with pytest.raises(RuntimeError):
            section.add_samples([0.0])


class TestProcessPending:
    """Tests for buffered capture."""

    def test_processes_complete_windows(self, recording, engine, settings):
        """Every complete window in the buffer becomes a time step."""
        section = recording.start_section()
        section.add_samples(stream(settings, 5))

        assert section.pending_frames == 5
        assert section.process_pending(engine) == 5
        assert section.pending_frames == 0
        assert np.array_equal(engine.inferred[1], stream(settings, 5)[4:20])

    def test_waits_for_whole_window(self, recording, engine, settings):
        """Samples that do not complete a window stay pending."""
        section = recording.start_section()
        section.add_samples(np.zeros(15))
        assert section.process_pending(engine) == 0

        section.add_samples(np.zeros(4))
        assert section.process_pending(engine) == 1
        section.add_samples(np.zeros(1))
        assert section.process_pending(engine) == 1

        assert len(section.time_steps) == 2


class TestNotesAndClusters:
    """Tests for note aggregation inside a section."""

    def test_clusters_at_onsets(self, recording, engine, settings):
        """A cluster is opened on every time step where a note starts."""
        section = recording.start_section()
        for window in frames(settings, 5):
            section.append_frame(window, engine)

        assert [c.rel_time_step_start for c in section.clusters] == [0, 1, 4]
        assert [n.pitch for n in section.clusters[0].notes] == [40]
        assert [n.pitch for n in section.clusters[1].notes] == [45]

    def test_held_note_is_shared(self, recording, engine, settings):
        """A held pitch is one Note object across its time steps."""
        section = recording.start_section()
        for window in frames(settings, 5):
            section.append_frame(window, engine)

        held = {id(step.notes[0]) for step in section.time_steps}
        assert len(held) == 1
        assert section.time_steps[0].notes[0].duration == 5

    def test_finish_closes_notes(self, recording, engine, settings):
        """Ending a section closes the notes still held."""
        section = recording.start_section()
        for window in frames(settings, 2):
            section.append_frame(window, engine)

        recording.end_section()

        assert all(note.closed for note in section.time_steps[-1].notes)
        assert section.is_gathered

    def test_set_heading(self, recording, engine, settings):
        """Clusters can be labelled."""
        section = recording.start_section()
        section.append_frame(frames(settings, 1)[0], engine)

        section.set_heading(0, "Intro", bold=True)

        assert section.clusters[0].heading == "Intro"
        assert section.clusters[0].bold_heading is True


class TestSplit:
    """Tests for Section.split."""

    def test_split_partitions_contents(self, build_recording):
        """Both parts together hold exactly the original contents."""
        recording = build_recording(6)
        section = recording.sections[0]
        original = np.frombuffer(section.samples, dtype=np.float32).copy()

        left, right = section.split(3)

        assert len(left.samples) == 3 * 4 + 12
        assert len(right.samples) == len(original) - len(left.samples)
        joined = np.concatenate(
            [np.frombuffer(left.samples, dtype=np.float32), np.frombuffer(right.samples, dtype=np.float32)]
        )
        assert np.array_equal(joined, original)
        assert [s.frame for s in right.time_steps] == [3, 4, 5]
        assert left.is_gathered and right.is_gathered

    def test_split_moves_later_clusters(self, build_recording):
        """Clusters starting after the cut move right and are re-based."""
        recording = build_recording(6)

        left, right = recording.sections[0].split(3)

        assert [c.rel_time_step_start for c in left.clusters] == [0, 1]
        assert [c.rel_time_step_start for c in right.clusters] == [1]
        assert (right.sample_start, right.time_step_start, right.cluster_start) == (24, 3, 2)

    def test_split_leaves_original_untouched(self, build_recording):
        """Splitting builds new sections."""
        recording = build_recording(6)
        section = recording.sections[0]

        section.split(3)

        assert len(section.time_steps) == 6
        assert [c.rel_time_step_start for c in section.clusters] == [0, 1, 4]
