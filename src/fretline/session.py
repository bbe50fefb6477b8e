"""Editing sessions - recording, cutting and rearranging one recording."""

import logging
import queue
import threading
from collections.abc import Callable
from enum import Enum
from pathlib import Path

import numpy as np

from fretline.engine.base import InferenceEngine
from fretline.storage.recording_file import save
from fretline.timeline.recording import Recording

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """What a session is doing; edits are only allowed when EDIT_SAFE."""

    EDIT_SAFE = "edit_safe"
    GATHERING = "gathering"


class CaptureWorker(threading.Thread):
    """Background path that moves captured audio into the active section.

    Chunks are taken from a queue, appended to the recording and every
    complete window is run through the engine. A ``None`` chunk stops the
    worker. If processing fails the exception is kept on ``error`` and the
    worker stops.
    """

    def __init__(
        self,
        recording: Recording,
        engine: InferenceEngine,
        chunks: "queue.Queue[np.ndarray | None]",
    ) -> None:
        super().__init__(name="capture-worker", daemon=True)
        self.recording = recording
        self.engine = engine
        self.chunks = chunks
        self.error: Exception | None = None

    def run(self) -> None:
        while True:
            chunk = self.chunks.get()
            if chunk is None:
                return
            try:
                self.recording.add_samples(chunk)
                self.recording.process_pending(self.engine)
            except Exception as e:
                logger.exception("Capture worker failed")
                self.error = e
                return


class Session:
    """Ties a recording to an engine and tracks the editing state."""

    def __init__(self, recording: Recording, engine: InferenceEngine) -> None:
        self.recording = recording
        self.engine = engine
        self.state = SessionState.EDIT_SAFE
        self.is_edited = False
        self.step_cursor = 0

        self._chunks: "queue.Queue[np.ndarray | None] | None" = None
        self._worker: CaptureWorker | None = None
        self._listeners: list[Callable[[SessionState], None]] = []

    @property
    def corrected_step_cursor(self) -> int:
        """The cursor clamped to the recording."""
        return min(max(self.step_cursor, 0), self.recording.time_step_length)

    def add_on_update(self, callback: Callable[[SessionState], None]) -> None:
        """Register a callback for state changes."""
        self._listeners.append(callback)

    def _set_state(self, state: SessionState) -> None:
        self.state = state
        for callback in self._listeners:
            callback(state)

    # ---------- Capture ----------

    def record(self) -> bool:
        """Start gathering a new section. Returns False if not possible now."""
        if self.state != SessionState.EDIT_SAFE:
            return False

        self.recording.start_section()
        self._chunks = queue.Queue()
        self._worker = CaptureWorker(self.recording, self.engine, self._chunks)
        self._worker.start()
        self.is_edited = True
        self._set_state(SessionState.GATHERING)
        return True

    def feed(self, samples: object) -> None:
        """Hand captured samples to the capture worker."""
        if self.state != SessionState.GATHERING or self._chunks is None:
            raise RuntimeError("Session is not recording")
        self._chunks.put(np.array(samples, dtype=np.float32).ravel())

    def pause_recording(self) -> bool:
        """Stop gathering once every queued chunk is processed.

        Raises:
            RuntimeError: The capture worker failed; the section is still ended.
        """
        if self.state != SessionState.GATHERING or self._worker is None or self._chunks is None:
            return False

        self._chunks.put(None)
        self._worker.join()
        error = self._worker.error
        self._worker = None
        self._chunks = None

        self.recording.end_section()
        self._set_state(SessionState.EDIT_SAFE)

        if error is not None:
            raise RuntimeError(f"Capture failed: {error}") from error
        return True

    # ---------- Editing ----------

    def cut(self, time_step: int | None = None) -> bool:
        """Cut at ``time_step`` (default: the cursor). Returns True on a change."""
        if self.state != SessionState.EDIT_SAFE:
            return False
        time_step = self.corrected_step_cursor if time_step is None else time_step
        if not self.recording.cut(time_step):
            return False
        self.step_cursor = time_step
        self.is_edited = True
        return True

    def swap_sections(self, a: int, b: int) -> bool:
        if self.state != SessionState.EDIT_SAFE:
            return False
        self.recording.swap_sections(a, b)
        self.is_edited = True
        return True

    def move_section(self, from_index: int, to_index: int) -> bool:
        if self.state != SessionState.EDIT_SAFE:
            return False
        self.recording.re_insert_section(from_index, to_index)
        self.is_edited = True
        return True

    def remove_section(self, index: int) -> bool:
        if self.state != SessionState.EDIT_SAFE:
            return False
        self.recording.remove_section(index)
        self.is_edited = True
        return True

    def save(self, directory: Path | None = None) -> Path:
        """Save the recording and clear the edited flag."""
        if self.state != SessionState.EDIT_SAFE:
            raise RuntimeError("Stop recording before saving")
        path = save(self.recording, directory)
        self.is_edited = False
        return path
