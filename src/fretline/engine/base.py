"""Base class for pitch inference engines."""

import threading
from abc import ABC, abstractmethod

import numpy as np

from fretline.errors import FrameSizeError
from fretline.models.frames import StepOutput

# Engines keep recurrent state between frames, so every call is serialized
# process-wide, across engine instances as well.
_ENGINE_LOCK = threading.Lock()


class InferenceEngine(ABC):
    """Abstract base class for inference engines.

    An engine turns one fixed-size window of samples into pitch predictions,
    a spectrum, a de-phased reconstruction and a power value. It carries state
    from one window to the next; prime() resets that state at the start of a
    new section.

    Subclasses implement _prime() and _infer(). The public prime() and infer()
    check the frame size and hold the engine lock around them.
    """

    def __init__(self, frame_size: int) -> None:
        self.frame_size = frame_size

    @abstractmethod
    def _prime(self, frame: np.ndarray) -> None:
        """Reset the recurrent state using the first frame of a section."""
        ...

    @abstractmethod
    def _infer(self, frame: np.ndarray) -> StepOutput:
        """Run one frame through the engine."""
        ...

    def prime(self, frame: np.ndarray) -> None:
        """Reset the engine before the first frame of a section."""
        samples = self._check_frame(frame)
        with _ENGINE_LOCK:
            self._prime(samples)

    def infer(self, frame: np.ndarray) -> StepOutput:
        """Run inference on one frame of ``frame_size`` samples."""
        samples = self._check_frame(frame)
        with _ENGINE_LOCK:
            return self._infer(samples)

    def _check_frame(self, frame: np.ndarray) -> np.ndarray:
        samples = np.asarray(frame, dtype=np.float32).ravel()
        if samples.size != self.frame_size:
            raise FrameSizeError(self.frame_size, samples.size)
        return samples
