"""Exception types raised by fretline."""


class FretlineError(Exception):
    """Base class for fretline errors."""


class FrameSizeError(FretlineError, ValueError):
    """A sample frame did not have the engine's fixed frame size."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected a frame of {expected} samples, got {actual}")
        self.expected = expected
        self.actual = actual


class ActiveSectionError(FretlineError, RuntimeError):
    """A structural edit touched a section that is still gathering samples."""


class RecordingFormatError(FretlineError):
    """A recording file could not be decoded."""
