"""fretline - record audio into an editable timeline of detected notes."""

__version__ = "0.1.0"
