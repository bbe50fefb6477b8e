"""Catalog of saved recordings, listed from their metadata records only."""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from fretline.config import get_settings
from fretline.errors import RecordingFormatError
from fretline.storage.recording_file import read_metadata
from fretline.timeline.recording import RecordingMetaData

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Nameless"


@dataclass
class CatalogEntry:
    """A recording file paired with its metadata."""

    path: Path
    metadata: RecordingMetaData


def list_catalog(directory: Path | None = None, extension: str | None = None) -> list[CatalogEntry]:
    """List the recordings in ``directory``, most recently edited first.

    Only the metadata record of each file is decoded. Files that cannot be
    read are logged and left out.

    Args:
        directory: Directory to scan (default: settings.recordings_dir).
        extension: Recording file extension (default: settings.file_extension).

    Returns:
        One CatalogEntry per readable recording.
    """
    settings = get_settings()
    directory = Path(directory) if directory is not None else settings.recordings_dir
    extension = extension or settings.file_extension
    if not directory.is_dir():
        return []

    entries = []
    for path in sorted(directory.glob(f"*{extension}")):
        try:
            with open(path, "rb") as stream:
                metadata = read_metadata(stream)
        except (RecordingFormatError, OSError) as e:
            logger.warning("Skipping %s: %s", path.name, e)
            continue
        entries.append(CatalogEntry(path=path, metadata=metadata))

    entries.sort(key=lambda entry: entry.metadata.last_edited_at, reverse=True)
    return entries


def unique_name(name: str, existing: Iterable[str]) -> str:
    """Pick a recording name that is not taken yet.

    A blank name becomes "Nameless". A taken name gets a numeric suffix one
    above the highest suffix in use, e.g. "Riff", "Riff 2" -> "Riff 3".
    """
    name = name.strip() or DEFAULT_NAME
    pattern = re.compile(rf"{re.escape(name)}(?: +(\d+))?")

    suffixes = []
    for other in existing:
        match = pattern.fullmatch(other)
        if match is not None:
            suffixes.append(int(match.group(1) or 0))

    if not suffixes:
        return name
    return f"{name} {max(suffixes) + 1}"


def format_length(seconds: float) -> str:
    """Short display string for a recording length."""
    minutes = seconds / 60
    if seconds == 0:
        return "-"
    if seconds < 60:
        return f"{round(seconds)}s"
    if minutes < 5:
        return f"{round(minutes)}m"
    return f"{int(minutes)}m {round(seconds % 60)}s"


def format_relative_time(when: datetime, now: datetime | None = None) -> str:
    """Describe how long ago ``when`` was, e.g. "5 minutes ago"."""
    now = now or datetime.now(timezone.utc)
    seconds = (now - when).total_seconds()
    minutes = seconds / 60
    hours = minutes / 60
    days = hours / 24
    weeks = days / 7

    if seconds < 10:
        return "just now"
    if seconds < 60:
        return f"{round(seconds)} seconds ago"
    if minutes < 2:
        return "1 minute ago"
    if minutes < 60:
        return f"{round(minutes)} minutes ago"
    if hours < 2:
        return "1 hour ago"
    if hours < 24:
        return f"{round(hours)} hours ago"
    if days < 2:
        return "1 day ago"
    if days < 7:
        return f"{round(days)} days ago"
    if weeks < 2:
        return "1 week ago"
    if weeks < 52:
        return f"{round(weeks)} weeks ago"
    return "over a year ago"
