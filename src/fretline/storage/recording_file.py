"""Recording files - a compressed container with a separately readable header.

A recording file is a gzip stream holding, in order:

1. the magic bytes ``FRETREC``
2. the metadata record: length-prefixed JSON with the format version, name,
   length and timestamps
3. the recording header: length-prefixed JSON with the tuning, engine
   geometry, a note table and the structure of every section
4. the numeric payload: four ``.npy`` arrays per section (samples,
   predictions, spectra, reconstructions)

The metadata record comes first so that read_metadata() can stop after it,
which keeps listing a directory of recordings cheap. Notes are stored once
in a table and referenced by index, so a note held across several time steps
(or across a cut) is still a single object after loading.
"""

import gzip
import json
import logging
import struct
import zlib
from datetime import datetime
from pathlib import Path
from typing import BinaryIO

import numpy as np

from fretline.config import Settings, get_settings
from fretline.errors import RecordingFormatError
from fretline.models.frames import Note, NoteCluster, TimeStep
from fretline.models.tuning import Tuning
from fretline.timeline.recording import Recording, RecordingMetaData
from fretline.timeline.section import Section, sample_buffer

logger = logging.getLogger(__name__)

# Bump whenever the layout below changes; files of other versions are refused
FORMAT_VERSION = 1
MAGIC = b"FRETREC"

_RECORD_LENGTH = struct.Struct(">I")

# Errors that decoding a damaged stream can raise
_DECODE_ERRORS = (
    OSError,
    EOFError,
    ValueError,
    KeyError,
    TypeError,
    IndexError,
    AttributeError,
    struct.error,
    zlib.error,
)


# ---------- Writing ----------


def serialize(
    recording: Recording,
    stream: BinaryIO,
    last_edited_at: datetime | None = None,
) -> None:
    """Write a recording to a binary stream.

    Args:
        recording: Recording to write. It is snapshotted under its lock.
        stream: Writable binary stream; it is left open.
        last_edited_at: Edit timestamp for the metadata record (default: now).
    """
    with recording.lock:
        metadata = recording.metadata(last_edited_at)
        header, arrays = _encode_recording(recording)

    with gzip.GzipFile(fileobj=stream, mode="wb") as archive:
        archive.write(MAGIC)
        _write_record(archive, _encode_metadata(metadata))
        _write_record(archive, header)
        for values in arrays:
            np.lib.format.write_array(archive, values, allow_pickle=False)


def write(recording: Recording, path: Path) -> Path:
    """Write a recording to ``path``."""
    path = Path(path)
    with open(path, "wb") as stream:
        serialize(recording, stream)
    logger.info("Saved %r to %s", recording.name, path)
    return path


def save(recording: Recording, directory: Path | None = None) -> Path:
    """Save a recording as ``<name><extension>`` inside ``directory``.

    Args:
        recording: Recording to save.
        directory: Target directory (default: settings.recordings_dir).

    Returns:
        Path of the written file.
    """
    settings = recording.settings
    directory = Path(directory) if directory is not None else settings.recordings_dir
    directory.mkdir(parents=True, exist_ok=True)
    return write(recording, directory / f"{recording.name}{settings.file_extension}")


def _write_record(archive: gzip.GzipFile, record: dict) -> None:
    data = json.dumps(record, ensure_ascii=False).encode("utf-8")
    archive.write(_RECORD_LENGTH.pack(len(data)))
    archive.write(data)


def _encode_metadata(metadata: RecordingMetaData) -> dict:
    return {
        "formatVersion": FORMAT_VERSION,
        "name": metadata.name,
        "length": metadata.length,
        "createdAt": metadata.created_at.isoformat(),
        "lastEditedAt": metadata.last_edited_at.isoformat(),
    }


def _encode_recording(recording: Recording) -> tuple[dict, list[np.ndarray]]:
    """Split a recording into its JSON header and numeric arrays."""
    note_ids: dict[int, int] = {}
    notes: list[list] = []

    def note_ref(note: Note) -> int:
        key = id(note)
        if key not in note_ids:
            note_ids[key] = len(notes)
            notes.append([note.pitch, note.start_frame, note.duration, note.closed])
        return note_ids[key]

    sections = []
    arrays: list[np.ndarray] = []
    for section in recording.sections:
        sections.append(
            {
                "sampleStart": section.sample_start,
                "timeStepStart": section.time_step_start,
                "clusterStart": section.cluster_start,
                "isGathered": section.is_gathered,
                "timeSteps": [
                    {
                        "frame": step.frame,
                        "power": step.power,
                        "notes": [note_ref(note) for note in step.notes],
                    }
                    for step in section.time_steps
                ],
                "clusters": [
                    {
                        "relTimeStepStart": cluster.rel_time_step_start,
                        "notes": [note_ref(note) for note in cluster.notes],
                        "heading": cluster.heading,
                        "boldHeading": cluster.bold_heading,
                    }
                    for cluster in section.clusters
                ],
            }
        )
        arrays.append(np.frombuffer(section.samples, dtype=np.float32))
        arrays.append(_stack([step.predictions for step in section.time_steps]))
        arrays.append(_stack([step.spectrum for step in section.time_steps]))
        arrays.append(_stack([step.reconstruction for step in section.time_steps]))

    header = {
        "formatVersion": FORMAT_VERSION,
        "name": recording.name,
        "createdAt": recording.created_at.isoformat(),
        "tuning": recording.tuning.to_dict(),
        "frameSize": recording.settings.frame_size,
        "samplesPerStep": recording.settings.samples_per_step,
        "notes": notes,
        "sections": sections,
    }
    return header, arrays


def _stack(rows: list[np.ndarray]) -> np.ndarray:
    if not rows:
        return np.zeros((0, 0), dtype=np.float32)
    return np.stack(rows).astype(np.float32)


# ---------- Reading ----------


def read_metadata(stream: BinaryIO) -> RecordingMetaData:
    """Read only the metadata record of a recording stream.

    Raises:
        RecordingFormatError: The stream is not a recording of this format.
    """
    try:
        with gzip.GzipFile(fileobj=stream, mode="rb") as archive:
            return _decode_metadata(_read_metadata_record(archive))
    except RecordingFormatError:
        raise
    except _DECODE_ERRORS as e:
        raise RecordingFormatError(f"Corrupt recording metadata: {e}") from e


def deserialize(stream: BinaryIO, settings: Settings | None = None) -> Recording:
    """Read a full recording from a binary stream.

    Args:
        stream: Readable binary stream positioned at the start of a recording.
        settings: Settings of the loaded recording (default: global settings).
            Their frame geometry must match the one the file was written with.

    Raises:
        RecordingFormatError: Version mismatch, corrupt or truncated stream.
    """
    settings = settings or get_settings()
    try:
        with gzip.GzipFile(fileobj=stream, mode="rb") as archive:
            _read_metadata_record(archive)
            header = _read_record(archive)
            _check_version(header)
            return _decode_recording(header, archive, settings)
    except RecordingFormatError:
        raise
    except _DECODE_ERRORS as e:
        raise RecordingFormatError(f"Corrupt recording: {e}") from e


def load(path: Path, settings: Settings | None = None) -> Recording:
    """Load the recording stored at ``path``."""
    with open(path, "rb") as stream:
        recording = deserialize(stream, settings)
    logger.debug("Loaded %r from %s", recording.name, path)
    return recording


def _read_exact(archive: gzip.GzipFile, size: int) -> bytes:
    data = archive.read(size)
    if len(data) != size:
        raise EOFError(f"Expected {size} bytes, stream ended after {len(data)}")
    return data


def _read_record(archive: gzip.GzipFile) -> dict:
    (size,) = _RECORD_LENGTH.unpack(_read_exact(archive, _RECORD_LENGTH.size))
    record = json.loads(_read_exact(archive, size).decode("utf-8"))
    if not isinstance(record, dict):
        raise RecordingFormatError("Recording record is not an object")
    return record


def _read_metadata_record(archive: gzip.GzipFile) -> dict:
    if _read_exact(archive, len(MAGIC)) != MAGIC:
        raise RecordingFormatError("Not a recording file")
    record = _read_record(archive)
    _check_version(record)
    return record


def _check_version(record: dict) -> None:
    version = record.get("formatVersion")
    if version != FORMAT_VERSION:
        raise RecordingFormatError(
            f"Unsupported recording format version {version!r} (expected {FORMAT_VERSION})"
        )


def _decode_metadata(record: dict) -> RecordingMetaData:
    return RecordingMetaData(
        name=record["name"],
        length=float(record["length"]),
        created_at=datetime.fromisoformat(record["createdAt"]),
        last_edited_at=datetime.fromisoformat(record["lastEditedAt"]),
    )


def _decode_recording(header: dict, archive: gzip.GzipFile, settings: Settings) -> Recording:
    if (header["frameSize"], header["samplesPerStep"]) != (
        settings.frame_size,
        settings.samples_per_step,
    ):
        raise RecordingFormatError(
            f"Recording uses frames of {header['frameSize']} samples every "
            f"{header['samplesPerStep']}, settings use {settings.frame_size} "
            f"every {settings.samples_per_step}"
        )

    recording = Recording(
        tuning=Tuning.from_dict(header["tuning"]),
        name=header["name"],
        created_at=datetime.fromisoformat(header["createdAt"]),
        settings=settings,
    )

    notes = [
        Note(pitch=pitch, start_frame=start, duration=duration, closed=closed)
        for pitch, start, duration, closed in header["notes"]
    ]

    for entry in header["sections"]:
        samples = _read_array(archive, ndim=1)
        predictions = _read_array(archive, ndim=2)
        spectra = _read_array(archive, ndim=2)
        reconstructions = _read_array(archive, ndim=2)

        steps = entry["timeSteps"]
        if not len(steps) == len(predictions) == len(spectra) == len(reconstructions):
            raise RecordingFormatError("Time step arrays do not match the section header")

        time_steps = [
            TimeStep(
                frame=step["frame"],
                predictions=predictions[i],
                spectrum=spectra[i],
                reconstruction=reconstructions[i],
                power=step["power"],
                notes=[notes[ref] for ref in step["notes"]],
            )
            for i, step in enumerate(steps)
        ]
        clusters = [
            NoteCluster(
                rel_time_step_start=cluster["relTimeStepStart"],
                notes=[notes[ref] for ref in cluster["notes"]],
                heading=cluster["heading"],
                bold_heading=cluster["boldHeading"],
            )
            for cluster in entry["clusters"]
        ]
        recording.sections.append(
            Section(
                recording,
                entry["sampleStart"],
                entry["timeStepStart"],
                entry["clusterStart"],
                samples=sample_buffer(samples),
                time_steps=time_steps,
                clusters=clusters,
                is_gathered=entry["isGathered"],
            )
        )

    _check_offsets(recording)
    return recording


def _read_array(archive: gzip.GzipFile, ndim: int) -> np.ndarray:
    values = np.lib.format.read_array(archive, allow_pickle=False)
    if values.ndim != ndim:
        raise RecordingFormatError(f"Expected a {ndim}-dimensional array, got {values.ndim}")
    return values


def _check_offsets(recording: Recording) -> None:
    """Refuse recordings whose stored offsets are not contiguous."""
    sample = time_step = cluster = 0
    for index, section in enumerate(recording.sections):
        if (section.sample_start, section.time_step_start, section.cluster_start) != (
            sample,
            time_step,
            cluster,
        ):
            raise RecordingFormatError(f"Section {index} offsets are not contiguous")
        sample = section.sample_end
        time_step = section.time_step_end
        cluster = section.cluster_end
