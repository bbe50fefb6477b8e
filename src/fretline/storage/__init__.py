"""Saving, loading and listing recordings."""

from fretline.storage.catalog import CatalogEntry, list_catalog, unique_name
from fretline.storage.recording_file import (
    FORMAT_VERSION,
    deserialize,
    load,
    read_metadata,
    save,
    serialize,
    write,
)

__all__ = [
    "FORMAT_VERSION",
    "CatalogEntry",
    "deserialize",
    "list_catalog",
    "load",
    "read_metadata",
    "save",
    "serialize",
    "unique_name",
    "write",
]
