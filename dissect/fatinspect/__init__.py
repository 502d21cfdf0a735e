from dissect.fatinspect.exceptions import (
    Error,
    InvalidEntrySize,
    TruncatedImage,
)
from dissect.fatinspect.fat import (
    DirectoryEntry,
    DosDateTime,
    VolumeGeometry,
    iter_directory,
    read_geometry,
    root_offset,
    subdirectory_offset,
    walk,
)

__all__ = [
    "DirectoryEntry",
    "DosDateTime",
    "Error",
    "InvalidEntrySize",
    "TruncatedImage",
    "VolumeGeometry",
    "iter_directory",
    "read_geometry",
    "root_offset",
    "subdirectory_offset",
    "walk",
]
