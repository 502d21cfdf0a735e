# References:
# - https://download.microsoft.com/download/1/6/1/161ba512-40e2-4cc9-843a-923143f3456c/fatgen103.doc
# - https://en.wikipedia.org/wiki/Design_of_the_FAT_file_system
from __future__ import annotations

import io
import logging
import os
from typing import TYPE_CHECKING, NamedTuple

from dissect.util.stream import RangeStream

from dissect.fatinspect.c_fat import (
    ATTRIBUTE_LABELS,
    BOOT_SECTOR_SIZE,
    BOOT_SIGNATURE,
    CLUSTER_SECTOR_SIZE,
    DATA_CLUSTER_MIN,
    DELETED_ENTRY,
    DIR_ENTRY_SIZE,
    DOT_ENTRIES_SIZE,
    DOT_ENTRY,
    END_OF_DIRECTORY,
    FREE_CLUSTER,
    c_fat,
)
from dissect.fatinspect.exceptions import InvalidEntrySize, TruncatedImage

if TYPE_CHECKING:
    from collections.abc import Iterator

__all__ = [
    "DirectoryEntry",
    "DosDateTime",
    "VolumeGeometry",
    "attribute_names",
    "decode_name",
    "iter_directory",
    "read_geometry",
    "root_offset",
    "subdirectory_offset",
    "walk",
]

log = logging.getLogger(__name__)
log.setLevel(os.getenv("DISSECT_LOG_FATINSPECT", "CRITICAL"))

DEFAULT_ENCODING = "ibm437"
DEFAULT_MAX_DEPTH = 32


class VolumeGeometry(NamedTuple):
    """Volume parameters taken from the boot sector."""

    bytes_per_sector: int
    sectors_per_cluster: int
    number_of_fat_copies: int
    sectors_per_fat_copy: int
    root_entry_count: int
    reserved_sector_count: int
    boot_signature_valid: bool

    @property
    def fat_copy_size(self) -> int:
        return self.sectors_per_fat_copy * self.bytes_per_sector

    @property
    def root_directory_size(self) -> int:
        return self.root_entry_count * DIR_ENTRY_SIZE

    @property
    def cluster_size(self) -> int:
        return self.sectors_per_cluster * CLUSTER_SECTOR_SIZE

    @property
    def root_offset(self) -> int:
        return root_offset(self)


def read_geometry(image: bytes) -> VolumeGeometry:
    """Read the volume geometry from the boot sector of ``image``.

    A wrong boot signature is not an error, it is only reported through ``boot_signature_valid``.

    Raises:
        TruncatedImage: If ``image`` is too short to contain a boot sector.
    """
    if len(image) < BOOT_SECTOR_SIZE:
        raise TruncatedImage(f"Image is too small to contain a boot sector: {len(image)} < {BOOT_SECTOR_SIZE}")

    bs = c_fat.BootSector(bytes(image[:BOOT_SECTOR_SIZE]))

    return VolumeGeometry(
        bytes_per_sector=bs.BPB_BytsPerSec,
        sectors_per_cluster=bs.BPB_SecPerClus,
        number_of_fat_copies=bs.BPB_NumFATs,
        sectors_per_fat_copy=bs.BPB_FATSz16,
        root_entry_count=bs.BPB_RootEntCnt,
        reserved_sector_count=bs.BPB_RsvdSecCnt,
        boot_signature_valid=bs.BS_Signature == BOOT_SIGNATURE,
    )


class DosDateTime(NamedTuple):
    day: int
    month: int
    year: int
    hours: int
    minutes: int
    seconds: int

    @classmethod
    def from_packed(cls, date: int, time: int) -> DosDateTime:
        #  date: yyyyyyy mmmm ddddd
        #  time: hhhhh mmmmmm sssss
        return cls(
            day=(date & 0x1F) + 1,
            month=(date >> 5) & 0x0F,
            year=((date >> 9) & 0x7F) + 1980,
            hours=(time >> 11) & 0x1F,
            minutes=(time >> 5) & 0x3F,
            seconds=(time & 0x1F) * 2,
        )

    def __str__(self) -> str:
        return f"{self.day}/{self.month}/{self.year} {self.hours}:{self.minutes}:{self.seconds}"


def decode_name(raw_name: bytes, encoding: str = DEFAULT_ENCODING) -> str:
    """Reconstruct a printable name from an 11 byte 8.3 name.

    Only the space padding at the end of the base name is removed, interior spaces of the base name are kept.
    Every space in the extension is dropped, the extension is only appended if anything remains.
    """
    base = bytes(raw_name[:8]).rstrip(b"\x20").decode(encoding)
    ext = bytes(raw_name[8:11]).replace(b"\x20", b"").decode(encoding)
    return f"{base}.{ext}" if ext else base


def attribute_names(attributes: int) -> list[str]:
    # Labels are not mutually exclusive, ATTR_LONG_NAME overlaps the four lowest bits
    return [label for flag, label in ATTRIBUTE_LABELS if attributes & flag == flag]


class DirectoryEntry:
    """A single 32 byte directory entry.

    Decoding never fails on the content of the record, only on its length.
    """

    def __init__(
        self,
        buf: bytes,
        offset: int | None = None,
        parent: DirectoryEntry | None = None,
        encoding: str = DEFAULT_ENCODING,
    ):
        if len(buf) < DIR_ENTRY_SIZE:
            raise InvalidEntrySize(f"Directory entry must be {DIR_ENTRY_SIZE} bytes: {len(buf)}")

        self.dirent = c_fat.Dirent(bytes(buf[:DIR_ENTRY_SIZE]))
        self.offset = offset
        self.parent = parent
        self.depth = parent.depth + 1 if parent else 0

        self.raw_name = bytes(self.dirent.DIR_Name)
        self.name = decode_name(self.raw_name, encoding)

    def __repr__(self) -> str:
        return f"<DirectoryEntry name={self.name}>"

    @property
    def path(self) -> str:
        return "\\".join([self.parent.path if self.parent else "", self.name]).lstrip("\\")

    @property
    def attributes(self) -> int:
        return self.dirent.DIR_Attr

    @property
    def cluster(self) -> int:
        return self.dirent.DIR_FstClusLO

    @property
    def size(self) -> int:
        return self.dirent.DIR_FileSize

    @property
    def creation_time(self) -> int:
        return self.dirent.DIR_CrtTime

    @property
    def creation_date(self) -> int:
        return self.dirent.DIR_CrtDate

    @property
    def last_modified_time(self) -> int:
        return self.dirent.DIR_WrtTime

    @property
    def last_modified_date(self) -> int:
        return self.dirent.DIR_WrtDate

    @property
    def ctime(self) -> DosDateTime:
        return DosDateTime.from_packed(self.dirent.DIR_CrtDate, self.dirent.DIR_CrtTime)

    @property
    def mtime(self) -> DosDateTime:
        return DosDateTime.from_packed(self.dirent.DIR_WrtDate, self.dirent.DIR_WrtTime)

    @property
    def is_end_marker(self) -> bool:
        return self.raw_name[0] == END_OF_DIRECTORY

    def is_deleted(self) -> bool:
        return self.raw_name[0] == DELETED_ENTRY

    def is_dot_entry(self) -> bool:
        return self.raw_name[0] == DOT_ENTRY and self.name in (".", "..")

    def is_readonly(self) -> bool:
        return bool(self.dirent.DIR_Attr & c_fat.ATTR_READ_ONLY)

    def is_hidden(self) -> bool:
        return bool(self.dirent.DIR_Attr & c_fat.ATTR_HIDDEN)

    def is_system(self) -> bool:
        return bool(self.dirent.DIR_Attr & c_fat.ATTR_SYSTEM)

    def is_volume_id(self) -> bool:
        return bool(self.dirent.DIR_Attr & c_fat.ATTR_VOLUME_ID)

    def is_long_name(self) -> bool:
        return self.dirent.DIR_Attr & c_fat.ATTR_LONG_NAME == c_fat.ATTR_LONG_NAME

    def is_directory(self) -> bool:
        return bool(self.dirent.DIR_Attr & c_fat.ATTR_DIRECTORY)

    def is_archive(self) -> bool:
        return bool(self.dirent.DIR_Attr & c_fat.ATTR_ARCHIVE)

    def attribute_names(self) -> list[str]:
        return attribute_names(self.dirent.DIR_Attr)


def root_offset(geometry: VolumeGeometry) -> int:
    """Return the absolute offset of the root directory table, directly after the reserved sectors and FAT copies."""
    reserved = geometry.reserved_sector_count * geometry.bytes_per_sector
    fats = geometry.number_of_fat_copies * geometry.sectors_per_fat_copy * geometry.bytes_per_sector
    return reserved + fats


def subdirectory_offset(geometry: VolumeGeometry, cluster: int) -> int:
    """Return the offset of the first child entry of the subdirectory starting at ``cluster``.

    The offset is relative to the start of the root directory table, which is directly followed by the data region.
    The "." and ".." entries at the start of the subdirectory table are skipped. Clusters are assumed to be
    contiguous, the FAT is not consulted.
    """
    return (
        geometry.root_entry_count * DIR_ENTRY_SIZE
        + (cluster - DATA_CLUSTER_MIN) * geometry.sectors_per_cluster * CLUSTER_SECTOR_SIZE
        + DOT_ENTRIES_SIZE
    )


def iter_directory(
    image: bytes,
    offset: int,
    limit: int | None = None,
    parent: DirectoryEntry | None = None,
    encoding: str = DEFAULT_ENCODING,
) -> Iterator[DirectoryEntry]:
    """Iterate the entries of the directory table at ``offset`` until the end marker.

    Iteration also stops at the end of ``image`` or after ``limit`` entries. The end marker itself is not yielded.
    """
    if offset < 0 or offset >= len(image):
        return

    size = len(image) - offset
    if limit is not None:
        size = min(size, limit * DIR_ENTRY_SIZE)

    fh = RangeStream(io.BytesIO(image), offset, size)
    while True:
        entry_offset = offset + fh.tell()
        buf = fh.read(DIR_ENTRY_SIZE)
        if len(buf) < DIR_ENTRY_SIZE:
            break

        entry = DirectoryEntry(buf, entry_offset, parent, encoding)
        if entry.is_end_marker:
            break

        yield entry


def walk(
    image: bytes,
    geometry: VolumeGeometry | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
    include_dot_entries: bool = False,
    encoding: str = DEFAULT_ENCODING,
) -> Iterator[DirectoryEntry]:
    """Walk the directory tree of ``image`` depth-first, yielding every entry before its children.

    Subdirectories nested deeper than ``max_depth`` and tables that were already walked are skipped.
    With ``include_dot_entries`` the "." and ".." entries of subdirectories are yielded as well.
    """
    geometry = geometry or read_geometry(image)

    base = root_offset(geometry)
    visited = {base}
    stack = [iter_directory(image, base, geometry.root_entry_count, encoding=encoding)]

    while stack:
        for entry in stack[-1]:
            yield entry

            if not entry.is_directory() or entry.cluster == FREE_CLUSTER or entry.is_dot_entry():
                continue

            offset = base + subdirectory_offset(geometry, entry.cluster)
            if include_dot_entries:
                offset -= DOT_ENTRIES_SIZE

            if offset in visited:
                log.warning("Directory table at 0x%x of %s was already walked, skipping", offset, entry.path)
                continue

            if entry.depth >= max_depth:
                log.warning("Maximum depth %d reached at %s, skipping", max_depth, entry.path)
                continue

            log.debug("Descending into %s (cluster %d) at 0x%x", entry.path, entry.cluster, offset)
            visited.add(offset)
            stack.append(iter_directory(image, offset, parent=entry, encoding=encoding))
            break
        else:
            stack.pop()
