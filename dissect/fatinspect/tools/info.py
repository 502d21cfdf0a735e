from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dissect.fatinspect.exceptions import Error
from dissect.fatinspect.fat import (
    DEFAULT_MAX_DEPTH,
    DirectoryEntry,
    VolumeGeometry,
    read_geometry,
    walk,
)

log = logging.getLogger(__name__)

LOG_LEVELS = ["WARNING", "INFO", "DEBUG"]

# Attribute lines as laid out by the original inspector
ATTRIBUTE_LINES = {
    "Read-only": "Read-only ",
    "Hidden": "Hidden ",
    "System": "System ",
}


def print_geometry(geometry: VolumeGeometry) -> None:
    print("Boot sector info:")
    print(f"\tSector size (bytes): {geometry.bytes_per_sector}")
    print(f"\tCluster size (sectors): {geometry.sectors_per_cluster}")
    print(f"\tFAT copies: {geometry.number_of_fat_copies}")
    print(f"\tFAT copy size (sectors): {geometry.sectors_per_fat_copy}")
    print(f"\tFAT copy size (bytes): {geometry.fat_copy_size}")
    print(f"\tRoot entries: {geometry.root_entry_count}")
    print(f"\tReserved sectors: {geometry.reserved_sector_count}")
    print(f"\tIs boot signature correct: {str(geometry.boot_signature_valid).lower()}")


def print_entry(entry: DirectoryEntry) -> None:
    print(f"File name: {entry.path}")

    if entry.is_directory():
        print("\tFile is a directory")
    else:
        print(f"\tFile size: {entry.size}")

    print("\tFile's attributes: ")
    for name in entry.attribute_names():
        print(f"\t\t{ATTRIBUTE_LINES.get(name, name)}")

    print(f"\tCreation date & time: {entry.ctime}")
    print(f"\tLast modification date & time: {entry.mtime}")
    print(f"\tFirst cluster number: {entry.cluster}")
    print()


def main() -> int:
    parser = argparse.ArgumentParser(description="Print the boot sector and directory tree of a FAT12/16 image.")
    parser.add_argument("image", type=Path, help="path to the volume image")
    parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help="maximum subdirectory depth to descend into",
    )
    parser.add_argument(
        "--dot-entries",
        action="store_true",
        help="also print the . and .. entries of subdirectories",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="increase log verbosity")
    args = parser.parse_args()

    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    level = LOG_LEVELS[min(args.verbose, len(LOG_LEVELS) - 1)]
    logging.getLogger("dissect.fatinspect").setLevel(level)
    logging.getLogger("dissect.fatinspect.fat").setLevel(level)

    try:
        image = args.image.read_bytes()
    except OSError as e:
        print(f"Unable to read image {args.image}: {e}", file=sys.stderr)
        return 1

    log.info("Loaded %d bytes from %s", len(image), args.image)

    try:
        geometry = read_geometry(image)
        print_geometry(geometry)

        print("Root catalog info:")
        for entry in walk(image, geometry, max_depth=args.max_depth, include_dot_entries=args.dot_entries):
            print_entry(entry)
    except Error as e:
        print(f"Unable to inspect image {args.image}: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
