from __future__ import annotations

import struct
from typing import Callable

import pytest

SECTOR_SIZE = 512
FLOPPY_SECTORS = 2880


def pack_boot_sector(
    bytes_per_sector: int = 512,
    sectors_per_cluster: int = 1,
    reserved_sectors: int = 1,
    fat_copies: int = 2,
    root_entries: int = 224,
    sectors_per_fat: int = 9,
    signature: bytes = b"\x55\xaa",
) -> bytes:
    sector = bytearray(SECTOR_SIZE)
    sector[0:11] = b"\xeb\x3c\x90MSWIN4.1"
    struct.pack_into(
        "<HBHBH", sector, 0x0B, bytes_per_sector, sectors_per_cluster, reserved_sectors, fat_copies, root_entries
    )
    struct.pack_into("<H", sector, 0x16, sectors_per_fat)
    sector[0x1FE:0x200] = signature
    return bytes(sector)


def pack_dirent(
    name: bytes,
    attr: int = 0x20,
    cluster: int = 0,
    size: int = 0,
    ctime: int = 0,
    cdate: int = 0,
    mtime: int = 0,
    mdate: int = 0,
) -> bytes:
    assert len(name) == 11
    return struct.pack("<11sBBBHHHHHHHI", name, attr, 0, 0, ctime, cdate, 0, 0, mtime, mdate, cluster, size)


def build_image(boot_sector: bytes, root: list[bytes], clusters: dict[int, list[bytes]]) -> bytes:
    """Lay out a floppy sized image with the given root table and contiguous subdirectory clusters."""
    image = bytearray(FLOPPY_SECTORS * SECTOR_SIZE)
    image[:SECTOR_SIZE] = boot_sector

    bps, spc, reserved, fats, root_entries = struct.unpack_from("<HBHBH", boot_sector, 0x0B)
    (spf,) = struct.unpack_from("<H", boot_sector, 0x16)

    root_offset = reserved * bps + fats * spf * bps
    image[root_offset : root_offset + 32 * len(root)] = b"".join(root)

    data_offset = root_offset + root_entries * 32
    for cluster, entries in clusters.items():
        offset = data_offset + (cluster - 2) * spc * SECTOR_SIZE
        image[offset : offset + 32 * len(entries)] = b"".join(entries)

    return bytes(image)


@pytest.fixture
def make_dirent() -> Callable[..., bytes]:
    return pack_dirent


@pytest.fixture
def make_boot_sector() -> Callable[..., bytes]:
    return pack_boot_sector


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    return build_image


@pytest.fixture
def floppy() -> bytes:
    root = [
        pack_dirent(b"FLOPPY     ", attr=0x08),
        pack_dirent(b".          ", attr=0x10),
        pack_dirent(b"README  TXT", attr=0x20, cluster=5, size=42, cdate=0x0021, mdate=0x5490, mtime=0xBF7D),
        pack_dirent(b"SUBDIR     ", attr=0x10, cluster=3),
        pack_dirent(b"NOEXT      ", attr=0x21, cluster=6, size=7),
    ]
    clusters = {
        3: [
            pack_dirent(b".          ", attr=0x10, cluster=3),
            pack_dirent(b"..         ", attr=0x10, cluster=0),
            pack_dirent(b"INNER   TXT", attr=0x20, cluster=7, size=10),
            pack_dirent(b"DEEP       ", attr=0x10, cluster=4),
        ],
        4: [
            pack_dirent(b".          ", attr=0x10, cluster=4),
            pack_dirent(b"..         ", attr=0x10, cluster=3),
            pack_dirent(b"FILE    BIN", attr=0x27, cluster=8, size=1),
        ],
    }
    return build_image(pack_boot_sector(), root, clusters)


@pytest.fixture
def cyclic() -> bytes:
    root = [pack_dirent(b"LOOP       ", attr=0x10, cluster=3)]
    clusters = {
        3: [
            pack_dirent(b".          ", attr=0x10, cluster=3),
            pack_dirent(b"..         ", attr=0x10, cluster=0),
            pack_dirent(b"AGAIN      ", attr=0x10, cluster=3),
        ],
    }
    return build_image(pack_boot_sector(), root, clusters)
