from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from vmss_core.protocol import (
    CPU_GROUP,
    GROUP_FMT,
    GROUP_LEN,
    HEADER_FMT,
    HEADER_LEN,
    SUPPORTED_MAGICS,
    VMSS_MAGIC_OLD,
)

from .errors import FormatError, VmssIOError
from .patch import NmiConfig, NmiPatcher
from .scanner import scan_group


@dataclass(frozen=True)
class Header:
    magic: int
    version: int
    num_groups: int


@dataclass(frozen=True)
class Group:
    name: str
    offset: int
    size: int  # advisory; streams are terminator-delimited


def read_header(f: BinaryIO) -> Header:
    raw = f.read(HEADER_LEN)
    if len(raw) != HEADER_LEN:
        raise VmssIOError("E_SHORT_READ", "couldn't read VMSS header", 0)

    magic, version, num_groups = struct.unpack(HEADER_FMT, raw)
    if magic == VMSS_MAGIC_OLD:
        raise FormatError("E_MAGIC_OLD", "can't read 32-bit VMSS file")
    if magic not in SUPPORTED_MAGICS:
        raise FormatError("E_MAGIC_UNKNOWN", f"magic 0x{magic:08x} not recognized as a VMSS file")
    return Header(magic, version, num_groups)


def read_groups(f: BinaryIO, header: Header, file_size: int | None = None) -> list[Group]:
    offs = f.tell()
    want = GROUP_LEN * header.num_groups
    if file_size is None:
        file_size = os.fstat(f.fileno()).st_size
    # The group count is untrusted; never size a read from it alone
    if offs + want > file_size:
        raise VmssIOError("E_SHORT_READ", f"couldn't read {header.num_groups} groups", offs)
    raw = f.read(want)
    if len(raw) != want:
        raise VmssIOError("E_SHORT_READ", f"couldn't read {header.num_groups} groups", offs)

    groups = []
    for name, g_offs, g_size in struct.iter_unpack(GROUP_FMT, raw):
        # Fixed-width field, NUL-padded
        name = name.split(b"\x00", 1)[0].decode("ascii", errors="replace")
        groups.append(Group(name, g_offs, g_size))
    return groups


def process(path: Path, config: NmiConfig) -> dict:
    """Report or patch pendingNMI in every "cpu" group of a VMSS file."""
    path = Path(path)
    try:
        f = open(path, "r+b")
    except OSError as e:
        raise VmssIOError("E_OPEN", f"can't open {path}: {e.strerror or e}") from e

    with f:
        file_size = os.fstat(f.fileno()).st_size
        header = read_header(f)
        config.trace(f"VMSS version {header.version}, {header.num_groups} groups")

        groups = read_groups(f, header, file_size)
        patcher = NmiPatcher(config)
        for i, grp in enumerate(groups):
            config.trace(f"group {i:3d}: {grp.name:<28} offs=0x{grp.offset:x} size=0x{grp.size:x}")
            if grp.name == CPU_GROUP:
                scan_group(f, grp.offset, patcher.visit, file_size=file_size, trace=config.trace)

    return {
        "status": "PASS",
        "magic": f"0x{header.magic:08x}",
        "version": header.version,
        "groups": [g.name for g in groups],
        "records": [r.as_dict() for r in patcher.results],
    }
