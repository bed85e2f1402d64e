"""VMSS container encoder.

Builds byte-exact containers for tooling and tests. Only the layout is
produced; tag semantics are up to the caller.
"""
from __future__ import annotations

import struct
from typing import Iterable, Sequence

from .protocol import (
    BLOCK_FMT,
    BLOCK_PAD_FMT,
    GROUP_FMT,
    GROUP_LEN,
    GROUP_NAMELEN,
    HEADER_FMT,
    HEADER_LEN,
    INDEX_FMT,
    MAX_INDICES,
    TAG_FMT,
    TAG_VALSIZE_BLOCK,
    TAG_VALSIZE_BLOCK_COMPRESSED,
    TAG_VALSIZE_MAX,
    VMSS_MAGIC,
)
from .tags import encode_tag

TERMINATOR = struct.pack(TAG_FMT, 0)

DEFAULT_VERSION = 1


def _name_bytes(name: str | bytes) -> bytes:
    return name.encode("ascii") if isinstance(name, str) else bytes(name)


def _head(name: bytes, indices: Sequence[int], value_size: int) -> bytes:
    if len(indices) > MAX_INDICES:
        raise ValueError(f"at most {MAX_INDICES} indices, got {len(indices)}")
    code = encode_tag(len(name), len(indices), value_size)
    idx = b"".join(struct.pack(INDEX_FMT, i) for i in indices)
    return struct.pack(TAG_FMT, code) + name + idx


def encode_record(name: str | bytes, indices: Sequence[int] = (), value: bytes = b"") -> bytes:
    """Encode an inline tag record."""
    if len(value) > TAG_VALSIZE_MAX:
        raise ValueError(f"inline value of {len(value)} bytes exceeds {TAG_VALSIZE_MAX}")
    return _head(_name_bytes(name), indices, len(value)) + bytes(value)


def encode_block_record(
    name: str | bytes,
    indices: Sequence[int] = (),
    payload: bytes = b"",
    pad: int = 0,
    memsize: int | None = None,
    compressed: bool = False,
) -> bytes:
    """Encode a block-coded tag record.

    The pad field follows the size/memsize pair directly and is followed by
    ``len(payload) + pad`` bytes of block data (payload, then zero padding).
    """
    code = TAG_VALSIZE_BLOCK_COMPRESSED if compressed else TAG_VALSIZE_BLOCK
    if memsize is None:
        memsize = len(payload)
    return (
        _head(_name_bytes(name), indices, code)
        + struct.pack(BLOCK_FMT, len(payload), memsize)
        + struct.pack(BLOCK_PAD_FMT, pad)
        + bytes(payload)
        + b"\x00" * pad
    )


def encode_stream(records: Iterable[bytes]) -> bytes:
    """Concatenate encoded records and terminate the stream."""
    return b"".join(records) + TERMINATOR


def build_container(
    groups: Sequence[tuple[str, bytes]],
    magic: int = VMSS_MAGIC,
    version: int = DEFAULT_VERSION,
) -> bytes:
    """Lay out header, group table and group bodies back to back."""
    table = []
    offs = HEADER_LEN + GROUP_LEN * len(groups)
    for name, body in groups:
        raw = _name_bytes(name)
        if len(raw) >= GROUP_NAMELEN:
            raise ValueError(f"group name {name!r} too long")
        table.append(struct.pack(GROUP_FMT, raw, offs, len(body)))
        offs += len(body)

    return (
        struct.pack(HEADER_FMT, magic, version, len(groups))
        + b"".join(table)
        + b"".join(body for _, body in groups)
    )
