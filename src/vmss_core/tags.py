"""VMSS tag header codec."""
from __future__ import annotations

from typing import NamedTuple

from .protocol import (
    TAG_NAMELEN_MASK,
    TAG_NAMELEN_SHIFT,
    TAG_NINDX_MASK,
    TAG_NINDX_SHIFT,
    TAG_NULL,
    TAG_VALSIZE_BLOCK,
    TAG_VALSIZE_BLOCK_COMPRESSED,
    TAG_VALSIZE_MASK,
    TAG_VALSIZE_SHIFT,
)


class TagHeader(NamedTuple):
    name_len: int
    n_index: int
    value_size: int

    @property
    def is_block(self) -> bool:
        return self.value_size in (TAG_VALSIZE_BLOCK, TAG_VALSIZE_BLOCK_COMPRESSED)

    @property
    def is_compressed(self) -> bool:
        return self.value_size == TAG_VALSIZE_BLOCK_COMPRESSED


def decode_tag(code: int) -> TagHeader:
    """Split a 16-bit tag code into (name length, index count, value size)."""
    if code == TAG_NULL:
        raise ValueError("tag code 0 is the stream terminator")
    return TagHeader(
        (code >> TAG_NAMELEN_SHIFT) & TAG_NAMELEN_MASK,
        (code >> TAG_NINDX_SHIFT) & TAG_NINDX_MASK,
        (code >> TAG_VALSIZE_SHIFT) & TAG_VALSIZE_MASK,
    )


def encode_tag(name_len: int, n_index: int, value_size: int) -> int:
    """Pack tag fields into a 16-bit tag code."""
    if not 0 <= name_len <= TAG_NAMELEN_MASK:
        raise ValueError(f"name length {name_len} out of range")
    if not 0 <= n_index <= TAG_NINDX_MASK:
        raise ValueError(f"index count {n_index} out of range")
    if not 0 <= value_size <= TAG_VALSIZE_MASK:
        raise ValueError(f"value size {value_size} out of range")

    code = (
        (name_len << TAG_NAMELEN_SHIFT)
        | (n_index << TAG_NINDX_SHIFT)
        | (value_size << TAG_VALSIZE_SHIFT)
    )
    if code == TAG_NULL:
        raise ValueError("tag fields encode to the stream terminator")
    return code
