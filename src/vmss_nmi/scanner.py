from __future__ import annotations

import os
import struct
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Iterator

from vmss_core.protocol import (
    BLOCK_FMT,
    BLOCK_LEN,
    BLOCK_PAD_FMT,
    BLOCK_PAD_LEN,
    INDEX_FMT,
    INDEX_LEN,
    MAX_INDICES,
    TAG_FMT,
    TAG_LEN,
    TAG_NULL,
)
from vmss_core.tags import decode_tag

from .errors import VmssIOError

Trace = Callable[[str], None]


def _silent(msg: str) -> None:
    pass


@dataclass
class BlockHeader:
    size: int
    memsize: int
    pad: int

    @property
    def footprint(self) -> int:
        return self.size + self.pad


@dataclass
class TagRecord:
    offset: int  # offset of the tag code
    name: str
    indices: tuple[int, int, int]
    n_index: int
    value_size: int
    value_offset: int  # first byte after the indices
    block: BlockHeader | None = field(default=None)

    @property
    def is_block(self) -> bool:
        return self.block is not None

    @property
    def end(self) -> int:
        if self.block is not None:
            return self.value_offset + BLOCK_LEN + BLOCK_PAD_LEN + self.block.footprint
        return self.value_offset + self.value_size


class TagStream:
    """Cursor over one group's tag records.

    Every read is exact and every seek is checked against the file size;
    the format has no resynchronization marker so the first miss is fatal.
    """

    def __init__(self, f: BinaryIO, file_size: int | None = None, trace: Trace = _silent):
        self.f = f
        if file_size is None:
            file_size = os.fstat(f.fileno()).st_size
        self.file_size = file_size
        self.trace = trace

    def tell(self) -> int:
        return self.f.tell()

    def seek(self, offset: int, what: str = "seek") -> None:
        if offset < 0 or offset > self.file_size:
            raise VmssIOError("E_SEEK", f"couldn't {what}", self.tell())
        self.f.seek(offset)

    def skip(self, n: int, what: str = "seek") -> None:
        self.seek(self.tell() + n, what)

    def read_exact(self, n: int, what: str) -> bytes:
        start = self.tell()
        data = self.f.read(n)
        if len(data) != n:
            raise VmssIOError("E_SHORT_READ", f"couldn't read {what}", start)
        return data

    def read_tag(self) -> TagRecord | None:
        """Decode the next record header, or None at the terminator."""
        start = self.tell()
        (code,) = struct.unpack(TAG_FMT, self.read_exact(TAG_LEN, "tag"))
        if code == TAG_NULL:
            return None

        hdr = decode_tag(code)

        # Names are not NUL-terminated on disk
        raw = self.read_exact(hdr.name_len, "name") if hdr.name_len else b""
        name = raw.decode("latin-1")

        idx = [0] * MAX_INDICES
        if hdr.n_index:
            raw_idx = self.read_exact(INDEX_LEN * hdr.n_index, "index")
            for i in range(hdr.n_index):
                (idx[i],) = struct.unpack_from(INDEX_FMT, raw_idx, i * INDEX_LEN)

        self.trace(
            f"tag {name:<30} size {hdr.value_size:3d} nindx {hdr.n_index} "
            f"([{idx[0]}][{idx[1]}][{idx[2]}])"
        )

        rec = TagRecord(
            offset=start,
            name=name,
            indices=tuple(idx),
            n_index=hdr.n_index,
            value_size=hdr.value_size,
            value_offset=self.tell(),
        )
        if hdr.is_block:
            rec.block = self.skip_block()
        return rec

    def skip_block(self) -> BlockHeader:
        """Read a block header and move the cursor past its payload.

        The pad field cannot be read together with size/memsize as one
        naturally aligned record, so it is read on its own.
        """
        offs = self.tell()
        try:
            size, memsize = struct.unpack(BLOCK_FMT, self.read_exact(BLOCK_LEN, "block"))
            (pad,) = struct.unpack(BLOCK_PAD_FMT, self.read_exact(BLOCK_PAD_LEN, "padding"))
        except VmssIOError as e:
            raise VmssIOError("E_SHORT_READ", e.detail, offs) from e

        blk = BlockHeader(size, memsize, pad)
        self.trace(f"  block size {size}, memsize {memsize}, pad {pad}")

        end = self.tell() + blk.footprint
        if end > self.file_size:
            raise VmssIOError("E_SEEK", "unable to skip block", offs)
        self.f.seek(end)
        return blk

    def read_value(self, rec: TagRecord) -> bytes:
        if rec.is_block:
            raise ValueError(f"{rec.name} is a block record")
        self.seek(rec.value_offset, "seek")
        return self.read_exact(rec.value_size, "buffer")

    def records(self) -> Iterator[TagRecord]:
        """Yield records until the terminator.

        A consumer may read or rewrite an inline payload while holding the
        record; the cursor is moved to the record end before the next one.
        """
        while True:
            rec = self.read_tag()
            if rec is None:
                return
            yield rec
            if not rec.is_block and self.tell() != rec.end:
                self.seek(rec.end, "seek")


def scan_group(
    f: BinaryIO,
    offset: int,
    visit: Callable[[TagStream, TagRecord], None] | None = None,
    file_size: int | None = None,
    trace: Trace = _silent,
) -> int:
    """Walk one group's record stream from its absolute offset.

    Returns the number of records seen (terminator excluded).
    """
    stream = TagStream(f, file_size=file_size, trace=trace)
    if offset > stream.file_size:
        raise VmssIOError("E_SEEK", "couldn't read group", offset)
    f.seek(offset)

    count = 0
    for rec in stream.records():
        count += 1
        if visit is not None:
            visit(stream, rec)
    return count
