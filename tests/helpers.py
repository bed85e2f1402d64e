import io

from vmss_core.protocol import HEADER_LEN, GROUP_LEN
from vmss_core.writer import build_container, encode_record, encode_stream

UNRELATED = encode_record("cpuid", [0], b"\x01\x02\x03\x04")
PENDING0 = encode_record("pendingNMI", [0], b"\x00")


class TracingBytesIO(io.BytesIO):
    """BytesIO that remembers every (offset, length) read from it."""

    def __init__(self, data: bytes):
        super().__init__(data)
        self.reads: list[tuple[int, int]] = []

    def read(self, n=-1):
        pos = self.tell()
        data = super().read(n)
        self.reads.append((pos, len(data)))
        return data


def cpu_container(*records: bytes, extra_groups=()) -> bytes:
    return build_container([*extra_groups, ("cpu", encode_stream(records))])


def body_offset(n_groups: int, *before: bytes) -> int:
    """Offset of the first group body plus the records written before."""
    return HEADER_LEN + GROUP_LEN * n_groups + sum(len(r) for r in before)
