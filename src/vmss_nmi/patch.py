"""pendingNMI patch engine.

Finds ``pendingNMI`` records inside the "cpu" group and either reports
their value or rewrites the single payload byte in place.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field

from vmss_core.protocol import PENDING_NMI_SIZE, PENDING_NMI_TAG

from .errors import SchemaViolation, VmssIOError
from .output import verbose, warn
from .scanner import TagRecord, TagStream


@dataclass(frozen=True)
class NmiConfig:
    """Run-wide settings. ``cpu=None`` selects every CPU (query only)."""

    cpu: int | None = 0
    dry_run: bool = False
    verbose: bool = False
    value: int = 1

    def __post_init__(self):
        if self.cpu is not None and self.cpu < 0:
            raise ValueError(f"invalid CPU {self.cpu}")
        if self.value not in (0, 1):
            raise ValueError(f"pendingNMI value must be 0 or 1, got {self.value}")

    @property
    def query_only(self) -> bool:
        return self.dry_run or self.cpu is None

    def trace(self, msg: str) -> None:
        verbose(self, msg)


@dataclass
class NmiRecord:
    cpu: int
    value: int
    offset: int  # payload byte
    action: str  # reported | skipped | written
    new_value: int | None = None

    def as_dict(self) -> dict:
        d = {"cpu": self.cpu, "value": self.value, "offset": f"0x{self.offset:x}", "action": self.action}
        if self.new_value is not None:
            d["new_value"] = self.new_value
        return d


@dataclass
class NmiPatcher:
    config: NmiConfig
    results: list[NmiRecord] = field(default_factory=list)

    def visit(self, stream: TagStream, rec: TagRecord) -> None:
        if rec.is_block or rec.name != PENDING_NMI_TAG:
            return

        if rec.value_size != PENDING_NMI_SIZE:
            raise SchemaViolation(
                "E_SCHEMA",
                f"found {PENDING_NMI_TAG} size to be unexpected value of "
                f"{rec.value_size} (expected {PENDING_NMI_SIZE})",
                rec.offset,
            )

        value = stream.read_value(rec)[0]
        cpu = rec.indices[0]
        cfg = self.config

        if cfg.query_only:
            warn(f"{PENDING_NMI_TAG} for CPU {cpu} is {value}")
            self.results.append(NmiRecord(cpu, value, rec.value_offset, "reported"))
            return

        if cpu != cfg.cpu:
            warn(f"{PENDING_NMI_TAG} for CPU {cpu} is {value}; skipping (target CPU is {cfg.cpu})")
            self.results.append(NmiRecord(cpu, value, rec.value_offset, "skipped"))
            return

        warn(f"{PENDING_NMI_TAG} for CPU {cpu} is {value}; setting to {cfg.value}")
        self._rewrite(stream, rec)
        self.results.append(NmiRecord(cpu, value, rec.value_offset, "written", cfg.value))

    def _rewrite(self, stream: TagStream, rec: TagRecord) -> None:
        f = stream.f
        # Undo the one-byte value read
        f.seek(-PENDING_NMI_SIZE, os.SEEK_CUR)
        if f.tell() != rec.value_offset:
            raise VmssIOError("E_SEEK", "couldn't reset offset", f.tell())
        try:
            n = f.write(bytes([self.config.value]))
            f.flush()
        except OSError as e:
            raise VmssIOError("E_WRITE", f"couldn't write buffer: {e}", rec.value_offset) from e
        if n != PENDING_NMI_SIZE:
            raise VmssIOError("E_WRITE", "couldn't write buffer", rec.value_offset)
