"""Generate synthetic VMSS files for demos and manual testing.

Usage:
    python tools/make_vmss.py OUT_FILE [--cpus N] [--pending 0|1] [--magic partial]
"""
import os
import sys
from pathlib import Path

from vmss_core.protocol import VMSS_MAGIC, VMSS_MAGIC_PARTIAL, VMSS_MAGIC_RESTORED
from vmss_core.writer import build_container, encode_block_record, encode_record, encode_stream

MAGICS = {
    "current": VMSS_MAGIC,
    "restored": VMSS_MAGIC_RESTORED,
    "partial": VMSS_MAGIC_PARTIAL,
}


def cpu_group(cpus: int, pending: int) -> bytes:
    records = [encode_record("cpu:numVCPUs", value=cpus.to_bytes(4, "little"))]
    for cpu in range(cpus):
        records.append(encode_record("rip", [cpu], os.urandom(8)))
        records.append(encode_record("CR", [cpu, 0], os.urandom(8)))
        records.append(encode_block_record("FPU", [cpu], os.urandom(512), pad=6))
        records.append(encode_record("pendingNMI", [cpu], bytes([pending])))
    return encode_stream(records)


def generate_vmss(out: Path, cpus: int = 2, pending: int = 0, magic: int = VMSS_MAGIC) -> Path:
    groups = [
        ("Checkpoint", encode_stream([encode_record("ProductVersion", [0], b"\x06\x00\x00\x00")])),
        ("cpu", cpu_group(cpus, pending)),
        ("memory", encode_stream([encode_block_record("Memory", [0, 0], os.urandom(4096), pad=2, compressed=True)])),
    ]
    out = Path(out)
    out.write_bytes(build_container(groups, magic=magic))
    print(f"GENERATED: {out} ({cpus} CPUs, pendingNMI={pending})")
    return out


if __name__ == "__main__":
    args = [a for a in sys.argv[1:] if a]

    def pop_opt(arg_list: list[str], opt: str, default: str) -> tuple[str, list[str]]:
        """Remove an option and its value from an argv-style list."""
        if opt not in arg_list:
            return default, arg_list
        i = arg_list.index(opt)
        if i + 1 >= len(arg_list):
            raise SystemExit(f"{opt} requires a value")
        return arg_list[i + 1], arg_list[:i] + arg_list[i + 2:]

    cpus, args = pop_opt(args, "--cpus", "2")
    pending, args = pop_opt(args, "--pending", "0")
    magic, args = pop_opt(args, "--magic", "current")

    if magic not in MAGICS:
        raise SystemExit(f"--magic must be one of {', '.join(MAGICS)}")

    out = args[0] if args else "sample.vmss"
    generate_vmss(Path(out), cpus=int(cpus), pending=int(pending), magic=MAGICS[magic])
