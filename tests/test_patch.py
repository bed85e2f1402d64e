import pytest

from vmss_core.writer import TERMINATOR, build_container, encode_block_record, encode_record, encode_stream
from vmss_nmi.container import process
from vmss_nmi.errors import SchemaViolation
from vmss_nmi.patch import NmiConfig

from helpers import PENDING0, UNRELATED, body_offset, cpu_container

NMI_HEAD = 2 + len("pendingNMI") + 4


def nmi_offset(*before: bytes, n_groups: int = 1) -> int:
    return body_offset(n_groups, *before) + NMI_HEAD


def test_query_reports_and_leaves_file_untouched(sample_vmss):
    before = sample_vmss.read_bytes()
    result = process(sample_vmss, NmiConfig(cpu=0, dry_run=True))
    assert result["records"] == [
        {"cpu": 0, "value": 0, "offset": f"0x{nmi_offset(UNRELATED):x}", "action": "reported"}
    ]
    assert sample_vmss.read_bytes() == before


def test_query_all_cpus(vmss_file):
    p = vmss_file(cpu_container(
        encode_record("pendingNMI", [0], b"\x00"),
        encode_record("pendingNMI", [1], b"\x01"),
        encode_record("pendingNMI", [2], b"\x00"),
    ))
    before = p.read_bytes()
    result = process(p, NmiConfig(cpu=None))
    assert [(r["cpu"], r["value"], r["action"]) for r in result["records"]] == [
        (0, 0, "reported"), (1, 1, "reported"), (2, 0, "reported"),
    ]
    assert p.read_bytes() == before


def test_write_changes_exactly_one_byte(sample_vmss):
    before = sample_vmss.read_bytes()
    result = process(sample_vmss, NmiConfig(cpu=0))
    after = sample_vmss.read_bytes()

    off = nmi_offset(UNRELATED)
    assert len(after) == len(before)
    assert [i for i in range(len(before)) if before[i] != after[i]] == [off]
    assert after[off] == 1
    assert result["records"][0]["action"] == "written"
    assert result["records"][0]["new_value"] == 1


def test_write_other_cpu_is_untouched(sample_vmss):
    before = sample_vmss.read_bytes()
    result = process(sample_vmss, NmiConfig(cpu=1))
    assert sample_vmss.read_bytes() == before
    assert result["records"][0]["action"] == "skipped"


def test_clear_pending(vmss_file):
    set_rec = encode_record("pendingNMI", [0], b"\x01")
    p = vmss_file(cpu_container(set_rec))
    process(p, NmiConfig(cpu=0, value=0))
    assert p.read_bytes()[nmi_offset()] == 0


def test_write_targets_only_requested_cpu(vmss_file):
    recs = [encode_record("pendingNMI", [cpu], b"\x00") for cpu in range(3)]
    p = vmss_file(cpu_container(*recs))
    before = p.read_bytes()
    result = process(p, NmiConfig(cpu=1))
    after = p.read_bytes()

    off = nmi_offset(recs[0])
    assert [i for i in range(len(before)) if before[i] != after[i]] == [off]
    assert [r["action"] for r in result["records"]] == ["skipped", "written", "skipped"]


def test_records_after_patched_one_are_still_scanned(vmss_file):
    p = vmss_file(cpu_container(
        PENDING0,
        encode_block_record("FPU", [0], b"\xff" * 32, pad=4),
        encode_record("pendingNMI", [1], b"\x01"),
    ))
    result = process(p, NmiConfig(cpu=0))
    assert [(r["cpu"], r["action"]) for r in result["records"]] == [(0, "written"), (1, "skipped")]


def test_only_cpu_group_is_patched(vmss_file):
    other = ("devices", encode_record("pendingNMI", [0], b"\x00") + b"\x00\x00")
    p = vmss_file(cpu_container(PENDING0, extra_groups=[other]))
    before = p.read_bytes()
    process(p, NmiConfig(cpu=0))
    after = p.read_bytes()
    changed = [i for i in range(len(before)) if before[i] != after[i]]
    assert changed == [nmi_offset(other[1], n_groups=2)]


def test_block_named_pending_nmi_is_skipped(vmss_file):
    p = vmss_file(cpu_container(encode_block_record("pendingNMI", [0], b"\x00")))
    before = p.read_bytes()
    result = process(p, NmiConfig(cpu=0))
    assert result["records"] == []
    assert p.read_bytes() == before


def test_wrong_value_size_is_fatal(vmss_file):
    p = vmss_file(cpu_container(encode_record("pendingNMI", [0], b"\x00\x00")))
    before = p.read_bytes()
    with pytest.raises(SchemaViolation) as exc:
        process(p, NmiConfig(cpu=0))
    assert "unexpected value of 2 (expected 1)" in str(exc.value)
    assert p.read_bytes() == before


def test_no_match_is_not_an_error(vmss_file):
    p = vmss_file(cpu_container(UNRELATED))
    result = process(p, NmiConfig(cpu=0))
    assert result["status"] == "PASS"
    assert result["records"] == []


def test_name_prefix_does_not_match(vmss_file):
    p = vmss_file(cpu_container(encode_record("pendingNMIx", [0], b"\x00")))
    assert process(p, NmiConfig(cpu=0))["records"] == []


@pytest.mark.parametrize("kwargs", [{"cpu": -1}, {"value": 2}])
def test_config_rejects_bad_values(kwargs):
    with pytest.raises(ValueError):
        NmiConfig(**kwargs)


def test_query_only_modes():
    assert NmiConfig(dry_run=True).query_only
    assert NmiConfig(cpu=None).query_only
    assert not NmiConfig(cpu=3).query_only


def test_every_cpu_group_is_scanned(vmss_file):
    first = encode_stream([encode_record("pendingNMI", [0], b"\x00")])
    second = encode_stream([encode_record("pendingNMI", [0], b"\x00")])
    p = vmss_file(build_container([("cpu", first), ("memory", TERMINATOR), ("cpu", second)]))
    before = p.read_bytes()
    result = process(p, NmiConfig(cpu=0))
    after = p.read_bytes()

    first_nmi = body_offset(3) + NMI_HEAD
    second_nmi = body_offset(3) + len(first) + len(TERMINATOR) + NMI_HEAD
    assert [i for i in range(len(before)) if before[i] != after[i]] == [first_nmi, second_nmi]
    assert [r["action"] for r in result["records"]] == ["written", "written"]
