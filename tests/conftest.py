import pytest

from helpers import PENDING0, UNRELATED, cpu_container


@pytest.fixture
def vmss_file(tmp_path):
    """Factory writing container bytes to a temp file."""
    def make(data: bytes, name: str = "vm.vmss"):
        p = tmp_path / name
        p.write_bytes(data)
        return p
    return make


@pytest.fixture
def sample_vmss(vmss_file):
    """A "cpu" group: unrelated 4-byte tag, pendingNMI(cpu 0) = 0, terminator."""
    return vmss_file(cpu_container(UNRELATED, PENDING0))
