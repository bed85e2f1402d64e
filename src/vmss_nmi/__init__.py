"""VMSS NMI - pendingNMI reader and in-place patcher for VMware suspended state files."""
from .container import process
from .errors import FormatError, SchemaViolation, VmssError, VmssIOError
from .patch import NmiConfig

__all__ = ["process", "NmiConfig", "VmssError", "FormatError", "VmssIOError", "SchemaViolation"]
