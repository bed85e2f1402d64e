"""VMSS Core - Shared protocol constants and tag codec."""
from .tags import TagHeader, decode_tag, encode_tag

__all__ = ["TagHeader", "decode_tag", "encode_tag"]
